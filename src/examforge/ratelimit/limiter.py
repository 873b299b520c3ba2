from __future__ import annotations

import asyncio
import zlib
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from examforge.config import FailMode
from examforge.exceptions import StoreUnavailableError
from examforge.models.domain import RateLimitDecision, RateLimitPolicy, RateLimitRecord
from examforge.store.base import AtomicRateLimitStore, RateLimitStore

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateLimiter:
    """Fixed-window attempt counter keyed by identifier.

    Each identifier gets at most ``policy.limit`` admissions per window. The
    read-modify-write on a record runs under one of a fixed set of striped
    locks, so concurrent checks on the same identifier cannot both take the
    last slot. Stores implementing ``AtomicRateLimitStore`` do the whole check
    themselves and the locks are skipped.
    """

    def __init__(
        self,
        store: RateLimitStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
        fail_mode: FailMode = FailMode.CLOSED,
        lock_stripes: int = 64,
    ) -> None:
        self._store = store
        self._clock = clock
        self._fail_mode = fail_mode
        self._locks = [asyncio.Lock() for _ in range(lock_stripes)]

    def _lock_for(self, identifier: str) -> asyncio.Lock:
        return self._locks[zlib.crc32(identifier.encode()) % len(self._locks)]

    async def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitDecision:
        """Count one attempt for ``identifier`` and decide whether it may proceed."""
        now = self._clock()
        try:
            if isinstance(self._store, AtomicRateLimitStore):
                decision = await self._store.hit(identifier, policy, now)
            else:
                async with self._lock_for(identifier):
                    decision = await self._check_locked(identifier, policy, now)
        except StoreUnavailableError:
            if self._fail_mode == FailMode.CLOSED:
                logger.error("rate_limit_fail_closed", identifier=identifier)
                raise
            logger.warning("rate_limit_fail_open", identifier=identifier)
            return RateLimitDecision(
                allowed=True,
                limit=policy.limit,
                remaining_attempts=policy.limit,
                reset_at=now + policy.window,
            )

        if not decision.allowed:
            logger.info(
                "rate_limit_denied",
                identifier=identifier,
                reset_at=decision.reset_at.isoformat(),
            )
        return decision

    async def _check_locked(
        self, identifier: str, policy: RateLimitPolicy, now: datetime
    ) -> RateLimitDecision:
        record = await self._store.get(identifier)
        if record is None or record.is_expired(policy, now):
            record = RateLimitRecord(identifier=identifier, window_start=now)

        reset_at = record.window_end(policy)
        if record.attempt_count >= policy.limit:
            return RateLimitDecision(
                allowed=False,
                limit=policy.limit,
                remaining_attempts=0,
                reset_at=reset_at,
            )

        record.attempt_count += 1
        await self._store.set(record)
        return RateLimitDecision(
            allowed=True,
            limit=policy.limit,
            remaining_attempts=policy.limit - record.attempt_count,
            reset_at=reset_at,
        )

    async def reset(self, identifier: str) -> None:
        """Forget all attempts recorded for ``identifier``."""
        async with self._lock_for(identifier):
            await self._store.delete(identifier)
