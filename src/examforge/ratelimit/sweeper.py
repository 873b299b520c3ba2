from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import structlog

from examforge.exceptions import StoreUnavailableError
from examforge.store.base import RateLimitStore

logger = structlog.get_logger()


class RateLimitSweeper:
    """Periodically drops records whose window ended long ago.

    Only bounds memory across many distinct identifiers; the limiter resets
    expired records lazily on its own.
    """

    def __init__(
        self,
        store: RateLimitStore,
        *,
        max_window_seconds: int,
        interval_seconds: float,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._store = store
        self._max_window = timedelta(seconds=max_window_seconds)
        self._interval = interval_seconds
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    async def sweep_once(self) -> int:
        cutoff = self._clock() - self._max_window
        removed = await self._store.purge(cutoff)
        if removed:
            logger.info("rate_limit_records_purged", removed=removed)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep_once()
            except StoreUnavailableError:
                logger.warning("rate_limit_sweep_skipped")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
