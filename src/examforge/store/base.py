from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from examforge.models.domain import RateLimitDecision, RateLimitPolicy, RateLimitRecord


class RateLimitStore(Protocol):
    """Protocol for rate-limit record persistence, keyed by identifier."""

    async def get(self, identifier: str) -> RateLimitRecord | None: ...

    async def set(self, record: RateLimitRecord) -> None: ...

    async def delete(self, identifier: str) -> None: ...

    async def purge(self, before: datetime) -> int:
        """Drop records whose window started before ``before``. Returns count removed."""
        ...


@runtime_checkable
class AtomicRateLimitStore(Protocol):
    """A store that runs the whole fixed-window check server-side in one step."""

    async def hit(
        self, identifier: str, policy: RateLimitPolicy, now: datetime
    ) -> RateLimitDecision: ...
