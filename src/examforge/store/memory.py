from __future__ import annotations

from datetime import datetime

from examforge.models.domain import RateLimitRecord


class InMemoryRateLimitStore:
    """In-memory rate-limit record store for development and single-process use.

    Holds no lock of its own; the limiter serializes access per identifier.
    """

    def __init__(self) -> None:
        self._records: dict[str, RateLimitRecord] = {}

    async def get(self, identifier: str) -> RateLimitRecord | None:
        record = self._records.get(identifier)
        return record.model_copy() if record else None

    async def set(self, record: RateLimitRecord) -> None:
        self._records[record.identifier] = record.model_copy()

    async def delete(self, identifier: str) -> None:
        self._records.pop(identifier, None)

    async def purge(self, before: datetime) -> int:
        stale = [k for k, r in self._records.items() if r.window_start < before]
        for key in stale:
            del self._records[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._records)
