from __future__ import annotations

import asyncio
import time
from collections import defaultdict

from examforge.models.domain import CheckOutcome


class GuardMetrics:
    """In-memory counters of password check outcomes."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)
        self._lock = asyncio.Lock()
        self._start_time = time.monotonic()

    async def record_outcome(self, outcome: CheckOutcome) -> None:
        async with self._lock:
            self._counters["checks_total"] += 1
            self._counters[f"checks_{outcome.value}"] += 1

    async def get_stats(self) -> dict[str, int | float]:
        async with self._lock:
            stats = dict(self._counters)
        stats["uptime_seconds"] = round(time.monotonic() - self._start_time, 1)
        return stats
