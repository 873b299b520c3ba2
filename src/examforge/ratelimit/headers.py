from __future__ import annotations

import math
from datetime import datetime, timezone


def rate_limit_headers(
    limit: int,
    remaining: int,
    reset_at: datetime,
    *,
    denied: bool = False,
    now: datetime | None = None,
) -> dict[str, str]:
    """Standard X-RateLimit-* headers, plus Retry-After when the attempt was denied."""
    headers = {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(max(remaining, 0)),
        "X-RateLimit-Reset": reset_at.isoformat(),
    }
    if denied:
        now = now or datetime.now(timezone.utc)
        retry_after = max(math.ceil((reset_at - now).total_seconds()), 0)
        headers["Retry-After"] = str(retry_after)
    return headers
