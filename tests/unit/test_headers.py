from __future__ import annotations

from datetime import timedelta

from examforge.ratelimit.headers import rate_limit_headers


def test_headers_when_admitted(clock) -> None:
    reset_at = clock.now + timedelta(seconds=60)
    headers = rate_limit_headers(5, 3, reset_at)
    assert headers == {
        "X-RateLimit-Limit": "5",
        "X-RateLimit-Remaining": "3",
        "X-RateLimit-Reset": reset_at.isoformat(),
    }


def test_headers_when_denied_include_retry_after(clock) -> None:
    reset_at = clock.now + timedelta(seconds=42.3)
    headers = rate_limit_headers(5, 0, reset_at, denied=True, now=clock.now)
    assert headers["X-RateLimit-Remaining"] == "0"
    assert headers["Retry-After"] == "43"


def test_retry_after_never_negative(clock) -> None:
    headers = rate_limit_headers(5, 0, clock.now - timedelta(seconds=5), denied=True, now=clock.now)
    assert headers["Retry-After"] == "0"
