from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from redis import exceptions as redis_exceptions
from redis.asyncio import Redis

from examforge.exceptions import StoreUnavailableError
from examforge.models.domain import RateLimitDecision, RateLimitPolicy, RateLimitRecord

logger = structlog.get_logger()

# Fixed-window check-and-increment executed atomically by Redis.
# Returns {allowed, attempt_count, window_start_ms}. The hash expires at the
# end of its window, so stale identifiers age out without a sweep.
HIT_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])
local now_ms = tonumber(ARGV[3])

local start = tonumber(redis.call('HGET', key, 'window_start'))
local count = tonumber(redis.call('HGET', key, 'attempt_count'))
if start == nil or count == nil or now_ms >= start + window_ms then
    start = now_ms
    count = 0
end

if count >= limit then
    return {0, count, start}
end

count = count + 1
redis.call('HSET', key, 'window_start', start, 'attempt_count', count)
redis.call('PEXPIREAT', key, start + window_ms)
return {1, count, start}
"""

_STORE_ERRORS = (redis_exceptions.ConnectionError, redis_exceptions.TimeoutError)


def _to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _from_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


class RedisRateLimitStore:
    """Rate-limit store on Redis, safe across any number of service instances."""

    def __init__(self, client: Redis, key_prefix: str = "examforge:ratelimit:") -> None:
        self._client = client
        self._prefix = key_prefix
        self._hit_script = client.register_script(HIT_SCRIPT)

    def _key(self, identifier: str) -> str:
        return f"{self._prefix}{identifier}"

    async def ping(self) -> None:
        await self._client.ping()

    async def close(self) -> None:
        await self._client.aclose()

    async def hit(
        self, identifier: str, policy: RateLimitPolicy, now: datetime
    ) -> RateLimitDecision:
        try:
            allowed, count, start_ms = await self._hit_script(
                keys=[self._key(identifier)],
                args=[policy.limit, policy.window_seconds * 1000, _to_ms(now)],
            )
        except _STORE_ERRORS as e:
            logger.error("rate_limit_store_error", op="hit", error=str(e))
            raise StoreUnavailableError() from e

        reset_at = _from_ms(int(start_ms)) + policy.window
        return RateLimitDecision(
            allowed=bool(int(allowed)),
            limit=policy.limit,
            remaining_attempts=max(policy.limit - int(count), 0) if int(allowed) else 0,
            reset_at=reset_at,
        )

    async def get(self, identifier: str) -> RateLimitRecord | None:
        try:
            data = await self._client.hgetall(self._key(identifier))
        except _STORE_ERRORS as e:
            logger.error("rate_limit_store_error", op="get", error=str(e))
            raise StoreUnavailableError() from e
        if not data:
            return None
        data = {
            (k.decode() if isinstance(k, bytes) else k): int(v) for k, v in data.items()
        }
        return RateLimitRecord(
            identifier=identifier,
            window_start=_from_ms(data["window_start"]),
            attempt_count=data["attempt_count"],
        )

    async def set(self, record: RateLimitRecord) -> None:
        key = self._key(record.identifier)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.hset(
                    key,
                    mapping={
                        "window_start": _to_ms(record.window_start),
                        "attempt_count": record.attempt_count,
                    },
                )
                # Without a policy the window length is unknown; keep the record a day.
                pipe.pexpireat(key, _to_ms(record.window_start + timedelta(days=1)))
                await pipe.execute()
        except _STORE_ERRORS as e:
            logger.error("rate_limit_store_error", op="set", error=str(e))
            raise StoreUnavailableError() from e

    async def delete(self, identifier: str) -> None:
        try:
            await self._client.delete(self._key(identifier))
        except _STORE_ERRORS as e:
            logger.error("rate_limit_store_error", op="delete", error=str(e))
            raise StoreUnavailableError() from e

    async def purge(self, before: datetime) -> int:
        # Keys carry their own expiry.
        return 0
