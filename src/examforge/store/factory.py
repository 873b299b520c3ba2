from __future__ import annotations

from typing import Any

import structlog
from redis import exceptions as redis_exceptions
from redis.asyncio import Redis
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from examforge.config import Settings, StorageType
from examforge.quizzes.repository import InMemoryQuizRepository
from examforge.quizzes.sqlite_repository import SQLiteQuizRepository
from examforge.store.memory import InMemoryRateLimitStore
from examforge.store.redis_store import RedisRateLimitStore
from examforge.store.sqlite_store import SQLiteRateLimitStore

logger = structlog.get_logger()

_CONNECT_ERRORS = (
    ConnectionError,
    TimeoutError,
    OSError,
    redis_exceptions.ConnectionError,
    redis_exceptions.TimeoutError,
)


def _connect_with_retry(max_attempts: int, min_wait: int = 1, max_wait: int = 8):
    """Retry store connection at startup. Request-time checks are never retried."""
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(_CONNECT_ERRORS),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "store_connect_retry",
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else "unknown",
        ),
    )


async def create_stores(settings: Settings) -> dict[str, Any]:
    """Create the quiz repository and rate-limit store based on storage_type.

    Returns dict with keys: quiz_repository, rate_limit_store, and optional cleanup coroutine.
    """
    connect = _connect_with_retry(settings.store_connect_attempts)

    if settings.storage_type == StorageType.SQLITE:
        rate_limit_store = SQLiteRateLimitStore(settings.storage_sqlite_path)
        await connect(rate_limit_store.init_db)()

        quiz_repository = SQLiteQuizRepository(rate_limit_store.connection)
        await quiz_repository.init_db()

        return {
            "quiz_repository": quiz_repository,
            "rate_limit_store": rate_limit_store,
            "cleanup": rate_limit_store.close,
        }

    if settings.storage_type == StorageType.REDIS:
        client = Redis.from_url(settings.redis_url, decode_responses=True)
        rate_limit_store = RedisRateLimitStore(client, key_prefix=settings.redis_key_prefix)
        await connect(rate_limit_store.ping)()

        # Quizzes have no Redis representation; they are seeded into memory.
        return {
            "quiz_repository": InMemoryQuizRepository(),
            "rate_limit_store": rate_limit_store,
            "cleanup": rate_limit_store.close,
        }

    return {
        "quiz_repository": InMemoryQuizRepository(),
        "rate_limit_store": InMemoryRateLimitStore(),
        "cleanup": None,
    }
