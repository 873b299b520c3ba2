from __future__ import annotations

from datetime import datetime, timezone

import aiosqlite
import structlog

from examforge.exceptions import StoreUnavailableError
from examforge.models.domain import RateLimitRecord

logger = structlog.get_logger()

_CREATE_RATE_LIMIT_RECORDS = """
CREATE TABLE IF NOT EXISTS rate_limit_records (
    identifier TEXT PRIMARY KEY,
    window_start TEXT NOT NULL,
    attempt_count INTEGER NOT NULL DEFAULT 0
)
"""

_CREATE_IDX_WINDOW_START = """
CREATE INDEX IF NOT EXISTS idx_rate_limit_window_start
ON rate_limit_records(window_start)
"""


def _serialize_dt(dt: datetime) -> str:
    # Normalized to UTC so lexical order matches chronological order.
    return dt.astimezone(timezone.utc).isoformat()


class SQLiteRateLimitStore:
    """Rate-limit record store backed by SQLite via aiosqlite.

    Safe for a single process only: atomicity of check-and-increment comes
    from the limiter's per-identifier locks, not from the database.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    @property
    def connection(self) -> aiosqlite.Connection:
        assert self._db is not None
        return self._db

    async def init_db(self) -> None:
        self._db = await aiosqlite.connect(self._db_path)
        await self._db.execute(_CREATE_RATE_LIMIT_RECORDS)
        await self._db.execute(_CREATE_IDX_WINDOW_START)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def get(self, identifier: str) -> RateLimitRecord | None:
        try:
            cursor = await self.connection.execute(
                "SELECT identifier, window_start, attempt_count "
                "FROM rate_limit_records WHERE identifier = ?",
                (identifier,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error("rate_limit_store_error", op="get", error=str(e))
            raise StoreUnavailableError() from e
        if not row:
            return None
        return RateLimitRecord(
            identifier=row[0],
            window_start=datetime.fromisoformat(row[1]),
            attempt_count=row[2],
        )

    async def set(self, record: RateLimitRecord) -> None:
        try:
            await self.connection.execute(
                """INSERT OR REPLACE INTO rate_limit_records
                (identifier, window_start, attempt_count)
                VALUES (?, ?, ?)""",
                (
                    record.identifier,
                    _serialize_dt(record.window_start),
                    record.attempt_count,
                ),
            )
            await self.connection.commit()
        except aiosqlite.Error as e:
            logger.error("rate_limit_store_error", op="set", error=str(e))
            raise StoreUnavailableError() from e

    async def delete(self, identifier: str) -> None:
        try:
            await self.connection.execute(
                "DELETE FROM rate_limit_records WHERE identifier = ?", (identifier,)
            )
            await self.connection.commit()
        except aiosqlite.Error as e:
            logger.error("rate_limit_store_error", op="delete", error=str(e))
            raise StoreUnavailableError() from e

    async def purge(self, before: datetime) -> int:
        try:
            cursor = await self.connection.execute(
                "DELETE FROM rate_limit_records WHERE window_start < ?",
                (_serialize_dt(before),),
            )
            await self.connection.commit()
        except aiosqlite.Error as e:
            logger.error("rate_limit_store_error", op="purge", error=str(e))
            raise StoreUnavailableError() from e
        return cursor.rowcount
