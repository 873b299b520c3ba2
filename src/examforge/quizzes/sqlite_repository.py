from __future__ import annotations

from datetime import datetime

import aiosqlite
import structlog

from examforge.exceptions import StoreUnavailableError
from examforge.models.domain import Quiz, QuizStatus, SharingMode

logger = structlog.get_logger()

_CREATE_QUIZZES = """
CREATE TABLE IF NOT EXISTS quizzes (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'draft',
    sharing_mode TEXT NOT NULL DEFAULT 'url',
    password TEXT,
    created_at TEXT NOT NULL
)
"""


def _row_to_quiz(row: aiosqlite.Row) -> Quiz:
    return Quiz(
        id=row[0],
        title=row[1],
        status=QuizStatus(row[2]),
        sharing_mode=SharingMode(row[3]),
        password=row[4],
        created_at=datetime.fromisoformat(row[5]),
    )


class SQLiteQuizRepository:
    """Quiz repository sharing the rate-limit store's SQLite connection."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        await self._db.execute(_CREATE_QUIZZES)
        await self._db.commit()

    async def get(self, quiz_id: str) -> Quiz:
        try:
            cursor = await self._db.execute(
                "SELECT id, title, status, sharing_mode, password, created_at "
                "FROM quizzes WHERE id = ?",
                (quiz_id,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error("quiz_store_error", op="get", error=str(e))
            raise StoreUnavailableError() from e
        if not row:
            raise KeyError(f"Quiz {quiz_id} not found")
        return _row_to_quiz(row)

    async def save(self, quiz: Quiz) -> None:
        await self._db.execute(
            """INSERT OR REPLACE INTO quizzes
            (id, title, status, sharing_mode, password, created_at)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (
                quiz.id,
                quiz.title,
                quiz.status.value,
                quiz.sharing_mode.value,
                quiz.password,
                quiz.created_at.isoformat(),
            ),
        )
        await self._db.commit()

    async def count(self) -> int:
        cursor = await self._db.execute("SELECT COUNT(*) FROM quizzes")
        row = await cursor.fetchone()
        return row[0] if row else 0
