from __future__ import annotations

from unittest.mock import AsyncMock

import aiosqlite
import pytest

from examforge.exceptions import StoreUnavailableError
from examforge.models.domain import Quiz, QuizStatus, SharingMode
from examforge.quizzes.repository import InMemoryQuizRepository
from examforge.quizzes.seed import load_quizzes, seed_quizzes
from examforge.quizzes.sqlite_repository import SQLiteQuizRepository
from examforge.store.sqlite_store import SQLiteRateLimitStore


@pytest.fixture
async def sqlite_repository(tmp_path) -> SQLiteQuizRepository:
    store = SQLiteRateLimitStore(str(tmp_path / "test.db"))
    await store.init_db()
    repository = SQLiteQuizRepository(store.connection)
    await repository.init_db()
    yield repository
    await store.close()


@pytest.mark.asyncio
async def test_in_memory_get_nonexistent() -> None:
    with pytest.raises(KeyError, match="not found"):
        await InMemoryQuizRepository().get("missing")


@pytest.mark.asyncio
async def test_in_memory_save_and_get() -> None:
    repository = InMemoryQuizRepository()
    quiz = Quiz(title="Vocabulary", status=QuizStatus.PUBLISHED)
    await repository.save(quiz)
    assert (await repository.get(quiz.id)).title == "Vocabulary"
    assert await repository.count() == 1


@pytest.mark.asyncio
async def test_sqlite_save_and_get(sqlite_repository: SQLiteQuizRepository) -> None:
    quiz = Quiz(
        title="Kanji N3",
        status=QuizStatus.PUBLISHED,
        sharing_mode=SharingMode.PASSWORD,
        password="pw",
    )
    await sqlite_repository.save(quiz)
    retrieved = await sqlite_repository.get(quiz.id)
    assert retrieved.title == "Kanji N3"
    assert retrieved.status == QuizStatus.PUBLISHED
    assert retrieved.sharing_mode == SharingMode.PASSWORD
    assert retrieved.password == "pw"
    assert retrieved.requires_password


@pytest.mark.asyncio
async def test_sqlite_get_nonexistent(sqlite_repository: SQLiteQuizRepository) -> None:
    with pytest.raises(KeyError, match="not found"):
        await sqlite_repository.get("missing")


@pytest.mark.asyncio
async def test_sqlite_get_wraps_database_error(
    sqlite_repository: SQLiteQuizRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        sqlite_repository._db,
        "execute",
        AsyncMock(side_effect=aiosqlite.OperationalError("database is locked")),
    )
    with pytest.raises(StoreUnavailableError):
        await sqlite_repository.get("quiz-password")


@pytest.mark.asyncio
async def test_sqlite_count(sqlite_repository: SQLiteQuizRepository) -> None:
    assert await sqlite_repository.count() == 0
    await sqlite_repository.save(Quiz(title="a"))
    assert await sqlite_repository.count() == 1


def test_load_quizzes(seed_file) -> None:
    quizzes = load_quizzes(seed_file)
    by_id = {q.id: q for q in quizzes}
    assert by_id["quiz-password"].requires_password
    assert not by_id["quiz-url"].requires_password
    assert not by_id["quiz-draft"].is_accessible


@pytest.mark.asyncio
async def test_seed_quizzes(seed_file, quizzes) -> None:
    repository = InMemoryQuizRepository()
    count = await seed_quizzes(repository, seed_file)
    assert count == len(quizzes)
    assert await repository.count() == len(quizzes)
