from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from examforge.models.domain import Quiz, QuizStatus, RateLimitPolicy, SharingMode


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


SAMPLE_QUIZZES = [
    Quiz(
        id="quiz-password",
        title="Chemistry midterm",
        status=QuizStatus.PUBLISHED,
        sharing_mode=SharingMode.PASSWORD,
        password="secret123",
    ),
    Quiz(
        id="quiz-url",
        title="Open practice quiz",
        status=QuizStatus.PUBLISHED,
        sharing_mode=SharingMode.URL,
    ),
    Quiz(
        id="quiz-draft",
        title="Unfinished quiz",
        status=QuizStatus.DRAFT,
        sharing_mode=SharingMode.PASSWORD,
        password="draft-pass",
    ),
    Quiz(
        id="quiz-archived",
        title="Last year's final",
        status=QuizStatus.ARCHIVED,
        sharing_mode=SharingMode.PASSWORD,
        password="old-pass",
    ),
    Quiz(
        id="quiz-password-missing",
        title="Password mode without password",
        status=QuizStatus.PUBLISHED,
        sharing_mode=SharingMode.PASSWORD,
        password=None,
    ),
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def live_clock() -> FakeClock:
    """Starts at the real time, for backends that expire keys on their own clock."""
    return FakeClock(datetime.now(timezone.utc))


@pytest.fixture
def policy() -> RateLimitPolicy:
    return RateLimitPolicy(limit=3, window_seconds=60)


@pytest.fixture
def quizzes() -> list[Quiz]:
    return [q.model_copy() for q in SAMPLE_QUIZZES]


@pytest.fixture
def seed_file(tmp_path, quizzes: list[Quiz]):
    path = tmp_path / "quizzes.json"
    path.write_text(json.dumps([q.model_dump(mode="json") for q in quizzes]))
    return path


@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch, seed_file) -> None:
    """Set environment variables for testing."""
    monkeypatch.setenv("STORAGE_TYPE", "memory")
    monkeypatch.setenv("PASSWORD_ATTEMPT_LIMIT", "3")
    monkeypatch.setenv("PASSWORD_ATTEMPT_WINDOW_SECONDS", "60")
    monkeypatch.setenv("RATE_LIMIT_SCOPE_BY_CLIENT", "false")
    monkeypatch.setenv("RATE_LIMIT_FAIL_MODE", "closed")
    monkeypatch.setenv("RATE_LIMIT_SWEEP_INTERVAL_SECONDS", "0")
    monkeypatch.setenv("QUIZ_SEED_PATH", str(seed_file))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


@pytest.fixture
async def app():
    from examforge.app import create_app

    yield create_app()


@pytest.fixture
async def client(app) -> AsyncClient:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with LifespanManager(app):
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
