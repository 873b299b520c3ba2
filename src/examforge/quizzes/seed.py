from __future__ import annotations

import json
from pathlib import Path

import structlog
from pydantic import TypeAdapter

from examforge.models.domain import Quiz
from examforge.quizzes.repository import QuizRepository

logger = structlog.get_logger()

_QUIZ_LIST = TypeAdapter(list[Quiz])


def load_quizzes(path: str | Path) -> list[Quiz]:
    """Parse a JSON array of quiz objects."""
    return _QUIZ_LIST.validate_python(json.loads(Path(path).read_text(encoding="utf-8")))


async def seed_quizzes(repository: QuizRepository, path: str | Path) -> int:
    quizzes = load_quizzes(path)
    for quiz in quizzes:
        await repository.save(quiz)
    logger.info("quizzes_seeded", count=len(quizzes), path=str(path))
    return len(quizzes)
