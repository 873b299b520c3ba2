from __future__ import annotations

import asyncio
from typing import Protocol

from examforge.models.domain import Quiz


class QuizRepository(Protocol):
    """Protocol for the quiz lookups the password guard depends on."""

    async def get(self, quiz_id: str) -> Quiz: ...

    async def save(self, quiz: Quiz) -> None: ...

    async def count(self) -> int: ...


class InMemoryQuizRepository:
    def __init__(self, quizzes: list[Quiz] | None = None) -> None:
        self._quizzes: dict[str, Quiz] = {q.id: q for q in quizzes or []}
        self._lock = asyncio.Lock()

    async def get(self, quiz_id: str) -> Quiz:
        quiz = self._quizzes.get(quiz_id)
        if not quiz:
            raise KeyError(f"Quiz {quiz_id} not found")
        return quiz

    async def save(self, quiz: Quiz) -> None:
        async with self._lock:
            self._quizzes[quiz.id] = quiz

    async def count(self) -> int:
        return len(self._quizzes)
