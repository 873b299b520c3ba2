from __future__ import annotations

import hmac

import structlog

from examforge.exceptions import ValidationError
from examforge.models.domain import (
    CheckOutcome,
    CredentialCheckResult,
    NotApplicableReason,
    RateLimitPolicy,
)
from examforge.quizzes.repository import QuizRepository
from examforge.ratelimit.limiter import RateLimiter

logger = structlog.get_logger()


def secrets_match(submitted: str, stored: str) -> bool:
    """Compare two secrets in time independent of where they first differ."""
    return hmac.compare_digest(submitted.encode("utf-8"), stored.encode("utf-8"))


class CredentialVerifier:
    """Checks a submitted quiz password behind the attempt limiter.

    Applicability (quiz exists, is published, is password-shared) is settled
    before any attempt is counted, so probing unknown quiz ids never touches
    limiter state. Every call that reaches the limiter consumes one attempt,
    whether or not the password turns out to be right.
    """

    def __init__(
        self,
        quiz_repository: QuizRepository,
        rate_limiter: RateLimiter,
        policy: RateLimitPolicy,
        *,
        scope_by_client: bool = False,
    ) -> None:
        self._quizzes = quiz_repository
        self._limiter = rate_limiter
        self._policy = policy
        self._scope_by_client = scope_by_client

    @property
    def policy(self) -> RateLimitPolicy:
        return self._policy

    def identifier_for(self, quiz_id: str, client_id: str | None = None) -> str:
        if self._scope_by_client:
            return f"verify:{quiz_id}:{client_id or 'unknown'}"
        return f"verify:{quiz_id}"

    async def verify(
        self,
        quiz_id: str,
        submitted_secret: str | None,
        client_id: str | None = None,
    ) -> CredentialCheckResult:
        if not submitted_secret:
            raise ValidationError()

        try:
            quiz = await self._quizzes.get(quiz_id)
        except KeyError:
            quiz = None
        if quiz is None or not quiz.is_accessible:
            return CredentialCheckResult(
                outcome=CheckOutcome.DENIED_NOT_APPLICABLE,
                reason=NotApplicableReason.NOT_FOUND,
            )
        if not quiz.requires_password:
            return CredentialCheckResult(
                outcome=CheckOutcome.DENIED_NOT_APPLICABLE,
                reason=NotApplicableReason.PASSWORD_NOT_REQUIRED,
            )

        decision = await self._limiter.check(
            self.identifier_for(quiz_id, client_id), self._policy
        )
        if not decision.allowed:
            return CredentialCheckResult(
                outcome=CheckOutcome.DENIED_RATE_LIMITED,
                limit=decision.limit,
                remaining_attempts=0,
                reset_at=decision.reset_at,
            )

        assert quiz.password is not None
        outcome = (
            CheckOutcome.ADMITTED_VALID
            if secrets_match(submitted_secret, quiz.password)
            else CheckOutcome.ADMITTED_INVALID
        )
        logger.info(
            "password_checked",
            quiz_id=quiz_id,
            outcome=outcome.value,
            remaining_attempts=decision.remaining_attempts,
        )
        return CredentialCheckResult(
            outcome=outcome,
            limit=decision.limit,
            remaining_attempts=decision.remaining_attempts,
            reset_at=decision.reset_at,
        )
