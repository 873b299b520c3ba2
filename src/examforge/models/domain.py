from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from examforge.exceptions import (
    InvalidCredentialError,
    NotApplicableError,
    NotFoundError,
    RateLimitedError,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class SharingMode(str, Enum):
    URL = "url"
    PASSWORD = "password"


class CheckOutcome(str, Enum):
    ADMITTED_VALID = "admitted_valid"
    ADMITTED_INVALID = "admitted_invalid"
    DENIED_RATE_LIMITED = "denied_rate_limited"
    DENIED_NOT_APPLICABLE = "denied_not_applicable"


class NotApplicableReason(str, Enum):
    NOT_FOUND = "not_found"
    PASSWORD_NOT_REQUIRED = "password_not_required"


class Quiz(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str = ""
    status: QuizStatus = QuizStatus.DRAFT
    sharing_mode: SharingMode = SharingMode.URL
    password: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_accessible(self) -> bool:
        return self.status == QuizStatus.PUBLISHED

    @property
    def requires_password(self) -> bool:
        return self.sharing_mode == SharingMode.PASSWORD and bool(self.password)


class RateLimitPolicy(BaseModel):
    """Attempts allowed per fixed window, supplied by the caller on every check."""

    model_config = ConfigDict(frozen=True)

    limit: int = Field(..., ge=0)
    window_seconds: int = Field(..., gt=0)

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)


class RateLimitRecord(BaseModel):
    identifier: str
    window_start: datetime
    attempt_count: int = 0

    def window_end(self, policy: RateLimitPolicy) -> datetime:
        return self.window_start + policy.window

    def is_expired(self, policy: RateLimitPolicy, now: datetime) -> bool:
        return now >= self.window_end(policy)


class RateLimitDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    limit: int
    remaining_attempts: int
    reset_at: datetime


class CredentialCheckResult(BaseModel):
    outcome: CheckOutcome
    limit: int | None = None
    remaining_attempts: int | None = None
    reset_at: datetime | None = None
    reason: NotApplicableReason | None = None

    @property
    def is_valid(self) -> bool:
        return self.outcome == CheckOutcome.ADMITTED_VALID

    def raise_for_outcome(self) -> None:
        """Raise the client-facing error for anything but a valid password."""
        match self.outcome:
            case CheckOutcome.ADMITTED_VALID:
                return
            case CheckOutcome.ADMITTED_INVALID:
                raise InvalidCredentialError(remaining_attempts=self.remaining_attempts or 0)
            case CheckOutcome.DENIED_RATE_LIMITED:
                assert self.reset_at is not None
                raise RateLimitedError(reset_at=self.reset_at)
            case CheckOutcome.DENIED_NOT_APPLICABLE:
                if self.reason == NotApplicableReason.PASSWORD_NOT_REQUIRED:
                    raise NotApplicableError()
                raise NotFoundError()
