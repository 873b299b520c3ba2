from __future__ import annotations

from datetime import datetime
from typing import Any


class GuardError(Exception):
    """Base for every error the password guard reports to a client."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.headers: dict[str, str] = {}

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(GuardError):
    status_code = 400
    message = "Password is required"


class NotFoundError(GuardError):
    status_code = 404
    message = "Quiz not found"


class NotApplicableError(GuardError):
    status_code = 400
    message = "This quiz does not require a password"


class InvalidCredentialError(GuardError):
    status_code = 401
    message = "Incorrect password"

    def __init__(self, remaining_attempts: int, message: str | None = None) -> None:
        super().__init__(message)
        self.remaining_attempts = remaining_attempts

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, "remainingAttempts": self.remaining_attempts}


class RateLimitedError(GuardError):
    status_code = 429
    message = "Too many attempts"

    def __init__(self, reset_at: datetime, message: str | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, "resetAt": self.reset_at.isoformat()}


class StoreUnavailableError(GuardError):
    """The rate-limit record store could not be reached."""

    status_code = 503
    message = "Rate limit service unavailable"
