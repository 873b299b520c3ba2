from __future__ import annotations

from pydantic import BaseModel, Field


class VerifyPasswordRequest(BaseModel):
    # Optional here so a missing password is reported as 400 by the guard
    # rather than 422 by request validation.
    password: str | None = Field(default=None, max_length=256)
