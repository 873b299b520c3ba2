from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class VerifyPasswordResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    storage: str
    uptime_seconds: float
    metrics: dict[str, Any]
