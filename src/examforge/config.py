from __future__ import annotations

from enum import Enum

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

from examforge.models.domain import RateLimitPolicy


class StorageType(str, Enum):
    MEMORY = "memory"
    SQLITE = "sqlite"
    REDIS = "redis"


class FailMode(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


PASSWORD_ATTEMPT = "password_attempt"
RATE_LIMITED_OPERATIONS = (
    PASSWORD_ATTEMPT,
    "public_quiz_access",
    "public_quiz_submission",
)


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Storage
    storage_type: StorageType = StorageType.MEMORY
    storage_sqlite_path: str = "./examforge.db"
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "examforge:ratelimit:"
    store_connect_attempts: int = Field(default=3, ge=1)

    # Rate limit policies, one per guarded operation
    password_attempt_limit: int = Field(default=5, ge=0)
    password_attempt_window_seconds: int = Field(default=900, gt=0)
    public_quiz_access_limit: int = Field(default=50, ge=0)
    public_quiz_access_window_seconds: int = Field(default=900, gt=0)
    public_quiz_submission_limit: int = Field(default=10, ge=0)
    public_quiz_submission_window_seconds: int = Field(default=3600, gt=0)
    rate_limit_scope_by_client: bool = False
    rate_limit_fail_mode: FailMode = FailMode.CLOSED
    rate_limit_sweep_interval_seconds: int = Field(default=300, ge=0)

    # Quizzes
    quiz_seed_path: str = ""

    # App
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    # Peers allowed to set X-Forwarded-For; anyone else is keyed by socket address.
    forwarded_allow_ips: str = "127.0.0.1"
    log_level: str = "INFO"

    @field_validator("storage_type", "rate_limit_fail_mode", mode="before")
    @classmethod
    def normalize_enum(cls, v: str) -> str:
        if isinstance(v, str):
            return v.lower()
        return v

    @property
    def rate_limit_policies(self) -> dict[str, RateLimitPolicy]:
        return {
            name: RateLimitPolicy(
                limit=getattr(self, f"{name}_limit"),
                window_seconds=getattr(self, f"{name}_window_seconds"),
            )
            for name in RATE_LIMITED_OPERATIONS
        }

    @property
    def password_attempt_policy(self) -> RateLimitPolicy:
        return self.rate_limit_policies[PASSWORD_ATTEMPT]


def get_settings() -> Settings:
    return Settings()
