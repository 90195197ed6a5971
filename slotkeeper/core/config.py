# slotkeeper/core/config.py
import logging
import os
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


_PROJECT_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)

# Also the bound of the reviews.comment CHECK constraint
REVIEW_COMMENT_MAX_LENGTH = 1000

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = _PROJECT_ROOT / ".env"
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Runtime configuration, read from SLOTKEEPER_* environment variables."""

    environment: str = Field(default="development", description="deployment environment name")
    log_level: str = Field(default="INFO")

    database_url: str = Field(
        default="sqlite:///./slotkeeper.db",
        validation_alias=AliasChoices("SLOTKEEPER_DATABASE_URL", "DATABASE_URL"),
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="When set, provider schedule locks are also taken in Redis",
        validation_alias=AliasChoices("SLOTKEEPER_REDIS_URL", "REDIS_URL"),
    )

    # Scheduling rules
    scheduling_timezone: str = Field(
        default="UTC",
        description="Fallback timezone for providers without one on file",
    )
    min_booking_minutes: int = Field(default=15, ge=1)
    max_booking_hours: int = Field(default=24)
    upcoming_default_limit: int = Field(default=5, ge=1, le=50)
    review_comment_max_length: int = Field(
        default=REVIEW_COMMENT_MAX_LENGTH, ge=1, le=REVIEW_COMMENT_MAX_LENGTH
    )
    earnings_week_start: Literal["sunday", "monday"] = "sunday"

    # Concurrency
    provider_lock_wait_seconds: float = Field(default=10.0, gt=0)
    provider_lock_ttl_seconds: int = Field(default=30, ge=1)
    booking_create_max_attempts: int = Field(default=3, ge=1)

    cors_allowed_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )

    is_testing: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="SLOTKEEPER_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("max_booking_hours")
    @classmethod
    def _validate_max_booking_hours(cls, value: int) -> int:
        if value < 1 or value > 24:
            raise ValueError("max_booking_hours must be between 1 and 24")
        return value

    @field_validator("scheduling_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
