"""Configuration management using Pydantic Settings."""

from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_NOTIFY_URL = "https://notify.bugsnag.com/"


class Settings(BaseSettings):
    """Notifier settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SNAGNOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Bugsnag
    bugsnag_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("BUGSNAG_KEY", "SNAGNOTIFY_BUGSNAG_KEY"),
    )
    notify_url: str = DEFAULT_NOTIFY_URL
    release_stage: str = "production"

    # Transport
    timeout_seconds: Optional[float] = 10.0

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Upper-case the log level, falling back to INFO."""
        if v is None or str(v).strip() == "":
            return "INFO"
        return str(v).strip().upper()

    @field_validator("bugsnag_key", mode="before")
    @classmethod
    def blank_key_is_missing(cls, v: Any) -> Optional[str]:
        """Treat an empty BUGSNAG_KEY the same as an unset one."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("notify_url", mode="before")
    @classmethod
    def parse_notify_url(cls, v: Any) -> str:
        """Fall back to the public ingestion endpoint when blank."""
        if v is None or str(v).strip() == "":
            return DEFAULT_NOTIFY_URL
        return str(v).strip()


# Global settings instance
settings = Settings()
