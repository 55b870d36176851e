"""
Configuration and settings for the events API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

GOOGLE_CALENDAR_ID = (
    "889b58a5eb5476990c478facc6e406cf64ca2d7ff73473cfa4b24f435b895d00"
    "@group.calendar.google.com"
)


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")
    cors_allow_origins: str = Field(default="*")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "CUT_USE_IN_MEMORY_BACKENDS", "use_in_memory_backends"
        ),
    )

    # Event aggregation
    default_window_days: int = Field(default=30, ge=1)
    source_timeout_seconds: float = Field(default=10.0, gt=0)

    # Google Calendar
    google_calendar_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "GOOGLECALENDAR_API_KEY", "google_calendar_api_key"
        ),
    )
    google_calendar_id: str = Field(default=GOOGLE_CALENDAR_ID)
    google_calendar_org_name: str = Field(default="Connect Utah Today")

    # Mobilize
    mobilize_api_url: str = Field(default="https://api.mobilize.us/v1")
    mobilize_organization_id: Optional[int] = Field(default=None)
    mobilize_sponsor_allowlist: str = Field(default="")
    mobilize_max_pages: int = Field(default=10, ge=1)

    @property
    def mobilize_sponsors(self) -> list[str]:
        return _split_csv(self.mobilize_sponsor_allowlist)

    @property
    def cors_origins(self) -> list[str]:
        return _split_csv(self.cors_allow_origins)


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
