"""
Settings for the image upload worker.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkerSettings(BaseSettings):
    """Environment-backed settings for the blob proxy."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    log_level: str = Field(default="INFO")

    # S3-compatible storage (Cloudflare R2)
    r2_bucket: Optional[str] = Field(default=None)
    r2_endpoint: Optional[str] = Field(default=None)
    r2_region: str = Field(default="auto")
    r2_access_key_id: Optional[str] = Field(default=None)
    r2_secret_access_key: Optional[str] = Field(default=None)

    # Base of the URLs handed back after an upload.
    public_base_url: str = Field(default="https://cut-images-worker.cutproject.workers.dev")

    # Development toggles
    use_in_memory_storage: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_worker_settings() -> WorkerSettings:
    """Return cached settings instance."""
    return WorkerSettings()
