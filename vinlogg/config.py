"""
Configuration and settings for the Vinlogg backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from models.gemini import DEFAULT_TAG_MODEL, DEFAULT_VISION_MODEL


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Database (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # Supabase auth
    supabase_url: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)

    # S3-compatible storage for user photos
    storage_endpoint: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_bucket: str = Field(default="wine-images")
    storage_public_base_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None)
    vision_model: str = Field(default=DEFAULT_VISION_MODEL)
    tag_model: str = Field(default=DEFAULT_TAG_MODEL)

    # Systembolaget product search
    systembolaget_api_key: Optional[str] = Field(default=None)
    retailer_timeout_seconds: float = Field(default=10.0, gt=0)

    # Service worker cache generation, bump to invalidate browser caches
    cache_version: str = Field(default="v1")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    def public_storage_base_url(self) -> Optional[str]:
        if self.storage_public_base_url:
            return self.storage_public_base_url.rstrip("/")
        if self.supabase_url:
            return (
                f"{self.supabase_url.rstrip('/')}/storage/v1/object/public/"
                f"{self.storage_bucket}"
            )
        return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
