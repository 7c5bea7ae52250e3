"""
Configuration and settings for the church CMS backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Record store. Any SQLAlchemy URL; unset means in-memory.
    database_url: Optional[str] = Field(default=None)

    # S3 object storage
    aws_region: str = Field(default="us-east-1")
    aws_s3_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    s3_endpoint_url: Optional[str] = Field(default=None)
    cloudfront_url: str = Field(default="")

    # Blob cleanup queue (Redis)
    redis_url: Optional[str] = Field(default=None)
    cleanup_queue_key: str = Field(default="church_cms:blob_cleanup")
    cleanup_max_attempts: int = Field(default=5, ge=1)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000, ge=1, le=65535)
    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
