"""Configuration management using Pydantic Settings."""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DecoderSettings(BaseSettings):
    """Decoder settings loaded from ``DAMLMODEL_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="DAMLMODEL_", extra="ignore")

    # Logging Configuration
    log_level: str = Field(default="WARNING", description="Logging level")
    log_format: str = Field(default="console", description="Log renderer (json or console)")

    # Decode Configuration
    max_workers: int = Field(default=1, ge=1, description="Worker threads used to walk modules (1 walks inline)")
    deadline_seconds: Optional[float] = Field(
        default=None, gt=0, description="Overall decode deadline in seconds, checked between modules"
    )
    verify_hash: bool = Field(default=False, description="Verify the payload SHA-256 against the archive hash")

    # Resource Limits
    max_archive_bytes: int = Field(default=256 * 1024 * 1024, ge=1, description="Largest archive accepted in bytes")
    max_modules: int = Field(default=10_000, ge=1, description="Most modules walked in one package")
    max_expression_depth: int = Field(default=256, ge=1, description="Deepest key expression interpreted")

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return value


@lru_cache(maxsize=1)
def get_settings() -> DecoderSettings:
    """Settings read from the environment once per process."""
    return DecoderSettings()


__all__ = ["DecoderSettings", "get_settings"]
