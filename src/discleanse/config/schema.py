"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_BASE_URL = "https://discord.com/api/v10"


class RateLimitConfig(BaseModel):
    """Rate limit handling and request pacing."""

    safety_margin: float = Field(0.1, ge=0.0, le=5.0, description="Seconds added to every wait")
    max_retries: int = Field(50, ge=1, le=1000, description="429 retries before giving up")
    delete_interval: float = Field(
        1.0, ge=0.0, le=60.0, description="Seconds between individual deletes"
    )
    request_timeout: float = Field(30.0, ge=1.0, le=300.0)


class CleanseOptions(BaseModel):
    """Deletion ordering options."""

    defer_channels: list[str] = []

    @field_validator("defer_channels")
    @classmethod
    def normalize_names(cls, v: list[str]) -> list[str]:
        """Compare channel names case-insensitively, without a leading '#'."""
        return [name.strip().lstrip("#").lower() for name in v if name.strip()]


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "console"
    file: Path | None = None
    progress_every: int = Field(25, ge=1, description="Log a progress line every N deletes")


class CleanseConfig(BaseSettings):
    """Root configuration for discleanse.

    Reads ``DISCORD_TOKEN`` and ``DISCORD_GUILD_ID`` from the environment
    (or a ``.env`` file); nested sections use ``__`` as delimiter, e.g.
    ``RATE_LIMIT__DELETE_INTERVAL=0.5``.
    """

    discord_token: str = ""
    discord_guild_id: str = ""
    api_base_url: str = DEFAULT_API_BASE_URL
    rate_limit: RateLimitConfig = RateLimitConfig()
    cleanse: CleanseOptions = CleanseOptions()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("discord_token", "discord_guild_id", "api_base_url")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()

    @field_validator("api_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an absolute http(s) URL without a trailing slash."""
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"API base URL must be http(s): {v}")
        return v.rstrip("/")
