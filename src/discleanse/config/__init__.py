"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    CleanseConfig,
    CleanseOptions,
    LoggingConfig,
    RateLimitConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "CleanseConfig",
    # Sections
    "RateLimitConfig",
    "CleanseOptions",
    "LoggingConfig",
]
