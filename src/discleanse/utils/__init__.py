"""Utility functions and helpers.

- async_helpers: error hierarchy, transport retry, rate limiting
- logging: Structured logging with secret sanitization
- security: Secret redaction, log sanitization
"""

from discleanse.utils.async_helpers import (
    CleanseError,
    ConfigError,
    RateLimiter,
    RateLimitExhausted,
    api_retry,
)
from discleanse.utils.logging import (
    LogFormat,
    LogLevel,
    bind_context,
    configure_logging,
    unbind_context,
)
from discleanse.utils.security import (
    RedactionError,
    SecretRedactor,
    SecurityError,
)

__all__ = [
    # Errors
    "CleanseError",
    "ConfigError",
    # Logging
    "LogFormat",
    "LogLevel",
    "RateLimitExhausted",
    "RateLimiter",
    # Security
    "RedactionError",
    "SecretRedactor",
    "SecurityError",
    "api_retry",
    "bind_context",
    "configure_logging",
    "unbind_context",
]
