"""Structured logging configuration with secret sanitization.

This module configures structlog on top of the standard library logger:
- Configurable log levels and output formats (JSON/console)
- Automatic secret sanitization in log output
- Context injection (guild, phase, container) for correlation
- All output goes to stderr, optionally mirrored to a file
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from enum import StrEnum
from pathlib import Path
from typing import Any, cast

import structlog

from discleanse.utils.security import SecretRedactor


class LogFormat(StrEnum):
    """Log output format options."""

    JSON = "json"
    CONSOLE = "console"


class LogLevel(StrEnum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_redactor: SecretRedactor | None = None


def _get_redactor() -> SecretRedactor:
    """Get or create the global secret redactor."""
    global _redactor
    if _redactor is None:
        _redactor = SecretRedactor(placeholder="[REDACTED]")
    return _redactor


def sanitize_log_value(value: Any) -> Any:
    """Recursively sanitize secrets from log values.

    Args:
        value: Value to sanitize (can be nested dict/list/str)

    Returns:
        Sanitized value with secrets redacted
    """
    redactor = _get_redactor()

    if isinstance(value, str):
        return redactor.redact(value)
    elif isinstance(value, dict):
        return {k: sanitize_log_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return type(value)(sanitize_log_value(v) for v in value)
    else:
        return value


def secret_sanitizer(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor to sanitize secrets from log entries."""
    result = sanitize_log_value(event_dict)
    return cast(MutableMapping[str, Any], result)


def add_context_processor(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Add the service name and version to every log entry."""
    event_dict["service"] = "discleanse"

    try:
        from discleanse._version import __version__

        event_dict["version"] = __version__
    except ImportError:
        pass

    return event_dict


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    log_format: LogFormat | str = LogFormat.CONSOLE,
    file_path: Path | str | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        file_path: Optional path of a log file mirroring stderr output

    Example:
        configure_logging(level="DEBUG", log_format="console")
    """
    if isinstance(level, str):
        level = LogLevel(level.upper())
    if isinstance(log_format, str):
        log_format = LogFormat(log_format.lower())

    numeric_level = getattr(logging, level.value)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_context_processor,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        secret_sanitizer,
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == LogFormat.JSON:
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(), exception_formatter=structlog.dev.plain_traceback
            )
        )

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    handlers.append(console_handler)

    if file_path:
        try:
            file_path = Path(file_path)
            file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(file_path)
            file_handler.setLevel(numeric_level)
            handlers.append(file_handler)
        except OSError as e:
            # Continue with console output only
            console_logger = logging.getLogger("discleanse.logging")
            console_logger.warning(f"Could not create log file {file_path}: {e}")

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=handlers,
        force=True,
    )

    # httpx logs every request at INFO, which would duplicate the gateway's own events
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))


def bind_context(**kwargs: Any) -> None:
    """Bind contextual variables for all subsequent log calls.

    Example:
        bind_context(guild_id="1234", phase="bulk")
        log.info("bulk_delete_issued")  # Includes guild_id and phase
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove contextual variables."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogEventNames:
    """Standard log event names for consistency."""

    # Run lifecycle
    RUN_STARTING = "run_starting"
    RUN_COMPLETE = "run_complete"
    RUN_FAILED = "run_failed"
    GUILD_RESOLVED = "guild_resolved"

    # Enumeration
    CHANNELS_LISTED = "channels_listed"
    THREADS_LISTED = "threads_listed"
    THREAD_LISTING_FAILED = "thread_listing_failed"
    THREAD_UNARCHIVE_FAILED = "thread_unarchive_failed"

    # Classification
    CONTAINER_CLASSIFIED = "container_classified"

    # Deletion
    PHASE_STARTED = "phase_started"
    CONTAINER_STARTED = "container_started"
    CONTAINER_FINISHED = "container_finished"
    DELETION_PROGRESS = "deletion_progress"
    BULK_DELETE_ISSUED = "bulk_delete_issued"
    BULK_DELETE_TOO_OLD = "bulk_delete_too_old"
    MESSAGE_SKIPPED = "message_skipped"
    CHANNEL_DELETED = "channel_deleted"

    # Rate limiting
    RATE_LIMIT_HIT = "rate_limit_hit"
    RATE_LIMIT_EXHAUSTED = "rate_limit_exhausted"
    RATE_LIMIT_BUDGET_DEPLETED = "rate_limit_budget_depleted"
