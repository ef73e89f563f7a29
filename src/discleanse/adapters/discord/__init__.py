"""Discord REST API adapter."""

from .client import (
    BULK_DELETE_MAX,
    BULK_DELETE_MIN,
    BULK_DELETE_TOO_OLD,
    CANNOT_EXECUTE_ON_SYSTEM_MESSAGE,
    MESSAGES_PAGE_SIZE,
    DiscordClient,
)
from .gateway import ApiError, DiscordGateway

__all__ = [
    "BULK_DELETE_MAX",
    "BULK_DELETE_MIN",
    "BULK_DELETE_TOO_OLD",
    "CANNOT_EXECUTE_ON_SYSTEM_MESSAGE",
    "MESSAGES_PAGE_SIZE",
    "ApiError",
    "DiscordClient",
    "DiscordGateway",
]
