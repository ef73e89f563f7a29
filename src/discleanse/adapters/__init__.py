"""Concrete implementations of remote API access."""

from .discord import ApiError, DiscordClient, DiscordGateway

__all__ = [
    "ApiError",
    "DiscordClient",
    "DiscordGateway",
]
