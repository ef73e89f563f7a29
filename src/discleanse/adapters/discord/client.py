"""Typed Discord endpoints used by the wipe.

Only the operations needed to empty a guild are exposed. Payloads are
returned as the decoded JSON dictionaries; the core modules project them
into the models they need.
"""

from __future__ import annotations

from typing import Any

import structlog

from ...utils.async_helpers import RateLimiter
from ...utils.logging import LogEventNames
from .gateway import ApiError, DiscordGateway

log = structlog.get_logger()

MESSAGES_PAGE_SIZE = 100
BULK_DELETE_MIN = 2
BULK_DELETE_MAX = 100

# Discord JSON error codes
CANNOT_EXECUTE_ON_SYSTEM_MESSAGE = 50021
BULK_DELETE_TOO_OLD = 50034

DEFAULT_DELETE_INTERVAL = 1.0


class DiscordClient:
    """Discord REST operations for guild-wide deletion.

    Individual message deletes are paced to one per ``delete_interval``
    seconds, in addition to whatever throttling the gateway applies.

    Example:
        client = DiscordClient(gateway, delete_interval=1.0)
        channels = await client.get_guild_channels(guild_id)
    """

    def __init__(
        self,
        gateway: DiscordGateway,
        delete_interval: float = DEFAULT_DELETE_INTERVAL,
    ) -> None:
        """Initialize the client.

        Args:
            gateway: Gateway used for every call.
            delete_interval: Minimum seconds between individual deletes.
                Zero disables pacing.
        """
        self._gateway = gateway
        self._delete_interval = delete_interval
        self._delete_pacer = RateLimiter.every(delete_interval) if delete_interval > 0 else None

    @property
    def delete_interval(self) -> float:
        """Seconds between individual deletes."""
        return self._delete_interval

    # Guild endpoints

    async def get_guild(self, guild_id: str) -> dict[str, Any]:
        return await self._gateway.call("GET", f"/guilds/{guild_id}")

    async def get_guild_channels(self, guild_id: str) -> list[dict[str, Any]]:
        return await self._gateway.call("GET", f"/guilds/{guild_id}/channels") or []

    async def get_active_threads(self, guild_id: str) -> dict[str, Any]:
        return await self._gateway.call("GET", f"/guilds/{guild_id}/threads/active") or {}

    # Channel endpoints

    async def get_channel_messages(
        self,
        channel_id: str,
        before: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch one page of messages, newest first.

        Args:
            channel_id: Channel or thread id.
            before: Only return messages older than this message id.
        """
        params: dict[str, Any] = {"limit": MESSAGES_PAGE_SIZE}
        if before:
            params["before"] = before
        return (
            await self._gateway.call("GET", f"/channels/{channel_id}/messages", params=params)
            or []
        )

    async def delete_message(self, channel_id: str, message_id: str) -> bool:
        """Delete a single message.

        Returns:
            True if deleted, False if the platform refuses to delete it
            (system messages).

        Raises:
            ApiError: For any other failure.
        """
        if self._delete_pacer is not None:
            await self._delete_pacer.acquire()

        try:
            await self._gateway.call("DELETE", f"/channels/{channel_id}/messages/{message_id}")
        except ApiError as e:
            if e.code == CANNOT_EXECUTE_ON_SYSTEM_MESSAGE:
                log.info(
                    LogEventNames.MESSAGE_SKIPPED,
                    channel_id=channel_id,
                    message_id=message_id,
                    reason="system_message",
                )
                return False
            raise
        return True

    async def bulk_delete_messages(self, channel_id: str, message_ids: list[str]) -> None:
        """Delete 2 to 100 messages younger than 14 days in one call.

        Raises:
            ValueError: If the id count is outside 2-100.
            ApiError: If the API rejects the request.
        """
        if not BULK_DELETE_MIN <= len(message_ids) <= BULK_DELETE_MAX:
            raise ValueError(
                f"Bulk delete requires {BULK_DELETE_MIN}-{BULK_DELETE_MAX} message IDs, "
                f"got {len(message_ids)}"
            )
        await self._gateway.call(
            "POST",
            f"/channels/{channel_id}/messages/bulk-delete",
            body={"messages": message_ids},
        )

    async def delete_channel(self, channel_id: str) -> None:
        await self._gateway.call("DELETE", f"/channels/{channel_id}")

    # Thread endpoints

    async def get_archived_threads(
        self,
        channel_id: str,
        private: bool = False,
        before: str | None = None,
    ) -> dict[str, Any]:
        """List archived threads of a channel, most recently archived first.

        Args:
            channel_id: Parent channel id.
            private: List private instead of public threads.
            before: ISO8601 archive timestamp cursor.
        """
        visibility = "private" if private else "public"
        params = {"before": before} if before else None
        return (
            await self._gateway.call(
                "GET",
                f"/channels/{channel_id}/threads/archived/{visibility}",
                params=params,
            )
            or {}
        )

    async def unarchive_thread(self, thread_id: str) -> None:
        await self._gateway.call("PATCH", f"/channels/{thread_id}", body={"archived": False})
