"""Abstract interface for the remote chat API."""

from typing import Any, Protocol


class GuildApi(Protocol):
    """The remote operations the wipe depends on.

    ``DiscordClient`` is the production implementation; the core modules
    only rely on this protocol so they can be driven by fakes in tests.
    """

    @property
    def delete_interval(self) -> float:
        """Minimum seconds between individual message deletes."""
        ...

    async def get_guild(self, guild_id: str) -> dict[str, Any]:
        """
        Fetch guild metadata.

        Raises:
            ApiError: If the guild is unknown or not accessible
        """
        ...

    async def get_guild_channels(self, guild_id: str) -> list[dict[str, Any]]:
        """List every channel in the guild, of every type."""
        ...

    async def get_active_threads(self, guild_id: str) -> dict[str, Any]:
        """List the guild's active threads as ``{"threads": [...]}``."""
        ...

    async def get_archived_threads(
        self,
        channel_id: str,
        private: bool = False,
        before: str | None = None,
    ) -> dict[str, Any]:
        """
        List archived threads under a channel.

        Returns:
            ``{"threads": [...], "has_more": bool}``
        """
        ...

    async def unarchive_thread(self, thread_id: str) -> None:
        """Reopen an archived thread so its messages can be deleted."""
        ...

    async def get_channel_messages(
        self,
        channel_id: str,
        before: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch up to 100 messages, newest first, older than ``before``."""
        ...

    async def delete_message(self, channel_id: str, message_id: str) -> bool:
        """
        Delete one message.

        Returns:
            False if the platform refuses to delete it, True otherwise
        """
        ...

    async def bulk_delete_messages(self, channel_id: str, message_ids: list[str]) -> None:
        """Delete 2-100 recent messages in one call."""
        ...

    async def delete_channel(self, channel_id: str) -> None:
        """Delete a channel together with its threads."""
        ...
