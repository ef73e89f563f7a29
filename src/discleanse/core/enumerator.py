"""Discovery of the channels and threads that hold messages."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import structlog

from ..adapters.discord.gateway import ApiError
from ..models.container import TEXT_CHANNEL_TYPES, Container, ContainerKind
from ..utils.logging import LogEventNames
from ..utils.security import sanitize_for_logging

if TYPE_CHECKING:
    from ..interfaces.api import GuildApi

log = structlog.get_logger()


@dataclass
class Enumeration:
    """Text-capable containers found in a guild."""

    channels: list[Container] = field(default_factory=list)
    threads: list[Container] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.channels and not self.threads


def channel_from_payload(data: dict[str, Any]) -> Container:
    return Container(
        id=str(data["id"]),
        name=sanitize_for_logging(data.get("name") or str(data["id"])),
        kind=ContainerKind.CHANNEL,
    )


def thread_from_payload(data: dict[str, Any], archived: bool | None = None) -> Container:
    """Build a thread container.

    Args:
        data: Thread channel payload.
        archived: Override for the archived flag; read from
            ``thread_metadata`` when None.
    """
    if archived is None:
        archived = bool((data.get("thread_metadata") or {}).get("archived", False))
    return Container(
        id=str(data["id"]),
        name=sanitize_for_logging(data.get("name") or str(data["id"])),
        kind=ContainerKind.THREAD,
        parent_id=str(data["parent_id"]) if data.get("parent_id") else None,
        archived=archived,
    )


def is_text_channel(data: dict[str, Any]) -> bool:
    return data.get("type") in TEXT_CHANNEL_TYPES


class ResourceEnumerator:
    """Walks a guild's channel and thread tree.

    Example:
        enumerator = ResourceEnumerator(client)
        found = await enumerator.enumerate(guild_id)
    """

    def __init__(self, api: GuildApi) -> None:
        self._api = api

    async def enumerate(self, guild_id: str, unarchive: bool = True) -> Enumeration:
        """List text-capable channels and all their threads.

        Args:
            guild_id: Guild to walk.
            unarchive: Reopen every discovered thread before returning it.
                Disabled for dry runs, which must not change the guild.

        Raises:
            ApiError: If the channel or active thread listing fails.
        """
        raw_channels = await self._api.get_guild_channels(guild_id)
        channels = [channel_from_payload(c) for c in raw_channels if is_text_channel(c)]
        log.info(
            LogEventNames.CHANNELS_LISTED,
            guild_id=guild_id,
            total=len(raw_channels),
            text_channels=len(channels),
        )

        threads = await self._fetch_threads(guild_id, channels)
        if unarchive:
            threads = [await self.unarchive(thread) for thread in threads]
        log.info(LogEventNames.THREADS_LISTED, guild_id=guild_id, threads=len(threads))

        return Enumeration(channels=channels, threads=threads)

    async def _fetch_threads(self, guild_id: str, channels: list[Container]) -> list[Container]:
        channel_ids = {c.id for c in channels}
        found: dict[str, Container] = {}

        active = await self._api.get_active_threads(guild_id)
        for data in active.get("threads", []):
            thread = thread_from_payload(data, archived=False)
            if thread.parent_id in channel_ids:
                found.setdefault(thread.id, thread)

        for channel in channels:
            for private in (False, True):
                for thread in await self._fetch_archived(channel, private):
                    found.setdefault(thread.id, thread)

        return list(found.values())

    async def _fetch_archived(self, channel: Container, private: bool) -> list[Container]:
        """Page through one archived listing; failures yield no threads."""
        threads: list[Container] = []
        before: str | None = None

        while True:
            try:
                page = await self._api.get_archived_threads(channel.id, private, before)
            except ApiError as e:
                # Unsupported channel type or missing permission
                log.debug(
                    LogEventNames.THREAD_LISTING_FAILED,
                    channel_id=channel.id,
                    private=private,
                    status=e.status,
                    code=e.code,
                )
                return threads

            batch = page.get("threads", [])
            threads.extend(thread_from_payload(t, archived=True) for t in batch)

            if not page.get("has_more") or not batch:
                return threads
            before = (batch[-1].get("thread_metadata") or {}).get("archive_timestamp")
            if not before:
                return threads

    async def unarchive(self, thread: Container) -> Container:
        """Reopen a thread so its messages can be deleted.

        Failure is logged and ignored: the thread may already be open, or the
        bot may lack permission, which later calls will surface.

        Returns:
            The thread marked unarchived on success, unchanged otherwise.
        """
        try:
            await self._api.unarchive_thread(thread.id)
        except ApiError as e:
            log.warning(
                LogEventNames.THREAD_UNARCHIVE_FAILED,
                thread_id=thread.id,
                status=e.status,
                code=e.code,
            )
            return thread
        return replace(thread, archived=False)
