"""Shared test fixtures for discleanse."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from discleanse.adapters.discord.gateway import ApiError

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

FAKE_TOKEN = "MTAxMjM0NTY3ODkwMTIzNDU2Nzg.GaBcDe.abcdefghijklmnopqrstuvwxyz0123456789"


def make_messages(
    count: int,
    age: timedelta,
    start_id: int = 10_000,
    now: datetime = NOW,
) -> list[dict[str, Any]]:
    """Build message payloads, newest first, with descending ids."""
    return [
        {
            "id": str(start_id - i),
            "timestamp": (now - age - timedelta(seconds=i)).isoformat(),
            "content": "hello",
            "author": {"id": "1", "username": "someone"},
        }
        for i in range(count)
    ]


def api_error(status: int, code: int, message: str = "error") -> ApiError:
    return ApiError(status, f'{{"message": "{message}", "code": {code}}}')


class FakeGuildApi:
    """In-memory stand-in for DiscordClient that records every call in order."""

    def __init__(self, delete_interval: float = 1.0) -> None:
        self.delete_interval = delete_interval
        self.guild: dict[str, Any] = {"id": "1", "name": "Test Guild"}
        self.channels: list[dict[str, Any]] = []
        self.active_threads: list[dict[str, Any]] = []
        # (channel_id, private) -> list of pages, or an exception to raise
        self.archived: dict[tuple[str, bool], list[dict[str, Any]] | Exception] = {}
        self.messages: dict[str, list[dict[str, Any]]] = {}
        self.undeletable: set[str] = set()
        self.bulk_too_old: set[str] = set()
        self.unarchive_fails: set[str] = set()
        self.calls: list[tuple[Any, ...]] = []

    # Builders

    def add_channel(self, channel_id: str, name: str, type_: int = 0) -> None:
        self.channels.append({"id": channel_id, "name": name, "type": type_})

    def add_thread(
        self,
        thread_id: str,
        name: str,
        parent_id: str,
        archived: bool = False,
        private: bool = False,
    ) -> dict[str, Any]:
        data = {
            "id": thread_id,
            "name": name,
            "type": 12 if private else 11,
            "parent_id": parent_id,
            "thread_metadata": {
                "archived": archived,
                "archive_timestamp": "2025-12-01T00:00:00+00:00",
            },
        }
        if archived:
            pages = self.archived.setdefault((parent_id, private), [])
            assert isinstance(pages, list)
            if not pages:
                pages.append({"threads": [], "has_more": False})
            pages[0]["threads"].append(data)
        else:
            self.active_threads.append(data)
        return data

    def set_messages(self, container_id: str, *batches: list[dict[str, Any]]) -> None:
        merged = [m for batch in batches for m in batch]
        merged.sort(key=lambda m: int(m["id"]), reverse=True)
        self.messages[container_id] = merged

    # Call inspection

    def calls_named(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]

    @property
    def deletion_calls(self) -> list[tuple[Any, ...]]:
        names = {"delete_message", "bulk_delete", "delete_channel"}
        return [c for c in self.calls if c[0] in names]

    @property
    def mutating_calls(self) -> list[tuple[Any, ...]]:
        names = {"delete_message", "bulk_delete", "delete_channel", "unarchive"}
        return [c for c in self.calls if c[0] in names]

    # GuildApi protocol

    async def get_guild(self, guild_id: str) -> dict[str, Any]:
        self.calls.append(("get_guild", guild_id))
        return self.guild

    async def get_guild_channels(self, guild_id: str) -> list[dict[str, Any]]:
        self.calls.append(("get_guild_channels", guild_id))
        return list(self.channels)

    async def get_active_threads(self, guild_id: str) -> dict[str, Any]:
        self.calls.append(("get_active_threads", guild_id))
        return {"threads": list(self.active_threads), "members": []}

    async def get_archived_threads(
        self,
        channel_id: str,
        private: bool = False,
        before: str | None = None,
    ) -> dict[str, Any]:
        self.calls.append(("get_archived_threads", channel_id, private, before))
        entry = self.archived.get((channel_id, private), [])
        if isinstance(entry, Exception):
            raise entry
        if not entry:
            return {"threads": [], "has_more": False}
        page_index = 0
        if before is not None:
            page_index = next(
                i + 1
                for i, page in enumerate(entry)
                if page["threads"]
                and page["threads"][-1]["thread_metadata"]["archive_timestamp"] == before
            )
        return entry[page_index]

    async def unarchive_thread(self, thread_id: str) -> None:
        self.calls.append(("unarchive", thread_id))
        if thread_id in self.unarchive_fails:
            raise api_error(403, 50013, "Missing Permissions")

    async def get_channel_messages(
        self,
        channel_id: str,
        before: str | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(("get_messages", channel_id, before))
        history = self.messages.get(channel_id, [])
        if before is not None:
            history = [m for m in history if int(m["id"]) < int(before)]
        return history[:100]

    async def delete_message(self, channel_id: str, message_id: str) -> bool:
        self.calls.append(("delete_message", channel_id, message_id))
        return message_id not in self.undeletable

    async def bulk_delete_messages(self, channel_id: str, message_ids: list[str]) -> None:
        assert 2 <= len(message_ids) <= 100, f"bulk delete with {len(message_ids)} ids"
        self.calls.append(("bulk_delete", channel_id, list(message_ids)))
        if channel_id in self.bulk_too_old:
            raise api_error(400, 50034, "You can only bulk delete messages under 14 days old")

    async def delete_channel(self, channel_id: str) -> None:
        self.calls.append(("delete_channel", channel_id))


@pytest.fixture
def fake_api() -> FakeGuildApi:
    """Return an empty fake guild API."""
    return FakeGuildApi()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Return a clock frozen at NOW."""
    return lambda: NOW


@pytest.fixture
def fake_token() -> str:
    """Return a syntactically valid but fake bot token."""
    return FAKE_TOKEN
