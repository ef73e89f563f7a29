"""Splitting a container's history into bulk-deletable and old messages."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog

from ..adapters.discord.client import MESSAGES_PAGE_SIZE
from ..models.container import ClassifiedMessages, MessageRef
from ..utils.logging import LogEventNames

if TYPE_CHECKING:
    from ..interfaces.api import GuildApi

log = structlog.get_logger()

# Discord refuses to bulk delete messages older than this
BULK_DELETE_MAX_AGE = timedelta(days=14)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 message timestamp into an aware datetime."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_message_ref(data: dict[str, Any]) -> MessageRef:
    return MessageRef(id=str(data["id"]), timestamp=parse_timestamp(data["timestamp"]))


class MessageClassifier:
    """Buckets messages by age against the bulk-delete ceiling.

    The cut-off is taken once, when a container's classification starts.
    Messages are not re-checked later, even if the run outlives the ceiling.

    Example:
        classifier = MessageClassifier(client)
        buckets = await classifier.classify(channel_id)
    """

    def __init__(
        self,
        api: GuildApi,
        max_age: timedelta = BULK_DELETE_MAX_AGE,
        clock: Clock = utc_now,
    ) -> None:
        self._api = api
        self._max_age = max_age
        self._clock = clock

    async def classify(self, container_id: str) -> ClassifiedMessages:
        """Page through the whole history of a container, newest first."""
        cutoff = self._clock() - self._max_age
        result = ClassifiedMessages()
        before: str | None = None

        while True:
            page = await self._api.get_channel_messages(container_id, before)
            if not page:
                break

            for data in page:
                ref = to_message_ref(data)
                if ref.timestamp > cutoff:
                    result.recent.append(ref)
                else:
                    result.old.append(ref)

            before = str(page[-1]["id"])
            if len(page) < MESSAGES_PAGE_SIZE:
                break

        log.debug(
            LogEventNames.CONTAINER_CLASSIFIED,
            container_id=container_id,
            recent=len(result.recent),
            old=len(result.old),
        )
        return result

    async def estimate(self, container_id: str) -> int:
        """Cheap size hint from a single page, capped at 100.

        Auxiliary: planning classifies every container in full and orders
        by exact counts, so nothing in a run depends on this value.
        """
        page = await self._api.get_channel_messages(container_id)
        return min(len(page), MESSAGES_PAGE_SIZE)
