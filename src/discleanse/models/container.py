"""Data models for channels, threads and the messages they hold."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum


class ChannelType(IntEnum):
    """Discord channel type codes used by the wipe."""

    GUILD_TEXT = 0
    GUILD_VOICE = 2
    GUILD_CATEGORY = 4
    GUILD_ANNOUNCEMENT = 5
    ANNOUNCEMENT_THREAD = 10
    PUBLIC_THREAD = 11
    PRIVATE_THREAD = 12
    GUILD_FORUM = 15


# Channel types that can hold messages or threads
TEXT_CHANNEL_TYPES = frozenset(
    {ChannelType.GUILD_TEXT, ChannelType.GUILD_ANNOUNCEMENT, ChannelType.GUILD_FORUM}
)


class ContainerKind(Enum):
    """Whether a container is a top-level channel or a thread."""

    CHANNEL = "channel"
    THREAD = "thread"


@dataclass(frozen=True)
class Container:
    """A text-capable channel or thread."""

    id: str
    name: str
    kind: ContainerKind
    parent_id: str | None = None  # threads only
    archived: bool = False  # threads only

    @property
    def is_thread(self) -> bool:
        return self.kind is ContainerKind.THREAD

    @property
    def label(self) -> str:
        """Display label, ``#name`` for channels."""
        return self.name if self.is_thread else f"#{self.name}"


@dataclass(frozen=True, slots=True)
class MessageRef:
    """The part of a message needed to delete it.

    A guild can hold millions of messages, so nothing beyond the id and
    creation time is kept.
    """

    id: str
    timestamp: datetime


@dataclass
class ClassifiedMessages:
    """A container's messages split by bulk-delete eligibility."""

    recent: list[MessageRef] = field(default_factory=list)
    old: list[MessageRef] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.recent) + len(self.old)


@dataclass
class ContainerPlan:
    """A container together with its classified messages."""

    container: Container
    messages: ClassifiedMessages

    @property
    def old_count(self) -> int:
        return len(self.messages.old)

    @property
    def recent_count(self) -> int:
        return len(self.messages.recent)
