"""Data models for run statistics and progress reporting."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from .container import Container


class Phase(Enum):
    """Stage of a wipe run."""

    ENUMERATE = "enumerate"
    CLASSIFY = "classify"
    BULK = "bulk"
    INDIVIDUAL = "individual"


@dataclass
class RunStats:
    """Additive deletion counters."""

    bulk_deleted: int = 0
    individual_deleted: int = 0
    skipped: int = 0  # messages the platform refuses to delete
    elapsed: float = 0.0  # seconds

    @property
    def total_deleted(self) -> int:
        return self.bulk_deleted + self.individual_deleted

    def add(self, other: RunStats) -> None:
        """Sum another set of counters into this one."""
        self.bulk_deleted += other.bulk_deleted
        self.individual_deleted += other.individual_deleted
        self.skipped += other.skipped
        self.elapsed += other.elapsed


@dataclass
class ContainerStats:
    """Counters for a single channel or thread."""

    container: Container
    stats: RunStats = field(default_factory=RunStats)
    deleted: bool = False  # True once the channel itself was removed


@dataclass(frozen=True)
class DeletionProgress:
    """Progress event emitted after an individual delete resolves."""

    container: Container
    bulk_deleted: int
    individual_deleted: int
    remaining_individual: int  # across every container, not just this one
    eta: timedelta


@dataclass
class RunSummary:
    """Final report of a run."""

    guild_id: str
    guild_name: str
    totals: RunStats = field(default_factory=RunStats)
    threads_wiped: int = 0
    channels_deleted: int = 0
    pending_recent: int = 0
    pending_old: int = 0
    estimated_duration: timedelta = field(default_factory=timedelta)
    dry_run: bool = False
