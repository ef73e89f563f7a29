"""Remaining-time projection and progress listeners."""

from __future__ import annotations

from datetime import timedelta

import structlog

from ..models.container import Container
from ..models.stats import ContainerStats, DeletionProgress, Phase, RunSummary
from ..utils.logging import LogEventNames

log = structlog.get_logger()


class EtaProjector:
    """Projects remaining time from the count of pending individual deletes.

    Bulk deletes are negligible next to the paced individual deletes, so
    only the latter enter the estimate.
    """

    def __init__(self, pace_interval: float) -> None:
        self._pace_interval = max(0.0, pace_interval)

    @property
    def pace_interval(self) -> float:
        return self._pace_interval

    def project(self, remaining: int) -> timedelta:
        return timedelta(seconds=max(0, remaining) * self._pace_interval)


def format_duration(seconds: float) -> str:
    """Format a duration as ``42s``, ``3m 5s`` or ``2h 7m``."""
    total = int(max(0, seconds))
    if total < 60:
        return f"{total}s"
    minutes, secs = divmod(total, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


class NullProgressListener:
    """Discards every event."""

    def phase_started(self, phase: Phase, containers: int, pending: int) -> None:
        pass

    def container_started(
        self,
        phase: Phase,
        container: Container,
        position: int,
        total: int,
        pending: int,
    ) -> None:
        pass

    def progress(self, event: DeletionProgress) -> None:
        pass

    def container_finished(self, phase: Phase, stats: ContainerStats) -> None:
        pass

    def run_finished(self, summary: RunSummary) -> None:
        pass


class LoggingProgressListener:
    """Reports progress through structured log events.

    Individual deletes are reported every ``every`` events within a
    container, plus the final delete of the run, to keep the output
    readable at one delete per second. The end of each container is
    covered by ``container_finished``.
    """

    def __init__(self, every: int = 25) -> None:
        self._every = max(1, every)
        self._since_report = 0

    def phase_started(self, phase: Phase, containers: int, pending: int) -> None:
        log.info(
            LogEventNames.PHASE_STARTED,
            phase=phase.value,
            containers=containers,
            pending=pending,
        )

    def container_started(
        self,
        phase: Phase,
        container: Container,
        position: int,
        total: int,
        pending: int,
    ) -> None:
        self._since_report = 0
        log.info(
            LogEventNames.CONTAINER_STARTED,
            phase=phase.value,
            container=container.label,
            kind=container.kind.value,
            position=f"{position}/{total}",
            pending=pending,
        )

    def progress(self, event: DeletionProgress) -> None:
        self._since_report += 1
        if self._since_report < self._every and event.remaining_individual > 0:
            return
        self._since_report = 0
        log.info(
            LogEventNames.DELETION_PROGRESS,
            container=event.container.label,
            bulk=event.bulk_deleted,
            individual=event.individual_deleted,
            remaining=event.remaining_individual,
            eta=format_duration(event.eta.total_seconds()),
        )

    def container_finished(self, phase: Phase, stats: ContainerStats) -> None:
        log.info(
            LogEventNames.CONTAINER_FINISHED,
            phase=phase.value,
            container=stats.container.label,
            bulk_deleted=stats.stats.bulk_deleted,
            individual_deleted=stats.stats.individual_deleted,
            skipped=stats.stats.skipped,
            channel_deleted=stats.deleted,
            took=format_duration(stats.stats.elapsed),
        )

    def run_finished(self, summary: RunSummary) -> None:
        if summary.dry_run:
            log.info(
                LogEventNames.RUN_COMPLETE,
                dry_run=True,
                guild=summary.guild_name,
                recent_messages=summary.pending_recent,
                old_messages=summary.pending_old,
                estimated=format_duration(summary.estimated_duration.total_seconds()),
            )
            return
        log.info(
            LogEventNames.RUN_COMPLETE,
            guild=summary.guild_name,
            messages=summary.totals.total_deleted,
            bulk=summary.totals.bulk_deleted,
            individual=summary.totals.individual_deleted,
            skipped=summary.totals.skipped,
            threads=summary.threads_wiped,
            channels=summary.channels_deleted,
            took=format_duration(summary.totals.elapsed),
        )
