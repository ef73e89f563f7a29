"""Abstract interface for progress reporting."""

from typing import Protocol

from ..models.container import Container
from ..models.stats import ContainerStats, DeletionProgress, Phase, RunSummary


class ProgressListener(Protocol):
    """Receives progress events from the deletion pipeline.

    The pipeline never renders anything itself; a listener decides how
    (and whether) progress is shown.
    """

    def phase_started(self, phase: Phase, containers: int, pending: int) -> None:
        """
        A phase begins.

        Args:
            phase: The phase starting
            containers: Number of containers the phase will visit
            pending: Messages the phase has to delete
        """
        ...

    def container_started(
        self,
        phase: Phase,
        container: Container,
        position: int,
        total: int,
        pending: int,
    ) -> None:
        """Work on one container begins within a phase."""
        ...

    def progress(self, event: DeletionProgress) -> None:
        """An individual delete resolved; carries the updated projection."""
        ...

    def container_finished(self, phase: Phase, stats: ContainerStats) -> None:
        """Work on one container ended within a phase."""
        ...

    def run_finished(self, summary: RunSummary) -> None:
        """The run completed."""
        ...
