"""Multi-phase deletion of every message, thread and channel.

A run is split into phases that apply to all containers at once:

1. Classify: fetch every container's history and split it into recent
   (bulk-deletable) and old messages.
2. Bulk: delete every container's recent messages, 100 per call.
3. Individual: delete old messages one by one, threads first, then
   channels, smallest first within each group. Each channel is deleted
   as soon as its own messages are gone; threads disappear with it.

Recent messages of every container go before any old message, since bulk
calls are cheap and recent messages would otherwise age past the bulk
ceiling while the slow phase runs.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

import structlog

from ..adapters.discord.client import BULK_DELETE_MAX, BULK_DELETE_MIN, BULK_DELETE_TOO_OLD
from ..adapters.discord.gateway import ApiError
from ..models.container import Container, ContainerPlan, MessageRef
from ..models.stats import ContainerStats, DeletionProgress, Phase
from ..utils.logging import LogEventNames, bind_context, unbind_context
from .progress import EtaProjector, NullProgressListener

if TYPE_CHECKING:
    from ..interfaces.api import GuildApi
    from ..interfaces.progress import ProgressListener
    from .classifier import MessageClassifier
    from .enumerator import Enumeration, ResourceEnumerator

log = structlog.get_logger()

Timer = Callable[[], float]


def chunked(refs: list[MessageRef], size: int = BULK_DELETE_MAX) -> list[list[MessageRef]]:
    """Split message refs into consecutive chunks of at most ``size``."""
    return [refs[i : i + size] for i in range(0, len(refs), size)]


class DeletionPipeline:
    """Drains classified containers and tears down channels.

    Example:
        pipeline = DeletionPipeline(client, classifier, enumerator)
        plans = await pipeline.plan(enumeration)
        results = await pipeline.run(plans)
    """

    def __init__(
        self,
        api: GuildApi,
        classifier: MessageClassifier,
        enumerator: ResourceEnumerator,
        listener: ProgressListener | None = None,
        defer_channels: Iterable[str] = (),
        timer: Timer = time.monotonic,
    ) -> None:
        """Initialize the pipeline.

        Args:
            api: Remote operations.
            classifier: Message classifier used by ``plan``.
            enumerator: Used to reopen threads before their slow phase.
            listener: Progress observer.
            defer_channels: Lower-cased channel names drained after all
                other channels, whatever their size.
            timer: Monotonic clock for elapsed time.
        """
        self._api = api
        self._classifier = classifier
        self._enumerator = enumerator
        self._listener: ProgressListener = listener or NullProgressListener()
        self._defer_channels = frozenset(name.lower() for name in defer_channels)
        self._timer = timer
        self._projector = EtaProjector(api.delete_interval)
        self._remaining_individual = 0

    @property
    def projector(self) -> EtaProjector:
        return self._projector

    @property
    def remaining_individual(self) -> int:
        """Old messages still to delete, across every container."""
        return self._remaining_individual

    # Planning

    async def plan(self, enumeration: Enumeration) -> list[ContainerPlan]:
        """Classify every thread and channel.

        Returns:
            One plan per container, threads first.
        """
        containers = [*enumeration.threads, *enumeration.channels]
        self._listener.phase_started(Phase.CLASSIFY, len(containers), 0)

        plans: list[ContainerPlan] = []
        for position, container in enumerate(containers, start=1):
            self._listener.container_started(
                Phase.CLASSIFY, container, position, len(containers), 0
            )
            messages = await self._classifier.classify(container.id)
            plans.append(ContainerPlan(container=container, messages=messages))

        return plans

    def order_individual(self, plans: list[ContainerPlan]) -> list[ContainerPlan]:
        """Order plans for the individual phase.

        Threads come before channels; each group is sorted by ascending
        old-message count. Deferred channels go last.
        """
        threads = sorted((p for p in plans if p.container.is_thread), key=lambda p: p.old_count)
        channels = [p for p in plans if not p.container.is_thread]
        regular = sorted(
            (p for p in channels if p.container.name.lower() not in self._defer_channels),
            key=lambda p: p.old_count,
        )
        deferred = sorted(
            (p for p in channels if p.container.name.lower() in self._defer_channels),
            key=lambda p: p.old_count,
        )
        return [*threads, *regular, *deferred]

    # Execution

    async def run(self, plans: list[ContainerPlan]) -> list[ContainerStats]:
        """Drain every plan: all bulk work first, then all individual work.

        Returns:
            Per-container statistics, in plan order.

        Raises:
            ApiError: On any failure that is not a soft skip.
        """
        results = {plan.container.id: ContainerStats(container=plan.container) for plan in plans}

        await self.run_bulk_phase(plans, results)
        await self.run_individual_phase(plans, results)

        return [results[plan.container.id] for plan in plans]

    async def run_bulk_phase(
        self,
        plans: list[ContainerPlan],
        results: dict[str, ContainerStats],
    ) -> None:
        pending = [p for p in plans if p.recent_count]
        pending_messages = sum(p.recent_count for p in pending)
        self._listener.phase_started(Phase.BULK, len(pending), pending_messages)
        bind_context(phase=Phase.BULK.value)

        try:
            for position, plan in enumerate(pending, start=1):
                container = plan.container
                stats = results[container.id]
                self._listener.container_started(
                    Phase.BULK, container, position, len(pending), plan.recent_count
                )
                started = self._timer()

                if container.is_thread:
                    # Classification can outlast the auto-archive window
                    await self._enumerator.unarchive(container)

                for chunk in chunked(plan.messages.recent):
                    await self._delete_recent_chunk(container, chunk, stats)

                stats.stats.elapsed += self._timer() - started
                self._listener.container_finished(Phase.BULK, stats)
        finally:
            unbind_context("phase")

    async def _delete_recent_chunk(
        self,
        container: Container,
        chunk: list[MessageRef],
        stats: ContainerStats,
    ) -> None:
        if len(chunk) < BULK_DELETE_MIN:
            await self._delete_one(container, chunk[0], stats)
            return

        try:
            await self._api.bulk_delete_messages(container.id, [ref.id for ref in chunk])
        except ApiError as e:
            if e.code != BULK_DELETE_TOO_OLD:
                raise
            # Part of the chunk aged past the ceiling since classification.
            # The request is atomic, so nothing in it was deleted.
            log.warning(
                LogEventNames.BULK_DELETE_TOO_OLD,
                container_id=container.id,
                messages=len(chunk),
            )
            for ref in chunk:
                await self._delete_one(container, ref, stats)
            return

        stats.stats.bulk_deleted += len(chunk)
        log.debug(LogEventNames.BULK_DELETE_ISSUED, container_id=container.id, messages=len(chunk))

    async def run_individual_phase(
        self,
        plans: list[ContainerPlan],
        results: dict[str, ContainerStats],
    ) -> None:
        ordered = self.order_individual(plans)
        self._remaining_individual = sum(p.old_count for p in ordered)
        self._listener.phase_started(Phase.INDIVIDUAL, len(ordered), self._remaining_individual)
        bind_context(phase=Phase.INDIVIDUAL.value)

        try:
            for position, plan in enumerate(ordered, start=1):
                container = plan.container
                stats = results[container.id]
                self._listener.container_started(
                    Phase.INDIVIDUAL, container, position, len(ordered), plan.old_count
                )
                started = self._timer()

                if container.is_thread and plan.old_count:
                    # Long runs give threads time to auto-archive again
                    await self._enumerator.unarchive(container)

                for ref in plan.messages.old:
                    await self._delete_one(container, ref, stats)
                    self._remaining_individual -= 1
                    self._listener.progress(
                        DeletionProgress(
                            container=container,
                            bulk_deleted=stats.stats.bulk_deleted,
                            individual_deleted=stats.stats.individual_deleted,
                            remaining_individual=self._remaining_individual,
                            eta=self._projector.project(self._remaining_individual),
                        )
                    )

                if not container.is_thread:
                    await self._api.delete_channel(container.id)
                    stats.deleted = True
                    log.info(LogEventNames.CHANNEL_DELETED, channel_id=container.id)

                stats.stats.elapsed += self._timer() - started
                self._listener.container_finished(Phase.INDIVIDUAL, stats)
        finally:
            unbind_context("phase")

    async def _delete_one(
        self,
        container: Container,
        ref: MessageRef,
        stats: ContainerStats,
    ) -> None:
        if await self._api.delete_message(container.id, ref.id):
            stats.stats.individual_deleted += 1
        else:
            stats.stats.skipped += 1
