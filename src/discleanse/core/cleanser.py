"""Guild-wide wipe orchestration.

``GuildCleanser`` runs one wipe from start to finish:
- Resolves the guild to confirm the token can reach it
- Enumerates channels and threads
- Classifies every container's messages
- Drains them through the deletion pipeline (skipped in dry-run mode)

Nothing is persisted between runs. An interrupted run leaves the guild
partially wiped and can simply be started again.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog

from ..models.stats import RunStats, RunSummary
from ..utils.logging import LogEventNames, bind_context, unbind_context
from .classifier import MessageClassifier
from .enumerator import ResourceEnumerator
from .pipeline import DeletionPipeline
from .progress import LoggingProgressListener, NullProgressListener

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ..adapters.discord.client import DiscordClient
    from ..config.schema import CleanseConfig
    from ..interfaces.api import GuildApi
    from ..interfaces.progress import ProgressListener

log = structlog.get_logger()


class GuildCleanser:
    """Coordinates enumeration, classification and deletion for one guild.

    Example:
        cleanser = GuildCleanser(client, guild_id)
        summary = await cleanser.run()
    """

    def __init__(
        self,
        api: GuildApi,
        guild_id: str,
        listener: ProgressListener | None = None,
        defer_channels: tuple[str, ...] | list[str] = (),
        enumerator: ResourceEnumerator | None = None,
        classifier: MessageClassifier | None = None,
    ) -> None:
        self._api = api
        self._guild_id = guild_id
        self._listener: ProgressListener = listener or NullProgressListener()
        self._enumerator = enumerator or ResourceEnumerator(api)
        self._classifier = classifier or MessageClassifier(api)
        self._pipeline = DeletionPipeline(
            api,
            self._classifier,
            self._enumerator,
            listener=self._listener,
            defer_channels=defer_channels,
        )

    @property
    def pipeline(self) -> DeletionPipeline:
        return self._pipeline

    async def run(self, dry_run: bool = False) -> RunSummary:
        """Wipe the guild.

        Args:
            dry_run: Enumerate and classify only; delete nothing.

        Returns:
            Summary of what was (or would be) deleted.

        Raises:
            ApiError: If a remote call fails in a way that is not recoverable.
        """
        started = time.monotonic()
        bind_context(guild_id=self._guild_id)
        try:
            guild = await self._api.get_guild(self._guild_id)
            summary = RunSummary(
                guild_id=self._guild_id,
                guild_name=str(guild.get("name", self._guild_id)),
                dry_run=dry_run,
            )
            log.info(LogEventNames.GUILD_RESOLVED, guild=summary.guild_name, dry_run=dry_run)

            enumeration = await self._enumerator.enumerate(self._guild_id, unarchive=not dry_run)
            plans = await self._pipeline.plan(enumeration)

            summary.pending_recent = sum(p.recent_count for p in plans)
            summary.pending_old = sum(p.old_count for p in plans)
            summary.estimated_duration = self._pipeline.projector.project(summary.pending_old)

            if not dry_run:
                totals = RunStats()
                for result in await self._pipeline.run(plans):
                    totals.add(result.stats)
                    if result.container.is_thread:
                        summary.threads_wiped += 1
                    elif result.deleted:
                        summary.channels_deleted += 1
                summary.totals = totals

            # Wall-clock time, not the sum of per-container time
            summary.totals.elapsed = time.monotonic() - started
            self._listener.run_finished(summary)
            return summary
        finally:
            unbind_context("guild_id")


@asynccontextmanager
async def open_client(config: CleanseConfig) -> AsyncIterator[DiscordClient]:
    """Build a gateway and client from configuration, closing them on exit."""
    from ..adapters.discord.client import DiscordClient
    from ..adapters.discord.gateway import DiscordGateway

    gateway = DiscordGateway(
        config.discord_token,
        base_url=config.api_base_url,
        safety_margin=config.rate_limit.safety_margin,
        max_retries=config.rate_limit.max_retries,
        timeout=config.rate_limit.request_timeout,
    )
    async with gateway:
        yield DiscordClient(gateway, delete_interval=config.rate_limit.delete_interval)


def create_cleanser(config: CleanseConfig, api: GuildApi) -> GuildCleanser:
    """Create a GuildCleanser wired from configuration."""
    return GuildCleanser(
        api,
        config.discord_guild_id,
        listener=LoggingProgressListener(every=config.logging.progress_every),
        defer_channels=config.cleanse.defer_channels,
    )
