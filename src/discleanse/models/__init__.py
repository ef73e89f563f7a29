"""Data models and transfer objects."""

from .container import (
    TEXT_CHANNEL_TYPES,
    ChannelType,
    ClassifiedMessages,
    Container,
    ContainerKind,
    ContainerPlan,
    MessageRef,
)
from .rate_limit import RateLimitState, parse_retry_after
from .stats import ContainerStats, DeletionProgress, Phase, RunStats, RunSummary

__all__ = [
    # Container models
    "ChannelType",
    "TEXT_CHANNEL_TYPES",
    "ContainerKind",
    "Container",
    "MessageRef",
    "ClassifiedMessages",
    "ContainerPlan",
    # Rate limit models
    "RateLimitState",
    "parse_retry_after",
    # Stats models
    "Phase",
    "RunStats",
    "ContainerStats",
    "DeletionProgress",
    "RunSummary",
]
