"""Core wipe logic.

This module contains the components that empty a guild:
- ResourceEnumerator: Finds text channels and threads
- MessageClassifier: Splits history into bulk-deletable and old messages
- DeletionPipeline: Drains containers in phase order and deletes channels
- EtaProjector: Projects the remaining time of the slow phase
- GuildCleanser: Runs the whole wipe
"""

from .classifier import BULK_DELETE_MAX_AGE, MessageClassifier
from .cleanser import GuildCleanser, create_cleanser, open_client
from .enumerator import Enumeration, ResourceEnumerator
from .pipeline import DeletionPipeline
from .progress import EtaProjector, LoggingProgressListener, NullProgressListener, format_duration

__all__ = [
    "BULK_DELETE_MAX_AGE",
    "DeletionPipeline",
    "Enumeration",
    "EtaProjector",
    "GuildCleanser",
    "LoggingProgressListener",
    "MessageClassifier",
    "NullProgressListener",
    "ResourceEnumerator",
    "create_cleanser",
    "format_duration",
    "open_client",
]
