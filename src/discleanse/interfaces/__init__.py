"""Protocol definitions for pluggable collaborators."""

from .api import GuildApi
from .progress import ProgressListener

__all__ = ["GuildApi", "ProgressListener"]
