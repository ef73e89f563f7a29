"""discleanse - wipe every message, thread and channel from a Discord guild."""

from ._version import __version__

__all__ = ["__version__"]
