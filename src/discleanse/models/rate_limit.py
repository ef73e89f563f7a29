"""Rate limit information reported by the API on each response."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

REMAINING_HEADER = "X-RateLimit-Remaining"
RESET_AFTER_HEADER = "X-RateLimit-Reset-After"
BUCKET_HEADER = "X-RateLimit-Bucket"
RETRY_AFTER_HEADER = "Retry-After"


def _parse_float(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class RateLimitState:
    """Call budget snapshot taken from one response.

    ``remaining`` is None when the response carried no budget header, which
    is treated as "unknown" rather than "exhausted".
    """

    remaining: int | None = None
    reset_after: float = 0.0  # seconds
    bucket: str | None = None

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> RateLimitState:
        """Build a snapshot from response headers (case-insensitive mapping)."""
        remaining = _parse_float(headers.get(REMAINING_HEADER))
        reset_after = _parse_float(headers.get(RESET_AFTER_HEADER))
        return cls(
            remaining=int(remaining) if remaining is not None else None,
            reset_after=max(0.0, reset_after or 0.0),
            bucket=headers.get(BUCKET_HEADER),
        )


def parse_retry_after(headers: Mapping[str, str], body: object = None) -> float | None:
    """Extract the server's requested wait from a 429 response.

    The ``Retry-After`` header wins; the JSON ``retry_after`` field is the
    fallback. Returns None when neither is usable.
    """
    value = _parse_float(headers.get(RETRY_AFTER_HEADER))
    if value is None and isinstance(body, dict):
        raw = body.get("retry_after")
        if isinstance(raw, (int, float)):
            value = float(raw)
    if value is None:
        return None
    return max(0.0, value)
