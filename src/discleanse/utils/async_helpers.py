"""Async utility functions for resilient API calls.

This module provides:
- The exception hierarchy shared by every component
- A retry decorator for transport-level failures
- A token bucket rate limiter used to pace individual deletes
"""

from __future__ import annotations

import asyncio
import time

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger()


# =============================================================================
# Custom Exceptions
# =============================================================================


class CleanseError(Exception):
    """Base exception for all discleanse errors."""


class ConfigError(CleanseError):
    """Required configuration is missing or invalid."""


class RateLimitExhausted(CleanseError):
    """The server kept answering 429 past the retry bound.

    Attributes:
        attempts: Number of requests issued for the call.
        retry_after: The last wait the server asked for, in seconds.
    """

    def __init__(self, message: str, attempts: int, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.retry_after = retry_after


# =============================================================================
# Retry Decorator
# =============================================================================


def _log_retry(retry_state: RetryCallState) -> None:
    """Log retry attempts for debugging."""
    if retry_state.outcome is None:
        return

    exception = retry_state.outcome.exception()
    if exception:
        log.warning(
            "retrying_operation",
            attempt=retry_state.attempt_number,
            exception_type=type(exception).__name__,
            exception_message=str(exception),
            wait_time=retry_state.next_action.sleep if retry_state.next_action else 0,
        )


TRANSPORT_ERRORS: tuple[type[Exception], ...] = (httpx.TimeoutException, httpx.NetworkError)

# Default retry policy for dropped connections and timeouts
api_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=30),
    retry=retry_if_exception_type(TRANSPORT_ERRORS),
    before_sleep=_log_retry,
    reraise=True,
)


# =============================================================================
# Rate Limiter
# =============================================================================


class RateLimiter:
    """Token bucket rate limiter for async operations.

    Tokens are added to the bucket at a fixed rate and each operation
    consumes one. If no token is available the operation waits until one
    becomes available.

    Example:
        limiter = RateLimiter(rate=1.0, capacity=1)

        await limiter.acquire()
        await delete_one_message()
    """

    def __init__(self, rate: float, capacity: float | None = None) -> None:
        """Initialize the rate limiter.

        Args:
            rate: Number of operations allowed per second.
            capacity: Maximum number of tokens in the bucket (burst capacity).
                     Defaults to rate (no bursting beyond 1 second).

        Raises:
            ValueError: If rate is not positive.
        """
        if rate <= 0:
            raise ValueError(f"Rate must be positive, got {rate}")
        self._rate = rate
        self._capacity = capacity if capacity is not None else rate
        self._tokens = self._capacity
        self._last_update = time.monotonic()
        self._lock = asyncio.Lock()

    @classmethod
    def every(cls, interval: float) -> RateLimiter:
        """Build a limiter allowing one operation per ``interval`` seconds."""
        return cls(rate=1.0 / interval, capacity=1)

    def _refill(self) -> None:
        """Refill tokens based on elapsed time."""
        now = time.monotonic()
        elapsed = now - self._last_update
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_update = now

    async def acquire(self, tokens: float = 1.0) -> None:
        """Acquire tokens from the bucket, waiting if necessary.

        Raises:
            ValueError: If tokens exceeds capacity.
        """
        if tokens > self._capacity:
            msg = f"Cannot acquire {tokens} tokens; capacity is {self._capacity}"
            raise ValueError(msg)

        async with self._lock:
            self._refill()

            if self._tokens >= tokens:
                self._tokens -= tokens
                return

            deficit = tokens - self._tokens
            wait_time = deficit / self._rate

            log.debug("rate_limiter_waiting", wait_time=wait_time, deficit=deficit)
            await asyncio.sleep(wait_time)

            self._refill()
            self._tokens -= tokens
