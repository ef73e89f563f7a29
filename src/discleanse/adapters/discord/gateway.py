"""Rate-limited HTTP gateway to the Discord REST API.

Every remote call made by discleanse goes through ``DiscordGateway.call``:
- Authorization is attached to every request
- HTTP 429 responses are waited out and the identical request re-issued,
  up to a fixed bound
- A response reporting an exhausted budget delays the return of that call
  until the budget resets, so the next call is not rejected
- Any other error status is raised as ``ApiError`` for the caller to judge

Calls are serialized through one lock. The throttle only looks at the
budget reported by the previous response, which is correct only while no
two calls are in flight at the same time.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any

import httpx
import structlog

from ..._version import __version__
from ...config.schema import DEFAULT_API_BASE_URL
from ...models.rate_limit import RateLimitState, parse_retry_after
from ...utils.async_helpers import (
    CleanseError,
    ConfigError,
    RateLimitExhausted,
    api_retry,
)
from ...utils.logging import LogEventNames

log = structlog.get_logger()

SleepFunc = Callable[[float], Awaitable[None]]

DEFAULT_SAFETY_MARGIN = 0.1
DEFAULT_MAX_RETRIES = 50
DEFAULT_RETRY_AFTER = 1.0

USER_AGENT = f"DiscordBot (https://github.com/discleanse/discleanse, {__version__})"


class ApiError(CleanseError):
    """The API answered with a non-success status other than 429.

    Attributes:
        status: HTTP status code.
        body: Raw response body text.
        code: Discord JSON error code, when the body carried one.
    """

    def __init__(self, status: int, body: str, method: str = "", route: str = "") -> None:
        self.status = status
        self.body = body
        self.method = method
        self.route = route
        self.code = _parse_error_code(body)
        where = f" ({method} {route})" if method else ""
        super().__init__(f"Discord API error {status}{where}: {body}")


def _parse_error_code(body: str) -> int | None:
    try:
        data = json.loads(body)
    except ValueError:
        return None
    code = data.get("code") if isinstance(data, dict) else None
    return code if isinstance(code, int) else None


class DiscordGateway:
    """Authenticated, self-throttling access to the Discord REST API.

    Example:
        async with DiscordGateway(token) as gateway:
            guild = await gateway.call("GET", f"/guilds/{guild_id}")
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        safety_margin: float = DEFAULT_SAFETY_MARGIN,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the gateway.

        Args:
            token: Bot token. Checked once here, never per call.
            base_url: API root including the version segment.
            safety_margin: Seconds added to every server-requested wait.
            max_retries: How many 429 responses a single call may absorb.
            timeout: HTTP timeout in seconds (ignored when client is given).
            client: Pre-built HTTP client, mainly for tests.
            sleep: Coroutine used for every wait, mainly for tests.

        Raises:
            ConfigError: If no token is configured.
        """
        if not token or not token.strip():
            raise ConfigError("DISCORD_TOKEN environment variable is required")

        self._token = token.strip()
        self._safety_margin = safety_margin
        self._max_retries = max_retries
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
        )
        self._lock = asyncio.Lock()
        self._rate_limit: RateLimitState | None = None
        self._requests_sent = 0
        self._rate_limit_hits = 0

    @property
    def rate_limit(self) -> RateLimitState | None:
        """Budget reported by the most recent successful response."""
        return self._rate_limit

    @property
    def stats(self) -> dict[str, int]:
        """Return request statistics."""
        return {
            "requests_sent": self._requests_sent,
            "rate_limit_hits": self._rate_limit_hits,
        }

    def _headers(self, has_body: bool) -> dict[str, str]:
        headers = {
            "Authorization": f"Bot {self._token}",
            "User-Agent": USER_AGENT,
        }
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    @api_retry
    async def _send(
        self,
        method: str,
        route: str,
        body: Any,
        params: dict[str, Any] | None,
    ) -> httpx.Response:
        """Issue one HTTP request, retrying dropped connections and timeouts."""
        self._requests_sent += 1
        return await self._client.request(
            method,
            route,
            headers=self._headers(body is not None),
            json=body,
            params=params,
        )

    async def call(
        self,
        method: str,
        route: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Perform one API call.

        Args:
            method: HTTP method.
            route: Path below the API root, e.g. ``/channels/123``.
            body: JSON body, if any.
            params: Query parameters, if any.

        Returns:
            Decoded JSON body, or None for 204 responses.

        Raises:
            ApiError: On any non-2xx status other than 429.
            RateLimitExhausted: If 429 persists past ``max_retries``.
        """
        async with self._lock:
            return await self._call_locked(method, route, body, params)

    async def _call_locked(
        self,
        method: str,
        route: str,
        body: Any,
        params: dict[str, Any] | None,
    ) -> Any:
        retry_after: float | None = None

        for attempt in range(1, self._max_retries + 2):
            response = await self._send(method, route, body, params)

            if response.status_code == 429:
                if attempt > self._max_retries:
                    break
                self._rate_limit_hits += 1
                retry_after = parse_retry_after(response.headers, _safe_json(response))
                if retry_after is None:
                    retry_after = DEFAULT_RETRY_AFTER
                log.warning(
                    LogEventNames.RATE_LIMIT_HIT,
                    method=method,
                    route=route,
                    retry_after=retry_after,
                    attempt=attempt,
                    scope=response.headers.get("X-RateLimit-Scope"),
                )
                await self._sleep(retry_after + self._safety_margin)
                continue

            return await self._handle_response(method, route, response)

        log.error(
            LogEventNames.RATE_LIMIT_EXHAUSTED,
            method=method,
            route=route,
            attempts=self._max_retries + 1,
        )
        raise RateLimitExhausted(
            f"Still rate limited after {self._max_retries} retries: {method} {route}",
            attempts=self._max_retries + 1,
            retry_after=retry_after,
        )

    async def _handle_response(self, method: str, route: str, response: httpx.Response) -> Any:
        if not response.is_success:
            raise ApiError(response.status_code, response.text, method=method, route=route)

        state = RateLimitState.from_headers(response.headers)
        self._rate_limit = state

        if state.exhausted:
            wait = state.reset_after + self._safety_margin
            log.debug(
                LogEventNames.RATE_LIMIT_BUDGET_DEPLETED,
                route=route,
                bucket=state.bucket,
                wait=wait,
            )
            await self._sleep(wait)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this gateway created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> DiscordGateway:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
