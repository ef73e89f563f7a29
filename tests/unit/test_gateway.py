"""Tests for the rate-limited Discord gateway."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from discleanse.adapters.discord.gateway import ApiError, DiscordGateway
from discleanse.utils.async_helpers import ConfigError, RateLimitExhausted

BASE_URL = "https://discord.test/api/v10"


class VirtualClock:
    """Records sleeps and advances a fake clock instead of waiting."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_gateway(
    handler: Callable[[httpx.Request], httpx.Response],
    clock: VirtualClock,
    token: str = "test-token",
    **kwargs: Any,
) -> DiscordGateway:
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return DiscordGateway(token, client=client, sleep=clock.sleep, **kwargs)


def rate_limited(retry_after: str = "2") -> httpx.Response:
    return httpx.Response(
        429,
        headers={"Retry-After": retry_after},
        json={"message": "You are being rate limited.", "retry_after": float(retry_after)},
    )


class TestGatewayInit:
    """Test gateway construction."""

    def test_empty_token_raises_config_error(self) -> None:
        """Test that a missing credential fails before any call."""
        with pytest.raises(ConfigError, match="DISCORD_TOKEN"):
            DiscordGateway("")

    def test_whitespace_token_raises_config_error(self) -> None:
        """Test that a blank credential is treated as missing."""
        with pytest.raises(ConfigError):
            DiscordGateway("   ")

    def test_initial_state(self) -> None:
        """Test that no rate limit state exists before the first call."""
        gateway = make_gateway(lambda r: httpx.Response(200, json={}), VirtualClock())
        assert gateway.rate_limit is None
        assert gateway.stats == {"requests_sent": 0, "rate_limit_hits": 0}


class TestGatewayRequests:
    """Test request construction and response decoding."""

    async def test_authorization_header_attached(self) -> None:
        """Test that every call carries the bot authorization."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "1"})

        gateway = make_gateway(handler, VirtualClock(), token="abc.def.ghi")
        await gateway.call("GET", "/guilds/1")
        await gateway.call("GET", "/guilds/1/channels")

        assert len(seen) == 2
        assert all(r.headers["Authorization"] == "Bot abc.def.ghi" for r in seen)
        assert seen[0].url.path == "/api/v10/guilds/1"

    async def test_json_body_sent(self) -> None:
        """Test that a body is JSON encoded."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        gateway = make_gateway(handler, VirtualClock())
        await gateway.call(
            "POST", "/channels/5/messages/bulk-delete", body={"messages": ["1", "2"]}
        )

        assert json.loads(seen[0].content) == {"messages": ["1", "2"]}
        assert seen[0].headers["Content-Type"] == "application/json"

    async def test_query_params_sent(self) -> None:
        """Test that query parameters are appended."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        gateway = make_gateway(handler, VirtualClock())
        await gateway.call("GET", "/channels/5/messages", params={"limit": 100, "before": "99"})

        assert seen[0].url.params["limit"] == "100"
        assert seen[0].url.params["before"] == "99"

    async def test_204_returns_none(self) -> None:
        """Test that No Content yields an empty result."""
        gateway = make_gateway(lambda r: httpx.Response(204), VirtualClock())
        assert await gateway.call("DELETE", "/channels/5") is None

    async def test_json_response_decoded(self) -> None:
        """Test that 2xx bodies are decoded."""
        gateway = make_gateway(
            lambda r: httpx.Response(200, json={"id": "1", "name": "Guild"}), VirtualClock()
        )
        assert await gateway.call("GET", "/guilds/1") == {"id": "1", "name": "Guild"}


class TestGatewayErrors:
    """Test non-success statuses."""

    async def test_error_status_raises_api_error(self) -> None:
        """Test that a 403 surfaces with status, body and code."""
        body = {"message": "Missing Permissions", "code": 50013}
        gateway = make_gateway(lambda r: httpx.Response(403, json=body), VirtualClock())

        with pytest.raises(ApiError) as exc_info:
            await gateway.call("DELETE", "/channels/5")

        assert exc_info.value.status == 403
        assert exc_info.value.code == 50013
        assert "Missing Permissions" in exc_info.value.body
        assert "DELETE /channels/5" in str(exc_info.value)

    async def test_error_is_not_retried(self) -> None:
        """Test that errors other than 429 are issued once."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(500, text="oops")

        gateway = make_gateway(handler, VirtualClock())
        with pytest.raises(ApiError) as exc_info:
            await gateway.call("GET", "/guilds/1")

        assert len(requests) == 1
        assert exc_info.value.code is None

    def test_api_error_without_json_body(self) -> None:
        """Test that a plain-text body leaves the code unset."""
        error = ApiError(502, "Bad Gateway")
        assert error.code is None
        assert error.status == 502


class TestGatewayRateLimits:
    """Test 429 handling and budget throttling."""

    async def test_429_waits_and_retries_identical_call(self) -> None:
        """Test that a 429 is waited out and the same call re-issued."""
        clock = VirtualClock()
        requests: list[tuple[str, str, bytes, float]] = []
        responses = iter([rate_limited("2"), httpx.Response(200, json={"ok": True})])

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append((request.method, str(request.url), request.content, clock.now))
            return next(responses)

        gateway = make_gateway(handler, clock)
        result = await gateway.call("PATCH", "/channels/7", body={"archived": False})

        assert result == {"ok": True}
        assert len(requests) == 2
        assert requests[0][:3] == requests[1][:3]
        assert requests[1][3] - requests[0][3] >= 2.1
        assert clock.sleeps == [pytest.approx(2.1)]
        assert gateway.stats["rate_limit_hits"] == 1

    async def test_429_uses_body_retry_after_without_header(self) -> None:
        """Test the JSON retry_after fallback."""
        clock = VirtualClock()
        responses = iter(
            [
                httpx.Response(429, json={"retry_after": 0.5, "global": False}),
                httpx.Response(204),
            ]
        )
        gateway = make_gateway(lambda r: next(responses), clock)

        await gateway.call("DELETE", "/channels/1/messages/2")

        assert clock.sleeps == [pytest.approx(0.6)]

    async def test_429_without_any_hint_waits_default(self) -> None:
        """Test that a bare 429 waits one second plus the margin."""
        clock = VirtualClock()
        responses = iter([httpx.Response(429, text="slow down"), httpx.Response(204)])
        gateway = make_gateway(lambda r: next(responses), clock)

        await gateway.call("DELETE", "/channels/1")

        assert clock.sleeps == [pytest.approx(1.1)]

    async def test_429_retry_is_bounded(self) -> None:
        """Test that endless 429s end in RateLimitExhausted."""
        clock = VirtualClock()
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return rate_limited("1")

        gateway = make_gateway(handler, clock, max_retries=3)

        with pytest.raises(RateLimitExhausted) as exc_info:
            await gateway.call("GET", "/guilds/1")

        assert len(requests) == 4
        assert len(clock.sleeps) == 3
        assert exc_info.value.attempts == 4
        assert exc_info.value.retry_after == 1.0

    async def test_exhausted_budget_delays_next_call(self) -> None:
        """Test that remaining=0 holds the caller until the budget resets."""
        clock = VirtualClock()
        request_times: list[float] = []
        responses = iter(
            [
                httpx.Response(
                    200,
                    headers={
                        "X-RateLimit-Remaining": "0",
                        "X-RateLimit-Reset-After": "3",
                        "X-RateLimit-Bucket": "abc123",
                    },
                    json=[],
                ),
                httpx.Response(200, headers={"X-RateLimit-Remaining": "4"}, json=[]),
            ]
        )

        def handler(request: httpx.Request) -> httpx.Response:
            request_times.append(clock.now)
            return next(responses)

        gateway = make_gateway(handler, clock)
        await gateway.call("GET", "/channels/1/messages")
        first_returned_at = clock.now
        await gateway.call("GET", "/channels/1/messages")

        assert first_returned_at == pytest.approx(3.1)
        assert request_times[1] - request_times[0] >= 3.1
        assert clock.sleeps == [pytest.approx(3.1)]

    async def test_remaining_budget_does_not_delay(self) -> None:
        """Test that a non-zero budget returns immediately."""
        clock = VirtualClock()
        gateway = make_gateway(
            lambda r: httpx.Response(
                200,
                headers={"X-RateLimit-Remaining": "1", "X-RateLimit-Reset-After": "5"},
                json={},
            ),
            clock,
        )

        await gateway.call("GET", "/guilds/1")

        assert clock.sleeps == []

    async def test_rate_limit_state_recorded(self) -> None:
        """Test that the last observed budget is exposed."""
        gateway = make_gateway(
            lambda r: httpx.Response(
                200,
                headers={
                    "X-RateLimit-Remaining": "4",
                    "X-RateLimit-Reset-After": "0.75",
                    "X-RateLimit-Bucket": "bucket-1",
                },
                json={},
            ),
            VirtualClock(),
        )

        await gateway.call("GET", "/guilds/1")

        state = gateway.rate_limit
        assert state is not None
        assert state.remaining == 4
        assert state.reset_after == 0.75
        assert state.bucket == "bucket-1"

    async def test_missing_headers_mean_unknown_budget(self) -> None:
        """Test that absent headers never trigger a wait."""
        clock = VirtualClock()
        gateway = make_gateway(lambda r: httpx.Response(200, json={}), clock)

        await gateway.call("GET", "/guilds/1")

        assert gateway.rate_limit is not None
        assert gateway.rate_limit.remaining is None
        assert clock.sleeps == []

    async def test_custom_safety_margin(self) -> None:
        """Test that the safety margin is configurable."""
        clock = VirtualClock()
        responses = iter([rate_limited("2"), httpx.Response(204)])
        gateway = make_gateway(lambda r: next(responses), clock, safety_margin=0.5)

        await gateway.call("DELETE", "/channels/1")

        assert clock.sleeps == [pytest.approx(2.5)]


class TestGatewayLifecycle:
    """Test client ownership."""

    async def test_context_manager_keeps_injected_client_open(self) -> None:
        """Test that an injected client is not closed by the gateway."""
        client = httpx.AsyncClient(
            base_url=BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(204))
        )
        async with DiscordGateway("token", client=client) as gateway:
            await gateway.call("DELETE", "/channels/1")

        assert not client.is_closed
        await client.aclose()

    async def test_owned_client_closed(self) -> None:
        """Test that a gateway-created client is closed on exit."""
        gateway = DiscordGateway("token")
        async with gateway:
            pass
        assert gateway._client.is_closed
