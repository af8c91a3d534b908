from __future__ import annotations

import asyncio
import time

import httpx
from aiolimiter import AsyncLimiter

from casesync.adapters.http_resilience import (
    RateLimitedTransport,
    ResilientClient,
    build_limiter,
    build_retry,
)
from casesync.config.http_resilience import RateLimit, ResilienceConfig, RetryPolicy


def _config(**overrides: object) -> ResilienceConfig:
    values: dict[str, object] = {
        "name": "test",
        "base_url": "https://api.example.com",
        "retry": RetryPolicy(total=0),
    }
    values.update(overrides)
    return ResilienceConfig(**values)  # type: ignore[arg-type]


def test_build_limiter_is_optional() -> None:
    assert build_limiter(None) is None
    limiter = build_limiter(RateLimit(max_calls=1, per_seconds=0.2))
    assert isinstance(limiter, AsyncLimiter)
    assert limiter.max_rate == 1
    assert limiter.time_period == 0.2


def test_build_retry_copies_policy() -> None:
    retry = build_retry(RetryPolicy(total=3))

    assert retry.total == 3


def test_client_applies_base_url_and_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    async def run() -> httpx.Response:
        async with ResilientClient(
            _config(default_headers={"Authorization": "Bearer x"}),
            transport=httpx.MockTransport(handler),
        ) as client:
            return await client.get("/ping")

    response = asyncio.run(run())

    assert response.json() == {"ok": True}
    assert str(seen[0].url) == "https://api.example.com/ping"
    assert seen[0].headers["Authorization"] == "Bearer x"


def test_clients_share_an_injected_limiter() -> None:
    limiter = AsyncLimiter(1, 0.1)
    sent_at: list[float] = []

    def handler(_request: httpx.Request) -> httpx.Response:
        sent_at.append(time.monotonic())
        return httpx.Response(204)

    transport = httpx.MockTransport(handler)

    async def run() -> list[int]:
        statuses: list[int] = []
        for _ in range(2):
            async with ResilientClient(_config(), limiter=limiter, transport=transport) as client:
                statuses.append((await client.post("/tickets")).status_code)
        return statuses

    assert asyncio.run(run()) == [204, 204]
    assert sent_at[1] - sent_at[0] >= 0.09


def test_every_retry_attempt_takes_a_limiter_slot() -> None:
    sent_at: list[float] = []

    def handler(_request: httpx.Request) -> httpx.Response:
        sent_at.append(time.monotonic())
        status = 503 if len(sent_at) < 3 else 200
        return httpx.Response(status)

    config = _config(
        retry=RetryPolicy(total=3, backoff_factor=0.0),
        ratelimit=RateLimit(max_calls=1, per_seconds=0.1),
    )

    async def run() -> int:
        async with ResilientClient(config, transport=httpx.MockTransport(handler)) as client:
            return (await client.get("/tickets/1")).status_code

    assert asyncio.run(run()) == 200
    assert len(sent_at) == 3
    assert all(later - earlier >= 0.09 for earlier, later in zip(sent_at, sent_at[1:], strict=False))


def test_rate_limited_transport_closes_wrapped_transport() -> None:
    closed: list[bool] = []

    class Recording(httpx.AsyncBaseTransport):
        async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, request=request)

        async def aclose(self) -> None:
            closed.append(True)

    asyncio.run(RateLimitedTransport(Recording(), AsyncLimiter(1, 1)).aclose())

    assert closed == [True]
