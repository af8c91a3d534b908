"""Shared fixtures for Threefold adapter tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from casesync.adapters.threefold import ThreefoldClient
from casesync.config.http_resilience import ResilienceConfig, RetryPolicy
from casesync.config.threefold import ThreefoldConfig, get_threefold_config

if TYPE_CHECKING:
    from collections.abc import Callable

    Handler = Callable[[httpx.Request], httpx.Response]

BASE_URL = "https://threefold.example.com"


@pytest.fixture
def threefold_config() -> ThreefoldConfig:
    return ThreefoldConfig(
        api_url=BASE_URL,
        api_token="secret-token",
        resilience=ResilienceConfig(
            name="threefold",
            base_url=BASE_URL,
            retry=RetryPolicy(total=0),
            default_headers={"Authorization": "Bearer secret-token"},
        ),
    )


@pytest.fixture
def make_client(threefold_config: ThreefoldConfig) -> Callable[[Handler], ThreefoldClient]:
    def factory(handler: Handler) -> ThreefoldClient:
        return ThreefoldClient(config=threefold_config, transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def make_configured_client(
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[[Handler], ThreefoldClient]:
    """Clients built from the environment, with the shipped retry and rate limit."""

    monkeypatch.setenv("THREEFOLD_API_URL", BASE_URL)
    monkeypatch.setenv("THREEFOLD_API_TOKEN", "secret-token")

    def factory(handler: Handler) -> ThreefoldClient:
        return ThreefoldClient(
            config=get_threefold_config(), transport=httpx.MockTransport(handler)
        )

    return factory
