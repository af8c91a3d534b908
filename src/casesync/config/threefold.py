"""Threefold ticket API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

THREEFOLD_TIMEOUT_SECONDS = 30.0
# one call per 200ms across every ticket request of the process
THREEFOLD_MIN_REQUEST_INTERVAL_SECONDS = 0.2


@dataclass(frozen=True, slots=True)
class ThreefoldConfig:
    """Holds Threefold API configuration values."""

    api_url: str
    api_token: str
    resilience: ResilienceConfig


def get_threefold_config(*, resilience: ResilienceConfig | None = None) -> ThreefoldConfig:
    values = require_env_vars(("THREEFOLD_API_URL", "THREEFOLD_API_TOKEN"))
    api_url = values["THREEFOLD_API_URL"].rstrip("/")
    api_token = values["THREEFOLD_API_TOKEN"].strip()
    return ThreefoldConfig(
        api_url=api_url,
        api_token=api_token,
        resilience=resilience
        or ResilienceConfig(
            name="threefold",
            base_url=api_url,
            timeout_seconds=THREEFOLD_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=1, per_seconds=THREEFOLD_MIN_REQUEST_INTERVAL_SECONDS),
            default_headers={"Authorization": f"Bearer {api_token}"},
        ),
    )
