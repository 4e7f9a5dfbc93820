"""Runtime configuration.

Values come from environment variables with sensible defaults:
- DEXROUTE_RPC_URLS: Comma-separated RPC endpoints, tried in order
- DEXROUTE_PROXY_URL: Optional HTTP proxy; adds proxied copies of every
  endpoint as failover alternates
- DEXROUTE_CHAIN_ID: Expected chain id, checked after failover
- DEXROUTE_ORDER_STORE: JSON file for persisted limit orders
  (unset keeps orders in memory only)
- DEXROUTE_HOST / DEXROUTE_PORT / DEXROUTE_DEBUG: HTTP service settings
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dexroute.constants import CHAIN_ID, DEFAULT_RPC_URL

RPC_URLS = [u.strip() for u in os.environ.get("DEXROUTE_RPC_URLS", DEFAULT_RPC_URL).split(",") if u.strip()]
PROXY_URL = os.environ.get("DEXROUTE_PROXY_URL") or None
EXPECTED_CHAIN_ID = int(os.environ.get("DEXROUTE_CHAIN_ID", str(CHAIN_ID)))
ORDER_STORE_PATH = os.environ.get("DEXROUTE_ORDER_STORE") or None

HOST = os.environ.get("DEXROUTE_HOST", "0.0.0.0")
PORT = int(os.environ.get("DEXROUTE_PORT", "8000"))
DEBUG = os.environ.get("DEXROUTE_DEBUG", "false").lower() in ("true", "1", "yes")

# Limit-order watch cycle period
ORDER_WATCH_INTERVAL = 30.0


@dataclass(frozen=True)
class ChainClientConfig:
    """Tuning constants for ChainClient. All durations in seconds."""

    # Cache
    cache_ttl: float = 15.0
    cache_purge_threshold: int = 50

    # Per-call defaults
    timeout: float = 10.0
    retries: int = 2
    retry_backoff: float = 0.5

    # Adaptive throttle between outgoing requests
    min_interval: float = 0.2
    max_interval: float = 5.0
    widen_factor: float = 2.0
    narrow_factor: float = 0.8
    narrow_after_successes: int = 5

    # Circuit breaker: consecutive failures before cooling down
    max_errors: int = 5
    rate_limit_cooldown: float = 60.0
    network_cooldown: float = 30.0
    error_cooldown: float = 10.0

    # Consecutive network failures before rotating endpoint
    failover_threshold: int = 3


__all__ = [
    "RPC_URLS",
    "PROXY_URL",
    "EXPECTED_CHAIN_ID",
    "ORDER_STORE_PATH",
    "HOST",
    "PORT",
    "DEBUG",
    "ORDER_WATCH_INTERVAL",
    "ChainClientConfig",
]
