from __future__ import annotations

from dataclasses import dataclass

from abiwatch.constants import DEFAULT_LOOKBACK_BLOCKS


@dataclass(frozen=True)
class RpcConfig:
    """Configuration for the JSON-RPC chain provider."""

    url: str
    timeout_s: int = 20
    max_connections: int = 64
    poll_interval_s: float = 2.0  # eth_getFilterChanges cadence for subscriptions
    http2: bool = True


@dataclass(frozen=True)
class MonitorConfig:
    """Configuration for monitoring one deployed contract."""

    address: str
    lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS
