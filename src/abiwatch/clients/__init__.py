"""Chain provider clients."""

from abiwatch.clients.rpc import RPC, parse_log

__all__ = ["RPC", "parse_log"]
