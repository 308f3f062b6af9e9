"""Core data models.

This module defines:
- `ConstructorArgument`: one user-supplied textual argument.
- `FieldError` / `ValidationResult`: aggregated validation outcome.
- `EventLog`: minimal raw log record as fetched from a provider.
- `LogMeta`: per-log metadata used during decoding.
- `EventLogRecord`: decoded, immutable event record.

Design notes
------------
- `ValidationResult.valid` is derived from `errors`, so the two can never
  disagree.
- Decoded integer values are carried as decimal strings (uint256 safety).
- `EventLogRecord.to_dict` uses the camelCase keys of the export format.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


# === Validation ===


@dataclass(slots=True)
class ConstructorArgument:
    """A named, typed argument as typed by the user (always text)."""

    name: str
    type: str
    value: str = ""


@dataclass(slots=True, frozen=True)
class FieldError:
    field: str  # input name or path, e.g. "balances[2]" / "order.amount"
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(slots=True, frozen=True)
class ValidationResult:
    """Outcome of validating a set of arguments (errors in ABI input order)."""

    errors: tuple[FieldError, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": [e.to_dict() for e in self.errors]}


# === Raw log ===


@dataclass(slots=True, frozen=True)
class EventLog:
    """Raw log as fetched from RPC, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data_hex: str  # "0x..."
    block_number: int
    tx_hash: str  # lowercased 0x...
    log_index: int
    block_timestamp: int | None = None

    def meta(self) -> LogMeta:
        ts = self.block_timestamp * 1000 if self.block_timestamp is not None else None
        return LogMeta(
            block_number=self.block_number,
            transaction_hash=self.tx_hash,
            log_index=self.log_index,
            timestamp=ts,
        )


@dataclass(slots=True, frozen=True)
class LogMeta:
    """Lightweight metadata for a single log used during decoding."""

    block_number: int
    transaction_hash: str
    log_index: int
    timestamp: int | None = None  # milliseconds since epoch


# === Decoded record ===


@dataclass(slots=True, frozen=True)
class EventLogRecord:
    """A decoded event. Append-only: never mutated after creation."""

    id: str  # "<transactionHash>-<logIndex>"
    event_name: str
    args: Mapping[str, Any]
    block_number: int
    transaction_hash: str
    timestamp: int

    @staticmethod
    def make_id(transaction_hash: str, log_index: int) -> str:
        return f"{transaction_hash}-{log_index}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "eventName": self.event_name,
            "args": dict(self.args),
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))
