"""Decoding utilities: display formatting and the history window."""

from __future__ import annotations

import json
from typing import Any


def to_display(value: Any) -> Any:
    """Render one decoded value for a record.

    - ints (never bools) -> decimal text, so uint256 survives JSON and floats
    - bytes -> 0x-hex text
    - lists/tuples/dicts -> canonical JSON text
    - everything else (str, bool, None) unchanged
    """
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(_jsonable(value), separators=(",", ":"))
    return value


def _jsonable(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return str(value)


def history_window(current_block: int, lookback: int) -> tuple[int, int]:
    """Inclusive [from, to] window ending at `current_block`."""
    if current_block < 0:
        raise ValueError("current_block must be >= 0")
    if lookback < 0:
        raise ValueError("lookback must be >= 0")
    return max(0, current_block - lookback), current_block
