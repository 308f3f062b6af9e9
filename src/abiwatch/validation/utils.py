"""Text helpers shared by validation and coercion: literal parsing and field paths."""

from __future__ import annotations

import json
import re
from typing import Any

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
HEX_RE = re.compile(r"^0x(?:[0-9a-fA-F]{2})*$")
INT_RE = re.compile(r"^-?(?:0[xX][0-9a-fA-F]+|[0-9]+)$")


def parse_int_literal(text: str) -> int | None:
    """Parse a base-10 or 0x-hex integer (optionally negative); None if malformed.

    Surrounding whitespace is malformed.
    """
    if not INT_RE.fullmatch(text):
        return None
    negative = text.startswith("-")
    digits = text[1:] if negative else text
    try:
        value = int(digits, 16) if digits[:2].lower() == "0x" else int(digits, 10)
    except ValueError:  # exceeds the interpreter's int digit limit
        return None
    return -value if negative else value


def int_bounds(bits: int, *, signed: bool) -> tuple[int, int]:
    if signed:
        return -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
    return 0, 2**bits - 1


def as_text(value: Any) -> str:
    """Render a JSON-decoded element back to the textual form users type."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    return json.dumps(value, separators=(",", ":"))


def load_json(text: str) -> tuple[bool, Any]:
    """Return (ok, value) for a JSON literal; never raises."""
    try:
        return True, json.loads(text)
    except ValueError:
        return False, None


def element_path(path: str, index: int) -> str:
    return f"{path}[{index}]"


def component_path(path: str, name: str) -> str:
    return f"{path}.{name}"
