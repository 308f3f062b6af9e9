"""ABI parameter type grammar.

Parses textual ABI type tokens once into a closed tagged union so that
validation, coercion and decoding all dispatch with `match` instead of
comparing strings:

- `UintType(bits)` / `IntType(bits)`: bits in 8..256, step 8
- `AddressType`, `BoolType`, `StringType`
- `BytesType(size)`: size 1..32, or None for dynamic `bytes`
- `ArrayType(element, length)`: `T[k]` or `T[]` (length None)
- `TupleType(components)`: ordered `(name, type)` pairs

Array suffixes stack to any depth (`tuple[2][]`, `uint256[3][]`).
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from abiwatch.constants import MAX_BYTES_SIZE, MAX_INT_BITS, MIN_INT_BITS
from abiwatch.core.errors import SchemaError

_ARRAY_SUFFIX_RE = re.compile(r"^(?P<base>.+)\[(?P<length>\d*)\]$")
_INT_RE = re.compile(r"^(?P<kind>u?int)(?P<bits>\d*)$")
_BYTES_RE = re.compile(r"^bytes(?P<size>\d*)$")


@dataclass(frozen=True, slots=True)
class UintType:
    bits: int = 256

    @property
    def canonical(self) -> str:
        return f"uint{self.bits}"


@dataclass(frozen=True, slots=True)
class IntType:
    bits: int = 256

    @property
    def canonical(self) -> str:
        return f"int{self.bits}"


@dataclass(frozen=True, slots=True)
class AddressType:
    @property
    def canonical(self) -> str:
        return "address"


@dataclass(frozen=True, slots=True)
class BoolType:
    @property
    def canonical(self) -> str:
        return "bool"


@dataclass(frozen=True, slots=True)
class StringType:
    @property
    def canonical(self) -> str:
        return "string"


@dataclass(frozen=True, slots=True)
class BytesType:
    size: int | None = None  # None -> dynamic `bytes`

    @property
    def canonical(self) -> str:
        return "bytes" if self.size is None else f"bytes{self.size}"


@dataclass(frozen=True, slots=True)
class ArrayType:
    element: ParameterType
    length: int | None = None  # None -> dynamic `T[]`

    @property
    def canonical(self) -> str:
        suffix = "" if self.length is None else str(self.length)
        return f"{self.element.canonical}[{suffix}]"


@dataclass(frozen=True, slots=True)
class TupleType:
    components: tuple[tuple[str, ParameterType], ...]

    @property
    def canonical(self) -> str:
        return "(" + ",".join(t.canonical for _, t in self.components) + ")"

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.components]


ParameterType = UintType | IntType | AddressType | BoolType | StringType | BytesType | ArrayType | TupleType


def is_dynamic(ptype: ParameterType) -> bool:
    """True when the ABI head of this type is an offset (string, bytes, T[], ...)."""
    match ptype:
        case StringType():
            return True
        case BytesType(size=None):
            return True
        case ArrayType(length=None):
            return True
        case ArrayType(element=element):
            return is_dynamic(element)
        case TupleType(components=components):
            return any(is_dynamic(t) for _, t in components)
    return False


def _parse_elementary(token: str) -> ParameterType:
    if token == "address":
        return AddressType()
    if token == "bool":
        return BoolType()
    if token == "string":
        return StringType()

    m = _INT_RE.match(token)
    if m:
        bits = int(m.group("bits")) if m.group("bits") else MAX_INT_BITS
        if bits < MIN_INT_BITS or bits > MAX_INT_BITS or bits % 8 != 0 or m.group("bits").startswith("0"):
            raise SchemaError(f"invalid integer width in type {token!r}")
        return UintType(bits) if m.group("kind") == "uint" else IntType(bits)

    m = _BYTES_RE.match(token)
    if m:
        if not m.group("size"):
            return BytesType()
        size = int(m.group("size"))
        if size < 1 or size > MAX_BYTES_SIZE or m.group("size").startswith("0"):
            raise SchemaError(f"invalid bytes size in type {token!r}")
        return BytesType(size)

    raise SchemaError(f"unknown ABI type {token!r}")


def parse_type(type_str: str, components: Sequence[Any] | None = None) -> ParameterType:
    """Parse one ABI `type` token (with optional tuple `components`).

    `components` may hold mappings (`{"name", "type", "components"}`) or any
    object exposing those attributes (e.g. a parsed `AbiParameter`).
    """
    token = type_str.strip() if isinstance(type_str, str) else ""
    if not token:
        raise SchemaError("empty ABI type")

    m = _ARRAY_SUFFIX_RE.match(token)
    if m:
        raw_len = m.group("length")
        length: int | None = None
        if raw_len:
            length = int(raw_len)
            if length < 1:
                raise SchemaError(f"fixed array length must be positive in {token!r}")
        return ArrayType(parse_type(m.group("base"), components), length)

    if token == "tuple":
        if not components:
            raise SchemaError("tuple type requires non-empty components")
        parsed: list[tuple[str, ParameterType]] = []
        for i, comp in enumerate(components):
            name, ctype, sub = _component_fields(comp)
            parsed.append((name or f"arg{i}", parse_type(ctype, sub)))
        return TupleType(tuple(parsed))

    return _parse_elementary(token)


def _component_fields(comp: Any) -> tuple[str, str, Sequence[Any] | None]:
    if isinstance(comp, Mapping):
        ctype = comp.get("type")
        if not isinstance(ctype, str):
            raise SchemaError(f"tuple component without a type: {comp!r}")
        return str(comp.get("name") or ""), ctype, comp.get("components")
    try:
        return comp.name or "", comp.type, comp.components
    except AttributeError as e:
        raise SchemaError(f"unsupported tuple component: {comp!r}") from e
