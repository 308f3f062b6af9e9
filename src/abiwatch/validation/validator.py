"""Argument validation against declared ABI parameter types.

`validate(...)` never raises for bad user input: every problem becomes a
`FieldError` and all of them are reported, in ABI input order. Nested
values (arrays, tuples) are reported with paths such as `balances[2]` or
`order.amount`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from abiwatch.core.models import ConstructorArgument, FieldError, ValidationResult
from abiwatch.schema.abi import AbiParameter, Parameter, SchemaIndex
from abiwatch.schema.types import (
    AddressType,
    ArrayType,
    BoolType,
    BytesType,
    IntType,
    ParameterType,
    StringType,
    TupleType,
    UintType,
    parse_type,
)
from abiwatch.validation.utils import (
    ADDRESS_RE,
    HEX_RE,
    as_text,
    component_path,
    element_path,
    int_bounds,
    load_json,
    parse_int_literal,
)

REQUIRED = "required"

_UNSET = object()

# Scalars whose textual form must match exactly.
_EXACT_TYPES = (UintType, IntType, AddressType, BoolType, BytesType)

SchemaInput = Parameter | AbiParameter | Mapping[str, Any]


def as_parameters(schema_inputs: Iterable[SchemaInput]) -> list[Parameter]:
    """Normalize declared inputs (parsed, pydantic or plain dicts) to `Parameter`s."""
    out: list[Parameter] = []
    for i, item in enumerate(schema_inputs):
        if isinstance(item, Parameter):
            out.append(item)
            continue
        raw = item if isinstance(item, AbiParameter) else AbiParameter.model_validate(item)
        out.append(
            Parameter(
                name=raw.name or f"arg{i}",
                type=parse_type(raw.type, raw.components),
                raw=raw,
                indexed=raw.indexed,
            )
        )
    return out


# ---------- type checks ----------


def _check_int(text: str, bits: int, signed: bool) -> str | None:
    value = parse_int_literal(text)
    kind = f"int{bits}" if signed else f"uint{bits}"
    if value is None:
        return f"must be a valid integer ({kind})"
    if not signed and value < 0:
        return f"must be non-negative ({kind})"
    lo, hi = int_bounds(bits, signed=signed)
    if value < lo or value > hi:
        return f"out of range for {kind}"
    return None


def _check_bytes(text: str, size: int | None) -> str | None:
    if not HEX_RE.fullmatch(text):
        return "must be a 0x-prefixed hex string of even length"
    if size is not None and len(text) - 2 != 2 * size:
        return f"must be exactly {size} bytes ({2 * size} hex characters)"
    return None


def _check_value(ptype: ParameterType, value: Any, path: str, errors: list[FieldError]) -> None:
    """Validate one value (text, or a JSON-decoded element) and append any errors."""
    if isinstance(value, (list, dict)) and isinstance(ptype, (ArrayType, TupleType)):
        decoded: Any = value
    else:
        text = as_text(value)
        if not text.strip():
            errors.append(FieldError(path, REQUIRED))
            return
        decoded = _UNSET
        msg: str | None = None
        if text != text.strip() and isinstance(ptype, _EXACT_TYPES):
            errors.append(FieldError(path, "must not have leading or trailing whitespace"))
            return
        match ptype:
            case UintType(bits=bits):
                msg = _check_int(text, bits, signed=False)
            case IntType(bits=bits):
                msg = _check_int(text, bits, signed=True)
            case AddressType():
                msg = None if ADDRESS_RE.fullmatch(text) else "must be 0x followed by 40 hex characters"
            case BoolType():
                msg = None if text.lower() in ("true", "false") else "must be 'true' or 'false'"
            case BytesType(size=size):
                msg = _check_bytes(text, size)
            case StringType():
                msg = None
            case ArrayType() | TupleType():
                ok, decoded = load_json(text.strip())
                msg = None if ok else "must be a valid JSON literal"
        if msg:
            errors.append(FieldError(path, msg))
            return
        if decoded is _UNSET:
            return

    match ptype:
        case ArrayType():
            _check_array(ptype, decoded, path, errors)
        case TupleType():
            _check_tuple(ptype, decoded, path, errors)


def _check_array(ptype: ArrayType, decoded: Any, path: str, errors: list[FieldError]) -> None:
    if not isinstance(decoded, list):
        errors.append(FieldError(path, "must be a JSON array"))
        return
    if ptype.length is not None and len(decoded) != ptype.length:
        errors.append(FieldError(path, f"must contain exactly {ptype.length} elements, got {len(decoded)}"))
        return
    for i, item in enumerate(decoded):
        _check_value(ptype.element, item, element_path(path, i), errors)


def _check_tuple(ptype: TupleType, decoded: Any, path: str, errors: list[FieldError]) -> None:
    if isinstance(decoded, list):
        if len(decoded) != len(ptype.components):
            errors.append(
                FieldError(path, f"must contain exactly {len(ptype.components)} components, got {len(decoded)}")
            )
            return
        for (name, ctype), item in zip(ptype.components, decoded):
            _check_value(ctype, item, component_path(path, name), errors)
    elif isinstance(decoded, dict):
        for name, ctype in ptype.components:
            _check_value(ctype, decoded.get(name), component_path(path, name), errors)
        for key in decoded:
            if key not in ptype.names:
                errors.append(FieldError(component_path(path, str(key)), "unexpected component"))
    else:
        errors.append(FieldError(path, "must be a JSON array or object"))


# ---------- public API ----------


def validate(
    schema_inputs: Iterable[SchemaInput],
    provided: Sequence[ConstructorArgument],
) -> ValidationResult:
    """Validate provided arguments against declared inputs.

    Checks run per declared input in ABI order and never short-circuit;
    arguments that match no declared input, or repeat a name, are reported
    last under the `arguments` field.
    """
    params = as_parameters(schema_inputs)
    by_name: dict[str, ConstructorArgument] = {}
    duplicates: list[str] = []
    for arg in provided:
        if arg.name in by_name:
            if arg.name not in duplicates:
                duplicates.append(arg.name)
            continue
        by_name[arg.name] = arg

    errors: list[FieldError] = []
    for param in params:
        arg = by_name.get(param.name)
        if arg is None or not arg.value.strip():
            errors.append(FieldError(param.name, REQUIRED))
            continue
        _check_value(param.type, arg.value, param.name, errors)

    declared = {p.name for p in params}
    for name in by_name:
        if name not in declared:
            errors.append(FieldError("arguments", f"unexpected argument {name!r}"))
    for name in duplicates:
        errors.append(FieldError("arguments", f"duplicate argument {name!r}"))

    return ValidationResult(tuple(errors))


def validate_constructor(index: SchemaIndex, provided: Sequence[ConstructorArgument]) -> ValidationResult:
    """Validate against the constructor inputs (no constructor means no inputs)."""
    return validate(index.constructor_inputs, provided)


def extract_constructor_arguments(index: SchemaIndex) -> list[ConstructorArgument]:
    """Blank arguments for every constructor input, in ABI order."""
    return [ConstructorArgument(name=p.name, type=p.type_str, value="") for p in index.constructor_inputs]
