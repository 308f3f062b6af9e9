"""Convert validated textual arguments into native values for an ABI encoder."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from typing import Any

from abiwatch.core.errors import ArgumentValidationError
from abiwatch.core.models import ConstructorArgument
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
)
from abiwatch.validation.utils import as_text, parse_int_literal
from abiwatch.validation.validator import SchemaInput, as_parameters, validate


def coerce_value(ptype: ParameterType, value: Any) -> Any:
    """Convert one already-validated value (text or JSON element)."""
    match ptype:
        case UintType() | IntType():
            return parse_int_literal(as_text(value))
        case BoolType():
            return as_text(value).lower() == "true"
        case BytesType():
            return bytes.fromhex(as_text(value)[2:])
        case AddressType():
            return as_text(value)
        case StringType():
            return as_text(value)
        case ArrayType(element=element):
            items = value if isinstance(value, list) else json.loads(as_text(value))
            return [coerce_value(element, item) for item in items]
        case TupleType(components=components):
            raw = value if isinstance(value, (list, dict)) else json.loads(as_text(value))
            if isinstance(raw, dict):
                return tuple(coerce_value(ctype, raw[name]) for name, ctype in components)
            return tuple(coerce_value(ctype, item) for (_, ctype), item in zip(components, raw))
    raise TypeError(f"unsupported parameter type: {ptype!r}")


def coerce_arguments(
    schema_inputs: Iterable[SchemaInput],
    provided: Sequence[ConstructorArgument],
) -> list[Any]:
    """Validate, then convert arguments to native values in ABI input order.

    Raises `ArgumentValidationError` (carrying the full result) if any
    argument is invalid.
    """
    params = as_parameters(schema_inputs)
    result = validate(params, provided)
    if not result.valid:
        raise ArgumentValidationError(result)
    by_name: dict[str, ConstructorArgument] = {}
    for arg in provided:
        by_name.setdefault(arg.name, arg)
    return [coerce_value(p.type, by_name[p.name].value) for p in params]
