"""ABI schema parsing.

This package provides:
- `SchemaIndex`: indexed, typed view of a contract ABI
- `Definition` / `Parameter`: parsed ABI entries and inputs
- The `ParameterType` grammar (`parse_type`, `UintType`, `ArrayType`, ...)
"""

from abiwatch.schema.abi import AbiEntry, AbiParameter, Definition, Parameter, SchemaIndex
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
    is_dynamic,
    parse_type,
)

__all__ = [
    "AbiEntry",
    "AbiParameter",
    "Definition",
    "Parameter",
    "SchemaIndex",
    "AddressType",
    "ArrayType",
    "BoolType",
    "BytesType",
    "IntType",
    "ParameterType",
    "StringType",
    "TupleType",
    "UintType",
    "is_dynamic",
    "parse_type",
]
