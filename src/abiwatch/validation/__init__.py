"""Argument validation and coercion against ABI parameter types.

This package provides:
- `validate` / `validate_constructor`: aggregate every field error
- `extract_constructor_arguments`: blank arguments for a constructor
- `coerce_arguments`: validated text to native values
"""

from abiwatch.validation.coercion import coerce_arguments, coerce_value
from abiwatch.validation.validator import (
    REQUIRED,
    extract_constructor_arguments,
    validate,
    validate_constructor,
)

__all__ = [
    "REQUIRED",
    "coerce_arguments",
    "coerce_value",
    "extract_constructor_arguments",
    "validate",
    "validate_constructor",
]
