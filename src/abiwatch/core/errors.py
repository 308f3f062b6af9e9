"""Exception taxonomy.

Every error raised by the library derives from `AbiwatchError` so callers
(and the CLI) can catch one base class.

- `SchemaError`: malformed ABI, fatal to schema load.
- `NotFound`: lookup of a constructor/function/event that the ABI lacks.
- `ArgumentValidationError`: raised only by explicit coercion; plain
  validation always returns a `ValidationResult` instead.
- `DecodingError`: raw log data does not match the event definition.
- `FetchCancelled`: the caller signalled cancellation of a historical fetch.
- `ProviderError` / `RangeTooLarge`: historical fetch failures.
- `MonitorStateError` and subclasses: state misuse by the caller.
- `SubscriptionError`: listener registration failed and was rolled back.
- `StorageError`: history store could not read or write.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from abiwatch.core.models import ValidationResult


class AbiwatchError(Exception):
    """Base class for all library errors."""


class SchemaError(AbiwatchError):
    pass


class NotFound(AbiwatchError, LookupError):
    pass


class ArgumentValidationError(AbiwatchError, ValueError):
    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        details = "; ".join(f"{e.field}: {e.message}" for e in result.errors)
        super().__init__(f"invalid arguments: {details}")


class DecodingError(AbiwatchError):
    pass


class ProviderError(AbiwatchError):
    """The chain provider rejected or failed a request."""


class RangeTooLarge(ProviderError):
    """The provider refused the block range; retry with a narrower window."""

    def __init__(self, from_block: int, to_block: int, detail: str = "") -> None:
        self.from_block = from_block
        self.to_block = to_block
        msg = f"block range {from_block}-{to_block} rejected by provider"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class MonitorStateError(AbiwatchError):
    pass


class AlreadyMonitoring(MonitorStateError):
    pass


class NotMonitoring(MonitorStateError):
    pass


class HistoryInProgress(MonitorStateError):
    pass


class SubscriptionError(AbiwatchError):
    pass


class StorageError(AbiwatchError):
    pass


class FetchCancelled(AbiwatchError):
    """A historical fetch was cancelled by its caller."""
