from __future__ import annotations

from .core.errors import (
    AbiwatchError,
    AlreadyMonitoring,
    NotFound,
    NotMonitoring,
    ProviderError,
    RangeTooLarge,
    SchemaError,
    SubscriptionError,
)
from .core.models import ConstructorArgument, EventLog, EventLogRecord, FieldError, LogMeta, ValidationResult
from .decoding import decode_historical, decode_live, decode_raw_log, merge
from .monitoring import EventMonitor, MonitorState, SubscriptionManager
from .schema import SchemaIndex, parse_type
from .validation import coerce_arguments, extract_constructor_arguments, validate

__version__ = "0.1.0"

__all__ = [
    "SchemaIndex",
    "parse_type",
    "validate",
    "coerce_arguments",
    "extract_constructor_arguments",
    "decode_live",
    "decode_raw_log",
    "decode_historical",
    "merge",
    "EventMonitor",
    "MonitorState",
    "SubscriptionManager",
    "ConstructorArgument",
    "EventLog",
    "EventLogRecord",
    "FieldError",
    "LogMeta",
    "ValidationResult",
    "AbiwatchError",
    "AlreadyMonitoring",
    "NotFound",
    "NotMonitoring",
    "ProviderError",
    "RangeTooLarge",
    "SchemaError",
    "SubscriptionError",
]
