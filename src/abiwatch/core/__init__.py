"""Core data models, configuration, interfaces and errors.

This package provides:
- Data models (ConstructorArgument, ValidationResult, EventLog, EventLogRecord)
- Configuration classes (RpcConfig, MonitorConfig)
- Error taxonomy rooted at AbiwatchError
"""

from abiwatch.core.config import MonitorConfig, RpcConfig
from abiwatch.core.models import (
    ConstructorArgument,
    EventLog,
    EventLogRecord,
    FieldError,
    LogMeta,
    ValidationResult,
)

__all__ = [
    "MonitorConfig",
    "RpcConfig",
    "ConstructorArgument",
    "EventLog",
    "EventLogRecord",
    "FieldError",
    "LogMeta",
    "ValidationResult",
]
