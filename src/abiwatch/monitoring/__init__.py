"""Live event monitoring.

This package provides:
- SubscriptionManager / SubscriptionHandle: all-or-nothing listener lifecycle
- EventLogBuffer: lock-protected ordered event log
- EventMonitor: live + historical monitoring for one contract
"""

from abiwatch.monitoring.buffer import EventLogBuffer
from abiwatch.monitoring.monitor import EventMonitor
from abiwatch.monitoring.subscriptions import MonitorState, SubscriptionHandle, SubscriptionManager

__all__ = [
    "EventLogBuffer",
    "EventMonitor",
    "MonitorState",
    "SubscriptionHandle",
    "SubscriptionManager",
]
