"""Deployment history storage.

This package provides:
- DeploymentEntry: validated deployment record
- InMemoryHistoryStore / JsonlHistoryStore: HistoryStore implementations
"""

from abiwatch.storage.entries import DeploymentEntry
from abiwatch.storage.history import InMemoryHistoryStore, JsonlHistoryStore

__all__ = [
    "DeploymentEntry",
    "InMemoryHistoryStore",
    "JsonlHistoryStore",
]
