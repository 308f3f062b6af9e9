from __future__ import annotations

import threading
from collections.abc import Iterable

from abiwatch.core.models import EventLogRecord
from abiwatch.decoding.decoder import merge


class EventLogBuffer:
    """Ordered in-memory event log, newest block first.

    Live callbacks may arrive on any thread: every write and every snapshot
    goes through one lock. Records are never modified, only added or
    cleared as a whole.
    """

    def __init__(self) -> None:
        self._records: list[EventLogRecord] = []
        self._ids: set[str] = set()
        self._lock = threading.Lock()

    def add_live(self, record: EventLogRecord) -> bool:
        """Put a live record at the front; False if its id is already present."""
        with self._lock:
            if record.id in self._ids:
                return False
            self._ids.add(record.id)
            self._records.insert(0, record)
            return True

    def merge_historical(self, records: Iterable[EventLogRecord]) -> int:
        """Merge historical records in; return how many were new."""
        with self._lock:
            before = len(self._records)
            self._records = merge(self._records, records)
            self._ids = {r.id for r in self._records}
            return len(self._records) - before

    def clear(self) -> None:
        with self._lock:
            self._records = []
            self._ids = set()

    def snapshot(self, event_name: str | None = None) -> list[EventLogRecord]:
        with self._lock:
            if event_name is None:
                return list(self._records)
            return [r for r in self._records if r.event_name == event_name]

    def counts(self) -> dict[str, int]:
        with self._lock:
            out: dict[str, int] = {}
            for r in self._records:
                out[r.event_name] = out.get(r.event_name, 0) + 1
            return out

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
