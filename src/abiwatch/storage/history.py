"""Deployment history stores.

- `InMemoryHistoryStore`: dict-backed, for tests and short sessions.
- `JsonlHistoryStore`: append-only JSONL journal; one line per save, the
  latest line for an id wins and ordering follows the first save.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from pydantic import ValidationError

from abiwatch.core.errors import StorageError
from abiwatch.storage.entries import DeploymentEntry

logger = logging.getLogger(__name__)


class InMemoryHistoryStore:
    def __init__(self) -> None:
        self._entries: dict[str, DeploymentEntry] = {}
        self._lock = threading.Lock()

    def save_deployment(self, entry: DeploymentEntry) -> None:
        with self._lock:
            self._entries[entry.id] = entry

    def get_deployment(self, deployment_id: str) -> DeploymentEntry | None:
        with self._lock:
            return self._entries.get(deployment_id)

    def get_deployment_history(self) -> list[DeploymentEntry]:
        with self._lock:
            return list(self._entries.values())


class JsonlHistoryStore:
    """Thread-safe journal writer/reader for deployment entries."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot open history journal {self.path}: {e}") from e
        self._lock = threading.Lock()

    def save_deployment(self, entry: DeploymentEntry) -> None:
        line = entry.to_json_line()
        with self._lock:
            try:
                self._write_line(self.path, line)
            except OSError as e:
                raise StorageError(f"cannot append to {self.path}: {e}") from e

    def get_deployment(self, deployment_id: str) -> DeploymentEntry | None:
        return self._load().get(deployment_id)

    def get_deployment_history(self) -> list[DeploymentEntry]:
        return list(self._load().values())

    def _load(self) -> dict[str, DeploymentEntry]:
        entries: dict[str, DeploymentEntry] = {}
        with self._lock:
            try:
                text = self.path.read_text()
            except OSError as e:
                raise StorageError(f"cannot read {self.path}: {e}") from e
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                entry = DeploymentEntry.model_validate_json(line)
            except ValidationError as e:
                # A torn final line from an interrupted write is tolerated.
                logger.warning("skipping invalid history line %d in %s: %s", lineno, self.path, e)
                continue
            entries[entry.id] = entry
        return entries

    @staticmethod
    def _write_line(path: Path, line: str) -> None:
        """Write a line to file with immediate flush and sync."""
        with open(path, "a", buffering=1) as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())
