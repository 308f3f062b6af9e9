"""Event monitor for one deployed contract.

Wires a `SubscriptionManager` (live path) and `decode_historical`
(historical path) into one shared `EventLogBuffer`.

Rules
-----
- Only one historical load may be in flight, and none while monitoring,
  so two sources never write the same records concurrently.
- Every `stop()` bumps an epoch. Live callbacks and historical results
  carry the epoch they started under; stale ones are dropped instead of
  appended.
- A historical load takes an optional `asyncio.Event` for cancellation.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from abiwatch.core.config import MonitorConfig
from abiwatch.core.errors import (
    AbiwatchError,
    AlreadyMonitoring,
    DecodingError,
    HistoryInProgress,
    ProviderError,
)
from abiwatch.core.interfaces import IChainProvider
from abiwatch.core.models import EventLog, EventLogRecord
from abiwatch.decoding.decoder import decode_historical, decode_raw_log
from abiwatch.monitoring.buffer import EventLogBuffer
from abiwatch.monitoring.subscriptions import MonitorState, SubscriptionManager
from abiwatch.schema.abi import Definition, SchemaIndex

logger = logging.getLogger(__name__)


class EventMonitor:
    """Live + historical event log for one contract handle."""

    def __init__(
        self,
        schema: SchemaIndex,
        provider: IChainProvider,
        config: MonitorConfig,
        *,
        manager: SubscriptionManager | None = None,
        buffer: EventLogBuffer | None = None,
    ) -> None:
        self.schema = schema
        self.provider = provider
        self.config = config
        self.manager = manager or SubscriptionManager()
        self.buffer = buffer or EventLogBuffer()
        self._epoch = 0
        self._history_in_flight = False
        self._starting = False

        anonymous = [ev.name for ev in schema.event_definitions if ev.anonymous]
        if anonymous:
            logger.warning("anonymous events cannot be filtered by topic and are skipped: %s", anonymous)
        self.event_definitions: list[Definition] = [ev for ev in schema.event_definitions if not ev.anonymous]

    # ---------- state ----------

    @property
    def state(self) -> MonitorState:
        return self.manager.state

    @property
    def is_monitoring(self) -> bool:
        return self.manager.is_monitoring

    @property
    def history_in_flight(self) -> bool:
        return self._history_in_flight

    # ---------- live ----------

    async def start(self) -> None:
        if self._history_in_flight:
            raise HistoryInProgress("wait for the historical load to finish before monitoring")
        epoch = self._epoch

        def on_log(event_def: Definition, log: EventLog) -> None:
            self._on_live_log(epoch, event_def, log)

        self._starting = True
        try:
            await self.manager.start(self.provider, self.config.address, self.event_definitions, on_log)
        finally:
            self._starting = False

    async def stop(self) -> None:
        """Stop live monitoring; also invalidates any in-flight history load."""
        self._epoch += 1
        await self.manager.stop()

    def _on_live_log(self, epoch: int, event_def: Definition, log: EventLog) -> None:
        if epoch != self._epoch or not self.manager.is_monitoring:
            logger.debug("dropping %s log delivered after stop", event_def.name)
            return
        try:
            record = decode_raw_log(event_def, log)
        except DecodingError as e:
            logger.warning("undecodable live %s log %s-%s: %s", event_def.name, log.tx_hash, log.log_index, e)
            return
        if self.buffer.add_live(record):
            logger.debug("new event %s at block %d", record.event_name, record.block_number)

    # ---------- historical ----------

    async def load_history(
        self,
        *,
        lookback: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> list[EventLogRecord]:
        """Fetch recent logs for every event and merge them into the buffer.

        Returns the records fetched (possibly already present). Raises
        AlreadyMonitoring / HistoryInProgress on misuse and RangeTooLarge /
        ProviderError when the provider fails; the monitor state is
        unaffected either way.
        """
        if self.manager.is_monitoring or self._starting:
            raise AlreadyMonitoring("stop live monitoring before loading history")
        if self._history_in_flight:
            raise HistoryInProgress("a historical load is already running")

        self._history_in_flight = True
        epoch = self._epoch
        lookback = self.config.lookback_blocks if lookback is None else lookback
        try:
            try:
                head = await self.provider.get_block_number()
            except AbiwatchError:
                raise
            except Exception as e:
                raise ProviderError(f"get_block_number failed: {type(e).__name__}: {e}") from e

            fetched: list[EventLogRecord] = []
            for event_def in self.event_definitions:
                fetched.extend(
                    await decode_historical(
                        event_def,
                        self.provider,
                        self.config.address,
                        head,
                        lookback=lookback,
                        cancel=cancel,
                    )
                )
        finally:
            self._history_in_flight = False

        if epoch != self._epoch:
            logger.info("discarding %d historical record(s) resolved after stop", len(fetched))
            return []
        added = self.buffer.merge_historical(fetched)
        logger.info("loaded %d historical event(s) (%d new)", len(fetched), added)
        return fetched

    # ---------- log access ----------

    def clear(self) -> None:
        self.buffer.clear()

    def events(self, event_name: str | None = None) -> list[EventLogRecord]:
        return self.buffer.snapshot(event_name)

    def counts(self) -> dict[str, int]:
        """Per-event record counts (every known event, zero included)."""
        counts = self.buffer.counts()
        return {ev.name: counts.get(ev.name, 0) for ev in self.event_definitions}

    def export_records(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self.buffer.snapshot()]

    def export_json(self) -> str:
        return json.dumps(self.export_records(), indent=2)

    async def __aenter__(self) -> EventMonitor:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()
