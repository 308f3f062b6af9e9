"""Subscription lifecycle: one owned handle per event listener.

`SubscriptionManager` moves between two states:

    IDLE --start--> MONITORING --stop--> IDLE      (stop on IDLE is a no-op)

`start` is all-or-nothing: if any registration fails, every handle opened
by that call is closed again and the manager stays IDLE. Each
`SubscriptionHandle` performs at most one `unsubscribe`, so a listener can
neither leak nor be removed twice.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from enum import Enum
from functools import partial
from typing import Any

from abiwatch.core.errors import AlreadyMonitoring, NotMonitoring, SubscriptionError
from abiwatch.core.interfaces import IChainProvider
from abiwatch.core.models import EventLog
from abiwatch.schema.abi import Definition

logger = logging.getLogger(__name__)

LogHandler = Callable[[Definition, EventLog], Any]


class MonitorState(str, Enum):
    IDLE = "idle"
    MONITORING = "monitoring"


class SubscriptionHandle:
    """Owns exactly one subscribe/unsubscribe pair on a provider."""

    def __init__(self, provider: IChainProvider, event_name: str, token: Any) -> None:
        self.provider = provider
        self.event_name = event_name
        self.token = token
        self._closed = False

    @classmethod
    async def open(
        cls,
        provider: IChainProvider,
        address: str,
        event_def: Definition,
        callback: Callable[[EventLog], Any],
    ) -> SubscriptionHandle:
        token = await provider.subscribe(address, event_def.topic0, callback)
        return cls(provider, event_def.name, token)

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Unsubscribe once; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        await self.provider.unsubscribe(self.token)


class SubscriptionManager:
    """Registers one listener per event definition and tears them all down."""

    def __init__(self) -> None:
        self._handles: dict[str, SubscriptionHandle] = {}
        self._state = MonitorState.IDLE
        self._lock = asyncio.Lock()

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def is_monitoring(self) -> bool:
        return self._state is MonitorState.MONITORING

    @property
    def active_events(self) -> list[str]:
        return list(self._handles)

    def require_monitoring(self) -> None:
        if not self.is_monitoring:
            raise NotMonitoring("no active subscriptions")

    async def start(
        self,
        provider: IChainProvider,
        address: str,
        event_defs: Sequence[Definition],
        on_log: LogHandler,
    ) -> None:
        """Subscribe to every event (once per name); roll back on any failure."""
        async with self._lock:
            if self._state is MonitorState.MONITORING:
                raise AlreadyMonitoring(f"already monitoring {len(self._handles)} event(s)")

            opened: dict[str, SubscriptionHandle] = {}
            pending = ""
            try:
                for event_def in event_defs:
                    if event_def.name in opened:
                        continue
                    pending = event_def.name
                    opened[event_def.name] = await SubscriptionHandle.open(
                        provider, address, event_def, partial(on_log, event_def)
                    )
            except BaseException as e:
                # Cancellation rolls back too; only ordinary failures are wrapped.
                await self._close_all(opened.values())
                if isinstance(e, Exception):
                    raise SubscriptionError(f"failed to subscribe to {pending}: {type(e).__name__}: {e}") from e
                raise

            self._handles = opened
            self._state = MonitorState.MONITORING
            logger.info("monitoring %d event(s) on %s", len(opened), address)

    async def stop(self) -> None:
        """Close every handle opened by `start` and return to IDLE (idempotent).

        The manager is IDLE afterwards even if the provider failed to
        unsubscribe; such failures are raised as `SubscriptionError`.
        """
        async with self._lock:
            if self._state is MonitorState.IDLE:
                return
            handles = list(self._handles.values())
            self._handles = {}
            self._state = MonitorState.IDLE
            failed = await self._close_all(handles)
            logger.info("monitoring stopped (%d listener(s) removed)", len(handles) - len(failed))
        if failed:
            raise SubscriptionError(f"failed to unsubscribe from {', '.join(failed)}")

    @staticmethod
    async def _close_all(handles: Iterable[SubscriptionHandle]) -> list[str]:
        failed: list[str] = []
        for handle in handles:
            try:
                await handle.close()
            except Exception:
                logger.exception("unsubscribe failed for %s", handle.event_name)
                failed.append(handle.event_name)
        return failed
