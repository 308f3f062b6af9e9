from __future__ import annotations

from collections.abc import Callable
from typing import Any, List, Protocol, runtime_checkable

from abiwatch.core.models import EventLog
from abiwatch.storage.entries import DeploymentEntry

LogCallback = Callable[[EventLog], Any]


# ---------------------------------------------------------------------------
# IChainProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class IChainProvider(Protocol):
    """
    Capability to read from and listen to a chain.

    Domain expectations:
    - Logs come back as EventLog objects already mapped into internal models.
    - `event_signature` is the 0x-prefixed topic0 hash of the event.
    - The provider is injected explicitly; nothing resolves it from
      global state.
    """

    async def get_block_number(self) -> int:
        """Return the current chain head height."""
        ...

    async def query_logs(
        self,
        address: str,
        event_signature: str,
        from_block: int,
        to_block: int,
    ) -> List[EventLog]:
        """
        Return all logs for (address, topic0) over the inclusive block range.

        Implementations raise RangeTooLarge when the range is refused and
        ProviderError for any other failure.
        """
        ...

    async def subscribe(self, address: str, event_signature: str, callback: LogCallback) -> Any:
        """
        Start delivering matching logs to `callback`; return an opaque token.

        Delivery is push-based and may happen on any thread.
        """
        ...

    async def unsubscribe(self, token: Any) -> None:
        """Stop the delivery started by `subscribe` for this token."""
        ...


# ---------------------------------------------------------------------------
# IHistoryStore
# ---------------------------------------------------------------------------

@runtime_checkable
class IHistoryStore(Protocol):
    """
    Append/lookup store of deployment entries keyed by `entry.id`.

    Implementations:
    - InMemoryHistoryStore (tests, short sessions)
    - JsonlHistoryStore (append-only journal on disk)
    """

    def save_deployment(self, entry: DeploymentEntry) -> None:
        ...

    def get_deployment(self, deployment_id: str) -> DeploymentEntry | None:
        ...

    def get_deployment_history(self) -> List[DeploymentEntry]:
        ...
