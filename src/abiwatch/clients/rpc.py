"""Lightweight JSON-RPC chain provider for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits implementing
  the chain provider interface (block number, logs, subscriptions)
- Helper utilities to format block numbers and parse raw logs

Subscriptions use `eth_newFilter` and a polling task per filter calling
`eth_getFilterChanges`; `unsubscribe` cancels the task and uninstalls the
filter.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from abiwatch.constants import RPC_LIMIT_EXCEEDED_CODE
from abiwatch.core.config import RpcConfig
from abiwatch.core.errors import ProviderError, RangeTooLarge
from abiwatch.core.interfaces import LogCallback
from abiwatch.core.models import EventLog

logger = logging.getLogger(__name__)

# Substrings providers use when refusing an eth_getLogs range.
_RANGE_HINTS = (
    "block range",
    "query returned more than",
    "too many results",
    "limit exceeded",
    "range is too large",
    "exceed maximum block range",
)


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(x)


def _to_int(v: Any) -> int | None:
    if isinstance(v, str):
        return int(v, 16) if v.startswith("0x") else int(v)
    if isinstance(v, int):
        return v
    return None


def parse_log(rl: Mapping[str, Any]) -> EventLog:
    """Map one JSON-RPC log object to an `EventLog`."""
    topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in rl.get("topics", []))
    return EventLog(
        address=str(rl["address"]).lower(),
        topics=topics,
        data_hex=str(rl.get("data") or "0x"),
        block_number=_to_int(rl["blockNumber"]) or 0,
        tx_hash=(rl.get("transactionHash") or rl.get("transaction_hash") or "").lower(),
        log_index=_to_int(rl["logIndex"]) or 0,
        block_timestamp=_to_int(rl.get("blockTimestamp")),
    )


def is_range_error(error: Mapping[str, Any]) -> bool:
    """True if a JSON-RPC error object means "narrow the block range"."""
    if error.get("code") == RPC_LIMIT_EXCEEDED_CODE:
        return True
    message = str(error.get("message", "")).lower()
    return any(hint in message for hint in _RANGE_HINTS)


@dataclass(slots=True)
class _Subscription:
    filter_id: str
    task: asyncio.Task[None]


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    config : RpcConfig
        Endpoint URL, per-operation timeout (connect/read/write), connection
        pool size and the filter polling interval.
    client : httpx.AsyncClient | None
        Pre-built client (e.g. with a mock transport); built from `config`
        when omitted.
    """

    def __init__(self, config: RpcConfig, *, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self.url = config.url
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=config.timeout_s,
                read=config.timeout_s,
                write=config.timeout_s,
                pool=max(30, config.timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=config.max_connections,
                max_keepalive_connections=max(1, config.max_connections // 2),
            ),
            http2=config.http2,
        )
        self._ids = itertools.count(1)
        self._subscriptions: dict[str, _Subscription] = {}

    async def _call(self, method: str, params: list[Any]) -> dict[str, Any]:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            r = await self.client.post(self.url, json=payload)
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPError as e:
            raise ProviderError(f"{method} failed: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise ProviderError(f"{method} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ProviderError(f"{method} returned an unexpected payload")
        return data

    @staticmethod
    def _error_text(error: Any) -> str:
        if isinstance(error, Mapping):
            return f"{error.get('code')} {error.get('message')}"
        return str(error)

    async def _result(self, method: str, params: list[Any]) -> Any:
        data = await self._call(method, params)
        if "error" in data:
            raise ProviderError(f"RPC error: {self._error_text(data['error'])}")
        return data.get("result")

    async def get_block_number(self) -> int:
        """Return the latest block number as an int."""
        result = await self._result("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise ProviderError(f"eth_blockNumber returned {result!r}") from e

    async def query_logs(
        self,
        address: str,
        event_signature: str,
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        """Fetch logs for an address and one topic0 within an inclusive block range."""
        params = [
            {
                "address": address.lower(),
                "fromBlock": to_hex_block(from_block),
                "toBlock": to_hex_block(to_block),
                "topics": [event_signature.lower()],
            }
        ]
        data = await self._call("eth_getLogs", params)
        if "error" in data:
            e = data["error"]
            if isinstance(e, Mapping) and is_range_error(e):
                raise RangeTooLarge(from_block, to_block, str(e.get("message", "")))
            raise ProviderError(f"RPC error: {self._error_text(e)}")
        return [parse_log(rl) for rl in data.get("result") or []]

    # ---------- subscriptions ----------

    async def subscribe(self, address: str, event_signature: str, callback: LogCallback) -> str:
        """Install a log filter and start polling it; return the filter id."""
        filter_id = await self._result(
            "eth_newFilter",
            [{"address": address.lower(), "topics": [event_signature.lower()], "fromBlock": "latest"}],
        )
        if not isinstance(filter_id, str):
            raise ProviderError(f"eth_newFilter returned {filter_id!r}")
        task = asyncio.create_task(self._poll(filter_id, callback), name=f"poll-{filter_id}")
        self._subscriptions[filter_id] = _Subscription(filter_id, task)
        logger.debug("installed filter %s for %s on %s", filter_id, event_signature, address)
        return filter_id

    async def unsubscribe(self, token: str) -> None:
        sub = self._subscriptions.pop(token, None)
        if sub is None:
            return
        sub.task.cancel()
        try:
            await sub.task
        except asyncio.CancelledError:
            pass
        await self._result("eth_uninstallFilter", [token])
        logger.debug("uninstalled filter %s", token)

    async def _poll(self, filter_id: str, callback: LogCallback) -> None:
        while True:
            await asyncio.sleep(self.config.poll_interval_s)
            try:
                changes = await self._result("eth_getFilterChanges", [filter_id])
            except ProviderError as e:
                # Transient node failures must not end a long-lived subscription.
                logger.warning("polling filter %s failed: %s", filter_id, e)
                continue
            for rl in changes or []:
                if not isinstance(rl, Mapping) or rl.get("removed"):
                    continue
                try:
                    out = callback(parse_log(rl))
                    if inspect.isawaitable(out):
                        await out
                except Exception:
                    logger.exception("log callback failed for filter %s", filter_id)

    async def aclose(self) -> None:
        """Cancel every subscription and close the underlying HTTP client."""
        for token in list(self._subscriptions):
            try:
                await self.unsubscribe(token)
            except ProviderError as e:
                logger.warning("could not uninstall filter %s: %s", token, e)
        await self.client.aclose()

    async def __aenter__(self) -> RPC:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
