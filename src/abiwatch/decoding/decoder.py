"""Event decoder: raw logs and positional args into `EventLogRecord`s.

Live path: a provider callback delivers an `EventLog`; `decode_raw_log`
splits it into positional args with eth_abi and `decode_live` names them.
Historical path: `decode_historical` queries a bounded block window through
the injected provider and runs every log through the same decoder.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Sequence
from types import MappingProxyType
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError as AbiDecodingError

from abiwatch.constants import DEFAULT_LOOKBACK_BLOCKS
from abiwatch.core.errors import AbiwatchError, DecodingError, FetchCancelled, ProviderError
from abiwatch.core.interfaces import IChainProvider
from abiwatch.core.models import EventLog, EventLogRecord, LogMeta
from abiwatch.decoding.utils import history_window, to_display
from abiwatch.schema.abi import Definition
from abiwatch.schema.types import AddressType, BoolType, BytesType, IntType, UintType

logger = logging.getLogger(__name__)

# Indexed inputs of these types are decoded from their topic; any other
# indexed type (string, bytes, arrays, tuples) is stored as its keccak hash.
_TOPIC_VALUE_TYPES = (UintType, IntType, AddressType, BoolType)


# ---------- helper functions ----------


def _hex_to_bytes(h: str) -> bytes:
    s = h[2:] if h[:2].lower() == "0x" else h
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise DecodingError(f"invalid hex payload: {h[:20]}...") from e


def _decode_topic(ptype: Any, topic: str) -> Any:
    if isinstance(ptype, _TOPIC_VALUE_TYPES) or (isinstance(ptype, BytesType) and ptype.size is not None):
        try:
            return abi_decode([ptype.canonical], _hex_to_bytes(topic))[0]
        except AbiDecodingError as e:
            raise DecodingError(f"cannot decode topic as {ptype.canonical}: {e}") from e
    return topic.lower()


# ---------- live ----------


def decode_live(event_def: Definition, raw_args: Sequence[Any], meta: LogMeta) -> EventLogRecord:
    """Name positional args after the event inputs and build a record.

    Unnamed inputs become `argN`. Missing trailing args decode as None.
    """
    args: dict[str, Any] = {}
    for i, param in enumerate(event_def.inputs):
        value = raw_args[i] if i < len(raw_args) else None
        args[param.name or f"arg{i}"] = to_display(value)

    timestamp = meta.timestamp if meta.timestamp is not None else int(time.time() * 1000)
    return EventLogRecord(
        id=EventLogRecord.make_id(meta.transaction_hash, meta.log_index),
        event_name=event_def.name,
        args=MappingProxyType(args),
        block_number=meta.block_number,
        transaction_hash=meta.transaction_hash,
        timestamp=timestamp,
    )


def decode_log_args(event_def: Definition, log: EventLog) -> list[Any]:
    """Split a raw log (topics + data) into positional args, in input order."""
    topics = list(log.topics if event_def.anonymous else log.topics[1:])
    indexed = [p for p in event_def.inputs if p.indexed]
    if len(topics) < len(indexed):
        raise DecodingError(
            f"{event_def.name}: expected {len(indexed)} indexed topics, got {len(topics)}"
        )

    data_params = [p for p in event_def.inputs if not p.indexed]
    data_vals: Sequence[Any] = ()
    if data_params:
        try:
            data_vals = abi_decode([p.type.canonical for p in data_params], _hex_to_bytes(log.data_hex))
        except AbiDecodingError as e:
            raise DecodingError(f"{event_def.name}: cannot decode data: {e}") from e

    out: list[Any] = []
    ti = di = 0
    for param in event_def.inputs:
        if param.indexed:
            out.append(_decode_topic(param.type, topics[ti]))
            ti += 1
        else:
            out.append(data_vals[di])
            di += 1
    return out


def decode_raw_log(event_def: Definition, log: EventLog) -> EventLogRecord:
    """Decode a raw provider log into a record."""
    return decode_live(event_def, decode_log_args(event_def, log), log.meta())


# ---------- historical ----------


async def _query_with_cancel(
    provider: IChainProvider,
    address: str,
    event_def: Definition,
    from_block: int,
    to_block: int,
    cancel: asyncio.Event | None,
) -> list[EventLog]:
    query = asyncio.ensure_future(provider.query_logs(address, event_def.topic0, from_block, to_block))
    if cancel is None:
        return await query

    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({query, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if not query.done():
            raise FetchCancelled(f"history fetch for {event_def.name} cancelled")
        return query.result()
    finally:
        # The query never outlives this call, whether signalled or task-cancelled.
        waiter.cancel()
        if not query.done():
            query.cancel()


async def decode_historical(
    event_def: Definition,
    provider: IChainProvider,
    address: str,
    current_block: int,
    *,
    lookback: int = DEFAULT_LOOKBACK_BLOCKS,
    cancel: asyncio.Event | None = None,
) -> list[EventLogRecord]:
    """Fetch and decode `event_def` logs over `[max(0, head - lookback), head]`.

    Raises RangeTooLarge / ProviderError when the provider rejects the
    query; the caller may retry with a smaller `lookback`.
    """
    from_block, to_block = history_window(current_block, lookback)
    try:
        logs = await _query_with_cancel(provider, address, event_def, from_block, to_block, cancel)
    except AbiwatchError:
        raise
    except Exception as e:
        raise ProviderError(f"query_logs failed for {event_def.name}: {type(e).__name__}: {e}") from e

    records: list[EventLogRecord] = []
    for log in logs:
        try:
            records.append(decode_raw_log(event_def, log))
        except DecodingError as e:
            logger.warning("skipping undecodable %s log %s-%s: %s", event_def.name, log.tx_hash, log.log_index, e)
    logger.debug("decoded %d/%d %s logs in [%d, %d]", len(records), len(logs), event_def.name, from_block, to_block)
    return records


# ---------- merge ----------


def merge(live: Iterable[EventLogRecord], historical: Iterable[EventLogRecord]) -> list[EventLogRecord]:
    """Deduplicate by id (first occurrence wins, live first) and sort by
    descending block number; ties keep their relative order."""
    seen: set[str] = set()
    combined: list[EventLogRecord] = []
    for rec in (*live, *historical):
        if rec.id in seen:
            continue
        seen.add(rec.id)
        combined.append(rec)
    return sorted(combined, key=lambda r: r.block_number, reverse=True)
