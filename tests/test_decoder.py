import asyncio
import dataclasses
import json

import pytest
from eth_abi import encode as abi_encode
from eth_utils import keccak, to_checksum_address

from abiwatch.core.errors import DecodingError, FetchCancelled, ProviderError, RangeTooLarge
from abiwatch.core.models import EventLog, EventLogRecord, LogMeta
from abiwatch.decoding import decode_historical, decode_live, decode_raw_log, history_window, merge
from abiwatch.decoding.utils import to_display
from abiwatch.schema.abi import SchemaIndex

from ._helpers import ALICE, BOB, TOKEN, TRANSFER_T0, transfer_log


def record(id_: str, block: int, name: str = "Transfer") -> EventLogRecord:
    tx = id_.partition("-")[0]
    return EventLogRecord(id=id_, event_name=name, args={}, block_number=block, transaction_hash=tx, timestamp=0)


# ---------- live ----------


def test_decode_live_names_args_and_builds_id(token_schema):
    rec = decode_live(token_schema.lookup_event("Transfer"), [ALICE, BOB, 123], LogMeta(10, "T", 4))
    assert rec.id == "T-4"
    assert rec.event_name == "Transfer"
    assert dict(rec.args) == {"from": ALICE, "to": BOB, "value": "123"}
    assert rec.block_number == 10
    assert rec.transaction_hash == "T"
    assert rec.timestamp > 0


def test_decode_live_keeps_given_timestamp_and_is_read_only(token_schema):
    rec = decode_live(token_schema.lookup_event("Transfer"), [ALICE, BOB, 1], LogMeta(1, "T", 0, timestamp=42))
    assert rec.timestamp == 42
    with pytest.raises(TypeError):
        rec.args["value"] = "2"  # type: ignore[index]


def test_decode_live_unnamed_and_composite_values():
    schema = SchemaIndex.parse(
        [
            {
                "type": "event",
                "name": "Batch",
                "inputs": [
                    {"name": "", "type": "uint256[]"},
                    {"name": "data", "type": "bytes"},
                    {"name": "ok", "type": "bool"},
                ],
            }
        ]
    )
    rec = decode_live(schema.lookup_event("Batch"), [[1, 2**255], b"\x01\xff", True], LogMeta(1, "T", 0))
    assert rec.args["arg0"] == json.dumps(["1", str(2**255)], separators=(",", ":"))
    assert rec.args["data"] == "0x01ff"
    assert rec.args["ok"] is True


def test_to_display():
    assert to_display(2**256 - 1) == str(2**256 - 1)
    assert to_display(False) is False
    assert to_display(None) is None
    assert to_display((b"\x00", 5)) == '["0x00","5"]'


# ---------- raw logs ----------


def test_decode_raw_transfer_log(token_schema):
    rec = decode_raw_log(token_schema.lookup_event("Transfer"), transfer_log(value=10**24))
    assert rec.id == "0x" + "ab" * 32 + "-4"
    assert rec.args["from"] == to_checksum_address(ALICE)
    assert rec.args["to"] == to_checksum_address(BOB)
    assert rec.args["value"] == str(10**24)


def test_block_timestamp_becomes_milliseconds(token_schema):
    log = transfer_log()
    log = dataclasses.replace(log, block_timestamp=1_700_000_000)
    assert decode_raw_log(token_schema.lookup_event("Transfer"), log).timestamp == 1_700_000_000_000


def test_indexed_dynamic_value_stays_hashed():
    schema = SchemaIndex.parse(
        [
            {
                "type": "event",
                "name": "Named",
                "inputs": [
                    {"name": "tag", "type": "string", "indexed": True},
                    {"name": "n", "type": "int8", "indexed": True},
                    {"name": "note", "type": "string", "indexed": False},
                ],
            }
        ]
    )
    event = schema.lookup_event("Named")
    tag_hash = "0x" + keccak(text="hello").hex()
    log = EventLog(
        address=TOKEN.lower(),
        topics=(event.topic0, tag_hash, "0x" + abi_encode(["int8"], [-3]).hex()),
        data_hex="0x" + abi_encode(["string"], ["hi"]).hex(),
        block_number=1,
        tx_hash="0x01",
        log_index=0,
    )
    rec = decode_raw_log(event, log)
    assert dict(rec.args) == {"tag": tag_hash, "n": "-3", "note": "hi"}


def test_decode_raw_log_errors(token_schema):
    transfer = token_schema.lookup_event("Transfer")
    short = EventLog(TOKEN.lower(), (TRANSFER_T0,), "0x", 1, "0x01", 0)
    with pytest.raises(DecodingError):
        decode_raw_log(transfer, short)
    bad_data = transfer_log()
    bad_data = EventLog(bad_data.address, bad_data.topics, "0xzz", 1, "0x01", 0)
    with pytest.raises(DecodingError):
        decode_raw_log(transfer, bad_data)


# ---------- merge / window ----------


def test_merge_dedupes_and_orders_by_block_desc():
    live = [record("c-0", 7), record("a-0", 9)]
    historical = [record("a-0", 9, name="Approval"), record("b-0", 8), record("d-0", 7)]
    merged = merge(live, historical)
    assert [r.id for r in merged] == ["a-0", "b-0", "c-0", "d-0"]
    assert merged[0].event_name == "Transfer"


def test_merge_empty():
    assert merge([], []) == []


@pytest.mark.parametrize("head, lookback, expected", [(5000, 1000, (4000, 5000)), (300, 1000, (0, 300)), (0, 0, (0, 0))])
def test_history_window(head, lookback, expected):
    assert history_window(head, lookback) == expected


def test_history_window_rejects_negative():
    with pytest.raises(ValueError):
        history_window(10, -1)


# ---------- historical ----------


@pytest.mark.asyncio
async def test_decode_historical_queries_window(token_schema, provider):
    provider.logs[TRANSFER_T0] = [
        transfer_log(block=3999, tx="0x01"),
        transfer_log(block=4000, tx="0x02"),
        transfer_log(block=4500, tx="0x03"),
    ]
    records = await decode_historical(token_schema.lookup_event("Transfer"), provider, TOKEN, 5000)
    assert provider.query_calls == [(TOKEN, TRANSFER_T0, 4000, 5000)]
    assert [r.id for r in records] == ["0x02-4", "0x03-4"]


@pytest.mark.asyncio
async def test_decode_historical_skips_undecodable_logs(token_schema, provider):
    provider.logs[TRANSFER_T0] = [
        EventLog(TOKEN.lower(), (TRANSFER_T0,), "0x", 4100, "0x01", 0),
        transfer_log(block=4200, tx="0x02"),
    ]
    records = await decode_historical(token_schema.lookup_event("Transfer"), provider, TOKEN, 5000)
    assert [r.id for r in records] == ["0x02-4"]


@pytest.mark.asyncio
async def test_decode_historical_propagates_range_error(token_schema, provider):
    provider.query_error = RangeTooLarge(4000, 5000, "query returned more than 10000 results")
    with pytest.raises(RangeTooLarge) as exc:
        await decode_historical(token_schema.lookup_event("Transfer"), provider, TOKEN, 5000)
    assert exc.value.from_block == 4000


@pytest.mark.asyncio
async def test_decode_historical_wraps_provider_failures(token_schema, provider):
    provider.query_error = ConnectionError("node down")
    with pytest.raises(ProviderError, match="node down"):
        await decode_historical(token_schema.lookup_event("Transfer"), provider, TOKEN, 5000)


@pytest.mark.asyncio
async def test_decode_historical_cancellation(token_schema, provider):
    provider.query_gate = asyncio.Event()
    cancel = asyncio.Event()
    task = asyncio.create_task(
        decode_historical(token_schema.lookup_event("Transfer"), provider, TOKEN, 5000, cancel=cancel)
    )
    await asyncio.sleep(0)
    cancel.set()
    with pytest.raises(FetchCancelled):
        await task


def _pending_tasks() -> list[asyncio.Task]:
    return [t for t in asyncio.all_tasks() if t is not asyncio.current_task() and not t.done()]


@pytest.mark.asyncio
@pytest.mark.parametrize("with_event", [True, False])
async def test_cancelling_the_fetch_task_cancels_the_query(token_schema, provider, with_event):
    provider.query_gate = asyncio.Event()
    cancel = asyncio.Event() if with_event else None
    task = asyncio.create_task(
        decode_historical(token_schema.lookup_event("Transfer"), provider, TOKEN, 5000, cancel=cancel)
    )
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert provider.query_calls
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(0)
    assert _pending_tasks() == []
