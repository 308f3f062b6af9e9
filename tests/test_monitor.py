import asyncio
import json

import pytest

from abiwatch.core.config import MonitorConfig
from abiwatch.core.errors import AlreadyMonitoring, HistoryInProgress, ProviderError, RangeTooLarge
from abiwatch.core.models import EventLog
from abiwatch.monitoring import EventMonitor, MonitorState
from abiwatch.schema.abi import SchemaIndex

from ._helpers import TOKEN, TRANSFER_T0, transfer_log


@pytest.fixture
def monitor(token_schema, provider) -> EventMonitor:
    return EventMonitor(token_schema, provider, MonitorConfig(address=TOKEN))


@pytest.mark.asyncio
async def test_live_logs_are_appended_newest_first(monitor, provider):
    await monitor.start()
    assert monitor.state is MonitorState.MONITORING
    provider.emit(transfer_log(block=10, tx="0x01"))
    provider.emit(transfer_log(block=11, tx="0x02"))
    provider.emit(transfer_log(block=11, tx="0x02"))
    assert [r.id for r in monitor.events()] == ["0x02-4", "0x01-4"]
    assert monitor.counts() == {"Transfer": 2, "Approval": 0}


@pytest.mark.asyncio
async def test_logs_after_stop_are_dropped(monitor, provider):
    await monitor.start()
    callbacks = [cb for _, cb in provider.callbacks.values()]
    await monitor.stop()
    for cb in callbacks:
        cb(transfer_log())
    assert monitor.events() == []
    assert monitor.state is MonitorState.IDLE


@pytest.mark.asyncio
async def test_undecodable_live_log_is_ignored(monitor, provider):
    await monitor.start()
    provider.emit(EventLog(TOKEN.lower(), (TRANSFER_T0,), "0x", 1, "0x01", 0))
    assert monitor.events() == []
    assert monitor.is_monitoring


@pytest.mark.asyncio
async def test_load_history_merges_into_buffer(monitor, provider):
    provider.logs[TRANSFER_T0] = [transfer_log(block=4100, tx="0x01"), transfer_log(block=4900, tx="0x02")]
    fetched = await monitor.load_history()
    assert len(fetched) == 2
    assert [r.block_number for r in monitor.events()] == [4900, 4100]
    assert {call[2:] for call in provider.query_calls} == {(4000, 5000)}

    again = await monitor.load_history(lookback=50)
    assert again == []
    assert len(monitor.events()) == 2


@pytest.mark.asyncio
async def test_history_rejected_while_monitoring(monitor, provider):
    await monitor.start()
    with pytest.raises(AlreadyMonitoring):
        await monitor.load_history()
    assert provider.query_calls == []


@pytest.mark.asyncio
async def test_only_one_history_load_at_a_time(monitor, provider):
    provider.query_gate = asyncio.Event()
    first = asyncio.create_task(monitor.load_history())
    await asyncio.sleep(0)
    assert monitor.history_in_flight
    with pytest.raises(HistoryInProgress):
        await monitor.load_history()
    with pytest.raises(HistoryInProgress):
        await monitor.start()
    provider.query_gate.set()
    assert await first == []
    assert not monitor.history_in_flight


@pytest.mark.asyncio
async def test_history_resolving_after_stop_is_discarded(monitor, provider):
    provider.logs[TRANSFER_T0] = [transfer_log(block=4500)]
    provider.query_gate = asyncio.Event()
    task = asyncio.create_task(monitor.load_history())
    await asyncio.sleep(0)
    await monitor.stop()
    provider.query_gate.set()
    assert await task == []
    assert monitor.events() == []


@pytest.mark.asyncio
async def test_history_errors_leave_state_untouched(monitor, provider):
    provider.query_error = RangeTooLarge(4000, 5000)
    with pytest.raises(RangeTooLarge):
        await monitor.load_history()
    assert not monitor.history_in_flight
    assert monitor.state is MonitorState.IDLE

    provider.query_error = None
    provider.get_block_number = _failing_head
    with pytest.raises(ProviderError, match="head unavailable"):
        await monitor.load_history()


async def _failing_head() -> int:
    raise OSError("head unavailable")


@pytest.mark.asyncio
async def test_export_and_clear(monitor, provider):
    await monitor.start()
    provider.emit(transfer_log(block=7, tx="0x07"))
    exported = json.loads(monitor.export_json())
    assert exported == [
        {
            "id": "0x07-4",
            "eventName": "Transfer",
            "args": {
                "from": "0x1111111111111111111111111111111111111111",
                "to": "0x2222222222222222222222222222222222222222",
                "value": "123",
            },
            "blockNumber": 7,
            "transactionHash": "0x07",
            "timestamp": exported[0]["timestamp"],
        }
    ]
    assert monitor.events("Approval") == []
    monitor.clear()
    assert monitor.events() == []


@pytest.mark.asyncio
async def test_anonymous_events_are_not_monitored(provider):
    schema = SchemaIndex.parse(
        [
            {"type": "event", "name": "Ping", "anonymous": True, "inputs": []},
            {"type": "event", "name": "Pong", "inputs": []},
        ]
    )
    monitor = EventMonitor(schema, provider, MonitorConfig(address=TOKEN))
    assert [ev.name for ev in monitor.event_definitions] == ["Pong"]
    async with monitor:
        await monitor.start()
        assert len(provider.subscribe_calls) == 1
    assert monitor.state is MonitorState.IDLE
