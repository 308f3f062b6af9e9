from __future__ import annotations

import asyncio
from typing import Any

from eth_abi import encode as abi_encode

from abiwatch.core.models import EventLog


ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"
TOKEN = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
TRANSFER_T0 = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

TOKEN_ABI: list[dict[str, Any]] = [
    {
        "type": "constructor",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "name", "type": "string", "internalType": "string"},
            {"name": "symbol", "type": "string", "internalType": "string"},
            {"name": "initialSupply", "type": "uint256", "internalType": "uint256"},
        ],
    },
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "Approval",
        "anonymous": False,
        "inputs": [
            {"name": "owner", "type": "address", "indexed": True},
            {"name": "spender", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {"type": "receive", "stateMutability": "payable"},
]


def address_topic(addr: str) -> str:
    return "0x" + "0" * 24 + addr[2:].lower()


def transfer_log(
    sender: str = ALICE,
    recipient: str = BOB,
    value: int = 123,
    *,
    block: int = 10,
    tx: str = "0x" + "ab" * 32,
    log_index: int = 4,
) -> EventLog:
    return EventLog(
        address=TOKEN.lower(),
        topics=(TRANSFER_T0, address_topic(sender), address_topic(recipient)),
        data_hex="0x" + abi_encode(["uint256"], [value]).hex(),
        block_number=block,
        tx_hash=tx,
        log_index=log_index,
    )


class FakeProvider:
    """In-memory chain provider recording every call."""

    def __init__(self, head: int = 5_000) -> None:
        self.head = head
        self.logs: dict[str, list[EventLog]] = {}
        self.callbacks: dict[str, tuple[str, Any]] = {}
        self.subscribe_calls: list[str] = []
        self.unsubscribe_calls: list[str] = []
        self.query_calls: list[tuple[str, str, int, int]] = []
        self.fail_subscribe: set[str] = set()
        self.subscribe_gates: dict[str, asyncio.Event] = {}
        self.query_error: Exception | None = None
        self.query_gate: asyncio.Event | None = None
        self._next = 0

    async def get_block_number(self) -> int:
        return self.head

    async def query_logs(self, address: str, event_signature: str, from_block: int, to_block: int) -> list[EventLog]:
        self.query_calls.append((address, event_signature, from_block, to_block))
        if self.query_gate is not None:
            await self.query_gate.wait()
        if self.query_error is not None:
            raise self.query_error
        return [
            log
            for log in self.logs.get(event_signature, [])
            if from_block <= log.block_number <= to_block
        ]

    async def subscribe(self, address: str, event_signature: str, callback: Any) -> str:
        self.subscribe_calls.append(event_signature)
        if event_signature in self.subscribe_gates:
            await self.subscribe_gates[event_signature].wait()
        if event_signature in self.fail_subscribe:
            raise RuntimeError("subscription refused")
        self._next += 1
        token = f"sub-{self._next}"
        self.callbacks[token] = (event_signature, callback)
        return token

    async def unsubscribe(self, token: str) -> None:
        self.unsubscribe_calls.append(token)
        del self.callbacks[token]

    def emit(self, log: EventLog) -> None:
        for signature, callback in list(self.callbacks.values()):
            if log.topics and log.topics[0] == signature:
                callback(log)


