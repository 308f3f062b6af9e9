from typing import Any
from unittest.mock import AsyncMock

import pytest

from abiwatch.schema.abi import SchemaIndex

from ._helpers import TOKEN_ABI, FakeProvider


@pytest.fixture
def token_abi() -> list[dict[str, Any]]:
    return TOKEN_ABI


@pytest.fixture
def token_schema() -> SchemaIndex:
    return SchemaIndex.parse(TOKEN_ABI)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.query_logs = AsyncMock(return_value=[])
    rpc.get_block_number = AsyncMock(return_value=100)
    rpc.subscribe = AsyncMock(side_effect=lambda address, sig, cb: f"tok-{sig[:10]}")
    rpc.unsubscribe = AsyncMock()
    rpc.aclose = AsyncMock()
    return rpc
