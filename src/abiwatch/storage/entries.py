"""Deployment history entry model."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")


class DeploymentEntry(BaseModel):
    """One deployed contract, as recorded by the deployment workflow."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    project_id: str = Field(alias="projectId", min_length=1)
    project_name: str = Field(alias="projectName", min_length=1)
    network_id: str = Field(alias="networkId", min_length=1)
    network_name: str = Field(alias="networkName", min_length=1)
    contract_address: str = Field(alias="contractAddress")
    transaction_hash: str = Field(alias="transactionHash")
    abi: list[dict[str, Any]]
    bytecode: str
    timestamp: int = Field(ge=0)

    @field_validator("id", "project_id", "project_name", "network_id", "network_name")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("contract_address")
    @classmethod
    def _address(cls, v: str) -> str:
        if not _ADDRESS_RE.match(v):
            raise ValueError("must be a valid Ethereum address")
        return v

    @field_validator("transaction_hash")
    @classmethod
    def _tx_hash(cls, v: str) -> str:
        if not _TX_HASH_RE.match(v):
            raise ValueError("must be a 0x-prefixed 32-byte hex string")
        return v

    @field_validator("bytecode")
    @classmethod
    def _bytecode(cls, v: str) -> str:
        if len(v) <= 2 or not _HEX_RE.match(v):
            raise ValueError("must be a non-empty 0x-prefixed hex string")
        return v

    def to_json_line(self) -> str:
        """Serialize as a compact JSON line (camelCase keys)."""
        return self.model_dump_json(by_alias=True) + "\n"
