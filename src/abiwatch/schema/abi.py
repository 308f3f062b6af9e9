"""ABI definition models and the per-contract `SchemaIndex`.

`SchemaIndex.parse(...)` validates the raw JSON with pydantic, parses every
parameter type into the `ParameterType` union once, and indexes the
constructor, functions and events by name. The index is immutable once
built.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from eth_utils.abi import event_signature_to_log_topic
from pydantic import BaseModel, ConfigDict, ValidationError

from abiwatch.core.errors import NotFound, SchemaError
from abiwatch.schema.types import ParameterType, parse_type

EntryKind = Literal["constructor", "function", "event", "fallback", "receive", "error"]


class AbiParameter(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = ""
    type: str
    internalType: str | None = None
    indexed: bool = False
    components: Sequence[AbiParameter] | None = None


class AbiEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    type: EntryKind = "function"
    name: str = ""
    inputs: Sequence[AbiParameter] = ()
    outputs: Sequence[AbiParameter] = ()
    anonymous: bool = False
    stateMutability: str | None = None


@dataclass(frozen=True)
class Parameter:
    """One declared input with its parsed type."""

    name: str  # declared name, or "argN" for unnamed inputs
    type: ParameterType
    raw: AbiParameter
    indexed: bool = False

    @property
    def type_str(self) -> str:
        return self.raw.type


@dataclass(frozen=True)
class Definition:
    """A parsed ABI entry (constructor, function, event, ...)."""

    kind: EntryKind
    name: str
    inputs: tuple[Parameter, ...]
    outputs: tuple[Parameter, ...] = ()
    anonymous: bool = False
    state_mutability: str | None = None

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type.canonical for p in self.inputs)})"

    @property
    def topic0(self) -> str:
        """keccak256 of the canonical signature (events only)."""
        return "0x" + event_signature_to_log_topic(self.signature).hex()

    @property
    def input_names(self) -> list[str]:
        return [p.name for p in self.inputs]


def _parse_parameters(params: Sequence[AbiParameter], where: str) -> tuple[Parameter, ...]:
    out: list[Parameter] = []
    for i, p in enumerate(params):
        try:
            ptype = parse_type(p.type, p.components)
        except SchemaError as e:
            raise SchemaError(f"{where}: parameter {i} ({p.name or 'unnamed'}): {e}") from e
        out.append(Parameter(name=p.name or f"arg{i}", type=ptype, raw=p, indexed=p.indexed))
    return tuple(out)


def _definition_from_entry(entry: AbiEntry) -> Definition:
    where = f"{entry.type} {entry.name}".strip()
    return Definition(
        kind=entry.type,
        name=entry.name,
        inputs=_parse_parameters(entry.inputs, where),
        outputs=_parse_parameters(entry.outputs, where),
        anonymous=entry.anonymous,
        state_mutability=entry.stateMutability,
    )


AbiJson = Iterable[dict[str, Any]]
AbiSpec = AbiJson | str | bytes | Path


def _load_abi(abi: AbiSpec) -> list[Any]:
    if isinstance(abi, Path):
        try:
            abi = abi.read_text()
        except OSError as e:
            raise SchemaError(f"cannot read ABI file {abi}: {e}") from e
    if isinstance(abi, (str, bytes)):
        try:
            abi = json.loads(abi)
        except json.JSONDecodeError as e:
            raise SchemaError(f"malformed ABI JSON: {e}") from e
    # Hardhat/Foundry artifacts wrap the ABI in an object
    if isinstance(abi, dict) and isinstance(abi.get("abi"), list):
        abi = abi["abi"]
    if not isinstance(abi, list):
        raise SchemaError("ABI must be a JSON array of entries")
    return abi


@dataclass(frozen=True)
class SchemaIndex:
    """Indexed, typed view of one contract ABI."""

    constructor: Definition | None
    functions: dict[str, Definition] = field(default_factory=dict)
    events: dict[str, Definition] = field(default_factory=dict)
    errors: dict[str, Definition] = field(default_factory=dict)
    fallback: Definition | None = None
    receive: Definition | None = None

    @classmethod
    def parse(cls, abi: AbiSpec) -> SchemaIndex:
        """Parse an ABI (JSON text, bytes, path or decoded list) into an index."""
        raw_entries = _load_abi(abi)

        constructor: Definition | None = None
        fallback: Definition | None = None
        receive: Definition | None = None
        functions: dict[str, Definition] = {}
        events: dict[str, Definition] = {}
        errors: dict[str, Definition] = {}

        for i, raw in enumerate(raw_entries):
            if not isinstance(raw, dict):
                raise SchemaError(f"ABI entry {i} is not an object")
            try:
                entry = AbiEntry.model_validate(raw)
            except ValidationError as e:
                raise SchemaError(f"ABI entry {i} is malformed: {e}") from e
            definition = _definition_from_entry(entry)

            match definition.kind:
                case "constructor":
                    constructor = definition
                case "fallback":
                    fallback = definition
                case "receive":
                    receive = definition
                case "function":
                    # Overloads: first declaration wins the plain name
                    functions.setdefault(definition.name, definition)
                case "event":
                    events.setdefault(definition.name, definition)
                case "error":
                    errors.setdefault(definition.name, definition)

        return cls(
            constructor=constructor,
            functions=functions,
            events=events,
            errors=errors,
            fallback=fallback,
            receive=receive,
        )

    def lookup_constructor(self) -> Definition:
        if self.constructor is None:
            raise NotFound("ABI declares no constructor")
        return self.constructor

    def lookup_function(self, name: str) -> Definition:
        try:
            return self.functions[name]
        except KeyError:
            raise NotFound(f"function {name!r} not found in ABI") from None

    def lookup_event(self, name: str) -> Definition:
        try:
            return self.events[name]
        except KeyError:
            raise NotFound(f"event {name!r} not found in ABI") from None

    @property
    def constructor_inputs(self) -> tuple[Parameter, ...]:
        return self.constructor.inputs if self.constructor else ()

    @property
    def event_definitions(self) -> list[Definition]:
        """All events, in ABI declaration order."""
        return list(self.events.values())

    def event_by_topic0(self, topic0: str) -> Definition | None:
        t0 = topic0.lower()
        for ev in self.events.values():
            if not ev.anonymous and ev.topic0 == t0:
                return ev
        return None
