"""Core data models shared by the connector, transports and agent host."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class StateOrigin(str, Enum):
    """Which side produced the state value currently held by a mirror."""

    SERVER = "server"
    CLIENT = "client"


@dataclass(frozen=True, slots=True)
class Identity:
    """Routing identity of a remote agent instance."""

    agent_kind: str
    instance_name: str


@dataclass(frozen=True, slots=True)
class TransportMessage:
    """Raw inbound message as delivered by a transport."""

    data: Union[str, bytes]


@dataclass(frozen=True, slots=True)
class StateEnvelope:
    """Decoded state-sync control message carrying a full state replacement."""

    state: Any


class NotAnEnvelope:
    """Decode result for application traffic."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NOT_AN_ENVELOPE"

    def __bool__(self) -> bool:
        return False


NOT_AN_ENVELOPE = NotAnEnvelope()

DecodeResult = Union[StateEnvelope, NotAnEnvelope]


@dataclass(frozen=True, slots=True)
class NamingWarning:
    """Advisory record for an identity field that is not lowercase."""

    field: str
    received: str
    expected: str

    @property
    def message(self) -> str:
        return f"{self.field} {self.received!r} should probably be lowercase, expected {self.expected!r}"


@dataclass(slots=True)
class AgentDescriptor:
    """Bookkeeping for an agent instance hosted by the registry."""

    identity: Identity
    message_count: int = 0
    state_updates: int = 0
