"""Base definition for stateful agents hosted by the agent registry."""
from __future__ import annotations

import abc
from typing import Any, Dict, Iterable, Optional, Union

import structlog

from agentlink.core.codec import decode_message, encode_state
from agentlink.core.models import AgentDescriptor, StateEnvelope, TransportMessage

logger = structlog.get_logger(__name__)


class Connection(abc.ABC):
    """One client attached to an agent."""

    def __init__(self, connection_id: str) -> None:
        self.id = connection_id

    @abc.abstractmethod
    async def send(self, data: Union[str, bytes]) -> None:
        """Deliver a frame to the client."""

    async def close(self) -> None:
        """Terminate the client side of the connection."""
        return None


class Agent(abc.ABC):
    """Agent owning the authoritative state for one identity.

    State changes from any connected client are rebroadcast to every other
    client; server-side changes go to all of them.
    """

    initial_state: Any = None

    def __init__(self, descriptor: AgentDescriptor) -> None:
        self.descriptor = descriptor
        self._state: Any = self.initial_state
        self._connections: Dict[str, Connection] = {}

    @property
    def agent_kind(self) -> str:
        return self.descriptor.identity.agent_kind

    @property
    def instance_name(self) -> str:
        return self.descriptor.identity.instance_name

    @property
    def state(self) -> Any:
        return self._state

    @property
    def connections(self) -> Iterable[Connection]:
        return tuple(self._connections.values())

    async def connect(self, connection: Connection) -> None:
        """Attach a client and bring it up to date with the current state."""
        self._connections[connection.id] = connection
        logger.info(
            "Client connected",
            agent_kind=self.agent_kind,
            instance_name=self.instance_name,
            connection_id=connection.id,
        )
        if self._state is not None:
            await connection.send(encode_state(self._state))
        await self.on_connect(connection)

    async def disconnect(self, connection: Connection) -> None:
        if self._connections.pop(connection.id, None) is None:
            return
        logger.info(
            "Client disconnected",
            agent_kind=self.agent_kind,
            instance_name=self.instance_name,
            connection_id=connection.id,
        )
        await self.on_close(connection)

    async def set_state(self, state: Any, source: Optional[Connection] = None) -> None:
        """Replace the state and broadcast it to every client except ``source``."""
        frame = encode_state(state)
        self._state = state
        self.descriptor.state_updates += 1
        await self.broadcast(frame, exclude=(source.id,) if source is not None else ())
        await self.on_state_update(state, source)

    async def broadcast(self, data: Union[str, bytes], exclude: Iterable[str] = ()) -> None:
        """Send ``data`` to every client not excluded; clients that fail are dropped."""
        skipped = set(exclude)
        for connection in self.connections:
            if connection.id in skipped:
                continue
            try:
                await connection.send(data)
            except Exception:
                logger.exception(
                    "Broadcast to client failed",
                    agent_kind=self.agent_kind,
                    instance_name=self.instance_name,
                    connection_id=connection.id,
                )
                await self.disconnect(connection)

    async def handle_frame(self, connection: Connection, data: Union[str, bytes]) -> None:
        """Route a frame received from ``connection``."""
        decoded = decode_message(TransportMessage(data=data))
        if isinstance(decoded, StateEnvelope):
            await self.set_state(decoded.state, source=connection)
            return
        self.descriptor.message_count += 1
        await self.on_message(connection, data)

    @abc.abstractmethod
    async def on_message(self, connection: Connection, data: Union[str, bytes]) -> None:
        """Process application messages from a client."""

    async def on_connect(self, connection: Connection) -> None:
        """Hook executed after a client is attached."""
        return None

    async def on_close(self, connection: Connection) -> None:
        """Hook executed after a client is detached."""
        return None

    async def on_state_update(self, state: Any, source: Optional[Connection]) -> None:
        """Hook invoked after every state replacement."""
        return None
