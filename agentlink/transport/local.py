"""In-process transport attaching a connector to a locally hosted agent."""
from __future__ import annotations

import asyncio
import functools
import uuid
from typing import TYPE_CHECKING, Callable, Optional, Union

from agentlink.agents.base import Agent, Connection
from agentlink.core.models import Identity, TransportMessage
from agentlink.errors import TransportClosedError
from agentlink.transport.base import Transport, TransportOptions, TransportState

if TYPE_CHECKING:
    from agentlink.server.registry import AgentRegistry


class _LocalConnection(Connection):
    """Agent-side end of a local transport."""

    def __init__(self, transport: LocalTransport) -> None:
        super().__init__(transport.id)
        self._transport = transport

    async def send(self, data: Union[str, bytes]) -> None:
        self._transport._deliver(TransportMessage(data=data))

    async def close(self) -> None:
        await self._transport.close()


class LocalTransport(Transport):
    """Transport whose frames go straight to an agent in the same event loop."""

    def __init__(
        self,
        registry: AgentRegistry,
        identity: Identity,
        options: Optional[TransportOptions] = None,
    ) -> None:
        super().__init__()
        self.options = options or TransportOptions()
        self.id = self.options.connection_id or str(uuid.uuid4())
        self.identity = identity
        self._registry = registry
        self._connection = _LocalConnection(self)
        self._agent: Optional[Agent] = None
        self._runner: Optional[asyncio.Task[None]] = None

    @classmethod
    def factory(cls, registry: AgentRegistry) -> Callable[[Identity, TransportOptions], LocalTransport]:
        """Transport factory for ``AgentConnector`` bound to ``registry``."""
        return functools.partial(cls, registry)

    @property
    def agent(self) -> Optional[Agent]:
        return self._agent

    def start(self) -> None:
        if self._runner is not None:
            return
        # Unknown agent kinds fail here, at construction time.
        self._agent = self._registry.get_or_create(self.identity.agent_kind, self.identity.instance_name)
        self._runner = asyncio.get_running_loop().create_task(self._attach(self._agent))

    async def wait_open(self, timeout: Optional[float] = None) -> None:
        if self._runner is not None:
            await asyncio.wait_for(asyncio.shield(self._runner), timeout)
        await super().wait_open(timeout)

    async def send(self, data: str) -> None:
        if self._state is TransportState.CLOSED:
            raise TransportClosedError(f"Local transport {self.id} is closed")
        if self._agent is None or self._runner is None:
            raise TransportClosedError(f"Local transport {self.id} was never started")
        await self._runner
        await self._agent.handle_frame(self._connection, data)

    async def close(self) -> None:
        if self._state is TransportState.CLOSED:
            return
        self._mark_closed()
        if self._agent is not None:
            await self._agent.disconnect(self._connection)

    async def _attach(self, agent: Agent) -> None:
        await agent.connect(self._connection)
        if self._state is not TransportState.CLOSED:
            self._mark_open()
