"""Tests for hosted agents driven through the in-process transport."""
from __future__ import annotations

from typing import List, Union

import pytest

from agentlink.agents.base import Connection
from agentlink.agents.echo import EchoAgent
from agentlink.client.connector import AgentConnector, ConnectorConfig
from agentlink.core.models import StateOrigin, TransportMessage
from agentlink.errors import TransportClosedError
from agentlink.server.registry import AgentRegistry
from agentlink.transport.base import TransportState
from agentlink.transport.local import LocalTransport


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def registry() -> AgentRegistry:
    return AgentRegistry(agent_catalog={"echo": EchoAgent})


async def open_connector(registry: AgentRegistry, name: str = "room") -> tuple:
    updates: list = []
    messages: list = []
    connector = AgentConnector(
        ConnectorConfig(
            agent_kind="echo",
            instance_name=name,
            on_message=messages.append,
            on_state_update=lambda state, origin: updates.append((state, origin)),
        ),
        transport_factory=LocalTransport.factory(registry),
    )
    await connector.transport.wait_open(timeout=2)
    return connector, updates, messages


@pytest.mark.anyio
async def test_client_update_reaches_other_clients_only(registry: AgentRegistry) -> None:
    first, first_updates, _ = await open_connector(registry)
    second, second_updates, _ = await open_connector(registry)

    await first.set_state({"count": 1})

    agent = registry.get("echo", "room")
    assert agent is not None and agent.state == {"count": 1}
    assert first_updates == [({"count": 1}, StateOrigin.CLIENT)]
    assert second_updates == [({"count": 1}, StateOrigin.SERVER)]
    assert second.state == {"count": 1}
    assert agent.descriptor.state_updates == 1
    assert agent.updates == [({"n": 1}, "sender")]


@pytest.mark.anyio
async def test_new_client_receives_current_state(registry: AgentRegistry) -> None:
    agent = registry.get_or_create("echo", "room")
    await agent.set_state({"topic": "intro"})

    connector, updates, _ = await open_connector(registry)

    assert updates == [({"topic": "intro"}, StateOrigin.SERVER)]
    assert connector.state == {"topic": "intro"}


@pytest.mark.anyio
async def test_server_update_reaches_every_client(registry: AgentRegistry) -> None:
    first, first_updates, _ = await open_connector(registry)
    second, second_updates, _ = await open_connector(registry)

    await registry.get_or_create("echo", "room").set_state([1, 2])

    assert first_updates == second_updates == [([1, 2], StateOrigin.SERVER)]


@pytest.mark.anyio
async def test_application_messages_are_echoed(registry: AgentRegistry) -> None:
    connector, updates, messages = await open_connector(registry)

    await connector.transport.send("hi")
    await connector.transport.send('{"type": "chat"}')

    assert messages == [TransportMessage("room heard hi"), TransportMessage('room heard {"type": "chat"}')]
    assert updates == []
    assert registry.get("echo", "room").descriptor.message_count == 2


@pytest.mark.anyio
async def test_instances_are_isolated_and_case_sensitive(registry: AgentRegistry) -> None:
    lower, lower_updates, _ = await open_connector(registry, "room")
    upper, upper_updates, _ = await open_connector(registry, "Room")

    await lower.set_state("only lower")

    assert upper_updates == []
    assert {agent.instance_name for agent in registry.list_agents()} == {"room", "Room"}


@pytest.mark.anyio
async def test_unknown_agent_kind_fails_at_construction(registry: AgentRegistry) -> None:
    with pytest.raises(KeyError):
        AgentConnector(ConnectorConfig(agent_kind="missing"), transport_factory=LocalTransport.factory(registry))


@pytest.mark.anyio
async def test_closed_connector_is_detached(registry: AgentRegistry) -> None:
    first, first_updates, _ = await open_connector(registry)
    second, _, _ = await open_connector(registry)

    await first.transport.close()
    await second.set_state("after close")

    assert first_updates == []
    assert first.state is None
    with pytest.raises(TransportClosedError):
        await first.set_state("late")


@pytest.mark.anyio
async def test_terminate_closes_client_transports(registry: AgentRegistry) -> None:
    connector, _, _ = await open_connector(registry)

    await registry.terminate("echo", "room")

    assert connector.transport.state is TransportState.CLOSED
    assert registry.get("echo", "room") is None
    with pytest.raises(TransportClosedError):
        await connector.set_state(1)


class RecordingConnection(Connection):
    def __init__(self, connection_id: str) -> None:
        super().__init__(connection_id)
        self.frames: List[Union[str, bytes]] = []

    async def send(self, data: Union[str, bytes]) -> None:
        self.frames.append(data)


class BrokenConnection(Connection):
    async def send(self, data: Union[str, bytes]) -> None:
        raise ConnectionResetError("peer gone")


class TrackingAgent(EchoAgent):
    def __init__(self, descriptor) -> None:
        super().__init__(descriptor)
        self.updates: list = []

    async def on_state_update(self, state, source) -> None:
        self.updates.append((state, source.id if source is not None else None))


@pytest.mark.anyio
async def test_broadcast_drops_failing_client_and_reaches_the_rest() -> None:
    agent = AgentRegistry(agent_catalog={"tracking": TrackingAgent}).get_or_create("tracking", "room")
    sender = RecordingConnection("sender")
    broken = BrokenConnection("broken")
    live = RecordingConnection("live")
    for connection in (sender, broken, live):
        await agent.connect(connection)

    await agent.handle_frame(sender, '{"type":"cf_agent_state","state":{"n":1}}')

    assert agent.state == {"n": 1}
    assert agent.descriptor.state_updates == 1
    assert agent.updates == [({"n": 1}, "sender")]
    assert live.frames == ['{"type":"cf_agent_state","state":{"n":1}}']
    assert sender.frames == []
    assert [c.id for c in agent.connections] == ["sender", "live"]
