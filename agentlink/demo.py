"""CLI demonstration of a connector mirroring an in-process agent."""
from __future__ import annotations

import asyncio
import sys
from typing import Any

from agentlink.agents.echo import EchoAgent
from agentlink.client.connector import AgentConnector, ConnectorConfig
from agentlink.config import settings
from agentlink.core.models import StateOrigin, TransportMessage
from agentlink.observability.logging import setup_logging
from agentlink.server.registry import AgentRegistry
from agentlink.transport.base import TransportOptions
from agentlink.transport.local import LocalTransport


def print_state(state: Any, origin: StateOrigin) -> None:
    print(f"State from {origin.value}: {state}")


def print_message(message: TransportMessage) -> None:
    print(f"Message: {message.data!r}")


async def main() -> None:
    setup_logging(log_level=settings.log_level, log_format=settings.log_format, service_name="agentlink-demo")
    registry = AgentRegistry(agent_catalog={"echo": EchoAgent})

    connector = AgentConnector(
        ConnectorConfig(agent_kind="echo", on_message=print_message, on_state_update=print_state),
        transport_factory=LocalTransport.factory(registry),
    )
    await connector.transport.wait_open(timeout=2)
    print(f"Connected to {connector.agent_kind}/{connector.instance_name}")

    await connector.set_state({"count": 1})

    agent = registry.get(connector.agent_kind, connector.instance_name)
    if agent is not None:
        await agent.set_state({"count": agent.state["count"] + 1})

    await connector.transport.send("Hello agent")
    print(f"Mirrored state: {connector.state}")

    await connector.transport.close()
    print("Connection closed")


async def remote() -> None:
    """Talk to an agent host listening on AGENTLINK_HOST."""
    setup_logging(log_level=settings.log_level, log_format=settings.log_format, service_name="agentlink-demo")
    connector = AgentConnector(
        ConnectorConfig(
            agent_kind="echo",
            on_message=print_message,
            on_state_update=print_state,
            transport=TransportOptions(host=settings.host),
        )
    )
    try:
        await connector.transport.wait_open(timeout=5)
        await connector.set_state({"count": 1})
        await connector.transport.send("Hello agent")
        await asyncio.sleep(0.5)
    finally:
        await connector.transport.close()


def run() -> None:
    asyncio.run(remote() if "--remote" in sys.argv[1:] else main())


if __name__ == "__main__":
    run()
