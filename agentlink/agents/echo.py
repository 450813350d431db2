"""Simple agent used by the demo and the default host catalog."""
from __future__ import annotations

from typing import Union

from agentlink.agents.base import Agent, Connection


class EchoAgent(Agent):
    """Agent that echoes application messages back to their sender."""

    async def on_message(self, connection: Connection, data: Union[str, bytes]) -> None:
        if isinstance(data, bytes):
            await connection.send(data)
            return
        await connection.send(f"{self.instance_name} heard {data}")
