"""Registry provisioning hosted agent instances by kind and name."""
from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple, Type

import structlog

from agentlink.agents.base import Agent
from agentlink.core.models import AgentDescriptor, Identity

logger = structlog.get_logger(__name__)


class AgentRegistry:
    """Create agents on first use and keep them for the life of the host.

    Names are matched case-sensitively, exactly as clients address them.
    """

    def __init__(self, agent_catalog: Dict[str, Type[Agent]]) -> None:
        self._agent_catalog = agent_catalog
        self._agents: Dict[Tuple[str, str], Agent] = {}

    def get_or_create(self, agent_kind: str, instance_name: str) -> Agent:
        key = (agent_kind, instance_name)
        agent = self._agents.get(key)
        if agent is None:
            agent_cls = self._resolve_agent_class(agent_kind)
            agent = agent_cls(AgentDescriptor(identity=Identity(agent_kind, instance_name)))
            self._agents[key] = agent
            logger.info("Agent created", agent_kind=agent_kind, instance_name=instance_name)
        return agent

    def get(self, agent_kind: str, instance_name: str) -> Optional[Agent]:
        return self._agents.get((agent_kind, instance_name))

    def list_agents(self) -> Iterable[Agent]:
        return tuple(self._agents.values())

    async def terminate(self, agent_kind: str, instance_name: str) -> None:
        """Drop an instance after detaching its clients."""
        agent = self._agents.pop((agent_kind, instance_name), None)
        if agent is None:
            return
        for connection in agent.connections:
            await agent.disconnect(connection)
            await connection.close()
        logger.info("Agent terminated", agent_kind=agent_kind, instance_name=instance_name)

    def _resolve_agent_class(self, agent_kind: str) -> Type[Agent]:
        if agent_kind not in self._agent_catalog:
            raise KeyError(f"No agent registered for kind '{agent_kind}'")
        return self._agent_catalog[agent_kind]
