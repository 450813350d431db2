"""Application runtime composition helpers."""
from __future__ import annotations

from functools import lru_cache

from agentlink.agents.echo import EchoAgent
from agentlink.server.registry import AgentRegistry

_AGENT_CATALOG = {
    "echo": EchoAgent,
}


@lru_cache
def get_registry() -> AgentRegistry:
    return AgentRegistry(agent_catalog=_AGENT_CATALOG)
