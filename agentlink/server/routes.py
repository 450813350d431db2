"""HTTP and WebSocket API exposing hosted agents."""
from __future__ import annotations

import uuid
from typing import Any, List, Union

import structlog
from fastapi import APIRouter, Depends, HTTPException, WebSocket, status
from pydantic import BaseModel, Field

from agentlink.agents.base import Agent, Connection
from agentlink.observability.logging import bind_connection_context
from agentlink.runtime import get_registry
from agentlink.server.registry import AgentRegistry

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/agents", tags=["agents"])


class AgentResponse(BaseModel):
    agent_kind: str
    instance_name: str
    connections: int
    message_count: int
    state_updates: int
    state: Any = None

    @classmethod
    def from_agent(cls, agent: Agent) -> "AgentResponse":
        return cls(
            agent_kind=agent.agent_kind,
            instance_name=agent.instance_name,
            connections=len(tuple(agent.connections)),
            message_count=agent.descriptor.message_count,
            state_updates=agent.descriptor.state_updates,
            state=agent.state,
        )


class StateResponse(BaseModel):
    state: Any = None


class StateUpdateRequest(BaseModel):
    state: Any = Field(..., description="Full replacement for the agent state")


class WebSocketConnection(Connection):
    """Agent connection backed by a FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket, connection_id: str) -> None:
        super().__init__(connection_id)
        self._websocket = websocket

    async def send(self, data: Union[str, bytes]) -> None:
        if isinstance(data, bytes):
            await self._websocket.send_bytes(data)
        else:
            await self._websocket.send_text(data)

    async def close(self) -> None:
        await self._websocket.close()


@router.get("", response_model=List[AgentResponse])
async def list_agents(registry: AgentRegistry = Depends(get_registry)) -> List[AgentResponse]:
    return [AgentResponse.from_agent(agent) for agent in registry.list_agents()]


@router.get("/{agent_kind}/{instance_name}/state", response_model=StateResponse)
async def get_state(
    agent_kind: str,
    instance_name: str,
    registry: AgentRegistry = Depends(get_registry),
) -> StateResponse:
    agent = registry.get(agent_kind, instance_name)
    if agent is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown agent instance")
    return StateResponse(state=agent.state)


@router.put("/{agent_kind}/{instance_name}/state", response_model=StateResponse)
async def put_state(
    agent_kind: str,
    instance_name: str,
    request: StateUpdateRequest,
    registry: AgentRegistry = Depends(get_registry),
) -> StateResponse:
    try:
        agent = registry.get_or_create(agent_kind, instance_name)
    except KeyError as exc:
        detail = exc.args[0] if exc.args else str(exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail) from exc
    await agent.set_state(request.state)
    return StateResponse(state=agent.state)


@router.websocket("/{agent_kind}/{instance_name}")
async def agent_socket(
    websocket: WebSocket,
    agent_kind: str,
    instance_name: str,
    registry: AgentRegistry = Depends(get_registry),
) -> None:
    try:
        agent = registry.get_or_create(agent_kind, instance_name)
    except KeyError:
        logger.warning("Rejected connection to unknown agent", agent_kind=agent_kind)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    bind_connection_context(agent_kind, instance_name)
    connection = WebSocketConnection(websocket, websocket.query_params.get("_pk") or str(uuid.uuid4()))
    await agent.connect(connection)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            data = message.get("text")
            if data is None:
                data = message.get("bytes") or b""
            await agent.handle_frame(connection, data)
    finally:
        await agent.disconnect(connection)
