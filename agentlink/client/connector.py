"""Client-side connector mirroring the state of a remote agent."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import structlog

from agentlink.core.codec import decode_message, encode_state
from agentlink.core.identity import resolve_identity, validate_identity
from agentlink.core.mirror import StateCallback, StateMirror
from agentlink.core.models import Identity, NamingWarning, StateEnvelope, StateOrigin, TransportMessage
from agentlink.transport.base import Transport, TransportOptions
from agentlink.transport.websocket import WebSocketTransport

logger = structlog.get_logger(__name__)

MessageCallback = Callable[[TransportMessage], None]
DiagnosticsSink = Callable[[NamingWarning], None]
TransportFactory = Callable[[Identity, TransportOptions], Transport]


def log_naming_warning(warning: NamingWarning) -> None:
    """Default diagnostics sink."""
    logger.warning(
        warning.message,
        field=warning.field,
        received=warning.received,
        expected=warning.expected,
    )


@dataclass
class ConnectorConfig:
    """Options for connecting to one agent instance."""

    agent_kind: str
    instance_name: Optional[str] = None
    on_message: Optional[MessageCallback] = None
    on_state_update: Optional[StateCallback] = None
    transport: TransportOptions = field(default_factory=TransportOptions)
    diagnostics: Optional[DiagnosticsSink] = None


class AgentConnector:
    """Keep a local mirror of an agent's state over a shared message channel.

    Inbound state envelopes update the mirror and fire ``on_state_update``
    with ``StateOrigin.SERVER``; every other message goes to ``on_message``
    untouched. ``set_state`` sends the new value and updates the mirror
    right away with ``StateOrigin.CLIENT``, without waiting for the agent.

    The transport is started on construction and owned by the caller from
    then on: dispose of it with ``await connector.transport.close()``.
    """

    def __init__(
        self,
        config: ConnectorConfig,
        *,
        transport_factory: TransportFactory = WebSocketTransport.for_identity,
    ) -> None:
        self._identity = resolve_identity(config.agent_kind, config.instance_name)
        sink = config.diagnostics or log_naming_warning
        for warning in validate_identity(self._identity):
            sink(warning)

        self._on_message = config.on_message
        self._mirror = StateMirror(config.on_state_update)
        self.transport = transport_factory(self._identity, config.transport)
        self.transport.set_message_handler(self._dispatch)
        self.transport.start()

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def agent_kind(self) -> str:
        return self._identity.agent_kind

    @property
    def instance_name(self) -> str:
        return self._identity.instance_name

    @property
    def state(self) -> Any:
        return self._mirror.state

    async def set_state(self, state: Any) -> None:
        """Push a full state replacement to the agent."""
        frame = encode_state(state)
        await self.transport.send(frame)
        self._mirror.apply(state, StateOrigin.CLIENT)

    def _dispatch(self, message: TransportMessage) -> None:
        decoded = decode_message(message)
        if isinstance(decoded, StateEnvelope):
            logger.debug("State update received", agent_kind=self.agent_kind, instance_name=self.instance_name)
            self._mirror.apply(decoded.state, StateOrigin.SERVER)
            return
        if self._on_message is not None:
            self._on_message(message)
