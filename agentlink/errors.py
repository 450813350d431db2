"""Exception hierarchy for agentlink."""
from __future__ import annotations


class AgentLinkError(Exception):
    """Base class for errors raised by agentlink."""


class StateEncodingError(AgentLinkError, ValueError):
    """Raised when a state value cannot be serialized into an envelope."""


class TransportClosedError(AgentLinkError, ConnectionError):
    """Raised when sending on a transport that has been closed."""
