"""Transport abstraction the connector rides on."""
from __future__ import annotations

import abc
import asyncio
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Mapping, Optional, Sequence

from agentlink.core.models import TransportMessage

MessageHandler = Callable[[TransportMessage], None]


@dataclass(frozen=True)
class ReconnectPolicy:
    """Exponential backoff between connection attempts."""

    min_delay: float = 1.0
    max_delay: float = 10.0
    growth_factor: float = 1.3
    max_retries: Optional[int] = None

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before the ``attempt``-th reconnect (1-based)."""
        return min(self.max_delay, self.min_delay * self.growth_factor ** max(0, attempt - 1))


@dataclass(frozen=True)
class TransportOptions:
    """Connection options passed through the connector untouched.

    Hooks are called from the transport's own task; a hook that raises is
    logged and does not affect the connection.
    """

    host: str = "localhost:8000"
    secure: Optional[bool] = None
    prefix: str = "agents"
    query: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    subprotocols: Sequence[str] = ()
    reconnect: ReconnectPolicy = field(default_factory=ReconnectPolicy)
    open_timeout: float = 4.0
    max_enqueued_messages: Optional[int] = None
    connection_id: Optional[str] = None
    connect_kwargs: Mapping[str, Any] = field(default_factory=dict)
    on_open: Optional[Callable[[], None]] = None
    on_close: Optional[Callable[[Optional[BaseException]], None]] = None
    on_error: Optional[Callable[[BaseException], None]] = None


class TransportState(Enum):
    """Observable connection states owned by a transport."""

    CONNECTING = auto()
    OPEN = auto()
    CLOSED = auto()


class Transport(abc.ABC):
    """Bidirectional message channel delivering text or binary frames."""

    def __init__(self) -> None:
        self._handler: Optional[MessageHandler] = None
        self._opened = asyncio.Event()
        self._state = TransportState.CONNECTING

    @property
    def state(self) -> TransportState:
        return self._state

    def set_message_handler(self, handler: Optional[MessageHandler]) -> None:
        self._handler = handler

    async def wait_open(self, timeout: Optional[float] = None) -> None:
        """Block until the transport reports an open connection."""
        await asyncio.wait_for(self._opened.wait(), timeout)

    def _mark_open(self) -> None:
        self._state = TransportState.OPEN
        self._opened.set()

    def _mark_connecting(self) -> None:
        if self._state is not TransportState.CLOSED:
            self._state = TransportState.CONNECTING
        self._opened.clear()

    def _mark_closed(self) -> None:
        self._state = TransportState.CLOSED
        self._opened.clear()

    def _deliver(self, message: TransportMessage) -> None:
        """Hand one inbound message to the registered handler."""
        if self._state is TransportState.CLOSED or self._handler is None:
            return
        self._handler(message)

    @abc.abstractmethod
    def start(self) -> None:
        """Begin connecting without blocking the caller."""

    @abc.abstractmethod
    async def send(self, data: str) -> None:
        """Send one text frame."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Close the connection; no messages are delivered afterwards."""
