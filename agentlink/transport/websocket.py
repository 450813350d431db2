"""Reconnecting WebSocket transport addressed by party and room."""
from __future__ import annotations

import asyncio
import uuid
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional
from urllib.parse import urlencode

import structlog
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import WebSocketException

from agentlink.core.models import Identity, TransportMessage
from agentlink.errors import TransportClosedError
from agentlink.transport.base import ReconnectPolicy, Transport, TransportOptions, TransportState

logger = structlog.get_logger(__name__)

_INSECURE_HOST_PREFIXES = ("localhost", "127.", "0.0.0.0", "[::1]", "10.", "192.168.")


def build_url(options: TransportOptions, party: str, room: str, connection_id: str) -> str:
    """Compose ``{ws|wss}://host/prefix/party/room?_pk=...`` for a connection."""
    host = options.host
    secure = options.secure
    for scheme, is_secure in (("https://", True), ("wss://", True), ("http://", False), ("ws://", False)):
        if host.startswith(scheme):
            host = host[len(scheme):]
            if secure is None:
                secure = is_secure
            break
    host = host.rstrip("/")
    if secure is None:
        secure = not host.startswith(_INSECURE_HOST_PREFIXES)

    params: Dict[str, str] = {"_pk": connection_id}
    params.update(options.query)
    path = "/".join(part.strip("/") for part in (options.prefix, party, room) if part)
    return f"{'wss' if secure else 'ws'}://{host}/{path}?{urlencode(params)}"


class WebSocketTransport(Transport):
    """WebSocket channel that reconnects until closed by its owner.

    Frames sent while the socket is not open are queued and flushed in order
    on the next successful connection.
    """

    def __init__(self, party: str, room: str, options: Optional[TransportOptions] = None) -> None:
        super().__init__()
        self.options = options or TransportOptions()
        self.party = party
        self.room = room
        self.id = self.options.connection_id or str(uuid.uuid4())
        self.url = build_url(self.options, party, room, self.id)
        self.retry_count = 0
        self._websocket: Optional[ClientConnection] = None
        self._outbox: Deque[str] = deque()
        self._runner: Optional[asyncio.Task[None]] = None

    @classmethod
    def for_identity(cls, identity: Identity, options: TransportOptions) -> WebSocketTransport:
        return cls(identity.agent_kind, identity.instance_name, options)

    @property
    def pending(self) -> int:
        return len(self._outbox)

    def start(self) -> None:
        if self._runner is not None or self._state is TransportState.CLOSED:
            return
        self._runner = asyncio.get_running_loop().create_task(self._run())

    async def send(self, data: str) -> None:
        if self._state is TransportState.CLOSED:
            raise TransportClosedError(f"Transport to {self.url} is closed")
        websocket = self._websocket
        if websocket is not None and self._state is TransportState.OPEN:
            await websocket.send(data)
            return
        limit = self.options.max_enqueued_messages
        if limit is not None and len(self._outbox) >= limit:
            logger.warning("Dropping outbound message, queue full", url=self.url, limit=limit)
            return
        self._outbox.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._state is TransportState.CLOSED:
            return
        self._mark_closed()
        self._outbox.clear()
        websocket = self._websocket
        if websocket is not None:
            await websocket.close(code=code, reason=reason)
        runner = self._runner
        if runner is not None and runner is not asyncio.current_task():
            runner.cancel()
            try:
                await runner
            except asyncio.CancelledError:
                pass
        logger.info("Transport closed", url=self.url)

    async def _run(self) -> None:
        policy = self.options.reconnect
        while self._state is not TransportState.CLOSED:
            error: Optional[BaseException] = None
            try:
                async with connect(
                    self.url,
                    additional_headers=dict(self.options.headers) or None,
                    subprotocols=list(self.options.subprotocols) or None,
                    open_timeout=self.options.open_timeout,
                    **self.options.connect_kwargs,
                ) as websocket:
                    await self._on_connected(websocket)
                    async for frame in websocket:
                        self._dispatch(frame)
            except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
                error = exc
                logger.warning("Connection error", url=self.url, error=str(exc) or exc.__class__.__name__)
                self._call_hook("on_error", exc)
            finally:
                self._websocket = None
                self._mark_connecting()

            if self._state is TransportState.CLOSED:
                break
            self._call_hook("on_close", error)

            self.retry_count += 1
            if policy.max_retries is not None and self.retry_count > policy.max_retries:
                logger.error("Giving up reconnecting", url=self.url, retries=policy.max_retries)
                self._mark_closed()
                break
            delay = policy.delay_for(self.retry_count)
            logger.info("Reconnecting", url=self.url, attempt=self.retry_count, delay=delay)
            await asyncio.sleep(delay)

    async def _on_connected(self, websocket: ClientConnection) -> None:
        self._websocket = websocket
        self.retry_count = 0
        # Sends issued while flushing still queue behind older frames.
        while self._outbox:
            await websocket.send(self._outbox.popleft())
        self._mark_open()
        logger.info("Connected", url=self.url)
        self._call_hook("on_open")

    def _call_hook(self, name: str, *args: Any) -> None:
        hook: Optional[Callable[..., None]] = getattr(self.options, name)
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:
            logger.exception("Lifecycle hook failed", url=self.url, hook=name)

    def _dispatch(self, frame: Any) -> None:
        try:
            self._deliver(TransportMessage(data=frame))
        except Exception:
            logger.exception("Message handler failed", url=self.url)
