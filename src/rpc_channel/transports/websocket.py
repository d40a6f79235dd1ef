"""WebSocket transport and per-connection RPC server (``websockets`` asyncio API)."""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI
from websockets.protocol import State

from ..channel import DEFAULT_TIMEOUT_MS, Channel
from ..primitives.exceptions import MessageSerializationError, TransportError
from ..retry import ReconnectPolicy
from ..serialization import MessageSerializer

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..envelope import RPCMessage
    from ..method import MethodDefinition
    from ..ports.transport import MessageHandler

logger = logging.getLogger(__name__)


class WebSocketTransport:
    """ITransport over one WebSocket connection, JSON text frames.

    Client mode dials ``url`` on :meth:`connect` and, when given a
    :class:`ReconnectPolicy`, redials after an unexpected close. Server mode
    wraps a connection a server already accepted
    (:meth:`from_connection`) and never redials.

    Each inbound frame is handled in its own task, so a slow handler does not
    hold up the reader.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        connection: ServerConnection | None = None,
        reconnect: ReconnectPolicy | None = None,
        serializer: MessageSerializer | None = None,
        **connect_kwargs: Any,
    ) -> None:
        if (not url) == (connection is None):
            raise ValueError("Provide either a WebSocket URL or an accepted connection")
        self._url = url or None
        self._reconnect = reconnect or ReconnectPolicy.disabled()
        self._serializer = serializer or MessageSerializer()
        self._connect_kwargs = connect_kwargs
        self._connection: ClientConnection | ServerConnection | None = connection
        self._handler: MessageHandler | None = None
        self._reader: asyncio.Task[None] | None = None
        self._dispatches: set[asyncio.Task[None]] = set()
        self._closing = False

    @classmethod
    def from_connection(
        cls,
        connection: ServerConnection,
        *,
        serializer: MessageSerializer | None = None,
    ) -> WebSocketTransport:
        """Wrap a connection accepted by a server."""
        return cls(connection=connection, serializer=serializer)

    @property
    def url(self) -> str | None:
        return self._url

    # ── ITransport ───────────────────────────────────────────────

    async def send(self, message: RPCMessage) -> None:
        connection = self._connection
        if connection is None or connection.state is not State.OPEN:
            raise TransportError("WebSocket is not connected", message.trace_id)
        frame = self._serializer.serialize(message)
        try:
            await connection.send(frame)
        except ConnectionClosed as e:
            raise TransportError(
                f"Failed to send message: {e}", message.trace_id
            ) from e

    def on_message(self, handler: MessageHandler) -> None:
        self._handler = handler

    async def connect(self) -> None:
        """Open the connection (client mode) and start reading frames."""
        self._closing = False
        if self._connection is None or self._connection.state is not State.OPEN:
            if self._url is None:
                raise TransportError("WebSocket connection is already closed")
            self._connection = await self._open(self._url)
        if self._reader is None or self._reader.done():
            self._reader = asyncio.get_running_loop().create_task(
                self._read_loop(self._connection)
            )

    async def disconnect(self) -> None:
        """Close the connection and stop reading. Safe to call repeatedly."""
        self._closing = True
        connection = self._connection
        if connection is not None:
            await connection.close()
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader

    def is_connected(self) -> bool:
        return self._connection is not None and self._connection.state is State.OPEN

    async def wait_closed(self) -> None:
        """Return once the underlying connection is closed."""
        if self._connection is not None:
            await self._connection.wait_closed()

    # ── Internals ────────────────────────────────────────────────

    async def _open(self, url: str) -> ClientConnection:
        try:
            return await connect(url, **self._connect_kwargs)
        except (OSError, InvalidURI, InvalidHandshake, asyncio.TimeoutError) as e:
            raise TransportError(f"Failed to connect to {url}: {e}") from e

    async def _read_loop(self, connection: ClientConnection | ServerConnection) -> None:
        try:
            async for raw in connection:
                self._dispatch_frame(raw)
        except ConnectionClosed as e:
            logger.debug("WebSocket closed: %s", e)
        if not self._closing and self._url is not None:
            await self._reconnect_loop(self._url)

    def _dispatch_frame(self, raw: str | bytes) -> None:
        try:
            message = self._serializer.deserialize(raw)
        except MessageSerializationError as e:
            logger.warning("Discarding unparsable WebSocket frame: %s", e)
            return
        if self._handler is None:
            logger.debug("No handler registered; dropping %s", message.trace_id)
            return
        task = asyncio.get_running_loop().create_task(
            self._dispatch(self._handler, message)
        )
        self._dispatches.add(task)
        task.add_done_callback(self._dispatches.discard)

    async def _dispatch(self, handler: MessageHandler, message: RPCMessage) -> None:
        try:
            await handler(message)
        except Exception:  # noqa: BLE001
            logger.exception("WebSocket handler failed for trace %s", message.trace_id)

    async def _reconnect_loop(self, url: str) -> None:
        for attempt in itertools.count():
            if self._closing or not self._reconnect.should_retry(attempt):
                break
            await self._reconnect.wait_before(attempt)
            try:
                connection = await self._open(url)
            except TransportError as e:
                logger.warning(
                    "Reconnect attempt %d to %s failed: %s", attempt + 1, url, e
                )
                continue
            self._connection = connection
            self._reader = asyncio.get_running_loop().create_task(
                self._read_loop(connection)
            )
            logger.info("Reconnected to %s after %d attempt(s)", url, attempt + 1)
            return
        if not self._closing and self._reconnect.max_attempts:
            logger.warning("Giving up reconnecting to %s", url)

    def __repr__(self) -> str:
        return f"WebSocketTransport(url={self._url!r}, connected={self.is_connected()})"


class WebSocketServer:
    """Accepts WebSocket peers and serves the given methods to each of them.

    Every connection gets its own :class:`~rpc_channel.channel.Channel`
    (identity ``server_id``) with ``methods`` published on it, and that
    channel is disconnected when the peer goes away.
    """

    def __init__(
        self,
        methods: Iterable[MethodDefinition],
        *,
        host: str = "localhost",
        port: int = 8080,
        server_id: str = "server",
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        if not 0 <= port <= 65535:
            raise ValueError("port must be between 0 and 65535")
        self._methods = list(methods)
        self._host = host
        self._port = port
        self._server_id = server_id
        self._default_timeout_ms = default_timeout_ms
        self._server: Server | None = None
        self._channels: set[Channel] = set()

    @property
    def port(self) -> int:
        """The bound port once started (resolves port 0), else the configured one."""
        if self._server is not None:
            for sock in self._server.sockets:
                return int(sock.getsockname()[1])
        return self._port

    @property
    def url(self) -> str:
        return f"ws://{self._host}:{self.port}"

    @property
    def channels(self) -> tuple[Channel, ...]:
        return tuple(self._channels)

    def is_running(self) -> bool:
        return self._server is not None

    async def start(self) -> None:
        if self._server is not None:
            return
        self._server = await serve(self._handle, self._host, self._port)
        logger.info(
            "RPC server %s listening on %s with %d method(s)",
            self._server_id,
            self.url,
            len(self._methods),
        )

    async def stop(self) -> None:
        server, self._server = self._server, None
        if server is None:
            return
        server.close()
        await server.wait_closed()
        logger.info("RPC server %s stopped", self._server_id)

    async def _handle(self, connection: ServerConnection) -> None:
        transport = WebSocketTransport.from_connection(connection)
        channel = Channel(self._server_id, self._default_timeout_ms)
        for method in self._methods:
            channel.publish_method(method)
        self._channels.add(channel)
        try:
            await channel.connect(transport)
            await transport.wait_closed()
        finally:
            self._channels.discard(channel)
            await channel.disconnect()
