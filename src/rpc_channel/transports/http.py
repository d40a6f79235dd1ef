"""HTTP request/response transport: httpx client side, FastAPI router server side.

Every ``POST {base}/rpc`` carries one envelope. For a ``request`` envelope the
HTTP response body is the correlated ``response``/``error`` envelope, which the
client transport feeds straight back into its channel.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from ..envelope import MessageType, RPCMessage
from ..primitives.exceptions import MessageSerializationError, TransportError

if TYPE_CHECKING:
    from ..ports.transport import MessageHandler

logger = logging.getLogger(__name__)

RPC_PATH = "/rpc"
HEALTH_PATH = "/health"


class HTTPTransport:
    """Client-side ITransport over plain HTTP.

    ``connect`` performs a health check against ``{base_url}/health``.
    Pass an existing ``httpx.AsyncClient`` to share pooling (or to talk to an
    ASGI app in-process); otherwise the transport owns and closes its own.
    """

    def __init__(
        self,
        base_url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        health_timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("/")
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._health_timeout = health_timeout
        self._client = client
        self._owns_client = client is None
        self._handler: MessageHandler | None = None
        self._connected = False

    @property
    def base_url(self) -> str:
        return self._base_url

    # ── ITransport ───────────────────────────────────────────────

    async def send(self, message: RPCMessage) -> None:
        if not self._connected:
            raise TransportError("HTTP transport is not connected", message.trace_id)
        request_kwargs: dict[str, Any] = {"headers": self._headers}
        if self._timeout is not None:
            request_kwargs["timeout"] = self._timeout
        try:
            response = await self._http().post(
                f"{self._base_url}{RPC_PATH}",
                json=message.to_wire(),
                **request_kwargs,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP request failed: {e}", message.trace_id) from e

        if not response.is_success:
            raise TransportError(
                f"HTTP request failed with status {response.status_code}: "
                f"{response.reason_phrase}",
                message.trace_id,
            )
        if message.type is not MessageType.REQUEST:
            return

        try:
            reply = RPCMessage.from_wire(response.json())
        except ValueError as e:
            raise MessageSerializationError(
                f"Malformed reply envelope: {e}", message.trace_id
            ) from e
        if self._handler is not None:
            await self._handler(reply)

    def on_message(self, handler: MessageHandler) -> None:
        self._handler = handler

    async def connect(self) -> None:
        try:
            response = await self._http().get(
                f"{self._base_url}{HEALTH_PATH}",
                headers=self._headers,
                timeout=self._health_timeout,
            )
        except httpx.HTTPError as e:
            self._connected = False
            raise TransportError(f"Failed to connect to HTTP server: {e}") from e
        if not response.is_success:
            self._connected = False
            raise TransportError(
                f"Server health check failed with status {response.status_code}"
            )
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def is_connected(self) -> bool:
        return self._connected

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client


class HTTPServerTransport:
    """Server-side ITransport: one HTTP exchange per inbound request.

    :meth:`handle_request` hands the posted envelope to the channel and waits
    for the reply the channel sends for the same trace id. HTTP cannot push,
    so this transport refuses to originate requests and silently drops
    replies for traces it is not currently serving (they belong to another
    transport attached to the same channel).
    """

    def __init__(self, *, reply_timeout: float = 30.0) -> None:
        if reply_timeout <= 0:
            raise ValueError("reply_timeout must be > 0")
        self._reply_timeout = reply_timeout
        self._handler: MessageHandler | None = None
        self._connected = False
        self._exchanges: dict[str, asyncio.Future[RPCMessage]] = {}

    async def handle_request(self, body: Any) -> dict[str, Any] | None:
        """Process one posted envelope; return the reply envelope's wire form.

        Non-request envelopes are delivered and ``None`` is returned.
        """
        if not self._connected or self._handler is None:
            raise TransportError("HTTP server transport is not connected")
        try:
            message = RPCMessage.from_wire(body)
        except PydanticValidationError as e:
            raise MessageSerializationError(f"Malformed envelope: {e}") from e

        if message.type is not MessageType.REQUEST:
            await self._handler(message)
            return None

        trace_id = message.trace_id
        if trace_id in self._exchanges:
            raise TransportError(f"Trace id {trace_id!r} is already being served")
        future: asyncio.Future[RPCMessage] = asyncio.get_running_loop().create_future()
        self._exchanges[trace_id] = future
        try:
            await self._handler(message)
            reply = await asyncio.wait_for(future, self._reply_timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"No reply for trace {trace_id} within {self._reply_timeout}s",
                trace_id,
            ) from e
        finally:
            self._exchanges.pop(trace_id, None)
        return reply.to_wire()

    async def send(self, message: RPCMessage) -> None:
        if message.type is MessageType.REQUEST:
            raise TransportError(
                "HTTP server transport cannot originate requests", message.trace_id
            )
        future = self._exchanges.get(message.trace_id)
        if future is None or future.done():
            logger.debug("No open HTTP exchange for trace %s", message.trace_id)
            return
        future.set_result(message)

    def on_message(self, handler: MessageHandler) -> None:
        self._handler = handler

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False
        for trace_id, future in list(self._exchanges.items()):
            if not future.done():
                future.set_exception(
                    TransportError("HTTP server transport disconnected", trace_id)
                )

    def is_connected(self) -> bool:
        return self._connected


def create_rpc_router(transport: HTTPServerTransport, *, prefix: str = "") -> APIRouter:
    """FastAPI router exposing ``POST {prefix}/rpc`` and ``GET {prefix}/health``.

    Usage::

        transport = HTTPServerTransport()
        await channel.connect(transport)
        app.include_router(create_rpc_router(transport))
    """
    router = APIRouter(prefix=prefix)

    @router.post(RPC_PATH)
    async def rpc_endpoint(request: Request) -> Response:
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(
                {"error": "Request body is not valid JSON"}, status_code=400
            )
        try:
            reply = await transport.handle_request(body)
        except MessageSerializationError as e:
            return JSONResponse({"error": e.to_payload()}, status_code=400)
        except TransportError as e:
            return JSONResponse({"error": e.to_payload()}, status_code=503)
        if reply is None:
            return Response(status_code=202)
        return JSONResponse(reply)

    @router.get(HEALTH_PATH)
    async def health_endpoint() -> JSONResponse:
        if transport.is_connected():
            return JSONResponse({"status": "ok"})
        return JSONResponse({"status": "unavailable"}, status_code=503)

    return router
