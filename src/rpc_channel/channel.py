"""Channel — request/response correlation and dispatch over pluggable transports."""

from __future__ import annotations

import asyncio
import itertools
import logging
import secrets
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from .correlation import call_context
from .envelope import MessageType, RPCMessage
from .method import ServiceInfo, call_handler
from .pending import PendingCallTable
from .primitives.exceptions import (
    InternalError,
    MethodNotFoundError,
    RPCError,
    RPCTimeoutError,
    TransportError,
    ValidationError,
)
from .registry import MethodRegistry
from .validation.apply import apply_validator
from .validation.pydantic import collect_errors

if TYPE_CHECKING:
    from .method import MethodDefinition, MethodInfo
    from .ports.transport import ITransport
    from .ports.validation import IValidator

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30_000


def to_rpc_error(exc: BaseException, trace_id: str) -> RPCError:
    """Classify a handler failure for the wire.

    Taxonomy errors pass through (as a trace-tagged copy if they carry no
    trace id), pydantic validation failures become :class:`ValidationError`,
    everything else becomes :class:`InternalError`.
    """
    if isinstance(exc, RPCError):
        return exc if exc.trace_id is not None else exc.with_trace_id(trace_id)
    if isinstance(exc, PydanticValidationError):
        return ValidationError(str(exc), trace_id, errors=collect_errors(exc))
    return InternalError(str(exc) or "Unknown error", trace_id)


class Channel:
    """The routing and correlation engine between handlers and transports.

    Outbound, :meth:`invoke` either runs a locally published method in-process
    or sends a ``request`` envelope over every attached transport and waits for
    the correlated ``response``/``error`` (or the timeout). Inbound, every
    transport feeds :meth:`handle_message`, which executes requests against the
    method registry and settles pending calls.

    Usage::

        channel = Channel("client")
        await channel.connect(transport)
        result = await channel.invoke("server", "user.get", {"id": "1"})
    """

    def __init__(
        self,
        channel_id: str,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        *,
        registry: MethodRegistry | None = None,
    ) -> None:
        if not channel_id:
            raise ValueError("channel_id must not be empty")
        if default_timeout_ms <= 0:
            raise ValueError("default_timeout_ms must be > 0")
        self._channel_id = channel_id
        self._default_timeout_ms = default_timeout_ms
        self._registry = registry or MethodRegistry()
        self._pending = PendingCallTable()
        self._transports: list[ITransport] = []
        self._services: dict[str, ServiceInfo] = {}
        self._connected = False
        self._sequence = itertools.count(1)

    # ── Properties ───────────────────────────────────────────────

    @property
    def channel_id(self) -> str:
        return self._channel_id

    @property
    def default_timeout_ms(self) -> int:
        return self._default_timeout_ms

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def transports(self) -> tuple[ITransport, ...]:
        return tuple(self._transports)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ── Lifecycle ────────────────────────────────────────────────

    async def connect(self, *transports: ITransport) -> None:
        """Attach and connect *transports*, then snapshot the published methods.

        Transports attached by earlier calls stay attached, so one channel can
        be reachable over several media at once.
        """
        for transport in transports:
            transport.on_message(self.handle_message)
            await transport.connect()
            if not any(t is transport for t in self._transports):
                self._transports.append(transport)
        self._connected = True
        self._publish_service_info()
        logger.info(
            "Channel %s connected over %d transport(s)",
            self._channel_id,
            len(self._transports),
        )

    async def disconnect(self) -> None:
        """Fail every pending call, then disconnect and detach every transport."""
        drained = self._pending.drain_all(
            lambda trace_id: RPCTimeoutError("Connection closed", trace_id)
        )
        transports = list(self._transports)
        self._transports.clear()
        self._connected = False
        results = await asyncio.gather(
            *(transport.disconnect() for transport in transports),
            return_exceptions=True,
        )
        logger.info(
            "Channel %s disconnected (%d pending call(s) cancelled)",
            self._channel_id,
            drained,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            logger.warning(
                "Transport failed to disconnect from channel %s: %s",
                self._channel_id,
                failure,
            )
        if failures:
            raise failures[0]

    # ── Registration ─────────────────────────────────────────────

    def publish_method(self, definition: MethodDefinition) -> None:
        """Make *definition* callable locally and by peers. No network effect."""
        self._registry.publish(definition)

    # ── Outbound ─────────────────────────────────────────────────

    async def invoke(
        self,
        target_id: str,
        method_id: str,
        payload: Any = None,
        *,
        input_validator: IValidator | None = None,
        output_validator: IValidator | None = None,
        timeout_ms: int | None = None,
    ) -> Any:
        """Call ``method_id`` on ``target_id`` and return its (validated) output.

        Raises:
            ValidationError: *payload* or the result failed a validator.
            MethodNotFoundError: the peer has no such method.
            RPCTimeoutError: no outcome within the timeout, or the channel
                disconnected first.
            TransportError: no transport is attached or a send failed.

        Exceptions raised by a *local* handler propagate unchanged.
        """
        if timeout_ms is not None and timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")
        trace_id = self._generate_trace_id()

        if input_validator is not None:
            await apply_validator(
                input_validator, payload, trace_id=trace_id, stage="Input"
            )

        method = self._registry.lookup(target_id, method_id)
        if method is not None:
            return await self._invoke_local(method, payload, output_validator, trace_id)

        return await self._invoke_remote(
            target_id,
            method_id,
            payload,
            output_validator,
            timeout_ms or self._default_timeout_ms,
            trace_id,
        )

    async def _invoke_local(
        self,
        method: MethodDefinition,
        payload: Any,
        output_validator: IValidator | None,
        trace_id: str,
    ) -> Any:
        with call_context(trace_id, self._channel_id):
            validated = await apply_validator(
                method.input_validator, payload, trace_id=trace_id, stage="Input"
            )
            result = await call_handler(method.handler, validated)
        result = await apply_validator(
            method.output_validator, result, trace_id=trace_id, stage="Output"
        )
        if output_validator is not None:
            result = await apply_validator(
                output_validator, result, trace_id=trace_id, stage="Output"
            )
        return result

    async def _invoke_remote(
        self,
        target_id: str,
        method_id: str,
        payload: Any,
        output_validator: IValidator | None,
        timeout_ms: int,
        trace_id: str,
    ) -> Any:
        if not self._transports:
            raise TransportError(
                f"No transport available to reach '{target_id}'", trace_id
            )

        message = RPCMessage(
            caller_id=self._channel_id,
            target_id=target_id,
            trace_id=trace_id,
            method_id=method_id,
            payload=payload,
            type=MessageType.REQUEST,
        )
        future = self._pending.register(trace_id, timeout_ms)
        try:
            await self._broadcast(message)
        except RPCError as exc:
            self._pending.fail(trace_id, to_rpc_error(exc, trace_id))
        except Exception as exc:  # noqa: BLE001
            self._pending.fail(
                trace_id, TransportError(f"Failed to send message: {exc}", trace_id)
            )

        try:
            result = await future
        finally:
            self._pending.discard(trace_id)

        if output_validator is not None:
            result = await apply_validator(
                output_validator, result, trace_id=trace_id, stage="Output"
            )
        return result

    async def _broadcast(self, message: RPCMessage) -> None:
        """Send to every attached transport concurrently; first failure wins."""
        await asyncio.gather(*(t.send(message) for t in list(self._transports)))

    # ── Inbound ──────────────────────────────────────────────────

    async def handle_message(self, message: RPCMessage | Mapping[str, Any]) -> None:
        """Single entry point for envelopes arriving from any transport.

        Never raises: a malformed envelope or an unexpected failure is logged
        and the next message is processed normally.
        """
        try:
            if not isinstance(message, RPCMessage):
                message = RPCMessage.from_wire(message)
            if message.type is MessageType.REQUEST:
                await self._handle_request(message)
            elif message.type is MessageType.RESPONSE:
                self._handle_response(message)
            elif message.type is MessageType.ERROR:
                self._handle_error(message)
        except Exception:  # noqa: BLE001
            logger.exception("Error handling message on channel %s", self._channel_id)

    async def _handle_request(self, message: RPCMessage) -> None:
        method = self._registry.lookup(message.target_id, message.method_id)
        if method is None:
            await self._send_error(
                message, MethodNotFoundError(message.method_id, message.trace_id)
            )
            return

        trace_id = message.trace_id
        try:
            with call_context(trace_id, message.caller_id):
                validated = await apply_validator(
                    method.input_validator,
                    message.payload,
                    trace_id=trace_id,
                    stage="Input",
                )
                result = await call_handler(method.handler, validated)
            output = await apply_validator(
                method.output_validator, result, trace_id=trace_id, stage="Output"
            )
        except Exception as exc:  # noqa: BLE001
            await self._send_error(message, to_rpc_error(exc, trace_id))
            return

        try:
            await self._broadcast(message.reply(self._channel_id, output))
        except Exception as exc:  # noqa: BLE001
            await self._send_error(message, to_rpc_error(exc, trace_id))

    def _handle_response(self, message: RPCMessage) -> None:
        if not self._pending.resolve(message.trace_id, message.payload):
            logger.debug("Ignoring response for unknown trace %s", message.trace_id)

    def _handle_error(self, message: RPCMessage) -> None:
        error = RPCError.from_payload(message.payload, message.trace_id)
        if not self._pending.fail(message.trace_id, error):
            logger.debug("Ignoring error for unknown trace %s", message.trace_id)

    async def _send_error(self, request: RPCMessage, error: RPCError) -> None:
        try:
            await self._broadcast(request.error_reply(self._channel_id, error))
        except Exception:  # noqa: BLE001
            logger.exception(
                "Failed to send %s for trace %s", error.code, request.trace_id
            )

    # ── Introspection ────────────────────────────────────────────

    def list_methods(self, service_id: str) -> list[MethodInfo]:
        """Methods last published for *service_id*; empty if never published."""
        service = self._services.get(service_id)
        return list(service.methods) if service else []

    def list_services(self) -> list[ServiceInfo]:
        return list(self._services.values())

    def _publish_service_info(self) -> None:
        self._services[self._channel_id] = ServiceInfo(
            id=self._channel_id, methods=tuple(self._registry.snapshot())
        )

    def _generate_trace_id(self) -> str:
        return (
            f"{self._channel_id}-{time.time_ns()}-"
            f"{next(self._sequence)}-{secrets.token_hex(4)}"
        )

    def __repr__(self) -> str:
        return (
            f"Channel(channel_id={self._channel_id!r}, "
            f"transports={len(self._transports)}, pending={len(self._pending)})"
        )


__all__ = ["DEFAULT_TIMEOUT_MS", "Channel", "to_rpc_error"]
