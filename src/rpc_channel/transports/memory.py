"""InMemoryTransport — ITransport linking two channels inside one process."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..primitives.exceptions import TransportError

if TYPE_CHECKING:
    from ..envelope import MessageType, RPCMessage
    from ..ports.transport import MessageHandler

logger = logging.getLogger(__name__)


class InMemoryTransport:
    """In-memory transport for tests and same-process wiring.

    Two transports created with :meth:`pair` (or joined with :meth:`link`)
    deliver to each other. Delivery is scheduled as a task on the receiving
    side, so ``send`` returns as soon as the envelope is handed over, the way
    a network write would. ``get_sent()`` and ``assert_sent()`` support test
    assertions; ``wait_idle()`` waits until every delivery has been handled.
    """

    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self._handler: MessageHandler | None = None
        self._peer: InMemoryTransport | None = None
        self._connected = False
        self._sent: list[RPCMessage] = []
        self._deliveries: set[asyncio.Task[None]] = set()

    @classmethod
    def pair(
        cls, left: str = "left", right: str = "right"
    ) -> tuple[InMemoryTransport, InMemoryTransport]:
        """Return two linked transports."""
        a, b = cls(left), cls(right)
        a.link(b)
        return a, b

    def link(self, peer: InMemoryTransport) -> None:
        """Connect this transport and *peer* back to back."""
        self._peer = peer
        peer._peer = self

    # ── ITransport ───────────────────────────────────────────────

    async def send(self, message: RPCMessage) -> None:
        if not self._connected:
            raise TransportError(
                f"In-memory transport {self.name!r} is not connected",
                message.trace_id,
            )
        self._sent.append(message)
        if self._peer is not None:
            self._peer._receive(message)

    def on_message(self, handler: MessageHandler) -> None:
        self._handler = handler

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    # ── Delivery ─────────────────────────────────────────────────

    def _receive(self, message: RPCMessage) -> None:
        if not self._connected or self._handler is None:
            logger.debug(
                "Dropping %s %s: transport %r is not listening",
                message.type.value,
                message.trace_id,
                self.name,
            )
            return
        task = asyncio.get_running_loop().create_task(
            self._dispatch(self._handler, message)
        )
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _dispatch(self, handler: MessageHandler, message: RPCMessage) -> None:
        try:
            await handler(message)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Handler on transport %r failed for trace %s",
                self.name,
                message.trace_id,
            )

    async def wait_idle(self) -> None:
        """Wait until every delivery to this transport and its peer is handled."""
        while self._deliveries or (self._peer is not None and self._peer._deliveries):
            pending = set(self._deliveries)
            if self._peer is not None:
                pending |= self._peer._deliveries
            await asyncio.gather(*pending, return_exceptions=True)

    # ── Assertion helpers ────────────────────────────────────────

    def get_sent(self) -> list[RPCMessage]:
        """Return every envelope sent through this transport, in order."""
        return list(self._sent)

    def assert_sent(self, message_type: MessageType, count: int = 1) -> None:
        """Assert exactly *count* envelopes of *message_type* were sent."""
        matching = [m for m in self._sent if m.type is message_type]
        assert len(matching) == count, (
            f"Expected {count} {message_type.value!r} message(s), "
            f"got {len(matching)}. Sent: {[m.type.value for m in self._sent]}"
        )

    def clear(self) -> None:
        """Forget the sent-message log (for test teardown)."""
        self._sent.clear()

    def __repr__(self) -> str:
        return f"InMemoryTransport(name={self.name!r}, connected={self._connected})"
