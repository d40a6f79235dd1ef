"""ITransport — the narrow capability a channel needs from any medium."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..envelope import RPCMessage

MessageHandler = Callable[["RPCMessage"], Awaitable[None]]


@runtime_checkable
class ITransport(Protocol):
    """
    Port for moving envelopes between two peers (WebSocket, HTTP, in-memory, …).

    Transport packages provide concrete adapters.
    """

    async def send(self, message: RPCMessage) -> None:
        """
        Deliver one envelope.

        Must raise (typically
        :class:`~rpc_channel.primitives.exceptions.TransportError`) when
        delivery cannot be attempted, e.g. while not connected.
        """
        ...

    def on_message(self, handler: MessageHandler) -> None:
        """Register the single callback invoked once per inbound envelope."""
        ...

    async def connect(self) -> None:
        """Return only once the transport can genuinely send and receive."""
        ...

    async def disconnect(self) -> None:
        """Release resources. Must be idempotent."""
        ...

    def is_connected(self) -> bool:
        """Synchronous readiness probe."""
        ...
