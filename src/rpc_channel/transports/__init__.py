"""Transport adapters.

Only the in-memory transport is imported here. The others pull in optional
dependencies and are imported from their own modules::

    from rpc_channel.transports.websocket import WebSocketServer, WebSocketTransport
    from rpc_channel.transports.http import HTTPTransport, create_rpc_router
"""

from __future__ import annotations

from .memory import InMemoryTransport

__all__ = ["InMemoryTransport"]
