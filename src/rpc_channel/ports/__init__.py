"""Ports — protocols the channel depends on. Adapters live elsewhere."""

from __future__ import annotations

from rpc_channel.ports.transport import ITransport, MessageHandler
from rpc_channel.ports.validation import IValidator

__all__ = [
    "ITransport",
    "IValidator",
    "MessageHandler",
]
