"""rpc-channel — typed, bidirectional RPC over pluggable transports.

Core has no transport dependencies. Concrete transports live in
``rpc_channel.transports``; the WebSocket and HTTP ones need the
``websocket`` / ``http`` extras.
"""

from __future__ import annotations

# ── Channel ──────────────────────────────────────────────────────
from .channel import DEFAULT_TIMEOUT_MS, Channel
from .correlation import call_context, get_caller_id, get_trace_id

# ── Envelope ─────────────────────────────────────────────────────
from .envelope import MessageType, RPCMessage
from .method import (
    MethodContract,
    MethodDefinition,
    MethodInfo,
    ServiceInfo,
)
from .pending import PendingCallTable

# ── Ports ────────────────────────────────────────────────────────
from .ports import ITransport, IValidator, MessageHandler

# ── Errors ───────────────────────────────────────────────────────
from .primitives.exceptions import (
    InternalError,
    MessageSerializationError,
    MethodNotFoundError,
    RPCError,
    RPCTimeoutError,
    TransportError,
    ValidationError,
)
from .registry import MethodRegistry
from .retry import ReconnectPolicy
from .serialization import MessageSerializer
from .service import MethodSchema, ServiceClient, ServiceDefinition
from .validation import PydanticValidator, apply_validator

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "Channel",
    "ITransport",
    "IValidator",
    "InternalError",
    "MessageHandler",
    "MessageSerializationError",
    "MessageSerializer",
    "MessageType",
    "MethodContract",
    "MethodDefinition",
    "MethodInfo",
    "MethodNotFoundError",
    "MethodRegistry",
    "MethodSchema",
    "PendingCallTable",
    "PydanticValidator",
    "RPCError",
    "RPCMessage",
    "RPCTimeoutError",
    "ReconnectPolicy",
    "ServiceClient",
    "ServiceDefinition",
    "ServiceInfo",
    "TransportError",
    "ValidationError",
    "apply_validator",
    "call_context",
    "get_caller_id",
    "get_trace_id",
]
