"""Lowest layer: the error taxonomy. Imports nothing else from the package."""

from __future__ import annotations

from .exceptions import (
    UNKNOWN_ERROR_CODE,
    UNKNOWN_ERROR_MESSAGE,
    InternalError,
    MessageSerializationError,
    MethodNotFoundError,
    RPCError,
    RPCTimeoutError,
    TransportError,
    ValidationError,
)

__all__ = [
    "UNKNOWN_ERROR_CODE",
    "UNKNOWN_ERROR_MESSAGE",
    "InternalError",
    "MessageSerializationError",
    "MethodNotFoundError",
    "RPCError",
    "RPCTimeoutError",
    "TransportError",
    "ValidationError",
]
