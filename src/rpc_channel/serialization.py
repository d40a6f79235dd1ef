"""MessageSerializer — JSON text roundtrip for RPCMessage."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .envelope import RPCMessage
from .primitives.exceptions import MessageSerializationError


def _json_default(obj: Any) -> Any:
    """Serialize datetime-like values; refuse anything else."""
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class MessageSerializer:
    """Encode/decode envelopes as JSON text frames.

    Used by the WebSocket transport; any codec failure surfaces as
    :class:`~rpc_channel.primitives.exceptions.MessageSerializationError`.
    """

    def serialize(self, message: RPCMessage) -> str:
        """Encode the envelope to a JSON string (camelCase keys)."""
        try:
            return json.dumps(message.to_wire(), default=_json_default)
        except (TypeError, ValueError) as e:
            raise MessageSerializationError(str(e), message.trace_id) from e

    def deserialize(self, raw: str | bytes) -> RPCMessage:
        """Decode a JSON frame into an envelope."""
        try:
            text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            return RPCMessage.from_wire(json.loads(text))
        except (json.JSONDecodeError, UnicodeDecodeError, PydanticValidationError) as e:
            raise MessageSerializationError(f"Malformed envelope: {e}") from e
