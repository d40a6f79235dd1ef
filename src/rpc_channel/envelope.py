"""RPCMessage — immutable envelope exchanged between channels."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from .primitives.exceptions import RPCError


class MessageType(str, Enum):
    """The only three kinds of envelope on the wire."""

    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"


class RPCMessage(BaseModel):
    """Immutable wire envelope.

    Attributes are snake_case in Python; the wire form uses camelCase
    aliases (``callerId``, ``traceId``, ...). Either spelling is accepted
    on construction.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    caller_id: str = Field(..., description="Identity of the sending channel")
    target_id: str = Field(..., description="Identity of the intended recipient")
    trace_id: str = Field(..., description="Correlates a request to its outcome")
    method_id: str = Field(..., description="Dotted id, e.g. 'user.get'")
    payload: Any = None
    type: MessageType

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-compatible wire form (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_wire(cls, data: Any) -> RPCMessage:
        """Parse a wire-form mapping. Raises pydantic's ``ValidationError``."""
        return cls.model_validate(data)

    def reply(self, caller_id: str, payload: Any) -> RPCMessage:
        """Build the ``response`` envelope answering this request."""
        return RPCMessage(
            caller_id=caller_id,
            target_id=self.caller_id,
            trace_id=self.trace_id,
            method_id=self.method_id,
            payload=payload,
            type=MessageType.RESPONSE,
        )

    def error_reply(self, caller_id: str, error: RPCError) -> RPCMessage:
        """Build the ``error`` envelope answering this request."""
        return RPCMessage(
            caller_id=caller_id,
            target_id=self.caller_id,
            trace_id=self.trace_id,
            method_id=self.method_id,
            payload=error.to_payload(),
            type=MessageType.ERROR,
        )
