"""Error taxonomy shared by every layer of rpc-channel.

Every error carries a wire ``code``, a human-readable ``message`` and an
optional ``trace_id``. ``to_payload`` / ``RPCError.from_payload`` convert to and
from the ``payload`` of an ``error`` envelope.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

UNKNOWN_ERROR_CODE = "UNKNOWN_ERROR"
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"


class RPCError(Exception):
    """Root exception for rpc-channel.

    Also used as-is for error codes received from a peer that this side does
    not know about.
    """

    code: str = UNKNOWN_ERROR_CODE

    def __init__(self, code: str, message: str, trace_id: str | None = None) -> None:
        self.code = code
        self.message = message
        self.trace_id = trace_id
        super().__init__(message)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_payload(self) -> dict[str, Any]:
        """Serialize into the ``error`` envelope payload shape."""
        payload: dict[str, Any] = {
            "name": self.name,
            "code": self.code,
            "message": self.message,
        }
        if self.trace_id is not None:
            payload["traceId"] = self.trace_id
        return payload

    def with_trace_id(self, trace_id: str) -> RPCError:
        """Return a copy tagged with *trace_id*. ``self`` is left untouched."""
        payload = {**self.to_payload(), "traceId": trace_id}
        return RPCError.from_payload(payload, trace_id)

    @classmethod
    def from_payload(cls, payload: Any, trace_id: str | None = None) -> RPCError:
        """Rebuild an error from a peer's ``error`` envelope payload.

        Known codes come back as their own subclass. Missing fields fall back
        to ``UNKNOWN_ERROR`` / ``Unknown error occurred``.
        """
        data: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}
        code = data.get("code") or UNKNOWN_ERROR_CODE
        message = data.get("message") or UNKNOWN_ERROR_MESSAGE
        resolved_trace = trace_id or data.get("traceId")
        error_cls = _ERRORS_BY_CODE.get(str(code))
        if error_cls is None:
            return RPCError(str(code), str(message), resolved_trace)
        return error_cls._from_wire(str(message), resolved_trace, data)

    @classmethod
    def _from_wire(
        cls, message: str, trace_id: str | None, data: Mapping[str, Any]
    ) -> RPCError:
        return cls(message, trace_id)  # type: ignore[call-arg]

    def __repr__(self) -> str:
        return (
            f"{self.name}(code={self.code!r}, message={self.message!r}, "
            f"trace_id={self.trace_id!r})"
        )


class ValidationError(RPCError):
    """Input or output failed validation.

    Carries structured errors: ``{field_path: [messages]}``.
    """

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        trace_id: str | None = None,
        *,
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        self.errors: dict[str, list[str]] = dict(errors) if errors else {}
        super().__init__(self.code, message, trace_id)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.errors:
            payload["errors"] = {k: list(v) for k, v in self.errors.items()}
        return payload

    @classmethod
    def _from_wire(
        cls, message: str, trace_id: str | None, data: Mapping[str, Any]
    ) -> RPCError:
        raw = data.get("errors")
        errors: dict[str, list[str]] = {}
        if isinstance(raw, Mapping):
            for field_name, messages in raw.items():
                if isinstance(messages, list):
                    errors[str(field_name)] = [str(m) for m in messages]
                else:
                    errors[str(field_name)] = [str(messages)]
        return cls(message, trace_id, errors=errors)


class TransportError(RPCError):
    """A transport could not send, connect or disconnect."""

    code = "TRANSPORT_ERROR"

    def __init__(self, message: str, trace_id: str | None = None) -> None:
        super().__init__(self.code, message, trace_id)


class MessageSerializationError(TransportError):
    """Raised when an envelope cannot be encoded or decoded."""


class MethodNotFoundError(RPCError):
    """No handler is registered for the requested ``(target_id, method_id)``."""

    code = "METHOD_NOT_FOUND"

    def __init__(
        self,
        method_id: str,
        trace_id: str | None = None,
        *,
        message: str | None = None,
    ) -> None:
        self.method_id = method_id
        super().__init__(
            self.code, message or f"Method '{method_id}' not found", trace_id
        )

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["methodId"] = self.method_id
        return payload

    @classmethod
    def _from_wire(
        cls, message: str, trace_id: str | None, data: Mapping[str, Any]
    ) -> RPCError:
        return cls(str(data.get("methodId", "")), trace_id, message=message)


class RPCTimeoutError(RPCError):
    """A call timed out, or its channel disconnected while it was pending."""

    code = "TIMEOUT_ERROR"

    def __init__(self, message: str, trace_id: str | None = None) -> None:
        super().__init__(self.code, message, trace_id)


class InternalError(RPCError):
    """A handler raised something outside the taxonomy."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, trace_id: str | None = None) -> None:
        super().__init__(self.code, message, trace_id)


_ERRORS_BY_CODE: dict[str, type[RPCError]] = {
    ValidationError.code: ValidationError,
    TransportError.code: TransportError,
    MethodNotFoundError.code: MethodNotFoundError,
    RPCTimeoutError.code: RPCTimeoutError,
    InternalError.code: InternalError,
}
