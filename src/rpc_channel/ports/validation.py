"""IValidator — the single entry point used for input/output checking."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IValidator(Protocol):
    """Protocol for payload validators.

    ``validate`` returns the validated (possibly coerced) value, or raises
    :class:`~rpc_channel.primitives.exceptions.ValidationError` describing the
    mismatch. It may also return an awaitable for asynchronous validation.
    The schema language is up to the implementation; see
    :class:`~rpc_channel.validation.PydanticValidator` for the default one.
    """

    def validate(self, value: Any) -> Any: ...
