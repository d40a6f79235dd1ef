"""Call context — trace and caller ids visible to running handlers."""

from __future__ import annotations

import contextlib
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

# ContextVars survive awaits inside the handler's task.
_trace_id: ContextVar[str | None] = ContextVar("rpc_trace_id", default=None)
_caller_id: ContextVar[str | None] = ContextVar("rpc_caller_id", default=None)


def get_trace_id() -> str | None:
    """Trace id of the call currently being handled, if any."""
    return _trace_id.get()


def get_caller_id() -> str | None:
    """Identity of the channel that issued the call currently being handled."""
    return _caller_id.get()


@contextlib.contextmanager
def call_context(trace_id: str, caller_id: str) -> Iterator[None]:
    """Expose *trace_id* and *caller_id* to handler code for the block."""
    trace_token = _trace_id.set(trace_id)
    caller_token = _caller_id.set(caller_id)
    try:
        yield
    finally:
        _caller_id.reset(caller_token)
        _trace_id.reset(trace_token)
