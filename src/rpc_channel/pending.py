"""PendingCallTable — correlates inbound outcomes with outbound calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .primitives.exceptions import RPCTimeoutError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@dataclass
class PendingCall:
    trace_id: str
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle


class PendingCallTable:
    """In-flight outbound calls keyed by trace id.

    Every entry leaves the table exactly once: on the first of resolve, fail,
    timer expiry, discard or drain. Whatever comes later for the same trace
    id finds nothing and is a no-op. The timer is cancelled on every exit path
    except its own firing; ``TimerHandle.cancel`` is idempotent.
    """

    def __init__(self) -> None:
        self._calls: dict[str, PendingCall] = {}

    def register(self, trace_id: str, timeout_ms: int) -> asyncio.Future[Any]:
        """Track *trace_id* and return the future its outcome will land in.

        If nothing resolves it within *timeout_ms*, the future fails with
        :class:`RPCTimeoutError` ("Method call timed out after {timeout_ms}ms").
        """
        if trace_id in self._calls:
            raise ValueError(f"Trace id {trace_id!r} is already pending")
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        timer = loop.call_later(timeout_ms / 1000, self._expire, trace_id, timeout_ms)
        self._calls[trace_id] = PendingCall(trace_id, future, timer)
        logger.debug("Pending call %s registered (timeout=%sms)", trace_id, timeout_ms)
        return future

    def resolve(self, trace_id: str, value: Any) -> bool:
        """Complete the call successfully. Returns ``False`` if not pending."""
        call = self._pop(trace_id)
        if call is None:
            return False
        if not call.future.done():
            call.future.set_result(value)
        return True

    def fail(self, trace_id: str, error: BaseException) -> bool:
        """Complete the call with *error*. Returns ``False`` if not pending."""
        call = self._pop(trace_id)
        if call is None:
            return False
        if not call.future.done():
            call.future.set_exception(error)
        return True

    def discard(self, trace_id: str) -> None:
        """Forget the call without completing it (its waiter went away)."""
        self._pop(trace_id)

    def drain_all(self, error_factory: Callable[[str], BaseException]) -> int:
        """Fail every pending call with ``error_factory(trace_id)`` and clear."""
        calls = list(self._calls.values())
        self._calls.clear()
        for call in calls:
            call.timer.cancel()
            if not call.future.done():
                call.future.set_exception(error_factory(call.trace_id))
        return len(calls)

    def __contains__(self, trace_id: object) -> bool:
        return trace_id in self._calls

    def __len__(self) -> int:
        return len(self._calls)

    def _pop(self, trace_id: str) -> PendingCall | None:
        call = self._calls.pop(trace_id, None)
        if call is not None:
            call.timer.cancel()
        return call

    def _expire(self, trace_id: str, timeout_ms: int) -> None:
        call = self._calls.pop(trace_id, None)
        if call is None:
            return
        logger.debug("Pending call %s timed out after %sms", trace_id, timeout_ms)
        if not call.future.done():
            call.future.set_exception(
                RPCTimeoutError(
                    f"Method call timed out after {timeout_ms}ms", trace_id
                )
            )


__all__ = ["PendingCall", "PendingCallTable"]
