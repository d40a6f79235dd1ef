"""ReconnectPolicy — bounded exponential backoff for dropped connections."""

from __future__ import annotations

import asyncio
import random


class ReconnectPolicy:
    """How a transport retries after its connection drops unexpectedly.

    Attempt numbers are 0-based: the first reconnect waits ``base_delay``,
    each later one doubles it, capped at ``max_delay``.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        jitter: bool = False,
    ) -> None:
        """Configure reconnect behavior.

        Args:
            max_attempts: Reconnect attempts before giving up (0 disables).
            base_delay: Delay in seconds before the first attempt.
            max_delay: Cap on any single delay, in seconds.
            jitter: Scale each delay by a random factor in [0.5, 1.5].
        """
        if max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if base_delay < 0 or max_delay < 0:
            raise ValueError("base_delay and max_delay must be >= 0")
        if base_delay > max_delay:
            raise ValueError("base_delay must be <= max_delay")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter

    def should_retry(self, attempt: int) -> bool:
        """Return True if reconnect *attempt* (0-based) is allowed."""
        return 0 <= attempt < self.max_attempts

    def delay_for_attempt(self, attempt: int) -> float:
        """Seconds to wait before reconnect *attempt*."""
        if attempt < 0:
            return 0.0
        delay = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            delay = delay * (0.5 + random.random())  # noqa: S311
        return float(delay)

    async def wait_before(self, attempt: int) -> None:
        delay = self.delay_for_attempt(attempt)
        if delay > 0:
            await asyncio.sleep(delay)

    @classmethod
    def disabled(cls) -> ReconnectPolicy:
        return cls(max_attempts=0)
