"""Run-scoped deadline threaded through every blocking call.

Process execution, HTTP requests and archive streaming all ask the same
``Deadline`` how long they may still block. An expired deadline raises
``DeadlineExceeded`` naming the operation that was cut off.
"""

from __future__ import annotations

import time
from typing import Callable

from packverify.exceptions import DeadlineExceeded


class Deadline:
    """A point in monotonic time after which blocking calls must stop.

    Args:
        seconds: Budget from now, or None for no deadline.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        seconds: float | None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    @classmethod
    def unbounded(cls) -> Deadline:
        """A deadline that never expires."""
        return cls(None)

    def remaining(self) -> float | None:
        """Seconds left (never negative), or None when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def check(self, operation: str) -> None:
        """Raise ``DeadlineExceeded`` if the deadline has passed."""
        if self.expired:
            raise DeadlineExceeded(f"Deadline exceeded while {operation}")

    def timeout(self, default: float | None) -> float | None:
        """Clamp a per-call timeout to the time remaining."""
        remaining = self.remaining()
        if remaining is None:
            return default
        if default is None:
            return remaining
        return min(default, remaining)
