"""Polled "seconds until the next attempt" signal for rate-limited clients."""

from __future__ import annotations

import math
import time
from typing import Callable


class RateLimitCountdown:
    """A single shared countdown, overwritten by every new wait (last writer wins).

    Observers poll :attr:`seconds_remaining`; the value ticks down with the
    clock and never goes below zero.

    Args:
        clock: Monotonic clock in seconds (injectable for tests).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._deadline = 0.0

    def start(self, seconds: float) -> None:
        """Publish a new wait of *seconds*, replacing any running countdown."""
        self._deadline = self._clock() + max(0.0, seconds)

    def reset(self) -> None:
        self._deadline = 0.0

    @property
    def seconds_remaining(self) -> int:
        """Whole seconds left, rounded up; ``0`` when idle."""
        left = self._deadline - self._clock()
        return math.ceil(left) if left > 0 else 0

    @property
    def active(self) -> bool:
        return self.seconds_remaining > 0
