from __future__ import annotations

import time
from collections.abc import Callable
from datetime import timedelta

"""Wall-clock budget shared by every stage of one run."""


class Deadline:
    """Fixed budget measured on a monotonic clock from construction."""

    def __init__(self, budget: timedelta | float, clock: Callable[[], float] = time.monotonic) -> None:
        seconds = budget.total_seconds() if isinstance(budget, timedelta) else float(budget)
        self._clock = clock
        self.budget_seconds = seconds
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(self._expires_at - self._clock(), 0.0)

    @property
    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def timeout(self, minimum: float = 0.001) -> float:
        """Remaining budget usable as an I/O timeout (0 would mean non-blocking)."""
        return max(self.remaining(), minimum)
