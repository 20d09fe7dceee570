from __future__ import annotations

import time
from typing import Callable, List, Optional


class ProgressTracker:
    """Running-mean ETA over every item duration recorded in this run."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._started = clock()
        self.durations: List[float] = []

    def record(self, duration: float) -> None:
        self.durations.append(max(0.0, float(duration)))

    def average(self) -> Optional[float]:
        if not self.durations:
            return None
        return sum(self.durations) / len(self.durations)

    def estimate_remaining(self, items_left: int) -> float:
        """Seconds left: ``items_left`` times the mean recorded duration."""
        avg = self.average()
        if avg is None or items_left <= 0:
            return 0.0
        return items_left * avg

    def elapsed(self) -> float:
        return self._clock() - self._started
