"""
Tick clock for the animation loop.
"""

import time
from typing import Callable, Optional, Tuple


class FrameClock:
    """
    Monotonic clock that reports delta and elapsed from the same instant.

    Blink timing compares elapsed time against a schedule, so both values
    for a tick must come from one reading.

    Args:
        time_fn: Source of monotonic seconds, time.perf_counter by default
    """

    def __init__(self, time_fn: Optional[Callable[[], float]] = None):
        self._time_fn = time_fn or time.perf_counter
        self._start: Optional[float] = None
        self._last: Optional[float] = None
        self.elapsed = 0.0

    def start(self) -> None:
        now = self._time_fn()
        self._start = now
        self._last = now
        self.elapsed = 0.0

    @property
    def running(self) -> bool:
        return self._start is not None

    def tick(self) -> Tuple[float, float]:
        """
        Read the clock once.

        Returns:
            (delta, elapsed) in seconds; the first tick starts the clock and
            returns (0.0, 0.0)
        """
        if self._start is None:
            self.start()
            return 0.0, 0.0

        now = self._time_fn()
        if now < self._last:
            now = self._last

        delta = now - self._last
        self._last = now
        self.elapsed = now - self._start
        return delta, self.elapsed
