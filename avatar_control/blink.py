"""
Autonomous blink generator.

Blinks are scheduled at random intervals and rendered as a short
triangular pulse. Nothing here depends on face data; the only input is the
elapsed time of a monotonic clock.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import numpy as np

logger = logging.getLogger(__name__)


class IntervalSource(Protocol):
    """Anything with a numpy-style ``uniform(low, high)``."""

    def uniform(self, low: float, high: float) -> float:
        ...


@dataclass
class BlinkState:
    """Time (seconds on the tick clock) of the next blink peak window."""

    next_blink_time: float = 0.0


class BlinkSynthesizer:
    """
    Periodic blink-weight generator.

    The weight is

        1 - clamp(|slope * (next_blink_time - t) - 1|, 0, 1)

    a pulse of width 2 / slope seconds peaking at 1 when the next blink
    is 1 / slope seconds away. Once t passes next_blink_time a new blink
    is drawn uniformly from [interval_min, interval_max) seconds ahead.

    Usage:
        blinker = BlinkSynthesizer(rng=np.random.default_rng(0))
        weight = blinker.update(clock_elapsed)
    """

    def __init__(
        self,
        interval_min: float = 3.0,
        interval_max: float = 7.0,
        slope: float = 15.0,
        rng: Optional[IntervalSource] = None,
        state: Optional[BlinkState] = None,
    ):
        if not (0 < interval_min < interval_max):
            raise ValueError(
                f"interval must satisfy 0 < min < max, got [{interval_min}, {interval_max})"
            )
        if slope <= 0:
            raise ValueError(f"slope must be > 0, got {slope}")

        self.interval_min = interval_min
        self.interval_max = interval_max
        self.slope = slope
        self.rng = rng if rng is not None else np.random.default_rng()
        self.state = state if state is not None else BlinkState()

    def update(self, elapsed: float) -> float:
        """
        Advance the blink schedule to `elapsed` and return the blink weight.

        A blink is scheduled only once `elapsed` is strictly past
        next_blink_time, so with a fresh state `update(0.0)` alone schedules
        nothing; the first call with `elapsed > 0` does. FrameOrchestrator
        starts its clock before the first tick, so its first update is
        already past zero.

        Args:
            elapsed: Seconds since the clock started, non-decreasing

        Returns:
            Blink weight in [0, 1]
        """
        if self.state.next_blink_time - elapsed < 0.0:
            interval = float(self.rng.uniform(self.interval_min, self.interval_max))
            self.state.next_blink_time = elapsed + interval
            logger.debug(f"Next blink at {self.state.next_blink_time:.3f}s")

        return self.weight_at(self.state.next_blink_time - elapsed)

    def weight_at(self, remaining: float) -> float:
        """Pulse value when the next blink is `remaining` seconds away."""
        distance = abs(self.slope * remaining - 1.0)
        return 1.0 - min(max(distance, 0.0), 1.0)

    @property
    def peak_offset(self) -> float:
        """Seconds before next_blink_time at which the pulse peaks."""
        return 1.0 / self.slope

    @property
    def pulse_width(self) -> float:
        return 2.0 / self.slope

    def reset(self):
        self.state = BlinkState()
