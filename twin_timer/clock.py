"""
Frame clock: turns host tick timestamps into pipeline time steps.
"""

import math
import time
from typing import Callable, Optional
from .math.constants import MIN_FRAME_DT_S

class FrameClock:
    """
    Measures dt between successive ticks.

    dt is floor-clamped to min_dt, which covers the first tick and
    out-of-order timestamps. reset() forgets the previous timestamp so a
    resumed session does not integrate across the pause.

    Usage:
        clock = FrameClock()
        dt = clock.tick(time.monotonic())
    """

    def __init__(self,
                 min_dt: float = MIN_FRAME_DT_S,
                 time_source: Callable[[], float] = time.monotonic):
        """
        Args:
            min_dt: Smallest dt returned (seconds)
            time_source: Clock used when tick() gets no timestamp
        """
        self.min_dt = min_dt
        self.time_source = time_source
        self.last_timestamp: Optional[float] = None
        self.tick_count = 0

    def tick(self, timestamp: Optional[float] = None) -> float:
        """
        Register a tick.

        Args:
            timestamp: Monotonic time in seconds (read from the time source if None)

        Returns:
            float: Time since the previous tick, at least min_dt
        """
        if timestamp is None:
            timestamp = self.time_source()

        if self.last_timestamp is None or not math.isfinite(timestamp):
            dt = self.min_dt
        else:
            dt = timestamp - self.last_timestamp
            if not dt > self.min_dt:
                dt = self.min_dt

        if math.isfinite(timestamp):
            self.last_timestamp = timestamp
        self.tick_count += 1
        return dt

    def reset(self):
        """Forget the previous timestamp."""
        self.last_timestamp = None
