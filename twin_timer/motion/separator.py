"""
Separation of linear acceleration from gravity.

Produces world-frame linear acceleration from whichever accelerometer
stream is available:

- Gravity-free reading: rotate into the world frame.
- Gravity-inclusive reading only: rotate into the world frame, track a
  low-pass gravity estimate there and subtract it.
"""

import numpy as np
import math
import logging
from typing import Optional, Tuple
from ..math.constants import GRAVITY_MS2
from ..math.utils import is_finite_vector

logger = logging.getLogger(__name__)

# Acceleration source labels
SOURCE_LINEAR = "linear"
SOURCE_GRAVITY_FILTERED = "gravity-filtered"
SOURCE_UNAVAILABLE = "unavailable"

NOMINAL_GRAVITY_WORLD = np.array([0.0, 0.0, GRAVITY_MS2])

class GravitySeparator:
    """
    World-frame linear acceleration with a persistent gravity estimate.

    Usage:
        separator = GravitySeparator(gravity_filter_tau=0.7, acceleration_gate=0.05)
        a_world, source = separator.separate(R, linear=None, including_gravity=raw, dt=dt)
    """

    def __init__(self,
                 gravity_filter_tau: float = 0.7,
                 acceleration_gate: float = 0.05,
                 gravity: float = GRAVITY_MS2):
        """
        Args:
            gravity_filter_tau: Gravity low-pass time constant (s)
            acceleration_gate: Per-axis noise gate (m/s²)
            gravity: Magnitude the gravity estimate is rescaled to (m/s²)
        """
        self.gravity_filter_tau = gravity_filter_tau
        self.acceleration_gate = acceleration_gate
        self.gravity = gravity

        # World-frame gravity estimate, None until the first gravity-inclusive reading
        self.gravity_estimate: Optional[np.ndarray] = None

        # Diagnostics
        self.source = SOURCE_UNAVAILABLE
        self.gravity_fallback_count = 0

    def separate(self,
                 rotation: np.ndarray,
                 linear: Optional[np.ndarray] = None,
                 including_gravity: Optional[np.ndarray] = None,
                 dt: float = 0.0) -> Tuple[np.ndarray, str]:
        """
        Compute gated world-frame linear acceleration.

        Args:
            rotation: 3x3 device->world rotation matrix
            linear: Gravity-free device-frame acceleration (m/s²), if available
            including_gravity: Gravity-inclusive device-frame acceleration (m/s²)
            dt: Time step in seconds

        Returns:
            (acceleration_world, source label)
        """
        if is_finite_vector(linear):
            a_world = rotation @ linear
            self.source = SOURCE_LINEAR
        elif is_finite_vector(including_gravity):
            a_world = rotation @ including_gravity
            a_world = a_world - self._update_gravity(a_world, dt)
            self.source = SOURCE_GRAVITY_FILTERED
        else:
            a_world = np.zeros(3)
            self.source = SOURCE_UNAVAILABLE

        return self.apply_gate(a_world), self.source

    def _update_gravity(self, reading_world: np.ndarray, dt: float) -> np.ndarray:
        """Low-pass the world-frame reading and rescale it to standard gravity."""
        if self.gravity_estimate is None:
            estimate = reading_world.copy()
        else:
            alpha = 1.0 - math.exp(-max(dt, 0.0) / self.gravity_filter_tau)
            estimate = self.gravity_estimate + alpha * (reading_world - self.gravity_estimate)

        magnitude = np.linalg.norm(estimate)
        if math.isfinite(magnitude) and magnitude > 0:
            estimate = estimate * (self.gravity / magnitude)
        else:
            # Collapsed estimate, restart from nominal gravity
            self.gravity_fallback_count += 1
            logger.debug("Gravity estimate collapsed, falling back to nominal")
            estimate = NOMINAL_GRAVITY_WORLD * (self.gravity / GRAVITY_MS2)

        self.gravity_estimate = estimate
        return estimate

    def apply_gate(self, acceleration: np.ndarray) -> np.ndarray:
        """Zero every component whose magnitude is below the noise gate."""
        gated = acceleration.copy()
        gated[np.abs(gated) < self.acceleration_gate] = 0.0
        return gated

    def get_gravity_estimate(self) -> Optional[np.ndarray]:
        """Return the current world-frame gravity estimate."""
        return None if self.gravity_estimate is None else self.gravity_estimate.copy()

    def reset(self):
        """Forget the gravity estimate."""
        self.gravity_estimate = None
        self.source = SOURCE_UNAVAILABLE
        self.gravity_fallback_count = 0
