"""
Relativistic speed mapping and proper time.
"""

import math
from ..math.constants import GAMMA_SENTINEL

def limit_speed(speed: float, c: float) -> float:
    """
    Saturate a raw speed below the invariant speed.

    v_eff = c * tanh(v / c): equal to v for v << c and strictly below c.

    Args:
        speed (float): Raw speed (m/s), >= 0
        c (float): Invariant speed (m/s), > 0

    Returns:
        float: Effective speed in [0, c)
    """
    if math.isnan(speed):
        return 0.0
    return c * math.tanh(speed / c)

def lorentz_factor(speed: float, c: float) -> float:
    """
    Lorentz factor gamma = 1 / sqrt(1 - (v/c)^2).

    Args:
        speed (float): Effective speed (m/s)
        c (float): Invariant speed (m/s)

    Returns:
        float: gamma >= 1, or GAMMA_SENTINEL when v >= c
    """
    beta2 = (speed * speed) / (c * c)
    if not math.isfinite(beta2):
        return GAMMA_SENTINEL
    if beta2 <= 0:
        return 1.0
    if beta2 >= 1:
        return GAMMA_SENTINEL

    gamma = 1.0 / math.sqrt(1.0 - beta2)
    return gamma if math.isfinite(gamma) else GAMMA_SENTINEL

class ProperTimeAccumulator:
    """
    Accumulates proper time d_tau = dt / gamma.

    Only positive, finite steps are accepted, so the total never decreases.
    """

    def __init__(self):
        self.proper_time = 0.0
        self.coordinate_time = 0.0

    def advance(self, dt: float, gamma: float) -> float:
        """
        Add one step.

        Args:
            dt (float): Wall-clock step in seconds
            gamma (float): Lorentz factor during the step

        Returns:
            float: Proper time added (seconds)
        """
        if not math.isfinite(dt) or dt <= 0:
            return 0.0
        if math.isnan(gamma) or gamma < 1.0:
            gamma = 1.0
        elif math.isinf(gamma):
            gamma = GAMMA_SENTINEL

        d_tau = dt / gamma
        self.proper_time += d_tau
        self.coordinate_time += dt
        return d_tau

    def reset(self):
        """Zero the accumulated times."""
        self.proper_time = 0.0
        self.coordinate_time = 0.0

    @property
    def dilation(self) -> float:
        """Ratio of elapsed proper time to wall-clock time (1.0 before any step)."""
        if self.coordinate_time <= 0:
            return 1.0
        return self.proper_time / self.coordinate_time
