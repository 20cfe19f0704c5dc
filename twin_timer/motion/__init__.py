"""
Gravity separation, velocity integration and relativistic time mapping.
"""

from .state import MotionState
from .separator import GravitySeparator
from .integrator import MotionIntegrator
from .relativity import limit_speed, lorentz_factor, ProperTimeAccumulator

__all__ = [
    "MotionState",
    "GravitySeparator",
    "MotionIntegrator",
    "limit_speed",
    "lorentz_factor",
    "ProperTimeAccumulator",
]
