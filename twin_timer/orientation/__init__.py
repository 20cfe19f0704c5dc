"""
Orientation estimation: Madgwick AHRS and runtime-selected orientation sources.
"""

from .ahrs import MadgwickAHRS
from .providers import (
    OrientationProvider,
    AbsoluteQuaternionPassthrough,
    GyroAccelMagFilter,
    GyroAccelFilter,
    EulerAngleMatrix,
    DEFAULT_PROVIDERS,
    select_provider,
)

__all__ = [
    "MadgwickAHRS",
    "OrientationProvider",
    "AbsoluteQuaternionPassthrough",
    "GyroAccelMagFilter",
    "GyroAccelFilter",
    "EulerAngleMatrix",
    "DEFAULT_PROVIDERS",
    "select_provider",
]
