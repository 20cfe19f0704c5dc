"""
Twin timer: inertial motion estimation and relativistic proper time.

This package provides platform-independent implementations of:
- Madgwick AHRS orientation estimation with runtime-selected sources
- Gravity separation and gated, drift-suppressed velocity integration
- Relativistic speed limiting and proper-time accumulation
- A frame-driven engine tying the pipeline together
"""

__version__ = "1.0.0"
__author__ = "Twin Timer Team"

from .config import EngineConfig
from .engine import TwinTimerEngine, FrameOutput
from .clock import FrameClock
from .sensors import SensorBuffer
from .orientation import MadgwickAHRS
from .motion import limit_speed, lorentz_factor
from .math import format_proper_time

__all__ = [
    "EngineConfig",
    "TwinTimerEngine",
    "FrameOutput",
    "FrameClock",
    "SensorBuffer",
    "MadgwickAHRS",
    "limit_speed",
    "lorentz_factor",
    "format_proper_time"
]
