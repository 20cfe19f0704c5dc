"""
Sensor input buffering.
"""

from .imu import SensorBuffer, SensorReading, SensorSnapshot

__all__ = ["SensorBuffer", "SensorReading", "SensorSnapshot"]
