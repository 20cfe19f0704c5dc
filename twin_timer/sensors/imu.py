"""
Latest-reading cache for inertial sensor streams.

Sensor callbacks run at their own rates on their own channels. They only
replace the most recent reading of their input here; the frame driver
takes a snapshot at the start of each step and never waits for a sample.
"""

import numpy as np
import time
from dataclasses import dataclass
from typing import Optional
from ..math.utils import as_vector3

@dataclass(frozen=True)
class SensorReading:
    """A single timestamped sensor vector."""

    values: np.ndarray
    timestamp: Optional[float] = None

    def __post_init__(self):
        if self.timestamp is None:
            object.__setattr__(self, "timestamp", time.monotonic())
        # Readings are shared between threads, keep them immutable
        self.values.setflags(write=False)

@dataclass(frozen=True)
class SensorSnapshot:
    """
    Latest reading of every input at the start of a pipeline step.

    - angular_velocity: gyroscope (rad/s), device frame
    - acceleration: gravity-free acceleration (m/s²), device frame
    - acceleration_including_gravity: raw accelerometer (m/s²), device frame
    - magnetic_field: magnetometer, device frame (direction only)
    - orientation_quaternion: absolute orientation (w, x, y, z)
    - orientation_angles: device-orientation alpha, beta, gamma (degrees)
    - screen_angle: screen orientation angle (degrees)
    """

    angular_velocity: Optional[np.ndarray] = None
    acceleration: Optional[np.ndarray] = None
    acceleration_including_gravity: Optional[np.ndarray] = None
    magnetic_field: Optional[np.ndarray] = None
    orientation_quaternion: Optional[np.ndarray] = None
    orientation_angles: Optional[np.ndarray] = None
    screen_angle: float = 0.0

    @property
    def has_inertial_data(self) -> bool:
        """True when any gyroscope or accelerometer reading has arrived."""
        return (self.angular_velocity is not None or
                self.acceleration is not None or
                self.acceleration_including_gravity is not None)

class SensorBuffer:
    """
    Holds the most recent reading of each input.

    Each update replaces one reference with a new immutable reading, so
    event handlers and the driver never need a lock.

    Usage:
        buffer = SensorBuffer()
        buffer.update_angular_velocity(0.0, 0.0, 0.1)
        snapshot = buffer.snapshot()
    """

    def __init__(self):
        self._angular_velocity: Optional[SensorReading] = None
        self._acceleration: Optional[SensorReading] = None
        self._acceleration_including_gravity: Optional[SensorReading] = None
        self._magnetic_field: Optional[SensorReading] = None
        self._orientation_quaternion: Optional[SensorReading] = None
        self._orientation_angles: Optional[SensorReading] = None
        self._screen_angle = 0.0

        # Statistics
        self.sample_count = 0

    def update_angular_velocity(self, x: float, y: float, z: float,
                                timestamp: Optional[float] = None):
        """Store a gyroscope reading (rad/s)."""
        self._angular_velocity = SensorReading(as_vector3((x, y, z)), timestamp)
        self.sample_count += 1

    def update_acceleration(self, x: float, y: float, z: float,
                            timestamp: Optional[float] = None):
        """Store a gravity-free acceleration reading (m/s²)."""
        self._acceleration = SensorReading(as_vector3((x, y, z)), timestamp)
        self.sample_count += 1

    def update_acceleration_including_gravity(self, x: float, y: float, z: float,
                                              timestamp: Optional[float] = None):
        """Store a raw accelerometer reading including gravity (m/s²)."""
        self._acceleration_including_gravity = SensorReading(as_vector3((x, y, z)), timestamp)
        self.sample_count += 1

    def update_magnetic_field(self, x: float, y: float, z: float,
                              timestamp: Optional[float] = None):
        """Store a magnetometer reading (any unit, direction only)."""
        self._magnetic_field = SensorReading(as_vector3((x, y, z)), timestamp)
        self.sample_count += 1

    def update_orientation_quaternion(self, w: float, x: float, y: float, z: float,
                                      timestamp: Optional[float] = None):
        """Store an absolute orientation quaternion (w, x, y, z)."""
        self._orientation_quaternion = SensorReading(np.array([w, x, y, z], dtype=float), timestamp)
        self.sample_count += 1

    def update_orientation_angles(self, alpha: float, beta: float, gamma: float,
                                  timestamp: Optional[float] = None):
        """Store device-orientation angles in degrees (Z-X'-Y'')."""
        self._orientation_angles = SensorReading(as_vector3((alpha, beta, gamma)), timestamp)
        self.sample_count += 1

    def update_screen_angle(self, angle_deg: float):
        """Store the current screen orientation angle (0, 90, 180, 270)."""
        self._screen_angle = float(angle_deg)

    def clear(self):
        """Forget every cached reading."""
        self._angular_velocity = None
        self._acceleration = None
        self._acceleration_including_gravity = None
        self._magnetic_field = None
        self._orientation_quaternion = None
        self._orientation_angles = None
        self._screen_angle = 0.0
        self.sample_count = 0

    def snapshot(self) -> SensorSnapshot:
        """Capture the latest reading of every input."""
        return SensorSnapshot(
            angular_velocity=_values(self._angular_velocity),
            acceleration=_values(self._acceleration),
            acceleration_including_gravity=_values(self._acceleration_including_gravity),
            magnetic_field=_values(self._magnetic_field),
            orientation_quaternion=_values(self._orientation_quaternion),
            orientation_angles=_values(self._orientation_angles),
            screen_angle=self._screen_angle
        )

    def get_statistics(self, now: Optional[float] = None) -> dict:
        """
        Get buffer statistics.

        Args:
            now: Time on the readings' clock (time.monotonic() if None)

        Returns:
            Presence flags plus 'age_s', the seconds since each input last
            arrived (None for inputs never seen)
        """
        if now is None:
            now = time.monotonic()

        readings = {
            'angular_velocity': self._angular_velocity,
            'acceleration': self._acceleration,
            'acceleration_including_gravity': self._acceleration_including_gravity,
            'magnetic_field': self._magnetic_field,
            'orientation_quaternion': self._orientation_quaternion,
            'orientation_angles': self._orientation_angles
        }
        return {
            'sample_count': self.sample_count,
            'has_gyro': self._angular_velocity is not None,
            'has_accel': self._acceleration is not None,
            'has_accel_including_gravity': self._acceleration_including_gravity is not None,
            'has_mag': self._magnetic_field is not None,
            'has_quaternion': self._orientation_quaternion is not None,
            'has_angles': self._orientation_angles is not None,
            'age_s': {name: None if reading is None else now - reading.timestamp
                      for name, reading in readings.items()}
        }

def _values(reading: Optional[SensorReading]) -> Optional[np.ndarray]:
    return None if reading is None else reading.values
