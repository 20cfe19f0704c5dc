"""
Orientation estimation using a Madgwick gradient-descent AHRS filter.

Fuses gyroscope rates with the gravity direction from the accelerometer
and, when available, the magnetic field direction from the magnetometer.

Reference: https://x-io.co.uk/open-source-imu-and-ahrs-algorithms/
"""

import numpy as np
import math
import logging
from typing import Optional, Tuple
from ..math.constants import DEFAULT_FILTER_GAIN, RAD_TO_DEG
from ..math.utils import (
    is_finite_vector,
    normalize_vector,
    quaternion_multiply,
    quaternion_to_rotation_matrix,
)

logger = logging.getLogger(__name__)

IDENTITY_QUATERNION = np.array([1.0, 0.0, 0.0, 0.0])

# Gradient norms below this mean the references already agree
GRADIENT_EPSILON = 1e-9

class MadgwickAHRS:
    """
    Madgwick AHRS (Attitude and Heading Reference System) filter.

    The quaternion q = (w, x, y, z) rotates device-frame vectors into the
    world frame (z up). Each reference direction d (world frame) measured
    as s (device frame) contributes the objective f = R(q)^T d - s; the
    gradients J^T f of all valid references are summed, normalized and
    fed back against the gyroscope rate.

    Without an initial quaternion the first update that carries a valid
    gravity reading seeds roll and pitch from it (and heading from the
    magnetometer when present) instead of converging from flat.

    Usage:
        ahrs = MadgwickAHRS(gain=0.1)
        q = ahrs.update(gyro, accel, mag, dt=0.01)
    """

    def __init__(self,
                 gain: float = DEFAULT_FILTER_GAIN,
                 sample_rate_hz: float = 60.0,
                 initial_quaternion: Optional[np.ndarray] = None):
        """
        Initialize the filter.

        Args:
            gain: Filter gain beta (0.0 to 1.0)
                  - Higher gain = trust accelerometer/magnetometer more, converge faster
                  - Lower gain = trust gyroscope more, smoother but drifts
            sample_rate_hz: Default update rate when update() gets no dt
            initial_quaternion: Starting orientation as (w, x, y, z)
        """
        self.gain = gain
        self.sample_period = 1.0 / sample_rate_hz

        self.q = IDENTITY_QUATERNION.copy()
        self.initialized = False
        if initial_quaternion is not None:
            self.set_quaternion(initial_quaternion)

        # Diagnostics for the last update
        self.accel_correction_applied = False
        self.mag_correction_applied = False
        self.update_count = 0

    def update(self,
               angular_velocity: np.ndarray,
               acceleration: Optional[np.ndarray] = None,
               magnetic_field: Optional[np.ndarray] = None,
               dt: Optional[float] = None) -> np.ndarray:
        """
        Update the orientation estimate with a new sensor reading.

        Args:
            angular_velocity: Gyroscope reading in rad/s (device frame)
            acceleration: Accelerometer reading including gravity; any unit,
                          only its direction is used
            magnetic_field: Magnetometer reading; any unit, only its direction is used
            dt: Time step in seconds (defaults to the sample period)

        Returns:
            Updated quaternion (w, x, y, z)
        """
        if dt is None:
            dt = self.sample_period
        if not math.isfinite(dt) or dt <= 0:
            return self.get_orientation()

        if not self.initialized:
            self.initialize(acceleration, magnetic_field)

        q = self.q

        omega = np.asarray(angular_velocity, dtype=float) if angular_velocity is not None else None
        if not is_finite_vector(omega):
            omega = np.zeros(3)

        # Rate of change of quaternion from gyroscope
        q_dot = 0.5 * quaternion_multiply(q, np.array([0.0, omega[0], omega[1], omega[2]]))

        gradient = np.zeros(4)
        self.accel_correction_applied = False
        self.mag_correction_applied = False

        accel = normalize_vector(_as_array(acceleration))
        if accel is not None:
            f, J = self._gravity_objective(q, accel)
            gradient += J.T @ f
            self.accel_correction_applied = True

        mag = normalize_vector(_as_array(magnetic_field))
        if mag is not None:
            f, J = self._magnetic_objective(q, mag)
            gradient += J.T @ f
            self.mag_correction_applied = True

        # Normalize step magnitude, skipped when the references already agree
        gradient_norm = np.linalg.norm(gradient)
        if gradient_norm > GRADIENT_EPSILON:
            q_dot = q_dot - self.gain * (gradient / gradient_norm)

        q_new = q + q_dot * dt

        q_norm = np.linalg.norm(q_new)
        if math.isfinite(q_norm) and q_norm > 0:
            self.q = q_new / q_norm
        else:
            logger.debug("Discarding degenerate quaternion update")

        self.update_count += 1
        return self.get_orientation()

    @staticmethod
    def _gravity_objective(q: np.ndarray, accel: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Objective and Jacobian for the world reference d = (0, 0, 1)."""
        w, x, y, z = q

        f = np.array([
            2*(x*z - w*y) - accel[0],
            2*(w*x + y*z) - accel[1],
            2*(0.5 - x*x - y*y) - accel[2]
        ])
        J = np.array([
            [-2*y, 2*z, -2*w, 2*x],
            [2*x, 2*w, 2*z, 2*y],
            [0.0, -4*x, -4*y, 0.0]
        ])
        return f, J

    @staticmethod
    def _magnetic_objective(q: np.ndarray, mag: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Objective and Jacobian for the magnetic reference.

        The reference b = (bx, 0, bz) is re-derived from the live reading
        every step, so the local field strength and inclination never
        need to be known.
        """
        w, x, y, z = q

        h = quaternion_to_rotation_matrix(q) @ mag
        bx = math.sqrt(h[0]*h[0] + h[1]*h[1])
        bz = h[2]

        f = np.array([
            2*bx*(0.5 - y*y - z*z) + 2*bz*(x*z - w*y) - mag[0],
            2*bx*(x*y - w*z) + 2*bz*(w*x + y*z) - mag[1],
            2*bx*(w*y + x*z) + 2*bz*(0.5 - x*x - y*y) - mag[2]
        ])
        J = np.array([
            [-2*bz*y, 2*bz*z, -4*bx*y - 2*bz*w, -4*bx*z + 2*bz*x],
            [-2*bx*z + 2*bz*x, 2*bx*y + 2*bz*w, 2*bx*x + 2*bz*z, -2*bx*w + 2*bz*y],
            [2*bx*y, 2*bx*z - 4*bz*x, 2*bx*w - 4*bz*y, 2*bx*x]
        ])
        return f, J

    def set_quaternion(self, quaternion) -> bool:
        """
        Overwrite the orientation, e.g. from an absolute orientation source.

        Args:
            quaternion: (w, x, y, z), normalized on the way in

        Returns:
            True if the quaternion was accepted
        """
        q = normalize_vector(_as_array(quaternion))
        if q is None or q.shape != (4,):
            return False
        self.q = q
        self.initialized = True
        return True

    def initialize(self, acceleration, magnetic_field=None) -> bool:
        """
        Seed the orientation from a gravity reading, and heading from the
        magnetic field if one is given.

        Args:
            acceleration: Accelerometer reading including gravity (device frame)
            magnetic_field: Optional magnetometer reading (device frame)

        Returns:
            True if the orientation was seeded
        """
        up = normalize_vector(_as_array(acceleration))
        if up is None or up.shape != (3,):
            return False

        # Shortest rotation taking the measured up direction onto world z
        w = 1.0 + up[2]
        if w < 1e-12:
            q = np.array([0.0, 1.0, 0.0, 0.0])
        else:
            q = normalize_vector(np.array([w, up[1], -up[0], 0.0]))

        mag = normalize_vector(_as_array(magnetic_field))
        if mag is not None and mag.shape == (3,):
            h = quaternion_to_rotation_matrix(q) @ mag
            if math.hypot(h[0], h[1]) > 1e-6:
                # Turn about world z so the horizontal field points along +x
                half = -0.5 * math.atan2(h[1], h[0])
                q_heading = np.array([math.cos(half), 0.0, 0.0, math.sin(half)])
                q = normalize_vector(quaternion_multiply(q_heading, q))

        self.q = q
        self.initialized = True
        logger.debug(f"Orientation seeded from gravity: {q}")
        return True

    def get_orientation(self) -> np.ndarray:
        """Return a copy of the current quaternion (w, x, y, z)."""
        return self.q.copy()

    def get_rotation_matrix(self) -> np.ndarray:
        """Return the device->world rotation matrix."""
        return quaternion_to_rotation_matrix(self.q)

    def get_euler_angles(self) -> Tuple[float, float, float]:
        """
        Convert current quaternion to Euler angles.

        Returns:
            Tuple of (roll, pitch, yaw) in degrees
        """
        w, x, y, z = self.q

        # Roll (x-axis rotation)
        roll = math.atan2(2.0 * (w * x + y * z), 1.0 - 2.0 * (x * x + y * y))

        # Pitch (y-axis rotation), clamped at the poles
        sinp = 2.0 * (w * y - z * x)
        if abs(sinp) >= 1:
            pitch = math.copysign(math.pi / 2, sinp)
        else:
            pitch = math.asin(sinp)

        # Yaw (z-axis rotation)
        yaw = math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))

        return (roll * RAD_TO_DEG, pitch * RAD_TO_DEG, yaw * RAD_TO_DEG)

    def set_gain(self, gain: float):
        """Adjust filter gain (useful for tuning during operation)."""
        self.gain = max(0.0, min(1.0, gain))

    def reset(self, quaternion: Optional[np.ndarray] = None):
        """Reset orientation to identity or a given quaternion."""
        self.q = IDENTITY_QUATERNION.copy()
        self.initialized = False
        if quaternion is not None:
            self.set_quaternion(quaternion)
        self.update_count = 0

def _as_array(values) -> Optional[np.ndarray]:
    return None if values is None else np.asarray(values, dtype=float).reshape(-1)
