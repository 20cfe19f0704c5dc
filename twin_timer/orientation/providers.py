"""
Orientation providers.

Every orientation source writes into the same MadgwickAHRS quaternion, so
the pipeline can switch sources between steps (for example when an
absolute orientation stream stops) without a jump in orientation.
"""

import numpy as np
import math
from typing import Optional, Sequence
from .ahrs import MadgwickAHRS
from ..math.constants import DEG_TO_RAD
from ..math.utils import (
    euler_to_matrix,
    is_finite_vector,
    rotation_matrix_to_quaternion,
    screen_rotation_matrix,
)
from ..sensors.imu import SensorSnapshot

GYRO_ONLY_LABEL = "gyro"

class OrientationProvider:
    """
    Base class for an orientation source.

    Subclasses report whether their inputs are present in a snapshot and
    advance the shared AHRS state for one step.
    """

    label = "none"

    def is_available(self, snapshot: SensorSnapshot) -> bool:
        raise NotImplementedError

    def update(self, ahrs: MadgwickAHRS, snapshot: SensorSnapshot, dt: float) -> np.ndarray:
        raise NotImplementedError

    def source_label(self, snapshot: SensorSnapshot) -> str:
        """Label reported for a step run on this snapshot."""
        return self.label

    def __repr__(self) -> str:
        return f"{type(self).__name__}(label={self.label!r})"

class AbsoluteQuaternionPassthrough(OrientationProvider):
    """Uses an absolute orientation quaternion as-is, bypassing the filter."""

    label = "quaternion"

    def is_available(self, snapshot: SensorSnapshot) -> bool:
        q = snapshot.orientation_quaternion
        return is_finite_vector(q) and np.linalg.norm(q) > 0

    def update(self, ahrs: MadgwickAHRS, snapshot: SensorSnapshot, dt: float) -> np.ndarray:
        ahrs.set_quaternion(snapshot.orientation_quaternion)
        return ahrs.get_orientation()

class GyroAccelMagFilter(OrientationProvider):
    """Madgwick filter with gravity and magnetic field corrections."""

    label = "gyro+accel+mag"

    def is_available(self, snapshot: SensorSnapshot) -> bool:
        return (snapshot.angular_velocity is not None and
                snapshot.magnetic_field is not None and
                _gravity_reference(snapshot) is not None)

    def update(self, ahrs: MadgwickAHRS, snapshot: SensorSnapshot, dt: float) -> np.ndarray:
        return ahrs.update(snapshot.angular_velocity,
                           _gravity_reference(snapshot),
                           snapshot.magnetic_field,
                           dt=dt)

class GyroAccelFilter(OrientationProvider):
    """
    Madgwick filter with the gravity correction only (yaw drifts).

    Without a gravity-inclusive reading the filter runs on the gyroscope
    alone and the step is reported as "gyro".
    """

    label = "gyro+accel"

    def is_available(self, snapshot: SensorSnapshot) -> bool:
        return snapshot.angular_velocity is not None

    def update(self, ahrs: MadgwickAHRS, snapshot: SensorSnapshot, dt: float) -> np.ndarray:
        return ahrs.update(snapshot.angular_velocity,
                           _gravity_reference(snapshot),
                           None,
                           dt=dt)

    def source_label(self, snapshot: SensorSnapshot) -> str:
        return self.label if _gravity_reference(snapshot) is not None else GYRO_ONLY_LABEL

class EulerAngleMatrix(OrientationProvider):
    """
    Builds the orientation from device-orientation angles.

    alpha/beta/gamma are in degrees (Z-X'-Y''). A rotated screen is
    compensated by pre-multiplying with a rotation about world z.
    """

    label = "euler"

    def is_available(self, snapshot: SensorSnapshot) -> bool:
        return is_finite_vector(snapshot.orientation_angles)

    def update(self, ahrs: MadgwickAHRS, snapshot: SensorSnapshot, dt: float) -> np.ndarray:
        alpha, beta, gamma = snapshot.orientation_angles * DEG_TO_RAD
        R = euler_to_matrix(alpha, beta, gamma)

        screen_angle = snapshot.screen_angle
        if math.isfinite(screen_angle) and screen_angle % 360.0 != 0.0:
            R = screen_rotation_matrix(screen_angle) @ R

        ahrs.set_quaternion(rotation_matrix_to_quaternion(R))
        return ahrs.get_orientation()

# Absolute sources first: OS-fused device-orientation angles carry a
# stable heading, the gyro filters only have one with a magnetometer.
DEFAULT_PROVIDERS = (
    AbsoluteQuaternionPassthrough(),
    EulerAngleMatrix(),
    GyroAccelMagFilter(),
    GyroAccelFilter(),
)

def select_provider(snapshot: SensorSnapshot,
                    providers: Sequence[OrientationProvider] = DEFAULT_PROVIDERS
                    ) -> Optional[OrientationProvider]:
    """
    Pick the first provider whose inputs are present.

    Args:
        snapshot: Latest sensor readings
        providers: Candidates in order of preference

    Returns:
        The selected provider, or None when no orientation input exists
    """
    for provider in providers:
        if provider.is_available(snapshot):
            return provider
    return None

def _gravity_reference(snapshot: SensorSnapshot) -> Optional[np.ndarray]:
    """
    Gravity direction for the filter.

    Only a gravity-inclusive reading carries the gravity direction; a
    gravity-free reading alone leaves the filter on gyro kinematics.
    """
    accel = snapshot.acceleration_including_gravity
    if is_finite_vector(accel) and np.linalg.norm(accel) > 0:
        return accel
    return None
