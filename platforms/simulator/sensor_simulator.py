"""
sensor_simulator.py

Synthetic phone-style inertial sensors for exercising the twin timer
engine without hardware. A scripted ground-truth motion profile (world
frame acceleration and angular velocity) is converted into device-frame
gyroscope, accelerometer (with and without gravity) and magnetometer
readings with biases, white noise and random walks.

Classes:
MotionProfile:
    Piecewise ground truth: rest, push, coast, brake, spin in place.
SensorSimulator:
    Simulates the sensors and tracks the true orientation.

"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from twin_timer.math.constants import GRAVITY_MS2
from twin_timer.math.utils import quaternion_multiply, quaternion_to_rotation_matrix

# Local field, roughly mid-latitude northern hemisphere (microtesla, world frame)
MAGNETIC_FIELD_WORLD = np.array([0.0, 22.0, -42.0])

@dataclass
class MotionPhase:
    """One segment of the scripted motion."""
    duration: float
    acceleration: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    angular_velocity: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    name: str = ""

@dataclass
class MotionProfile:
    """ Piecewise-constant ground truth in the world frame.

    Parameters:
        phases (List[MotionPhase]): Segments played in order; after the last
            one the device stays at rest.
    """
    phases: List[MotionPhase] = field(default_factory=lambda: [
        MotionPhase(2.0, name="rest"),
        MotionPhase(1.5, acceleration=(0.8, 0.0, 0.0), name="push"),
        MotionPhase(3.0, name="coast"),
        MotionPhase(1.5, acceleration=(-0.8, 0.0, 0.0), name="brake"),
        MotionPhase(3.0, angular_velocity=(0.0, 0.0, 1.0), name="spin"),
        MotionPhase(2.0, name="rest"),
    ])

    @property
    def duration(self) -> float:
        return sum(phase.duration for phase in self.phases)

    def sample(self, t: float) -> Tuple[np.ndarray, np.ndarray, str]:
        """ Ground truth at time t.

        Args:
            t (float): Seconds since the start of the profile.

        Returns:
            acc_world (np.ndarray): Linear acceleration, world frame (3,).
            omega_world (np.ndarray): Angular velocity, world frame (3,).
            name (str): Name of the active phase.
        """
        elapsed = 0.0
        for phase in self.phases:
            if t < elapsed + phase.duration:
                return (np.array(phase.acceleration, dtype=float),
                        np.array(phase.angular_velocity, dtype=float),
                        phase.name)
            elapsed += phase.duration
        return np.zeros(3), np.zeros(3), "rest"

@dataclass
class SensorSimulator:
    """Simulate phone inertial sensors from ground truth motion.

    Parameters:
        accel_bias (np.ndarray): Initial accelerometer bias in device coordinates (3,).
        gyro_bias (np.ndarray): Initial gyroscope bias in device coordinates (3,).
        accel_noise_std (float): Standard deviation of accelerometer white noise (m/s^2).
        gyro_noise_std (float): Standard deviation of gyroscope white noise (rad/s).
        mag_noise_std (float): Standard deviation of magnetometer white noise (uT).
        accel_bias_rw (float): Accelerometer bias random walk standard deviation (m/s^2/sqrt(s)).
        gyro_bias_rw (float): Gyroscope bias random walk standard deviation (rad/s/sqrt(s)).
        random_state (Optional[np.random.Generator]): Random number generator for reproducibility. If
            None, a new default generator is created.
    """
    accel_bias: np.ndarray = field(default_factory=lambda: np.zeros(3))
    gyro_bias: np.ndarray = field(default_factory=lambda: np.zeros(3))
    accel_noise_std: float = 0.02 # m/s^2
    gyro_noise_std: float = 0.002 # rad/s
    mag_noise_std: float = 0.5 # uT
    accel_bias_rw: float = 1e-4 # m/s^2/sqrt(s)
    gyro_bias_rw: float = 1e-5 # rad/s/sqrt(s)
    random_state: Optional[np.random.Generator] = field(default=None)

    def __post_init__(self):
        self.accel_bias = np.asarray(self.accel_bias, dtype=float)
        self.gyro_bias = np.asarray(self.gyro_bias, dtype=float)
        if self.random_state is None:
            self.rng = np.random.default_rng()
        else:
            self.rng = self.random_state
        # True device->world orientation
        self.orientation = np.array([1.0, 0.0, 0.0, 0.0])

    def _update_biases(self, dt: float) -> None:
        """ Evolve sensor biases using a random walk over time dt.
        """
        self.accel_bias += self.rng.normal(scale=self.accel_bias_rw * np.sqrt(dt), size=3)
        self.gyro_bias += self.rng.normal(scale=self.gyro_bias_rw * np.sqrt(dt), size=3)

    def _propagate_orientation(self, omega_world: np.ndarray, dt: float) -> None:
        """ Rotate the true orientation by a world-frame angular velocity.
        """
        rate = np.linalg.norm(omega_world)
        if rate <= 0:
            return
        half = 0.5 * rate * dt
        axis = omega_world / rate
        dq = np.concatenate(([np.cos(half)], np.sin(half) * axis))
        q = quaternion_multiply(dq, self.orientation)
        self.orientation = q / np.linalg.norm(q)

    def measure(self, acc_world: np.ndarray, omega_world: np.ndarray,
                dt: float) -> Dict[str, np.ndarray]:
        """ Generate one set of synthetic readings.

        Args:
            acc_world (np.ndarray): Linear acceleration in world frame (3,).
            omega_world (np.ndarray): Angular velocity in world frame (3,).
            dt (float): Time step since last measurement in seconds.

        Returns:
            Dict with device-frame 'angular_velocity', 'acceleration',
            'acceleration_including_gravity' and 'magnetic_field' readings,
            plus the true 'orientation' quaternion.
        """
        self._update_biases(dt)
        self._propagate_orientation(np.asarray(omega_world, dtype=float), dt)

        # World -> device is the transpose of the device -> world rotation
        R_t = quaternion_to_rotation_matrix(self.orientation).T
        acc_world = np.asarray(acc_world, dtype=float)

        accel_noise = self.accel_bias + self.rng.normal(scale=self.accel_noise_std, size=3)
        linear_device = R_t @ acc_world + accel_noise
        # Specific force: an accelerometer at rest reads +g upwards
        including_gravity_device = R_t @ (acc_world + np.array([0.0, 0.0, GRAVITY_MS2])) + accel_noise

        gyro_device = (R_t @ np.asarray(omega_world, dtype=float) + self.gyro_bias +
                       self.rng.normal(scale=self.gyro_noise_std, size=3))
        mag_device = R_t @ MAGNETIC_FIELD_WORLD + self.rng.normal(scale=self.mag_noise_std, size=3)

        return {
            'angular_velocity': gyro_device,
            'acceleration': linear_device,
            'acceleration_including_gravity': including_gravity_device,
            'magnetic_field': mag_device,
            'orientation': self.orientation.copy()
        }
