"""
Velocity integration with drift suppression.

Integrates world-frame linear acceleration into velocity. Two mechanisms
keep the estimate from running away on sensor bias:

- Rotation gating: fast rotation with almost no acceleration is treated as
  rotation without translation, so orientation-filter transients do not
  leak into velocity.
- Drift-to-rest: whenever the device looks still, velocity decays
  exponentially with tau_eff = tau / (1 + k (gamma - 1)).

Both decays may apply in the same step, and the stillness decay also
applies on steps that integrated. Residual motion that the gate cannot
see is more likely bias than true constant velocity.
"""

import numpy as np
import math
from typing import Optional
from .state import MotionState
from ..config import EngineConfig
from ..math.utils import is_finite_vector

class MotionIntegrator:
    """
    Adaptive, gated velocity integrator.

    Usage:
        integrator = MotionIntegrator(EngineConfig())
        state = integrator.step(a_world, omega_magnitude, dt, gamma)
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.state = MotionState()

        # Statistics
        self.step_count = 0
        self.rotation_only_count = 0
        self.still_count = 0

    def effective_tau(self, gamma: float = 1.0) -> float:
        """
        Decay time constant adapted to the current Lorentz factor.

        Args:
            gamma: Lorentz factor of the current speed

        Returns:
            tau_eff in seconds
        """
        if not math.isfinite(gamma) or gamma < 1.0:
            gamma = 1.0
        return self.config.tau / (1.0 + self.config.k * (gamma - 1.0))

    def step(self,
             acceleration_world: np.ndarray,
             angular_velocity_magnitude: float,
             dt: float,
             gamma: float = 1.0) -> MotionState:
        """
        Advance the velocity estimate by one step.

        Args:
            acceleration_world: Gated linear acceleration in the world frame (m/s²)
            angular_velocity_magnitude: |omega| in rad/s
            dt: Time step in seconds
            gamma: Lorentz factor from the previous step

        Returns:
            Updated motion state
        """
        cfg = self.config
        state = self.state

        if not math.isfinite(dt) or dt <= 0:
            return state
        if not is_finite_vector(acceleration_world):
            acceleration_world = np.zeros(3)
        if not math.isfinite(angular_velocity_magnitude):
            angular_velocity_magnitude = 0.0

        a_mag = float(np.linalg.norm(acceleration_world))
        tau_eff = self.effective_tau(gamma)

        state.rotation_only = (angular_velocity_magnitude > cfg.omega_gate and
                               a_mag < cfg.rotation_accel_threshold)

        if state.rotation_only:
            # Skip integration and shed velocity faster
            tau_rot = max(cfg.rotation_decay_fraction * tau_eff, cfg.min_rotation_tau)
            state.velocity = state.velocity * math.exp(-dt / tau_rot)
            self.rotation_only_count += 1
        else:
            state.velocity = state.velocity + acceleration_world * dt

        # Drift-to-rest when nearly still
        state.still = a_mag == 0.0 or a_mag <= cfg.stillness_factor * cfg.acceleration_gate
        if state.still:
            state.velocity = state.velocity * math.exp(-dt / tau_eff)
            self.still_count += 1

        self.step_count += 1
        return state

    def get_velocity(self) -> np.ndarray:
        """Get current world-frame velocity (m/s)."""
        return self.state.velocity.copy()

    def get_speed(self) -> float:
        """Get current raw speed (m/s)."""
        return self.state.speed

    def reset(self):
        """Zero velocity and statistics."""
        self.state.zero()
        self.step_count = 0
        self.rotation_only_count = 0
        self.still_count = 0

    def get_statistics(self) -> dict:
        """Get integrator statistics."""
        return {
            'steps': self.step_count,
            'rotation_only_steps': self.rotation_only_count,
            'still_steps': self.still_count,
            'speed': self.state.speed
        }
