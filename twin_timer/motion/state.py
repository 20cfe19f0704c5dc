"""
Translational motion state for the velocity integrator.
"""

import numpy as np
from dataclasses import dataclass, field

@dataclass
class MotionState:
    """
    World-frame velocity estimate.

    - velocity: [vx, vy, vz] in m/s (world frame, z up)
    - rotation_only: True if the last step was classified as rotation
      without translation
    - still: True if the last step applied the drift-to-rest decay
    """

    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation_only: bool = False
    still: bool = False

    @property
    def speed(self) -> float:
        """Get speed (velocity magnitude) in m/s."""
        return float(np.linalg.norm(self.velocity))

    def zero(self):
        """Bring the state to rest."""
        self.velocity = np.zeros(3)
        self.rotation_only = False
        self.still = False

    def copy(self) -> 'MotionState':
        """Create a copy of the state."""
        return MotionState(
            velocity=self.velocity.copy(),
            rotation_only=self.rotation_only,
            still=self.still
        )

    def __str__(self) -> str:
        vx, vy, vz = self.velocity
        return (
            f"MotionState(vel=[{vx:.3f}, {vy:.3f}, {vz:.3f}], "
            f"speed={self.speed:.3f}, "
            f"rotation_only={self.rotation_only}, still={self.still})"
        )
