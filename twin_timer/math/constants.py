"""
Mathematical and physical constants for the twin timer pipeline.
"""

import math

# Earth parameters
GRAVITY_MS2 = 9.80665       # Standard gravity in m/s²

# Conversion factors
DEG_TO_RAD = math.pi / 180.0
RAD_TO_DEG = 180.0 / math.pi

# Relativistic mapper
GAMMA_SENTINEL = 1e12       # Lorentz factor reported at or above the invariant speed

# Frame clock
MIN_FRAME_DT_S = 1e-3       # Smallest dt handed to the pipeline (seconds)

# Default engine parameters
DEFAULT_INVARIANT_SPEED = 1.0        # c (m/s)
DEFAULT_DECAY_TAU_S = 3.0            # Drift-to-rest time constant (s)
DEFAULT_DECAY_GAMMA_GAIN = 0.5       # k: decay speed-up per unit of (gamma - 1)
DEFAULT_ACCEL_GATE_MS2 = 0.05        # Per-axis noise gate (m/s²)
DEFAULT_OMEGA_GATE_RPS = 0.35        # Rotation-only detection threshold (rad/s)
DEFAULT_GRAVITY_FILTER_TAU_S = 0.7   # Gravity low-pass time constant (s)
DEFAULT_FILTER_GAIN = 0.1            # Madgwick beta

# Rotation-only gating
ROTATION_ACCEL_THRESHOLD_MS2 = 0.2   # Below this, fast rotation is treated as rotation only
ROTATION_DECAY_FRACTION = 0.25       # Rotation decay tau as a fraction of tau_eff
MIN_ROTATION_DECAY_TAU_S = 0.05      # Floor for the rotation decay tau (s)
STILLNESS_GATE_FACTOR = 1.5          # Stillness threshold as a multiple of the accel gate
