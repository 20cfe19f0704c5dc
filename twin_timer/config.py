"""
Engine configuration.

Values are validated on construction: anything non-finite or out of range
falls back to its default with a warning, so a bad setting never stops
the pipeline.
"""

import math
import logging
from dataclasses import dataclass, fields
from typing import Any, Dict
from .math.constants import *

logger = logging.getLogger(__name__)

def _positive(value) -> bool:
    return value > 0

def _non_negative(value) -> bool:
    return value >= 0

def _unit_interval(value) -> bool:
    return 0 <= value <= 1

# Field name -> range check for numeric parameters
_CHECKS = {
    "c": _positive,
    "tau": _positive,
    "k": _non_negative,
    "acceleration_gate": _non_negative,
    "omega_gate": _non_negative,
    "gravity_filter_tau": _positive,
    "filter_gain": _unit_interval,
    "rotation_accel_threshold": _non_negative,
    "rotation_decay_fraction": _positive,
    "min_rotation_tau": _positive,
    "stillness_factor": _non_negative,
    "min_dt": _positive,
}

# camelCase names used by the settings UI
_ALIASES = {
    "cval": "c",
    "accelerationGate": "acceleration_gate",
    "omegaGate": "omega_gate",
    "gravityFilterTau": "gravity_filter_tau",
    "filterGain": "filter_gain",
    "rotationAccelThreshold": "rotation_accel_threshold",
    "rotationDecayFraction": "rotation_decay_fraction",
    "minRotationTau": "min_rotation_tau",
    "stillnessFactor": "stillness_factor",
    "minDt": "min_dt",
    "resetOrientation": "reset_orientation",
}

@dataclass(frozen=True)
class EngineConfig:
    """
    Parameters of the motion and time-dilation pipeline.

    - c: invariant speed (m/s), > 0
    - tau: drift-to-rest time constant (s), > 0
    - k: decay speed-up per unit of (gamma - 1), >= 0
    - acceleration_gate: per-axis noise gate (m/s²), >= 0
    - omega_gate: rotation-only detection threshold (rad/s), >= 0
    - gravity_filter_tau: gravity low-pass time constant (s), > 0
    - filter_gain: Madgwick beta, 0..1
    - reset_orientation: whether reset() also returns the AHRS to identity
    """

    c: float = DEFAULT_INVARIANT_SPEED
    tau: float = DEFAULT_DECAY_TAU_S
    k: float = DEFAULT_DECAY_GAMMA_GAIN
    acceleration_gate: float = DEFAULT_ACCEL_GATE_MS2
    omega_gate: float = DEFAULT_OMEGA_GATE_RPS
    gravity_filter_tau: float = DEFAULT_GRAVITY_FILTER_TAU_S
    filter_gain: float = DEFAULT_FILTER_GAIN
    rotation_accel_threshold: float = ROTATION_ACCEL_THRESHOLD_MS2
    rotation_decay_fraction: float = ROTATION_DECAY_FRACTION
    min_rotation_tau: float = MIN_ROTATION_DECAY_TAU_S
    stillness_factor: float = STILLNESS_GATE_FACTOR
    min_dt: float = MIN_FRAME_DT_S
    reset_orientation: bool = False

    def __post_init__(self):
        defaults = EngineConfig.__dataclass_fields__
        for name, check in _CHECKS.items():
            value = getattr(self, name)
            try:
                number = float(value)
                valid = math.isfinite(number) and check(number)
            except (TypeError, ValueError):
                valid = False

            if valid:
                object.__setattr__(self, name, number)
            else:
                default = defaults[name].default
                logger.warning(f"Invalid {name}={value!r}, using default {default}")
                object.__setattr__(self, name, default)

        flag = self.reset_orientation
        if isinstance(flag, str):
            flag = flag.strip().lower() in ("1", "true", "yes", "on")
        object.__setattr__(self, "reset_orientation", bool(flag))

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "EngineConfig":
        """
        Build a configuration from a dictionary.

        Accepts snake_case field names and the camelCase names of the
        settings UI. Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (values or {}).items():
            name = _ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
            else:
                logger.warning(f"Ignoring unknown engine setting '{key}'")
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Get configuration as a plain dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def with_updates(self, **changes) -> "EngineConfig":
        """Return a validated copy with some values changed."""
        return self.from_dict({**self.to_dict(), **changes})
