"""
Twin timer engine: one pipeline step per frame.

Per step:
1. Snapshot the latest sensor readings
2. Advance orientation with the best available orientation source
3. Separate world-frame linear acceleration from gravity
4. Integrate velocity with rotation gating and drift-to-rest
5. Map speed through the relativistic model and advance proper time
6. Publish a FrameOutput
"""

import numpy as np
import math
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence
from .clock import FrameClock
from .config import EngineConfig
from .math.utils import format_proper_time, is_finite_vector, quaternion_to_rotation_matrix
from .motion.integrator import MotionIntegrator
from .motion.relativity import ProperTimeAccumulator, limit_speed, lorentz_factor
from .motion.separator import GravitySeparator
from .orientation.ahrs import MadgwickAHRS
from .orientation.providers import DEFAULT_PROVIDERS, OrientationProvider, select_provider
from .sensors.imu import SensorBuffer, SensorSnapshot

logger = logging.getLogger(__name__)

# Sensor status labels
STATUS_OK = "ok"
STATUS_NO_INERTIAL_DATA = "no inertial data"
STATUS_NO_ORIENTATION = "no orientation"

ORIENTATION_NONE = "none"

@dataclass(frozen=True)
class FrameOutput:
    """Results published after each step."""

    acceleration_world: np.ndarray = field(default_factory=lambda: np.zeros(3))
    raw_speed: float = 0.0
    effective_speed: float = 0.0
    gamma: float = 1.0
    proper_time: float = 0.0
    orientation_source: str = ORIENTATION_NONE
    acceleration_source: str = "unavailable"
    sensor_status: str = STATUS_NO_INERTIAL_DATA
    quaternion: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))
    dt: float = 0.0
    rotation_only: bool = False

    @property
    def proper_time_text(self) -> str:
        """Proper time formatted as HH:MM:SS.mmm."""
        return format_proper_time(self.proper_time)

    def to_dict(self) -> dict:
        """Get output as a plain dictionary (e.g. for logging or JSON)."""
        return {
            'acceleration_world': self.acceleration_world.tolist(),
            'raw_speed': self.raw_speed,
            'effective_speed': self.effective_speed,
            'gamma': self.gamma,
            'proper_time': self.proper_time,
            'proper_time_text': self.proper_time_text,
            'orientation_source': self.orientation_source,
            'acceleration_source': self.acceleration_source,
            'sensor_status': self.sensor_status,
            'quaternion': self.quaternion.tolist(),
            'dt': self.dt,
            'rotation_only': self.rotation_only
        }

class TwinTimerEngine:
    """
    Orientation, motion and proper-time pipeline for one session.

    All pipeline state lives here; several engines can run side by side.
    Sensor callbacks write into `sensors`; only the driver calls tick()
    or step().

    Usage:
        engine = TwinTimerEngine(EngineConfig(c=1.0))
        engine.sensors.update_angular_velocity(gx, gy, gz)
        engine.start()
        output = engine.tick(time.monotonic())
    """

    def __init__(self,
                 config: Optional[EngineConfig] = None,
                 sensors: Optional[SensorBuffer] = None,
                 providers: Sequence[OrientationProvider] = DEFAULT_PROVIDERS,
                 clock: Optional[FrameClock] = None):
        """
        Args:
            config: Engine parameters (defaults if None)
            sensors: Sensor buffer shared with the event handlers
            providers: Orientation sources in order of preference
            clock: Frame clock used by tick()
        """
        self.config = config or EngineConfig()
        self.sensors = sensors or SensorBuffer()
        self.providers = tuple(providers)
        self.clock = clock or FrameClock(min_dt=self.config.min_dt)

        self.ahrs = MadgwickAHRS(gain=self.config.filter_gain)
        self.separator = GravitySeparator(
            gravity_filter_tau=self.config.gravity_filter_tau,
            acceleration_gate=self.config.acceleration_gate
        )
        self.integrator = MotionIntegrator(self.config)
        self.proper_time = ProperTimeAccumulator()

        self.running = False
        self.last_output = FrameOutput()
        self._listeners: List[Callable[[FrameOutput], None]] = []
        self._orientation_source = ORIENTATION_NONE

        # Statistics
        self.step_count = 0

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------
    def start(self):
        """Start (or resume) driven stepping."""
        if self.running:
            return
        self.clock.reset()
        self.running = True
        logger.info("Engine started")

    def stop(self):
        """Suspend driven stepping; all state is kept."""
        if not self.running:
            return
        self.running = False
        self.clock.reset()
        logger.info(f"Engine stopped at proper time {format_proper_time(self.proper_time.proper_time)}")

    def reset(self):
        """
        Zero velocity, proper time and the gravity estimate.

        Orientation is kept unless config.reset_orientation is set.
        """
        self.integrator.reset()
        self.proper_time.reset()
        self.separator.reset()
        if self.config.reset_orientation:
            self.ahrs.reset()

        self.last_output = FrameOutput(
            quaternion=self.ahrs.get_orientation(),
            orientation_source=self._orientation_source
        )
        self.step_count = 0
        logger.info("Engine reset")

    def configure(self, config: Optional[EngineConfig] = None, **changes) -> EngineConfig:
        """
        Replace the configuration; takes effect from the next step.

        Args:
            config: Complete new configuration, or
            **changes: Individual settings to change (snake_case or camelCase)

        Returns:
            The configuration now in use
        """
        if config is None:
            config = self.config.with_updates(**changes)

        self.config = config
        self.ahrs.set_gain(config.filter_gain)
        self.separator.gravity_filter_tau = config.gravity_filter_tau
        self.separator.acceleration_gate = config.acceleration_gate
        self.integrator.config = config
        self.clock.min_dt = config.min_dt
        logger.debug(f"Configuration updated: {config}")
        return config

    def add_listener(self, callback: Callable[[FrameOutput], None]):
        """Register a callback receiving every published FrameOutput."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[FrameOutput], None]):
        """Unregister a callback."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------
    def tick(self, timestamp: Optional[float] = None) -> Optional[FrameOutput]:
        """
        Run one step for a host frame if the engine is running.

        Args:
            timestamp: Monotonic frame time in seconds

        Returns:
            The published output, or None while stopped
        """
        if not self.running:
            return None
        dt = self.clock.tick(timestamp)
        return self.step(dt)

    def step(self, dt: float) -> FrameOutput:
        """
        Run the pipeline once with an explicit time step.

        Args:
            dt: Time step in seconds (clamped to config.min_dt)

        Returns:
            Published output of this step
        """
        cfg = self.config
        if not math.isfinite(dt) or dt < cfg.min_dt:
            dt = cfg.min_dt

        snapshot = self.sensors.snapshot()

        # Orientation
        provider = select_provider(snapshot, self.providers)
        if provider is not None:
            q = provider.update(self.ahrs, snapshot, dt)
            source = provider.source_label(snapshot)
        else:
            q = self.ahrs.get_orientation()
            source = ORIENTATION_NONE
        self._note_orientation_source(source)
        rotation = quaternion_to_rotation_matrix(q)

        # Linear acceleration in world frame
        a_world, accel_source = self.separator.separate(
            rotation,
            linear=snapshot.acceleration,
            including_gravity=snapshot.acceleration_including_gravity,
            dt=dt
        )

        # Velocity
        omega = _magnitude(snapshot.angular_velocity)
        state = self.integrator.step(a_world, omega, dt, self.last_output.gamma)

        # Relativistic mapping
        raw_speed = state.speed
        effective_speed = limit_speed(raw_speed, cfg.c)
        gamma = lorentz_factor(effective_speed, cfg.c)
        self.proper_time.advance(dt, gamma)

        output = FrameOutput(
            acceleration_world=a_world,
            raw_speed=raw_speed,
            effective_speed=effective_speed,
            gamma=gamma,
            proper_time=self.proper_time.proper_time,
            orientation_source=source,
            acceleration_source=accel_source,
            sensor_status=_sensor_status(snapshot, provider),
            quaternion=q,
            dt=dt,
            rotation_only=state.rotation_only
        )
        self.last_output = output
        self.step_count += 1

        for callback in list(self._listeners):
            callback(output)

        return output

    def _note_orientation_source(self, source: str):
        if source != self._orientation_source:
            logger.info(f"Orientation source: {self._orientation_source} -> {source}")
            self._orientation_source = source

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def orientation_source(self) -> str:
        """Label of the orientation source used in the last step."""
        return self._orientation_source

    def get_orientation(self) -> np.ndarray:
        """Current orientation quaternion (w, x, y, z)."""
        return self.ahrs.get_orientation()

    def get_velocity(self) -> np.ndarray:
        """Current world-frame velocity (m/s)."""
        return self.integrator.get_velocity()

    def get_proper_time(self) -> float:
        """Accumulated proper time (s)."""
        return self.proper_time.proper_time

    def get_statistics(self) -> dict:
        """Get engine statistics."""
        stats = {
            'steps': self.step_count,
            'running': self.running,
            'orientation_source': self._orientation_source,
            'proper_time': self.proper_time.proper_time,
            'coordinate_time': self.proper_time.coordinate_time,
            'dilation': self.proper_time.dilation,
            'gravity_fallbacks': self.separator.gravity_fallback_count
        }
        stats.update(self.integrator.get_statistics())
        return stats

def _magnitude(vector: Optional[np.ndarray]) -> float:
    if not is_finite_vector(vector):
        return 0.0
    return float(np.linalg.norm(vector))

def _sensor_status(snapshot: SensorSnapshot, provider: Optional[OrientationProvider]) -> str:
    if not snapshot.has_inertial_data:
        return STATUS_NO_INERTIAL_DATA
    if provider is None:
        return STATUS_NO_ORIENTATION
    return STATUS_OK
