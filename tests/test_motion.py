#!/usr/bin/env python3
"""
Unit tests for gravity separation, velocity integration, relativistic
mapping, the frame clock and engine configuration.
"""

import unittest
import math
import numpy as np
import sys
import os

# Add core modules to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from twin_timer.clock import FrameClock
from twin_timer.config import EngineConfig
from twin_timer.math.constants import GAMMA_SENTINEL, GRAVITY_MS2
from twin_timer.motion import (
    GravitySeparator,
    MotionIntegrator,
    ProperTimeAccumulator,
    limit_speed,
    lorentz_factor,
)
from twin_timer.motion.separator import (
    SOURCE_GRAVITY_FILTERED,
    SOURCE_LINEAR,
    SOURCE_UNAVAILABLE,
)

YAW_90 = np.array([
    [0.0, -1.0, 0.0],
    [1.0, 0.0, 0.0],
    [0.0, 0.0, 1.0]
])

class TestGravitySeparator(unittest.TestCase):
    """Test GravitySeparator class."""

    def test_linear_reading_rotated_and_gated(self):
        """Gravity-free readings are rotated into the world frame."""
        separator = GravitySeparator(acceleration_gate=0.05)

        a, source = separator.separate(np.eye(3), linear=np.array([1.0, 0.01, 0.0]))
        np.testing.assert_allclose(a, [1.0, 0.0, 0.0])
        self.assertEqual(source, SOURCE_LINEAR)

        a, _ = separator.separate(YAW_90, linear=np.array([1.0, 0.0, 0.0]))
        np.testing.assert_allclose(a, [0.0, 1.0, 0.0], atol=1e-12)

    def test_linear_preferred_over_gravity(self):
        """The gravity estimate is untouched while linear readings exist."""
        separator = GravitySeparator()
        separator.separate(np.eye(3), linear=np.array([0.5, 0.0, 0.0]),
                           including_gravity=np.array([0.5, 0.0, GRAVITY_MS2]), dt=0.01)
        self.assertIsNone(separator.get_gravity_estimate())

    def test_flat_at_rest_gives_zero(self):
        """The first gravity-inclusive reading seeds the estimate."""
        separator = GravitySeparator()
        a, source = separator.separate(np.eye(3), including_gravity=np.array([0.0, 0.0, GRAVITY_MS2]),
                                       dt=0.01)

        np.testing.assert_allclose(a, np.zeros(3))
        self.assertEqual(source, SOURCE_GRAVITY_FILTERED)
        np.testing.assert_allclose(separator.get_gravity_estimate(), [0.0, 0.0, GRAVITY_MS2])

    def test_push_passes_through_low_pass(self):
        """A sudden push mostly survives the slow gravity filter."""
        separator = GravitySeparator(gravity_filter_tau=0.7, acceleration_gate=0.05)
        separator.separate(np.eye(3), including_gravity=np.array([0.0, 0.0, GRAVITY_MS2]), dt=0.01)

        a, _ = separator.separate(np.eye(3), including_gravity=np.array([1.0, 0.0, GRAVITY_MS2]),
                                  dt=0.01)
        self.assertGreater(a[0], 0.98)
        self.assertLess(a[0], 0.99)
        self.assertEqual(a[1], 0.0)
        self.assertEqual(a[2], 0.0)
        self.assertAlmostEqual(np.linalg.norm(separator.get_gravity_estimate()), GRAVITY_MS2, places=9)

    def test_sustained_acceleration_absorbed(self):
        """A constant tilt of the reading ends up in the gravity estimate."""
        separator = GravitySeparator(gravity_filter_tau=0.7)
        reading = np.array([1.0, 0.0, GRAVITY_MS2])
        for _ in range(1000):
            a, _ = separator.separate(np.eye(3), including_gravity=reading, dt=0.01)

        self.assertLess(np.linalg.norm(a), 0.1)

    def test_collapsed_estimate_falls_back(self):
        """A zero-magnitude estimate restarts from nominal gravity."""
        separator = GravitySeparator(acceleration_gate=0.0)
        a, _ = separator.separate(np.eye(3), including_gravity=np.zeros(3), dt=0.01)

        np.testing.assert_allclose(separator.get_gravity_estimate(), [0.0, 0.0, GRAVITY_MS2])
        np.testing.assert_allclose(a, [0.0, 0.0, -GRAVITY_MS2])
        self.assertEqual(separator.gravity_fallback_count, 1)

    def test_no_reading(self):
        """Without readings the acceleration is zero."""
        separator = GravitySeparator()
        a, source = separator.separate(np.eye(3))
        np.testing.assert_allclose(a, np.zeros(3))
        self.assertEqual(source, SOURCE_UNAVAILABLE)

    def test_nan_linear_uses_gravity_path(self):
        """A non-finite linear reading counts as absent."""
        separator = GravitySeparator()
        _, source = separator.separate(np.eye(3), linear=np.array([np.nan, 0.0, 0.0]),
                                       including_gravity=np.array([0.0, 0.0, GRAVITY_MS2]), dt=0.01)
        self.assertEqual(source, SOURCE_GRAVITY_FILTERED)

    def test_zero_gate_keeps_small_values(self):
        separator = GravitySeparator(acceleration_gate=0.0)
        a, _ = separator.separate(np.eye(3), linear=np.array([0.001, -0.002, 0.0]))
        np.testing.assert_allclose(a, [0.001, -0.002, 0.0])

    def test_reset(self):
        separator = GravitySeparator()
        separator.separate(np.eye(3), including_gravity=np.array([0.0, 0.0, GRAVITY_MS2]), dt=0.01)
        separator.reset()
        self.assertIsNone(separator.get_gravity_estimate())

class TestMotionIntegrator(unittest.TestCase):
    """Test MotionIntegrator class."""

    def test_constant_acceleration(self):
        """1 m/s² for one second reaches 1 m/s."""
        integrator = MotionIntegrator(EngineConfig(acceleration_gate=0.0))
        for _ in range(60):
            state = integrator.step(np.array([1.0, 0.0, 0.0]), 0.0, 1 / 60)

        self.assertAlmostEqual(state.speed, 1.0, places=9)
        self.assertFalse(state.still)
        self.assertFalse(state.rotation_only)

    def test_decay_to_rest(self):
        """At rest speed decays with tau: e^-1 after tau seconds."""
        integrator = MotionIntegrator(EngineConfig(tau=3.0, k=0.0))
        integrator.state.velocity = np.array([1.0, 0.0, 0.0])

        for _ in range(300):
            state = integrator.step(np.zeros(3), 0.0, 0.01)

        self.assertAlmostEqual(state.speed, math.exp(-1.0), delta=0.01 * math.exp(-1.0))
        self.assertTrue(state.still)
        self.assertEqual(integrator.get_statistics()['still_steps'], 300)

    def test_effective_tau(self):
        """Higher gamma shortens the decay time constant."""
        integrator = MotionIntegrator(EngineConfig(tau=3.0, k=0.5))
        self.assertAlmostEqual(integrator.effective_tau(1.0), 3.0)
        self.assertAlmostEqual(integrator.effective_tau(3.0), 1.5)
        self.assertAlmostEqual(integrator.effective_tau(float('nan')), 3.0)
        self.assertLess(integrator.effective_tau(2.0), integrator.effective_tau(1.5))

    def test_rotation_gating(self):
        """Fast rotation with little acceleration does not add velocity."""
        integrator = MotionIntegrator(EngineConfig(acceleration_gate=0.05, omega_gate=0.35))
        integrator.state.velocity = np.array([1.0, 0.0, 0.0])

        state = integrator.step(np.array([0.05, 0.0, 0.0]), 1.0, 0.1)

        self.assertTrue(state.rotation_only)
        self.assertLess(state.speed, 1.0)
        self.assertLessEqual(state.velocity[0], 1.0)
        self.assertEqual(integrator.get_statistics()['rotation_only_steps'], 1)

    def test_rotation_decay_time_constant(self):
        """Rotation-only decay uses a quarter of tau_eff."""
        config = EngineConfig(tau=2.0, k=0.0, acceleration_gate=0.0)
        integrator = MotionIntegrator(config)
        integrator.state.velocity = np.array([1.0, 0.0, 0.0])

        # Zero acceleration is also still, so both decays apply
        state = integrator.step(np.zeros(3), 1.0, 0.1)
        expected = math.exp(-0.1 / 0.5) * math.exp(-0.1 / 2.0)
        self.assertAlmostEqual(state.speed, expected, places=12)

    def test_rotation_with_strong_acceleration_integrates(self):
        """Rotation gating needs small acceleration too."""
        integrator = MotionIntegrator(EngineConfig())
        integrator.state.velocity = np.array([1.0, 0.0, 0.0])

        state = integrator.step(np.array([1.0, 0.0, 0.0]), 1.0, 0.1)
        self.assertFalse(state.rotation_only)
        self.assertAlmostEqual(state.velocity[0], 1.1, places=12)

    def test_stillness_decay_applies_after_integration(self):
        """Small accelerations integrate and decay in the same step."""
        config = EngineConfig(tau=3.0, k=0.0, acceleration_gate=0.05)
        integrator = MotionIntegrator(config)
        integrator.state.velocity = np.array([1.0, 0.0, 0.0])

        state = integrator.step(np.array([0.06, 0.0, 0.0]), 0.0, 0.1)
        expected = (1.0 + 0.06 * 0.1) * math.exp(-0.1 / 3.0)
        self.assertTrue(state.still)
        self.assertAlmostEqual(state.velocity[0], expected, places=12)

    def test_invalid_inputs(self):
        """Invalid dt is a no-op; NaN acceleration counts as zero."""
        integrator = MotionIntegrator(EngineConfig(acceleration_gate=0.0))
        integrator.state.velocity = np.array([1.0, 0.0, 0.0])

        integrator.step(np.array([1.0, 0.0, 0.0]), 0.0, 0.0)
        integrator.step(np.array([1.0, 0.0, 0.0]), 0.0, float('nan'))
        self.assertEqual(integrator.get_speed(), 1.0)

        state = integrator.step(np.array([np.nan, 1.0, 0.0]), float('nan'), 0.01)
        self.assertTrue(np.all(np.isfinite(state.velocity)))
        self.assertLess(state.speed, 1.0)

    def test_reset(self):
        integrator = MotionIntegrator()
        integrator.step(np.array([1.0, 0.0, 0.0]), 0.0, 0.1)
        integrator.reset()
        self.assertEqual(integrator.get_speed(), 0.0)
        self.assertEqual(integrator.get_statistics()['steps'], 0)

class TestRelativity(unittest.TestCase):
    """Test speed limiting, Lorentz factor and proper time."""

    def test_limit_speed_small(self):
        """Speeds well below c are nearly unchanged."""
        self.assertAlmostEqual(limit_speed(0.01, 1.0), 0.01, delta=1e-6)
        self.assertEqual(limit_speed(0.0, 1.0), 0.0)
        self.assertEqual(limit_speed(float('nan'), 1.0), 0.0)

    def test_limit_speed_below_c(self):
        """Effective speed never reaches c."""
        for c in (1.0, 3.0):
            for v in (0.0, 0.5, 1.0, 5.0, 10.0):
                self.assertLess(limit_speed(v, c), c)

    def test_lorentz_factor(self):
        """gamma starts at 1 and increases strictly with speed."""
        self.assertEqual(lorentz_factor(0.0, 1.0), 1.0)

        speeds = np.linspace(0.0, 0.999, 50)
        gammas = [lorentz_factor(v, 1.0) for v in speeds]
        for lower, higher in zip(gammas, gammas[1:]):
            self.assertGreater(higher, lower)

        self.assertAlmostEqual(lorentz_factor(0.6, 1.0), 1.25, places=12)

    def test_lorentz_factor_sentinel(self):
        """At or above c gamma is a large finite sentinel."""
        self.assertEqual(lorentz_factor(1.0, 1.0), GAMMA_SENTINEL)
        self.assertEqual(lorentz_factor(2.0, 1.0), GAMMA_SENTINEL)
        self.assertEqual(lorentz_factor(float('inf'), 1.0), GAMMA_SENTINEL)

    def test_gamma_of_limited_speed(self):
        """gamma(c tanh(v/c)) equals cosh(v/c)."""
        for v in (0.1, 0.5, 1.0, 2.0):
            gamma = lorentz_factor(limit_speed(v, 1.0), 1.0)
            self.assertAlmostEqual(gamma, math.cosh(v), places=9)

    def test_proper_time_monotonic(self):
        """Proper time never decreases and never outruns wall time."""
        rng = np.random.default_rng(7)
        clock = ProperTimeAccumulator()
        previous = 0.0

        for _ in range(500):
            dt = rng.uniform(0.001, 0.05)
            gamma = 1.0 + rng.exponential(2.0)
            d_tau = clock.advance(dt, gamma)

            self.assertLessEqual(d_tau, dt)
            self.assertGreaterEqual(clock.proper_time, previous)
            previous = clock.proper_time

        self.assertLessEqual(clock.proper_time, clock.coordinate_time)
        self.assertLess(clock.dilation, 1.0)

    def test_proper_time_invalid_inputs(self):
        clock = ProperTimeAccumulator()
        self.assertEqual(clock.advance(0.0, 1.0), 0.0)
        self.assertEqual(clock.advance(-1.0, 1.0), 0.0)
        self.assertEqual(clock.advance(float('nan'), 1.0), 0.0)
        self.assertEqual(clock.advance(0.1, float('nan')), 0.1)
        self.assertEqual(clock.advance(0.1, 0.5), 0.1)
        self.assertLess(clock.advance(0.1, float('inf')), 1e-9)
        self.assertEqual(clock.dilation, clock.proper_time / clock.coordinate_time)

        clock.reset()
        self.assertEqual(clock.proper_time, 0.0)
        self.assertEqual(clock.dilation, 1.0)

class TestFrameClock(unittest.TestCase):
    """Test FrameClock class."""

    def test_first_tick_is_min_dt(self):
        clock = FrameClock(min_dt=0.001)
        self.assertEqual(clock.tick(100.0), 0.001)
        self.assertAlmostEqual(clock.tick(100.5), 0.5)

    def test_clamping(self):
        """Tiny and backwards steps are clamped to min_dt."""
        clock = FrameClock(min_dt=0.001)
        clock.tick(10.0)
        self.assertEqual(clock.tick(10.0), 0.001)
        self.assertEqual(clock.tick(9.0), 0.001)
        self.assertAlmostEqual(clock.tick(9.25), 0.25)

    def test_reset_skips_pause(self):
        """A resumed clock does not count the pause."""
        clock = FrameClock(min_dt=0.001)
        clock.tick(1.0)
        clock.reset()
        self.assertEqual(clock.tick(500.0), 0.001)

    def test_time_source(self):
        times = iter([2.0, 2.1])
        clock = FrameClock(time_source=lambda: next(times))
        clock.tick()
        self.assertAlmostEqual(clock.tick(), 0.1)
        self.assertEqual(clock.tick_count, 2)

class TestEngineConfig(unittest.TestCase):
    """Test EngineConfig validation."""

    def test_defaults(self):
        config = EngineConfig()
        self.assertEqual(config.c, 1.0)
        self.assertEqual(config.tau, 3.0)
        self.assertEqual(config.k, 0.5)
        self.assertEqual(config.acceleration_gate, 0.05)
        self.assertEqual(config.omega_gate, 0.35)
        self.assertEqual(config.gravity_filter_tau, 0.7)
        self.assertEqual(config.filter_gain, 0.1)
        self.assertFalse(config.reset_orientation)

    def test_invalid_values_fall_back(self):
        """Out-of-range and non-finite values revert to defaults."""
        with self.assertLogs('twin_timer.config', level='WARNING'):
            config = EngineConfig(c=-1.0, tau=float('nan'), k=-0.1, filter_gain=2.0,
                                  acceleration_gate="abc")

        self.assertEqual(config.c, 1.0)
        self.assertEqual(config.tau, 3.0)
        self.assertEqual(config.k, 0.5)
        self.assertEqual(config.filter_gain, 0.1)
        self.assertEqual(config.acceleration_gate, 0.05)

    def test_numeric_strings_accepted(self):
        config = EngineConfig(c="2.5")
        self.assertEqual(config.c, 2.5)

    def test_from_dict_aliases(self):
        """camelCase names map onto fields; unknown keys are ignored."""
        config = EngineConfig.from_dict({
            "cval": 3.0,
            "accelerationGate": 0.1,
            "omegaGate": 0.5,
            "resetOrientation": "true",
            "bogus": 1
        })
        self.assertEqual(config.c, 3.0)
        self.assertEqual(config.acceleration_gate, 0.1)
        self.assertEqual(config.omega_gate, 0.5)
        self.assertTrue(config.reset_orientation)

    def test_with_updates(self):
        config = EngineConfig(tau=5.0)
        updated = config.with_updates(c=2.0, omegaGate=0.4)
        self.assertEqual(updated.c, 2.0)
        self.assertEqual(updated.omega_gate, 0.4)
        self.assertEqual(updated.tau, 5.0)
        self.assertEqual(config.c, 1.0)

        self.assertEqual(config.with_updates(c=0.0).c, 1.0)

if __name__ == '__main__':
    unittest.main(verbosity=2)
