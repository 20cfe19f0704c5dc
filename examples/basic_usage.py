#!/usr/bin/env python3
"""
Basic usage example of the twin timer engine.

This example demonstrates how to drive the pipeline with synthetic sensor
readings and an explicit time step, without threads or hardware.
"""

import sys
import os
import numpy as np

# Add core modules to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from twin_timer import TwinTimerEngine, EngineConfig, FrameOutput
from twin_timer.math.constants import GRAVITY_MS2

def simulate_phone_motion(duration=12.0, dt=1/60):
    """
    Simulate a phone lying flat that is pushed along x, coasts, and is
    then spun in place.

    Args:
        duration: Simulation duration in seconds
        dt: Time step in seconds

    Yields:
        (t, gyro, accel_including_gravity) tuples, device frame
    """
    accel_noise = 0.01  # m/s²
    gyro_noise = 0.001  # rad/s

    t = 0.0
    while t < duration:
        ax = 0.0
        wz = 0.0
        if 1.0 <= t < 3.0:
            ax = 0.5            # push
        elif 7.0 <= t < 9.0:
            wz = 1.2            # spin in place

        gyro = np.array([0.0, 0.0, wz]) + np.random.normal(0, gyro_noise, 3)
        accel = np.array([ax, 0.0, GRAVITY_MS2]) + np.random.normal(0, accel_noise, 3)

        yield t, gyro, accel

        t += dt

def main():
    """Main example function."""
    print("Twin Timer - Basic Usage Example")
    print("=" * 50)

    config = EngineConfig(c=1.0, tau=3.0, k=0.5)
    engine = TwinTimerEngine(config)

    print("Initialized twin timer engine")
    print(f"Configuration: {config}")
    print()

    last_print_time = -1.0
    print_interval = 1.0  # Print status every second
    dt = 1 / 60

    for t, gyro, accel in simulate_phone_motion(dt=dt):
        # Sensor callbacks would normally do this on their own schedule
        engine.sensors.update_angular_velocity(*gyro)
        engine.sensors.update_acceleration_including_gravity(*accel)

        output = engine.step(dt)

        if t - last_print_time >= print_interval:
            print_status(output, t)
            last_print_time = t

    print("\nSimulation completed!")

    stats = engine.get_statistics()
    print("\n=== Final Statistics ===")
    print(f"Steps: {stats['steps']}")
    print(f"Wall time: {stats['coordinate_time']:.3f} s")
    print(f"Proper time: {stats['proper_time']:.3f} s")
    print(f"Rotation-only steps: {stats['rotation_only_steps']}")

def print_status(output: FrameOutput, t: float):
    """Print current engine status."""
    ax, ay, az = output.acceleration_world

    print(f"Time: {t:5.2f}s  Proper time: {output.proper_time_text}")
    print(f"  Accel (world): [{ax:6.3f}, {ay:6.3f}, {az:6.3f}] m/s² ({output.acceleration_source})")
    print(f"  Speed: raw {output.raw_speed:5.3f}, effective {output.effective_speed:5.3f} m/s")
    print(f"  Gamma: {output.gamma:.6f}  Orientation: {output.orientation_source}"
          f"{'  [rotation only]' if output.rotation_only else ''}")
    print()

if __name__ == "__main__":
    main()
