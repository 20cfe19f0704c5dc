#!/usr/bin/env python3
"""
Twin Timer simulator host.

Runs the engine the way a phone host would: a sensor thread delivers
readings at the sensor rate, a driver thread ticks the engine at the
frame rate, and an output thread prints the published results.
"""

import sys
import os
import csv
import time
import threading
import signal
import argparse
import logging
from typing import Optional

import numpy as np

# Add core modules to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from twin_timer import TwinTimerEngine, FrameOutput
from sensor_simulator import MotionProfile, SensorSimulator
from config import Config

logger = logging.getLogger("twin_timer.simulator")

CSV_HEADER = [
    "time_s", "proper_time_s", "ax", "ay", "az",
    "raw_speed", "effective_speed", "gamma",
    "orientation_source", "acceleration_source", "rotation_only"
]

class TwinTimerSimulator:
    """Simulated phone host driving a TwinTimerEngine."""

    def __init__(self, config: Config):
        """Initialize the simulator host."""
        self.config = config

        self.engine = TwinTimerEngine(config.engine)
        self.profile = MotionProfile()

        sensor_cfg = config.sensors
        seed = sensor_cfg.get("seed")
        self.simulator = SensorSimulator(
            accel_noise_std=sensor_cfg.get("accel_noise_std", 0.02),
            gyro_noise_std=sensor_cfg.get("gyro_noise_std", 0.002),
            random_state=np.random.default_rng(seed) if seed is not None else None
        )
        self.provide_linear = bool(sensor_cfg.get("provide_linear_acceleration", False))
        self.provide_mag = bool(sensor_cfg.get("provide_magnetometer", True))

        # Threading control
        self.running = False
        self.sensor_thread = None
        self.driver_thread = None
        self.output_thread = None

        # CSV session log
        self._csv_file = None
        self._csv_writer = None

        # Statistics
        self.start_time = None
        self.phase = "rest"

    def start(self) -> bool:
        """Start the simulation threads."""
        if self.running:
            logger.warning("Simulator already running")
            return False

        if self.config.csv_file:
            self._open_csv(self.config.csv_file)

        self.start_time = time.monotonic()
        self.running = True
        self.engine.start()

        self.sensor_thread = threading.Thread(target=self._sensor_loop, daemon=True)
        self.driver_thread = threading.Thread(target=self._driver_loop, daemon=True)
        self.output_thread = threading.Thread(target=self._output_loop, daemon=True)

        self.sensor_thread.start()
        self.driver_thread.start()
        self.output_thread.start()

        logger.info("Twin timer simulator started")
        return True

    def stop(self):
        """Stop the simulation threads."""
        if not self.running:
            return

        self.running = False
        self.engine.stop()

        # Wait for threads to finish
        for thread in (self.sensor_thread, self.driver_thread, self.output_thread):
            if thread and thread.is_alive():
                thread.join(timeout=2.0)

        if self._csv_file:
            self.engine.remove_listener(self._write_csv_row)
            self._csv_file.close()
            self._csv_file = None
            self._csv_writer = None

        logger.info("Twin timer simulator stopped")

    def _open_csv(self, path: str):
        self._csv_file = open(path, "w", newline="")
        self._csv_writer = csv.writer(self._csv_file)
        self._csv_writer.writerow(CSV_HEADER)
        self.engine.add_listener(self._write_csv_row)

    def _write_csv_row(self, output: FrameOutput):
        ax, ay, az = output.acceleration_world
        self._csv_writer.writerow([
            f"{time.monotonic() - self.start_time:.4f}",
            f"{output.proper_time:.6f}",
            f"{ax:.4f}", f"{ay:.4f}", f"{az:.4f}",
            f"{output.raw_speed:.5f}",
            f"{output.effective_speed:.5f}",
            f"{output.gamma:.6f}",
            output.orientation_source,
            output.acceleration_source,
            int(output.rotation_only)
        ])

    def _sensor_loop(self):
        """Sensor event loop: only writes the engine's sensor buffer."""
        period = 1.0 / self.config.sensor_rate_hz
        sensors = self.engine.sensors
        last_time = time.monotonic()

        while self.running:
            try:
                now = time.monotonic()
                dt = now - last_time
                last_time = now

                acc_world, omega_world, self.phase = self.profile.sample(now - self.start_time)
                reading = self.simulator.measure(acc_world, omega_world, dt)

                sensors.update_angular_velocity(*reading['angular_velocity'], timestamp=now)
                sensors.update_acceleration_including_gravity(
                    *reading['acceleration_including_gravity'], timestamp=now)
                if self.provide_linear:
                    sensors.update_acceleration(*reading['acceleration'], timestamp=now)
                if self.provide_mag:
                    sensors.update_magnetic_field(*reading['magnetic_field'], timestamp=now)

                time.sleep(period)

            except Exception as e:
                logger.error(f"Sensor loop error: {e}")
                time.sleep(0.1)

    def _driver_loop(self):
        """Frame loop: the only place pipeline state is mutated."""
        period = 1.0 / self.config.tick_rate_hz

        while self.running:
            try:
                self.engine.tick(time.monotonic())
                time.sleep(period)

            except Exception as e:
                logger.error(f"Driver loop error: {e}")
                time.sleep(0.1)

    def _output_loop(self):
        """Output loop."""
        interval = 1.0 / self.config.output_rate_hz
        last_output_time = time.monotonic()

        while self.running:
            try:
                now = time.monotonic()
                if now - last_output_time >= interval:
                    self._print_status()
                    last_output_time = now
                time.sleep(0.05)

            except Exception as e:
                logger.error(f"Output loop error: {e}")
                time.sleep(1.0)

    def _print_status(self):
        """Print current engine status."""
        output = self.engine.last_output
        uptime = time.monotonic() - self.start_time
        roll, pitch, yaw = self.engine.ahrs.get_euler_angles()
        ax, ay, az = output.acceleration_world

        print(f"\n=== Twin Timer (wall {uptime:.1f}s, phase: {self.phase}) ===")
        print(f"Proper time: {output.proper_time_text}")
        print(f"Accel (world): {ax:.3f}, {ay:.3f}, {az:.3f} m/s² [{output.acceleration_source}]")
        print(f"Speed: raw {output.raw_speed:.3f} m/s, effective {output.effective_speed:.3f} m/s")
        print(f"Gamma: {output.gamma:.6f}")
        print(f"Orientation: roll {roll:.1f}°, pitch {pitch:.1f}°, yaw {yaw:.1f}° "
              f"[{output.orientation_source}, {output.sensor_status}]")

        ages = self.engine.sensors.get_statistics()['age_s']
        fresh = ", ".join(f"{name} {age * 1000:.0f} ms" for name, age in ages.items() if age is not None)
        print(f"Sensor age: {fresh or 'no readings'}")

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the twin timer against simulated sensors")
    parser.add_argument("--config", default="twin_timer.json", help="JSON configuration file")
    parser.add_argument("--duration", type=float, help="Run time in seconds (overrides config)")
    parser.add_argument("--csv", help="Write a CSV session log to this file")
    parser.add_argument("--linear", action="store_true",
                        help="Also provide gravity-free acceleration")
    parser.add_argument("--no-mag", action="store_true", help="Do not provide a magnetometer")
    parser.add_argument("--seed", type=int, help="Random seed for the sensor noise")
    parser.add_argument("--log-level", help="Logging level (overrides config)")
    parser.add_argument("--save-config", action="store_true",
                        help="Write the effective configuration back to --config")
    parser.add_argument("--show-config", action="store_true",
                        help="Print the effective configuration before starting")
    return parser.parse_args(argv)

def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = Config(args.config)

    if args.duration is not None:
        config.set("duration_s", args.duration)
    if args.csv:
        config.set("csv_file", args.csv)
    if args.linear:
        config.set("sensors.provide_linear_acceleration", True)
    if args.no_mag:
        config.set("sensors.provide_magnetometer", False)
    if args.seed is not None:
        config.set("sensors.seed", args.seed)
    if args.log_level:
        config.set("log_level", args.log_level)

    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        filename=config.log_file,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    if args.save_config:
        config.save_config()
    if args.show_config:
        config.print_config()

    print("Twin Timer Simulator")
    print("=" * 50)

    simulator = TwinTimerSimulator(config)

    def _signal_handler(signum, frame):
        print("\nShutdown signal received, stopping simulator...")
        simulator.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    if not simulator.start():
        print("Failed to start simulator")
        return 1

    try:
        deadline = time.monotonic() + config.duration_s
        while simulator.running and time.monotonic() < deadline:
            time.sleep(0.2)

    except KeyboardInterrupt:
        print("\nKeyboard interrupt received")

    finally:
        simulator.stop()

    stats = simulator.engine.get_statistics()
    print("\n=== Final Statistics ===")
    print(f"Steps: {stats['steps']}")
    print(f"Wall time: {stats['coordinate_time']:.3f} s, proper time: {stats['proper_time']:.3f} s")
    print(f"Dilation: {stats['dilation']:.6f}")
    print(f"Rotation-only steps: {stats['rotation_only_steps']}, still steps: {stats['still_steps']}")

    return 0

if __name__ == "__main__":
    sys.exit(main())
