"""
Configuration manager for the twin timer simulator host.

The JSON file holds an "engine" section (any EngineConfig field, snake_case
or camelCase) plus host timing, sensor simulation and logging settings.
Keys missing from the file keep their defaults.
"""

import copy
import json
import logging
import os
from typing import Dict, Any, Optional

from twin_timer.config import EngineConfig

logger = logging.getLogger(__name__)

# Host settings that must be positive
_POSITIVE_KEYS = ("tick_rate_hz", "sensor_rate_hz", "output_rate_hz", "duration_s")

class Config:
    """Simulator host configuration backed by a JSON file."""

    DEFAULT_CONFIG = {
        # Pipeline parameters (see twin_timer.config.EngineConfig)
        "engine": EngineConfig().to_dict(),

        # Host timing
        "tick_rate_hz": 60.0,
        "sensor_rate_hz": 100.0,
        "duration_s": 20.0,
        "output_rate_hz": 1.0,

        # Sensor simulation
        "sensors": {
            "provide_linear_acceleration": False,
            "provide_magnetometer": True,
            "accel_noise_std": 0.02,
            "gyro_noise_std": 0.002,
            "seed": None
        },

        # Logging and session recording
        "log_level": "INFO",
        "log_file": None,
        "csv_file": None
    }

    def __init__(self, config_file: Optional[str] = "twin_timer.json"):
        """
        Args:
            config_file: JSON file to read; defaults are used when it is missing
        """
        self.config_file = config_file
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file and os.path.exists(config_file):
            self.load_config()
        else:
            logger.info(f"Config file {config_file} not found, using defaults")

    def load_config(self) -> bool:
        """
        Merge the JSON file over the current settings.

        Returns:
            True if the file was read
        """
        try:
            with open(self.config_file, 'r') as f:
                overrides = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load config {self.config_file}: {e}")
            return False

        if not isinstance(overrides, dict):
            logger.error(f"Config {self.config_file} is not a JSON object, ignoring it")
            return False

        _deep_merge(self.config, overrides)
        self._check_rates()
        logger.info(f"Configuration loaded from {self.config_file}")
        return True

    def save_config(self) -> bool:
        """
        Write the settings in effect to the JSON file.

        Returns:
            True if the file was written
        """
        try:
            with open(self.config_file, 'w') as f:
                json.dump(self.config, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save config {self.config_file}: {e}")
            return False

        logger.info(f"Configuration saved to {self.config_file}")
        return True

    def _check_rates(self):
        for key in _POSITIVE_KEYS:
            value = self.config.get(key)
            if not isinstance(value, (int, float)) or not value > 0:
                default = self.DEFAULT_CONFIG[key]
                logger.warning(f"Invalid {key}={value!r}, using default {default}")
                self.config[key] = default

    def get(self, key: str, default=None):
        """Look up a dotted key such as 'sensors.seed'."""
        node = self.config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any):
        """Set a dotted key, creating intermediate sections as needed."""
        *sections, leaf = key.split('.')
        node = self.config
        for part in sections:
            node = node.setdefault(part, {})
        node[leaf] = value

    @property
    def engine(self) -> EngineConfig:
        """Validated engine parameters."""
        return EngineConfig.from_dict(self.config["engine"])

    @property
    def tick_rate_hz(self) -> float:
        return self.config["tick_rate_hz"]

    @property
    def sensor_rate_hz(self) -> float:
        return self.config["sensor_rate_hz"]

    @property
    def duration_s(self) -> float:
        return self.config["duration_s"]

    @property
    def output_rate_hz(self) -> float:
        return self.config["output_rate_hz"]

    @property
    def sensors(self) -> Dict[str, Any]:
        return self.config["sensors"]

    @property
    def log_level(self) -> str:
        return self.config["log_level"]

    @property
    def log_file(self):
        return self.config["log_file"]

    @property
    def csv_file(self):
        return self.config["csv_file"]

    def print_config(self):
        """Print current configuration."""
        print("=== Twin Timer Simulator Configuration ===")
        print(json.dumps(self.config, indent=2))

def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]):
    """Merge overrides into base in place, descending into nested sections."""
    for key, value in overrides.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
