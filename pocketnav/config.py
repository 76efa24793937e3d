"""
Configuration manager for the handheld navigation estimators.
"""

import copy
import dataclasses
import json
import logging
import os
from typing import Dict, Any, Optional

from .ekf.ekf import PositionConfig
from .heading.estimator import HeadingConfig
from .math.constants import *

_LOG = logging.getLogger(__name__)


class Config:
    """Configuration manager for the estimators and their host."""

    DEFAULT_CONFIG = {
        # Position filter
        "position": {
            "use_ekf": True,
            "process_noise_position": Q_POSITION,
            "process_noise_velocity": Q_VELOCITY,
            "measurement_noise_gps": R_GPS,
            "measurement_noise_accel": R_ACCEL,
            "accel_threshold": ACCEL_THRESHOLD,
            "gps_accuracy_trust_threshold": GPS_TRUST_THRESHOLD_M,
            "gps_accuracy_poor_threshold": GPS_POOR_THRESHOLD_M,
            "accel_scale_factor": ACCEL_SCALE_FACTOR,
            "initial_covariance": INITIAL_COVARIANCE,
            "gps_velocity_blend": GPS_VELOCITY_BLEND,
            "gps_velocity_min": GPS_VELOCITY_MIN
        },

        # Heading fusion and calibration
        "heading": {
            "magnetic_declination": MAGNETIC_DECLINATION_DEG,
            "min_smoothing_factor": MIN_SMOOTHING_FACTOR,
            "max_smoothing_factor": MAX_SMOOTHING_FACTOR,
            "heading_noise_threshold": HEADING_NOISE_THRESHOLD_DEG,
            "stationary_noise_threshold": STATIONARY_NOISE_THRESHOLD_DEG,
            "rotation_threshold": ROTATION_THRESHOLD_DPS,
            "calibration_threshold": CALIBRATION_THRESHOLD_DEG,
            "calibration_check_interval": CALIBRATION_CHECK_INTERVAL,
            "calibration_lerp_speed": CALIBRATION_LERP_SPEED,
            "enable_periodic_calibration": True,
            "enable_sensor_fusion": True,
            "compass_startup_delay": COMPASS_STARTUP_DELAY_S,
            "compass_jump_limit": COMPASS_JUMP_LIMIT_DEG,
            "forced_rotation_limit": FORCED_ROTATION_LIMIT_DEG,
            "forced_calibration_interval": FORCED_CALIBRATION_INTERVAL_S,
            "stationary_tolerance": STATIONARY_TOLERANCE_G,
            "stationary_ramp_time": STATIONARY_RAMP_TIME_S
        },

        # Sensors present on the device
        "sensors": {
            "location": True,
            "accelerometer": True,
            "gyroscope": True,
            "compass": True
        },

        # Host startup
        "startup": {
            "fix_timeout_s": FIX_TIMEOUT_S,
            "fix_poll_interval_s": FIX_POLL_INTERVAL_S
        }
    }

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Optional path to a JSON configuration file
        """
        self.config_file = config_file
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        # Load configuration from file if it exists
        if config_file is not None:
            if os.path.exists(config_file):
                self.load_config()
            else:
                _LOG.info("Config file %s not found, using defaults", config_file)

    def load_config(self) -> bool:
        """
        Load configuration from file.

        Returns:
            True if loaded successfully
        """
        try:
            with open(self.config_file, 'r') as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            _LOG.error("Failed to load config: %s", e)
            return False

        # Merge with defaults (file config overrides defaults)
        self._merge_config(self.config, file_config)

        _LOG.info("Configuration loaded from %s", self.config_file)
        return True

    def save_config(self, config_file: Optional[str] = None) -> bool:
        """
        Save current configuration to file.

        Returns:
            True if saved successfully
        """
        path = config_file or self.config_file
        if path is None:
            raise ValueError("No config file to save to")

        try:
            with open(path, 'w') as f:
                json.dump(self.config, f, indent=2)
        except OSError as e:
            _LOG.error("Failed to save config: %s", e)
            return False

        _LOG.info("Configuration saved to %s", path)
        return True

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]):
        """Recursively merge configuration dictionaries."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default=None):
        """Get configuration value with optional default."""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """Set configuration value."""
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    @staticmethod
    def _known_fields(config_type, section: Dict[str, Any]) -> Dict[str, Any]:
        names = {f.name for f in dataclasses.fields(config_type)}
        return {k: v for k, v in section.items() if k in names}

    # Typed views consumed by the estimators
    @property
    def position_config(self) -> PositionConfig:
        return PositionConfig(**self._known_fields(PositionConfig, self.config["position"]))

    @property
    def heading_config(self) -> HeadingConfig:
        return HeadingConfig(**self._known_fields(HeadingConfig, self.config["heading"]))

    @property
    def sensors(self) -> Dict[str, bool]:
        return self.config["sensors"]

    @property
    def fix_timeout_s(self) -> float:
        return self.config["startup"]["fix_timeout_s"]

    @property
    def fix_poll_interval_s(self) -> float:
        return self.config["startup"]["fix_poll_interval_s"]

    def dumps(self) -> str:
        """Current configuration as indented JSON."""
        return json.dumps(self.config, indent=2)
