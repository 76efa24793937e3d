"""
Gyro/compass heading fusion for a handheld device.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from .calibration import CalibrationController, CalibrationState
from ..math.constants import *
from ..math.utils import (normalize_angle, delta_angle, blend_angles, clamp01,
                          lerp, smooth_damp_angle)
from ..sensors.imu import MagneticSample, is_stationary

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeadingConfig:
    """Heading estimator configuration, constant for an estimator's lifetime."""

    magnetic_declination: float = MAGNETIC_DECLINATION_DEG
    min_smoothing_factor: float = MIN_SMOOTHING_FACTOR
    max_smoothing_factor: float = MAX_SMOOTHING_FACTOR
    heading_noise_threshold: float = HEADING_NOISE_THRESHOLD_DEG
    stationary_noise_threshold: float = STATIONARY_NOISE_THRESHOLD_DEG
    rotation_threshold: float = ROTATION_THRESHOLD_DPS
    calibration_threshold: float = CALIBRATION_THRESHOLD_DEG
    calibration_check_interval: int = CALIBRATION_CHECK_INTERVAL
    calibration_lerp_speed: float = CALIBRATION_LERP_SPEED
    enable_periodic_calibration: bool = True
    enable_sensor_fusion: bool = True
    compass_startup_delay: float = COMPASS_STARTUP_DELAY_S
    compass_jump_limit: float = COMPASS_JUMP_LIMIT_DEG
    forced_rotation_limit: float = FORCED_ROTATION_LIMIT_DEG
    forced_calibration_interval: float = FORCED_CALIBRATION_INTERVAL_S
    stationary_tolerance: float = STATIONARY_TOLERANCE_G
    stationary_ramp_time: float = STATIONARY_RAMP_TIME_S

    def __post_init__(self):
        if self.min_smoothing_factor > self.max_smoothing_factor:
            raise ValueError("min_smoothing_factor must not exceed max_smoothing_factor")
        if self.calibration_check_interval <= 0:
            raise ValueError("calibration_check_interval must be positive")
        if not 0.0 < self.calibration_lerp_speed <= 1.0:
            raise ValueError("calibration_lerp_speed must be in (0, 1]")
        if self.rotation_threshold <= 0 or self.stationary_ramp_time <= 0:
            raise ValueError("rotation_threshold and stationary_ramp_time must be positive")


@dataclass
class HeadingState:
    """
    Mutable heading state.

    raw_angle is the gyro-integrated angle; heading adds the live
    calibration offset that aligns it with true north.
    """

    raw_angle: float = 0.0
    rotation_since_calibration: float = 0.0
    time_since_calibration: float = 0.0
    last_compass_heading: Optional[float] = None
    offset: float = 0.0
    target_offset: float = 0.0
    progress: float = 1.0
    heading_velocity: float = 0.0
    stationary_time: float = 0.0
    calibration_state: CalibrationState = CalibrationState.UNCALIBRATED
    aligned: bool = False

    @property
    def heading(self) -> float:
        return normalize_angle(self.raw_angle + self.offset)

    @property
    def calibrated(self) -> bool:
        """
        True once an offset has been applied, so the heading is absolute.

        A first correction that is still blending reports False.
        """
        return self.aligned


@dataclass(frozen=True)
class HeadingEstimate:
    """Stabilized heading in degrees [0, 360)."""

    degrees: float
    calibrated: bool = False
    calibration_state: CalibrationState = CalibrationState.UNCALIBRATED


class HeadingEstimator:
    """
    Integrates gyroscope rate into a heading and corrects it with the compass.

    Before the first valid compass reading (after the startup delay) or a
    manual calibration the heading is relative to the start orientation.
    """

    def __init__(self, config: Optional[HeadingConfig] = None):
        self.config = config or HeadingConfig()
        self.calibration = CalibrationController(self.config)
        self.initialize()

    def initialize(self):
        """Reset to angle 0, uncalibrated."""
        self.state = HeadingState()
        self.calibration.reset(self.state)

        # Estimator clock, accumulated from dt
        self.elapsed = 0.0
        self.tick_count = 0

        # Statistics
        self.gated_count = 0
        self.missing_gyro_count = 0
        self.invalid_compass_count = 0
        self.rejected_compass_count = 0

    @property
    def heading(self) -> float:
        return self.state.heading

    @property
    def is_calibrated(self) -> bool:
        return self.state.calibrated

    def tick(self, dt: float, angular_rate: Optional[float] = None,
             inertial_magnitude: Optional[float] = None,
             compass: Optional[MagneticSample] = None) -> HeadingEstimate:
        """
        Advance the heading by one tick.

        Args:
            dt: Time since the previous tick in seconds (> 0)
            angular_rate: Gyro rate about the vertical axis (rad/s), None
                when the device has no gyroscope
            inertial_magnitude: |acceleration| in g, None without accelerometer
            compass: Compass sample, None when unavailable this tick

        Returns:
            Heading estimate
        """
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")

        self.elapsed += dt
        self.tick_count += 1

        if angular_rate is None:
            self.missing_gyro_count += 1
            angular_rate = 0.0

        if compass is not None and not compass.is_valid:
            self.invalid_compass_count += 1
            compass = None

        stationary = is_stationary(inertial_magnitude, self.config.stationary_tolerance)
        rotation = angular_rate * dt * RAD_TO_DEG

        fused = compass is not None and self.config.enable_sensor_fusion

        self.calibration.accumulate(self.state, rotation, dt)
        self._integrate(rotation, stationary, gated=not fused)

        if fused:
            self._fuse(compass, angular_rate, dt, stationary)

        compass_heading = self._accept_compass(compass)

        if (compass_heading is not None and
                self.state.calibration_state is CalibrationState.UNCALIBRATED and
                self.elapsed >= self.config.compass_startup_delay):
            self._initial_calibration(compass_heading)
        else:
            self.calibration.update(self.state, self.tick_count, compass_heading)

        return self.get_estimate()

    def _integrate(self, rotation: float, stationary: bool, gated: bool = True):
        """
        Apply the gyro rotation.

        On the gyro-only path rotations below the noise gate are dropped. When
        the compass blend follows, every rotation is applied and the blend does
        the smoothing.
        """
        if gated:
            # Use a stricter threshold when device is stationary
            threshold = (self.config.stationary_noise_threshold if stationary
                         else self.config.heading_noise_threshold)

            if abs(rotation) < threshold:
                self.gated_count += 1
                return

        self.state.raw_angle = normalize_angle(self.state.raw_angle - rotation)

    def _fuse(self, compass: MagneticSample, angular_rate: float, dt: float, stationary: bool):
        """Pull the integrated angle toward the compass with adaptive smoothing."""
        state = self.state

        # Compass heading expressed in the integrated (uncorrected) frame
        compass_raw = normalize_angle(compass.adjusted(self.config.magnetic_declination) - state.offset)

        if stationary:
            # Compass influence ramps up while the device is held still
            state.stationary_time += dt
            influence = clamp01(state.stationary_time / self.config.stationary_ramp_time)
            weight = lerp(STATIONARY_COMPASS_WEIGHT_MIN, STATIONARY_COMPASS_WEIGHT_MAX, influence)
        else:
            state.stationary_time = 0.0
            weight = MOVING_COMPASS_WEIGHT

        target = blend_angles(state.raw_angle, compass_raw, weight)

        # Fast rotation = less smoothing = quicker response
        rotation_speed = abs(angular_rate * RAD_TO_DEG)
        smoothing = lerp(
            self.config.max_smoothing_factor,
            self.config.min_smoothing_factor,
            clamp01(rotation_speed / self.config.rotation_threshold)
        )

        angle, state.heading_velocity = smooth_damp_angle(
            state.raw_angle, target, state.heading_velocity, smoothing, dt)
        state.raw_angle = normalize_angle(angle)

    def _accept_compass(self, compass: Optional[MagneticSample]) -> Optional[float]:
        """
        Filter a compass reading for calibration use.

        Readings that jump by compass_jump_limit or more from the previous
        reading are rejected for this tick.

        Returns:
            Declination-adjusted heading, or None
        """
        if compass is None:
            return None

        previous = self.state.last_compass_heading
        self.state.last_compass_heading = compass.true_heading

        if (previous is not None and
                abs(delta_angle(previous, compass.true_heading)) >= self.config.compass_jump_limit):
            self.rejected_compass_count += 1
            _LOG.warning("Rejected compass jump: %.1f -> %.1f deg", previous, compass.true_heading)
            return None

        return compass.adjusted(self.config.magnetic_declination)

    def _initial_calibration(self, compass_heading: float):
        self.calibration.apply_immediately(self.state, compass_heading - self.state.raw_angle)
        _LOG.info("Initial calibration complete. Offset: %.1f deg", self.state.offset)

    def calibrate_manually(self, compass: Optional[MagneticSample] = None) -> HeadingEstimate:
        """
        Align to the compass now, with no blending.

        Uses the given reading, or the last known compass reading. Without
        any valid reading the current direction becomes north.
        """
        state = self.state

        if compass is not None and compass.is_valid:
            state.last_compass_heading = compass.true_heading
            true_heading = compass.true_heading
        else:
            true_heading = state.last_compass_heading

        if true_heading is not None:
            compass_heading = normalize_angle(true_heading + self.config.magnetic_declination)
            self.calibration.apply_immediately(state, compass_heading - state.raw_angle)
            _LOG.info("Manual calibration using compass. Heading: %.1f deg, Offset: %.1f deg",
                      compass_heading, state.offset)
        else:
            state.raw_angle = 0.0
            self.calibration.apply_immediately(state, 0.0)
            _LOG.info("Manual calibration - current direction set as north")

        self.calibration.manual_count += 1
        return self.get_estimate()

    def set_direction(self, degrees: float) -> HeadingEstimate:
        """Declare the current heading to be `degrees`, applied immediately."""
        self.calibration.apply_immediately(self.state, degrees - self.state.raw_angle)
        self.calibration.manual_count += 1

        _LOG.info("Direction manually set to %.1f deg. Offset: %.1f deg", degrees, self.state.offset)
        return self.get_estimate()

    def get_estimate(self) -> HeadingEstimate:
        return HeadingEstimate(
            degrees=self.state.heading,
            calibrated=self.state.calibrated,
            calibration_state=self.state.calibration_state
        )

    def get_statistics(self) -> Dict[str, Any]:
        stats = {
            'ticks': self.tick_count,
            'heading': self.state.heading,
            'calibration_state': self.state.calibration_state.value,
            'gated_updates': self.gated_count,
            'missing_gyro': self.missing_gyro_count,
            'invalid_compass': self.invalid_compass_count,
            'rejected_compass': self.rejected_compass_count
        }
        stats.update(self.calibration.get_statistics())
        return stats
