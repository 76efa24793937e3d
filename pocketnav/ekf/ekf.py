"""
Extended Kalman Filter for handheld position estimation.

Fuses intermittent position fixes with accelerometer samples into a smoothed
position/velocity estimate, emitted on every tick once initialized.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

import numpy as np

from .state import EKFState
from .models import MotionModel, MeasurementModel
from ..errors import InvalidMeasurement
from ..math import linalg
from ..math.constants import *
from ..sensors.gps import PositionFix, gps_measurement_noise
from ..sensors.imu import InertialSample

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionConfig:
    """Position filter configuration, constant for an estimator's lifetime."""

    use_ekf: bool = True
    process_noise_position: float = Q_POSITION
    process_noise_velocity: float = Q_VELOCITY
    measurement_noise_gps: float = R_GPS
    measurement_noise_accel: float = R_ACCEL
    accel_threshold: float = ACCEL_THRESHOLD
    gps_accuracy_trust_threshold: float = GPS_TRUST_THRESHOLD_M
    gps_accuracy_poor_threshold: float = GPS_POOR_THRESHOLD_M
    accel_scale_factor: float = ACCEL_SCALE_FACTOR
    initial_covariance: float = INITIAL_COVARIANCE
    gps_velocity_blend: float = GPS_VELOCITY_BLEND
    gps_velocity_min: float = GPS_VELOCITY_MIN

    def __post_init__(self):
        if self.gps_accuracy_poor_threshold < self.gps_accuracy_trust_threshold:
            raise ValueError("gps_accuracy_poor_threshold must not be below "
                             "gps_accuracy_trust_threshold")
        if self.initial_covariance <= 0:
            raise ValueError("initial_covariance must be positive")
        if not 0.0 <= self.gps_velocity_blend <= 1.0:
            raise ValueError("gps_velocity_blend must be in [0, 1]")
        for name in ("process_noise_position", "process_noise_velocity",
                     "measurement_noise_gps", "measurement_noise_accel"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


@dataclass(frozen=True)
class PositionEstimate:
    """Fused (or passed-through) position in degrees."""

    latitude: float
    longitude: float
    filtered: bool = True


class PositionEstimator:
    """
    Position/velocity EKF fed once per tick.

    Each tick runs predict, then an optional correction from a position fix,
    then an optional correction from the accelerometer. The two corrections
    are sequential, GPS first.
    """

    def __init__(self, config: Optional[PositionConfig] = None):
        """
        Initialize the position estimator.

        Args:
            config: Filter configuration (defaults when omitted)
        """
        self.config = config or PositionConfig()

        self.motion_model = MotionModel()
        self.measurement_model = MeasurementModel()

        self.state = EKFState(covariance=self._initialize_covariance())

        # Estimator clock, accumulated from dt
        self.elapsed = 0.0
        self.last_fix: Optional[PositionFix] = None
        self.last_fix_time = 0.0
        self.last_accuracy: Optional[float] = None
        self.current_position: Optional[np.ndarray] = None

        # Statistics
        self.prediction_count = 0
        self.gps_update_count = 0
        self.accel_update_count = 0
        self.invalid_fix_count = 0
        self.regularized_count = 0

    def _initialize_covariance(self) -> np.ndarray:
        """Large initial uncertainty until the first fix arrives."""
        return linalg.scale(linalg.identity(4), self.config.initial_covariance)

    @property
    def initialized(self) -> bool:
        return self.state.initialized

    def initialize(self, first_fix: PositionFix) -> PositionEstimate:
        """
        Seed the filter from the first valid fix.

        Raises:
            InvalidMeasurement: if the fix is unusable
        """
        first_fix.validate()

        self.state = EKFState(
            lat=first_fix.latitude,
            lon=first_fix.longitude,
            covariance=self._initialize_covariance(),
            initialized=True
        )
        self._remember_fix(first_fix)

        _LOG.info("Position filter initialized: %.6f, %.6f, accuracy: %.1fm",
                  first_fix.latitude, first_fix.longitude, first_fix.horizontal_accuracy)

        return self.get_estimate()

    def tick(self, dt: float, fix: Optional[PositionFix] = None,
             inertial: Optional[InertialSample] = None) -> Optional[PositionEstimate]:
        """
        Advance the filter by one tick.

        Args:
            dt: Time since the previous tick in seconds (> 0)
            fix: New position fix, if one arrived this tick
            inertial: Accelerometer sample, None when unsupported

        Returns:
            Position estimate, or None while no position is known yet
        """
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")

        self.elapsed += dt

        if fix is not None:
            try:
                fix.validate()
            except InvalidMeasurement as exc:
                _LOG.debug("Ignoring fix: %s", exc)
                self.invalid_fix_count += 1
                fix = None

        if not self.config.use_ekf:
            return self._pass_through(fix)

        if not self.state.initialized:
            if fix is None:
                return None
            return self.initialize(fix)

        if fix is not None:
            self._blend_fix_velocity(fix)

        self.predict(dt)

        if fix is not None:
            self.update_gps(fix)
            self._remember_fix(fix)

        if inertial is not None:
            self.update_accel(inertial)

        return self.get_estimate()

    def _pass_through(self, fix: Optional[PositionFix]) -> Optional[PositionEstimate]:
        """Unfiltered mode: raw fixes are reported as they arrive."""
        if fix is None:
            return None

        self._remember_fix(fix)
        return PositionEstimate(fix.latitude, fix.longitude, filtered=False)

    def _remember_fix(self, fix: PositionFix):
        self.last_fix = fix
        self.last_fix_time = self.elapsed
        self.last_accuracy = fix.horizontal_accuracy
        self.current_position = fix.position

    def _blend_fix_velocity(self, fix: PositionFix):
        """
        Pull velocity toward the fix-to-fix velocity.

        Only trusted fixes take part; a poor fix would otherwise drag the
        estimate through the velocity term.
        """
        if (self.last_fix is None or
                self.config.gps_velocity_blend <= 0 or
                fix.horizontal_accuracy > self.config.gps_accuracy_trust_threshold):
            return

        elapsed = self.elapsed - self.last_fix_time
        if elapsed <= 0:
            return

        fix_velocity = (fix.position - self.last_fix.position) / elapsed

        # Only update velocity if movement is significant
        if np.linalg.norm(fix_velocity) > self.config.gps_velocity_min:
            blend = self.config.gps_velocity_blend
            self.state.velocity = self.state.velocity + (fix_velocity - self.state.velocity) * blend

    def predict(self, dt: float):
        """
        Prediction step: constant velocity, P = F P F^T + Q.

        Args:
            dt: Time step in seconds
        """
        self.state.state_vector = self.motion_model.predict_state(self.state.state_vector, dt)

        F = self.motion_model.jacobian_F(dt)
        Q = self.motion_model.process_noise_matrix(
            self.config.process_noise_position, self.config.process_noise_velocity, dt)

        self.state.covariance = linalg.add(
            linalg.multiply(linalg.multiply(F, self.state.covariance), linalg.transpose(F)), Q)

        self.prediction_count += 1

    def _kalman_update(self, z: np.ndarray, H: np.ndarray, R: np.ndarray):
        """Standard Kalman correction with measurement z = H x + noise."""
        x = self.state.state_vector
        P = self.state.covariance

        # Innovation (measurement residual)
        y = z - linalg.multiply_vector(H, x)

        # Innovation covariance
        S = linalg.add(linalg.multiply(linalg.multiply(H, P), linalg.transpose(H)), R)

        S_inv, regularized = linalg.regularized_inverse_2x2(S)
        if regularized:
            self.regularized_count += 1

        # Kalman gain
        K = linalg.multiply(linalg.multiply(P, linalg.transpose(H)), S_inv)

        self.state.state_vector = x + linalg.multiply_vector(K, y)
        self.state.covariance = linalg.multiply(
            linalg.subtract(linalg.identity(4), linalg.multiply(K, H)), P)

    def update_gps(self, fix: PositionFix):
        """
        Correction with a position fix, noise adapted to its accuracy.
        """
        noise = gps_measurement_noise(
            fix.horizontal_accuracy,
            self.config.measurement_noise_gps,
            self.config.gps_accuracy_trust_threshold,
            self.config.gps_accuracy_poor_threshold
        )

        H = self.measurement_model.gps_jacobian_H()
        R = self.measurement_model.measurement_noise_matrix(noise)

        self._kalman_update(fix.position, H, R)
        self.gps_update_count += 1

        _LOG.debug("GPS update: accuracy %.1fm, noise %.1f", fix.horizontal_accuracy, noise)

    def update_accel(self, inertial: InertialSample) -> bool:
        """
        Correction treating scaled horizontal acceleration as velocity.

        Returns:
            True if the sample passed the threshold and was applied
        """
        horizontal = inertial.horizontal
        if np.linalg.norm(horizontal) <= self.config.accel_threshold:
            return False

        z = horizontal * self.config.accel_scale_factor

        H = self.measurement_model.accel_jacobian_H()
        R = self.measurement_model.measurement_noise_matrix(self.config.measurement_noise_accel)

        self._kalman_update(z, H, R)
        self.accel_update_count += 1
        return True

    def get_estimate(self) -> Optional[PositionEstimate]:
        """Current position estimate, None before initialization."""
        if self.config.use_ekf:
            if not self.state.initialized:
                return None
            return PositionEstimate(self.state.lat, self.state.lon)

        if self.current_position is None:
            return None
        return PositionEstimate(float(self.current_position[0]),
                                float(self.current_position[1]), filtered=False)

    def get_uncertainty(self) -> np.ndarray:
        """Get current state uncertainty (diagonal of covariance matrix)."""
        return np.sqrt(np.diag(self.state.covariance))

    def get_position_uncertainty(self) -> float:
        """Get position uncertainty (RMS of the position variances)."""
        pos_var = self.state.covariance[0, 0] + self.state.covariance[1, 1]
        return float(np.sqrt(pos_var))

    def reset(self):
        """Drop the filter state; the next valid fix re-initializes it."""
        self.state = EKFState(covariance=self._initialize_covariance())
        self.elapsed = 0.0
        self.last_fix = None
        self.last_fix_time = 0.0
        self.last_accuracy = None
        self.current_position = None

        # Reset counters
        self.prediction_count = 0
        self.gps_update_count = 0
        self.accel_update_count = 0
        self.invalid_fix_count = 0
        self.regularized_count = 0

    def get_statistics(self) -> Dict[str, Any]:
        """Get filter statistics."""
        return {
            'initialized': self.state.initialized,
            'predictions': self.prediction_count,
            'gps_updates': self.gps_update_count,
            'accel_updates': self.accel_update_count,
            'invalid_fixes': self.invalid_fix_count,
            'regularized_inversions': self.regularized_count,
            'position_uncertainty': self.get_position_uncertainty(),
            'state_uncertainty': self.get_uncertainty().tolist()
        }
