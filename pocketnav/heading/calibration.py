"""
Drift correction for the gyro-integrated heading.

The controller works on the HeadingState owned by HeadingEstimator. It runs
after the per-tick integration and blend, and moves the live offset between
the integrated angle and true north.

State machine:

    UNCALIBRATED -> CALIBRATING -> CALIBRATED
    CALIBRATED -> CALIBRATING      (new drift correction)
    any -> CALIBRATED              (manual or initial calibration)
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from ..math.utils import normalize_angle, delta_angle, lerp_angle

_LOG = logging.getLogger(__name__)


class CalibrationState(enum.Enum):
    UNCALIBRATED = "uncalibrated"
    CALIBRATING = "calibrating"
    CALIBRATED = "calibrated"


@dataclass
class CalibrationSession:
    """A smooth re-alignment in progress. Discarded when progress reaches 1."""

    start_offset: float
    target_offset: float
    drift: float
    forced: bool = False
    progress: float = 0.0


class CalibrationController:
    """
    Detects heading drift against the compass and corrects it.

    Corrections start from a periodic check (every
    calibration_check_interval ticks, only when drift exceeds
    calibration_threshold) or are forced after too much rotation or time
    without calibration. A started correction blends the live offset toward
    the target over several ticks; manual calibration applies at once.
    """

    def __init__(self, config):
        """
        Args:
            config: HeadingConfig
        """
        self.config = config
        self.session: Optional[CalibrationSession] = None

        # Statistics
        self.started_count = 0
        self.forced_count = 0
        self.completed_count = 0
        self.manual_count = 0

    def reset(self, state):
        self.session = None
        state.offset = 0.0
        state.target_offset = 0.0
        state.progress = 1.0
        state.calibration_state = CalibrationState.UNCALIBRATED
        state.aligned = False
        self._reset_accumulators(state)

    @staticmethod
    def _reset_accumulators(state):
        state.rotation_since_calibration = 0.0
        state.time_since_calibration = 0.0

    @staticmethod
    def accumulate(state, rotation_deg: float, dt: float):
        """Track unsigned rotation and time since the last calibration."""
        state.rotation_since_calibration += abs(rotation_deg)
        state.time_since_calibration += dt

    def update(self, state, tick_count: int, compass_heading: Optional[float]):
        """
        Run once per tick after the heading has been integrated.

        Args:
            state: HeadingState to inspect and correct
            tick_count: Ticks since the estimator was initialized
            compass_heading: Declination-adjusted compass heading, or None
                when no valid reading is available this tick
        """
        self.advance(state)

        if compass_heading is None:
            return

        if self.should_force(state):
            self.perform(state, compass_heading, check_threshold=False)
        elif (self.config.enable_periodic_calibration and
              tick_count % self.config.calibration_check_interval == 0):
            self.perform(state, compass_heading, check_threshold=True)

    def should_force(self, state) -> bool:
        """Integration error budget exhausted: too much rotation or time."""
        return (state.rotation_since_calibration > self.config.forced_rotation_limit or
                state.time_since_calibration > self.config.forced_calibration_interval)

    def perform(self, state, compass_heading: float, check_threshold: bool) -> bool:
        """
        Compare heading with the compass and start a correction if needed.

        Args:
            state: HeadingState
            compass_heading: Declination-adjusted compass heading
            check_threshold: When False the correction always starts

        Returns:
            True if a correction was started
        """
        new_offset = normalize_angle(compass_heading - state.raw_angle)
        drift = abs(delta_angle(state.heading, compass_heading))

        if check_threshold and drift <= self.config.calibration_threshold:
            return False

        self.start_correction(state, new_offset, drift, forced=not check_threshold)

        _LOG.info("Drift correction: %.1f deg. Current: %.1f deg, Compass: %.1f deg",
                  drift, state.heading, compass_heading)
        return True

    def start_correction(self, state, target_offset: float, drift: float, forced: bool = False):
        """Begin blending the live offset toward target_offset."""
        self.session = CalibrationSession(
            start_offset=state.offset,
            target_offset=target_offset,
            drift=drift,
            forced=forced
        )
        state.target_offset = target_offset
        state.progress = 0.0
        state.calibration_state = CalibrationState.CALIBRATING
        self._reset_accumulators(state)

        self.started_count += 1
        if forced:
            self.forced_count += 1

    def advance(self, state):
        """Move an in-progress correction one step toward its target."""
        if self.session is None:
            return

        session = self.session
        session.progress = min(1.0, session.progress + self.config.calibration_lerp_speed)

        state.progress = session.progress
        state.offset = lerp_angle(session.start_offset, session.target_offset, session.progress)

        if session.progress >= 1.0:
            state.offset = session.target_offset
            state.calibration_state = CalibrationState.CALIBRATED
            state.aligned = True
            self.session = None
            self.completed_count += 1
            _LOG.debug("Drift correction complete. Offset: %.1f deg", state.offset)

    def apply_immediately(self, state, target_offset: float):
        """Manual or initial calibration: no blending."""
        self.session = None
        state.target_offset = normalize_angle(target_offset)
        state.offset = state.target_offset
        state.progress = 1.0
        state.calibration_state = CalibrationState.CALIBRATED
        state.aligned = True
        self._reset_accumulators(state)

    def get_statistics(self) -> Dict[str, Any]:
        return {
            'corrections_started': self.started_count,
            'corrections_forced': self.forced_count,
            'corrections_completed': self.completed_count,
            'manual_calibrations': self.manual_count,
            'in_progress': self.session is not None
        }
