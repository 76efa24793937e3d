"""
Host-facing navigation tracker.

Owns one position estimator and one heading estimator, ticks both once per
host frame and hands the estimates to registered observers. The host is
responsible for calling tick sequentially; nothing here spawns threads.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

from .config import Config
from .ekf.ekf import PositionEstimator, PositionEstimate
from .errors import InitializationTimeout, SensorUnavailable
from .heading.estimator import HeadingEstimator, HeadingEstimate
from .sensors.gps import PositionFix, FixGate
from .sensors.imu import InertialSample, AngularSample, MagneticSample, SensorAvailability

_LOG = logging.getLogger(__name__)

PositionObserver = Callable[[PositionEstimate], None]
HeadingObserver = Callable[[HeadingEstimate], None]


@dataclass(frozen=True)
class TickResult:
    """Estimates produced by one tick. position is None until a fix is known."""

    position: Optional[PositionEstimate]
    heading: HeadingEstimate


class NavigationTracker:
    """Combines position and heading estimation for a handheld device."""

    def __init__(self, config: Optional[Config] = None,
                 sensors: Optional[SensorAvailability] = None):
        """
        Initialize the tracker.

        Args:
            config: Configuration (defaults when omitted)
            sensors: Sensors present on the device (from config when omitted)
        """
        self.config = config or Config()
        self.sensors = sensors or SensorAvailability(**self.config.sensors)

        self.position = PositionEstimator(self.config.position_config)
        self.heading = HeadingEstimator(self.config.heading_config)
        self.fix_gate = FixGate()

        self._position_observers: List[PositionObserver] = []
        self._heading_observers: List[HeadingObserver] = []
        self._reported_missing = set()

        self.running = False
        self.last_result: Optional[TickResult] = None
        self.tick_count = 0

    # Observers

    def subscribe_position(self, callback: PositionObserver):
        if callback not in self._position_observers:
            self._position_observers.append(callback)

    def unsubscribe_position(self, callback: PositionObserver):
        if callback in self._position_observers:
            self._position_observers.remove(callback)

    def subscribe_heading(self, callback: HeadingObserver):
        if callback not in self._heading_observers:
            self._heading_observers.append(callback)

    def unsubscribe_heading(self, callback: HeadingObserver):
        if callback in self._heading_observers:
            self._heading_observers.remove(callback)

    # Lifecycle

    def wait_for_first_fix(self, poll: Callable[[], Optional[PositionFix]],
                           timeout_s: Optional[float] = None,
                           poll_interval_s: Optional[float] = None,
                           sleep: Callable[[float], None] = time.sleep,
                           clock: Callable[[], float] = time.monotonic) -> PositionFix:
        """
        Block until the location source yields a usable fix.

        Args:
            poll: Returns the location source's current fix, or None
            timeout_s: Bounded wait (config startup.fix_timeout_s by default)
            poll_interval_s: Delay between polls
            sleep: Sleep function
            clock: Monotonic clock

        Returns:
            The first valid fix

        Raises:
            SensorUnavailable: if the device has no location source
            InitializationTimeout: if no valid fix arrived in time
        """
        self.sensors.require("location")

        if timeout_s is None:
            timeout_s = self.config.fix_timeout_s
        if poll_interval_s is None:
            poll_interval_s = self.config.fix_poll_interval_s

        deadline = clock() + timeout_s

        while True:
            fix = poll()
            if fix is not None and fix.is_valid:
                return fix

            remaining = deadline - clock()
            if remaining <= 0:
                raise InitializationTimeout(
                    f"No usable position fix within {timeout_s:.0f}s")

            _LOG.info("Waiting for location services... %.0fs remaining", remaining)
            sleep(min(poll_interval_s, remaining))

    def start(self, first_fix: Optional[PositionFix] = None):
        """
        Start tracking, optionally seeding the position filter.

        Raises:
            InvalidMeasurement: if first_fix is unusable
        """
        if self.running:
            _LOG.warning("Tracker already running")
            return

        if first_fix is not None:
            self.position.initialize(first_fix)
            self.fix_gate.accept(first_fix)

        for sensor in ("location", "accelerometer", "gyroscope", "compass"):
            if not self.sensors.available(sensor):
                _LOG.warning("No %s found on device", sensor)

        self.running = True
        _LOG.info("Navigation tracker started")

    def stop(self):
        """Stop tracking and drop all observers. State is kept."""
        if not self.running:
            return

        self.running = False
        self._position_observers.clear()
        self._heading_observers.clear()
        _LOG.info("Navigation tracker stopped")

    # Per-tick work

    def _sample(self, sensor: str, value):
        """Drop samples from sensors the device lacks."""
        if value is None:
            return None

        try:
            self.sensors.require(sensor)
        except SensorUnavailable as exc:
            if sensor not in self._reported_missing:
                _LOG.warning("%s; ignoring its samples", exc)
                self._reported_missing.add(sensor)
            return None

        return value

    def tick(self, dt: float,
             fix: Optional[PositionFix] = None,
             acceleration: Union[InertialSample, Sequence[float], None] = None,
             angular_rate: Union[AngularSample, float, None] = None,
             magnetic_heading: Union[MagneticSample, float, None] = None) -> TickResult:
        """
        Run one tick of both estimators and notify observers.

        Args:
            dt: Seconds since the previous tick (> 0)
            fix: Latest fix from the location source; repeats are ignored
            acceleration: Accelerometer sample or 3-vector in g
            angular_rate: Gyro rate about the vertical axis (rad/s)
            magnetic_heading: Compass true heading (degrees, 0 = no reading)

        Returns:
            TickResult with both estimates
        """
        if not self.running:
            raise RuntimeError("Navigation tracker not started")

        fix = self._sample("location", fix)
        if fix is not None and fix.is_valid and not self.fix_gate.accept(fix):
            fix = None

        acceleration = self._sample("accelerometer", acceleration)
        if acceleration is not None and not isinstance(acceleration, InertialSample):
            acceleration = InertialSample.from_vector(acceleration)

        angular_rate = self._sample("gyroscope", angular_rate)
        if isinstance(angular_rate, AngularSample):
            angular_rate = angular_rate.rate

        magnetic_heading = self._sample("compass", magnetic_heading)
        if magnetic_heading is not None and not isinstance(magnetic_heading, MagneticSample):
            magnetic_heading = MagneticSample(float(magnetic_heading))

        position = self.position.tick(dt, fix, acceleration)
        heading = self.heading.tick(
            dt,
            angular_rate,
            acceleration.magnitude if acceleration is not None else None,
            magnetic_heading
        )

        result = TickResult(position, heading)
        self.last_result = result
        self.tick_count += 1

        if position is not None:
            for callback in list(self._position_observers):
                callback(position)

        for callback in list(self._heading_observers):
            callback(heading)

        return result

    def calibrate_to_north(self) -> HeadingEstimate:
        """Manual compass calibration using the last known reading."""
        return self.heading.calibrate_manually()

    def set_direction(self, degrees: float) -> HeadingEstimate:
        return self.heading.set_direction(degrees)

    def get_statistics(self) -> dict:
        return {
            'ticks': self.tick_count,
            'running': self.running,
            'position': self.position.get_statistics(),
            'heading': self.heading.get_statistics(),
            'fixes': self.fix_gate.get_statistics()
        }
