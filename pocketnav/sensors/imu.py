"""
Inertial, angular-rate and magnetic samples from the handheld device.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..errors import InvalidMeasurement, SensorUnavailable
from ..math.constants import GRAVITY_G, STATIONARY_TOLERANCE_G
from ..math.utils import normalize_angle

# Compass readings of exactly this value mean "no reading"
COMPASS_SENTINEL = 0.0


@dataclass(frozen=True)
class InertialSample:
    """Accelerometer sample in g-units (device frame)."""

    accel_x: float
    accel_y: float
    accel_z: float

    timestamp: Optional[float] = None

    @classmethod
    def from_vector(cls, vector: Sequence[float],
                    timestamp: Optional[float] = None) -> 'InertialSample':
        if len(vector) != 3:
            raise ValueError("Acceleration vector must have 3 elements")
        return cls(float(vector[0]), float(vector[1]), float(vector[2]), timestamp)

    @property
    def acceleration(self) -> np.ndarray:
        """Get acceleration as numpy array."""
        return np.array([self.accel_x, self.accel_y, self.accel_z])

    @property
    def magnitude(self) -> float:
        return float(np.linalg.norm(self.acceleration))

    @property
    def horizontal(self) -> np.ndarray:
        """
        Horizontal acceleration [x, z].

        With the device held upright the y axis carries gravity, so x and z
        span the horizontal plane.
        """
        return np.array([self.accel_x, self.accel_z])


@dataclass(frozen=True)
class AngularSample:
    """Gyroscope rate about the vertical axis (rad/s, signed)."""

    rate: float
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class MagneticSample:
    """
    Compass true heading in degrees [0, 360).

    A reading of exactly 0 is the platform's "no reading" sentinel. This
    makes a genuine true-north reading indistinguishable from a missing one;
    the ambiguity is kept on purpose.
    """

    true_heading: float
    timestamp: Optional[float] = None

    @property
    def is_valid(self) -> bool:
        return (math.isfinite(self.true_heading) and
                self.true_heading != COMPASS_SENTINEL)

    def validate(self) -> 'MagneticSample':
        if not self.is_valid:
            raise InvalidMeasurement(f"No compass reading ({self.true_heading})")
        return self

    def adjusted(self, declination: float) -> float:
        """True heading corrected for magnetic declination, in [0, 360)."""
        return normalize_angle(self.true_heading + declination)


def is_stationary(inertial_magnitude: Optional[float],
                  tolerance: float = STATIONARY_TOLERANCE_G) -> bool:
    """
    Check if the device appears to be held still.

    Without accelerometer data the device is assumed stationary.

    Args:
        inertial_magnitude: |acceleration| in g, or None when unavailable
        tolerance: Allowed deviation from 1 g

    Returns:
        True if the device appears stationary
    """
    if inertial_magnitude is None:
        return True
    return abs(inertial_magnitude - GRAVITY_G) < tolerance


@dataclass
class SensorAvailability:
    """Which sensors the device provides."""

    location: bool = True
    accelerometer: bool = True
    gyroscope: bool = True
    compass: bool = True

    def require(self, sensor: str):
        """
        Raises:
            SensorUnavailable: if the named sensor is missing
        """
        if not getattr(self, sensor, False):
            raise SensorUnavailable(f"No {sensor} found on device")

    def available(self, sensor: str) -> bool:
        return bool(getattr(self, sensor, False))
