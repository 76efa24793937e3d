"""
Position fixes from the device location source.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..errors import InvalidMeasurement
from ..math.constants import (NEW_FIX_EPSILON_DEG, GPS_MODERATE_INFLATION,
                              GPS_POOR_INFLATION)


@dataclass(frozen=True)
class PositionFix:
    """
    A single fix from the location source.

    Latitude and longitude are in degrees, horizontal accuracy in meters.
    A fix is consumed once by the estimator and not retained.
    """

    latitude: float
    longitude: float
    horizontal_accuracy: float
    timestamp: Optional[float] = None

    @property
    def is_valid(self) -> bool:
        """Check if the fix is usable."""
        return (math.isfinite(self.latitude) and
                math.isfinite(self.longitude) and
                -90 <= self.latitude <= 90 and
                -180 <= self.longitude <= 180 and
                math.isfinite(self.horizontal_accuracy) and
                self.horizontal_accuracy > 0)

    def validate(self) -> 'PositionFix':
        """
        Raise InvalidMeasurement unless the fix is usable.

        Returns:
            self, so the call can be chained
        """
        if not self.is_valid:
            raise InvalidMeasurement(
                f"Unusable fix: lat={self.latitude}, lon={self.longitude}, "
                f"accuracy={self.horizontal_accuracy}"
            )
        return self

    @property
    def position(self) -> np.ndarray:
        """Get position as [lat, lon] vector."""
        return np.array([self.latitude, self.longitude])


def gps_measurement_noise(accuracy: float, base_noise: float,
                          trust_threshold: float, poor_threshold: float) -> float:
    """
    Accuracy-adaptive measurement noise for a fix.

    Three trust tiers:
    - accuracy <= trust_threshold: trust the fix as reported
    - accuracy <= poor_threshold: inflate noise moderately (5x)
    - otherwise: inflate heavily (50x) so the fix barely moves the estimate

    Args:
        accuracy: Reported horizontal accuracy (meters)
        base_noise: Base GPS measurement noise
        trust_threshold: Upper bound of the trusted tier (meters)
        poor_threshold: Upper bound of the moderate tier (meters)

    Returns:
        Scalar noise used on both diagonal entries of R
    """
    if accuracy <= trust_threshold:
        return max(base_noise, accuracy)
    if accuracy <= poor_threshold:
        return max(base_noise * GPS_MODERATE_INFLATION, accuracy * GPS_MODERATE_INFLATION)
    return max(base_noise * GPS_POOR_INFLATION, accuracy * GPS_POOR_INFLATION)


class FixGate:
    """
    Detects genuinely new fixes.

    Location sources report their last fix on every poll; a fix only counts
    as new when it moved by more than NEW_FIX_EPSILON_DEG from the last one
    accepted.
    """

    def __init__(self, epsilon: float = NEW_FIX_EPSILON_DEG):
        self.epsilon = epsilon
        self.last_fix: Optional[PositionFix] = None

        # Statistics
        self.accepted_count = 0
        self.repeated_count = 0

    def accept(self, fix: PositionFix) -> bool:
        """
        Return True and remember the fix if it is new.
        """
        if self.last_fix is not None:
            distance = np.linalg.norm(fix.position - self.last_fix.position)
            if distance <= self.epsilon:
                self.repeated_count += 1
                return False

        self.last_fix = fix
        self.accepted_count += 1
        return True

    def reset(self):
        self.last_fix = None

    def get_statistics(self) -> dict:
        return {
            'accepted': self.accepted_count,
            'repeated': self.repeated_count
        }
