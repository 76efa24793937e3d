"""
Position filter state representation.
"""

import numpy as np
from dataclasses import dataclass, field

from ..math.constants import INITIAL_COVARIANCE


def _initial_covariance() -> np.ndarray:
    return np.eye(4) * INITIAL_COVARIANCE


@dataclass
class EKFState:
    """
    Represents the position filter state.

    State vector: [lat, lon, vel_lat, vel_lon]
    - lat, lon: Position in degrees
    - vel_lat, vel_lon: Velocity in degrees/second

    The covariance starts at large uncertainty and the state is only
    meaningful once initialized from the first valid fix.
    """

    # Position (degrees)
    lat: float = 0.0
    lon: float = 0.0

    # Velocity (degrees/second)
    vel_lat: float = 0.0
    vel_lon: float = 0.0

    covariance: np.ndarray = field(default_factory=_initial_covariance)
    initialized: bool = False

    @property
    def state_vector(self) -> np.ndarray:
        """Get state as numpy vector."""
        return np.array([
            self.lat,
            self.lon,
            self.vel_lat,
            self.vel_lon
        ])

    @state_vector.setter
    def state_vector(self, vector: np.ndarray):
        """Set state from numpy vector."""
        if len(vector) != 4:
            raise ValueError("State vector must have 4 elements")

        self.lat = float(vector[0])
        self.lon = float(vector[1])
        self.vel_lat = float(vector[2])
        self.vel_lon = float(vector[3])

    @property
    def position(self) -> np.ndarray:
        """Get position as [lat, lon] vector."""
        return np.array([self.lat, self.lon])

    @property
    def velocity(self) -> np.ndarray:
        """Get velocity as [vel_lat, vel_lon] vector."""
        return np.array([self.vel_lat, self.vel_lon])

    @velocity.setter
    def velocity(self, vector: np.ndarray):
        self.vel_lat = float(vector[0])
        self.vel_lon = float(vector[1])

    def copy(self) -> 'EKFState':
        """Create a copy of the state."""
        return EKFState(
            lat=self.lat,
            lon=self.lon,
            vel_lat=self.vel_lat,
            vel_lon=self.vel_lon,
            covariance=self.covariance.copy(),
            initialized=self.initialized
        )

    def __str__(self) -> str:
        return (
            f"EKFState(pos=[{self.lat:.6f}, {self.lon:.6f}], "
            f"vel=[{self.vel_lat:.2e}, {self.vel_lon:.2e}], "
            f"initialized={self.initialized})"
        )
