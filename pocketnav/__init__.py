"""
Position and heading estimation for handheld devices.

This module provides platform-independent implementations of:
- Extended Kalman Filter fusing position fixes with accelerometer samples
- Gyroscope/compass heading fusion with drift calibration
- A tick-driven tracker that combines both for a host application
"""

__version__ = "1.0.0"

from .ekf import PositionEstimator, PositionConfig, PositionEstimate
from .heading import HeadingEstimator, HeadingConfig, HeadingEstimate, CalibrationState
from .sensors import PositionFix, InertialSample, AngularSample, MagneticSample
from .tracker import NavigationTracker, TickResult
from .config import Config

__all__ = [
    "PositionEstimator",
    "PositionConfig",
    "PositionEstimate",
    "HeadingEstimator",
    "HeadingConfig",
    "HeadingEstimate",
    "CalibrationState",
    "PositionFix",
    "InertialSample",
    "AngularSample",
    "MagneticSample",
    "NavigationTracker",
    "TickResult",
    "Config"
]
