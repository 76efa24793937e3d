"""
Extended Kalman Filter for handheld position estimation.
"""

from .ekf import PositionEstimator, PositionConfig, PositionEstimate
from .state import EKFState
from .models import MotionModel, MeasurementModel

__all__ = ["PositionEstimator", "PositionConfig", "PositionEstimate", "EKFState",
           "MotionModel", "MeasurementModel"]
