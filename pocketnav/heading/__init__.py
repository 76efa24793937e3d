"""
Heading estimation with compass drift correction.
"""

from .estimator import HeadingEstimator, HeadingConfig, HeadingEstimate, HeadingState
from .calibration import CalibrationController, CalibrationSession, CalibrationState

__all__ = ["HeadingEstimator", "HeadingConfig", "HeadingEstimate", "HeadingState",
           "CalibrationController", "CalibrationSession", "CalibrationState"]
