"""
Sensor sample types.
"""

from .imu import (InertialSample, AngularSample, MagneticSample,
                  SensorAvailability, is_stationary)
from .gps import PositionFix, FixGate, gps_measurement_noise

__all__ = ["InertialSample", "AngularSample", "MagneticSample", "SensorAvailability",
           "is_stationary", "PositionFix", "FixGate", "gps_measurement_noise"]
