"""
Error taxonomy for the estimators.

None of these are fatal: the estimators absorb them locally and only the
host-facing startup wait lets InitializationTimeout escape.
"""


class EstimatorError(Exception):
    """Base class for estimator faults."""


class SensorUnavailable(EstimatorError):
    """The device lacks a gyroscope, accelerometer or compass."""


class InvalidMeasurement(EstimatorError):
    """A sample that must be ignored (compass sentinel 0, fix accuracy <= 0)."""


class NumericalSingularity(EstimatorError):
    """Covariance inverse with a near-zero determinant."""


class InitializationTimeout(EstimatorError):
    """No usable position fix arrived within the startup wait."""
