"""
Motion and measurement models for the position filter.
"""

import numpy as np

from ..math import linalg


class MotionModel:
    """
    Constant velocity motion model.

    State: [lat, lon, vel_lat, vel_lon]
    """

    @staticmethod
    def predict_state(state: np.ndarray, dt: float) -> np.ndarray:
        """
        Predict next state using motion model.

        Args:
            state: Current state [lat, lon, vel_lat, vel_lon]
            dt: Time step in seconds

        Returns:
            Predicted state vector
        """
        lat, lon, vel_lat, vel_lon = state

        return np.array([lat + vel_lat * dt, lon + vel_lon * dt, vel_lat, vel_lon])

    @staticmethod
    def jacobian_F(dt: float) -> np.ndarray:
        """
        State transition matrix: identity with dt in the position/velocity
        cross terms.

        Args:
            dt: Time step

        Returns:
            4x4 matrix F
        """
        F = linalg.identity(4)

        F[0, 2] = dt  # dlat/dvel_lat
        F[1, 3] = dt  # dlon/dvel_lon

        return F

    @staticmethod
    def process_noise_matrix(q_position: float, q_velocity: float, dt: float) -> np.ndarray:
        """
        Diagonal process noise covariance, scaled by dt.

        Args:
            q_position: Position process noise
            q_velocity: Velocity process noise
            dt: Time step

        Returns:
            4x4 process noise covariance matrix Q
        """
        return np.diag([
            q_position * dt,
            q_position * dt,
            q_velocity * dt,
            q_velocity * dt
        ])


class MeasurementModel:
    """
    Measurement models for position fixes and accelerometer samples.
    """

    @staticmethod
    def gps_jacobian_H() -> np.ndarray:
        """
        A fix observes position directly.

        Returns:
            2x4 matrix H for GPS
        """
        H = np.zeros((2, 4))
        H[0, 0] = 1.0
        H[1, 1] = 1.0
        return H

    @staticmethod
    def accel_jacobian_H() -> np.ndarray:
        """
        Scaled horizontal acceleration is treated as a noisy observation of
        velocity.

        Returns:
            2x4 matrix H for the accelerometer
        """
        H = np.zeros((2, 4))
        H[0, 2] = 1.0
        H[1, 3] = 1.0
        return H

    @staticmethod
    def measurement_noise_matrix(noise: float) -> np.ndarray:
        """
        Isotropic 2x2 measurement noise covariance R.
        """
        if noise < 0:
            raise ValueError(f"Measurement noise must be non-negative, got {noise}")
        return np.diag([noise, noise])
