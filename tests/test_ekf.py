#!/usr/bin/env python3
"""
Unit tests for the position Extended Kalman Filter.
"""

import unittest
import numpy as np
import sys
import os

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from pocketnav.ekf import (PositionEstimator, PositionConfig, PositionEstimate,
                           EKFState, MotionModel, MeasurementModel)
from pocketnav.errors import InvalidMeasurement
from pocketnav.sensors import PositionFix, InertialSample, gps_measurement_noise

METERS_PER_DEG_LAT = 111320.0


class TestEKFState(unittest.TestCase):
    """Test EKFState class."""

    def test_initial_state(self):
        state = EKFState()

        self.assertFalse(state.initialized)
        np.testing.assert_array_equal(state.covariance, np.eye(4) * 100.0)

    def test_state_vector_property(self):
        state = EKFState(lat=1.0, lon=2.0, vel_lat=3.0, vel_lon=4.0)

        np.testing.assert_array_equal(state.state_vector, [1.0, 2.0, 3.0, 4.0])

        state.state_vector = np.array([10.0, 20.0, 30.0, 40.0])
        self.assertEqual(state.lat, 10.0)
        self.assertEqual(state.vel_lon, 40.0)

        with self.assertRaises(ValueError):
            state.state_vector = np.zeros(6)

    def test_copy(self):
        original = EKFState(lat=1.0, lon=2.0)
        copy = original.copy()

        copy.lat = 100.0
        copy.covariance[0, 0] = 1.0

        self.assertEqual(original.lat, 1.0)
        self.assertEqual(original.covariance[0, 0], 100.0)


class TestModels(unittest.TestCase):
    """Test motion and measurement models."""

    def test_predict_state_constant_velocity(self):
        state = np.array([53.0, -6.0, 0.001, -0.002])

        predicted = MotionModel.predict_state(state, 2.0)

        np.testing.assert_allclose(predicted, [53.002, -6.004, 0.001, -0.002])

    def test_jacobian_F(self):
        F = MotionModel.jacobian_F(0.5)

        expected = np.eye(4)
        expected[0, 2] = 0.5
        expected[1, 3] = 0.5
        np.testing.assert_array_equal(F, expected)

    def test_process_noise_scales_with_dt(self):
        Q = MotionModel.process_noise_matrix(0.1, 0.2, 0.5)

        np.testing.assert_allclose(Q, np.diag([0.05, 0.05, 0.1, 0.1]))

    def test_jacobians_H(self):
        H_gps = MeasurementModel.gps_jacobian_H()
        H_accel = MeasurementModel.accel_jacobian_H()

        np.testing.assert_array_equal(H_gps, [[1, 0, 0, 0], [0, 1, 0, 0]])
        np.testing.assert_array_equal(H_accel, [[0, 0, 1, 0], [0, 0, 0, 1]])

    def test_measurement_noise_matrix(self):
        np.testing.assert_array_equal(MeasurementModel.measurement_noise_matrix(5.0),
                                      np.diag([5.0, 5.0]))
        with self.assertRaises(ValueError):
            MeasurementModel.measurement_noise_matrix(-1.0)


class TestGpsNoiseTiers(unittest.TestCase):
    """Accuracy-adaptive measurement noise."""

    def test_trusted_tier(self):
        self.assertEqual(gps_measurement_noise(3.0, 5.0, 5.0, 15.0), 5.0)
        self.assertEqual(gps_measurement_noise(5.0, 4.0, 5.0, 15.0), 5.0)

    def test_moderate_tier(self):
        self.assertEqual(gps_measurement_noise(10.0, 5.0, 5.0, 15.0), 50.0)
        self.assertEqual(gps_measurement_noise(15.0, 5.0, 5.0, 15.0), 75.0)

    def test_poor_tier(self):
        self.assertEqual(gps_measurement_noise(50.0, 5.0, 5.0, 15.0), 2500.0)
        self.assertEqual(gps_measurement_noise(16.0, 20.0, 5.0, 15.0), 1000.0)


class TestPositionEstimator(unittest.TestCase):
    """Test PositionEstimator class."""

    def setUp(self):
        self.estimator = PositionEstimator()
        self.first_fix = PositionFix(53.3490, -6.2600, 3.0)

    def test_uninitialized_emits_nothing(self):
        self.assertIsNone(self.estimator.tick(1.0))
        self.assertIsNone(self.estimator.tick(1.0, inertial=InertialSample(0.5, -1.0, 0.5)))
        self.assertFalse(self.estimator.initialized)

    def test_first_valid_fix_initializes(self):
        estimate = self.estimator.tick(1.0, self.first_fix)

        self.assertTrue(self.estimator.initialized)
        self.assertEqual(estimate, PositionEstimate(53.3490, -6.2600))
        np.testing.assert_array_equal(self.estimator.state.velocity, [0.0, 0.0])
        np.testing.assert_array_equal(self.estimator.state.covariance, np.eye(4) * 100.0)
        self.assertEqual(self.estimator.prediction_count, 0)

    def test_initialize_rejects_invalid_fix(self):
        with self.assertRaises(InvalidMeasurement):
            self.estimator.initialize(PositionFix(53.0, -6.0, 0.0))
        self.assertFalse(self.estimator.initialized)

    def test_invalid_fix_ignored_in_tick(self):
        self.estimator.tick(1.0, self.first_fix)
        before = self.estimator.state.position

        self.estimator.tick(1.0, PositionFix(54.0, -7.0, 0.0))

        np.testing.assert_allclose(self.estimator.state.position, before)
        self.assertEqual(self.estimator.invalid_fix_count, 1)
        self.assertEqual(self.estimator.gps_update_count, 0)

    def test_non_positive_dt_rejected(self):
        with self.assertRaises(ValueError):
            self.estimator.tick(0.0)

    def test_dead_reckoning(self):
        """Without fixes position advances by velocity * N * dt."""
        self.estimator.initialize(self.first_fix)
        self.estimator.state.velocity = np.array([0.0001, -0.0002])
        prior = self.estimator.state.position

        n, dt = 25, 0.2
        for _ in range(n):
            estimate = self.estimator.tick(dt)
            self.assertIsNotNone(estimate)

        expected = prior + np.array([0.0001, -0.0002]) * n * dt
        np.testing.assert_allclose(self.estimator.state.position, expected, rtol=0, atol=1e-12)
        self.assertEqual(self.estimator.prediction_count, n)

    def test_covariance_grows_without_fixes(self):
        self.estimator.initialize(self.first_fix)
        before = self.estimator.get_position_uncertainty()

        self.estimator.tick(1.0)

        self.assertGreater(self.estimator.get_position_uncertainty(), before)

    def test_fix_sequence_estimates_velocity(self):
        """Three fixes 0.0001 deg apart at dt=1 give velocity near 0.0001 deg/s."""
        fixes = [
            PositionFix(53.3490, -6.2600, 3.0),
            PositionFix(53.3491, -6.2599, 3.0),
            PositionFix(53.3492, -6.2598, 3.0),
        ]
        for fix in fixes:
            self.estimator.tick(1.0, fix)

        velocity = self.estimator.state.velocity
        for component in velocity:
            self.assertGreater(component, 0.00008)
            self.assertLess(component, 0.00012)

    def test_velocity_converges_on_straight_line(self):
        for i in range(15):
            self.estimator.tick(1.0, PositionFix(53.3490 + 0.0001 * i, -6.2600 + 0.0001 * i, 3.0))

        np.testing.assert_allclose(self.estimator.state.velocity, [0.0001, 0.0001], rtol=0.1)

    def test_poor_fix_barely_perturbs(self):
        for i in range(3):
            self.estimator.tick(1.0, PositionFix(53.3490 + 0.0001 * i, -6.2600 + 0.0001 * i, 3.0))

        reference = PositionEstimator()
        for i in range(3):
            reference.tick(1.0, PositionFix(53.3490 + 0.0001 * i, -6.2600 + 0.0001 * i, 3.0))

        trusted = PositionEstimator()
        for i in range(3):
            trusted.tick(1.0, PositionFix(53.3490 + 0.0001 * i, -6.2600 + 0.0001 * i, 3.0))

        offset = 0.001
        reference.tick(1.0)
        self.estimator.tick(1.0, PositionFix(53.3493 + offset, -6.2597, 50.0))
        trusted.tick(1.0, PositionFix(53.3493 + offset, -6.2597, 3.0))

        poor_shift = self.estimator.state.lat - reference.state.lat
        trusted_shift = trusted.state.lat - reference.state.lat

        self.assertLess(abs(poor_shift), 0.02 * offset)
        self.assertGreater(trusted_shift, 0.5 * offset)

    def test_stationary_convergence(self):
        """Position variance shrinks tick over tick and the estimate settles on the truth."""
        rng = np.random.default_rng(42)
        true_lat, true_lon = 53.3490, -6.2600
        accuracy = 3.0
        sigma_deg = (accuracy / 3.0) / METERS_PER_DEG_LAT

        variances = []
        for _ in range(40):
            fix = PositionFix(true_lat + rng.normal(0, sigma_deg),
                              true_lon + rng.normal(0, sigma_deg), accuracy)
            self.estimator.tick(1.0, fix)
            variances.append(self.estimator.state.covariance[0, 0])

        for earlier, later in zip(variances[:10], variances[1:11]):
            self.assertLess(later, earlier)
        for earlier, later in zip(variances[10:], variances[11:]):
            self.assertLessEqual(later, earlier * (1 + 1e-9))

        error_m = np.hypot(self.estimator.state.lat - true_lat,
                           self.estimator.state.lon - true_lon) * METERS_PER_DEG_LAT
        self.assertLess(error_m, accuracy)

    def test_repeated_fix_is_idempotent_once_converged(self):
        self.estimator.tick(1.0, self.first_fix)
        target = PositionFix(53.3500, -6.2590, 3.0)

        for _ in range(200):
            self.estimator.tick(1.0, target)

        before = self.estimator.state.position
        self.estimator.tick(1.0, target)

        self.assertLess(np.max(np.abs(self.estimator.state.position - before)), 1e-10)
        np.testing.assert_allclose(self.estimator.state.position, target.position, atol=1e-9)

    def test_accel_update_applied_above_threshold(self):
        self.estimator.tick(1.0, self.first_fix)

        self.estimator.tick(0.1, inertial=InertialSample(0.5, -1.0, 0.0))

        self.assertEqual(self.estimator.accel_update_count, 1)
        # Velocity pulled toward the scaled acceleration (5e-7 deg/s north)
        self.assertGreater(self.estimator.state.vel_lat, 0.0)
        self.assertLessEqual(self.estimator.state.vel_lat, 5e-7)

    def test_accel_update_skipped_below_threshold(self):
        self.estimator.tick(1.0, self.first_fix)

        self.estimator.tick(0.1, inertial=InertialSample(0.01, -1.0, 0.01))

        self.assertEqual(self.estimator.accel_update_count, 0)
        self.assertEqual(self.estimator.prediction_count, 1)

    def test_gps_then_accel_in_same_tick(self):
        self.estimator.tick(1.0, self.first_fix)

        self.estimator.tick(1.0, PositionFix(53.3491, -6.2599, 3.0), InertialSample(0.5, -1.0, 0.5))

        self.assertEqual(self.estimator.gps_update_count, 1)
        self.assertEqual(self.estimator.accel_update_count, 1)

    def test_pass_through_when_ekf_disabled(self):
        estimator = PositionEstimator(PositionConfig(use_ekf=False))

        estimate = estimator.tick(1.0, PositionFix(53.3491, -6.2599, 40.0))
        self.assertEqual(estimate, PositionEstimate(53.3491, -6.2599, filtered=False))

        # No fix, nothing new to report
        self.assertIsNone(estimator.tick(1.0))
        self.assertEqual(estimator.prediction_count, 0)

    def test_config_validation(self):
        with self.assertRaises(ValueError):
            PositionConfig(gps_accuracy_trust_threshold=20.0, gps_accuracy_poor_threshold=10.0)
        with self.assertRaises(ValueError):
            PositionConfig(gps_velocity_blend=1.5)

    def test_get_statistics(self):
        self.estimator.tick(1.0, self.first_fix)
        self.estimator.tick(1.0, PositionFix(53.3491, -6.2599, 3.0))

        stats = self.estimator.get_statistics()

        self.assertTrue(stats['initialized'])
        self.assertEqual(stats['predictions'], 1)
        self.assertEqual(stats['gps_updates'], 1)
        self.assertEqual(stats['regularized_inversions'], 0)
        self.assertIsInstance(stats['position_uncertainty'], float)
        self.assertEqual(len(stats['state_uncertainty']), 4)

    def test_singular_innovation_is_regularized(self):
        """Noise-free accelerometer updates collapse the velocity block of S."""
        estimator = PositionEstimator(PositionConfig(measurement_noise_accel=0.0,
                                                     process_noise_velocity=0.0))
        estimator.tick(1.0, self.first_fix)
        moving = InertialSample(0.5, -1.0, 0.5)

        # First update drives the velocity variance to zero
        estimator.tick(0.1, inertial=moving)
        self.assertEqual(estimator.regularized_count, 0)

        with self.assertLogs('pocketnav.math.linalg', level='WARNING'):
            estimate = estimator.tick(0.1, inertial=moving)

        self.assertIsNotNone(estimate)
        self.assertGreater(estimator.regularized_count, 0)
        self.assertEqual(estimator.accel_update_count, 2)
        self.assertTrue(np.all(np.isfinite(estimator.state.state_vector)))
        self.assertTrue(np.all(np.isfinite(estimator.state.covariance)))
        self.assertEqual(estimator.get_statistics()['regularized_inversions'],
                         estimator.regularized_count)

    def test_reset(self):
        self.estimator.tick(1.0, self.first_fix)
        self.estimator.tick(1.0)

        self.estimator.reset()

        self.assertFalse(self.estimator.initialized)
        self.assertEqual(self.estimator.prediction_count, 0)
        self.assertIsNone(self.estimator.get_estimate())


if __name__ == '__main__':
    unittest.main()
