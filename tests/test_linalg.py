#!/usr/bin/env python3
"""
Unit tests for small-matrix and angle helpers.
"""

import unittest
import numpy as np
import sys
import os

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from pocketnav.errors import NumericalSingularity
from pocketnav.math import linalg
from pocketnav.math.utils import (normalize_angle, delta_angle, blend_angles,
                                  smooth_damp, smooth_damp_angle, lerp_angle)


class TestLinearAlgebra(unittest.TestCase):
    """Test matrix operations."""

    def test_multiply_and_transpose(self):
        a = np.arange(8, dtype=float).reshape(2, 4)
        b = np.arange(8, dtype=float).reshape(4, 2)

        np.testing.assert_allclose(linalg.multiply(a, b), a @ b)
        np.testing.assert_allclose(linalg.transpose(a), a.T)

    def test_add_subtract_scale(self):
        a = np.eye(4)
        b = np.full((4, 4), 2.0)

        np.testing.assert_allclose(linalg.add(a, b), a + b)
        np.testing.assert_allclose(linalg.subtract(b, a), b - a)
        np.testing.assert_allclose(linalg.scale(a, 100.0), np.eye(4) * 100.0)

    def test_shape_checks(self):
        with self.assertRaises(ValueError):
            linalg.multiply(np.eye(5), np.eye(5))
        with self.assertRaises(ValueError):
            linalg.multiply(np.eye(2), np.eye(3))
        with self.assertRaises(ValueError):
            linalg.add(np.eye(2), np.eye(3))
        with self.assertRaises(ValueError):
            linalg.inverse_2x2(np.eye(3))

    def test_inverse_2x2(self):
        m = np.array([[4.0, 1.0], [2.0, 3.0]])

        inv = linalg.inverse_2x2(m)

        np.testing.assert_allclose(inv @ m, np.eye(2), atol=1e-12)

    def test_inverse_2x2_singular_raises(self):
        m = np.array([[1.0, 2.0], [0.5, 1.0]])  # det = 0

        with self.assertRaises(NumericalSingularity):
            linalg.inverse_2x2(m)

    def test_regularized_inverse_fallback(self):
        m = np.array([[0.005, 0.0], [0.0, 0.005]])  # det = 2.5e-5

        inv, regularized = linalg.regularized_inverse_2x2(m)

        self.assertTrue(regularized)
        np.testing.assert_allclose(inv, np.eye(2) * 0.01)

    def test_regularized_inverse_regular_input(self):
        m = np.diag([5.0, 5.0])

        inv, regularized = linalg.regularized_inverse_2x2(m)

        self.assertFalse(regularized)
        np.testing.assert_allclose(inv, np.diag([0.2, 0.2]))


class TestAngleUtils(unittest.TestCase):
    """Test angle helpers."""

    def test_normalize_angle(self):
        self.assertAlmostEqual(normalize_angle(370.0), 10.0)
        self.assertAlmostEqual(normalize_angle(-10.0), 350.0)
        self.assertAlmostEqual(normalize_angle(720.0), 0.0)
        self.assertLess(normalize_angle(-1e-14), 360.0)

    def test_delta_angle(self):
        self.assertAlmostEqual(delta_angle(359.0, 1.0), 2.0)
        self.assertAlmostEqual(delta_angle(1.0, 359.0), -2.0)
        self.assertAlmostEqual(delta_angle(80.0, 100.0), 20.0)
        self.assertAlmostEqual(delta_angle(0.0, 180.0), 180.0)

    def test_blend_wraparound(self):
        """359 blended with 1 lands near north, never near 180."""
        blended = blend_angles(359.0, 1.0, 0.5)

        self.assertLess(abs(delta_angle(blended, 0.0)), 1e-6)

    def test_blend_weights(self):
        self.assertAlmostEqual(blend_angles(10.0, 50.0, 0.0), 10.0)
        self.assertAlmostEqual(blend_angles(10.0, 50.0, 1.0), 50.0)

        blended = blend_angles(350.0, 20.0, 0.2)
        # Closer to 350 than to 20, on the short arc through north
        self.assertLess(abs(delta_angle(blended, 356.0)), 0.5)

    def test_lerp_angle_short_arc(self):
        self.assertAlmostEqual(lerp_angle(350.0, 10.0, 0.5), 0.0)
        self.assertAlmostEqual(lerp_angle(10.0, 30.0, 2.0), 30.0)

    def test_smooth_damp_converges_without_overshoot(self):
        value, velocity = 0.0, 0.0

        for _ in range(200):
            value, velocity = smooth_damp(value, 10.0, velocity, 0.1, 1 / 60)
            self.assertLessEqual(value, 10.0)

        self.assertAlmostEqual(value, 10.0, places=3)

    def test_smooth_damp_angle_takes_short_arc(self):
        angle, _ = smooth_damp_angle(359.0, 1.0, 0.0, 0.1, 1 / 60)

        # Moves forward past 359 instead of backward toward 1
        self.assertGreater(angle, 359.0)
        self.assertLessEqual(angle, 361.0)


if __name__ == '__main__':
    unittest.main()
