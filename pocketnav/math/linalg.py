"""
Small fixed-size matrix operations for the 4-state position filter.

Matrices are plain numpy arrays no larger than 4x4. The only inverse the
filter needs is of a 2x2 innovation covariance, which is done in closed form
with a regularised fallback for near-singular input.
"""

import logging

import numpy as np

from ..errors import NumericalSingularity
from .constants import SINGULAR_DET_EPSILON, REGULARIZATION_SCALE

_LOG = logging.getLogger(__name__)

MAX_DIMENSION = 4


def _check(m: np.ndarray) -> np.ndarray:
    m = np.asarray(m, dtype=float)
    if m.ndim != 2 or m.shape[0] > MAX_DIMENSION or m.shape[1] > MAX_DIMENSION:
        raise ValueError(f"Expected a matrix no larger than 4x4, got shape {m.shape}")
    return m


def identity(n: int = MAX_DIMENSION) -> np.ndarray:
    """n x n identity."""
    return np.eye(n)


def multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Matrix product a @ b."""
    a = _check(a)
    b = _check(b)
    if a.shape[1] != b.shape[0]:
        raise ValueError(f"Cannot multiply {a.shape} by {b.shape}")
    return a @ b


def multiply_vector(m: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Matrix-vector product m @ v."""
    m = _check(m)
    v = np.asarray(v, dtype=float)
    if v.shape != (m.shape[1],):
        raise ValueError(f"Cannot multiply {m.shape} by vector {v.shape}")
    return m @ v


def transpose(m: np.ndarray) -> np.ndarray:
    return _check(m).T.copy()


def add(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    a = _check(a)
    b = _check(b)
    if a.shape != b.shape:
        raise ValueError(f"Shape mismatch: {a.shape} vs {b.shape}")
    return a + b


def subtract(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    a = _check(a)
    b = _check(b)
    if a.shape != b.shape:
        raise ValueError(f"Shape mismatch: {a.shape} vs {b.shape}")
    return a - b


def scale(m: np.ndarray, scalar: float) -> np.ndarray:
    return _check(m) * scalar


def inverse_2x2(m: np.ndarray) -> np.ndarray:
    """
    Closed-form inverse of a 2x2 matrix.

    Raises:
        NumericalSingularity: if |det| < SINGULAR_DET_EPSILON
    """
    m = _check(m)
    if m.shape != (2, 2):
        raise ValueError(f"Expected a 2x2 matrix, got shape {m.shape}")

    det = m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0]
    if abs(det) < SINGULAR_DET_EPSILON:
        raise NumericalSingularity(f"2x2 determinant {det:.3e} is near zero")

    return np.array([
        [m[1, 1] / det, -m[0, 1] / det],
        [-m[1, 0] / det, m[0, 0] / det]
    ])


def regularized_inverse_2x2(m: np.ndarray) -> tuple:
    """
    Inverse of a 2x2 matrix that never fails.

    Returns:
        (inverse, regularized) where regularized is True when the
        REGULARIZATION_SCALE * I fallback was substituted.
    """
    try:
        return inverse_2x2(m), False
    except NumericalSingularity as exc:
        _LOG.warning("Using regularized inverse: %s", exc)
        return scale(identity(2), REGULARIZATION_SCALE), True
