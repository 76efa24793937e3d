"""
Angle and interpolation helpers for heading estimation.

All angles in this module are in degrees.
"""

import math
from typing import Tuple

from .constants import FULL_CIRCLE_DEG, HALF_CIRCLE_DEG, DEG_TO_RAD, RAD_TO_DEG


def normalize_angle(angle):
    """
    Normalize angle to [0, 360) range.

    Args:
        angle (float): Angle in degrees

    Returns:
        float: Normalized angle in [0, 360)
    """
    angle = math.fmod(angle, FULL_CIRCLE_DEG)
    if angle < 0.0:
        angle += FULL_CIRCLE_DEG
    # fmod of a tiny negative number can round up to exactly 360
    if angle >= FULL_CIRCLE_DEG:
        angle -= FULL_CIRCLE_DEG
    return angle


def delta_angle(current, target):
    """
    Signed shortest-arc difference from current to target.

    Returns:
        float: Difference in degrees, in (-180, 180]
    """
    delta = normalize_angle(target - current)
    if delta > HALF_CIRCLE_DEG:
        delta -= FULL_CIRCLE_DEG
    return delta


def clamp01(value):
    """Clamp value to [0, 1]."""
    return max(0.0, min(1.0, value))


def lerp(a, b, t):
    """Linear interpolation with t clamped to [0, 1]."""
    return a + (b - a) * clamp01(t)


def lerp_angle(a, b, t):
    """Interpolate along the shortest arc from a to b; result in [0, 360)."""
    return normalize_angle(a + delta_angle(a, b) * clamp01(t))


def blend_angles(angle1, angle2, weight2):
    """
    Circular weighted mean of two angles.

    Both angles are turned into unit vectors, summed with weights
    (1 - weight2, weight2) and the direction of the resultant is returned.
    Blending 359 and 1 therefore lands near 0, not near 180.

    Args:
        angle1: First angle (degrees)
        angle2: Second angle (degrees)
        weight2: Weight of the second angle in [0, 1]

    Returns:
        float: Blended angle in [0, 360)
    """
    weight1 = 1.0 - weight2

    x = weight1 * math.cos(angle1 * DEG_TO_RAD) + weight2 * math.cos(angle2 * DEG_TO_RAD)
    y = weight1 * math.sin(angle1 * DEG_TO_RAD) + weight2 * math.sin(angle2 * DEG_TO_RAD)

    return normalize_angle(math.atan2(y, x) * RAD_TO_DEG)


def smooth_damp(current, target, velocity, smooth_time, dt,
                max_speed=math.inf) -> Tuple[float, float]:
    """
    Critically damped spring step from current toward target.

    Uses the usual polynomial approximation of exp(-omega * dt) and never
    overshoots the target.

    Args:
        current: Current value
        target: Target value
        velocity: Velocity carried over from the previous step
        smooth_time: Approximate time to reach the target (seconds)
        dt: Time step (seconds)
        max_speed: Optional speed clamp

    Returns:
        (new_value, new_velocity)
    """
    smooth_time = max(0.0001, smooth_time)
    omega = 2.0 / smooth_time

    x = omega * dt
    exp = 1.0 / (1.0 + x + 0.48 * x * x + 0.235 * x * x * x)

    change = current - target
    original_to = target

    max_change = max_speed * smooth_time
    change = max(-max_change, min(max_change, change))
    target = current - change

    temp = (velocity + omega * change) * dt
    velocity = (velocity - omega * temp) * exp
    output = target + (change + temp) * exp

    # Prevent overshooting
    if (original_to - current > 0.0) == (output > original_to):
        output = original_to
        velocity = (output - original_to) / dt if dt > 0 else 0.0

    return output, velocity


def smooth_damp_angle(current, target, velocity, smooth_time, dt,
                      max_speed=math.inf) -> Tuple[float, float]:
    """
    smooth_damp along the shortest arc between two angles.

    Returns:
        (new_angle, new_velocity); the angle is not normalized.
    """
    target = current + delta_angle(current, target)
    return smooth_damp(current, target, velocity, smooth_time, dt, max_speed)
