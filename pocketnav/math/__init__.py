"""
Mathematical utilities for heading and position estimation.
"""

from .utils import (normalize_angle, delta_angle, blend_angles,
                    smooth_damp, smooth_damp_angle, lerp, lerp_angle, clamp01)
from .constants import *

__all__ = ["normalize_angle", "delta_angle", "blend_angles", "smooth_damp",
           "smooth_damp_angle", "lerp", "lerp_angle", "clamp01"]
