"""
Mathematical constants and estimator defaults for handheld navigation.
"""

import math

# Mathematical constants
PI = math.pi
FULL_CIRCLE_DEG = 360.0
HALF_CIRCLE_DEG = 180.0

# Conversion factors
DEG_TO_RAD = math.pi / 180.0
RAD_TO_DEG = 180.0 / math.pi

# Standard gravity expressed in accelerometer units (g)
GRAVITY_G = 1.0

# Linear algebra
SINGULAR_DET_EPSILON = 1e-4   # |det| below this is treated as singular
REGULARIZATION_SCALE = 0.01   # fallback inverse = REGULARIZATION_SCALE * I

# Position EKF defaults
INITIAL_COVARIANCE = 100.0        # P0 = INITIAL_COVARIANCE * I
Q_POSITION = 0.1                  # Position process noise (per second)
Q_VELOCITY = 0.1                  # Velocity process noise (per second)
R_GPS = 5.0                       # Base GPS measurement noise
R_ACCEL = 0.05                    # Accelerometer-as-velocity measurement noise
ACCEL_THRESHOLD = 0.03            # Horizontal acceleration gate (g)
ACCEL_SCALE_FACTOR = 0.000001     # g -> degrees/second, empirical
GPS_TRUST_THRESHOLD_M = 5.0       # Accuracy at or below: trust fix
GPS_POOR_THRESHOLD_M = 15.0       # Accuracy above: fix is very poor
GPS_MODERATE_INFLATION = 5.0
GPS_POOR_INFLATION = 50.0
GPS_VELOCITY_BLEND = 0.3          # Lerp factor toward fix-to-fix velocity
GPS_VELOCITY_MIN = 0.0001         # Degrees/second below which it is ignored
NEW_FIX_EPSILON_DEG = 0.000001    # Smaller moves are a repeated fix

# Heading defaults
MAGNETIC_DECLINATION_DEG = 3.5
MIN_SMOOTHING_FACTOR = 0.01       # Fast rotation: quick response
MAX_SMOOTHING_FACTOR = 0.1        # Slow rotation: more smoothing
HEADING_NOISE_THRESHOLD_DEG = 2.0
STATIONARY_NOISE_THRESHOLD_DEG = 0.5
ROTATION_THRESHOLD_DPS = 1.0
STATIONARY_TOLERANCE_G = 0.1
STATIONARY_RAMP_TIME_S = 3.0
STATIONARY_COMPASS_WEIGHT_MIN = 0.05
STATIONARY_COMPASS_WEIGHT_MAX = 0.2
MOVING_COMPASS_WEIGHT = 0.02

# Calibration defaults
CALIBRATION_THRESHOLD_DEG = 15.0
CALIBRATION_CHECK_INTERVAL = 900  # ticks
CALIBRATION_LERP_SPEED = 0.05     # progress per tick
COMPASS_STARTUP_DELAY_S = 3.0
COMPASS_JUMP_LIMIT_DEG = 45.0
FORCED_ROTATION_LIMIT_DEG = 720.0
FORCED_CALIBRATION_INTERVAL_S = 30.0

# Startup
FIX_TIMEOUT_S = 20.0
FIX_POLL_INTERVAL_S = 1.0
