"""
Constants for Race Delta Analysis

This module defines the physical constants, unit conversions and default
tuning values used throughout the alignment pipeline.
"""

EARTH_RADIUS_M = 6371000.0  # Spherical Earth model

MPS_TO_MPH = 2.23694
M_TO_MI = 0.000621371

# Crossing detection
DEFAULT_CROSSING_RADIUS_M = 20.0

# Acceleration smoothing
ACCEL_SMOOTHING_WINDOW = 5
ACCEL_MIN_DT_S = 0.01

# Closing/opening rate for course-map coloring
CLOSING_RATE_WINDOW_S = 5.0
CLOSING_RATE_MIN_DT_S = 0.1

# Gyro streams are much denser than GPS, keep chart rows readable
YAW_CHART_MAX_POINTS = 500
MOTION_YAW_AXIS = "z"

LOG_LEVEL_ENV = "RACEDELTA_LOG_LEVEL"
