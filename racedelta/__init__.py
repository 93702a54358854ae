"""
Race Delta Analysis

This package aligns two GPS/gyro telemetry traces of the same course by path
distance, so the time each subject took to reach every point on the course
can be compared. It also segments repeated passes into laps or runs.

The public functions are re-exported here from their modules.
"""

from .constants import DEFAULT_CROSSING_RADIUS_M, M_TO_MI, MPS_TO_MPH

from .models import (
    ComparisonBounds,
    Coordinate,
    CrossingEvent,
    Lap,
    MetricRecord,
    MotionSample,
    PositionSample,
    Run,
    TimeDeltaRecord,
    TimeWindow,
    Trace,
    YawRateRecord,
)

from .geodesy import bearing, distance, haversine_m, bearing_deg

from .time_series import parse_motion_samples, parse_position_samples

from .metrics import add_cumulative_distance, compute_metrics

from .motion import compute_yaw_rate, nearest_by_race_time

from .bounds import find_comparison_bounds

from .alignment import compute_time_delta, seek_times

from .crossings import detect_crossings, detect_runs, find_laps, include_laps, fastest_lap

from .smoothing import compute_acceleration, compute_closing_rate, moving_average

from .session import Alignment, align_traces, build_comparison, build_lap_candidates, build_run_candidates

from .export import deltas_to_geojson, export_deltas_csv, nearest_delta

__version__ = "0.1.0"
