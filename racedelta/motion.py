"""
Motion Rate Computation for Race Delta Analysis

This module converts the gyroscope stream to a signed rate-of-turn series
inside a time window, and lines up two such series for comparison.

Gyro samples arrive at a much higher rate than GPS and are never co-indexed
with it; matching across streams is done by race time, with a nearest-sample
search for the other trace and interpolation onto the GPS distance axis.
"""

import logging

import numpy as np
from typing import Dict, List, Optional, Sequence

from . import constants
from . import time_series
from . import utils
from .models import MetricRecord, MotionSample, TimeWindow, YawRateRecord

logger = logging.getLogger(__name__)

AXES = ("x", "y", "z")


def compute_yaw_rate(samples: Sequence[MotionSample], window: TimeWindow,
                     axis: str = constants.MOTION_YAW_AXIS) -> List[YawRateRecord]:
    """
    Convert the vertical-axis angular rate to degrees/second inside a window.

    Args:
        samples: Motion stream in any order.
        window: Inclusive time window in the same timestamp space.
        axis: Which gyro axis is vertical for this mounting. Default "z".

    Returns:
        List of YawRateRecord ordered by timestamp (possibly empty).

    Raises:
        ValueError: If axis is not one of "x", "y", "z".
    """
    if axis not in AXES:
        raise ValueError(f"Unknown motion axis: {axis}. Must be one of: {', '.join(AXES)}")

    df = time_series.slice_window(time_series.motion_to_frame(samples), window)
    if df.empty:
        return []

    ts = df["timestamp_ms"].to_numpy(dtype=float)
    rates = np.rad2deg(df[axis].to_numpy(dtype=float))
    race_times = (ts - window.start_ms) / 1000.0

    return [
        YawRateRecord(float(t), float(rt), float(rate))
        for t, rt, rate in zip(ts, race_times, rates)
    ]


def nearest_indices(times: np.ndarray, targets) -> np.ndarray:
    """
    Index of the nearest entry in a sorted times array for each target.

    Ties go to the earlier entry; targets outside the range map to the
    first or last index.

    Args:
        times: Non-empty ascending array of race times.
        targets: Race times to look up (array-like).

    Returns:
        Integer index array, same shape as targets.
    """
    targets = np.asarray(targets, dtype=float)
    last = len(times) - 1
    after = np.clip(np.searchsorted(times, targets, side="left"), 0, last)
    before = np.clip(after - 1, 0, last)
    take_before = (targets - times[before]) <= (times[after] - targets)
    return np.where(take_before, before, after)


def nearest_by_race_time(records: Sequence[YawRateRecord], race_time: float) -> Optional[YawRateRecord]:
    """
    Find the record whose race time is closest to race_time.

    Ties go to the earlier record.

    Args:
        records: Records sorted by race_time_s.
        race_time: Target race time in seconds.

    Returns:
        The nearest record, or None if records is empty.
    """
    if not records:
        return None
    times = np.array([r.race_time_s for r in records], dtype=float)
    return records[int(nearest_indices(times, [race_time])[0])]


def build_yaw_comparison(reference: Sequence[YawRateRecord],
                         comparison: Sequence[YawRateRecord],
                         reference_metrics: Sequence[MetricRecord],
                         max_points: int = constants.YAW_CHART_MAX_POINTS) -> List[Dict]:
    """
    Build yaw-rate comparison rows on the reference distance axis.

    The reference yaw series is down-sampled to roughly max_points rows. Each
    row carries the reference yaw, the comparison yaw at the nearest race
    time (0.0 when the comparison has no gyro data), and the reference path
    distance at that race time.

    Args:
        reference: Reference yaw-rate records.
        comparison: Comparison yaw-rate records.
        reference_metrics: Reference MetricRecords, for the distance axis.
        max_points: Approximate upper bound on returned rows.

    Returns:
        List of dictionaries with race_time_s, distance_m, distance_mi,
        reference_yaw_dps and comparison_yaw_dps.
    """
    step = max(1, len(reference) // max(1, max_points))
    sampled = reference[::step]
    race_times = np.array([r.race_time_s for r in sampled], dtype=float)

    distances = time_series.values_at_race_times(reference_metrics, race_times, "distance_m")
    if comparison:
        comp_times = np.array([r.race_time_s for r in comparison], dtype=float)
        comp_rates = np.array([r.yaw_rate_dps for r in comparison], dtype=float)
        matched = comp_rates[nearest_indices(comp_times, race_times)]
    else:
        matched = np.zeros(len(sampled))

    rows = []
    for record, distance_m, comp_rate in zip(sampled, distances, matched):
        rows.append({
            "race_time_s": utils.round_float(record.race_time_s, 2),
            "distance_m": utils.round_float(distance_m, 2),
            "distance_mi": utils.round_float(distance_m * constants.M_TO_MI),
            "reference_yaw_dps": utils.round_float(record.yaw_rate_dps, 1),
            "comparison_yaw_dps": utils.round_float(comp_rate, 1),
        })

    logger.debug("Built %d yaw comparison rows (step %d)", len(rows), step)
    return rows
