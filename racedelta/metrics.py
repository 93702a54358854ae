"""
Metrics Computation for Race Delta Analysis

This module turns a raw position stream into per-sample metrics inside a
time window: race-relative time, speed and cumulative path distance.

Speed is resolved first (instrument speed where reported, otherwise derived
from the haversine distance to the neighbouring sample), and only then
integrated into distance. Integrating speed rather than summing raw
position deltas keeps single-sample GPS jitter from compounding into the
distance axis that the cross-trace alignment is keyed on.
"""

import logging

import numpy as np
from typing import List, Sequence

from . import geodesy
from . import time_series
from .models import MetricRecord, PositionSample, TimeWindow

logger = logging.getLogger(__name__)


def segment_speeds(timestamps_ms: np.ndarray, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """
    Average speed over each consecutive pair of samples.

    Segments with non-positive elapsed time have zero speed.

    Args:
        timestamps_ms: Sorted sample timestamps in milliseconds.
        lats, lons: Sample coordinates in degrees.

    Returns:
        Array of len(timestamps_ms) - 1 speeds in m/s.
    """
    seg_dist = geodesy.haversine_m(lats[:-1], lons[:-1], lats[1:], lons[1:])
    dt = np.diff(timestamps_ms) / 1000.0
    return np.divide(seg_dist, dt, out=np.zeros_like(seg_dist), where=dt > 0)


def resolve_speeds(instrument: np.ndarray, derived: np.ndarray) -> np.ndarray:
    """
    Pick one speed per sample.

    A sample's instrument-reported speed wins when present and nonzero.
    Otherwise sample i uses the derived speed of the segment ending at i;
    the first sample has no incoming segment and uses the outgoing one.

    Args:
        instrument: Reported speeds, NaN where not reported (length n).
        derived: Segment speeds from segment_speeds() (length n - 1).

    Returns:
        Array of n speeds in m/s.
    """
    fallback = np.concatenate([derived[:1], derived])
    use_instrument = np.isfinite(instrument) & (instrument != 0)
    return np.where(use_instrument, instrument, fallback)


def add_cumulative_distance(speeds_mps: np.ndarray, timestamps_ms: np.ndarray) -> np.ndarray:
    """
    Integrate speed over time with the trapezoidal rule.

    dist[0] = 0 and dist[i] = dist[i-1] + avg(speed[i-1], speed[i]) * dt.
    Speeds are treated as magnitudes, so the result never decreases, even
    if the subject reverses direction.

    Args:
        speeds_mps: Per-sample speeds in m/s.
        timestamps_ms: Sorted timestamps in milliseconds, same length.

    Returns:
        Cumulative distance in meters, same length as the inputs.
    """
    if len(speeds_mps) == 0:
        return np.empty(0, dtype=float)

    avg_speed = np.abs((speeds_mps[:-1] + speeds_mps[1:]) / 2.0)
    dt = np.clip(np.diff(timestamps_ms) / 1000.0, 0.0, None)
    return np.concatenate([[0.0], np.cumsum(avg_speed * dt)])


def compute_metrics(samples: Sequence[PositionSample], window: TimeWindow) -> List[MetricRecord]:
    """
    Compute per-sample metrics for the samples inside a time window.

    Args:
        samples: Position stream in any order.
        window: Inclusive time window in the same timestamp space.

    Returns:
        List of MetricRecord ordered by timestamp, or an empty list if fewer
        than two samples fall inside the window.
    """
    df = time_series.slice_window(time_series.positions_to_frame(samples), window)
    if len(df) < 2:
        logger.debug("Only %d samples inside window %s; no metrics", len(df), window)
        return []

    ts = df["timestamp_ms"].to_numpy(dtype=float)
    lats = df["lat"].to_numpy(dtype=float)
    lons = df["lon"].to_numpy(dtype=float)

    derived = segment_speeds(ts, lats, lons)
    speeds = resolve_speeds(df["speed_2d"].to_numpy(dtype=float), derived)
    distances = add_cumulative_distance(speeds, ts)
    race_times = (ts - window.start_ms) / 1000.0

    records = [
        MetricRecord(
            timestamp_ms=float(ts[i]),
            race_time_s=float(race_times[i]),
            lat=float(lats[i]),
            lon=float(lons[i]),
            speed_mps=float(speeds[i]),
            distance_m=float(distances[i]),
        )
        for i in range(len(df))
    ]

    logger.debug(
        "Computed %d metric records over %.1fs, %.1fm",
        len(records), records[-1].race_time_s, records[-1].distance_m,
    )
    return records


def total_distance(records: Sequence[MetricRecord]) -> float:
    """Cumulative distance at the last record, or 0.0 for an empty series."""
    return records[-1].distance_m if records else 0.0
