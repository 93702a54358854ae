"""
Derived Signal Smoothing for Race Delta Analysis

This module derives noisy rate signals from already-aligned series and
smooths them: longitudinal acceleration from speed, and the windowed
closing/opening rate of the time delta used to colour the course map.
"""

import numpy as np
import pandas as pd
from typing import List, Sequence

from . import constants
from .models import MetricRecord, TimeDeltaRecord


def moving_average(values: Sequence[float], window: int = constants.ACCEL_SMOOTHING_WINDOW) -> np.ndarray:
    """
    Centered moving average that shrinks at the boundaries.

    A window of 5 averages two samples on each side; the first and last
    samples average over whatever neighbours exist.

    Args:
        values: Input series.
        window: Window length in samples. Default 5.

    Returns:
        Smoothed array, same length as values.
    """
    series = pd.Series(values, dtype=float)
    if series.empty:
        return np.empty(0, dtype=float)
    return series.rolling(window=window, center=True, min_periods=1).mean().to_numpy()


def compute_acceleration(metrics: Sequence[MetricRecord],
                         window: int = constants.ACCEL_SMOOTHING_WINDOW,
                         min_dt_s: float = constants.ACCEL_MIN_DT_S) -> List[float]:
    """
    Longitudinal acceleration from consecutive speeds, smoothed.

    Each sample gets the forward difference to the next sample; steps
    shorter than min_dt_s give 0. The last sample repeats the value before
    it. The result is then passed through moving_average().

    Args:
        metrics: MetricRecords in time order.
        window: Smoothing window in samples. Default 5.
        min_dt_s: Minimum step duration for a valid difference. Default 0.01.

    Returns:
        Acceleration in m/s² per record (empty if fewer than two records).
    """
    if len(metrics) < 2:
        return []

    speeds = np.array([m.speed_mps for m in metrics], dtype=float)
    times = np.array([m.race_time_s for m in metrics], dtype=float)
    dv = np.diff(speeds)
    dt = np.diff(times)

    accel = np.divide(dv, dt, out=np.zeros_like(dv), where=dt > min_dt_s)
    accel = np.append(accel, accel[-1])

    return moving_average(accel, window).tolist()


def compute_closing_rate(deltas: Sequence[TimeDeltaRecord],
                         window_s: float = constants.CLOSING_RATE_WINDOW_S,
                         min_dt_s: float = constants.CLOSING_RATE_MIN_DT_S) -> List[float]:
    """
    Rate at which the time delta is growing or shrinking, over a trailing window.

    For sample i the comparison point j is the latest earlier sample at
    least window_s seconds before it (or the first sample when none is that
    far back). The rate is (delta[i] - delta[j]) / (time[i] - time[j]) when
    that span exceeds min_dt_s, else 0. Negative means the reference subject
    is gaining time; positive means losing it.

    Args:
        deltas: TimeDeltaRecords in time order.
        window_s: Trailing window in seconds. Default 5.
        min_dt_s: Minimum span for a non-zero rate. Default 0.1.

    Returns:
        One rate (seconds per second) per delta record.
    """
    times = [d.race_time_s for d in deltas]
    values = [d.delta_s for d in deltas]
    rates = []
    j = 0

    for i in range(len(deltas)):
        # j only moves forward because race times are non-decreasing
        while j + 1 <= i and times[i] - times[j + 1] >= window_s:
            j += 1
        span = times[i] - times[j]
        rates.append((values[i] - values[j]) / span if span > min_dt_s else 0.0)

    return rates
