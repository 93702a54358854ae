"""
Time Series Extraction for Race Delta Analysis

This module converts raw sample rows from the telemetry extractor into typed
samples, and typed samples into timestamp-sorted DataFrames suitable for
windowed analysis. The extractor delivers samples in arrival order, which is
not guaranteed to be time order, so everything downstream goes through the
sort here.
"""

import logging
import math

import numpy as np
import pandas as pd
from typing import Iterable, List, Mapping, Sequence

from . import utils
from .models import MotionSample, PositionSample, TimeWindow

logger = logging.getLogger(__name__)

POSITION_COLUMNS = ["timestamp_ms", "lat", "lon", "speed_2d", "speed_3d"]
MOTION_COLUMNS = ["timestamp_ms", "x", "y", "z"]

# Extractor key -> snake-case field
_POSITION_ALIASES = {
    "timestamp_ms": ("timestamp_ms", "cts"),
    "lat": ("lat", "latitude"),
    "lon": ("lon", "lng", "longitude"),
    "speed_2d": ("speed_2d", "speed2D"),
    "speed_3d": ("speed_3d", "speed3D"),
}


def _first_present(row: Mapping, keys: Iterable[str]):
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return None


def parse_position_samples(rows: Iterable[Mapping]) -> List[PositionSample]:
    """
    Parse extractor GPS rows into PositionSample objects.

    Accepts either the extractor's keys (cts, lat, lng, speed2D, speed3D) or
    snake-case keys (timestamp_ms, lat, lon, speed_2d, speed_3d). Rows with no
    usable timestamp are dropped. Order is preserved; sorting happens later.

    Args:
        rows: Iterable of mappings, one per GPS sample.

    Returns:
        List of PositionSample.

    Raises:
        ValueError: If a timestamped row is missing latitude or longitude.
    """
    samples = []
    dropped = 0

    for row in rows:
        ts = utils.safe_float(_first_present(row, _POSITION_ALIASES["timestamp_ms"]))
        if not math.isfinite(ts):
            dropped += 1
            continue

        lat = utils.safe_float(_first_present(row, _POSITION_ALIASES["lat"]))
        lon = utils.safe_float(_first_present(row, _POSITION_ALIASES["lon"]))
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise ValueError(f"Position sample at cts={ts} has no valid coordinates")

        samples.append(PositionSample(
            timestamp_ms=ts,
            lat=lat,
            lon=lon,
            speed_2d=utils.optional_float(_first_present(row, _POSITION_ALIASES["speed_2d"])),
            speed_3d=utils.optional_float(_first_present(row, _POSITION_ALIASES["speed_3d"])),
        ))

    if dropped:
        logger.debug("Dropped %d position rows without a timestamp", dropped)
    return samples


def parse_motion_samples(rows: Iterable[Mapping]) -> List[MotionSample]:
    """
    Parse extractor gyro rows into MotionSample objects.

    Missing axis values become 0.0; rows without a timestamp are dropped.
    """
    samples = []
    for row in rows:
        ts = utils.safe_float(_first_present(row, ("timestamp_ms", "cts")))
        if not math.isfinite(ts):
            continue
        axes = [utils.optional_float(row.get(axis)) or 0.0 for axis in ("x", "y", "z")]
        samples.append(MotionSample(ts, *axes))
    return samples


def positions_to_frame(samples: Sequence[PositionSample]) -> pd.DataFrame:
    """
    Flatten position samples into a timestamp-sorted DataFrame.

    Sorting is stable so samples sharing a timestamp keep their arrival order,
    which keeps repeated runs on identical input bit-identical.

    Args:
        samples: Position samples in any order.

    Returns:
        DataFrame with columns timestamp_ms, lat, lon, speed_2d, speed_3d
        (speeds NaN where not reported) and a fresh RangeIndex.
    """
    rows = [
        {
            "timestamp_ms": s.timestamp_ms,
            "lat": s.lat,
            "lon": s.lon,
            "speed_2d": np.nan if s.speed_2d is None else s.speed_2d,
            "speed_3d": np.nan if s.speed_3d is None else s.speed_3d,
        }
        for s in samples
    ]
    df = pd.DataFrame(rows, columns=POSITION_COLUMNS)
    if df.empty:
        return df

    df = df.astype(float)
    df = df.sort_values("timestamp_ms", kind="mergesort").reset_index(drop=True)
    return df


def motion_to_frame(samples: Sequence[MotionSample]) -> pd.DataFrame:
    """Flatten motion samples into a timestamp-sorted DataFrame."""
    rows = [
        {"timestamp_ms": s.timestamp_ms, "x": s.x, "y": s.y, "z": s.z}
        for s in samples
    ]
    df = pd.DataFrame(rows, columns=MOTION_COLUMNS)
    if df.empty:
        return df

    df = df.astype(float)
    df = df.sort_values("timestamp_ms", kind="mergesort").reset_index(drop=True)
    return df


def sort_positions(samples: Sequence[PositionSample]) -> List[PositionSample]:
    """Return position samples stably sorted by timestamp."""
    return sorted(samples, key=lambda s: s.timestamp_ms)


def slice_window(df: pd.DataFrame, window: TimeWindow) -> pd.DataFrame:
    """
    Keep only rows whose timestamp lies inside the inclusive window.

    Args:
        df: Sorted DataFrame with a timestamp_ms column.
        window: Time window in the same timestamp space.

    Returns:
        Filtered DataFrame with a fresh RangeIndex.
    """
    if df.empty:
        return df
    mask = (df["timestamp_ms"] >= window.start_ms) & (df["timestamp_ms"] <= window.finish_ms)
    return df.loc[mask].reset_index(drop=True)


def values_at_race_times(records: Sequence, race_times, field: str) -> np.ndarray:
    """
    Linearly interpolate a record field at many race times in one pass.

    Used to place gyro samples (which have their own timestamps) on the GPS
    distance axis, or to read the comparison speed at every aligned sample.
    Clamps to the first and last record outside the recorded range.

    Args:
        records: Records sorted by race_time_s (e.g. MetricRecord).
        race_times: Race times in seconds (array-like).
        field: Attribute name to interpolate (e.g. "distance_m", "speed_mph").

    Returns:
        Array of interpolated values, zeros if records is empty.
    """
    targets = np.asarray(race_times, dtype=float)
    if not records:
        return np.zeros_like(targets)
    times = np.fromiter((r.race_time_s for r in records), dtype=float, count=len(records))
    values = np.fromiter((getattr(r, field) for r in records), dtype=float, count=len(records))
    return np.interp(targets, times, values)


def value_at_race_time(records: Sequence, race_time: float, field: str) -> float:
    """Interpolate a record field at a single race time; 0.0 if records is empty."""
    return float(values_at_race_times(records, [race_time], field)[0])
