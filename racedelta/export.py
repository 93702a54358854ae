"""
Export Functions for Race Delta Analysis

This module serializes aligned results for external consumers: a CSV of the
time-delta series and a GeoJSON course map whose segments are coloured by
the closing/opening rate.
"""

import csv
import io

import numpy as np
from typing import Dict, Optional, Sequence

from . import geodesy
from . import utils
from .models import TimeDeltaRecord

GAINING_RGB = (59, 130, 246)  # Blue
LOSING_RGB = (239, 68, 68)    # Red


def export_deltas_csv(deltas: Sequence[TimeDeltaRecord]) -> str:
    """
    Export a time-delta series to CSV format.

    Args:
        deltas: TimeDeltaRecords from compute_time_delta().

    Returns:
        CSV string with one row per reference sample.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow([
        "race_time_s",
        "timestamp_ms",
        "distance_m",
        "distance_mi",
        "comp_race_time_s",
        "comp_timestamp_ms",
        "delta_s",
        "lat",
        "lon",
        "clamped",
    ])

    for record in deltas:
        writer.writerow([
            utils.round_float(record.race_time_s),
            record.timestamp_ms,
            utils.round_float(record.distance_m),
            utils.round_float(record.distance_mi),
            utils.round_float(record.comp_race_time_s),
            utils.round_float(record.comp_timestamp_ms, digits=1),
            utils.round_float(record.delta_s),
            record.lat,
            record.lon,
            int(record.clamped),
        ])

    return buffer.getvalue()


def closing_rate_color(rate: float) -> str:
    """
    Map a closing/opening rate to an RGBA colour string.

    Negative rates (reference gaining) are blue, positive (losing) red.
    Opacity grows with magnitude and saturates at 0.1 s/s.

    Args:
        rate: Closing rate in seconds per second.

    Returns:
        CSS rgba() colour string.
    """
    intensity = min(abs(rate) * 10, 1.0)
    alpha = round(0.3 + intensity * 0.7, 3)
    r, g, b = GAINING_RGB if rate < 0 else LOSING_RGB
    return f"rgba({r}, {g}, {b}, {alpha})"


def deltas_to_geojson(deltas: Sequence[TimeDeltaRecord], closing_rates: Sequence[float]) -> Dict:
    """
    Convert a time-delta series to a GeoJSON course map.

    Creates one LineString feature per consecutive pair of samples, coloured
    by the closing rate at the segment's end, plus start and finish markers.

    Args:
        deltas: TimeDeltaRecords from compute_time_delta().
        closing_rates: Rates from compute_closing_rate(), same length.

    Returns:
        GeoJSON FeatureCollection.

    Raises:
        ValueError: If there are fewer than two samples or the lengths differ.
    """
    if len(deltas) < 2:
        raise ValueError("At least two aligned samples are needed to draw a course map.")
    if len(closing_rates) != len(deltas):
        raise ValueError("closing_rates must have one value per delta record.")

    features = []
    for i in range(1, len(deltas)):
        prev, curr = deltas[i - 1], deltas[i]
        rate = closing_rates[i]
        features.append({
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [[prev.lon, prev.lat], [curr.lon, curr.lat]],
            },
            "properties": {
                "index": i,
                "race_time_s": utils.round_float(curr.race_time_s, 2),
                "delta_s": utils.round_float(curr.delta_s),
                "closing_rate": utils.round_float(rate, 4),
                "stroke": closing_rate_color(rate),
                "stroke_width": 3,
            },
        })

    for marker, record in (("start", deltas[0]), ("finish", deltas[-1])):
        features.append({
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [record.lon, record.lat]},
            "properties": {"marker": marker},
        })

    return {"type": "FeatureCollection", "features": features}


def nearest_delta(deltas: Sequence[TimeDeltaRecord], lat: float, lon: float) -> Optional[TimeDeltaRecord]:
    """Aligned sample closest to a clicked map position, or None if deltas is empty."""
    if not deltas:
        return None
    lats = np.array([d.lat for d in deltas], dtype=float)
    lons = np.array([d.lon for d in deltas], dtype=float)
    return deltas[int(np.argmin(geodesy.haversine_m(lats, lons, lat, lon)))]

