"""
Distance Alignment for Race Delta Analysis

This module compares two traces of the same course by path distance rather
than by wall-clock time. Two subjects at different speeds are never at the
same place at the same time, so for each reference sample we ask: when did
the comparison subject reach this same distance along the course? The
difference between the two race times is the time delta.

The merge is a single forward pass over both series (two-pointer, O(n + m)):
the comparison cursor only ever moves forward because both cumulative
distance series are non-decreasing.
"""

import logging

from typing import Dict, List, Sequence

from .models import MetricRecord, TimeDeltaRecord, TimeWindow

logger = logging.getLogger(__name__)


def compute_time_delta(reference: Sequence[MetricRecord],
                       comparison: Sequence[MetricRecord]) -> List[TimeDeltaRecord]:
    """
    Compute the time delta at every reference sample by matching path distance.

    For each reference distance d the comparison race time and timestamp are
    linearly interpolated between the two comparison records bracketing d.
    If d is beyond the comparison trace's total distance, the comparison's
    final record is used unchanged and the result is marked clamped.

    Delta = reference race time - comparison race time; positive means the
    reference subject is slower (behind) at that point.

    Args:
        reference: Reference MetricRecords (distance-integrated).
        comparison: Comparison MetricRecords (distance-integrated).

    Returns:
        One TimeDeltaRecord per reference record, or an empty list if either
        series is empty.
    """
    if not reference or not comparison:
        return []

    last = comparison[-1]
    comp_total = last.distance_m
    last_idx = len(comparison) - 1
    cursor = 0
    clamped_count = 0
    deltas = []

    for ref in reference:
        d = ref.distance_m

        if d > comp_total:
            clamped_count += 1
            deltas.append(TimeDeltaRecord(
                race_time_s=ref.race_time_s,
                timestamp_ms=ref.timestamp_ms,
                distance_m=d,
                comp_race_time_s=last.race_time_s,
                comp_timestamp_ms=last.timestamp_ms,
                delta_s=ref.race_time_s - last.race_time_s,
                lat=ref.lat,
                lon=ref.lon,
                clamped=True,
            ))
            continue

        # Last comparison index whose distance does not exceed d
        while cursor < last_idx and comparison[cursor + 1].distance_m <= d:
            cursor += 1

        c0 = comparison[cursor]
        c1 = comparison[min(cursor + 1, last_idx)]
        seg_len = c1.distance_m - c0.distance_m
        frac = (d - c0.distance_m) / seg_len if seg_len > 0 else 0.0

        comp_race_time = c0.race_time_s + frac * (c1.race_time_s - c0.race_time_s)
        comp_timestamp = c0.timestamp_ms + frac * (c1.timestamp_ms - c0.timestamp_ms)

        deltas.append(TimeDeltaRecord(
            race_time_s=ref.race_time_s,
            timestamp_ms=ref.timestamp_ms,
            distance_m=d,
            comp_race_time_s=comp_race_time,
            comp_timestamp_ms=comp_timestamp,
            delta_s=ref.race_time_s - comp_race_time,
            lat=ref.lat,
            lon=ref.lon,
        ))

    if clamped_count:
        logger.debug(
            "%d of %d reference samples beyond comparison distance %.1fm; clamped",
            clamped_count, len(reference), comp_total,
        )
    return deltas


def final_delta(deltas: Sequence[TimeDeltaRecord]) -> float:
    """Delta at the last aligned sample, or 0.0 for an empty series."""
    return deltas[-1].delta_s if deltas else 0.0


def seek_times(record: TimeDeltaRecord, reference_window: TimeWindow) -> Dict[str, float]:
    """
    Playback positions in seconds for both traces at one aligned sample.

    Each position is in its own trace's timestamp space, so the two values
    are generally different even though they show the same place on course.

    Args:
        record: An aligned sample (e.g. the one under a chart or map click).
        reference_window: Window the reference metrics were computed over.

    Returns:
        Dictionary with reference_s and comparison_s.
    """
    return {
        "reference_s": reference_window.start_ms / 1000.0 + record.race_time_s,
        "comparison_s": record.comp_timestamp_ms / 1000.0,
    }
