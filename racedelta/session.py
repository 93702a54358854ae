"""
Comparison Builder for Race Delta Analysis

This module orchestrates the complete alignment pipeline, combining all
processing steps to build the payload that charting and map consumers read.

Every call recomputes from its inputs and shares no state with other calls,
so a caller that changes the window simply calls again and drops the old
payload.
"""

import logging
from dataclasses import dataclass

from typing import Dict, List, Optional, Sequence

from . import alignment
from . import bounds
from . import constants
from . import crossings
from . import metrics
from . import motion
from . import smoothing
from . import time_series
from . import utils
from .models import (
    ComparisonBounds,
    Coordinate,
    MetricRecord,
    PositionSample,
    TimeDeltaRecord,
    TimeWindow,
    Trace,
)

logger = logging.getLogger(__name__)


def build_speed_comparison(deltas: Sequence[TimeDeltaRecord],
                           reference_metrics: Sequence[MetricRecord],
                           comparison_metrics: Sequence[MetricRecord]) -> List[Dict]:
    """
    Speed of both subjects at the same path distance.

    The comparison speed is read at the comparison race time the alignment
    matched to each reference sample.

    Args:
        deltas: Aligned samples, one per reference metric record.
        reference_metrics: Reference MetricRecords.
        comparison_metrics: Comparison MetricRecords.

    Returns:
        List of dictionaries with distance_mi, race_time_s,
        reference_speed_mph and comparison_speed_mph.
    """
    comp_speeds = time_series.values_at_race_times(
        comparison_metrics, [d.comp_race_time_s for d in deltas], "speed_mph"
    )

    rows = []
    for ref, comp_speed in zip(reference_metrics, comp_speeds):
        rows.append({
            "distance_mi": utils.round_float(ref.distance_m * constants.M_TO_MI),
            "race_time_s": utils.round_float(ref.race_time_s, 2),
            "reference_speed_mph": utils.round_float(ref.speed_mph, 1),
            "comparison_speed_mph": utils.round_float(comp_speed, 1),
        })
    return rows


def build_summary(reference_metrics: Sequence[MetricRecord],
                  comparison_metrics: Sequence[MetricRecord],
                  deltas: Sequence[TimeDeltaRecord]) -> Dict:
    """Headline numbers for a comparison: times, distances and final delta."""
    return {
        "reference_time_s": utils.round_float(reference_metrics[-1].race_time_s if reference_metrics else 0.0),
        "comparison_time_s": utils.round_float(comparison_metrics[-1].race_time_s if comparison_metrics else 0.0),
        "reference_distance_m": utils.round_float(metrics.total_distance(reference_metrics)),
        "comparison_distance_m": utils.round_float(metrics.total_distance(comparison_metrics)),
        "final_delta_s": utils.round_float(alignment.final_delta(deltas)),
        "clamped_samples": sum(1 for d in deltas if d.clamped),
    }


def _trace_payload(window: Optional[TimeWindow], records: Sequence[MetricRecord],
                   yaw: Sequence) -> Dict:
    return {
        "window": {"start_ms": window.start_ms, "finish_ms": window.finish_ms} if window else None,
        "metrics": [r.to_dict() for r in records],
        "acceleration_mps2": [utils.round_float(a) for a in smoothing.compute_acceleration(records)],
        "yaw_rate": [y.to_dict() for y in yaw],
    }


@dataclass(frozen=True)
class Alignment:
    """Metrics of both traces and their distance alignment."""
    comparison_window: Optional[TimeWindow]
    located: Optional[ComparisonBounds]
    reference_metrics: List[MetricRecord]
    comparison_metrics: List[MetricRecord]
    deltas: List[TimeDeltaRecord]


def align_traces(reference: Trace, comparison: Trace, window: TimeWindow,
                 comparison_window: Optional[TimeWindow] = None) -> Alignment:
    """
    Compute metrics for both traces and align them by path distance.

    When no comparison_window is given, it is located from the first and
    last reference metric positions. Located bounds whose finish is not
    after their start leave the comparison without a window, so the
    comparison metrics and the deltas come back empty.

    Args:
        reference: Reference trace.
        comparison: Comparison trace.
        window: Time window in the reference trace's timestamp space.
        comparison_window: Optional window in the comparison trace's space.

    Returns:
        Alignment with the window actually used, the located bounds (if
        any), both metric series and the time deltas.

    Raises:
        ValueError: If bounds must be located and the comparison trace has
                    no position samples.
    """
    reference_metrics = metrics.compute_metrics(reference.positions, window)

    located: Optional[ComparisonBounds] = None
    if comparison_window is None and reference_metrics:
        located = bounds.bounds_from_metrics(comparison.positions, reference_metrics)
        if located.finish_ms > located.start_ms:
            comparison_window = located.window
        else:
            logger.debug("Located comparison bounds are degenerate: %s", located)

    comparison_metrics = (
        metrics.compute_metrics(comparison.positions, comparison_window)
        if comparison_window is not None else []
    )

    deltas = alignment.compute_time_delta(reference_metrics, comparison_metrics)
    logger.info(
        "Aligned %d reference samples against %d comparison samples",
        len(reference_metrics), len(comparison_metrics),
    )
    return Alignment(comparison_window, located, reference_metrics, comparison_metrics, deltas)


def build_comparison(reference: Trace, comparison: Trace, window: TimeWindow,
                     comparison_window: Optional[TimeWindow] = None,
                     yaw_axis: str = constants.MOTION_YAW_AXIS) -> Dict:
    """
    Build the complete comparison payload for two traces.

    Main entry point that runs the whole pipeline:
    1. Computes reference metrics inside the user-selected window
    2. Locates the comparison window from the reference start/finish
       coordinates (unless comparison_window is given, e.g. a selected lap)
    3. Computes comparison metrics inside that window
    4. Aligns the two traces by path distance
    5. Derives closing rate, acceleration and yaw-rate comparisons

    Args:
        reference: Reference trace (the subject being analysed).
        comparison: Comparison trace (the subject compared against).
        window: Time window in the reference trace's timestamp space.
        comparison_window: Optional window in the comparison trace's space.
        yaw_axis: Gyro axis treated as vertical. Default "z".

    Returns:
        Dictionary containing:
        - reference: window, metrics, acceleration and yaw rate
        - comparison: the same, plus the located bounds
        - time_delta: aligned samples
        - closing_rate: windowed rate of change of the delta
        - speed: per-distance speed comparison rows
        - yaw: per-distance yaw comparison rows
        - summary: headline numbers, or None if there was too little data

    Raises:
        ValueError: If the comparison trace has no position samples and no
                    comparison_window was given.
    """
    aligned = align_traces(reference, comparison, window, comparison_window)
    comparison_window = aligned.comparison_window
    located = aligned.located
    reference_metrics = aligned.reference_metrics
    comparison_metrics = aligned.comparison_metrics
    deltas = aligned.deltas

    closing = smoothing.compute_closing_rate(deltas)

    reference_yaw = motion.compute_yaw_rate(reference.motion, window, axis=yaw_axis)
    comparison_yaw = (
        motion.compute_yaw_rate(comparison.motion, comparison_window, axis=yaw_axis)
        if comparison_window is not None else []
    )

    comparison_payload = _trace_payload(comparison_window, comparison_metrics, comparison_yaw)
    comparison_payload["bounds"] = located.to_dict() if located else None

    return {
        "reference": _trace_payload(window, reference_metrics, reference_yaw),
        "comparison": comparison_payload,
        "time_delta": [d.to_dict() for d in deltas],
        "closing_rate": [utils.round_float(r, 4) for r in closing],
        "speed": build_speed_comparison(deltas, reference_metrics, comparison_metrics),
        "yaw": motion.build_yaw_comparison(reference_yaw, comparison_yaw, reference_metrics),
        "summary": build_summary(reference_metrics, comparison_metrics, deltas) if deltas else None,
    }


def build_lap_candidates(positions: Sequence[PositionSample], line: Coordinate,
                         radius_m: float = constants.DEFAULT_CROSSING_RADIUS_M) -> Dict:
    """
    Build the circuit-mode lap list a user picks a window from.

    Args:
        positions: Position stream of one trace.
        line: Start/finish line coordinate.
        radius_m: Proximity radius in meters. Default 20.

    Returns:
        Dictionary with crossings, laps (first and last not included) and
        the lap_number of the fastest included lap (or None).
    """
    events = crossings.detect_crossings(positions, line, radius_m)
    laps = crossings.find_laps(events)
    best = crossings.fastest_lap(laps)

    return {
        "crossings": [e.to_dict() for e in events],
        "laps": [lap.to_dict() for lap in laps],
        "fastest_lap": best.lap_number if best else None,
    }


def build_run_candidates(positions: Sequence[PositionSample], start: Coordinate,
                         finish: Coordinate,
                         radius_m: float = constants.DEFAULT_CROSSING_RADIUS_M) -> Dict:
    """
    Build the point-to-point run list a user picks a window from.

    Returns:
        Dictionary with runs and the run_number of the fastest run (or None).
    """
    runs = crossings.detect_runs(positions, start, finish, radius_m)
    best = min(runs, key=lambda run: (run.duration_s, run.index)) if runs else None

    return {
        "runs": [run.to_dict() for run in runs],
        "fastest_run": best.run_number if best else None,
    }
