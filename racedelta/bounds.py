"""
Cross-Trace Bounds Location for Race Delta Analysis

This module finds where a comparison trace passes the start and finish
coordinates taken from the reference trace's selected window.
"""

import logging

import numpy as np
from typing import Sequence

from . import geodesy
from . import time_series
from .models import ComparisonBounds, Coordinate, MetricRecord, PositionSample

logger = logging.getLogger(__name__)


def find_comparison_bounds(samples: Sequence[PositionSample], start: Coordinate,
                           finish: Coordinate) -> ComparisonBounds:
    """
    Locate the start and finish of a course in a comparison trace.

    The start is the sample closest to the start coordinate over the whole
    stream (first occurrence on ties). The finish is the sample closest to
    the finish coordinate among samples strictly after the start, so a pass
    near the finish before the start line can never be chosen. When no
    sample follows the start, the finish falls back to the last sample.

    Args:
        samples: Full comparison position stream in any order.
        start: Start coordinate from the reference trace.
        finish: Finish coordinate from the reference trace.

    Returns:
        ComparisonBounds with indices into the timestamp-sorted stream and
        timestamps in the comparison trace's own space.

    Raises:
        ValueError: If the comparison stream is empty.
    """
    ordered = time_series.sort_positions(samples)
    if not ordered:
        raise ValueError("Comparison trace has no position samples")

    start_idx = int(np.argmin(geodesy.distances_to(ordered, start)))
    finish_idx = len(ordered) - 1

    after = ordered[start_idx + 1:]
    if after:
        finish_idx = start_idx + 1 + int(np.argmin(geodesy.distances_to(after, finish)))
    else:
        logger.debug("Start matched the last comparison sample; finish falls back to it")

    logger.debug("Comparison bounds: start idx %d, finish idx %d", start_idx, finish_idx)
    return ComparisonBounds(
        start_index=start_idx,
        finish_index=finish_idx,
        start_ms=ordered[start_idx].timestamp_ms,
        finish_ms=ordered[finish_idx].timestamp_ms,
    )


def bounds_from_metrics(samples: Sequence[PositionSample],
                        reference_metrics: Sequence[MetricRecord]) -> ComparisonBounds:
    """
    Locate comparison bounds from the first and last reference metric records.

    Raises:
        ValueError: If reference_metrics is empty or the stream is empty.
    """
    if not reference_metrics:
        raise ValueError("Reference metrics are empty; no start/finish coordinates")
    return find_comparison_bounds(
        samples,
        reference_metrics[0].coordinate,
        reference_metrics[-1].coordinate,
    )
