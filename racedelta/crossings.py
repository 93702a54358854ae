"""
Crossing Segmentation for Race Delta Analysis

This module detects repeated passes near a reference coordinate and turns
them into laps (circuit mode) or runs (point-to-point mode).

A pass usually produces several consecutive samples inside the proximity
radius (GPS jitter, slow speed or a stop near the line). Index-adjacent hits
are grouped into one cluster, and each cluster becomes one CrossingEvent
stamped with its middle sample.
"""

import logging
from dataclasses import replace

import numpy as np
from typing import Iterable, List, Optional, Sequence

from . import constants
from . import geodesy
from . import time_series
from .models import Coordinate, CrossingEvent, Lap, PositionSample, Run

logger = logging.getLogger(__name__)


def cluster_indices(indices: Sequence[int]) -> List[List[int]]:
    """
    Group sorted indices into runs of consecutive values.

    A gap of more than one index starts a new cluster.

    Args:
        indices: Ascending stream indices.

    Returns:
        List of clusters, each a list of indices.
    """
    clusters = []
    current = []

    for idx in indices:
        if current and idx - current[-1] > 1:
            clusters.append(current)
            current = []
        current.append(int(idx))

    if current:
        clusters.append(current)
    return clusters


def detect_crossings(samples: Sequence[PositionSample], reference: Coordinate,
                     radius_m: float = constants.DEFAULT_CROSSING_RADIUS_M) -> List[CrossingEvent]:
    """
    Detect de-duplicated close approaches to a reference coordinate.

    Args:
        samples: Position stream in any order; indices in the returned events
                 refer to the timestamp-sorted stream.
        reference: Line coordinate to test proximity against.
        radius_m: Proximity radius in meters (inclusive). Default 20.

    Returns:
        CrossingEvents in time order.
    """
    ordered = time_series.sort_positions(samples)
    if not ordered:
        return []

    distances = geodesy.distances_to(ordered, reference)
    nearby = np.flatnonzero(distances <= radius_m)
    clusters = cluster_indices(nearby)

    events = []
    for cluster in clusters:
        mid = cluster[len(cluster) // 2]
        events.append(CrossingEvent(
            timestamp_ms=ordered[mid].timestamp_ms,
            index=mid,
            first_index=cluster[0],
            last_index=cluster[-1],
        ))

    logger.debug(
        "%d samples within %.0fm formed %d crossings", len(nearby), radius_m, len(events)
    )
    return events


def find_laps(crossings: Sequence[CrossingEvent], exclude_edges: bool = True) -> List[Lap]:
    """
    Build laps from consecutive crossings of one line.

    The first and last laps are usually an out-lap and an in-lap, so by
    default they are returned with included=False. Callers can flip any lap
    back with include_laps().

    Args:
        crossings: CrossingEvents in time order.
        exclude_edges: Mark the first and last lap as not included. Default True.

    Returns:
        List of Lap, one per consecutive crossing pair (empty if fewer
        than two crossings).
    """
    if len(crossings) < 2:
        return []

    count = len(crossings) - 1
    laps = []
    for i in range(count):
        edge = i == 0 or i == count - 1
        laps.append(Lap(
            index=i,
            start_ms=crossings[i].timestamp_ms,
            finish_ms=crossings[i + 1].timestamp_ms,
            included=not (exclude_edges and edge),
        ))
    return laps


def include_laps(laps: Sequence[Lap], indices: Iterable[int], included: bool = True) -> List[Lap]:
    """
    Return a copy of laps with the given zero-based indices (re)included or excluded.

    Args:
        laps: Lap records.
        indices: Zero-based lap indices to change.
        included: New included flag for those laps. Default True.

    Returns:
        New list of Lap; the input is not modified.
    """
    targets = set(indices)
    return [replace(lap, included=included) if lap.index in targets else lap for lap in laps]


def fastest_lap(laps: Sequence[Lap]) -> Optional[Lap]:
    """Shortest included lap (earliest on ties), or None if none are included."""
    candidates = [lap for lap in laps if lap.included]
    if not candidates:
        return None
    return min(candidates, key=lambda lap: (lap.duration_s, lap.index))


def pair_runs(starts: Sequence[CrossingEvent], finishes: Sequence[CrossingEvent]) -> List[Run]:
    """
    Pair start crossings with the finish crossings that follow them.

    Each start is paired with the first finish strictly after it. When
    another start also precedes that same finish, the later start wins,
    since the subject passed the start area again before setting off.
    Unmatched trailing starts and finishes without a preceding start are
    dropped.

    Args:
        starts: Start-line CrossingEvents in time order.
        finishes: Finish-line CrossingEvents in time order, from the same
                  sorted stream as starts.

    Returns:
        List of non-overlapping Runs in time order.
    """
    runs = []
    f = 0

    for s, start in enumerate(starts):
        while f < len(finishes) and finishes[f].index <= start.index:
            f += 1
        if f == len(finishes):
            break

        finish = finishes[f]
        if s + 1 < len(starts) and starts[s + 1].index < finish.index:
            continue

        runs.append(Run(index=len(runs), start_ms=start.timestamp_ms, finish_ms=finish.timestamp_ms))
        f += 1

    return runs


def detect_runs(samples: Sequence[PositionSample], start: Coordinate, finish: Coordinate,
                radius_m: float = constants.DEFAULT_CROSSING_RADIUS_M) -> List[Run]:
    """
    Detect point-to-point runs from distinct start and finish coordinates.

    Crossings of each coordinate are clustered independently, then paired
    with pair_runs().

    Args:
        samples: Position stream in any order.
        start: Start-line coordinate.
        finish: Finish-line coordinate.
        radius_m: Proximity radius in meters. Default 20.

    Returns:
        List of Run in time order.
    """
    starts = detect_crossings(samples, start, radius_m)
    finishes = detect_crossings(samples, finish, radius_m)
    runs = pair_runs(starts, finishes)

    logger.debug(
        "%d start and %d finish crossings paired into %d runs",
        len(starts), len(finishes), len(runs),
    )
    return runs
