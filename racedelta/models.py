"""
Data Model for Race Delta Analysis

This module defines the immutable records that flow through the pipeline:
raw position/motion samples from the telemetry extractor, the time window a
user selects, and every derived record (metrics, yaw rate, time deltas,
crossings, laps and runs).

All derived records are frozen. Recomputing with a new window or new
reference coordinates produces new records rather than mutating old ones.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from . import constants
from . import utils


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in degrees."""
    lat: float
    lon: float

    def to_dict(self) -> Dict:
        return {"lat": self.lat, "lon": self.lon}


@dataclass(frozen=True)
class PositionSample:
    """
    One raw GPS sample.

    Attributes:
        timestamp_ms: Milliseconds since the trace's own recording start (cts)
        lat: Latitude in degrees
        lon: Longitude in degrees
        speed_2d: Instrument-reported ground speed (m/s), if any
        speed_3d: Instrument-reported 3D speed (m/s), if any
    """
    timestamp_ms: float
    lat: float
    lon: float
    speed_2d: Optional[float] = None
    speed_3d: Optional[float] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)


@dataclass(frozen=True)
class MotionSample:
    """One gyroscope sample: angular rate per axis in rad/s."""
    timestamp_ms: float
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class Trace:
    """Both sample streams from one recording, as delivered by the extractor."""
    positions: Tuple[PositionSample, ...]
    motion: Tuple[MotionSample, ...] = ()

    @classmethod
    def from_samples(cls, positions: Sequence[PositionSample],
                     motion: Sequence[MotionSample] = ()) -> "Trace":
        return cls(tuple(positions), tuple(motion))


@dataclass(frozen=True)
class TimeWindow:
    """
    Inclusive [start_ms, finish_ms] window in one trace's timestamp space.

    Raises:
        ValueError: If finish_ms is not strictly after start_ms.
    """
    start_ms: float
    finish_ms: float

    def __post_init__(self):
        if not self.finish_ms > self.start_ms:
            raise ValueError(
                f"Time window finish ({self.finish_ms}) must be after start ({self.start_ms})"
            )

    @property
    def duration_s(self) -> float:
        return (self.finish_ms - self.start_ms) / 1000.0

    def race_time(self, timestamp_ms: float) -> float:
        """Seconds elapsed since the window start."""
        return (timestamp_ms - self.start_ms) / 1000.0


@dataclass(frozen=True)
class MetricRecord:
    """
    Per-sample derived metrics inside a time window.

    Attributes:
        timestamp_ms: Sample timestamp in the trace's own space
        race_time_s: Seconds since the window start
        lat: Latitude in degrees
        lon: Longitude in degrees
        speed_mps: Instantaneous speed in m/s
        distance_m: Cumulative path distance from the window start
    """
    timestamp_ms: float
    race_time_s: float
    lat: float
    lon: float
    speed_mps: float
    distance_m: float

    @property
    def speed_mph(self) -> float:
        return self.speed_mps * constants.MPS_TO_MPH

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)

    def to_dict(self) -> Dict:
        return {
            "timestamp_ms": self.timestamp_ms,
            "race_time_s": utils.round_float(self.race_time_s),
            "lat": utils.coordinate_value(self.lat),
            "lon": utils.coordinate_value(self.lon),
            "speed_mps": utils.round_float(self.speed_mps),
            "speed_mph": utils.round_float(self.speed_mph),
            "distance_m": utils.round_float(self.distance_m),
        }


@dataclass(frozen=True)
class YawRateRecord:
    """Signed rate of turn in degrees/second at a race time."""
    timestamp_ms: float
    race_time_s: float
    yaw_rate_dps: float

    def to_dict(self) -> Dict:
        return {
            "timestamp_ms": self.timestamp_ms,
            "race_time_s": utils.round_float(self.race_time_s),
            "yaw_rate_dps": utils.round_float(self.yaw_rate_dps, digits=2),
        }


@dataclass(frozen=True)
class TimeDeltaRecord:
    """
    Reference vs comparison timing at one reference path distance.

    delta_s is reference race time minus comparison race time, so a
    positive delta means the reference subject is slower at this point.
    comp_timestamp_ms is in the comparison trace's own timestamp space and
    is meant for seeking into that trace. clamped is True when the
    reference distance exceeded the comparison trace's recorded path.
    """
    race_time_s: float
    timestamp_ms: float
    distance_m: float
    comp_race_time_s: float
    comp_timestamp_ms: float
    delta_s: float
    lat: float
    lon: float
    clamped: bool = False

    @property
    def distance_mi(self) -> float:
        return self.distance_m * constants.M_TO_MI

    def to_dict(self) -> Dict:
        return {
            "race_time_s": utils.round_float(self.race_time_s),
            "timestamp_ms": self.timestamp_ms,
            "distance_m": utils.round_float(self.distance_m),
            "distance_mi": utils.round_float(self.distance_mi),
            "comp_race_time_s": utils.round_float(self.comp_race_time_s),
            "comp_timestamp_ms": utils.round_float(self.comp_timestamp_ms, digits=1),
            "delta_s": utils.round_float(self.delta_s),
            "lat": utils.coordinate_value(self.lat),
            "lon": utils.coordinate_value(self.lon),
            "clamped": self.clamped,
        }


@dataclass(frozen=True)
class ComparisonBounds:
    """Start/finish sample indices and timestamps located in a comparison trace."""
    start_index: int
    finish_index: int
    start_ms: float
    finish_ms: float

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_ms, self.finish_ms)

    def to_dict(self) -> Dict:
        return {
            "start_index": self.start_index,
            "finish_index": self.finish_index,
            "start_ms": self.start_ms,
            "finish_ms": self.finish_ms,
        }


@dataclass(frozen=True)
class CrossingEvent:
    """
    A de-duplicated close approach to a reference coordinate.

    timestamp_ms comes from the middle sample of the proximity cluster;
    first_index/last_index span the cluster in the sorted stream.
    """
    timestamp_ms: float
    index: int
    first_index: int
    last_index: int

    def to_dict(self) -> Dict:
        return {
            "timestamp_ms": self.timestamp_ms,
            "index": self.index,
            "first_index": self.first_index,
            "last_index": self.last_index,
        }


@dataclass(frozen=True)
class Lap:
    """
    Interval between two consecutive crossings of a single line (circuit mode).

    index is zero-based; lap_number is the 1-based display number.
    """
    index: int
    start_ms: float
    finish_ms: float
    included: bool = True

    @property
    def lap_number(self) -> int:
        return self.index + 1

    @property
    def duration_s(self) -> float:
        return (self.finish_ms - self.start_ms) / 1000.0

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_ms, self.finish_ms)

    def to_dict(self) -> Dict:
        return {
            "lap_number": self.lap_number,
            "start_ms": self.start_ms,
            "finish_ms": self.finish_ms,
            "duration_s": utils.round_float(self.duration_s),
            "included": self.included,
        }


@dataclass(frozen=True)
class Run:
    """
    A start-line crossing paired with the next finish-line crossing
    (point-to-point mode).
    """
    index: int
    start_ms: float
    finish_ms: float

    @property
    def run_number(self) -> int:
        return self.index + 1

    @property
    def duration_s(self) -> float:
        return (self.finish_ms - self.start_ms) / 1000.0

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_ms, self.finish_ms)

    def to_dict(self) -> Dict:
        return {
            "run_number": self.run_number,
            "start_ms": self.start_ms,
            "finish_ms": self.finish_ms,
            "duration_s": utils.round_float(self.duration_s),
        }
