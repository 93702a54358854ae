"""
Pytest configuration and shared fixtures for racedelta tests.

This module provides synthetic GPS and gyro streams used across test modules.
All synthetic courses run along the prime meridian, where 0.0001 degrees of
latitude is about 11.12 m.
"""
import pytest

from racedelta.models import Coordinate, PositionSample


LAT_STEP_M = 11.1195  # 0.0001 deg of latitude on a 6,371 km sphere


def northbound(count, lat_step=0.0001, dt_ms=1000, start_ms=0, speed_2d=None, start_lat=0.0):
    """Straight northbound trace with evenly spaced samples."""
    return [
        PositionSample(
            timestamp_ms=start_ms + i * dt_ms,
            lat=start_lat + i * lat_step,
            lon=0.0,
            speed_2d=speed_2d,
        )
        for i in range(count)
    ]


def stream_from_lats(lats, dt_ms=1000, lon=0.0):
    """Trace visiting the given latitudes one per sample."""
    return [PositionSample(i * dt_ms, lat, lon) for i, lat in enumerate(lats)]


# =============================================================================
# Position Stream Fixtures
# =============================================================================

@pytest.fixture
def three_sample_trace():
    """
    Reference trace: t=0s (0,0), t=1s (0.0001N,0), t=2s (0.0002N,0),
    with zero instrument speed reported.

    Returns:
        list of PositionSample
    """
    return northbound(3, speed_2d=0.0)


@pytest.fixture
def line():
    """Start/finish line coordinate at the origin."""
    return Coordinate(0.0, 0.0)


@pytest.fixture
def far_lat():
    """Latitude far (about 1.1 km) from the origin line."""
    return 0.01


@pytest.fixture
def three_pass_stream(far_lat):
    """
    Stream passing the origin three times.

    Each pass dwells for four samples within 20 m of the line, separated
    by ten samples far away.

    Returns:
        list of PositionSample
    """
    near = [0.00015, 0.00005, -0.00005, -0.00015]  # all within ~17 m
    lats = [far_lat]
    for _ in range(3):
        lats += near
        lats += [far_lat] * 10
    return stream_from_lats(lats)


@pytest.fixture
def five_pass_stream(far_lat):
    """Stream passing the origin five times (two samples per pass)."""
    lats = [far_lat]
    for _ in range(5):
        lats += [0.00005, -0.00005]
        lats += [far_lat] * 5
    return stream_from_lats(lats)


@pytest.fixture
def reference_trace():
    """Eleven samples covering 0.001 deg north in 10 s (about 11.1 m/s)."""
    return northbound(11)


@pytest.fixture
def comparison_trace():
    """
    The same course at half the speed, recorded with a 5 s lead-in from
    the south: the subject crosses the start at cts 5000 and reaches the
    finish at cts 25000.
    """
    lead_in = northbound(5, start_lat=-0.0005)
    return lead_in + northbound(21, lat_step=0.00005, start_ms=5000)
