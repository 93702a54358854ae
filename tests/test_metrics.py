"""
Unit tests for racedelta/metrics.py

Tests windowing, speed resolution and trapezoidal distance integration.
"""
import numpy as np
import pytest

from conftest import LAT_STEP_M, northbound
from racedelta.metrics import add_cumulative_distance, compute_metrics, resolve_speeds, total_distance
from racedelta.models import PositionSample, TimeWindow


class TestComputeMetrics:
    """Tests for compute_metrics()."""

    def test_three_sample_scenario(self, three_sample_trace):
        records = compute_metrics(three_sample_trace, TimeWindow(0, 2000))

        assert len(records) == 3
        assert records[1].speed_mps == pytest.approx(LAT_STEP_M, rel=1e-3)
        assert records[2].speed_mps == pytest.approx(LAT_STEP_M, rel=1e-3)
        assert records[1].distance_m == pytest.approx(11.12, abs=0.1)
        assert records[2].distance_m == pytest.approx(22.2, abs=0.2)

    def test_first_sample_speed_comes_from_next_segment(self, three_sample_trace):
        records = compute_metrics(three_sample_trace, TimeWindow(0, 2000))
        assert records[0].speed_mps == pytest.approx(records[1].speed_mps)
        assert records[0].distance_m == 0.0

    def test_race_time_is_relative_to_window_start(self):
        records = compute_metrics(northbound(5), TimeWindow(500, 3000))

        assert [r.timestamp_ms for r in records] == [1000, 2000, 3000]
        assert [r.race_time_s for r in records] == pytest.approx([0.5, 1.5, 2.5])

    def test_window_bounds_are_inclusive(self):
        records = compute_metrics(northbound(5), TimeWindow(1000, 3000))
        assert len(records) == 3

    @pytest.mark.parametrize("window", [
        TimeWindow(0, 500),        # one sample
        TimeWindow(10000, 20000),  # none
    ])
    def test_insufficient_data_returns_empty(self, window):
        assert compute_metrics(northbound(3), window) == []

    def test_empty_stream(self):
        assert compute_metrics([], TimeWindow(0, 1000)) == []

    def test_unsorted_input_is_sorted(self):
        samples = northbound(4)
        shuffled = [samples[2], samples[0], samples[3], samples[1]]

        assert compute_metrics(shuffled, TimeWindow(0, 3000)) == compute_metrics(samples, TimeWindow(0, 3000))

    def test_instrument_speed_is_preferred(self):
        records = compute_metrics(northbound(3, speed_2d=5.0), TimeWindow(0, 2000))

        assert [r.speed_mps for r in records] == pytest.approx([5.0, 5.0, 5.0])
        assert records[-1].distance_m == pytest.approx(10.0)

    def test_speed_mph(self):
        records = compute_metrics(northbound(3, speed_2d=10.0), TimeWindow(0, 2000))
        assert records[0].speed_mph == pytest.approx(22.3694)

    def test_duplicate_timestamps_add_no_distance(self):
        samples = [
            PositionSample(0, 0.0, 0.0),
            PositionSample(1000, 0.0001, 0.0),
            PositionSample(1000, 0.0002, 0.0),
            PositionSample(2000, 0.0003, 0.0),
        ]
        records = compute_metrics(samples, TimeWindow(0, 2000))

        assert records[2].speed_mps == 0.0
        assert records[2].distance_m == pytest.approx(records[1].distance_m)

    def test_distance_never_decreases_when_doubling_back(self):
        lats = [0.0, 0.0002, 0.0001, 0.0003, 0.0, 0.0, 0.0004]
        samples = [PositionSample(i * 1000, lat, 0.0) for i, lat in enumerate(lats)]
        distances = [r.distance_m for r in compute_metrics(samples, TimeWindow(0, 6000))]

        assert all(b >= a for a, b in zip(distances, distances[1:]))

    def test_total_distance(self, three_sample_trace):
        records = compute_metrics(three_sample_trace, TimeWindow(0, 2000))
        assert total_distance(records) == records[-1].distance_m
        assert total_distance([]) == 0.0


class TestSpeedAndDistanceHelpers:
    """Tests for resolve_speeds() and add_cumulative_distance()."""

    def test_resolve_speeds_mixes_sources(self):
        instrument = np.array([np.nan, 0.0, 7.0])
        derived = np.array([3.0, 4.0])
        np.testing.assert_allclose(resolve_speeds(instrument, derived), [3.0, 3.0, 7.0])

    def test_trapezoidal_integration(self):
        speeds = np.array([0.0, 2.0, 2.0, 4.0])
        timestamps = np.array([0.0, 1000.0, 2000.0, 4000.0])
        np.testing.assert_allclose(add_cumulative_distance(speeds, timestamps), [0.0, 1.0, 3.0, 9.0])

    def test_empty_input(self):
        assert add_cumulative_distance(np.array([]), np.array([])).size == 0
