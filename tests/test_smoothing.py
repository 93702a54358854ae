"""
Unit tests for racedelta/smoothing.py

Tests the boundary-shrinking moving average, smoothed acceleration and the
trailing-window closing rate.
"""
import numpy as np
import pytest

from racedelta.models import MetricRecord, TimeDeltaRecord
from racedelta.smoothing import compute_acceleration, compute_closing_rate, moving_average


def metrics_from_speeds(speeds, dt_s=1.0):
    return [MetricRecord(i * dt_s * 1000, i * dt_s, 0.0, 0.0, v, 0.0) for i, v in enumerate(speeds)]


def deltas_from(times, values):
    return [TimeDeltaRecord(t, t * 1000, 0.0, t, t * 1000, v, 0.0, 0.0) for t, v in zip(times, values)]


class TestMovingAverage:
    """Tests for moving_average()."""

    def test_window_shrinks_at_boundaries(self):
        np.testing.assert_allclose(moving_average([1, 2, 3, 4, 5]), [2.0, 2.5, 3.0, 3.5, 4.0])

    def test_single_value(self):
        np.testing.assert_allclose(moving_average([7.0]), [7.0])

    def test_empty(self):
        assert moving_average([]).size == 0


class TestComputeAcceleration:
    """Tests for compute_acceleration()."""

    def test_constant_acceleration(self):
        accel = compute_acceleration(metrics_from_speeds([0, 1, 2, 3, 4, 5]))
        assert accel == pytest.approx([1.0] * 6)

    def test_last_sample_repeats_previous_difference(self):
        accel = compute_acceleration(metrics_from_speeds([0.0, 2.0]), window=1)
        assert accel == pytest.approx([2.0, 2.0])

    def test_short_steps_give_zero(self):
        metrics = [
            MetricRecord(0, 0.0, 0, 0, 0.0, 0),
            MetricRecord(5, 0.005, 0, 0, 10.0, 0),
            MetricRecord(1005, 1.005, 0, 0, 11.0, 0),
        ]
        assert compute_acceleration(metrics, window=1)[0] == 0.0

    def test_smoothing_spreads_a_spike(self):
        accel = compute_acceleration(metrics_from_speeds([0, 0, 0, 5, 5, 5, 5]))
        assert max(accel) < 5.0
        assert len(accel) == 7

    def test_insufficient_data(self):
        assert compute_acceleration(metrics_from_speeds([3.0])) == []


class TestComputeClosingRate:
    """Tests for compute_closing_rate()."""

    def test_linear_delta_gives_constant_rate(self):
        times = [float(t) for t in range(11)]
        rates = compute_closing_rate(deltas_from(times, [0.1 * t for t in times]))

        assert rates[0] == 0.0
        assert rates[1:] == pytest.approx([0.1] * 10)

    def test_uses_point_at_least_window_back(self):
        times = [0.0, 1.0, 2.0, 6.0, 7.0]
        values = [0.0, 5.0, 5.0, 5.0, 9.0]
        rates = compute_closing_rate(deltas_from(times, values), window_s=5.0)

        # i=3: latest j with span >= 5 s is t=1.0
        assert rates[3] == pytest.approx(0.0)
        # i=4: latest j with span >= 5 s is t=2.0
        assert rates[4] == pytest.approx((9.0 - 5.0) / 5.0)

    def test_short_span_is_zero(self):
        rates = compute_closing_rate(deltas_from([0.0, 0.05], [0.0, 1.0]))
        assert rates == [0.0, 0.0]

    def test_negative_when_gaining(self):
        rates = compute_closing_rate(deltas_from([0.0, 1.0], [0.0, -0.2]))
        assert rates[1] == pytest.approx(-0.2)

    def test_empty(self):
        assert compute_closing_rate([]) == []
