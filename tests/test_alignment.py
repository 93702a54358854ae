"""
Unit tests for racedelta/alignment.py

Tests the distance-keyed merge of two metric series: interpolation,
clamping beyond the comparison's recorded path, and plateau handling.
"""
import pytest

from racedelta.alignment import compute_time_delta, final_delta, seek_times
from racedelta.models import MetricRecord, TimeDeltaRecord, TimeWindow


def series(distances, times, start_ms=0.0):
    """MetricRecords from parallel distance/race-time lists."""
    return [
        MetricRecord(start_ms + t * 1000.0, t, 0.0, 0.0, 0.0, d)
        for d, t in zip(distances, times)
    ]


@pytest.fixture
def comparison_500m():
    """Comparison covering 500 m at 100 m/s steps, race times 0..5 s, cts from 7000."""
    return series([0, 100, 200, 300, 400, 500], [0, 1, 2, 3, 4, 5], start_ms=7000.0)


@pytest.fixture
def reference_600m():
    """Reference covering 600 m in 4 s."""
    return series([0, 150, 300, 450, 600], [0, 1, 2, 3, 4])


class TestComputeTimeDelta:
    """Tests for compute_time_delta()."""

    def test_one_record_per_reference_sample(self, reference_600m, comparison_500m):
        assert len(compute_time_delta(reference_600m, comparison_500m)) == len(reference_600m)

    def test_interpolates_by_distance(self, reference_600m, comparison_500m):
        deltas = compute_time_delta(reference_600m, comparison_500m)

        assert deltas[1].comp_race_time_s == pytest.approx(1.5)
        assert deltas[1].delta_s == pytest.approx(-0.5)
        assert deltas[1].comp_timestamp_ms == pytest.approx(8500.0)
        assert deltas[3].comp_race_time_s == pytest.approx(4.5)

    def test_beyond_comparison_distance_is_clamped(self, reference_600m, comparison_500m):
        last = compute_time_delta(reference_600m, comparison_500m)[-1]

        assert last.clamped
        assert last.comp_race_time_s == 5.0
        assert last.comp_timestamp_ms == 12000.0
        assert last.delta_s == pytest.approx(4.0 - 5.0)

    def test_clamped_tail_shares_final_comparison_values(self, comparison_500m):
        reference = series([0, 400, 550, 700, 10000], [0, 2, 3, 4, 5])
        tail = compute_time_delta(reference, comparison_500m)[2:]

        assert all(d.clamped for d in tail)
        assert {d.comp_race_time_s for d in tail} == {5.0}
        assert {d.comp_timestamp_ms for d in tail} == {12000.0}

    def test_no_clamp_when_comparison_is_longer(self, comparison_500m):
        reference = series([0, 250, 500], [0, 1, 2])
        deltas = compute_time_delta(reference, comparison_500m)

        assert not any(d.clamped for d in deltas)
        assert deltas[-1].comp_race_time_s == pytest.approx(5.0)

    def test_identical_traces_have_zero_delta(self, comparison_500m):
        deltas = compute_time_delta(comparison_500m, comparison_500m)
        assert [d.delta_s for d in deltas] == pytest.approx([0.0] * len(comparison_500m))

    def test_stationary_comparison_uses_last_sample_at_distance(self):
        # Comparison waits at the start for 2 s before moving
        comparison = series([0, 0, 0, 10, 20], [0, 1, 2, 3, 4])
        reference = series([0, 5, 20], [0, 1, 2])
        deltas = compute_time_delta(reference, comparison)

        assert [d.comp_race_time_s for d in deltas] == pytest.approx([2.0, 2.5, 4.0])

    def test_carries_reference_fields(self, reference_600m, comparison_500m):
        first = compute_time_delta(reference_600m, comparison_500m)[0]

        assert isinstance(first, TimeDeltaRecord)
        assert first.timestamp_ms == reference_600m[0].timestamp_ms
        assert first.distance_m == 0.0

    @pytest.mark.parametrize("reference,comparison", [
        ([], series([0, 1], [0, 1])),
        (series([0, 1], [0, 1]), []),
    ])
    def test_empty_input(self, reference, comparison):
        assert compute_time_delta(reference, comparison) == []

    def test_deterministic(self, reference_600m, comparison_500m):
        first = compute_time_delta(reference_600m, comparison_500m)
        second = compute_time_delta(reference_600m, comparison_500m)
        assert first == second


class TestHelpers:
    """Tests for final_delta() and seek_times()."""

    def test_final_delta(self, reference_600m, comparison_500m):
        assert final_delta(compute_time_delta(reference_600m, comparison_500m)) == pytest.approx(-1.0)
        assert final_delta([]) == 0.0

    def test_seek_times_use_each_trace_timestamp_space(self, reference_600m, comparison_500m):
        record = compute_time_delta(reference_600m, comparison_500m)[1]
        seek = seek_times(record, TimeWindow(30000, 34000))

        assert seek["reference_s"] == pytest.approx(31.0)
        assert seek["comparison_s"] == pytest.approx(8.5)
