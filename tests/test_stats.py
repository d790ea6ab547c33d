"""Tests for sample aggregation."""

import pytest

from helpers import MB, make_sample
from prove_perf import NoSamplesError, grand_summary, summarize, summarize_by_label


class TestSummarize:
    def test_independent_labels(self):
        samples = [make_sample("A", ms) for ms in (10, 20, 30)]
        samples += [make_sample("B", ms) for ms in (5, 5, 5)]

        stats = summarize_by_label(samples)
        assert stats["A"].avg_time_ms == pytest.approx(20.0)
        assert stats["B"].avg_time_ms == pytest.approx(5.0)
        assert stats["A"].count == 3
        assert stats["A"].min_time_ms == pytest.approx(10.0)
        assert stats["A"].max_time_ms == pytest.approx(30.0)

    def test_empty_raises(self):
        with pytest.raises(NoSamplesError):
            summarize([])

    def test_no_samples_error_is_value_error(self):
        with pytest.raises(ValueError):
            summarize([], operation="nothing")

    def test_memory_fields(self):
        samples = [
            make_sample("mem", 1, heap_used_delta=2 * MB, heap_total_after=50 * MB),
            make_sample("mem", 1, heap_used_delta=-1 * MB, heap_total_after=80 * MB),
            make_sample("mem", 1, heap_used_delta=5 * MB, heap_total_after=60 * MB),
        ]
        stats = summarize(samples)
        assert stats.avg_memory_mb == pytest.approx(2.0)
        assert stats.peak_memory_mb == pytest.approx(80.0)

    def test_operation_defaults_to_first_label(self):
        assert summarize([make_sample("first", 1)]).operation == "first"
        assert summarize([make_sample("first", 1)], operation="other").operation == "other"

    def test_equal_durations_keep_ordering(self):
        stats = summarize([make_sample("same", 0.1) for _ in range(3)])
        assert stats.min_time_ms <= stats.avg_time_ms <= stats.max_time_ms

    def test_to_dict_keys(self):
        stats = summarize([make_sample("k", 1)])
        assert list(stats.to_dict()) == [
            "operation",
            "count",
            "avgTimeMs",
            "minTimeMs",
            "maxTimeMs",
            "avgMemoryMB",
            "peakMemoryMB",
        ]


class TestSummarizeByLabel:
    def test_empty_is_empty_dict(self):
        assert summarize_by_label([]) == {}

    def test_first_seen_order(self):
        samples = [make_sample(label, 1) for label in ("z", "a", "z", "m")]
        assert list(summarize_by_label(samples)) == ["z", "a", "m"]


class TestGrandSummary:
    def test_folds_every_label(self):
        samples = [
            make_sample("A", 10, heap_used_delta=MB),
            make_sample("B", 30, heap_used_delta=3 * MB),
        ]
        overall = grand_summary(samples)
        assert overall.total_tests == 2
        assert overall.total_duration_ms == pytest.approx(40.0)
        assert overall.average_duration_ms == pytest.approx(20.0)
        assert overall.total_memory_delta == 4 * MB
        assert overall.average_memory_delta == pytest.approx(2 * MB)

    def test_empty_raises(self):
        with pytest.raises(NoSamplesError):
            grand_summary([])

    def test_to_dict_keys(self):
        payload = grand_summary([make_sample("A", 1)]).to_dict()
        assert set(payload) == {
            "totalDuration",
            "averageDuration",
            "totalMemoryDelta",
            "averageMemoryDelta",
        }
