"""Property-based tests for prove_perf using Hypothesis.

These tests verify the counting, ordering and aggregation invariants for
arbitrary inputs, including float durations that do not average exactly.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from helpers import EPOCH, MB, StaticProbe, make_sample
from prove_perf import (
    ConfigurationError,
    NoSamplesError,
    PerformanceTracker,
    Sampler,
    TrackerConfig,
    build_export,
    render_dashboard,
    samples_from_nested,
    summarize,
    summarize_by_label,
)

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

# Durations in ms with at most nanosecond resolution, as the sampler records them
valid_duration = st.integers(min_value=0, max_value=10**12).map(lambda ns: ns / 1_000_000)

valid_delta = st.integers(min_value=-512 * MB, max_value=512 * MB)

valid_heap_total = st.integers(min_value=0, max_value=64 * 1024 * MB)

labels = st.sampled_from(["Setup", "Proof Generation", "Proof Verification", "KV"])

sample_specs = st.lists(
    st.tuples(labels, valid_duration, valid_delta, valid_heap_total),
    min_size=1,
    max_size=30,
)

iterations = st.integers(min_value=1, max_value=20)
warmups = st.integers(min_value=0, max_value=5)


def build_samples(specs):
    return [
        make_sample(label, ms, heap_used_delta=delta, heap_total_after=total, index=i)
        for i, (label, ms, delta, total) in enumerate(specs)
    ]


def make_tracker() -> PerformanceTracker:
    return PerformanceTracker(TrackerConfig(), sampler=Sampler(probe=StaticProbe()))


# ---------------------------------------------------------------------------
# Aggregation invariants
# ---------------------------------------------------------------------------

class TestSummaryProperties:
    @given(specs=sample_specs)
    def test_min_le_avg_le_max(self, specs):
        for summary in summarize_by_label(build_samples(specs)).values():
            assert summary.min_time_ms <= summary.avg_time_ms <= summary.max_time_ms

    @given(specs=sample_specs)
    def test_counts_match_contributing_samples(self, specs):
        stats = summarize_by_label(build_samples(specs))
        for label, summary in stats.items():
            assert summary.count == sum(1 for spec in specs if spec[0] == label)
        assert sum(s.count for s in stats.values()) == len(specs)

    @given(specs=sample_specs)
    def test_peak_is_max_heap_total(self, specs):
        summary = summarize(build_samples(specs))
        assert summary.peak_memory_mb == pytest.approx(max(spec[3] for spec in specs) / MB)

    @given(duration=valid_duration, n=st.integers(min_value=1, max_value=50))
    def test_identical_durations_average_to_themselves(self, duration, n):
        summary = summarize([make_sample("same", duration) for _ in range(n)])
        assert summary.min_time_ms == summary.avg_time_ms == summary.max_time_ms

    def test_empty_never_returns_numbers(self):
        with pytest.raises(NoSamplesError):
            summarize([])


# ---------------------------------------------------------------------------
# Tracker counting contract
# ---------------------------------------------------------------------------

class TestBenchmarkProperties:
    @given(n=iterations, w=warmups)
    @settings(max_examples=30)
    def test_calls_and_samples(self, n, w):
        tracker = make_tracker()
        calls = []
        stats = tracker.benchmark("op", lambda: calls.append(1), iterations=n, warmup=w)
        assert len(calls) == n + w
        assert len(tracker.samples) == n
        assert stats.count == n
        assert all(s.duration_ms >= 0 for s in tracker.samples)

    @given(data=st.data())
    @settings(max_examples=30)
    def test_failure_on_trial_k_keeps_k_minus_one(self, data):
        n = data.draw(iterations)
        w = data.draw(warmups)
        k = data.draw(st.integers(min_value=1, max_value=n))
        tracker = make_tracker()
        calls = []

        def fails_on_k():
            calls.append(1)
            if len(calls) == w + k:
                raise RuntimeError("operation failed")

        with pytest.raises(RuntimeError, match="operation failed"):
            tracker.benchmark("op", fails_on_k, iterations=n, warmup=w)
        assert len(tracker.samples) == k - 1
        assert len(calls) == w + k

    @given(n=st.integers(max_value=0), w=warmups)
    def test_non_positive_iterations_raise(self, n, w):
        with pytest.raises(ConfigurationError):
            make_tracker().benchmark("op", lambda: None, iterations=n, warmup=w)

    @given(w=st.integers(max_value=-1))
    def test_negative_warmup_raises(self, w):
        with pytest.raises(ConfigurationError):
            TrackerConfig(warmup_iterations=w)


# ---------------------------------------------------------------------------
# Export and render
# ---------------------------------------------------------------------------

class TestArtifactProperties:
    @given(specs=sample_specs)
    @settings(max_examples=50)
    def test_nested_round_trip_preserves_fields(self, specs):
        samples = build_samples(specs)
        rebuilt = samples_from_nested(build_export(samples, TrackerConfig()).to_nested())
        for original, copy in zip(samples, rebuilt, strict=True):
            assert copy.label == original.label
            assert copy.duration_ms == round(original.duration_ms, 2)
            assert copy.memory_before == original.memory_before
            assert copy.memory_after == original.memory_after

    @given(specs=st.lists(st.tuples(labels, valid_duration, valid_delta, valid_heap_total), max_size=15))
    @settings(max_examples=50)
    def test_render_is_idempotent(self, specs):
        samples = build_samples(specs)
        summaries = list(summarize_by_label(samples).values())
        first = render_dashboard(samples, summaries, generated_at=EPOCH)
        second = render_dashboard(samples, summaries, generated_at=EPOCH)
        assert first == second
