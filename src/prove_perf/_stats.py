"""Reduce samples into summaries.

Summaries are derived views: they can be recomputed from the samples at any
time and carry no state of their own.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from beartype import beartype

from prove_perf._errors import NoSamplesError
from prove_perf._memory import BYTES_PER_MB
from prove_perf._models import Sample


@dataclass(frozen=True)
class Summary:
    """Statistics over the samples of one operation label.

    Invariant: min_time_ms <= avg_time_ms <= max_time_ms.
    """

    operation: str
    count: int
    avg_time_ms: float
    min_time_ms: float
    max_time_ms: float
    avg_memory_mb: float
    peak_memory_mb: float

    def to_dict(self) -> dict[str, str | int | float]:
        return {
            "operation": self.operation,
            "count": self.count,
            "avgTimeMs": self.avg_time_ms,
            "minTimeMs": self.min_time_ms,
            "maxTimeMs": self.max_time_ms,
            "avgMemoryMB": self.avg_memory_mb,
            "peakMemoryMB": self.peak_memory_mb,
        }


@dataclass(frozen=True)
class GrandSummary:
    """Every label's samples folded together.

    Durations in milliseconds, memory deltas in bytes of heap used.
    """

    total_tests: int
    total_duration_ms: float
    average_duration_ms: float
    total_memory_delta: int
    average_memory_delta: float

    def to_dict(self) -> dict[str, float]:
        return {
            "totalDuration": self.total_duration_ms,
            "averageDuration": self.average_duration_ms,
            "totalMemoryDelta": self.total_memory_delta,
            "averageMemoryDelta": self.average_memory_delta,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], total_tests: int) -> "GrandSummary":
        """Inverse of to_dict(); the export keeps the test count in metadata."""
        return cls(
            total_tests=total_tests,
            total_duration_ms=float(data["totalDuration"]),
            average_duration_ms=float(data["averageDuration"]),
            total_memory_delta=int(data["totalMemoryDelta"]),
            average_memory_delta=float(data["averageMemoryDelta"]),
        )


@beartype
def summarize(samples: Sequence[Sample], operation: str | None = None) -> Summary:
    """Summarize samples into a Summary.

    Args:
        samples: Samples to reduce (normally all sharing one label)
        operation: Label to report; defaults to the first sample's label

    Raises:
        NoSamplesError: if ``samples`` is empty
    """
    if not samples:
        raise NoSamplesError(
            f"Cannot summarize zero samples for operation {operation!r}"
        )

    durations = [s.duration_ms for s in samples]
    lo = min(durations)
    hi = max(durations)
    # rounding can push the mean a hair past an extremum
    mean = math.fsum(durations) / len(durations)
    avg = min(max(mean, lo), hi)

    avg_delta = math.fsum(s.memory_delta.heap_used for s in samples) / len(samples)
    peak = max(s.peak_memory_absolute for s in samples)

    return Summary(
        operation=operation if operation is not None else samples[0].label,
        count=len(samples),
        avg_time_ms=avg,
        min_time_ms=lo,
        max_time_ms=hi,
        avg_memory_mb=avg_delta / BYTES_PER_MB,
        peak_memory_mb=peak / BYTES_PER_MB,
    )


@beartype
def group_by_label(samples: Sequence[Sample]) -> dict[str, list[Sample]]:
    """Group samples by label, preserving first-seen label order."""
    grouped: dict[str, list[Sample]] = {}
    for sample in samples:
        grouped.setdefault(sample.label, []).append(sample)
    return grouped


@beartype
def summarize_by_label(samples: Sequence[Sample]) -> dict[str, Summary]:
    """Summarize each label independently. Empty input yields an empty dict."""
    return {
        label: summarize(group, operation=label)
        for label, group in group_by_label(samples).items()
    }


@beartype
def grand_summary(samples: Sequence[Sample]) -> GrandSummary:
    """Fold every label's samples into one top-level summary.

    Raises:
        NoSamplesError: if ``samples`` is empty
    """
    if not samples:
        raise NoSamplesError("Cannot build a grand summary from zero samples")

    total_duration = math.fsum(s.duration_ms for s in samples)
    total_delta = sum(s.memory_delta.heap_used for s in samples)
    return GrandSummary(
        total_tests=len(samples),
        total_duration_ms=total_duration,
        average_duration_ms=total_duration / len(samples),
        total_memory_delta=total_delta,
        average_memory_delta=total_delta / len(samples),
    )
