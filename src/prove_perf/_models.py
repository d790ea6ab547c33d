"""Immutable records shared by the sampler, aggregator, exporter and renderer."""

from dataclasses import dataclass
from datetime import datetime

from prove_perf._errors import ConfigurationError
from prove_perf._memory import BYTES_PER_MB, MemoryDelta, MemorySnapshot


@dataclass(frozen=True)
class Sample:
    """One trial's recorded time and memory measurement.

    Attributes:
        label: Operation label the trial belongs to
        start_ns: Monotonic start timestamp (perf_counter_ns)
        end_ns: Monotonic end timestamp (perf_counter_ns)
        memory_before: Snapshot taken just before the start timestamp
        memory_after: Snapshot taken just after the end timestamp
        wall_clock: UTC wall-clock time when the trial started

    Design by Contract:
        - end_ns >= start_ns (crashes otherwise, monotonic clock went backwards)
        - memory deltas can be negative (reclamation exceeded allocation)
    """

    label: str
    start_ns: int
    end_ns: int
    memory_before: MemorySnapshot
    memory_after: MemorySnapshot
    wall_clock: datetime

    def __post_init__(self) -> None:
        assert self.label, "Sample label must be non-empty"
        assert self.end_ns >= self.start_ns, (
            f"Duration cannot be negative: start={self.start_ns}ns end={self.end_ns}ns. "
            f"Monotonic clock went backwards or timing bug."
        )
        assert self.wall_clock.tzinfo is not None, "wall_clock must be timezone-aware"

    @property
    def duration_ms(self) -> float:
        return (self.end_ns - self.start_ns) / 1_000_000

    @property
    def duration_seconds(self) -> float:
        return (self.end_ns - self.start_ns) / 1_000_000_000

    @property
    def memory_delta(self) -> MemoryDelta:
        return self.memory_after.delta(self.memory_before)

    @property
    def peak_memory_absolute(self) -> int:
        """Heap total at sample end, in bytes.

        Instantaneous value, not a high-water mark: transient spikes inside
        the trial are not observed.
        """
        return self.memory_after.heap_total

    @property
    def memory_delta_mb(self) -> float:
        return self.memory_delta.heap_used / BYTES_PER_MB

    @property
    def peak_memory_mb(self) -> float:
        return self.peak_memory_absolute / BYTES_PER_MB


@dataclass(frozen=True)
class TrackerConfig:
    """Configuration for a benchmarking run.

    Args:
        verbose: Log every trial at INFO instead of DEBUG
        warmup_iterations: Untracked calls before measured trials (>= 0)
        iterations: Default number of tracked trials (>= 1)
    """

    verbose: bool = False
    warmup_iterations: int = 0
    iterations: int = 10

    def __post_init__(self) -> None:
        validate_counts(self.iterations, self.warmup_iterations)

    def to_dict(self) -> dict[str, bool | int]:
        return {
            "verbose": self.verbose,
            "warmupIterations": self.warmup_iterations,
            "iterations": self.iterations,
        }


def validate_counts(iterations: int, warmup_iterations: int) -> None:
    """Raise ConfigurationError unless iterations >= 1 and warmup >= 0."""
    if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 1:
        raise ConfigurationError(f"iterations must be an integer >= 1: {iterations!r}")
    if (
        isinstance(warmup_iterations, bool)
        or not isinstance(warmup_iterations, int)
        or warmup_iterations < 0
    ):
        raise ConfigurationError(
            f"warmup_iterations must be an integer >= 0: {warmup_iterations!r}"
        )
