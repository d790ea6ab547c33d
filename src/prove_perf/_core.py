"""Core measurement utilities.

Design by Contract (P1 - MANDATORY):
- Durations MUST be non-negative (crash if negative)
- Iteration counts MUST be valid (ConfigurationError otherwise)
- Failures of the measured operation propagate unchanged, never retried
- A failed trial records nothing

Public call signatures use beartype for runtime type enforcement.
Memory snapshots come from an injected MemoryProbe (psutil by default).
"""

import enum
import time
from collections.abc import Awaitable, Callable, Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from beartype import beartype
from loguru import logger

from prove_perf._dashboard import render_dashboard, save_dashboard
from prove_perf._errors import MeasurementStateError, NotFinalizedError
from prove_perf._export import (
    DEFAULT_PREFIX,
    ExportDocument,
    artifact_path,
    build_export,
    write_document,
)
from prove_perf._memory import (
    BYTES_PER_MB,
    MemoryProbe,
    MemorySnapshot,
    PsutilMemoryProbe,
    Reclaimer,
)
from prove_perf._models import Sample, TrackerConfig, validate_counts
from prove_perf._stats import Summary, grand_summary, summarize, summarize_by_label

T = TypeVar("T")


class MeasurementState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINALIZED = "finalized"


class Measurement:
    """Two-phase bracketing of one trial: start(), run the work, stop().

    Args:
        label: Operation label for the resulting Sample
        probe: Memory accessor (default: PsutilMemoryProbe)
        reclaimer: Optional reclamation hook run before the start snapshot

    Example:
        measurement = Measurement("Proof Generation")
        measurement.start()
        proof = prove(statement, witness)
        measurement.stop()
        sample = measurement.get_result()

    Also usable as a context manager; an exception inside the block leaves the
    measurement unfinalized, so get_result() raises NotFinalizedError.

    Design by Contract:
        - IDLE -> RUNNING -> FINALIZED, no other transitions
        - get_result() only in FINALIZED
    """

    @beartype
    def __init__(
        self,
        label: str,
        probe: MemoryProbe | None = None,
        reclaimer: Reclaimer | None = None,
    ) -> None:
        assert label, "Measurement label must be non-empty"
        self.label = label
        self._probe = probe if probe is not None else PsutilMemoryProbe()
        self._reclaimer = reclaimer
        self._state = MeasurementState.IDLE
        self._start_ns: int = 0
        self._end_ns: int = 0
        self._start_memory: MemorySnapshot | None = None
        self._end_memory: MemorySnapshot | None = None
        self._wall_clock: datetime | None = None
        self._sample: Sample | None = None

    @property
    def state(self) -> MeasurementState:
        return self._state

    def start(self) -> "Measurement":
        if self._state is not MeasurementState.IDLE:
            raise MeasurementStateError(
                f"Cannot start measurement {self.label!r} in state {self._state.value}"
            )
        if self._reclaimer is not None:
            self._reclaimer.collect()
        self._start_memory = self._probe.snapshot()
        self._wall_clock = datetime.now(timezone.utc)
        self._state = MeasurementState.RUNNING
        self._start_ns = time.perf_counter_ns()
        return self

    def stop(self) -> "Measurement":
        end_ns = time.perf_counter_ns()
        if self._state is not MeasurementState.RUNNING:
            raise MeasurementStateError(
                f"Cannot stop measurement {self.label!r} in state {self._state.value}"
            )
        self._end_ns = end_ns
        self._end_memory = self._probe.snapshot()
        self._sample = Sample(
            label=self.label,
            start_ns=self._start_ns,
            end_ns=self._end_ns,
            memory_before=self._start_memory,
            memory_after=self._end_memory,
            wall_clock=self._wall_clock,
        )
        self._state = MeasurementState.FINALIZED
        return self

    def get_result(self) -> Sample:
        if self._sample is None:
            raise NotFinalizedError(
                f"Measurement {self.label!r} not completed "
                f"(state: {self._state.value}). Call start() and stop() first."
            )
        return self._sample

    def print_results(self) -> Sample:
        """Log the duration and memory breakdown, then return the Sample."""
        sample = self.get_result()
        rows = (
            ("Start", sample.memory_before),
            ("End", sample.memory_after),
            ("Delta (Change)", sample.memory_delta),
        )

        logger.info("=" * 80)
        logger.info(f"Performance Report: {sample.label}")
        logger.info("=" * 80)
        logger.info(
            f"Duration: {sample.duration_ms:.2f} ms ({sample.duration_seconds:.3f}s)"
        )
        logger.info("Memory Usage:")
        for title, mem in rows:
            logger.info(f"  {title}:")
            logger.info(f"    - RSS:        {_format_mb(mem.rss)}")
            logger.info(f"    - Heap Total: {_format_mb(mem.heap_total)}")
            logger.info(f"    - Heap Used:  {_format_mb(mem.heap_used)}")
            logger.info(f"    - External:   {_format_mb(mem.external)}")
        logger.info("=" * 80)
        return sample

    def __enter__(self) -> "Measurement":
        return self.start()

    def __exit__(self, exc_type: Any, *args: Any) -> None:
        if exc_type is None:
            self.stop()


def _format_mb(num_bytes: int) -> str:
    return f"{num_bytes / BYTES_PER_MB:.2f} MB"


class Sampler:
    """Produces exactly one Sample per successful invocation of a unit of work.

    Args:
        probe: Memory accessor shared by every measurement (default: psutil)
        reclaimer: Optional reclamation hook, e.g. GcReclaimer()
    """

    @beartype
    def __init__(
        self,
        probe: MemoryProbe | None = None,
        reclaimer: Reclaimer | None = None,
    ) -> None:
        self.probe = probe if probe is not None else PsutilMemoryProbe()
        self.reclaimer = reclaimer

    @beartype
    def measurement(self, label: str) -> Measurement:
        return Measurement(label, probe=self.probe, reclaimer=self.reclaimer)

    @beartype
    def measure(self, label: str, fn: Callable[[], T]) -> tuple[T, Sample]:
        """Run ``fn`` once between two snapshots.

        Exceptions from ``fn`` propagate unchanged and no Sample is produced.
        """
        measurement = self.measurement(label).start()
        result = fn()
        measurement.stop()
        return result, measurement.get_result()

    @beartype
    async def measure_async(
        self, label: str, fn: Callable[[], Awaitable[T]]
    ) -> tuple[T, Sample]:
        """Async variant of measure(); suspends only while awaiting ``fn()``."""
        measurement = self.measurement(label).start()
        result = await fn()
        measurement.stop()
        return result, measurement.get_result()


class PerformanceTracker:
    """Runs warmups and tracked trials, accumulating Samples per label.

    Samples are append-only and kept in insertion order. Trials run strictly
    one at a time so each memory snapshot belongs to exactly one trial.

    Args:
        config: Run configuration (default: TrackerConfig())
        sampler: Sampler to measure with (default: psutil probe, no reclaimer)

    Example:
        tracker = PerformanceTracker(TrackerConfig(warmup_iterations=2, iterations=10))
        stats = tracker.benchmark("BoundCheckSnarkSetup", setup_keys)
        tracker.print_stats()
        tracker.save_results(Path("performance-results"))

    Design by Contract:
        - benchmark(N, W) calls fn exactly N + W times and records N Samples
        - failure at tracked trial k keeps Samples 1..k-1 and skips k+1..N
        - warmup failure records nothing
    """

    @beartype
    def __init__(
        self,
        config: TrackerConfig | None = None,
        sampler: Sampler | None = None,
    ) -> None:
        self.config = config if config is not None else TrackerConfig()
        self.sampler = sampler if sampler is not None else Sampler()
        self._samples: list[Sample] = []

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def _append(self, sample: Sample) -> None:
        self._samples.append(sample)
        level = "INFO" if self.config.verbose else "DEBUG"
        logger.log(
            level,
            f"{sample.label}: {sample.duration_ms:.2f}ms, "
            f"Δheap={sample.memory_delta_mb:+.2f}MB, peak={sample.peak_memory_mb:.2f}MB",
        )

    def _resolve_counts(self, iterations: int | None, warmup: int | None) -> tuple[int, int]:
        n = self.config.iterations if iterations is None else iterations
        w = self.config.warmup_iterations if warmup is None else warmup
        validate_counts(n, w)
        return n, w

    @beartype
    def track(self, label: str, fn: Callable[[], T]) -> tuple[T, Sample]:
        """Run one tracked trial and record its Sample."""
        result, sample = self.sampler.measure(label, fn)
        self._append(sample)
        return result, sample

    @beartype
    async def track_async(
        self, label: str, fn: Callable[[], Awaitable[T]]
    ) -> tuple[T, Sample]:
        """Run one tracked trial of an async unit of work and record its Sample."""
        result, sample = await self.sampler.measure_async(label, fn)
        self._append(sample)
        return result, sample

    @beartype
    def benchmark(
        self,
        label: str,
        fn: Callable[[], Any],
        iterations: int | None = None,
        warmup: int | None = None,
    ) -> Summary:
        """Warm up, then run tracked trials sequentially.

        Args:
            label: Operation label
            fn: Zero-argument unit of work
            iterations: Tracked trials (default: config.iterations)
            warmup: Untracked warmup calls (default: config.warmup_iterations)

        Returns:
            Summary over the trials recorded by this call.
        """
        n, w = self._resolve_counts(iterations, warmup)
        if w:
            logger.info(f"Warming up {label} ({w} iterations)")
        for i in range(1, w + 1):
            try:
                fn()
            except Exception:
                logger.error(f"{label}: warmup {i}/{w} failed; no samples recorded")
                raise

        recorded: list[Sample] = []
        for trial in range(1, n + 1):
            try:
                _, sample = self.track(label, fn)
            except Exception:
                logger.error(
                    f"{label}: trial {trial}/{n} failed; "
                    f"{len(recorded)} samples kept, remaining trials skipped"
                )
                raise
            recorded.append(sample)
        return summarize(recorded, operation=label)

    @beartype
    async def benchmark_async(
        self,
        label: str,
        fn: Callable[[], Awaitable[Any]],
        iterations: int | None = None,
        warmup: int | None = None,
    ) -> Summary:
        """Async variant of benchmark(); same counting and failure contract."""
        n, w = self._resolve_counts(iterations, warmup)
        if w:
            logger.info(f"Warming up {label} ({w} iterations)")
        for i in range(1, w + 1):
            try:
                await fn()
            except Exception:
                logger.error(f"{label}: warmup {i}/{w} failed; no samples recorded")
                raise

        recorded: list[Sample] = []
        for trial in range(1, n + 1):
            try:
                _, sample = await self.track_async(label, fn)
            except Exception:
                logger.error(
                    f"{label}: trial {trial}/{n} failed; "
                    f"{len(recorded)} samples kept, remaining trials skipped"
                )
                raise
            recorded.append(sample)
        return summarize(recorded, operation=label)

    @contextmanager
    def profile(self, label: str) -> Generator[Measurement, None, None]:
        """Context manager for manual bracketing with automatic recording.

        The Sample is recorded only when the block exits without an exception.
        """
        measurement = self.sampler.measurement(label).start()
        yield measurement
        measurement.stop()
        self._append(measurement.get_result())

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def samples(self) -> tuple[Sample, ...]:
        return tuple(self._samples)

    @property
    def labels(self) -> list[str]:
        return list(dict.fromkeys(s.label for s in self._samples))

    @beartype
    def samples_for(self, label: str) -> list[Sample]:
        return [s for s in self._samples if s.label == label]

    @beartype
    def get_stats(self, label: str) -> Summary:
        """Summary for one label. Raises NoSamplesError if it has none."""
        return summarize(self.samples_for(label), operation=label)

    def get_all_stats(self) -> dict[str, Summary]:
        return summarize_by_label(self._samples)

    def clear(self) -> None:
        self._samples.clear()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @beartype
    def log_checkpoint(self, checkpoint_name: str) -> None:
        """Log a condensed snapshot via loguru.

        Args:
            checkpoint_name: Name for this checkpoint (e.g., "After Setup")
        """
        stats = self.get_all_stats()
        if not stats:
            logger.info(f"[CHECKPOINT: {checkpoint_name}] No samples yet")
            return

        overall = grand_summary(self._samples)
        logger.info(
            f"[CHECKPOINT: {checkpoint_name}] {overall.total_tests} samples, "
            f"total {overall.total_duration_ms:.2f}ms"
        )
        for label, summary in stats.items():
            sign = "+" if summary.avg_memory_mb >= 0 else ""
            logger.info(
                f"  {label}: avg {summary.avg_time_ms:.2f}ms over {summary.count}, "
                f"Δ={sign}{summary.avg_memory_mb:.2f}MB, peak={summary.peak_memory_mb:.2f}MB"
            )

    @beartype
    def print_stats(self, title: str = "PERFORMANCE STATISTICS") -> None:
        """Log a formatted summary table of every label.

        Args:
            title: Header title for the summary table
        """
        stats = self.get_all_stats()
        width = 120

        logger.info("")
        logger.info("=" * width)
        logger.info(f"{title:^{width}}")
        logger.info("=" * width)
        logger.info(
            f"{'Operation':<40} {'Count':>7} {'Avg':>12} {'Min':>12} "
            f"{'Max':>12} {'Avg Mem Δ':>14} {'Peak':>14}"
        )
        logger.info("-" * width)

        for label, summary in stats.items():
            logger.info(
                f"{label:<40} "
                f"{summary.count:>7} "
                f"{summary.avg_time_ms:>10.2f}ms "
                f"{summary.min_time_ms:>10.2f}ms "
                f"{summary.max_time_ms:>10.2f}ms "
                f"{summary.avg_memory_mb:>12.2f}MB "
                f"{summary.peak_memory_mb:>12.2f}MB"
            )

        logger.info("=" * width)
        if stats:
            overall = grand_summary(self._samples)
            logger.info(
                f"{'TOTAL':^40} {overall.total_tests:>7} "
                f"{overall.total_duration_ms:>10.2f}ms"
            )
        else:
            logger.info(f"{'No samples recorded':^{width}}")
        logger.info("=" * width)
        logger.info("")

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    @beartype
    def export(self, exported_at: datetime | None = None) -> ExportDocument:
        return build_export(self._samples, self.config, exported_at=exported_at)

    @beartype
    def export_json(self, shape: str = "nested") -> str:
        return self.export().to_json(shape)

    @beartype
    def save_results(
        self,
        directory: Path,
        shape: str = "nested",
        prefix: str = DEFAULT_PREFIX,
    ) -> Path:
        """Write one export file into ``directory`` (created if absent)."""
        payload = self.export().to_payload(shape)
        return write_document(payload, artifact_path(directory, prefix, ".json"))

    @beartype
    def render_dashboard(self, generated_at: datetime | None = None) -> str:
        return render_dashboard(
            self._samples,
            list(self.get_all_stats().values()),
            generated_at=generated_at,
            grand_summary=grand_summary(self._samples) if self._samples else None,
        )

    @beartype
    def save_dashboard(self, path: Path) -> Path:
        return save_dashboard(self.render_dashboard(), path)

