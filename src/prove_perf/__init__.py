"""prove-perf: timing and memory tracking for repeated operations.

Provides:
- Measurement: Two-phase start()/stop() bracketing of one trial
- Sampler: One-shot measure()/measure_async() producing a Sample
- PerformanceTracker: Warmup + repeated trials, per-label statistics, export
- summarize / summarize_by_label / grand_summary: Sample aggregation
- build_export / write_document: Nested and flat JSON documents, atomic writes
- render_dashboard / save_dashboard: Static HTML dashboard

Usage:
    from prove_perf import GcReclaimer, PerformanceTracker, Sampler, TrackerConfig

    tracker = PerformanceTracker(
        TrackerConfig(verbose=True, warmup_iterations=2, iterations=10),
        sampler=Sampler(reclaimer=GcReclaimer()),
    )
    stats = tracker.benchmark("Proof Generation", lambda: prove(statement, witness))

    tracker.print_stats("Proof Results")
    tracker.save_results(Path("performance-results"))
    tracker.save_dashboard(Path("performance-results/dashboard.html"))
"""

from prove_perf._core import (
    Measurement,
    MeasurementState,
    PerformanceTracker,
    Sampler,
)
from prove_perf._dashboard import (
    FAST_THRESHOLD_MS,
    MEDIUM_THRESHOLD_MS,
    classify_duration,
    render_dashboard,
    save_dashboard,
)
from prove_perf._errors import (
    ArtifactWriteError,
    ConfigurationError,
    ExportFormatError,
    MeasurementStateError,
    NoSamplesError,
    NotFinalizedError,
    ProfilingError,
)
from prove_perf._export import (
    ExportDocument,
    artifact_path,
    build_export,
    find_latest_export,
    load_document,
    samples_from_nested,
    write_document,
)
from prove_perf._memory import (
    GcReclaimer,
    MemoryDelta,
    MemoryProbe,
    MemorySnapshot,
    PsutilMemoryProbe,
    Reclaimer,
)
from prove_perf._models import Sample, TrackerConfig
from prove_perf._stats import GrandSummary, Summary, grand_summary, summarize, summarize_by_label

__all__ = [
    "FAST_THRESHOLD_MS",
    "MEDIUM_THRESHOLD_MS",
    "ArtifactWriteError",
    "ConfigurationError",
    "ExportDocument",
    "ExportFormatError",
    "GcReclaimer",
    "GrandSummary",
    "Measurement",
    "MeasurementState",
    "MeasurementStateError",
    "MemoryDelta",
    "MemoryProbe",
    "MemorySnapshot",
    "NoSamplesError",
    "NotFinalizedError",
    "PerformanceTracker",
    "ProfilingError",
    "PsutilMemoryProbe",
    "Reclaimer",
    "Sample",
    "Sampler",
    "Summary",
    "TrackerConfig",
    "artifact_path",
    "build_export",
    "classify_duration",
    "find_latest_export",
    "grand_summary",
    "load_document",
    "render_dashboard",
    "samples_from_nested",
    "save_dashboard",
    "summarize",
    "summarize_by_label",
    "write_document",
]

__version__ = "0.1.0"
