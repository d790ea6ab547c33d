"""Structured export of recorded samples.

Two document shapes are derived from the same ExportDocument:

Nested::

    {metadata: {testDate, hostVersion, platform, arch, totalTests},
     results: [{name, timestamp, duration: {ms, seconds},
                memory: {start, end, delta}}],
     summary: {totalDuration, averageDuration,
               totalMemoryDelta, averageMemoryDelta} | null}

Flat::

    {config: {verbose, warmupIterations, iterations},
     metrics: [{operation, timeMs, memoryMB, peakMemoryMB, timestamp}],
     stats: [{operation, count, avgTimeMs, minTimeMs, maxTimeMs,
              avgMemoryMB, peakMemoryMB}]}

Files are written all-or-nothing: serialized in memory, written to a temp
file beside the target, then moved into place with os.replace.
"""

import json
import os
import platform
import sys
import tempfile
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from beartype import beartype
from loguru import logger

from prove_perf._errors import ArtifactWriteError, ExportFormatError
from prove_perf._memory import MemorySnapshot
from prove_perf._models import Sample, TrackerConfig
from prove_perf._stats import GrandSummary, Summary, grand_summary, summarize_by_label

DEFAULT_PREFIX = "prove-performance"

DURATION_MS_DECIMALS = 2
DURATION_SECONDS_DECIMALS = 3


@dataclass(frozen=True)
class ExportDocument:
    """Snapshot of a tracker at export time. Never mutated after creation."""

    metadata: dict[str, Any]
    samples: tuple[Sample, ...]
    summaries: tuple[Summary, ...]
    grand_summary: GrandSummary | None
    config: TrackerConfig

    def to_nested(self) -> dict[str, Any]:
        return {
            "metadata": dict(self.metadata),
            "results": [_sample_to_result(s) for s in self.samples],
            "summary": self.grand_summary.to_dict() if self.grand_summary else None,
        }

    def to_flat(self) -> dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "metrics": [sample_to_metric(s) for s in self.samples],
            "stats": [summary.to_dict() for summary in self.summaries],
        }

    def to_json(self, shape: str = "nested") -> str:
        return dumps(self.to_payload(shape))

    def to_payload(self, shape: str = "nested") -> dict[str, Any]:
        if shape == "nested":
            return self.to_nested()
        if shape == "flat":
            return self.to_flat()
        raise ValueError(f"Unknown document shape {shape!r}; expected 'nested' or 'flat'")


def host_metadata() -> dict[str, str]:
    """Interpreter and machine description for export metadata."""
    return {
        "hostVersion": f"{platform.python_implementation()} {platform.python_version()}",
        "platform": sys.platform,
        "arch": platform.machine(),
    }


@beartype
def build_export(
    samples: Sequence[Sample],
    config: TrackerConfig,
    exported_at: datetime | None = None,
) -> ExportDocument:
    """Build an ExportDocument from samples in insertion order.

    Deterministic for identical samples, config and ``exported_at``.
    """
    exported_at = exported_at or datetime.now(timezone.utc)
    frozen = tuple(samples)
    metadata: dict[str, Any] = {"testDate": exported_at.isoformat()}
    metadata.update(host_metadata())
    metadata["totalTests"] = len(frozen)

    return ExportDocument(
        metadata=metadata,
        samples=frozen,
        summaries=tuple(summarize_by_label(frozen).values()),
        grand_summary=grand_summary(frozen) if frozen else None,
        config=config,
    )


def _sample_to_result(sample: Sample) -> dict[str, Any]:
    return {
        "name": sample.label,
        "timestamp": sample.wall_clock.isoformat(),
        "duration": {
            "ms": round(sample.duration_ms, DURATION_MS_DECIMALS),
            "seconds": round(sample.duration_seconds, DURATION_SECONDS_DECIMALS),
        },
        "memory": {
            "start": sample.memory_before.to_dict(),
            "end": sample.memory_after.to_dict(),
            "delta": sample.memory_delta.to_dict(),
        },
    }


def sample_to_metric(sample: Sample) -> dict[str, Any]:
    return {
        "operation": sample.label,
        "timeMs": sample.duration_ms,
        "memoryMB": sample.memory_delta_mb,
        "peakMemoryMB": sample.peak_memory_mb,
        "timestamp": sample.wall_clock.isoformat(),
    }


def dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, indent=2)


@beartype
def artifact_path(directory: Path, prefix: str = DEFAULT_PREFIX, suffix: str = ".json") -> Path:
    """Collision-resistant file name inside ``directory``.

    Format: ``<prefix>-<UTC timestamp, microseconds>-<8 hex chars><suffix>``.
    """
    token = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    return directory / f"{prefix}-{token}-{uuid.uuid4().hex[:8]}{suffix}"


@beartype
def write_text_atomic(text: str, path: Path) -> Path:
    """Write ``text`` to ``path`` via temp file + os.replace.

    Creates parent directories as needed.

    Raises:
        ArtifactWriteError: if any step fails; the temp file is removed and
            ``path`` is left as it was
    """
    data = text.encode("utf-8")
    tmp_name: str | None = None
    replaced = False
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "wb", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as handle:
            tmp_name = handle.name
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
        replaced = True
    except OSError as exc:
        raise ArtifactWriteError(f"Could not write {path}: {exc}") from exc
    finally:
        # also runs on KeyboardInterrupt
        if not replaced and tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
    return path


@beartype
def write_document(payload: dict[str, Any], path: Path) -> Path:
    """Serialize ``payload`` fully in memory, then write it atomically."""
    text = dumps(payload)
    write_text_atomic(text, path)
    logger.info(f"Results saved to: {path}")
    return path


@beartype
def load_document(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


@beartype
def samples_from_nested(document: dict[str, Any]) -> list[Sample]:
    """Rebuild Samples from a nested export document.

    Monotonic timestamps are not exported, so rebuilt samples start at 0 and
    end at the exported duration (2 decimal places of ms).

    Raises:
        ExportFormatError: if ``document`` has no ``results`` list, e.g. a
            flat export
    """
    results = document.get("results")
    if not isinstance(results, list):
        raise ExportFormatError("Document is not a nested export (no 'results' list)")
    samples: list[Sample] = []
    for result in results:
        duration_ns = round(float(result["duration"]["ms"]) * 1_000_000)
        samples.append(
            Sample(
                label=result["name"],
                start_ns=0,
                end_ns=duration_ns,
                memory_before=MemorySnapshot.from_dict(result["memory"]["start"]),
                memory_after=MemorySnapshot.from_dict(result["memory"]["end"]),
                wall_clock=_parse_timestamp(result["timestamp"]),
            )
        )
    return samples


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@beartype
def find_latest_export(directory: Path, prefix: str = DEFAULT_PREFIX) -> Path:
    """Newest ``<prefix>-*.json`` in ``directory`` by modification time.

    Raises:
        FileNotFoundError: if the directory is missing or holds no match
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Results directory not found: {directory}")
    candidates = sorted(
        directory.glob(f"{prefix}-*.json"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )
    if not candidates:
        raise FileNotFoundError(f"No {prefix}-*.json results found in {directory}")
    return candidates[0]
