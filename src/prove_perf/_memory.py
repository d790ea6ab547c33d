"""Memory snapshots and the reclamation capability.

MemoryProbe is a stateless, read-only accessor: every call returns a fresh
frozen MemorySnapshot and nothing is retained between calls.

Field mapping used by PsutilMemoryProbe:
- rss: resident set size
- heap_total: virtual memory size (conservative absolute footprint)
- heap_used: tracemalloc traced bytes if the caller started tracemalloc
  before the probe was built, otherwise resident set size
- external: shared memory (0 on platforms psutil does not report it for)
"""

import gc
import tracemalloc
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import psutil

BYTES_PER_MB = 1024**2


@dataclass(frozen=True)
class MemoryDelta:
    """Per-field change between two snapshots. Fields can be negative."""

    rss: int
    heap_total: int
    heap_used: int
    external: int

    def to_dict(self) -> dict[str, int]:
        return {
            "rss": self.rss,
            "heapTotal": self.heap_total,
            "heapUsed": self.heap_used,
            "external": self.external,
        }


@dataclass(frozen=True)
class MemorySnapshot:
    """Process memory counters in bytes at one point in time.

    Design by Contract:
        - every field >= 0 (crashes otherwise)
    """

    rss: int
    heap_total: int
    heap_used: int
    external: int

    def __post_init__(self) -> None:
        for name in ("rss", "heap_total", "heap_used", "external"):
            value = getattr(self, name)
            assert value >= 0, f"Memory field {name} must be non-negative: {value}"

    def delta(self, before: "MemorySnapshot") -> MemoryDelta:
        """Return ``self - before`` field by field."""
        return MemoryDelta(
            rss=self.rss - before.rss,
            heap_total=self.heap_total - before.heap_total,
            heap_used=self.heap_used - before.heap_used,
            external=self.external - before.external,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "rss": self.rss,
            "heapTotal": self.heap_total,
            "heapUsed": self.heap_used,
            "external": self.external,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemorySnapshot":
        return cls(
            rss=int(data["rss"]),
            heap_total=int(data["heapTotal"]),
            heap_used=int(data["heapUsed"]),
            external=int(data["external"]),
        )


class MemoryProbe(ABC):
    """Read-only accessor for process memory counters."""

    @abstractmethod
    def snapshot(self) -> MemorySnapshot:
        """Capture the current counters."""


class PsutilMemoryProbe(MemoryProbe):
    """Reads the current process's counters via psutil.

    The heap_used source is fixed when the probe is built, so both snapshots
    of a trial read the same counter even if tracing starts or stops mid-trial.

    Args:
        use_tracemalloc: Read heap_used from tracemalloc (default: whether
            tracemalloc is tracing right now)
    """

    def __init__(self, use_tracemalloc: bool | None = None) -> None:
        self._process = psutil.Process()
        if use_tracemalloc is None:
            use_tracemalloc = tracemalloc.is_tracing()
        self.use_tracemalloc = use_tracemalloc

    def snapshot(self) -> MemorySnapshot:
        info = self._process.memory_info()
        if self.use_tracemalloc:
            heap_used, _ = tracemalloc.get_traced_memory()
        else:
            heap_used = info.rss
        return MemorySnapshot(
            rss=info.rss,
            heap_total=info.vms,
            heap_used=heap_used,
            external=getattr(info, "shared", 0),
        )


class Reclaimer(ABC):
    """Optional capability to force deferred memory reclamation.

    Only reduces measurement noise; never affects correctness.
    """

    @abstractmethod
    def collect(self) -> None:
        """Reclaim whatever can be reclaimed right now."""


class GcReclaimer(Reclaimer):
    """Runs a full cyclic garbage collection."""

    def collect(self) -> None:
        gc.collect()
