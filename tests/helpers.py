"""Deterministic building blocks shared by the test modules."""

from datetime import datetime, timedelta, timezone

from prove_perf import MemoryProbe, MemorySnapshot, Reclaimer, Sample

MB = 1024**2
EPOCH = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def snapshot(heap_used: int = 0, heap_total: int = 0, rss: int = 0, external: int = 0) -> MemorySnapshot:
    return MemorySnapshot(rss=rss, heap_total=heap_total, heap_used=heap_used, external=external)


def make_sample(
    label: str,
    duration_ms: float,
    heap_used_delta: int = 0,
    heap_total_after: int = 0,
    index: int = 0,
) -> Sample:
    """Sample with an exact duration, a heap-used delta and an end heap total."""
    base = 1024 * MB
    before = snapshot(heap_used=base, heap_total=heap_total_after, rss=base)
    after = snapshot(heap_used=base + heap_used_delta, heap_total=heap_total_after, rss=base)
    return Sample(
        label=label,
        start_ns=1_000_000_000,
        end_ns=1_000_000_000 + round(duration_ms * 1_000_000),
        memory_before=before,
        memory_after=after,
        wall_clock=EPOCH + timedelta(seconds=index),
    )


class StaticProbe(MemoryProbe):
    """Returns the same snapshot every time and counts calls."""

    def __init__(self, value: MemorySnapshot | None = None) -> None:
        self.value = value or snapshot(heap_used=MB, heap_total=4 * MB, rss=8 * MB)
        self.calls = 0

    def snapshot(self) -> MemorySnapshot:
        self.calls += 1
        return self.value


class ScriptedProbe(MemoryProbe):
    """Returns the given snapshots in order."""

    def __init__(self, *snapshots: MemorySnapshot) -> None:
        self._snapshots = list(snapshots)

    def snapshot(self) -> MemorySnapshot:
        return self._snapshots.pop(0)


class CountingReclaimer(Reclaimer):
    def __init__(self) -> None:
        self.calls = 0

    def collect(self) -> None:
        self.calls += 1
