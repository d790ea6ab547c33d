"""Exception taxonomy for prove_perf.

Exceptions raised by the benchmarked operation itself are never wrapped:
they propagate to the caller unchanged.
"""


class ProfilingError(Exception):
    """Base class for every error raised by prove_perf."""


class ConfigurationError(ProfilingError, ValueError):
    """Iteration or warmup counts out of range."""


class MeasurementStateError(ProfilingError):
    """A Measurement was driven through an illegal state transition."""


class NotFinalizedError(MeasurementStateError):
    """Result requested before both start() and stop() ran."""


class NoSamplesError(ProfilingError, ValueError):
    """Aggregation requested over zero samples."""


class ArtifactWriteError(ProfilingError, OSError):
    """An export or dashboard file could not be written.

    No partial file is left at the target path when this is raised.
    """


class ExportFormatError(ProfilingError, ValueError):
    """A loaded document does not have the layout the caller asked for."""
