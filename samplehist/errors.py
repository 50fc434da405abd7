"""Exception hierarchy for samplehist."""

from __future__ import annotations


class SamplehistError(Exception):
    """Base class for all samplehist errors."""


class ConfigurationError(SamplehistError, ValueError):
    """Invalid run configuration, detected before any sampling begins."""


class ReservoirContractError(SamplehistError, RuntimeError):
    """A reservoir was used in a way the sampling core never does when wired correctly."""


class CapacityMismatchError(ReservoirContractError):
    """Two reservoirs with different capacities were merged."""


class FrozenReservoirError(ReservoirContractError):
    """A value was offered to a finalized reservoir."""


class ChunkReadError(SamplehistError, OSError):
    """Sampling one chunk of a file failed; the whole run is aborted."""
