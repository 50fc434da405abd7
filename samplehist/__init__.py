"""samplehist — approximate value frequencies over large line-delimited inputs.

Each key (whole line, or one field) gets a fixed-capacity uniform reservoir
sample; the most frequent values inside the sample estimate the most frequent
values of the whole input.

Public API
----------
::

    from samplehist import SampleConfig, run_sampling, render_table
    from samplehist.reservoir import Reservoir, SkipAheadReservoir, merge_reservoirs
    from samplehist.sampler import StreamSampler
    from samplehist.parallel import ParallelOrchestrator
"""

from __future__ import annotations

from samplehist.config import SampleConfig
from samplehist.data.records import WHOLE_LINE, RecordParser
from samplehist.errors import (
    CapacityMismatchError,
    ChunkReadError,
    ConfigurationError,
    FrozenReservoirError,
    ReservoirContractError,
    SamplehistError,
)
from samplehist.parallel import ParallelOrchestrator
from samplehist.pipeline import run_sampling, sample_stream
from samplehist.report import histogram, histogram_top_k, render_json, render_table
from samplehist.reservoir import Reservoir, SkipAheadReservoir, merge_reservoirs
from samplehist.sampler import KeyedReservoirSet, StreamSampler

__version__ = "0.1.0"

__all__ = [
    # Core
    "Reservoir",
    "SkipAheadReservoir",
    "merge_reservoirs",
    "KeyedReservoirSet",
    "StreamSampler",
    "ParallelOrchestrator",
    # Configuration and parsing
    "SampleConfig",
    "RecordParser",
    "WHOLE_LINE",
    # Functional API
    "run_sampling",
    "sample_stream",
    # Reporting
    "histogram",
    "histogram_top_k",
    "render_table",
    "render_json",
    # Errors
    "SamplehistError",
    "ConfigurationError",
    "ReservoirContractError",
    "CapacityMismatchError",
    "FrozenReservoirError",
    "ChunkReadError",
    "__version__",
]
