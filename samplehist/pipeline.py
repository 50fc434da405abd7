"""Input-source dispatch: finite files go parallel, stdin is streamed."""

from __future__ import annotations

import logging
import sys
import time
from typing import BinaryIO

import numpy as np

from samplehist.config import SampleConfig
from samplehist.data.records import RecordParser, iter_lines
from samplehist.parallel import ParallelOrchestrator
from samplehist.sampler import KeyedReservoirSet, StreamSampler

logger = logging.getLogger(__name__)


def sample_stream(config: SampleConfig, stream: BinaryIO) -> KeyedReservoirSet:
    """Sample an unbounded binary stream in a single sequential pass."""
    parser = RecordParser(fields=config.fields, separator=config.field_separator)
    sampler = StreamSampler(
        config.sample_size,
        rng=np.random.default_rng(config.seed),
        skip_ahead=config.skip_ahead,
    )
    start = time.perf_counter()
    result = sampler.consume(parser.records(iter_lines(stream)))
    logger.info(f"Sampled stream in {time.perf_counter() - start:.2f}s")
    return result.finalize()


def run_sampling(config: SampleConfig, stdin: BinaryIO | None = None) -> KeyedReservoirSet:
    """Sample the configured input and return finalized per-key reservoirs.

    Args:
        config: Run configuration. ``config.input_file`` selects the parallel
            file path; otherwise *stdin* (default ``sys.stdin.buffer``) is read.
        stdin: Binary stream used when no input file is configured.
    """
    if config.input_file is not None:
        return ParallelOrchestrator(config).run(config.input_file)
    return sample_stream(config, stdin if stdin is not None else sys.stdin.buffer)
