"""Parallel sampling of a finite file.

The file is cut into line-aligned chunks, each chunk is sampled by its own
:class:`~samplehist.sampler.StreamSampler` in a worker process, and the
per-chunk :class:`~samplehist.sampler.KeyedReservoirSet` objects are folded
together level by level in a balanced binary merge tree.

Every chunk and every merge draws from its own generator, spawned from a
single :class:`numpy.random.SeedSequence`, so workers never share random state
and a fixed ``seed`` reproduces a run exactly.
"""

from __future__ import annotations

import io
import logging
import time
from concurrent.futures import Future, ProcessPoolExecutor, as_completed
from concurrent.futures.process import BrokenProcessPool
from pathlib import Path

import numpy as np
from tqdm import tqdm

from samplehist.config import SampleConfig
from samplehist.data.records import RecordParser, iter_lines
from samplehist.data.splits import ByteRange, chunk_count, get_splits
from samplehist.errors import ChunkReadError
from samplehist.sampler import KeyedReservoirSet, StreamSampler

logger = logging.getLogger(__name__)


def sample_chunk(
    path: str,
    byte_range: ByteRange,
    parser: RecordParser,
    capacity: int,
    seed: np.random.SeedSequence,
    skip_ahead: bool = True,
) -> KeyedReservoirSet:
    """Sample the records of one byte range of *path*.

    Module-level so it can be shipped to worker processes.
    """
    sampler = StreamSampler(capacity, rng=np.random.default_rng(seed), skip_ahead=skip_ahead)
    with open(path, "rb") as fh:
        fh.seek(byte_range.start)
        return sampler.consume(parser.records(iter_lines(fh, limit=len(byte_range))))


def reduce_tree(sets: list[KeyedReservoirSet], seed: np.random.SeedSequence) -> KeyedReservoirSet:
    """Fold keyed reservoir sets pairwise, one tree level at a time.

    Each merge gets a generator spawned from *seed*. An odd set out at any
    level is carried up unchanged.
    """
    if not sets:
        return KeyedReservoirSet()
    level = list(sets)
    depth = 0
    while len(level) > 1:
        pairs = len(level) // 2
        seeds = seed.spawn(pairs)
        merged = [
            level[2 * i].merge(level[2 * i + 1], np.random.default_rng(seeds[i]))
            for i in range(pairs)
        ]
        if len(level) % 2:
            merged.append(level[-1])
        level = merged
        depth += 1
    logger.debug(f"Reduced {len(sets)} chunk results in {depth} merge levels")
    return level[0]


class ParallelOrchestrator:
    """Split a file into chunks, sample them concurrently and merge the results.

    Attributes:
        config: Run configuration (capacity, parser settings, parallelism).
        parser: Record parser shared by every chunk.
    """

    def __init__(self, config: SampleConfig) -> None:
        self.config = config
        self.parser = RecordParser(fields=config.fields, separator=config.field_separator)

    def plan(self, path: str | Path) -> list[ByteRange]:
        """Return the line-aligned chunks *path* will be sampled in."""
        with open(path, "rb") as fh:
            size = fh.seek(0, io.SEEK_END)
            n_chunks = chunk_count(
                size,
                workers=self.config.n_workers,
                chunks_per_worker=self.config.chunks_per_worker,
                split_size=self.config.split_size,
            )
            return get_splits(fh, n_chunks)

    def run(self, path: str | Path) -> KeyedReservoirSet:
        """Sample *path* and return the merged, finalized keyed reservoir set.

        Raises:
            ChunkReadError: If any chunk fails; no partial result is returned.
        """
        path = str(path)
        start = time.perf_counter()
        chunks = self.plan(path)
        chunk_seed, merge_seed = np.random.SeedSequence(self.config.seed).spawn(2)
        chunk_seeds = chunk_seed.spawn(len(chunks))
        n_workers = min(self.config.n_workers, len(chunks))
        logger.info(f"Sampling {path} in {len(chunks)} chunks with {n_workers} workers")

        if n_workers == 1:
            results = self._run_inline(path, chunks, chunk_seeds)
        else:
            results = self._run_pool(path, chunks, chunk_seeds, n_workers)

        merged = results[0] if len(results) == 1 else reduce_tree(results, merge_seed)
        logger.info(f"Sampled {path} in {time.perf_counter() - start:.2f}s")
        return merged.finalize()

    # ------------------------------------------------------------------
    # Chunk dispatch
    # ------------------------------------------------------------------

    def _sample(self, path: str, chunk: ByteRange, seed: np.random.SeedSequence) -> KeyedReservoirSet:
        return sample_chunk(
            path, chunk, self.parser, self.config.sample_size, seed, self.config.skip_ahead
        )

    def _run_inline(
        self,
        path: str,
        chunks: list[ByteRange],
        seeds: list[np.random.SeedSequence],
    ) -> list[KeyedReservoirSet]:
        results: list[KeyedReservoirSet] = []
        progress = tqdm(
            zip(chunks, seeds, strict=True),
            total=len(chunks),
            desc="[samplehist] chunks",
            disable=not self.config.progress,
        )
        for idx, (chunk, seed) in enumerate(progress):
            try:
                results.append(self._sample(path, chunk, seed))
            except OSError as exc:
                raise ChunkReadError(
                    f"Failed to sample chunk {idx} ({chunk.start}-{chunk.end}) of {path}: {exc}"
                ) from exc
        return results

    def _run_pool(
        self,
        path: str,
        chunks: list[ByteRange],
        seeds: list[np.random.SeedSequence],
        n_workers: int,
    ) -> list[KeyedReservoirSet]:
        results: list[KeyedReservoirSet | None] = [None] * len(chunks)
        with ProcessPoolExecutor(max_workers=n_workers) as executor:
            futures: dict[Future, int] = {
                executor.submit(
                    sample_chunk,
                    path,
                    chunk,
                    self.parser,
                    self.config.sample_size,
                    seed,
                    self.config.skip_ahead,
                ): idx
                for idx, (chunk, seed) in enumerate(zip(chunks, seeds, strict=True))
            }
            progress = tqdm(
                as_completed(futures),
                total=len(futures),
                desc="[samplehist] chunks",
                disable=not self.config.progress,
            )
            for future in progress:
                idx = futures[future]
                try:
                    results[idx] = future.result()
                except (OSError, BrokenProcessPool) as exc:
                    for pending in futures:
                        pending.cancel()
                    chunk = chunks[idx]
                    logger.error(f"Chunk {idx} ({chunk.start}-{chunk.end}) of {path} failed: {exc}")
                    raise ChunkReadError(
                        f"Failed to sample chunk {idx} ({chunk.start}-{chunk.end}) of {path}: {exc}"
                    ) from exc
        return [result for result in results if result is not None]
