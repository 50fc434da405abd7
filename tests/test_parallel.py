"""Tests for the parallel orchestrator and merge tree."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from itertools import combinations
from pathlib import Path

import numpy as np
import pytest
from scipy.stats import chisquare

import samplehist.parallel as parallel
from samplehist.config import SampleConfig
from samplehist.data.records import WHOLE_LINE, RecordParser
from samplehist.data.splits import ByteRange
from samplehist.errors import ChunkReadError, FrozenReservoirError
from samplehist.parallel import ParallelOrchestrator, reduce_tree, sample_chunk
from samplehist.sampler import KeyedReservoirSet, StreamSampler


def _write_log(path: Path, n_lines: int) -> list[str]:
    """Write a small access-log-like file; return its lines."""
    methods = ["GET", "POST", "PUT"]
    statuses = ["200", "404", "500", "301"]
    lines = []
    for i in range(n_lines):
        if i % 17 == 0:
            lines.append(f"{methods[i % 3]}")
        else:
            lines.append(f"{methods[i % 3]} /page/{i % 11} {statuses[i % 4]}")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return lines


def test_sample_chunk_reads_only_its_range(tmp_path: Path) -> None:
    path = tmp_path / "in.txt"
    path.write_bytes(b"a\nbb\nccc\ndddd\n")
    result = sample_chunk(
        str(path), ByteRange(2, 9), RecordParser(), 10, np.random.SeedSequence(0)
    )
    assert sorted(result.get(WHOLE_LINE).slots) == ["bb", "ccc"]
    assert result.count(WHOLE_LINE) == 2


def test_plan_respects_minimum_chunk_size(tmp_path: Path) -> None:
    path = tmp_path / "in.txt"
    _write_log(path, 500)
    size = path.stat().st_size
    config = SampleConfig(input_file=str(path), split_size=size + 1, workers=4)
    assert ParallelOrchestrator(config).plan(path) == [ByteRange(0, size)]

    config = SampleConfig(input_file=str(path), split_size=64, workers=4, chunks_per_worker=3)
    chunks = ParallelOrchestrator(config).plan(path)
    assert 1 < len(chunks) <= 12
    data = path.read_bytes()
    assert b"".join(data[c.start : c.end] for c in chunks) == data


@pytest.mark.parametrize("workers", [1, 3])
def test_run_conserves_counts_across_chunks(tmp_path: Path, workers: int) -> None:
    path = tmp_path / "access.log"
    lines = _write_log(path, 2_000)
    config = SampleConfig(
        sample_size=50,
        num_results=5,
        fields=(0, 2),
        input_file=str(path),
        split_size=256,
        workers=workers,
        chunks_per_worker=2,
        seed=42,
    )
    result = ParallelOrchestrator(config).run(path)

    n_short = sum(1 for line in lines if len(line.split()) < 3)
    assert result.count(0) == len(lines)
    assert result.count(2) == len(lines) - n_short
    assert result.missing(2) == n_short
    assert result.missing(0) == 0
    assert len(result.get(0)) == 50
    assert set(result.get(0).slots) <= {"GET", "POST", "PUT"}
    assert set(result.get(2).slots) <= {"200", "404", "500", "301"}
    with pytest.raises(FrozenReservoirError):
        result.get(0).offer("DELETE")


def test_run_is_reproducible_with_seed(tmp_path: Path) -> None:
    path = tmp_path / "access.log"
    _write_log(path, 1_000)
    config = SampleConfig(sample_size=20, input_file=str(path), split_size=128, workers=1, seed=7)
    first = ParallelOrchestrator(config).run(path)
    second = ParallelOrchestrator(config).run(path)
    assert first.get(WHOLE_LINE).slots == second.get(WHOLE_LINE).slots


def test_run_on_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "empty.log"
    path.write_bytes(b"")
    result = ParallelOrchestrator(SampleConfig(input_file=str(path), workers=2)).run(path)
    assert result.reservoirs == {}
    assert result.count(WHOLE_LINE) == 0


def test_run_missing_file_fails_before_sampling(tmp_path: Path) -> None:
    config = SampleConfig(input_file=str(tmp_path / "nope.log"), workers=2)
    with pytest.raises(FileNotFoundError):
        ParallelOrchestrator(config).run(config.input_file)


def test_failing_chunk_aborts_the_run(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "access.log"
    _write_log(path, 1_000)
    calls = []

    def flaky_sample_chunk(path, byte_range, *args, **kwargs):
        calls.append(byte_range)
        if len(calls) == 2:
            raise OSError("disk went away")
        return KeyedReservoirSet()

    monkeypatch.setattr(parallel, "sample_chunk", flaky_sample_chunk)
    config = SampleConfig(input_file=str(path), split_size=128, workers=1, chunks_per_worker=4)
    with pytest.raises(ChunkReadError, match="disk went away"):
        ParallelOrchestrator(config).run(path)
    assert len(calls) == 2


def test_reduce_tree_conserves_counts_and_passes_keys_through() -> None:
    rng = np.random.default_rng(3)
    sets = [
        StreamSampler(4, rng=rng).consume([(0, str(i)) for i in range(start, start + 10)])
        for start in range(0, 50, 10)
    ]
    sets.append(StreamSampler(4, rng=rng).consume([(1, "only-here")]))
    lonely = sets[-1].get(1)

    merged = reduce_tree(sets, np.random.SeedSequence(1))

    assert merged.count(0) == 50
    assert len(merged.get(0)) == 4
    assert merged.get(1) is lonely
    assert reduce_tree([], np.random.SeedSequence(1)).reservoirs == {}


def test_reduce_tree_is_unbiased() -> None:
    """Five chunk reservoirs folded by the tree give inclusion probability k/n."""
    rng = np.random.default_rng(17)
    bounds = [0, 3, 4, 12, 20, 25]
    hits = np.zeros(25, dtype=np.int64)
    trials = 8_000
    for trial in range(trials):
        sets = [
            StreamSampler(5, rng=rng).consume((WHOLE_LINE, i) for i in range(lo, hi))
            for lo, hi in zip(bounds, bounds[1:])
        ]
        merged = reduce_tree(sets, np.random.SeedSequence(trial))
        assert merged.count(WHOLE_LINE) == 25
        hits[merged.get(WHOLE_LINE).slots] += 1
    np.testing.assert_allclose(hits / trials, 5 / 25, atol=0.025)


@pytest.mark.parametrize("error", [OSError("disk went away"), BrokenProcessPool("disk went away")])
def test_failing_chunk_aborts_the_pool(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, error: Exception
) -> None:
    path = tmp_path / "access.log"
    _write_log(path, 1_000)
    config = SampleConfig(input_file=str(path), split_size=128, workers=3, chunks_per_worker=2)
    chunks = ParallelOrchestrator(config).plan(path)
    assert len(chunks) == 6
    bad = chunks[3]

    def flaky_sample_chunk(path, byte_range, *args, **kwargs):
        if byte_range == bad:
            raise error
        return KeyedReservoirSet()

    monkeypatch.setattr(parallel, "ProcessPoolExecutor", ThreadPoolExecutor)
    monkeypatch.setattr(parallel, "sample_chunk", flaky_sample_chunk)
    with pytest.raises(ChunkReadError, match=r"chunk 3 .*disk went away") as excinfo:
        ParallelOrchestrator(config).run(path)
    assert excinfo.value.__cause__ is error


def test_pool_propagates_other_errors_unchanged(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "access.log"
    _write_log(path, 1_000)

    def broken_sample_chunk(*args, **kwargs):
        raise KeyError("bug")

    monkeypatch.setattr(parallel, "ProcessPoolExecutor", ThreadPoolExecutor)
    monkeypatch.setattr(parallel, "sample_chunk", broken_sample_chunk)
    config = SampleConfig(input_file=str(path), split_size=128, workers=2)
    with pytest.raises(KeyError):
        ParallelOrchestrator(config).run(path)


@pytest.mark.parametrize("workers", [1, 2])
@pytest.mark.parametrize("progress", [True, False])
def test_progress_bar_follows_config(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, workers: int, progress: bool
) -> None:
    path = tmp_path / "access.log"
    _write_log(path, 1_000)
    bars = []

    def recording_tqdm(iterable, **kwargs):
        bars.append(kwargs)
        return iterable

    monkeypatch.setattr(parallel, "ProcessPoolExecutor", ThreadPoolExecutor)
    monkeypatch.setattr(parallel, "tqdm", recording_tqdm)
    config = SampleConfig(
        input_file=str(path), split_size=128, workers=workers, chunks_per_worker=2, progress=progress
    )
    result = ParallelOrchestrator(config).run(path)

    assert result.count(WHOLE_LINE) == 1_000
    assert len(bars) == 1
    assert bars[0]["disable"] is not progress
    assert bars[0]["total"] == 2 * workers


def test_reduce_tree_draws_uniform_subsets() -> None:
    """Each 2-subset of 5 records is equally likely after the tree merges three chunks."""
    rng = np.random.default_rng(23)
    bounds = [0, 1, 3, 5]
    subsets = {frozenset(c): i for i, c in enumerate(combinations(range(5), 2))}
    counts = np.zeros(len(subsets), dtype=np.int64)
    trials = 20_000
    for trial in range(trials):
        sets = [
            StreamSampler(2, rng=rng).consume((WHOLE_LINE, i) for i in range(lo, hi))
            for lo, hi in zip(bounds, bounds[1:])
        ]
        merged = reduce_tree(sets, np.random.SeedSequence(trial))
        counts[subsets[frozenset(merged.get(WHOLE_LINE).slots)]] += 1
    _, p_value = chisquare(counts)
    assert p_value > 1e-3
    np.testing.assert_allclose(counts / trials, 1 / 10, atol=0.012)
