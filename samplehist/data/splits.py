"""Line-aligned split planning for finite, seekable inputs."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import BinaryIO

from samplehist.errors import ConfigurationError


@dataclass(frozen=True)
class ByteRange:
    """Half-open byte range ``[start, end)`` of a file."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start


def chunk_count(file_size: int, workers: int, chunks_per_worker: int, split_size: int) -> int:
    """Pick how many chunks to cut a file into.

    Bounded above by ``workers * chunks_per_worker`` and by the number of
    ``split_size`` pieces the file holds; never below one.
    """
    if workers <= 0 or chunks_per_worker <= 0 or split_size <= 0:
        raise ConfigurationError(
            "workers, chunks_per_worker and split_size must be positive, got "
            f"{workers}, {chunks_per_worker}, {split_size}"
        )
    return max(1, min(workers * chunks_per_worker, file_size // split_size))


def get_splits(src: BinaryIO, n_chunks: int) -> list[ByteRange]:
    """Split ``src`` into at most ``n_chunks`` line-aligned byte ranges.

    Ideal split points sit at ``i * size / n_chunks``; each is moved forward to
    just past the next newline, so a point already at the start of a line
    stays put. Points that collapse onto an earlier boundary (long lines) are
    dropped and the last range runs to the end of the file. An empty file
    yields a single empty range.

    Args:
        src: Seekable binary file object.
        n_chunks: Requested number of chunks.

    Raises:
        ConfigurationError: If ``n_chunks`` is not positive.
    """
    if n_chunks <= 0:
        raise ConfigurationError(f"Chunk count must be positive, got {n_chunks}")
    end = src.seek(0, io.SEEK_END)
    bounds = [0]
    for i in range(1, n_chunks):
        ideal = end * i // n_chunks
        if ideal <= bounds[-1]:
            continue
        src.seek(ideal - 1)
        src.readline()
        pos = src.tell()
        if pos >= end:
            break
        bounds.append(pos)
    bounds.append(end)
    src.seek(0)
    return [ByteRange(start, stop) for start, stop in zip(bounds, bounds[1:])]
