"""Stream sampler: one reservoir per key over a sequential record iterator.

:class:`StreamSampler` is used directly for stdin and as the per-chunk worker
of :class:`~samplehist.parallel.ParallelOrchestrator`. Its output, a
:class:`KeyedReservoirSet`, is what the merge tree reduces and the reporter
renders.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np

from samplehist.data.records import Key, Record
from samplehist.errors import ConfigurationError
from samplehist.reservoir.base import Reservoir
from samplehist.reservoir.merge import merge_reservoirs
from samplehist.reservoir.skip_ahead import SkipAheadReservoir

logger = logging.getLogger(__name__)


@dataclass
class KeyedReservoirSet:
    """Per-key reservoirs produced by one sampling pass or by merging passes.

    Attributes:
        reservoirs: Mapping of key to its reservoir, created on first sight.
        missing_field_counts: Mapping of key to the number of records that
            were too short to contain that field.
    """

    reservoirs: dict[Key, Reservoir] = field(default_factory=dict)
    missing_field_counts: dict[Key, int] = field(default_factory=dict)

    def get(self, key: Key) -> Reservoir | None:
        return self.reservoirs.get(key)

    def count(self, key: Key) -> int:
        """Total records observed for *key* (0 if never seen)."""
        reservoir = self.reservoirs.get(key)
        return reservoir.count if reservoir is not None else 0

    def missing(self, key: Key) -> int:
        return self.missing_field_counts.get(key, 0)

    def finalize(self) -> KeyedReservoirSet:
        """Finalize every reservoir and return ``self``."""
        for reservoir in self.reservoirs.values():
            reservoir.finalize()
        return self

    def merge(self, other: KeyedReservoirSet, rng: np.random.Generator) -> KeyedReservoirSet:
        """Merge with a set built over a disjoint part of the input.

        Keys present on both sides are merged with
        :func:`~samplehist.reservoir.merge.merge_reservoirs`; keys present on
        one side only pass through untouched.
        """
        reservoirs = dict(self.reservoirs)
        for key, reservoir in other.reservoirs.items():
            mine = reservoirs.get(key)
            reservoirs[key] = reservoir if mine is None else merge_reservoirs(mine, reservoir, rng)
        missing = dict(self.missing_field_counts)
        for key, n_missing in other.missing_field_counts.items():
            missing[key] = missing.get(key, 0) + n_missing
        return KeyedReservoirSet(reservoirs=reservoirs, missing_field_counts=missing)


class StreamSampler:
    """Sample a sequential stream of ``(key, value)`` records.

    A ``None`` value marks a field missing from its line and is counted in
    :attr:`KeyedReservoirSet.missing_field_counts` instead of being sampled.
    """

    def __init__(
        self,
        capacity: int,
        rng: np.random.Generator | None = None,
        skip_ahead: bool = True,
    ) -> None:
        """Initialize the sampler.

        Args:
            capacity: Reservoir capacity shared by every key.
            rng: Generator owned by this sampler and shared by its reservoirs.
            skip_ahead: Use :class:`SkipAheadReservoir` (algorithm L) instead
                of the one-draw-per-record :class:`Reservoir`.
        """
        if capacity <= 0:
            raise ConfigurationError(f"Reservoir capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._rng = rng if rng is not None else np.random.default_rng()
        self._reservoir_cls = SkipAheadReservoir if skip_ahead else Reservoir

    def consume(self, records: Iterable[Record]) -> KeyedReservoirSet:
        """Offer every record to its key's reservoir and return the result set."""
        result = KeyedReservoirSet()
        reservoirs = result.reservoirs
        missing = result.missing_field_counts
        for key, value in records:
            if value is None:
                missing[key] = missing.get(key, 0) + 1
                continue
            reservoir = reservoirs.get(key)
            if reservoir is None:
                reservoir = self._reservoir_cls(self.capacity, rng=self._rng)
                reservoirs[key] = reservoir
            reservoir.offer(value)
        logger.debug(f"Sampled {sum(r.count for r in reservoirs.values())} records over {len(reservoirs)} keys")
        return result
