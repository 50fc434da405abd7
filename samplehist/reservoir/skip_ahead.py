"""Skip-ahead reservoir (Li's algorithm L)."""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from samplehist.reservoir.base import Reservoir


class SkipAheadReservoir(Reservoir):
    """Reservoir that draws how many records to skip instead of rolling per record.

    After the first ``capacity`` records, a threshold ``W`` is maintained and a
    geometric skip ``floor(log(u) / log(1 - W))`` decides which record is the
    next to enter the reservoir. Skipped records cost no random draws. Inclusion
    probabilities match :meth:`Reservoir.offer`.

    Reservoirs produced by merging are plain :class:`Reservoir` objects, since
    ``W`` summarises one sequential pass and has no meaning for a merged sample.
    """

    def __init__(self, capacity: int, rng: np.random.Generator | None = None) -> None:
        super().__init__(capacity, rng=rng)
        self._threshold = 1.0
        self._next_accept = 0

    def offer(self, value: Any) -> None:
        self._check_writable()
        self.count += 1
        if self.count <= self.capacity:
            self.slots.append(value)
            if self.count == self.capacity:
                self._advance()
            return
        if self.count == self._next_accept:
            self.slots[int(self._rng.integers(self.capacity))] = value
            self._advance()

    def _uniform(self) -> float:
        # (0, 1]; log(0) is undefined
        return 1.0 - float(self._rng.random())

    def _advance(self) -> None:
        self._threshold *= math.exp(math.log(self._uniform()) / self.capacity)
        if self._threshold >= 1.0:
            skip = 0
        else:
            skip = math.floor(math.log(self._uniform()) / math.log1p(-self._threshold))
        self._next_accept = self.count + skip + 1
