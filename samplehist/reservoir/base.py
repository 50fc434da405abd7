"""Fixed-capacity uniform reservoir."""

from __future__ import annotations

from typing import Any

import numpy as np

from samplehist.errors import ConfigurationError, FrozenReservoirError


class Reservoir:
    """Uniform random sample of at most ``capacity`` values from a stream.

    Every value offered so far is present with probability ``capacity / count``
    once ``count`` exceeds ``capacity``; before that every value is kept.

    Attributes:
        capacity: Maximum number of sampled values ``k``.
        slots: Sampled values. ``len(slots) == min(count, capacity)``.
        count: Number of records this reservoir represents, including those
            folded in through merges.
    """

    def __init__(self, capacity: int, rng: np.random.Generator | None = None) -> None:
        """Initialize an empty reservoir.

        Args:
            capacity: Maximum number of sampled values; must be positive.
            rng: Generator owned by the caller. A fresh unseeded one is
                created when omitted.

        Raises:
            ConfigurationError: If ``capacity`` is not positive.
        """
        if capacity <= 0:
            raise ConfigurationError(f"Reservoir capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.slots: list[Any] = []
        self.count = 0
        self._rng = rng if rng is not None else np.random.default_rng()
        self._finalized = False

    def offer(self, value: Any) -> None:
        """Offer one record (algorithm R: one random draw per record past ``capacity``)."""
        self._check_writable()
        self.count += 1
        if self.count <= self.capacity:
            self.slots.append(value)
            return
        j = int(self._rng.integers(self.count))
        if j < self.capacity:
            self.slots[j] = value

    def finalize(self) -> Reservoir:
        """Make the reservoir read-only and return it."""
        self._finalized = True
        return self

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def is_full(self) -> bool:
        return len(self.slots) >= self.capacity

    @property
    def values(self) -> tuple[Any, ...]:
        """Snapshot of the sampled values."""
        return tuple(self.slots)

    def _check_writable(self) -> None:
        if self._finalized:
            raise FrozenReservoirError("Cannot offer a value to a finalized reservoir")

    @classmethod
    def from_sample(
        cls,
        capacity: int,
        slots: list[Any],
        count: int,
        rng: np.random.Generator | None = None,
    ) -> Reservoir:
        """Rebuild a reservoir from an existing uniform sample of ``count`` records."""
        if len(slots) != min(count, capacity):
            raise ValueError(
                f"A reservoir over {count} records with capacity {capacity} "
                f"must hold {min(count, capacity)} values, got {len(slots)}"
            )
        reservoir = cls(capacity, rng=rng)
        reservoir.slots = list(slots)
        reservoir.count = count
        return reservoir

    def __len__(self) -> int:
        return len(self.slots)

    def __repr__(self) -> str:
        state = ", finalized" if self._finalized else ""
        return (
            f"{type(self).__name__}(capacity={self.capacity}, "
            f"size={len(self.slots)}, count={self.count}{state})"
        )
