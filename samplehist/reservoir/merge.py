"""Merging reservoirs built over disjoint partitions of one stream."""

from __future__ import annotations

import numpy as np

from samplehist.errors import CapacityMismatchError
from samplehist.reservoir.base import Reservoir


def _draws_from_left(n_left: int, n_right: int, n_draws: int, rng: np.random.Generator) -> int:
    """Replay ``n_draws`` draws without replacement from the union of two partitions.

    Each draw comes from the left partition with probability (left records not
    yet drawn) / (records not yet drawn). Returns how many draws came from the
    left partition, a hypergeometric variate.
    """
    remaining_left = n_left
    remaining = n_left + n_right
    from_left = 0
    for u in rng.random(n_draws):
        if u * remaining < remaining_left:
            from_left += 1
            remaining_left -= 1
        remaining -= 1
    return from_left


def merge_reservoirs(left: Reservoir, right: Reservoir, rng: np.random.Generator) -> Reservoir:
    """Merge two reservoirs over disjoint partitions into one over their union.

    ``left`` holds a uniform ``min(n_left, k)``-subset of its partition and
    ``right`` likewise, so a uniform ``x``-subset of ``left.slots`` is a uniform
    ``x``-subset of the left partition. Choosing ``x`` as the number of left
    records in a uniform ``min(k, n_left + n_right)``-subset of the union makes
    the result exactly a uniform sample of the union. The operation is
    therefore associative and commutative in distribution.

    Neither input is modified.

    Args:
        left: Reservoir over the first partition.
        right: Reservoir over the second partition.
        rng: Generator owned by this merge; the merged reservoir keeps it.

    Returns:
        A new :class:`Reservoir` with ``count == left.count + right.count``.

    Raises:
        CapacityMismatchError: If the capacities differ.
    """
    if left.capacity != right.capacity:
        raise CapacityMismatchError(
            f"Cannot merge reservoirs with capacities {left.capacity} and {right.capacity}"
        )
    capacity = left.capacity
    total = left.count + right.count
    n_draws = min(capacity, total)
    from_left = _draws_from_left(left.count, right.count, n_draws, rng)
    from_right = n_draws - from_left

    keep_left = rng.choice(len(left.slots), size=from_left, replace=False)
    keep_right = rng.choice(len(right.slots), size=from_right, replace=False)
    slots = [left.slots[i] for i in keep_left] + [right.slots[i] for i in keep_right]
    return Reservoir.from_sample(capacity, slots, total, rng=rng)
