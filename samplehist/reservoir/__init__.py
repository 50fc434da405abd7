"""Reservoirs and the reservoir merge reducer."""

from samplehist.reservoir.base import Reservoir
from samplehist.reservoir.merge import merge_reservoirs
from samplehist.reservoir.skip_ahead import SkipAheadReservoir

__all__ = [
    "Reservoir",
    "SkipAheadReservoir",
    "merge_reservoirs",
]
