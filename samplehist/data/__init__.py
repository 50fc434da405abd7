"""Record parsing and chunk planning."""

from samplehist.data.records import WHOLE_LINE, Key, Record, RecordParser, iter_lines
from samplehist.data.splits import ByteRange, chunk_count, get_splits

__all__ = [
    "WHOLE_LINE",
    "Key",
    "Record",
    "RecordParser",
    "iter_lines",
    "ByteRange",
    "chunk_count",
    "get_splits",
]
