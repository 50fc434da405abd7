"""Line decoding and field extraction.

The sampling core consumes ``(key, value)`` pairs; this module produces them
from raw byte lines. The key is ``None`` when whole lines are sampled and the
field index otherwise.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import BinaryIO, Optional

Key = Optional[int]
Record = tuple[Key, Optional[str]]

WHOLE_LINE: Key = None


def _decode(raw: bytes, encoding: str) -> str:
    if raw.endswith(b"\n"):
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
    return raw.decode(encoding, errors="replace")


def iter_lines(stream: BinaryIO, limit: int | None = None, encoding: str = "utf-8") -> Iterator[str]:
    """Yield decoded lines from a binary stream without their terminators.

    Args:
        stream: Binary file object positioned at the first line to read.
        limit: Stop once this many bytes have been consumed. Used to confine a
            reader to one line-aligned chunk.
        encoding: Text encoding; undecodable bytes are replaced.
    """
    consumed = 0
    for raw in stream:
        if limit is not None and consumed >= limit:
            break
        consumed += len(raw)
        yield _decode(raw, encoding)


@dataclass(frozen=True)
class RecordParser:
    """Turn lines into ``(key, value)`` records.

    Attributes:
        fields: Field indexes to extract. Empty means the whole line is the value.
        separator: Field separator, or ``None`` to split on runs of whitespace.
    """

    fields: tuple[int, ...] = field(default_factory=tuple)
    separator: str | None = None

    @property
    def keys(self) -> list[Key]:
        """Keys this parser emits, in report order."""
        return list(self.fields) if self.fields else [WHOLE_LINE]

    def parse(self, line: str) -> list[Record]:
        """Return the records of one line.

        A requested field beyond the end of the line yields ``(index, None)``.
        """
        if not self.fields:
            return [(WHOLE_LINE, line)]
        parts = line.split(self.separator)
        return [(index, parts[index] if index < len(parts) else None) for index in self.fields]

    def records(self, lines: Iterable[str]) -> Iterator[Record]:
        for line in lines:
            yield from self.parse(line)
