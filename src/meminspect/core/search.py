from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from meminspect.core.accessor import U32_MAX, MemoryAccessor

CHUNK_SIZE = 64 * 1024


class ChunkSource(Protocol):
    @property
    def size(self) -> int: ...

    def read(self, offset: int, length: int) -> bytes: ...


@dataclass(frozen=True)
class SearchOutcome:
    address: int | None = None

    @property
    def found(self) -> bool:
        return self.address is not None


NOT_FOUND = SearchOutcome()


def scan_forward(source: ChunkSource, needle: bytes, start: int) -> int | None:
    """Find `needle` at or after `start`. Returns offset or None.

    Chunked scan without loading the whole source. Chunks overlap by
    len(needle)-1 to catch boundary matches.
    """
    if not needle or start < 0 or start >= source.size:
        return None

    overlap = len(needle) - 1
    pos = start
    while pos < source.size:
        end = min(source.size, pos + CHUNK_SIZE + overlap)
        data = source.read(pos, end - pos)
        idx = data.find(needle)
        if idx != -1:
            return pos + idx
        if end >= source.size:
            break
        pos = end - overlap
    return None


def scan_backward(source: ChunkSource, needle: bytes, start: int) -> int | None:
    """Find the last `needle` that begins at or before `start`. Returns offset or None."""
    if not needle or start < 0 or start >= source.size:
        return None

    overlap = len(needle) - 1
    # Exclusive end of the window; a match beginning at `start` may extend past it.
    stop = min(source.size, start + len(needle))
    while stop > 0:
        lo = max(0, stop - CHUNK_SIZE - overlap)
        data = source.read(lo, stop - lo)
        idx = data.rfind(needle)
        if idx != -1:
            return lo + idx
        if lo == 0:
            break
        stop = lo + overlap
    return None


def search(
    accessor: MemoryAccessor,
    start: int,
    pattern: bytes,
    *,
    forward: bool = True,
    skip_current: bool = False,
) -> SearchOutcome:
    """Scan `accessor` for `pattern` from `start` in the requested direction.

    With `skip_current` the scan begins one byte past `start` (or before it, when
    searching backward) so the address already on display is not matched again.
    """
    if not pattern:
        return NOT_FOUND
    if skip_current:
        start = (start + (1 if forward else -1)) & U32_MAX
    hit = accessor.search(start, bytes(pattern), forward)
    return NOT_FOUND if hit is None else SearchOutcome(hit)
