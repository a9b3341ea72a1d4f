from __future__ import annotations

from typing import Protocol, runtime_checkable

U32_MAX = 0xFFFFFFFF


class UnmappedAddress(ValueError):
    """Raised when an address falls outside every mapped byte of an accessor."""


class ReadOnlyMemory(PermissionError):
    """Raised when writing through an accessor that does not accept writes."""


@runtime_checkable
class MemoryAccessor(Protocol):
    """Byte-level view over one address range.

    `begin` is the first mapped address, `end` is exclusive. `search` returns the
    absolute address of the match or None; an unmapped start scans on from the
    nearest mapped byte in the search direction, and it never wraps around.
    """

    @property
    def begin(self) -> int: ...

    @property
    def end(self) -> int: ...

    def contains(self, address: int, length: int = 1) -> bool: ...

    def read_u8(self, address: int) -> int: ...

    def write_u8(self, address: int, value: int) -> None: ...

    def search(self, start: int, pattern: bytes, forward: bool) -> int | None: ...


def find_in(data: bytes | bytearray, pattern: bytes, index: int, forward: bool) -> int | None:
    """Find `pattern` in `data` relative to `index`.

    Forward returns the lowest match starting at or after `index`; backward the
    highest match starting at or before `index`.
    """
    if not pattern or index < 0 or index >= len(data):
        return None
    if forward:
        idx = data.find(pattern, index)
    else:
        idx = data.rfind(pattern, 0, index + len(pattern))
    return None if idx == -1 else idx


def clamp_start(start: int, begin: int, end: int, forward: bool) -> int | None:
    """Move an unmapped search start onto the range [begin, end) in the scan direction.

    Returns None when the whole range lies behind the start.
    """
    if forward:
        return None if start >= end else max(start, begin)
    return None if start < begin else min(start, end - 1)


class Region:
    """Contiguous, bytearray-backed memory mapped at `base`."""

    def __init__(
        self,
        name: str,
        base: int,
        size: int | None = None,
        *,
        data: bytes | None = None,
        read_only: bool = False,
    ) -> None:
        if size is None:
            if data is None:
                raise ValueError("either size or data is required")
            size = len(data)
        if size <= 0:
            raise ValueError("size must be positive")
        if base < 0 or base + size - 1 > U32_MAX:
            raise ValueError(f"region {name} does not fit in the 32-bit address space")
        if data is not None and len(data) > size:
            raise ValueError(f"region {name}: {len(data)} bytes of data exceed size {size}")

        self.name = name
        self.read_only = read_only
        self._base = base
        self._data = bytearray(size)
        if data:
            self._data[: len(data)] = data

    def __repr__(self) -> str:
        return f"Region({self.name!r}, 0x{self._base:08X}, 0x{len(self._data):X})"

    @property
    def begin(self) -> int:
        return self._base

    @property
    def end(self) -> int:
        return self._base + len(self._data)

    @property
    def size(self) -> int:
        return len(self._data)

    def contains(self, address: int, length: int = 1) -> bool:
        return self._base <= address and address + max(1, length) <= self.end

    def _index(self, address: int) -> int:
        if not self.contains(address):
            raise UnmappedAddress(f"0x{address:08X} is outside {self.name}")
        return address - self._base

    def read_u8(self, address: int) -> int:
        return self._data[self._index(address)]

    def write_u8(self, address: int, value: int) -> None:
        if self.read_only:
            raise ReadOnlyMemory(f"{self.name} is read-only")
        self._data[self._index(address)] = value & 0xFF

    def read(self, address: int, length: int) -> bytes:
        """Read up to `length` bytes at `address`, truncated at the region end."""
        start = self._index(address)
        return bytes(self._data[start : start + max(0, length)])

    def search(self, start: int, pattern: bytes, forward: bool) -> int | None:
        start = clamp_start(start, self.begin, self.end, forward)
        if start is None:
            return None
        idx = find_in(self._data, pattern, start - self._base, forward)
        return None if idx is None else self._base + idx


class AddressSpace:
    """Ordered set of non-overlapping regions exposed as a single accessor."""

    def __init__(self, name: str, regions: list[Region]) -> None:
        if not regions:
            raise ValueError(f"address space {name} has no regions")
        ordered = sorted(regions, key=lambda r: r.begin)
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.begin < prev.end:
                raise ValueError(f"regions {prev.name} and {cur.name} overlap")
        self.name = name
        self.regions = ordered

    def __repr__(self) -> str:
        names = ", ".join(r.name for r in self.regions)
        return f"AddressSpace({self.name!r}, [{names}])"

    @property
    def begin(self) -> int:
        return self.regions[0].begin

    @property
    def end(self) -> int:
        return self.regions[-1].end

    def region_at(self, address: int) -> Region | None:
        for region in self.regions:
            if region.contains(address):
                return region
        return None

    def contains(self, address: int, length: int = 1) -> bool:
        # Multi-byte spans must stay inside one region; gaps are unmapped.
        region = self.region_at(address)
        return region is not None and region.contains(address, length)

    def _require(self, address: int) -> Region:
        region = self.region_at(address)
        if region is None:
            raise UnmappedAddress(f"0x{address:08X} is not mapped in {self.name}")
        return region

    def read_u8(self, address: int) -> int:
        return self._require(address).read_u8(address)

    def write_u8(self, address: int, value: int) -> None:
        self._require(address).write_u8(address, value)

    def search(self, start: int, pattern: bytes, forward: bool) -> int | None:
        if not pattern:
            return None
        # Regions clamp the start themselves, so gaps are skipped in scan order
        if forward:
            ahead = [r for r in self.regions if r.end > start]
        else:
            ahead = [r for r in reversed(self.regions) if r.begin <= start]
        for region in ahead:
            hit = region.search(start, pattern, forward)
            if hit is not None:
                return hit
        return None
