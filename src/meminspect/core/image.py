from __future__ import annotations

import os
from contextlib import suppress

from meminspect.core.accessor import U32_MAX, ReadOnlyMemory, UnmappedAddress, clamp_start
from meminspect.core.search import scan_backward, scan_forward

try:
    import mmap as _mmap_mod  # type: ignore
except Exception:  # pragma: no cover - platform-specific
    _mmap_mod = None  # type: ignore


class MappedImage:
    """Read-only memory accessor over a raw dump file mapped at `base`.

    Prefers `mmap` for zero-copy slices; falls back to seek/read on the open handle.
    The full file is never loaded into memory at once.
    """

    def __init__(self, path: str, base: int = 0, *, use_mmap: bool = True) -> None:
        try:
            st = os.stat(path)
        except FileNotFoundError:
            raise FileNotFoundError(f"File not found: {path}") from None

        self._path = path
        self._size = int(st.st_size)
        if self._size == 0:
            raise ValueError(f"{path} is empty")
        if base < 0 or base + self._size - 1 > U32_MAX:
            raise ValueError(f"{path} does not fit in the 32-bit address space at 0x{base:08X}")
        self._base = base
        # Kept open for the lifetime of the image
        self._fh = open(path, "rb", buffering=0)  # noqa: SIM115

        self._mmap = None
        if use_mmap and _mmap_mod is not None:
            try:
                self._mmap = _mmap_mod.mmap(
                    self._fh.fileno(),
                    length=0,
                    access=_mmap_mod.ACCESS_READ,
                )
            except Exception:
                self._mmap = None

    def close(self) -> None:
        if getattr(self, "_mmap", None) is not None:
            with suppress(Exception):
                self._mmap.close()  # type: ignore[union-attr]
            self._mmap = None
        with suppress(Exception):
            self._fh.close()

    def __enter__(self) -> MappedImage:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def path(self) -> str:
        return self._path

    @property
    def size(self) -> int:
        """Image size in bytes."""
        return self._size

    @property
    def begin(self) -> int:
        return self._base

    @property
    def end(self) -> int:
        return self._base + self._size

    def contains(self, address: int, length: int = 1) -> bool:
        return self._base <= address and address + max(1, length) <= self.end

    def read(self, offset: int, length: int) -> bytes:
        """Read up to `length` bytes at image-relative `offset`, truncated at EOF."""
        if offset < 0 or length < 0:
            raise UnmappedAddress("offset and length must be >= 0")
        if length == 0 or offset >= self._size:
            return b""
        end = min(self._size, offset + length)
        if self._mmap is not None:
            return bytes(self._mmap[offset:end])  # type: ignore[index]
        self._fh.seek(offset)
        return self._fh.read(end - offset)

    def read_u8(self, address: int) -> int:
        if not self.contains(address):
            raise UnmappedAddress(f"0x{address:08X} is outside {self._path}")
        return self.read(address - self._base, 1)[0]

    def write_u8(self, address: int, value: int) -> None:
        raise ReadOnlyMemory(f"{self._path} is mapped read-only")

    def search(self, start: int, pattern: bytes, forward: bool) -> int | None:
        start = clamp_start(start, self.begin, self.end, forward)
        if start is None or not pattern:
            return None
        offset = start - self._base
        if forward:
            found = scan_forward(self, pattern, offset)
        else:
            found = scan_backward(self, pattern, offset)
        return None if found is None else self._base + found
