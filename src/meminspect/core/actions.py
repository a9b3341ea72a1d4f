"""Find and set operations as driven from the inspector's address/value fields."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from meminspect.core.accessor import MemoryAccessor, ReadOnlyMemory
from meminspect.core.address import resolve
from meminspect.core.codec import EncodedValue, to_bytes
from meminspect.core.search import search

logger = logging.getLogger(__name__)

BAD_ADDRESS = "Bad address provided."
BAD_OFFSET = "Bad offset provided."
BAD_VALUE = "Bad value provided."
BAD_SEARCH_VALUE = "Bad Value Given"
MATCH_FOUND = "Match Found"
NO_MATCH = "No Match"
VALUE_WRITTEN = "Value written."
OUT_OF_RANGE = "Value does not fit in memory."
READ_ONLY = "Memory is read-only."


@dataclass(frozen=True)
class FindResult:
    message: str
    address: int | None = None

    @property
    def found(self) -> bool:
        return self.address is not None

    @property
    def address_text(self) -> str | None:
        """New contents for the address field after a match (offset field is cleared)."""
        return None if self.address is None else f"{self.address:08x}"


@dataclass(frozen=True)
class SetResult:
    message: str
    address: int | None = None
    written: int = 0

    @property
    def ok(self) -> bool:
        return self.written > 0


def _check_fields(address_text: str, offset_text: str) -> tuple[int | None, str | None]:
    target = resolve(address_text, offset_text)
    if not target.good_address:
        return None, BAD_ADDRESS
    if not target.good_offset:
        return None, BAD_OFFSET
    return target.address, None


def find_value(
    accessor: MemoryAccessor,
    address_text: str,
    offset_text: str,
    value: EncodedValue,
    *,
    forward: bool = True,
) -> FindResult:
    """Search for `value` starting at the address the fields point to.

    A typed-in address is skipped so repeated calls step through successive
    matches; an empty address field starts at zero and may match there.
    """
    address, error = _check_fields(address_text, offset_text)
    if error is not None:
        return FindResult(error)
    pattern = to_bytes(value)
    if not pattern:
        return FindResult(BAD_SEARCH_VALUE)

    outcome = search(
        accessor,
        address,
        pattern,
        forward=forward,
        skip_current=bool(address_text),
    )
    logger.debug(
        "search %s from 0x%08X for %s: %s",
        "forward" if forward else "backward",
        address,
        pattern.hex(),
        "none" if outcome.address is None else f"0x{outcome.address:08X}",
    )
    if not outcome.found:
        return FindResult(NO_MATCH)
    return FindResult(MATCH_FOUND, outcome.address)


def read_bytes(accessor: MemoryAccessor, address: int, length: int) -> bytes:
    """Read up to `length` bytes from `address`, stopping at the first unmapped byte."""
    out = bytearray()
    for addr in range(address, address + max(0, length)):
        if not accessor.contains(addr):
            break
        out.append(accessor.read_u8(addr))
    return bytes(out)


def write_bytes(accessor: MemoryAccessor, address: int, data: bytes) -> int:
    """Write `data` one byte at a time from `address`. Returns the count written."""
    for i, b in enumerate(data):
        accessor.write_u8(address + i, b)
    return len(data)


def set_value(
    accessor: MemoryAccessor,
    address_text: str,
    offset_text: str,
    value: EncodedValue | bytes,
) -> SetResult:
    """Write `value` at the target address; raw bytes are written as-is."""
    address, error = _check_fields(address_text, offset_text)
    if error is not None:
        return SetResult(error)
    data = to_bytes(value) if isinstance(value, EncodedValue) else bytes(value)
    if not data:
        return SetResult(BAD_VALUE)
    if not accessor.contains(address, len(data)):
        return SetResult(OUT_OF_RANGE, address)
    try:
        written = write_bytes(accessor, address, data)
    except ReadOnlyMemory:
        return SetResult(READ_ONLY, address)
    logger.debug("wrote %d byte(s) at 0x%08X", written, address)
    return SetResult(VALUE_WRITTEN, address, written)
