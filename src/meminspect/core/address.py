"""Resolve the address the inspector points at from an address and an offset field."""

from __future__ import annotations

from dataclasses import dataclass

from meminspect.core.codec import NumericBase, parse_integer

U32_MAX = 0xFFFFFFFF
S32_MIN = -(1 << 31)
S32_MAX = (1 << 31) - 1


@dataclass(frozen=True)
class TargetAddress:
    address: int = 0
    good_address: bool = False
    good_offset: bool = False

    @property
    def ok(self) -> bool:
        return self.good_address and self.good_offset


def parse_hex(text: str, *, signed: bool) -> int | None:
    """Parse a base-16 integer the way a C `strtol(text, 16)` caller would.

    Accepts an optional sign and `0x` prefix. Returns None on malformed input or
    when the value does not fit a 32-bit integer of the requested signedness.
    """
    return parse_integer(text, NumericBase.HEX, bits=32, signed=signed)


def negative_magnitude(offset: int) -> int:
    """Magnitude of a negative 32-bit offset; INT32_MIN maps to 2**31."""
    if offset == S32_MIN:
        return S32_MAX + 1
    return -offset


def resolve(address_text: str, offset_text: str) -> TargetAddress:
    """Combine the hex address and signed hex offset fields into a TargetAddress.

    Empty fields are valid and contribute zero. The offset is invalid when it
    would move the address below 0 or past 0xFFFFFFFF. The returned address is
    only meaningful when both flags are set.
    """
    if address_text:
        parsed_addr = parse_hex(address_text, signed=False)
        good_address = parsed_addr is not None
        addr = parsed_addr or 0
    else:
        good_address, addr = True, 0

    if offset_text:
        parsed_off = parse_hex(offset_text, signed=True)
        good_offset = parsed_off is not None
        offset = parsed_off or 0
    else:
        good_offset, offset = True, 0

    if offset < 0:
        good_offset = good_offset and negative_magnitude(offset) <= addr
    else:
        good_offset = good_offset and U32_MAX - offset >= addr

    if not (good_address and good_offset):
        return TargetAddress(0, good_address, good_offset)

    if offset < 0:
        return TargetAddress(addr - negative_magnitude(offset), True, True)
    return TargetAddress(addr + offset, True, True)
