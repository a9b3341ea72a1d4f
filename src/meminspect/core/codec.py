"""Typed value codec: user text -> big-endian bytes plus a grouped hex preview."""

from __future__ import annotations

import math
import re
import struct
from dataclasses import dataclass
from enum import Enum

PREVIEW_LIMIT = 16  # hex characters shown before the preview is cut
ELLIPSIS = "..."


class TypeTag(str, Enum):
    S8 = "s8"
    S16 = "s16"
    S32 = "s32"
    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    HEX_STRING = "hex"
    FLOAT = "float"
    DOUBLE = "double"
    ASCII = "ascii"


class NumericBase(str, Enum):
    DECIMAL = "decimal"
    HEX = "hex"


@dataclass(frozen=True)
class IntFormat:
    parse_bits: int  # width of the intermediate parse
    signed: bool
    width: int  # bytes written


INT_FORMATS: dict[TypeTag, IntFormat] = {
    TypeTag.S8: IntFormat(16, True, 1),
    TypeTag.S16: IntFormat(16, True, 2),
    TypeTag.S32: IntFormat(32, True, 4),
    TypeTag.U8: IntFormat(16, False, 1),
    TypeTag.U16: IntFormat(16, False, 2),
    TypeTag.U32: IntFormat(32, False, 4),
}

FLOAT_FORMATS: dict[TypeTag, str] = {
    TypeTag.FLOAT: ">f",
    TypeTag.DOUBLE: ">d",
}

_HEX_INT_RE = re.compile(r"([+-]?)(?:0[xX])?([0-9A-Fa-f]+)")
_AUTO_INT_RE = re.compile(r"([+-]?)(0[xX][0-9A-Fa-f]+|0[0-7]*|[1-9][0-9]*)")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_HEX_BYTES_RE = re.compile(r"(?:[0-9A-F]{2})*", re.IGNORECASE)


def base_applies(tag: TypeTag) -> bool:
    """True when the decimal/hex toggle has any effect for `tag`."""
    return tag in INT_FORMATS


def parse_integer(text: str, base: NumericBase, *, bits: int, signed: bool) -> int | None:
    """Parse `text` as a C-style integer that must fit `bits` with the given signedness.

    HEX accepts an optional `0x` prefix. DECIMAL follows `strtol(..., 0)`: a `0x`
    prefix means hex and a leading zero means octal.
    """
    text = text.strip()
    if base is NumericBase.HEX:
        m = _HEX_INT_RE.fullmatch(text)
        if m is None:
            return None
        sign, digits = m.groups()
        value = int(digits, 16)
    else:
        m = _AUTO_INT_RE.fullmatch(text)
        if m is None:
            return None
        sign, digits = m.groups()
        if digits[:2] in ("0x", "0X"):
            value = int(digits[2:], 16)
        elif len(digits) > 1 and digits[0] == "0":
            value = int(digits, 8)
        else:
            value = int(digits, 10)

    if sign == "-":
        if not signed:
            return None
        value = -value
    if signed:
        lo, hi = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        lo, hi = 0, (1 << bits) - 1
    if not lo <= value <= hi:
        return None
    return value


def parse_float(text: str) -> float | None:
    text = text.strip()
    if _FLOAT_RE.fullmatch(text) is None:
        return None
    value = float(text)
    # Finite literals that overflow a double are rejected rather than turned into inf
    if math.isinf(value) and "inf" not in text.lower():
        return None
    return value


def format_preview(hex_text: str) -> str:
    """Group hex text into bytes from the least significant end, cutting long input.

    >>> format_preview("0A0B0C")
    '0A 0B 0C'
    """
    suffix = ""
    if len(hex_text) > PREVIEW_LIMIT:
        hex_text = hex_text[:PREVIEW_LIMIT]
        suffix = ELLIPSIS
    groups: list[str] = []
    end = len(hex_text)
    while end > 0:
        groups.append(hex_text[max(0, end - 2) : end])
        end -= 2
    return " ".join(reversed(groups)) + suffix


@dataclass(frozen=True)
class EncodedValue:
    tag: TypeTag
    text: str
    preview: str = ""
    valid: bool = False

    @property
    def blank(self) -> bool:
        """True when there was no input at all (neither good nor bad)."""
        return self.text == ""

    @property
    def raw(self) -> bytes:
        return to_bytes(self)


def _encode_hex(text: str, tag: TypeTag, base: NumericBase) -> str | None:
    """Return the full uppercase hex rendering of `text`, or None when invalid."""
    if tag is TypeTag.ASCII:
        try:
            return text.encode("latin-1").hex().upper()
        except UnicodeEncodeError:
            return None

    text = text.replace(" ", "")

    if tag is TypeTag.HEX_STRING:
        if _HEX_BYTES_RE.fullmatch(text) is None:
            return None
        return text.upper()

    if tag in FLOAT_FORMATS:
        value = parse_float(text)
        if value is None:
            return None
        try:
            return struct.pack(FLOAT_FORMATS[tag], value).hex().upper()
        except OverflowError:
            return None

    fmt = INT_FORMATS[tag]
    value = parse_integer(text, base, bits=fmt.parse_bits, signed=fmt.signed)
    if value is None:
        return None
    if tag is TypeTag.S8 and not -128 <= value <= 127:
        return None
    if tag is TypeTag.U8 and value & 0xFF00:
        return None
    mask = (1 << (fmt.width * 8)) - 1
    return f"{value & mask:0{fmt.width * 2}X}"


def encode(text: str, tag: TypeTag, base: NumericBase = NumericBase.DECIMAL) -> EncodedValue:
    """Validate `text` as a `tag` value and build its preview.

    Never raises: empty, malformed and out-of-range input all come back with
    `valid=False` and an empty preview.
    """
    tag = TypeTag(tag)
    base = NumericBase(base)
    if not text:
        return EncodedValue(tag, text)
    hex_text = _encode_hex(text, tag, base)
    if hex_text is None:
        return EncodedValue(tag, text)
    return EncodedValue(tag, text, format_preview(hex_text), True)


def to_bytes(value: EncodedValue) -> bytes:
    """Bytes to write or search for.

    ASCII and hex strings come from the full input text since their preview may
    be cut short. Numeric values are read back from the preview, which holds at
    most 16 hex digits and so is never cut.
    """
    if not value.valid or not value.preview:
        return b""
    if value.tag is TypeTag.ASCII:
        return value.text.encode("latin-1")
    if value.tag is TypeTag.HEX_STRING:
        return bytes.fromhex(value.text.replace(" ", ""))
    return bytes.fromhex(value.preview)


def byte_width(tag: TypeTag) -> int | None:
    """Fixed width of a scalar tag, None for the variable-length ones."""
    if tag in INT_FORMATS:
        return INT_FORMATS[tag].width
    if tag is TypeTag.FLOAT:
        return 4
    if tag is TypeTag.DOUBLE:
        return 8
    return None


def decode(raw: bytes, tag: TypeTag) -> int | float | str | None:
    """Interpret big-endian `raw` bytes as a `tag` value for display."""
    tag = TypeTag(tag)
    if tag is TypeTag.ASCII:
        return raw.decode("latin-1")
    if tag is TypeTag.HEX_STRING:
        return raw.hex().upper()
    width = byte_width(tag)
    if width is None or len(raw) < width:
        return None
    if tag in FLOAT_FORMATS:
        return struct.unpack(FLOAT_FORMATS[tag], raw[:width])[0]
    return int.from_bytes(raw[:width], "big", signed=INT_FORMATS[tag].signed)
