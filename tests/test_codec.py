from __future__ import annotations

import struct

import pytest

from meminspect.core.codec import (
    NumericBase,
    TypeTag,
    base_applies,
    byte_width,
    decode,
    encode,
    format_preview,
    to_bytes,
)

DEC = NumericBase.DECIMAL
HEX = NumericBase.HEX


def test_unsigned_byte_range() -> None:
    v = encode("255", TypeTag.U8, DEC)
    assert v.valid
    assert v.preview == "FF"
    assert to_bytes(v) == bytes([0xFF])

    assert not encode("256", TypeTag.U8, DEC).valid
    assert not encode("-1", TypeTag.U8, DEC).valid
    assert encode("FF", TypeTag.U8, HEX).raw == b"\xff"
    assert not encode("100", TypeTag.U8, HEX).valid


@pytest.mark.parametrize(
    "tag,text,base,preview",
    [
        (TypeTag.S8, "-128", DEC, "80"),
        (TypeTag.S8, "127", DEC, "7F"),
        (TypeTag.S8, "-1", HEX, "FF"),
        (TypeTag.S16, "-1", DEC, "FF FF"),
        (TypeTag.S16, "-0x8000", DEC, "80 00"),
        (TypeTag.S32, "-2147483648", DEC, "80 00 00 00"),
        (TypeTag.S32, "7fffffff", HEX, "7F FF FF FF"),
        (TypeTag.U16, "1 000", DEC, "03 E8"),
        (TypeTag.U16, "0x10", DEC, "00 10"),
        (TypeTag.U16, "010", DEC, "00 08"),
        (TypeTag.U16, "0x1234", HEX, "12 34"),
        (TypeTag.U32, "4294967295", DEC, "FF FF FF FF"),
        (TypeTag.U32, "+42", DEC, "00 00 00 2A"),
    ],
)
def test_integer_previews(tag: TypeTag, text: str, base: NumericBase, preview: str) -> None:
    v = encode(text, tag, base)
    assert v.valid
    assert v.preview == preview


@pytest.mark.parametrize(
    "tag,text,base",
    [
        (TypeTag.S8, "128", DEC),
        (TypeTag.S8, "-129", DEC),
        (TypeTag.S16, "32768", DEC),
        (TypeTag.S16, "FFFF", HEX),
        (TypeTag.S32, "2147483648", DEC),
        (TypeTag.U16, "65536", DEC),
        (TypeTag.U16, "08", DEC),
        (TypeTag.U32, "4294967296", DEC),
        (TypeTag.U32, "-1", DEC),
        (TypeTag.U32, "1_000", DEC),
        (TypeTag.U32, "12ab", DEC),
        (TypeTag.U32, "0x", HEX),
    ],
)
def test_integer_rejects(tag: TypeTag, text: str, base: NumericBase) -> None:
    v = encode(text, tag, base)
    assert not v.valid
    assert v.preview == ""
    assert v.raw == b""
    assert not v.blank


@pytest.mark.parametrize(
    "tag,text,base,expected",
    [
        (TypeTag.S8, "-100", DEC, -100),
        (TypeTag.S16, "-12345", DEC, -12345),
        (TypeTag.S32, "-123456789", DEC, -123456789),
        (TypeTag.U8, "200", DEC, 200),
        (TypeTag.U16, "BEEF", HEX, 0xBEEF),
        (TypeTag.U32, "DEADBEEF", HEX, 0xDEADBEEF),
    ],
)
def test_integer_round_trip(tag: TypeTag, text: str, base: NumericBase, expected: int) -> None:
    v = encode(text, tag, base)
    raw = bytes.fromhex(v.preview)
    assert len(raw) == byte_width(tag)
    assert decode(raw, tag) == expected


def test_float_encoding() -> None:
    f = encode("1.5", TypeTag.FLOAT)
    assert f.preview == "3F C0 00 00"
    assert f.raw == struct.pack(">f", 1.5)

    inf = encode("inf", TypeTag.FLOAT)
    assert inf.valid and inf.preview == "7F 80 00 00"

    assert not encode("1e39", TypeTag.FLOAT).valid
    assert not encode("1,5", TypeTag.FLOAT).valid
    assert not encode("abc", TypeTag.FLOAT).valid
    assert not encode(".", TypeTag.FLOAT).valid


def test_double_preview_is_not_cut() -> None:
    v = encode("1.5", TypeTag.DOUBLE)
    assert v.valid
    assert v.preview == "3F F8 00 00 00 00 00 00"
    assert "..." not in v.preview
    assert v.raw == struct.pack(">d", 1.5)
    assert decode(v.raw, TypeTag.DOUBLE) == 1.5

    negative = encode("-123.456e-7", TypeTag.DOUBLE)
    assert len(negative.raw) == 8
    assert decode(negative.raw, TypeTag.DOUBLE) == -123.456e-7

    assert encode("1e39", TypeTag.DOUBLE).valid
    assert not encode("1e400", TypeTag.DOUBLE).valid


def test_base_only_applies_to_integers() -> None:
    assert all(base_applies(t) for t in (TypeTag.S8, TypeTag.U16, TypeTag.S32, TypeTag.U32))
    for tag in (TypeTag.FLOAT, TypeTag.DOUBLE, TypeTag.HEX_STRING, TypeTag.ASCII):
        assert not base_applies(tag)
    assert encode("10", TypeTag.FLOAT, HEX) == encode("10", TypeTag.FLOAT, DEC)


def test_long_hex_string_preview_is_cut() -> None:
    text = "F" * 20
    v = encode(text, TypeTag.HEX_STRING)
    assert v.valid
    assert v.preview == "FF FF FF FF FF FF FF FF..."
    assert to_bytes(v) == b"\xff" * 10


def test_hex_string_ignores_spaces() -> None:
    v = encode(" 41 42 43", TypeTag.HEX_STRING)
    assert v.valid
    assert v.preview == "41 42 43"
    assert v.raw == bytes([0x41, 0x42, 0x43])

    lower = encode("deadbeef", TypeTag.HEX_STRING)
    assert lower.preview == "DE AD BE EF"
    assert lower.raw == b"\xde\xad\xbe\xef"


@pytest.mark.parametrize("text", ["ABC", "GG", "0x41", "4-2"])
def test_hex_string_rejects(text: str) -> None:
    assert not encode(text, TypeTag.HEX_STRING).valid


def test_hex_string_of_only_spaces_has_no_bytes() -> None:
    v = encode("   ", TypeTag.HEX_STRING)
    assert v.valid
    assert v.preview == ""
    assert v.raw == b""


def test_ascii_keeps_full_text() -> None:
    text = "Hello, World!"
    v = encode(text, TypeTag.ASCII)
    assert v.valid
    assert v.preview == "48 65 6C 6C 6F 2C 20 57..."
    assert v.raw == text.encode("latin-1")

    spaced = encode(" a b", TypeTag.ASCII)
    assert spaced.raw == b" a b"


def test_ascii_is_eight_bit() -> None:
    assert encode("é", TypeTag.ASCII).raw == b"\xe9"


def test_ascii_outside_latin1_is_invalid() -> None:
    v = encode("price: 5€", TypeTag.ASCII)
    assert not v.valid
    assert not v.blank
    assert v.preview == ""
    assert v.raw == b""
    assert to_bytes(v) == b""


def test_empty_input_is_blank() -> None:
    for tag in TypeTag:
        v = encode("", tag)
        assert v.blank
        assert not v.valid
        assert v.preview == ""
        assert to_bytes(v) == b""


@pytest.mark.parametrize(
    "hex_text,expected",
    [
        ("", ""),
        ("0A", "0A"),
        ("0A0B0C", "0A 0B 0C"),
        ("ABC", "A BC"),
        ("00112233445566778", "00 11 22 33 44 55 66 77..."),
        ("0011223344556677", "00 11 22 33 44 55 66 77"),
    ],
)
def test_format_preview(hex_text: str, expected: str) -> None:
    assert format_preview(hex_text) == expected


def test_decode_needs_full_width() -> None:
    assert decode(b"\x01", TypeTag.U16) is None
    assert decode(b"\x00\x00\x80", TypeTag.FLOAT) is None
    assert decode(b"\x01\x02\x03", TypeTag.U16) == 0x0102
    assert decode(b"AB", TypeTag.ASCII) == "AB"
    assert decode(b"\xab\xcd", TypeTag.HEX_STRING) == "ABCD"


def test_tags_accept_plain_strings() -> None:
    assert encode("7", "u8", "hex").raw == b"\x07"
    assert TypeTag("double") is TypeTag.DOUBLE
