"""Tests for BinaryReader — all synthetic bytes, no quest files needed."""

import struct

import pytest

from psoquest.models.records import Vec3
from psoquest.parser.binary_reader import BinaryReader


@pytest.mark.parametrize(
    "fmt, values, read",
    [
        ("<BBB", (0, 0x7F, 0xFF), "uint8"),
        ("<bb", (-128, 127), "int8"),
        ("<HH", (0, 0xFFFF), "uint16"),
        ("<hh", (-1, 0x7FFF), "int16"),
        ("<II", (42, 0xDEADBEEF), "uint32"),
        ("<ii", (-1, 100), "int32"),
        ("<ff", (0.5, -1024.0), "float32"),
    ],
)
def test_scalars(fmt, values, read):
    r = BinaryReader(struct.pack(fmt, *values))
    assert [getattr(r, read)() for _ in values] == list(values)
    assert r.remaining == 0


def test_vec3_and_arrays():
    r = BinaryReader(struct.pack("<fff2H2I2i", 1.0, -2.5, 0.0, 1, 2, 3, 4, -5, 6))
    assert r.vec3_float32() == Vec3(1.0, -2.5, 0.0)
    assert r.uint16_array(2) == [1, 2]
    assert r.uint32_array(2) == [3, 4]
    assert r.int32_array(2) == [-5, 6]


def test_qst_header_fields():
    header = (
        struct.pack("<HHH", 88, 0x44, 58)
        + b"\x00" * 38
        + b"quest58.dat".ljust(16, b"\x00")
        + struct.pack("<I", 2048)
        + b"quest58_j.dat".ljust(24, b"\x00")
    )
    r = BinaryReader(header)

    r.skip(4)
    assert r.uint16() == 58
    r.skip(38)
    assert r.string_ascii(16) == "quest58.dat"
    assert r.uint32() == 2048
    assert r.string_ascii(24) == "quest58_j.dat"
    assert r.remaining == 0


def test_string_utf16_cuts_at_null():
    raw = "Lost HEAT SWORD".encode("utf-16-le")
    r = BinaryReader(raw + b"\x00" * (64 - len(raw)))
    assert r.string_utf16(64) == "Lost HEAT SWORD"
    assert r.remaining == 0


def test_string_utf16_without_null_uses_whole_field():
    r = BinaryReader("abcd".encode("utf-16-le"))
    assert r.string_utf16(8) == "abcd"


def test_cstring_utf16():
    r = BinaryReader("hi".encode("utf-16-le") + b"\x00\x00" + "yo".encode("utf-16-le") + b"\x00\x00")
    assert r.cstring_utf16(r.remaining) == "hi"
    assert r.position == 6
    assert r.cstring_utf16(r.remaining) == "yo"


def test_cstring_utf16_respects_max_size():
    r = BinaryReader("abc".encode("utf-16-le") + b"\x00\x00")
    with pytest.raises(ValueError, match="No null terminator"):
        r.cstring_utf16(4)
    assert r.position == 0


def test_reader_window():
    data = b"\xAA" * 4 + struct.pack("<HH", 7, 8) + b"\xBB" * 4
    r = BinaryReader(data, 4, 8)

    assert r.size == 4
    assert r.uint16() == 7
    assert r.position == 2
    assert r.uint16() == 8
    with pytest.raises(ValueError, match="exceed boundary"):
        r.uint8()


def test_slice_walks_dat_sections():
    sections = (
        struct.pack("<IIII", 1, 20, 0, 4) + b"\x01\x02\x03\x04"
        + struct.pack("<IIII", 2, 18, 3, 2) + b"\x05\x06"
    )
    r = BinaryReader(sections)
    seen = []

    while r.remaining:
        entity_type, total_size, area_id, entities_size = r.uint32_array(4)
        body = r.slice(entities_size)
        seen.append((entity_type, area_id, body.bytes(body.size)))

    assert seen == [(1, 0, b"\x01\x02\x03\x04"), (2, 3, b"\x05\x06")]


def test_slice_positions_are_relative():
    r = BinaryReader(struct.pack("<III", 10, 20, 30))
    r.skip(4)
    sub = r.slice(8)
    assert sub.position == 0
    assert sub.size == 8
    sub.seek(4)
    assert sub.uint32() == 30
    # Parent cursor advanced past the slice
    assert r.remaining == 0


def test_slice_prevents_overread():
    r = BinaryReader(struct.pack("<II", 1, 2))
    sub = r.slice(4)
    sub.uint32()
    with pytest.raises(ValueError, match="exceed boundary"):
        sub.uint32()


@pytest.mark.parametrize(
    "action",
    [
        lambda r: r.uint32(),
        lambda r: r.skip(10),
        lambda r: r.slice(10),
        lambda r: r.bytes(3),
    ],
)
def test_past_end(action):
    r = BinaryReader(b"\x01\x02")
    with pytest.raises(ValueError, match="exceed boundary"):
        action(r)


def test_seek():
    r = BinaryReader(struct.pack("<III", 100, 200, 300))
    r.seek(8)
    assert r.uint32() == 300
    r.seek(0)
    assert r.uint32() == 100
    with pytest.raises(ValueError, match="outside bounds"):
        r.seek(13)
