"""Tests for BinaryWriter."""

import struct

import pytest

from psoquest.models.records import Vec3
from psoquest.parser.binary_reader import BinaryReader
from psoquest.parser.binary_writer import BinaryWriter


def test_typed_writes_are_little_endian():
    w = BinaryWriter()
    w.uint8(0xAB)
    w.uint16(0x1234)
    w.uint32(0xDEADBEEF)
    w.int32(-2)
    w.float32(1.5)
    assert w.getvalue() == struct.pack("<BHIif", 0xAB, 0x1234, 0xDEADBEEF, -2, 1.5)
    assert w.size == w.position == 15


def test_vec3_float32():
    w = BinaryWriter()
    w.vec3_float32(Vec3(1.0, 2.0, 3.0))
    assert BinaryReader(w.getvalue()).vec3_float32() == Vec3(1.0, 2.0, 3.0)


def test_string_ascii_pads_and_truncates():
    w = BinaryWriter()
    w.string_ascii("abc", 5)
    w.string_ascii("abcdefgh", 4)
    assert w.getvalue() == b"abc\x00\x00abcd"


def test_string_utf16_pads_to_size():
    w = BinaryWriter()
    w.string_utf16("Hi", 8)
    assert w.getvalue() == "Hi".encode("utf-16-le") + b"\x00" * 4


def test_seek_back_patches_in_place():
    w = BinaryWriter()
    w.uint32(0)       # placeholder
    w.bytes(b"body")
    w.seek(0)
    w.uint32(8)
    assert w.getvalue() == struct.pack("<I", 8) + b"body"
    assert w.position == 4
    assert w.size == 8


def test_zeros():
    w = BinaryWriter()
    w.zeros(3)
    assert w.getvalue() == b"\x00\x00\x00"


def test_seek_past_end():
    w = BinaryWriter()
    w.uint16(1)
    with pytest.raises(ValueError, match="outside bounds"):
        w.seek(3)
