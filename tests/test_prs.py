"""Tests for the PRS codec."""

import random

import pytest

from psoquest.parser import prs
from psoquest.parser.errors import PrsError


def test_empty():
    assert prs.decompress(prs.compress(b"")) == b""


def test_literals_only():
    data = bytes(range(16))
    assert prs.decompress(prs.compress(data)) == data


def test_repetitive_data_compresses():
    data = b"abcabcabcabc" * 500 + b"\x00" * 4000
    compressed = prs.compress(data)
    assert len(compressed) < len(data) // 10
    assert prs.decompress(compressed) == data


def test_random_data():
    rng = random.Random(1234)
    data = bytes(rng.randrange(256) for _ in range(20000))
    assert prs.decompress(prs.compress(data)) == data


def test_mixed_distances():
    # Matches farther back than a short copy can reach, and long runs.
    rng = random.Random(99)
    block = bytes(rng.randrange(256) for _ in range(600))
    data = block + bytes(rng.randrange(256) for _ in range(5000)) + block + b"z" * 700
    assert prs.decompress(prs.compress(data)) == data


def test_decompress_hand_built_stream():
    # control byte: literal, literal, short copy (bits 0, 0, 1, 1 → length 5), ...
    # bits LSB first: 1, 1, 0, 0, 1, 1, 0, 1 (end: long copy of 0)
    stream = bytes([0b10110011, ord("a"), ord("b"), 0xFE, 0x00, 0x00])
    assert prs.decompress(stream) == b"ab" + b"ababa"


def test_truncated_stream():
    data = prs.compress(b"hello world, hello world")
    with pytest.raises(PrsError, match="unexpected end"):
        prs.decompress(data[:-2])


def test_copy_before_start():
    # short copy with nothing decoded yet
    stream = bytes([0b0000, 0xFF])
    with pytest.raises(PrsError, match="before the start"):
        prs.decompress(stream)
