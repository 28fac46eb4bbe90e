"""Tests for the BIN container and object code decoding."""

import struct

import pytest

from psoquest.models.constants import BIN_OBJECT_CODE_OFFSET, BIN_SHOP_ITEM_COUNT
from psoquest.models.records import BinFile
from psoquest.parser.bin_parser import parse_bin, write_bin
from psoquest.parser.errors import BinFormatError, ObjectCodeError
from psoquest.scripting import assemble
from psoquest.scripting.instructions import DataSegment, InstructionSegment
from psoquest.scripting.object_code import write_object_code


def _object_code(source: str):
    result = assemble(source.split("\n"))
    assert result.errors == []
    return result.object_code


def _bin_file(object_code, **overrides) -> BinFile:
    fields = dict(
        quest_id=58,
        language=1,
        quest_name="Lost HEAT SWORD",
        short_description="Retrieve a\nweapon.",
        long_description="Client: Hopkins\nQuest: ...",
        object_code=object_code,
        shop_items=[0x0101, 0x0202],
    )
    fields.update(overrides)
    return BinFile(**fields)


SCRIPT = """
0:  set_episode 0
    set_floor_handler 0, 150
    leto r1, 20
    ret
150:
    leti r2, 1
151:
    ret
.data
20: 01 02 03 04
"""


def test_header_layout():
    object_code = _object_code(SCRIPT)
    code, label_offsets = write_object_code(object_code)

    data = write_bin(_bin_file(object_code))

    label_table_offset = BIN_OBJECT_CODE_OFFSET + len(code)
    assert struct.unpack_from("<IIIIII", data) == (
        BIN_OBJECT_CODE_OFFSET, label_table_offset, len(data), 0xFFFFFFFF, 58, 1,
    )
    assert data[24:24 + 30] == "Lost HEAT SWORD".encode("utf-16-le")
    assert struct.unpack_from("<II", data, 924) == (0x0101, 0x0202)
    assert data[BIN_OBJECT_CODE_OFFSET:label_table_offset] == code
    assert len(data) == label_table_offset + 4 * len(label_offsets)
    assert list(struct.unpack_from(f"<{len(label_offsets)}i", data, label_table_offset)) == label_offsets


def test_round_trip():
    object_code = _object_code(SCRIPT)

    bin_file = parse_bin(write_bin(_bin_file(object_code)), [0])

    assert bin_file.warnings == []
    assert bin_file.quest_id == 58
    assert bin_file.language == 1
    assert bin_file.quest_name == "Lost HEAT SWORD"
    assert bin_file.short_description == "Retrieve a\nweapon."
    assert bin_file.long_description == "Client: Hopkins\nQuest: ..."
    assert bin_file.shop_items[:3] == [0x0101, 0x0202, 0]
    assert len(bin_file.shop_items) == BIN_SHOP_ITEM_COUNT
    assert bin_file.object_code == object_code


def test_labels_are_found_through_pushes_and_fall_through():
    object_code = _object_code(SCRIPT)

    segments = parse_bin(write_bin(_bin_file(object_code)), [0]).object_code

    assert [(type(s), s.labels) for s in segments] == [
        (InstructionSegment, (0,)),
        (InstructionSegment, (150,)),
        (InstructionSegment, (151,)),
        (DataSegment, (20,)),
    ]


def test_unreferenced_code_becomes_data():
    object_code = _object_code("""
0:  ret
1:  ret
""")

    segments = parse_bin(write_bin(_bin_file(object_code)), [0]).object_code

    assert segments[1] == DataSegment((1,), b"\x01")


def test_extra_entry_labels():
    object_code = _object_code("""
0:  ret
1:  ret
""")

    segments = parse_bin(write_bin(_bin_file(object_code)), [0, 1]).object_code

    assert segments == object_code


def test_unregistered_entry_label_warns():
    object_code = _object_code("0: ret")

    bin_file = parse_bin(write_bin(_bin_file(object_code)), [0, 99])

    assert [w.code for w in bin_file.warnings] == ["unregistered_label"]
    assert bin_file.object_code == object_code


def test_truncated_instruction_strict():
    data = write_bin(_bin_file([DataSegment((0,), b"\x09\x01\x00")]))
    with pytest.raises(ObjectCodeError, match="Couldn't parse instruction at offset 0"):
        parse_bin(data, [0])


def test_truncated_instruction_lenient():
    data = write_bin(_bin_file([DataSegment((0,), b"\x09\x01\x00")]))

    bin_file = parse_bin(data, [0], lenient=True)

    assert [(w.severity, w.code) for w in bin_file.warnings] == [
        ("error", "instruction_parse_failed"),
    ]
    assert bin_file.object_code == [DataSegment((0,), b"\x09\x01\x00")]


def test_size_field_mismatch_warns():
    data = bytearray(write_bin(_bin_file(_object_code("0: ret"))))
    struct.pack_into("<I", data, 8, len(data) + 4)

    bin_file = parse_bin(bytes(data))

    assert [w.code for w in bin_file.warnings] == ["bin_size_mismatch"]


def test_label_table_offset_out_of_range():
    data = bytearray(write_bin(_bin_file(_object_code("0: ret"))))
    struct.pack_into("<I", data, 4, len(data) + 100)

    with pytest.raises(BinFormatError, match="don't fit"):
        parse_bin(bytes(data))


def test_too_many_shop_items():
    with pytest.raises(BinFormatError, match="more than 932 shop items"):
        write_bin(_bin_file([], shop_items=[1] * (BIN_SHOP_ITEM_COUNT + 1)))


def test_duplicate_label_on_write():
    segments = [InstructionSegment((0,)), InstructionSegment((0,))]
    with pytest.raises(ValueError, match="Duplicate label 0"):
        write_object_code(segments)
