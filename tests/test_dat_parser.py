"""Tests for the DAT entity table codec."""

import math
import struct

import pytest

from psoquest.models.constants import DAT_ENTITY_NPC, DAT_ENTITY_OBJECT, DAT_ENTITY_WAVE
from psoquest.models.records import DatFile, DatNpc, DatObject, DatUnknown, Vec3
from psoquest.parser.dat_parser import (
    NPC_SIZE,
    OBJECT_SIZE,
    SECTION_HEADER_SIZE,
    angle_from_dat,
    angle_to_dat,
    parse_dat,
    write_dat,
)
from psoquest.parser.errors import DatFormatError


def _object(area_id=0, type_id=0x0001, id=0, **overrides) -> DatObject:
    fields = dict(
        type_id=type_id,
        id=id,
        group_id=3,
        section_id=7,
        position=Vec3(1.5, -20.25, 300.0),
        rotation=Vec3(angle_from_dat(0), angle_from_dat(16384), angle_from_dat(-100)),
        properties=(0.5, 2.0, -1.0, 1, 2, 0xFFFFFFFF, 0),
        area_id=area_id,
        unknown=(b"\x01\x02\x03\x04\x05\x06", b"\xAA\xBB"),
    )
    fields.update(overrides)
    return DatObject(**fields)


def _npc(area_id=0, type_id=0x044, roaming=0, **overrides) -> DatNpc:
    fields = dict(
        type_id=type_id,
        section_id=2,
        position=Vec3(10.0, 0.0, -5.5),
        rotation=Vec3(0.0, angle_from_dat(32768), 0.0),
        scale=Vec3(1.0, 1.0, 1.0),
        npc_id=4.0,
        script_label=100.0,
        roaming=roaming,
        area_id=area_id,
        unknown=(bytes(range(10)), bytes(range(6)), b"\x00\x00\x80\x3F"),
    )
    fields.update(overrides)
    return DatNpc(**fields)


def _section(entity_type: int, area_id: int, body: bytes) -> bytes:
    return struct.pack(
        "<IIII", entity_type, len(body) + SECTION_HEADER_SIZE, area_id, len(body),
    ) + body


def test_object_record_layout():
    data = write_dat(DatFile(objs=[_object(area_id=4, type_id=0x00C1, id=9)]))

    assert struct.unpack_from("<IIII", data) == (
        DAT_ENTITY_OBJECT, OBJECT_SIZE + SECTION_HEADER_SIZE, 4, OBJECT_SIZE,
    )
    record = data[SECTION_HEADER_SIZE : SECTION_HEADER_SIZE + OBJECT_SIZE]
    assert struct.unpack_from("<H", record, 0)[0] == 0x00C1
    assert record[2:8] == b"\x01\x02\x03\x04\x05\x06"
    assert struct.unpack_from("<HHH", record, 8) == (9, 3, 7)
    assert record[14:16] == b"\xAA\xBB"
    assert struct.unpack_from("<fff", record, 16) == (1.5, -20.25, 300.0)
    assert struct.unpack_from("<iii", record, 28) == (0, 16384, -100)
    assert struct.unpack_from("<fff", record, 40) == (0.5, 2.0, -1.0)
    assert struct.unpack_from("<IIII", record, 52) == (1, 2, 0xFFFFFFFF, 0)
    # End marker
    assert data[SECTION_HEADER_SIZE + OBJECT_SIZE :] == b"\x00" * SECTION_HEADER_SIZE


def test_npc_record_layout():
    data = write_dat(DatFile(npcs=[_npc(area_id=1, type_id=0x0D4, roaming=3)]))

    assert struct.unpack_from("<IIII", data) == (
        DAT_ENTITY_NPC, NPC_SIZE + SECTION_HEADER_SIZE, 1, NPC_SIZE,
    )
    record = data[SECTION_HEADER_SIZE : SECTION_HEADER_SIZE + NPC_SIZE]
    assert struct.unpack_from("<H", record, 0)[0] == 0x0D4
    assert record[2:12] == bytes(range(10))
    assert struct.unpack_from("<H", record, 12)[0] == 2
    assert record[14:20] == bytes(range(6))
    assert struct.unpack_from("<fff", record, 20) == (10.0, 0.0, -5.5)
    assert struct.unpack_from("<iii", record, 32) == (0, 32768, 0)
    assert struct.unpack_from("<fff", record, 44) == (1.0, 1.0, 1.0)
    assert struct.unpack_from("<ff", record, 56) == (4.0, 100.0)
    assert struct.unpack_from("<I", record, 64)[0] == 3
    assert record[68:72] == b"\x00\x00\x80\x3F"


def test_round_trip():
    dat = DatFile(
        objs=[_object(area_id=0, id=0), _object(area_id=0, id=1), _object(area_id=2, id=2)],
        npcs=[_npc(area_id=1), _npc(area_id=3, type_id=0x0A1)],
        unknowns=[DatUnknown(DAT_ENTITY_WAVE, 16 + 8, 1, 8, b"\x01\x00\x00\x00\x02\x00\x00\x00")],
    )

    parsed = parse_dat(write_dat(dat))

    assert parsed.objs == dat.objs
    assert parsed.npcs == dat.npcs
    assert parsed.unknowns == dat.unknowns
    assert parsed.warnings == []


def test_sections_are_grouped_by_ascending_area():
    dat = DatFile(objs=[_object(area_id=5, id=0), _object(area_id=1, id=1), _object(area_id=5, id=2)])

    data = write_dat(dat)

    first = struct.unpack_from("<IIII", data)
    assert first == (DAT_ENTITY_OBJECT, OBJECT_SIZE + 16, 1, OBJECT_SIZE)
    second = struct.unpack_from("<IIII", data, 16 + OBJECT_SIZE)
    assert second == (DAT_ENTITY_OBJECT, 2 * OBJECT_SIZE + 16, 5, 2 * OBJECT_SIZE)
    assert [o.id for o in parse_dat(data).objs] == [1, 0, 2]


def test_unknown_section_is_written_verbatim():
    body = bytes(range(40))
    raw = _section(DAT_ENTITY_WAVE, 7, body) + b"\x00" * 16

    dat = parse_dat(raw)

    assert dat.unknowns == [DatUnknown(DAT_ENTITY_WAVE, 56, 7, 40, body)]
    assert write_dat(dat) == raw


def test_parsing_stops_at_end_marker():
    raw = _section(DAT_ENTITY_WAVE, 0, b"\x01\x02") + b"\x00" * 16 + b"garbage after the end"
    assert len(parse_dat(raw).unknowns) == 1


def test_missing_end_marker_is_accepted():
    raw = _section(DAT_ENTITY_WAVE, 0, b"\x01\x02")
    assert len(parse_dat(raw).unknowns) == 1


def test_section_remainder_is_kept_with_warning():
    record = write_dat(DatFile(npcs=[_npc(area_id=2)]))[16 : 16 + NPC_SIZE]
    raw = _section(DAT_ENTITY_NPC, 2, record + b"\xDE\xAD\xBE\xEF") + b"\x00" * 16

    dat = parse_dat(raw)

    assert len(dat.npcs) == 1
    assert [w.code for w in dat.warnings] == ["dat_section_remainder"]
    assert "not divisible by 72" in dat.warnings[0].message
    assert dat.unknowns == [DatUnknown(DAT_ENTITY_NPC, 20, 2, 4, b"\xDE\xAD\xBE\xEF")]


def test_mismatched_entities_size():
    raw = struct.pack("<IIII", DAT_ENTITY_OBJECT, 100, 0, 68) + b"\x00" * 68
    with pytest.raises(DatFormatError, match="Expected an entities size of 84, got 68"):
        parse_dat(raw)


def test_truncated_section():
    raw = struct.pack("<IIII", DAT_ENTITY_OBJECT, 84, 0, 68) + b"\x00" * 10
    with pytest.raises(ValueError, match="exceed boundary"):
        parse_dat(raw)


def test_empty_table():
    assert write_dat(DatFile()) == b"\x00" * 16
    dat = parse_dat(b"\x00" * 16)
    assert (dat.objs, dat.npcs, dat.unknowns) == ([], [], [])


@pytest.mark.parametrize("raw", [0, 1, 16384, 32768, 65535, -8192])
def test_angle_conversion_round_trips(raw):
    assert angle_to_dat(angle_from_dat(raw)) == raw


def test_angle_units():
    assert angle_from_dat(0xFFFF) == pytest.approx(2 * math.pi)
    assert angle_to_dat(math.pi / 2) == 16384
