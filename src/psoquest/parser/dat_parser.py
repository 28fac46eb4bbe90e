"""Read and write the .dat entity table.

The table is a run of sections, each with a 16-byte header:
  entity_type (uint32), total_size (uint32), area_id (uint32),
  entities_size (uint32 = total_size - 16)
followed by entities_size bytes of records. entity_type 0 ends the table.

Object record (68 bytes):
  0   type_id uint16        2   unknown (6 bytes)     8   id uint16
  10  group_id uint16       12  section_id uint16     14  unknown (2 bytes)
  16  position 3 x float32  28  rotation 3 x int32    40  properties 3 x float32
  52  properties 4 x uint32

NPC record (72 bytes):
  0   type_id uint16        2   unknown (10 bytes)    12  section_id uint16
  14  unknown (6 bytes)     20  position 3 x float32  32  rotation 3 x int32
  44  scale 3 x float32     56  npc_id float32        60  script_label float32
  64  roaming uint32        68  unknown (4 bytes)

Rotations are stored in units of 2π / 0xFFFF.
"""

import logging
import math
from collections.abc import Callable

from psoquest.models.constants import DAT_ENTITY_END, DAT_ENTITY_NPC, DAT_ENTITY_OBJECT
from psoquest.models.diagnostics import report
from psoquest.models.records import DatFile, DatNpc, DatObject, DatUnknown, Vec3
from psoquest.parser.binary_reader import BinaryReader
from psoquest.parser.binary_writer import BinaryWriter
from psoquest.parser.errors import DatFormatError


logger = logging.getLogger(__name__)

SECTION_HEADER_SIZE = 16
OBJECT_SIZE = 68
NPC_SIZE = 72

_ROTATION_SCALE = 2 * math.pi / 0xFFFF


def angle_from_dat(value: int) -> float:
    return value * _ROTATION_SCALE


def angle_to_dat(angle: float) -> int:
    return round(angle / _ROTATION_SCALE)


def parse_dat(data: bytes) -> DatFile:
    """Parse a decompressed .dat file.

    Raises:
        DatFormatError: If a section's entities size disagrees with its total size.
    """
    dat = DatFile()
    reader = BinaryReader(data)

    while reader.remaining:
        entity_type = reader.uint32()
        if entity_type == DAT_ENTITY_END:
            break

        total_size = reader.uint32()
        area_id = reader.uint32()
        entities_size = reader.uint32()

        if entities_size != total_size - SECTION_HEADER_SIZE:
            raise DatFormatError(
                f"Malformed DAT file. Expected an entities size of "
                f"{total_size - SECTION_HEADER_SIZE}, got {entities_size}."
            )

        section = reader.slice(entities_size)

        if entity_type == DAT_ENTITY_OBJECT:
            _parse_records(section, OBJECT_SIZE, _parse_object, dat.objs,
                           entity_type, area_id, dat)
        elif entity_type == DAT_ENTITY_NPC:
            _parse_records(section, NPC_SIZE, _parse_npc, dat.npcs,
                           entity_type, area_id, dat)
        else:
            dat.unknowns.append(DatUnknown(
                entity_type=entity_type,
                total_size=total_size,
                area_id=area_id,
                entities_size=entities_size,
                data=section.bytes(entities_size),
            ))

    return dat


def _parse_records(
    section: BinaryReader,
    record_size: int,
    parse_record: Callable[[BinaryReader, int], DatObject | DatNpc],
    sink: list,
    entity_type: int,
    area_id: int,
    dat: DatFile,
) -> None:
    count, remainder = divmod(section.size, record_size)

    for _ in range(count):
        sink.append(parse_record(section.slice(record_size), area_id))

    if remainder:
        kind = "object" if entity_type == DAT_ENTITY_OBJECT else "NPC"
        report(
            dat.warnings, logger, "dat_section_remainder",
            f"Section size of {kind} section in area {area_id} is not divisible "
            f"by {record_size}, keeping the last {remainder} bytes as unknown data.",
        )
        # Kept as an unknown section of the same type so it gets written back.
        dat.unknowns.append(DatUnknown(
            entity_type=entity_type,
            total_size=remainder + SECTION_HEADER_SIZE,
            area_id=area_id,
            entities_size=remainder,
            data=section.bytes(remainder),
        ))


def _read_rotation(reader: BinaryReader) -> Vec3:
    return Vec3(*(angle_from_dat(v) for v in reader.int32_array(3)))


def _parse_object(reader: BinaryReader, area_id: int) -> DatObject:
    type_id = reader.uint16()
    unknown1 = reader.bytes(6)
    id = reader.uint16()
    group_id = reader.uint16()
    section_id = reader.uint16()
    unknown2 = reader.bytes(2)
    position = reader.vec3_float32()
    rotation = _read_rotation(reader)
    properties = (
        reader.float32(),
        reader.float32(),
        reader.float32(),
        *reader.uint32_array(4),
    )

    return DatObject(
        type_id=type_id,
        id=id,
        group_id=group_id,
        section_id=section_id,
        position=position,
        rotation=rotation,
        properties=properties,
        area_id=area_id,
        unknown=(unknown1, unknown2),
    )


def _parse_npc(reader: BinaryReader, area_id: int) -> DatNpc:
    type_id = reader.uint16()
    unknown1 = reader.bytes(10)
    section_id = reader.uint16()
    unknown2 = reader.bytes(6)
    position = reader.vec3_float32()
    rotation = _read_rotation(reader)
    scale = reader.vec3_float32()
    npc_id = reader.float32()
    script_label = reader.float32()
    roaming = reader.uint32()
    unknown3 = reader.bytes(4)

    return DatNpc(
        type_id=type_id,
        section_id=section_id,
        position=position,
        rotation=rotation,
        scale=scale,
        npc_id=npc_id,
        script_label=script_label,
        roaming=roaming,
        area_id=area_id,
        unknown=(unknown1, unknown2, unknown3),
    )


def write_dat(dat: DatFile) -> bytes:
    """Encode a DatFile.

    Objects and NPCs are written in one section per area (ascending area id,
    original order within an area), followed by the unknown sections verbatim
    and the end marker.
    """
    writer = BinaryWriter()

    for area_id, objs in _group_by_area(dat.objs):
        _write_section_header(writer, DAT_ENTITY_OBJECT, area_id, len(objs) * OBJECT_SIZE)
        for obj in objs:
            _write_object(writer, obj)

    for area_id, npcs in _group_by_area(dat.npcs):
        _write_section_header(writer, DAT_ENTITY_NPC, area_id, len(npcs) * NPC_SIZE)
        for npc in npcs:
            _write_npc(writer, npc)

    for unknown in dat.unknowns:
        writer.uint32(unknown.entity_type)
        writer.uint32(unknown.total_size)
        writer.uint32(unknown.area_id)
        writer.uint32(unknown.entities_size)
        writer.bytes(unknown.data)

    writer.zeros(SECTION_HEADER_SIZE)
    return writer.getvalue()


def _group_by_area(entities):
    groups: dict[int, list] = {}
    for entity in entities:
        groups.setdefault(entity.area_id, []).append(entity)
    return sorted(groups.items())


def _write_section_header(writer: BinaryWriter, entity_type: int, area_id: int, size: int) -> None:
    writer.uint32(entity_type)
    writer.uint32(size + SECTION_HEADER_SIZE)
    writer.uint32(area_id)
    writer.uint32(size)


def _write_rotation(writer: BinaryWriter, rotation: Vec3) -> None:
    writer.int32(angle_to_dat(rotation.x))
    writer.int32(angle_to_dat(rotation.y))
    writer.int32(angle_to_dat(rotation.z))


def _write_object(writer: BinaryWriter, obj: DatObject) -> None:
    writer.uint16(obj.type_id)
    writer.bytes(obj.unknown[0])
    writer.uint16(obj.id)
    writer.uint16(obj.group_id)
    writer.uint16(obj.section_id)
    writer.bytes(obj.unknown[1])
    writer.vec3_float32(obj.position)
    _write_rotation(writer, obj.rotation)
    for value in obj.properties[:3]:
        writer.float32(value)
    for value in obj.properties[3:]:
        writer.uint32(value)


def _write_npc(writer: BinaryWriter, npc: DatNpc) -> None:
    writer.uint16(npc.type_id)
    writer.bytes(npc.unknown[0])
    writer.uint16(npc.section_id)
    writer.bytes(npc.unknown[1])
    writer.vec3_float32(npc.position)
    _write_rotation(writer, npc.rotation)
    writer.vec3_float32(npc.scale)
    writer.float32(npc.npc_id)
    writer.float32(npc.script_label)
    writer.uint32(npc.roaming)
    writer.bytes(npc.unknown[2])
