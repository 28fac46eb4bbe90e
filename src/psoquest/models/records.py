"""Format-level record data classes for the QST, DAT and BIN files.

These mirror the on-disk layouts closely. Quest-level entities with derived
meaning (NPC types, named object properties) live in models.quest.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from psoquest.models.diagnostics import Diagnostic

if TYPE_CHECKING:
    from psoquest.scripting.instructions import Segment


@dataclass(frozen=True, slots=True)
class Vec3:
    x: float
    y: float
    z: float


# --- QST ---

@dataclass(slots=True)
class QstContainedFile:
    """One logical file reassembled from the interleaved chunk stream."""
    name: str                        # <= 16 ASCII chars, e.g. "quest58.dat"
    data: bytes
    chunk_nos: tuple[int, ...] = ()  # chunk numbers actually seen, sorted
    name2: str | None = None         # secondary name from the header, <= 24 chars
    quest_no: int | None = None
    expected_size: int | None = None


@dataclass(slots=True)
class QstFile:
    """Result of parsing a .qst archive."""
    version: str
    files: list[QstContainedFile]
    warnings: list[Diagnostic] = field(default_factory=list)


# --- DAT ---

@dataclass(frozen=True, slots=True)
class DatObject:
    """A 68-byte object record."""
    type_id: int
    id: int
    group_id: int
    section_id: int
    position: Vec3
    rotation: Vec3                     # radians
    properties: tuple[float | int, ...]  # 3 x f32 then 4 x u32, fixed order
    area_id: int
    unknown: tuple[bytes, ...]         # verbatim: 6 bytes after type_id, 2 after section_id


@dataclass(frozen=True, slots=True)
class DatNpc:
    """A 72-byte NPC record."""
    type_id: int
    section_id: int
    position: Vec3
    rotation: Vec3                     # radians
    scale: Vec3
    npc_id: float
    script_label: float
    roaming: int
    area_id: int
    unknown: tuple[bytes, ...]         # verbatim: 10 bytes, 6 bytes, 4 trailing bytes


@dataclass(frozen=True, slots=True)
class DatUnknown:
    """A table section the codec doesn't interpret, kept byte-for-byte."""
    entity_type: int
    total_size: int
    area_id: int
    entities_size: int
    data: bytes


@dataclass(slots=True)
class DatFile:
    objs: list[DatObject] = field(default_factory=list)
    npcs: list[DatNpc] = field(default_factory=list)
    unknowns: list[DatUnknown] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)


# --- BIN ---

@dataclass(slots=True)
class BinFile:
    quest_id: int
    language: int
    quest_name: str
    short_description: str
    long_description: str
    object_code: list[Segment]
    shop_items: list[int] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)
