"""Quest-level model: entities with derived meaning plus the object code.

Episode and map designations aren't stored; they're read from the object
code each time, so a Quest assembled from parts can't disagree with its own
script.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from psoquest.models.constants import EPISODE_BY_SET_EPISODE_ARG, Episode
from psoquest.models.npc_types import NpcType
from psoquest.models.object_types import SCRIPT_LABEL_PROPERTIES, object_type_name
from psoquest.models.records import DatUnknown, Vec3
from psoquest.scripting.instructions import Instruction, InstructionSegment, Segment
from psoquest.scripting.opcodes import BB_MAP_DESIGNATE, SET_EPISODE


@dataclass(frozen=True, slots=True)
class QuestObject:
    type_id: int
    id: int
    group_id: int
    area_id: int
    section_id: int
    position: Vec3
    rotation: Vec3
    # Ordered name → value; script label slots are renamed, the rest are
    # "property_<index>". Stored read-only.
    properties: Mapping[str, float | int] = field(hash=False)
    unknown: tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    @property
    def type_name(self) -> str:
        return object_type_name(self.type_id)

    @property
    def script_labels(self) -> list[int]:
        return [
            int(self.properties[name])
            for name in SCRIPT_LABEL_PROPERTIES
            if name in self.properties
        ]


@dataclass(frozen=True, slots=True)
class QuestNpc:
    type: NpcType
    pso_type_id: int    # raw type code as read, kept for NpcType.UNKNOWN
    npc_id: float
    script_label: int | None    # None when the DAT value is NaN or infinite
    roaming: int
    area_id: int
    section_id: int
    position: Vec3
    rotation: Vec3
    scale: Vec3
    unknown: tuple[bytes, ...] = ()


@dataclass(frozen=True, slots=True)
class Quest:
    id: int
    language: int
    name: str
    short_description: str
    long_description: str
    objects: tuple[QuestObject, ...] = ()
    npcs: tuple[QuestNpc, ...] = ()
    dat_unknowns: tuple[DatUnknown, ...] = ()  # DAT sections kept verbatim
    object_code: tuple[Segment, ...] = ()
    shop_items: tuple[int, ...] = ()

    @property
    def episode(self) -> Episode:
        return episode_from_object_code(self.object_code)

    @property
    def map_designations(self) -> dict[int, int]:
        return map_designations_from_object_code(self.object_code)


def find_label_0_segment(object_code: tuple[Segment, ...] | list[Segment]) -> InstructionSegment | None:
    for segment in object_code:
        if isinstance(segment, InstructionSegment) and 0 in segment.labels:
            return segment
    return None


def find_set_episode(segment: InstructionSegment) -> Instruction | None:
    for instruction in segment.instructions:
        if instruction.opcode == SET_EPISODE:
            return instruction
    return None


def episode_from_object_code(object_code) -> Episode:
    """Episode from the first set_episode in label 0. Defaults to Episode I."""
    segment = find_label_0_segment(object_code)
    if segment is None:
        return Episode.I
    instruction = find_set_episode(segment)
    if instruction is None:
        return Episode.I
    return EPISODE_BY_SET_EPISODE_ARG.get(instruction.args[0].value, Episode.I)


def map_designations_from_object_code(object_code) -> dict[int, int]:
    """Area id → variant id from label 0's bb_map_designate calls; last one wins."""
    segment = find_label_0_segment(object_code)
    designations: dict[int, int] = {}
    if segment is None:
        return designations
    for instruction in segment.instructions:
        if instruction.opcode == BB_MAP_DESIGNATE:
            designations[instruction.args[0].value] = instruction.args[2].value
    return designations
