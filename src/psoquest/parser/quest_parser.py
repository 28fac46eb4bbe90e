"""High-level quest reading and writing on top of the QST, DAT and BIN codecs.

parse_quest: .qst bytes → Quest
  1. parse_qst, pick the .dat and .bin members
  2. PRS-decompress both; parse_dat, lift objects (named properties)
  3. parse_bin with entry labels {0} ∪ object script labels ∪ NPC script labels
  4. read the episode from label 0, derive NPC types

write_quest_qst is the reverse, with NPC types mapped back to raw type data.
"""

import logging
import math
from dataclasses import dataclass, field

from psoquest.codec_config import CodecConfig
from psoquest.models.constants import Episode
from psoquest.models.diagnostics import Diagnostic, report
from psoquest.models.npc_types import (
    npc_type_of,
    npc_type_to_dat_data,
    scale_with_regular_flag,
)
from psoquest.models.object_types import property_names
from psoquest.models.quest import (
    Quest,
    QuestNpc,
    QuestObject,
    episode_from_object_code,
    find_label_0_segment,
    find_set_episode,
)
from psoquest.models.records import BinFile, DatFile, DatNpc, DatObject, QstContainedFile
from psoquest.parser import prs
from psoquest.parser.bin_parser import parse_bin, write_bin
from psoquest.parser.dat_parser import parse_dat, write_dat
from psoquest.parser.errors import (
    MissingBinFileError,
    MissingDatFileError,
    NpcTypeError,
    ObjectPropertyError,
)
from psoquest.parser.qst_parser import QstFileInput, default_name2, parse_qst, write_qst


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ParsedQuest:
    quest: Quest
    version: str
    warnings: list[Diagnostic] = field(default_factory=list)   # every stage, in order


def parse_quest(
    data: bytes,
    lenient: bool | None = None,
    config: CodecConfig | None = None,
) -> ParsedQuest:
    """Parse a .qst file into a Quest.

    `lenient` overrides config.lenient when given.

    Raises:
        UnsupportedFormatError: If the archive isn't in Blue Burst format.
        MissingDatFileError, MissingBinFileError: If a member is absent.
        DatFormatError, BinFormatError, ObjectCodeError, PrsError: On corrupt members.
    """
    config = config or CodecConfig()
    if lenient is None:
        lenient = config.lenient

    qst = parse_qst(data)
    warnings = list(qst.warnings)
    dat_file, bin_file = _find_members(qst.files)

    dat = parse_dat(prs.decompress(dat_file.data))
    warnings.extend(dat.warnings)
    _check_npc_script_labels(dat.npcs, warnings)
    objects = [_quest_object(obj) for obj in dat.objs]

    bin_result = parse_bin(
        prs.decompress(bin_file.data),
        extract_script_entry_points(objects, dat.npcs),
        lenient,
    )
    warnings.extend(bin_result.warnings)

    _check_episode(bin_result.object_code, warnings)
    episode = episode_from_object_code(bin_result.object_code)

    quest = Quest(
        id=bin_result.quest_id,
        language=bin_result.language,
        name=bin_result.quest_name,
        short_description=bin_result.short_description,
        long_description=bin_result.long_description,
        objects=tuple(objects),
        npcs=tuple(_quest_npc(npc, episode, config) for npc in dat.npcs),
        dat_unknowns=tuple(dat.unknowns),
        object_code=tuple(bin_result.object_code),
        shop_items=tuple(bin_result.shop_items),
    )
    return ParsedQuest(quest=quest, version=qst.version, warnings=warnings)


def write_quest_qst(quest: Quest, file_name: str, config: CodecConfig | None = None) -> bytes:
    """Encode a Quest as a Blue Burst .qst archive.

    The contained files are named after `file_name`'s stem, cut to 11
    characters, with .dat and .bin extensions.

    Raises:
        NpcTypeError: If an NPC's type can't be represented in a DAT file.
        ObjectPropertyError: If an object's property names don't match its type.
    """
    config = config or CodecConfig()
    episode = quest.episode

    dat_data = write_dat(DatFile(
        objs=[_dat_object(obj) for obj in quest.objects],
        npcs=[_dat_npc(npc, episode, config) for npc in quest.npcs],
        unknowns=list(quest.dat_unknowns),
    ))
    bin_data = write_bin(BinFile(
        quest_id=quest.id,
        language=quest.language,
        quest_name=quest.name,
        short_description=quest.short_description,
        long_description=quest.long_description,
        object_code=list(quest.object_code),
        shop_items=list(quest.shop_items),
    ))

    base_name = base_file_name(file_name, config.base_name_length)
    files = []
    for name, payload in ((base_name + ".dat", dat_data), (base_name + ".bin", bin_data)):
        files.append(QstFileInput(
            name=name,
            data=prs.compress(payload),
            name2=default_name2(name, config.name2_suffix),
            quest_no=quest.id & 0xFFFF,
        ))
    return write_qst(files)


def base_file_name(file_name: str, length: int = 11) -> str:
    """Stem of `file_name` cut to `length` chars: quest_about_rappys.qst → quest_about."""
    ext_start = file_name.rfind(".")
    if ext_start == -1:
        return file_name[:length]
    return file_name[: min(length, ext_start)]


def extract_script_entry_points(objects: list[QuestObject], npcs: list[DatNpc]) -> list[int]:
    entry_points = {0}
    for obj in objects:
        entry_points.update(obj.script_labels)
    for npc in npcs:
        label = npc_script_label(npc.script_label)
        if label is not None:
            entry_points.add(label)
    return sorted(entry_points)


def npc_script_label(value: float) -> int | None:
    """The DAT float rounded to a label, None when it's NaN or infinite."""
    return round(value) if math.isfinite(value) else None


def _find_members(files: list[QstContainedFile]) -> tuple[QstContainedFile, QstContainedFile]:
    dat_file = None
    bin_file = None

    for file in files:
        name = file.name.strip().lower()
        if name.endswith(".dat"):
            dat_file = file
        elif name.endswith(".bin"):
            bin_file = file

    if dat_file is None:
        logger.error("File contains no DAT file.")
        raise MissingDatFileError()
    if bin_file is None:
        logger.error("File contains no BIN file.")
        raise MissingBinFileError()

    return dat_file, bin_file


def _check_episode(object_code, warnings: list[Diagnostic]) -> None:
    if not object_code:
        report(warnings, logger, "no_object_code",
               "File contains no instruction labels, defaulting to Episode I.")
        return
    segment = find_label_0_segment(object_code)
    if segment is None:
        report(warnings, logger, "no_label_0",
               "No instruction segment for label 0 found, defaulting to Episode I.")
    elif find_set_episode(segment) is None:
        report(warnings, logger, "no_set_episode",
               "Label 0 has no set_episode instruction, defaulting to Episode I.")


def _check_npc_script_labels(npcs: list[DatNpc], warnings: list[Diagnostic]) -> None:
    for index, npc in enumerate(npcs):
        if not math.isfinite(npc.script_label):
            report(warnings, logger, "npc_script_label",
                   f"NPC {index} has script label {npc.script_label}, it won't be used.")


def _quest_object(obj: DatObject) -> QuestObject:
    return QuestObject(
        type_id=obj.type_id,
        id=obj.id,
        group_id=obj.group_id,
        area_id=obj.area_id,
        section_id=obj.section_id,
        position=obj.position,
        rotation=obj.rotation,
        properties=dict(zip(property_names(obj.type_id), obj.properties)),
        unknown=obj.unknown,
    )


def _dat_object(obj: QuestObject) -> DatObject:
    names = property_names(obj.type_id)
    if set(obj.properties) != set(names):
        raise ObjectPropertyError(
            f"Object of type {obj.type_id:#05x} needs properties {', '.join(names)}, "
            f"got {', '.join(obj.properties)}."
        )

    return DatObject(
        type_id=obj.type_id,
        id=obj.id,
        group_id=obj.group_id,
        section_id=obj.section_id,
        position=obj.position,
        rotation=obj.rotation,
        properties=tuple(obj.properties[name] for name in names),
        area_id=obj.area_id,
        unknown=obj.unknown,
    )


def _quest_npc(npc: DatNpc, episode: Episode, config: CodecConfig) -> QuestNpc:
    return QuestNpc(
        type=npc_type_of(
            npc.type_id, npc.roaming, episode, npc.scale, npc.area_id,
            epsilon=config.regular_scale_epsilon,
        ),
        pso_type_id=npc.type_id,
        npc_id=npc.npc_id,
        script_label=npc_script_label(npc.script_label),
        roaming=npc.roaming,
        area_id=npc.area_id,
        section_id=npc.section_id,
        position=npc.position,
        rotation=npc.rotation,
        scale=npc.scale,
        unknown=npc.unknown,
    )


def _dat_npc(npc: QuestNpc, episode: Episode, config: CodecConfig) -> DatNpc:
    type_id, roaming, scale = npc.pso_type_id, npc.roaming, npc.scale

    current_type = npc_type_of(
        type_id, roaming, episode, scale, npc.area_id,
        epsilon=config.regular_scale_epsilon,
    )
    # Raw data that still decodes to the NPC's type is written back untouched.
    if current_type is not npc.type:
        try:
            dat_data = npc_type_to_dat_data(npc.type)
        except KeyError:
            raise NpcTypeError(
                f"NPC type {npc.type.value} can't be written to a DAT file."
            ) from None

        if dat_data is None:
            scale = scale_with_regular_flag(scale, True)
        else:
            type_id, roaming = dat_data.type_id, dat_data.roaming
            scale = scale_with_regular_flag(scale, dat_data.regular)

    return DatNpc(
        type_id=type_id,
        section_id=npc.section_id,
        position=npc.position,
        rotation=npc.rotation,
        scale=scale,
        npc_id=npc.npc_id,
        script_label=math.nan if npc.script_label is None else float(npc.script_label),
        roaming=roaming,
        area_id=npc.area_id,
        unknown=npc.unknown,
    )
