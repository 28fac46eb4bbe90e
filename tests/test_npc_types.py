"""Tests for NPC type derivation and its inverse."""

import pytest

from psoquest.models.constants import Episode
from psoquest.models.npc_types import (
    NPC_TYPE_DAT_DATA,
    NpcDatData,
    NpcType,
    is_regular,
    npc_type_of,
    npc_type_to_dat_data,
    scale_with_regular_flag,
)
from psoquest.models.records import Vec3


ONE = Vec3(1.0, 1.0, 1.0)
REGULAR = Vec3(1.0, 0.5, 1.0)


@pytest.mark.parametrize(
    "type_id, roaming, episode, scale, area_id, expected",
    [
        (0x044, 0, Episode.I, ONE, 0, NpcType.BOOMA),
        (0x044, 1, Episode.I, ONE, 0, NpcType.GOBOOMA),
        (0x044, 4, Episode.I, ONE, 0, NpcType.GOBOOMA),
        (0x044, 2, Episode.I, ONE, 0, NpcType.GIGOBOOMA),
        (0x040, 1, Episode.I, ONE, 0, NpcType.HILDEBLUE),
        (0x040, 3, Episode.II, ONE, 0, NpcType.HILDEBLUE2),
        (0x041, 0, Episode.IV, ONE, 0, NpcType.SAND_RAPPY),
        (0x041, 1, Episode.II, ONE, 0, NpcType.LOVE_RAPPY),
        (0x0A6, 2, Episode.II, ONE, 0, NpcType.SO_DIMENIAN2),
        (0x042, 0, Episode.II, ONE, 0, NpcType.MONEST2),
        (0x0C0, 0, Episode.I, ONE, 0, NpcType.DRAGON),
        (0x0C0, 0, Episode.II, ONE, 0, NpcType.GAL_GRYPHON),
        (0x01C, 0, Episode.IV, ONE, 0, NpcType.TEKKER),
    ],
)
def test_npc_type_of(type_id, roaming, episode, scale, area_id, expected):
    assert npc_type_of(type_id, roaming, episode, scale, area_id) is expected


def test_scale_selects_variant():
    assert npc_type_of(0x043, 0, Episode.I, REGULAR, 0) is NpcType.SAVAGE_WOLF
    assert npc_type_of(0x043, 0, Episode.I, ONE, 0) is NpcType.BARBAROUS_WOLF
    assert npc_type_of(0x119, 1, Episode.IV, REGULAR, 0) is NpcType.SHAMBERTIN
    assert npc_type_of(0x119, 1, Episode.IV, ONE, 0) is NpcType.KONDRIEU


def test_area_selects_deep_variant():
    assert npc_type_of(0x0E0, 0, Episode.II, ONE, 16) is NpcType.EPSILON
    assert npc_type_of(0x0E0, 0, Episode.II, ONE, 15) is NpcType.SINOW_ZOA
    assert npc_type_of(0x0E0, 1, Episode.II, ONE, 3) is NpcType.SINOW_ZELE
    assert npc_type_of(0x061, 0, Episode.II, ONE, 17) is NpcType.DEL_LILY
    assert npc_type_of(0x061, 0, Episode.II, ONE, 3) is NpcType.NAR_LILY2
    assert npc_type_of(0x061, 0, Episode.II, REGULAR, 3) is NpcType.POISON_LILY2


def test_unknown_codes():
    assert npc_type_of(0x999, 0, Episode.I, ONE, 0) is NpcType.UNKNOWN
    # Episode II only
    assert npc_type_of(0x0D4, 0, Episode.I, ONE, 0) is NpcType.UNKNOWN


def test_epsilon_is_configurable():
    nearly_one = Vec3(1.0, 1.001, 1.0)
    assert npc_type_of(0x043, 0, Episode.I, nearly_one, 0) is NpcType.SAVAGE_WOLF
    assert npc_type_of(0x043, 0, Episode.I, nearly_one, 0, epsilon=0.01) is NpcType.BARBAROUS_WOLF


def test_inverse():
    assert npc_type_to_dat_data(NpcType.GOBOOMA) == NpcDatData(0x044, 1, True)
    assert npc_type_to_dat_data(NpcType.BARBAROUS_WOLF) == NpcDatData(0x043, 0, False)
    assert npc_type_to_dat_data(NpcType.UNKNOWN) is None


@pytest.mark.parametrize("npc_type", [NpcType.MOTHMANT, NpcType.ST_RAPPY, NpcType.BULK])
def test_types_without_inverse(npc_type):
    with pytest.raises(KeyError):
        npc_type_to_dat_data(npc_type)


@pytest.mark.parametrize("npc_type", sorted(NPC_TYPE_DAT_DATA, key=lambda t: t.value))
def test_inverse_decodes_back(npc_type):
    data = NPC_TYPE_DAT_DATA[npc_type]
    scale = scale_with_regular_flag(ONE, data.regular)

    decoded = {
        npc_type_of(data.type_id, data.roaming, episode, scale, area_id)
        for episode in Episode
        for area_id in (0, 16)
    }

    assert npc_type in decoded


def test_regular_flag_bit():
    assert scale_with_regular_flag(ONE, True).y == 0.5
    assert scale_with_regular_flag(ONE, False).y == 1.0
    assert is_regular(scale_with_regular_flag(ONE, True))
    assert not is_regular(scale_with_regular_flag(ONE, False))
    assert scale_with_regular_flag(Vec3(2.0, 1.0, 3.0), True) == Vec3(2.0, 0.5, 3.0)
