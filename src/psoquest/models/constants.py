"""Episodes, languages and BIN/DAT layout constants."""

from enum import IntEnum


class Episode(IntEnum):
    """Game episode a quest takes place in.

    The value is the episode number; set_episode's argument is an index
    (0 → I, 1 → II, 2 → IV), see EPISODE_BY_SET_EPISODE_ARG.
    """
    I = 1
    II = 2
    IV = 4


EPISODE_BY_SET_EPISODE_ARG: dict[int, Episode] = {
    0: Episode.I,
    1: Episode.II,
    2: Episode.IV,
}


class Language(IntEnum):
    JAPANESE = 0
    ENGLISH = 1
    GERMAN = 2
    FRENCH = 3
    SPANISH = 4


# DAT table entity types
DAT_ENTITY_END = 0
DAT_ENTITY_OBJECT = 1
DAT_ENTITY_NPC = 2
DAT_ENTITY_WAVE = 3   # wave/event table, kept as an unknown section

# BIN header field sizes, in bytes
BIN_QUEST_NAME_SIZE = 64
BIN_SHORT_DESCRIPTION_SIZE = 256
BIN_LONG_DESCRIPTION_SIZE = 576
BIN_SHOP_ITEM_COUNT = 932
BIN_OBJECT_CODE_OFFSET = 4652
