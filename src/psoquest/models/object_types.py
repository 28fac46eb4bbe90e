"""Raw object type codes and the property slots that hold script labels.

Only the codes the quest layer needs to reason about are listed here; the
full name/model table belongs to the editor.
"""

from enum import IntEnum


class ObjectType(IntEnum):
    PLAYER_SET = 0x000
    PARTICLE = 0x001
    TELEPORTER = 0x002
    WARP = 0x003
    LIGHT_COLLISION = 0x004
    ITEM = 0x005
    ENV_SOUND = 0x006
    FOG_COLLISION = 0x007
    EVENT_COLLISION = 0x008
    CHARA_COLLISION = 0x009
    ELEMENTAL_TRAP = 0x00A
    STATUS_TRAP = 0x00B
    HEAL_TRAP = 0x00C
    LARGE_ELEMENTAL_TRAP = 0x00D
    OBJ_ROOM_ID = 0x00E
    SENSOR = 0x00F
    LENSFLARE = 0x011
    SCRIPT_COLLISION = 0x012
    HEAL_RING = 0x013
    MAP_COLLISION = 0x014
    SCRIPT_COLLISION_A = 0x015
    ITEM_LIGHT = 0x016
    RADAR_COLLISION = 0x017
    FOG_COLLISION_SW = 0x018
    BOSS_TELEPORTER = 0x019
    IMAGE_BOARD = 0x01A
    QUEST_WARP = 0x01B
    EPILOGUE = 0x01C
    BOX_DETECT_OBJECT = 0x020
    SYMBOL_CHAT_OBJECT = 0x021
    TOUCH_PLATE_OBJECT = 0x022
    TARGETABLE_OBJECT = 0x023
    EFFECT_OBJECT = 0x024
    COUNT_DOWN_OBJECT = 0x025
    MENU_ACTIVATION = 0x040
    TELEPIPE_LOCATION = 0x041
    BGM_COLLISION = 0x042
    MAIN_RAGOL_TELEPORTER = 0x043
    LOBBY_TELEPORTER = 0x044
    PRINCIPAL_WARP = 0x045
    SHOP_DOOR = 0x046
    HUNTERS_GUILD_DOOR = 0x047
    TELEPORTER_DOOR = 0x048
    MEDICAL_CENTER_DOOR = 0x049
    ELEVATOR = 0x04A
    FOREST_DOOR = 0x080
    FOREST_SWITCH = 0x081
    LASER_FENCE = 0x082
    LASER_SQUARE_FENCE = 0x083
    FOREST_LASER_FENCE_SWITCH = 0x084
    LIGHT_RAYS = 0x085
    BLUE_BUTTERFLY = 0x086
    PROBE = 0x087
    RANDOM_TYPE_BOX_1 = 0x088
    FOREST_WEATHER_STATION = 0x089
    BATTERY = 0x08A
    FOREST_CONSOLE = 0x08B
    BLACK_SLIDING_DOOR = 0x08C
    RICO_MESSAGE_POD = 0x08D
    TALK_LINK_TO_SUPPORT = 0x228


# Property slot index → property name, per raw type code. Slots not listed
# keep their positional name ("property_<index>").
SCRIPT_LABEL_SLOTS: dict[int, dict[int, str]] = {
    ObjectType.SCRIPT_COLLISION: {3: "script_label"},
    ObjectType.FOREST_CONSOLE: {3: "script_label"},
    ObjectType.TALK_LINK_TO_SUPPORT: {3: "script_label"},
    ObjectType.RICO_MESSAGE_POD: {4: "script_label", 5: "script_label_2"},
}

SCRIPT_LABEL_PROPERTIES: tuple[str, ...] = ("script_label", "script_label_2")

OBJECT_PROPERTY_COUNT = 7


def property_name(type_id: int, index: int) -> str:
    """Name of property slot `index` for an object of raw type `type_id`."""
    return SCRIPT_LABEL_SLOTS.get(type_id, {}).get(index, f"property_{index}")


def property_names(type_id: int) -> tuple[str, ...]:
    return tuple(property_name(type_id, i) for i in range(OBJECT_PROPERTY_COUNT))


def object_type_name(type_id: int) -> str:
    try:
        return ObjectType(type_id).name.replace("_", " ").title()
    except ValueError:
        return f"Unknown object {type_id:#05x}"
