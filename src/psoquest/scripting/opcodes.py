"""The quest script instruction set.

Opcodes 0x00-0xF7 are one byte; 0xF8xx and 0xF9xx are two bytes, written
high byte first. Opcodes marked with a stack interaction take their
arguments from the argument stack (filled by the arg_push* opcodes) instead
of inline operands.

Codes without a known meaning are kept as unknown_<code> entries with no
parameters so any byte can still be decoded into an instruction.
"""

from dataclasses import dataclass
from enum import Enum


class ParamType(Enum):
    U8 = "byte"
    U16 = "word"
    U32 = "dword"
    I32 = "int"
    F32 = "float"
    REG_REF = "register"             # register number, 1 byte
    REG_TUP_REF = "register_tuple"   # first register of a run, 1 byte
    I_LABEL = "instruction_label"
    D_LABEL = "data_label"
    S_LABEL = "string_label"
    STRING = "string"
    I_LABEL_VAR = "instruction_label_list"
    REG_REF_VAR = "register_list"


LABEL_PARAM_TYPES = frozenset({ParamType.I_LABEL, ParamType.D_LABEL, ParamType.S_LABEL})
REGISTER_PARAM_TYPES = frozenset({ParamType.REG_REF, ParamType.REG_TUP_REF})

# Fixed on-disk widths; STRING and the *_VAR types are variable.
PARAM_SIZES: dict[ParamType, int] = {
    ParamType.U8: 1,
    ParamType.U16: 2,
    ParamType.U32: 4,
    ParamType.I32: 4,
    ParamType.F32: 4,
    ParamType.REG_REF: 1,
    ParamType.REG_TUP_REF: 1,
    ParamType.I_LABEL: 2,
    ParamType.D_LABEL: 2,
    ParamType.S_LABEL: 2,
}


class StackInteraction(Enum):
    PUSH = "push"
    POP = "pop"


@dataclass(frozen=True, slots=True)
class Opcode:
    code: int
    mnemonic: str
    params: tuple[ParamType, ...] = ()
    stack: StackInteraction | None = None

    @property
    def size(self) -> int:
        return 1 if self.code < 0x100 else 2

    @property
    def pops_arguments(self) -> bool:
        return self.stack is StackInteraction.POP

    def __repr__(self) -> str:
        return f"Opcode({self.mnemonic}, {self.code:#04x})"


P = ParamType
_POP = StackInteraction.POP
_PUSH = StackInteraction.PUSH

_OPCODE_LIST: list[Opcode] = [
    Opcode(0x00, "nop"),
    Opcode(0x01, "ret"),
    Opcode(0x02, "sync"),
    Opcode(0x03, "exit", (P.I32,), _POP),
    Opcode(0x04, "thread", (P.I_LABEL,)),
    Opcode(0x05, "va_start"),
    Opcode(0x06, "va_end"),
    Opcode(0x07, "va_call", (P.I_LABEL,)),
    Opcode(0x08, "let", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x09, "leti", (P.REG_TUP_REF, P.I32)),
    Opcode(0x0A, "letb", (P.REG_TUP_REF, P.U8)),
    Opcode(0x0B, "letw", (P.REG_TUP_REF, P.U16)),
    Opcode(0x0C, "leta", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x0D, "leto", (P.REG_TUP_REF, P.D_LABEL)),
    Opcode(0x10, "set", (P.REG_TUP_REF,)),
    Opcode(0x11, "clear", (P.REG_TUP_REF,)),
    Opcode(0x12, "rev", (P.REG_TUP_REF,)),
    Opcode(0x13, "gset", (P.U16,)),
    Opcode(0x14, "gclear", (P.U16,)),
    Opcode(0x15, "grev", (P.U16,)),
    Opcode(0x16, "glet", (P.U16, P.REG_TUP_REF)),
    Opcode(0x17, "gget", (P.U16, P.REG_TUP_REF)),
    Opcode(0x18, "add", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x19, "addi", (P.REG_TUP_REF, P.I32)),
    Opcode(0x1A, "sub", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x1B, "subi", (P.REG_TUP_REF, P.I32)),
    Opcode(0x1C, "mul", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x1D, "muli", (P.REG_TUP_REF, P.I32)),
    Opcode(0x1E, "div", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x1F, "divi", (P.REG_TUP_REF, P.I32)),
    Opcode(0x20, "and", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x21, "andi", (P.REG_TUP_REF, P.I32)),
    Opcode(0x22, "or", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x23, "ori", (P.REG_TUP_REF, P.I32)),
    Opcode(0x24, "xor", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x25, "xori", (P.REG_TUP_REF, P.I32)),
    Opcode(0x26, "mod", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x27, "modi", (P.REG_TUP_REF, P.I32)),
    Opcode(0x28, "jmp", (P.I_LABEL,)),
    Opcode(0x29, "call", (P.I_LABEL,)),
    Opcode(0x2A, "jmp_on", (P.I_LABEL, P.REG_REF_VAR)),
    Opcode(0x2B, "jmp_off", (P.I_LABEL, P.REG_REF_VAR)),
    Opcode(0x2C, "jmp_=", (P.REG_REF, P.REG_REF, P.I_LABEL)),
    Opcode(0x2D, "jmpi_=", (P.REG_REF, P.I32, P.I_LABEL)),
    Opcode(0x2E, "jmp_!=", (P.REG_REF, P.REG_REF, P.I_LABEL)),
    Opcode(0x2F, "jmpi_!=", (P.REG_REF, P.I32, P.I_LABEL)),
    Opcode(0x30, "ujmp_>", (P.REG_REF, P.REG_REF, P.I_LABEL)),
    Opcode(0x31, "ujmpi_>", (P.REG_REF, P.U32, P.I_LABEL)),
    Opcode(0x32, "jmp_>", (P.REG_REF, P.REG_REF, P.I_LABEL)),
    Opcode(0x33, "jmpi_>", (P.REG_REF, P.I32, P.I_LABEL)),
    Opcode(0x34, "ujmp_<", (P.REG_REF, P.REG_REF, P.I_LABEL)),
    Opcode(0x35, "ujmpi_<", (P.REG_REF, P.U32, P.I_LABEL)),
    Opcode(0x36, "jmp_<", (P.REG_REF, P.REG_REF, P.I_LABEL)),
    Opcode(0x37, "jmpi_<", (P.REG_REF, P.I32, P.I_LABEL)),
    Opcode(0x38, "ujmp_>=", (P.REG_REF, P.REG_REF, P.I_LABEL)),
    Opcode(0x39, "ujmpi_>=", (P.REG_REF, P.U32, P.I_LABEL)),
    Opcode(0x3A, "jmp_>=", (P.REG_REF, P.REG_REF, P.I_LABEL)),
    Opcode(0x3B, "jmpi_>=", (P.REG_REF, P.I32, P.I_LABEL)),
    Opcode(0x3C, "ujmp_<=", (P.REG_REF, P.REG_REF, P.I_LABEL)),
    Opcode(0x3D, "ujmpi_<=", (P.REG_REF, P.U32, P.I_LABEL)),
    Opcode(0x3E, "jmp_<=", (P.REG_REF, P.REG_REF, P.I_LABEL)),
    Opcode(0x3F, "jmpi_<=", (P.REG_REF, P.I32, P.I_LABEL)),
    Opcode(0x40, "switch_jmp", (P.REG_REF, P.I_LABEL_VAR)),
    Opcode(0x41, "switch_call", (P.REG_REF, P.I_LABEL_VAR)),
    Opcode(0x42, "stack_push", (P.REG_REF,)),
    Opcode(0x43, "stack_pop", (P.REG_REF,)),
    Opcode(0x44, "stack_pushm", (P.REG_REF, P.U32)),
    Opcode(0x45, "stack_popm", (P.REG_REF, P.U32)),
    Opcode(0x48, "arg_pushr", (P.REG_REF,), _PUSH),
    Opcode(0x49, "arg_pushl", (P.I32,), _PUSH),
    Opcode(0x4A, "arg_pushb", (P.U8,), _PUSH),
    Opcode(0x4B, "arg_pushw", (P.U16,), _PUSH),
    Opcode(0x4C, "arg_pusha", (P.REG_REF,), _PUSH),
    Opcode(0x4D, "arg_pusho", (P.D_LABEL,), _PUSH),
    Opcode(0x4E, "arg_pushs", (P.STRING,), _PUSH),
    Opcode(0x50, "message", (P.I32, P.STRING), _POP),
    Opcode(0x51, "list", (P.REG_REF, P.STRING), _POP),
    Opcode(0x52, "fadein"),
    Opcode(0x53, "fadeout"),
    Opcode(0x54, "se", (P.I32,), _POP),
    Opcode(0x55, "bgm", (P.I32,), _POP),
    Opcode(0x58, "enable", (P.I32,), _POP),
    Opcode(0x59, "disable", (P.I32,), _POP),
    Opcode(0x5A, "window_msg", (P.STRING,), _POP),
    Opcode(0x5B, "add_msg", (P.STRING,), _POP),
    Opcode(0x5C, "mesend"),
    Opcode(0x5D, "gettime", (P.REG_REF,)),
    Opcode(0x5E, "winend"),
    Opcode(0x60, "npc_crt_v3", (P.REG_REF,), _POP),
    Opcode(0x61, "npc_stop", (P.I32,), _POP),
    Opcode(0x62, "npc_play", (P.I32,), _POP),
    Opcode(0x63, "npc_kill", (P.I32,), _POP),
    Opcode(0x64, "npc_nont"),
    Opcode(0x65, "npc_talk"),
    Opcode(0x66, "npc_crp_v3", (P.REG_REF,), _POP),
    Opcode(0x68, "create_pipe", (P.I32,), _POP),
    Opcode(0x69, "p_hpstat_v3", (P.REG_REF, P.I32), _POP),
    Opcode(0x6A, "p_dead_v3", (P.REG_REF, P.I32), _POP),
    Opcode(0x6B, "p_disablewarp"),
    Opcode(0x6C, "p_enablewarp"),
    Opcode(0x6D, "p_move_v3", (P.REG_REF,), _POP),
    Opcode(0x6E, "p_look", (P.I32,), _POP),
    Opcode(0x70, "p_action_disable"),
    Opcode(0x71, "p_action_enable"),
    Opcode(0x72, "disable_movement1", (P.I32,), _POP),
    Opcode(0x73, "enable_movement1", (P.I32,), _POP),
    Opcode(0x74, "p_noncol"),
    Opcode(0x75, "p_col"),
    Opcode(0x76, "p_setpos", (P.I32, P.REG_REF), _POP),
    Opcode(0x77, "p_return_guild"),
    Opcode(0x78, "p_talk_guild", (P.I32,), _POP),
    Opcode(0x79, "npc_talk_pl_v3", (P.REG_REF,), _POP),
    Opcode(0x7A, "npc_talk_kill", (P.I32,), _POP),
    Opcode(0x7B, "npc_crtpk_v3", (P.REG_REF,), _POP),
    Opcode(0x7C, "npc_crppk_v3", (P.REG_REF,), _POP),
    Opcode(0x7D, "npc_crptalk_v3", (P.REG_REF,), _POP),
    Opcode(0x7E, "p_look_at", (P.I32, P.I32), _POP),
    Opcode(0x7F, "npc_crp_id_v3", (P.REG_REF,), _POP),
    Opcode(0x80, "cam_quake"),
    Opcode(0x81, "cam_adj"),
    Opcode(0x82, "cam_zmin"),
    Opcode(0x83, "cam_zmout"),
    Opcode(0x84, "cam_pan_v3", (P.REG_REF,), _POP),
    Opcode(0x85, "game_lev_super"),
    Opcode(0x86, "game_lev_reset"),
    Opcode(0x87, "pos_pipe_v3", (P.REG_REF,), _POP),
    Opcode(0x88, "if_zone_clear", (P.REG_REF, P.REG_TUP_REF)),
    Opcode(0x89, "chk_ene_num", (P.REG_REF,)),
    Opcode(0x8A, "unhide_obj", (P.REG_TUP_REF,)),
    Opcode(0x8B, "unhide_ene", (P.REG_TUP_REF,)),
    Opcode(0x8C, "at_coords_call", (P.REG_TUP_REF,)),
    Opcode(0x8D, "at_coords_talk", (P.REG_TUP_REF,)),
    Opcode(0x8E, "col_npcin", (P.REG_TUP_REF,)),
    Opcode(0x8F, "col_npcinr", (P.REG_TUP_REF,)),
    Opcode(0x90, "switch_on", (P.I32,), _POP),
    Opcode(0x91, "switch_off", (P.I32,), _POP),
    Opcode(0x92, "playbgm_epi", (P.I32,), _POP),
    Opcode(0x93, "set_mainwarp", (P.I32,), _POP),
    Opcode(0x94, "set_obj_param", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0x95, "set_floor_handler", (P.I32, P.I_LABEL), _POP),
    Opcode(0x96, "clr_floor_handler", (P.I32,), _POP),
    Opcode(0x97, "col_plinaw", (P.REG_TUP_REF,)),
    Opcode(0x98, "hud_hide"),
    Opcode(0x99, "hud_show"),
    Opcode(0x9A, "cine_enable"),
    Opcode(0x9B, "cine_disable"),
    Opcode(0xA1, "set_qt_failure", (P.I_LABEL,)),
    Opcode(0xA2, "set_qt_success", (P.I_LABEL,)),
    Opcode(0xA3, "clr_qt_failure"),
    Opcode(0xA4, "clr_qt_success"),
    Opcode(0xA5, "set_qt_cancel", (P.I_LABEL,)),
    Opcode(0xA6, "clr_qt_cancel"),
    Opcode(0xA8, "pl_walk_v3", (P.REG_REF,), _POP),
    Opcode(0xB0, "pl_add_meseta", (P.I32, P.I32), _POP),
    Opcode(0xB1, "thread_stg", (P.I_LABEL,)),
    Opcode(0xB2, "del_obj_param", (P.REG_TUP_REF,)),
    Opcode(0xB3, "item_create", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xB4, "item_create2", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xB5, "item_delete", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xB6, "item_delete2", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xB7, "item_check", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xB8, "setevt", (P.I32,), _POP),
    Opcode(0xB9, "get_difflvl", (P.REG_TUP_REF,)),
    Opcode(0xBA, "set_qt_exit", (P.I_LABEL,)),
    Opcode(0xBB, "clr_qt_exit"),
    Opcode(0xC0, "particle_v3", (P.REG_REF,), _POP),
    Opcode(0xC1, "npc_text", (P.I32, P.STRING), _POP),
    Opcode(0xC2, "npc_chkwarp"),
    Opcode(0xC3, "pl_pkoff"),
    Opcode(0xC4, "map_designate", (P.REG_TUP_REF,)),
    Opcode(0xC5, "masterkey_on"),
    Opcode(0xC6, "masterkey_off"),
    Opcode(0xC7, "window_time"),
    Opcode(0xC8, "winend_time"),
    Opcode(0xC9, "winset_time", (P.REG_REF,)),
    Opcode(0xCA, "getmtime", (P.REG_REF,)),
    Opcode(0xCB, "set_quest_board_handler", (P.I32, P.I_LABEL, P.STRING), _POP),
    Opcode(0xCC, "clear_quest_board_handler", (P.I32,), _POP),
    Opcode(0xCD, "particle_id_v3", (P.REG_REF,), _POP),
    Opcode(0xCE, "npc_crptalk_id_v3", (P.REG_REF,), _POP),
    Opcode(0xCF, "npc_lang_clean"),
    Opcode(0xD0, "pl_pkon"),
    Opcode(0xD1, "pl_chk_item2", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xD2, "enable_mainmenu"),
    Opcode(0xD3, "disable_mainmenu"),
    Opcode(0xD4, "start_battlebgm"),
    Opcode(0xD5, "end_battlebgm"),
    Opcode(0xD6, "disp_msg_qb", (P.STRING,), _POP),
    Opcode(0xD7, "close_msg_qb"),
    Opcode(0xD8, "set_eventflag_v3", (P.I32, P.I32), _POP),
    Opcode(0xD9, "sync_leti", (P.REG_TUP_REF, P.I32)),
    Opcode(0xDC, "set_returnhunter"),
    Opcode(0xDD, "set_returncity"),
    Opcode(0xDE, "load_pvr"),
    Opcode(0xDF, "load_midi"),
    Opcode(0xE1, "npc_param_v3", (P.I32, P.I32), _POP),
    Opcode(0xE2, "pad_dragon"),
    Opcode(0xE3, "clear_mainwarp", (P.I32,), _POP),
    Opcode(0xE4, "pcam_param_v3", (P.REG_REF,), _POP),
    Opcode(0xE5, "start_setevt_v3", (P.I32, P.I32), _POP),
    Opcode(0xE6, "warp_on"),
    Opcode(0xE7, "warp_off"),
    Opcode(0xE8, "get_slotnumber", (P.REG_TUP_REF,)),
    Opcode(0xE9, "get_servernumber", (P.REG_TUP_REF,)),
    Opcode(0xEA, "set_eventflag2", (P.I32, P.REG_TUP_REF), _POP),
    Opcode(0xEB, "res", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xED, "enable_bgmctrl", (P.I32,), _POP),
    Opcode(0xEE, "sw_send", (P.REG_TUP_REF,)),
    Opcode(0xEF, "create_bgmctrl"),
    Opcode(0xF0, "pl_add_meseta2", (P.I32,), _POP),
    Opcode(0xF3, "leti_fixed_camera_v3", (P.REG_TUP_REF,)),
    Opcode(0xF4, "default_camera_pos1"),

    Opcode(0xF801, "set_chat_callback", (P.REG_TUP_REF, P.STRING), _POP),
    Opcode(0xF808, "get_difficulty_level2", (P.REG_TUP_REF,)),
    Opcode(0xF809, "get_number_of_player1", (P.REG_TUP_REF,)),
    Opcode(0xF80A, "get_coord_of_player", (P.REG_TUP_REF, P.REG_REF)),
    Opcode(0xF80B, "enable_map"),
    Opcode(0xF80C, "disable_map"),
    Opcode(0xF80D, "map_designate_ex", (P.REG_TUP_REF,)),
    Opcode(0xF812, "ba_initial_floor", (P.I32,), _POP),
    Opcode(0xF813, "set_ba_rules"),
    Opcode(0xF822, "ba_disp_msg", (P.STRING,), _POP),
    Opcode(0xF8BC, "set_episode", (P.U32,)),
    Opcode(0xF8C0, "file_dl_req", (P.I32, P.STRING), _POP),
    Opcode(0xF8C1, "get_dl_status", (P.REG_TUP_REF,)),

    Opcode(0xF901, "dec2float", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xF902, "float2dec", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xF903, "flet", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xF904, "fleti", (P.REG_TUP_REF, P.F32)),
    Opcode(0xF908, "fadd", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xF909, "faddi", (P.REG_TUP_REF, P.F32)),
    Opcode(0xF90A, "fsub", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xF90B, "fsubi", (P.REG_TUP_REF, P.F32)),
    Opcode(0xF90C, "fmul", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xF90D, "fmuli", (P.REG_TUP_REF, P.F32)),
    Opcode(0xF90E, "fdiv", (P.REG_TUP_REF, P.REG_TUP_REF)),
    Opcode(0xF90F, "fdivi", (P.REG_TUP_REF, P.F32)),
    Opcode(0xF951, "bb_map_designate", (P.U8, P.U16, P.U8, P.U8)),
    Opcode(0xF952, "bb_get_number_in_pack", (P.REG_TUP_REF,)),
    Opcode(0xF95E, "bb_box_create_bp", (P.I32, P.F32, P.F32), _POP),
]


def _build_tables() -> tuple[dict[int, Opcode], dict[str, Opcode]]:
    by_code = {op.code: op for op in _OPCODE_LIST}
    ranges = (range(0x00, 0xF8), range(0xF800, 0xF900), range(0xF900, 0xFA00))
    for codes in ranges:
        for code in codes:
            if code not in by_code:
                width = 2 if code < 0x100 else 4
                by_code[code] = Opcode(code, f"unknown_{code:0{width}x}")
    by_mnemonic = {op.mnemonic: op for op in by_code.values()}
    return by_code, by_mnemonic


OPCODES_BY_CODE, OPCODES_BY_MNEMONIC = _build_tables()

RET = OPCODES_BY_MNEMONIC["ret"]
JMP = OPCODES_BY_MNEMONIC["jmp"]
LETI = OPCODES_BY_MNEMONIC["leti"]
ARG_PUSHR = OPCODES_BY_MNEMONIC["arg_pushr"]
ARG_PUSHL = OPCODES_BY_MNEMONIC["arg_pushl"]
ARG_PUSHB = OPCODES_BY_MNEMONIC["arg_pushb"]
ARG_PUSHW = OPCODES_BY_MNEMONIC["arg_pushw"]
ARG_PUSHA = OPCODES_BY_MNEMONIC["arg_pusha"]
ARG_PUSHS = OPCODES_BY_MNEMONIC["arg_pushs"]
EXIT = OPCODES_BY_MNEMONIC["exit"]
SET_MAINWARP = OPCODES_BY_MNEMONIC["set_mainwarp"]
SET_FLOOR_HANDLER = OPCODES_BY_MNEMONIC["set_floor_handler"]
P_DEAD_V3 = OPCODES_BY_MNEMONIC["p_dead_v3"]
SET_EPISODE = OPCODES_BY_MNEMONIC["set_episode"]
BB_MAP_DESIGNATE = OPCODES_BY_MNEMONIC["bb_map_designate"]

# Segments ending in one of these don't fall through into the next label.
TERMINATORS = frozenset({RET.code, JMP.code})


def opcode_by_code(code: int) -> Opcode:
    """Look up an opcode; raises KeyError for codes outside 0x00-0xF7, 0xF8xx, 0xF9xx."""
    return OPCODES_BY_CODE[code]


def opcode_by_mnemonic(mnemonic: str) -> Opcode | None:
    return OPCODES_BY_MNEMONIC.get(mnemonic.lower())
