"""Tests for the quest script assembler."""

import pytest

from psoquest.scripting import assemble
from psoquest.scripting.assembly import Register, parse_value, split_args, strip_comment
from psoquest.scripting.instructions import (
    Arg,
    DataSegment,
    Instruction,
    InstructionSegment,
    SegmentType,
    StringSegment,
)
from psoquest.scripting.opcodes import (
    ARG_PUSHA,
    ARG_PUSHB,
    ARG_PUSHL,
    ARG_PUSHR,
    ARG_PUSHS,
    ARG_PUSHW,
    BB_MAP_DESIGNATE,
    EXIT,
    LETI,
    P_DEAD_V3,
    RET,
    SET_EPISODE,
    SET_FLOOR_HANDLER,
    SET_MAINWARP,
    opcode_by_mnemonic,
)


BASIC_SCRIPT = """
    0:   set_episode 0
         bb_map_designate 1, 2, 3, 4
         set_floor_handler 0, 150
         set_floor_handler 1, 151
         ret
    150: set_mainwarp 1
         ret
    151: ret
""".split("\n")


def _single_segment(source: str) -> InstructionSegment:
    result = assemble(source.split("\n"))
    assert result.errors == []
    assert len(result.object_code) == 1
    return result.object_code[0]


def test_basic_script():
    result = assemble(BASIC_SCRIPT)

    assert result.warnings == []
    assert result.errors == []
    assert len(result.object_code) == 3

    segment_0 = result.object_code[0]
    assert segment_0.type is SegmentType.INSTRUCTIONS
    assert segment_0.labels == (0,)
    assert [(i.opcode, i.args) for i in segment_0.instructions] == [
        (SET_EPISODE, (Arg(0, 4),)),
        (BB_MAP_DESIGNATE, (Arg(1, 1), Arg(2, 2), Arg(3, 1), Arg(4, 1))),
        (ARG_PUSHL, (Arg(0, 4),)),
        (ARG_PUSHW, (Arg(150, 2),)),
        (SET_FLOOR_HANDLER, ()),
        (ARG_PUSHL, (Arg(1, 4),)),
        (ARG_PUSHW, (Arg(151, 2),)),
        (SET_FLOOR_HANDLER, ()),
        (RET, ()),
    ]

    segment_1 = result.object_code[1]
    assert segment_1.labels == (150,)
    assert [(i.opcode, i.args) for i in segment_1.instructions] == [
        (ARG_PUSHL, (Arg(1, 4),)),
        (SET_MAINWARP, ()),
        (RET, ()),
    ]

    segment_2 = result.object_code[2]
    assert segment_2.labels == (151,)
    assert [i.opcode for i in segment_2.instructions] == [RET]


def test_register_value_via_stack():
    segment = _single_segment("""
    0:
        leti r255, 7
        exit r255
        ret
    """)

    assert [i.opcode for i in segment.instructions] == [LETI, ARG_PUSHR, EXIT, RET]
    assert segment.instructions[0].args == (Arg(255, 1), Arg(7, 4))
    assert segment.instructions[1].args == (Arg(255, 1),)


def test_register_reference_via_stack():
    segment = _single_segment("""
    0:
        p_dead_v3 r200, 3
        ret
    """)

    assert [i.opcode for i in segment.instructions] == [ARG_PUSHB, ARG_PUSHL, P_DEAD_V3, RET]
    assert segment.instructions[0].args == (Arg(200, 1),)
    assert segment.instructions[1].args == (Arg(3, 4),)


def test_register_tuple_via_stack():
    segment = _single_segment("""
    0:  set_chat_callback r10, "hi"
        ret
    """)

    assert [i.opcode.mnemonic for i in segment.instructions] == [
        "arg_pusha", "arg_pushs", "set_chat_callback", "ret",
    ]
    assert segment.instructions[0].opcode is ARG_PUSHA
    assert segment.instructions[1].opcode is ARG_PUSHS
    assert segment.instructions[1].args == (Arg("hi", 6),)


def test_float_and_negative_values_via_stack():
    segment = _single_segment("""
    0:  bb_box_create_bp -1, 1.0, 0.5
        ret
    """)

    assert [i.args for i in segment.instructions[:3]] == [
        (Arg(-1, 4),),
        (Arg(0x3F800000, 4),),
        (Arg(0x3F000000, 4),),
    ]


def test_stack_opcode_without_arguments_is_emitted_bare():
    segment = _single_segment("""
    0:  arg_pushl 5
        exit
        ret
    """)

    assert [(i.opcode, i.args) for i in segment.instructions] == [
        (ARG_PUSHL, (Arg(5, 4),)),
        (EXIT, ()),
        (RET, ()),
    ]


def test_inline_strings_labels_and_floats():
    segment = _single_segment("""
    0:  fleti r3, 2.5
        switch_jmp r1, 10, 11, 12
        jmp_on 5, r1, r2
        leti r4, 0xff
        ret
    """)

    fleti, switch_jmp, jmp_on, leti, _ = segment.instructions
    assert fleti.args == (Arg(3, 1), Arg(2.5, 4))
    assert switch_jmp.args == (Arg(1, 1), Arg((10, 11, 12), 7))
    assert jmp_on.args == (Arg(5, 2), Arg((1, 2), 3))
    assert leti.args == (Arg(4, 1), Arg(255, 4))


def test_comments_and_blank_lines_are_ignored():
    segment = _single_segment("""
    // leading comment

    0:  window_msg "a // not a comment"   // trailing comment
        ret
    """)

    assert segment.instructions[0].args == (Arg("a // not a comment", 38),)


def test_sections():
    result = assemble("""
    .code
    0:  ret
    .data
    10: 01 02 0x0a ff
        10
    .string
    11: "Hello"
    .code
    12: ret
    """.split("\n"))

    assert result.errors == []
    assert [w.code for w in result.warnings] == ["redundant_section"]
    assert result.warnings[0].line == 2
    assert result.object_code == [
        InstructionSegment((0,), (Instruction(RET),)),
        DataSegment((10,), b"\x01\x02\x0a\xff\x10"),
        StringSegment((11,), "Hello"),
        InstructionSegment((12,), (Instruction(RET),)),
    ]


def test_consecutive_labels_share_a_segment():
    result = assemble("""
    0:
    1:
    2:  ret
    3:  ret
    """.split("\n"))

    assert result.errors == []
    assert [s.labels for s in result.object_code] == [(0, 1, 2), (3,)]


def test_content_after_section_change_without_label():
    result = assemble("""
    0:  ret
    .data
        01 02
    """.split("\n"))

    assert result.errors == []
    assert result.object_code[1] == DataSegment((), b"\x01\x02")


def test_errors_are_collected_with_line_numbers():
    result = assemble("""
    0:  ret
        no_such_op 1
        leti 1, 2
        leti r1
        set_mainwarp "oops"
    0:  ret
        letb r1, 256
        window_msg "unterminated
    .bogus
    """.split("\n"))

    assert [(e.line, e.message) for e in result.errors] == [
        (3, "Unknown instruction no_such_op."),
        (4, "Expected a register reference."),
        (5, "Expected 2 arguments, got 1."),
        (6, "Unexpected string."),
        (7, "Duplicate label 0."),
        (8, "Value 256 doesn't fit in a byte argument."),
        (9, result.errors[6].message),
        (10, "Unknown directive .bogus."),
    ]
    assert result.errors[6].message.startswith("Invalid string literal")
    assert all(e.severity == "error" and e.code == "assembly_error" for e in result.errors)
    assert str(result.errors[0]) == "Line 3: Unknown instruction no_such_op."


def test_content_before_first_label():
    result = assemble(["    ret"])
    assert [(e.line, e.message) for e in result.errors] == [
        (1, "Expected a label before the first segment's content."),
    ]


def test_invalid_data_byte():
    result = assemble([".data", "0: 01 zz"])
    assert [e.message for e in result.errors] == ["Expected hexadecimal bytes, got zz."]


def test_mnemonics_are_case_insensitive():
    segment = _single_segment("0: RET")
    assert segment.instructions[0].opcode is RET
    assert opcode_by_mnemonic("Set_Episode") is SET_EPISODE


@pytest.mark.parametrize(
    "token, value",
    [
        ("r12", Register(12)),
        ("42", 42),
        ("-7", -7),
        ("0x1F", 31),
        ("1.5", 1.5),
        ('"a\\"b"', 'a"b'),
    ],
)
def test_parse_value(token, value):
    assert parse_value(token) == value


def test_split_args_respects_strings():
    assert split_args('1, "a, b", r2') == ["1", '"a, b"', "r2"]
    assert split_args("") == []


def test_strip_comment():
    assert strip_comment('ret // bye') == "ret "
    assert strip_comment('window_msg "//"') == 'window_msg "//"'
