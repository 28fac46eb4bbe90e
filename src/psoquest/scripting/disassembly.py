"""Turn object code segments back into assembler source lines."""

import json
import math
import struct
from collections.abc import Sequence

from psoquest.scripting.assembly import AssemblyError, Register, Value, stack_pushes
from psoquest.scripting.instructions import (
    DataSegment,
    Instruction,
    InstructionSegment,
    Segment,
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
    REGISTER_PARAM_TYPES,
    ParamType,
    StackInteraction,
)


_INDENT = "    "
_DATA_BYTES_PER_LINE = 16

_DIRECTIVES = {
    SegmentType.INSTRUCTIONS: ".code",
    SegmentType.DATA: ".data",
    SegmentType.STRING: ".string",
}


def disassemble(segments: Sequence[Segment]) -> list[str]:
    """Render segments as source lines that assemble back into the same segments."""
    lines: list[str] = []
    section = SegmentType.INSTRUCTIONS

    for segment in segments:
        if segment.type is not section:
            section = segment.type
            if lines:
                lines.append("")
            lines.append(_DIRECTIVES[section])
        elif lines:
            lines.append("")
        for label in segment.labels:
            lines.append(f"{label}:")

        if isinstance(segment, InstructionSegment):
            lines.extend(_INDENT + line for line in _instruction_lines(segment.instructions))
        elif isinstance(segment, DataSegment):
            for start in range(0, len(segment.data), _DATA_BYTES_PER_LINE):
                chunk = segment.data[start : start + _DATA_BYTES_PER_LINE]
                lines.append(_INDENT + " ".join(f"{b:02x}" for b in chunk))
        elif isinstance(segment, StringSegment):
            lines.append(_INDENT + json.dumps(segment.value, ensure_ascii=False))

    return lines


def _instruction_lines(instructions: Sequence[Instruction]) -> list[str]:
    lines: list[str] = []
    pushes: list[Instruction] = []

    for instruction in instructions:
        opcode = instruction.opcode

        if opcode.stack is StackInteraction.PUSH:
            pushes.append(instruction)
            continue

        if opcode.stack is StackInteraction.POP and opcode.params:
            values = _fold(instruction, pushes)
            if values is not None:
                lines.extend(_format(push) for push in pushes[: -len(values)])
                lines.append(_format_call(opcode.mnemonic, values))
                pushes = []
                continue

        lines.extend(_format(push) for push in pushes)
        pushes = []
        lines.append(_format(instruction))

    lines.extend(_format(push) for push in pushes)
    return lines


def _fold(instruction: Instruction, pushes: list[Instruction]) -> list[Value] | None:
    """Argument values for `instruction` if the pushes before it are exactly
    what the assembler emits for them, None otherwise."""
    params = instruction.opcode.params
    if len(pushes) < len(params):
        return None

    candidates = pushes[len(pushes) - len(params):]
    values: list[Value] = []
    for param, push in zip(params, candidates):
        value = _pushed_value(param, push)
        if value is None:
            return None
        values.append(value)

    try:
        expected = stack_pushes(instruction.opcode, values)
    except AssemblyError:
        return None
    return values if expected == candidates else None


def _pushed_value(param: ParamType, push: Instruction) -> Value | None:
    code = push.opcode.code
    value = push.args[0].value

    if code in (ARG_PUSHR.code, ARG_PUSHA.code):
        return Register(value)
    if code == ARG_PUSHB.code:
        return Register(value) if param is ParamType.REG_REF else value
    if code == ARG_PUSHW.code:
        return value
    if code == ARG_PUSHL.code:
        if param is ParamType.F32:
            result = struct.unpack("<f", struct.pack("<i", value))[0]
            return None if math.isnan(result) or math.isinf(result) else result
        if param is ParamType.U32:
            return value & 0xFFFFFFFF
        return value
    if code == ARG_PUSHS.code:
        return value
    return None


def _format_value(value: Value) -> str:
    if isinstance(value, Register):
        return f"r{value.number}"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _format_call(mnemonic: str, values: Sequence[Value]) -> str:
    if not values:
        return mnemonic
    return f"{mnemonic} {', '.join(_format_value(v) for v in values)}"


def _format(instruction: Instruction) -> str:
    values: list[Value] = []
    for param, arg in zip(instruction.opcode.params, instruction.args):
        if param in REGISTER_PARAM_TYPES:
            values.append(Register(arg.value))
        elif param is ParamType.REG_REF_VAR:
            values.extend(Register(v) for v in arg.value)
        elif param is ParamType.I_LABEL_VAR:
            values.extend(arg.value)
        else:
            values.append(arg.value)
    return _format_call(instruction.opcode.mnemonic, values)
