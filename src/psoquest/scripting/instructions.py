"""Instructions, arguments and the three kinds of object code segment."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from psoquest.scripting.opcodes import PARAM_SIZES, Opcode, ParamType


ArgValue = Union[int, float, str, tuple[int, ...]]


@dataclass(frozen=True, slots=True)
class Arg:
    """An argument value and the number of bytes it occupies in the bytecode."""
    value: ArgValue
    size: int


@dataclass(frozen=True, slots=True)
class Instruction:
    opcode: Opcode
    args: tuple[Arg, ...] = ()

    @property
    def size(self) -> int:
        return self.opcode.size + sum(arg.size for arg in self.args)


class SegmentType(Enum):
    INSTRUCTIONS = "instructions"
    DATA = "data"
    STRING = "string"


@dataclass(frozen=True, slots=True)
class InstructionSegment:
    labels: tuple[int, ...]
    instructions: tuple[Instruction, ...] = ()
    type: SegmentType = field(default=SegmentType.INSTRUCTIONS, init=False)


@dataclass(frozen=True, slots=True)
class DataSegment:
    labels: tuple[int, ...]
    data: bytes = b""
    type: SegmentType = field(default=SegmentType.DATA, init=False)


@dataclass(frozen=True, slots=True)
class StringSegment:
    labels: tuple[int, ...]
    value: str = ""
    type: SegmentType = field(default=SegmentType.STRING, init=False)


Segment = Union[InstructionSegment, DataSegment, StringSegment]


def string_arg_size(value: str) -> int:
    """UTF-16LE code units plus the null terminator."""
    return len(value.encode("utf-16-le")) + 2


def string_segment_size(value: str) -> int:
    """UTF-16LE string plus terminator, padded to a multiple of 4 bytes."""
    units = len(value.encode("utf-16-le")) // 2
    return 4 * -(-(units + 1) // 2)


def segment_size(segment: Segment) -> int:
    if isinstance(segment, InstructionSegment):
        return sum(instruction.size for instruction in segment.instructions)
    if isinstance(segment, DataSegment):
        return len(segment.data)
    return string_segment_size(segment.value)


def new_arg(param_type: ParamType, value: ArgValue) -> Arg:
    """Build an Arg with the on-disk size of `value` as a `param_type` operand."""
    if param_type is ParamType.STRING:
        return Arg(value, string_arg_size(str(value)))
    if param_type is ParamType.I_LABEL_VAR:
        return Arg(tuple(value), 1 + 2 * len(value))
    if param_type is ParamType.REG_REF_VAR:
        return Arg(tuple(value), 1 + len(value))
    return Arg(value, PARAM_SIZES[param_type])


def new_instruction(opcode: Opcode, *values: ArgValue) -> Instruction:
    """Build an instruction whose inline operands follow the opcode's params."""
    if opcode.pops_arguments:
        if values:
            raise ValueError(f"{opcode.mnemonic} takes its arguments from the stack.")
        return Instruction(opcode)
    if len(values) != len(opcode.params):
        raise ValueError(
            f"{opcode.mnemonic} expects {len(opcode.params)} arguments, got {len(values)}."
        )
    return Instruction(
        opcode,
        tuple(new_arg(param, value) for param, value in zip(opcode.params, values)),
    )
