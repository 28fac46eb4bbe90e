"""Quest script bytecode: instruction set, segments, assembler and disassembler."""

from psoquest.scripting.assembly import AssemblyResult, assemble
from psoquest.scripting.disassembly import disassemble
from psoquest.scripting.instructions import (
    Arg,
    DataSegment,
    Instruction,
    InstructionSegment,
    Segment,
    SegmentType,
    StringSegment,
)
from psoquest.scripting.opcodes import Opcode, ParamType, opcode_by_mnemonic

__all__ = [
    "Arg",
    "AssemblyResult",
    "DataSegment",
    "Instruction",
    "InstructionSegment",
    "Opcode",
    "ParamType",
    "Segment",
    "SegmentType",
    "StringSegment",
    "assemble",
    "disassemble",
    "opcode_by_mnemonic",
]
