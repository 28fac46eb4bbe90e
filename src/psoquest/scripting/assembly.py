"""Assemble quest script source text into object code segments.

Source format:

    .code                       // section directive: .code, .data or .string
    0:  set_episode 0           // "N:" starts a segment, an instruction may follow
        set_floor_handler 0, 150
        ret
    150:
        leti r10, 0x20          // rN is a register, literals are dec, hex or float
        window_msg "Hello"      // strings are JSON string literals
        ret
    .data
    200: 01 02 0a ff            // hex bytes
    .string
    201: "Some text"

Opcodes that take their arguments from the stack are written with their
arguments like any other instruction; the assembler emits one arg_push* per
argument in front of them. Written without arguments they are emitted as-is,
for code that pushes its arguments by hand.

Errors don't stop assembly: every problem is reported with its line number.
"""

import json
import logging
import re
import struct
from collections.abc import Iterable
from dataclasses import dataclass, field

from psoquest.models.diagnostics import Diagnostic, report
from psoquest.scripting.instructions import (
    Arg,
    DataSegment,
    Instruction,
    InstructionSegment,
    Segment,
    SegmentType,
    StringSegment,
    new_arg,
    new_instruction,
)
from psoquest.scripting.opcodes import (
    ARG_PUSHA,
    ARG_PUSHB,
    ARG_PUSHL,
    ARG_PUSHR,
    ARG_PUSHS,
    ARG_PUSHW,
    LABEL_PARAM_TYPES,
    REGISTER_PARAM_TYPES,
    Opcode,
    ParamType,
    opcode_by_mnemonic,
)


logger = logging.getLogger(__name__)

_LABEL_RE = re.compile(r"^\s*(\d+)\s*:(.*)$")
_REGISTER_RE = re.compile(r"^r(\d+)$", re.IGNORECASE)
_HEX_RE = re.compile(r"^-?0x[0-9a-f]+$", re.IGNORECASE)
_DEC_RE = re.compile(r"^-?\d+$")
_FLOAT_RE = re.compile(r"^-?(\d+\.\d*|\.\d+|\d+(?=[eE]))([eE][-+]?\d+)?$")
_HEX_BYTE_RE = re.compile(r"^(0x)?[0-9a-f]{1,2}$", re.IGNORECASE)

_SECTIONS = {
    ".code": SegmentType.INSTRUCTIONS,
    ".data": SegmentType.DATA,
    ".string": SegmentType.STRING,
}

_INT_RANGES: dict[ParamType, tuple[int, int]] = {
    ParamType.U8: (0, 0xFF),
    ParamType.U16: (0, 0xFFFF),
    ParamType.U32: (0, 0xFFFFFFFF),
    ParamType.I32: (-0x80000000, 0x7FFFFFFF),
    ParamType.I_LABEL: (0, 0xFFFF),
    ParamType.D_LABEL: (0, 0xFFFF),
    ParamType.S_LABEL: (0, 0xFFFF),
}


@dataclass(frozen=True, slots=True)
class Register:
    number: int


Value = int | float | str | Register


class AssemblyError(ValueError):
    """A problem with one source line; collected, never propagated."""


@dataclass(slots=True)
class AssemblyResult:
    object_code: list[Segment] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)
    errors: list[Diagnostic] = field(default_factory=list)


# --- Stack argument conventions, shared with the disassembler ---

def to_int32(value: int) -> int:
    """Reinterpret an unsigned 32-bit value as signed."""
    return value - 0x100000000 if value >= 0x80000000 else value


def float_bits(value: float) -> int:
    return struct.unpack("<i", struct.pack("<f", value))[0]


def check_value(param: ParamType, value: Value) -> None:
    """Raise AssemblyError if `value` can't be passed as a `param` argument."""
    if isinstance(value, Register):
        if not 0 <= value.number <= 0xFF:
            raise AssemblyError(f"Register reference r{value.number} out of range.")
        return
    if param in REGISTER_PARAM_TYPES:
        raise AssemblyError("Expected a register reference.")
    if param is ParamType.STRING:
        if not isinstance(value, str):
            raise AssemblyError("Expected a string.")
        return
    if isinstance(value, str):
        raise AssemblyError("Unexpected string.")
    if param is ParamType.F32:
        return
    if isinstance(value, float):
        raise AssemblyError("Expected an integer.")
    low, high = _INT_RANGES[param]
    if not low <= value <= high:
        raise AssemblyError(f"Value {value} doesn't fit in a {param.value} argument.")


def push_for(param: ParamType, value: Value) -> Instruction:
    """The arg_push* instruction that passes `value` as a `param` argument."""
    check_value(param, value)

    if isinstance(value, Register):
        if param is ParamType.REG_REF:
            return new_instruction(ARG_PUSHB, value.number)
        if param is ParamType.REG_TUP_REF:
            return new_instruction(ARG_PUSHA, value.number)
        return new_instruction(ARG_PUSHR, value.number)

    if param is ParamType.U8:
        return new_instruction(ARG_PUSHB, value)
    if param is ParamType.U16 or param in LABEL_PARAM_TYPES:
        return new_instruction(ARG_PUSHW, value)
    if param in (ParamType.U32, ParamType.I32):
        return new_instruction(ARG_PUSHL, to_int32(value))
    if param is ParamType.F32:
        return new_instruction(ARG_PUSHL, float_bits(float(value)))
    if param is ParamType.STRING:
        return new_instruction(ARG_PUSHS, value)
    raise AssemblyError(f"Parameter type {param.value} can't be passed on the stack.")


def stack_pushes(opcode: Opcode, values: list[Value]) -> list[Instruction]:
    if len(values) != len(opcode.params):
        raise AssemblyError(
            f"Expected {len(opcode.params)} arguments, got {len(values)}."
        )
    return [push_for(param, value) for param, value in zip(opcode.params, values)]


# --- Source parsing ---

def strip_comment(line: str) -> str:
    in_string = False
    escaped = False
    for i, char in enumerate(line):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif line.startswith("//", i):
            return line[:i]
    return line


def split_args(text: str) -> list[str]:
    """Split on commas outside of string literals."""
    args: list[str] = []
    current: list[str] = []
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
            current.append(char)
        elif char == ",":
            args.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    tail = "".join(current).strip()
    if tail or args:
        args.append(tail)
    return args


def parse_value(token: str) -> Value:
    if not token:
        raise AssemblyError("Missing argument.")
    if token.startswith('"'):
        try:
            value = json.loads(token)
        except json.JSONDecodeError as e:
            raise AssemblyError(f"Invalid string literal {token}: {e.msg}.") from e
        if not isinstance(value, str):
            raise AssemblyError(f"Invalid string literal {token}.")
        return value
    match = _REGISTER_RE.match(token)
    if match:
        return Register(int(match.group(1)))
    if _HEX_RE.match(token):
        return int(token, 16)
    if _DEC_RE.match(token):
        return int(token)
    if _FLOAT_RE.match(token):
        return float(token)
    raise AssemblyError(f"Invalid argument {token}.")


@dataclass(slots=True)
class _SegmentBuilder:
    type: SegmentType
    labels: list[int] = field(default_factory=list)
    instructions: list[Instruction] = field(default_factory=list)
    data: bytearray = field(default_factory=bytearray)
    string: list[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.instructions or self.data or self.string)

    def build(self) -> Segment:
        labels = tuple(self.labels)
        if self.type is SegmentType.INSTRUCTIONS:
            return InstructionSegment(labels, tuple(self.instructions))
        if self.type is SegmentType.DATA:
            return DataSegment(labels, bytes(self.data))
        return StringSegment(labels, "".join(self.string))


class _Assembler:
    def __init__(self) -> None:
        self.result = AssemblyResult()
        self.section = SegmentType.INSTRUCTIONS
        self.segment: _SegmentBuilder | None = None
        self.labels: set[int] = set()
        self.line_no = 0

    def assemble(self, lines: Iterable[str]) -> AssemblyResult:
        for self.line_no, line in enumerate(lines, start=1):
            try:
                self._line(strip_comment(line).strip())
            except AssemblyError as e:
                report(self.result.errors, logger, "assembly_error", str(e),
                       severity="error", line=self.line_no)

        self._close_segment()
        return self.result

    def _line(self, line: str) -> None:
        if not line:
            return

        if line.startswith("."):
            self._directive(line)
            return

        match = _LABEL_RE.match(line)
        if match:
            self._label(int(match.group(1)))
            line = match.group(2).strip()
            if not line:
                return

        if self.segment is None:
            if not self.labels:
                raise AssemblyError("Expected a label before the first segment's content.")
            # Content after a section change without a label: unlabelled segment.
            self.segment = _SegmentBuilder(self.section)

        if self.section is SegmentType.INSTRUCTIONS:
            self._instruction(line)
        elif self.section is SegmentType.DATA:
            self._data(line)
        else:
            self._string(line)

    def _directive(self, line: str) -> None:
        section = _SECTIONS.get(line.split()[0].lower())
        if section is None:
            raise AssemblyError(f"Unknown directive {line.split()[0]}.")
        if section is self.section:
            report(self.result.warnings, logger, "redundant_section",
                   f"Unnecessary section marker {line.split()[0]}.", line=self.line_no)
            return
        self._close_segment()
        self.section = section

    def _label(self, label: int) -> None:
        if label > 0xFFFF:
            raise AssemblyError(f"Label {label} is out of range.")
        if label in self.labels:
            raise AssemblyError(f"Duplicate label {label}.")
        self.labels.add(label)

        # Labels with nothing between them name the same segment.
        if self.segment is not None and self.segment.empty and self.segment.type is self.section:
            self.segment.labels.append(label)
            return
        self._close_segment()
        self.segment = _SegmentBuilder(self.section, labels=[label])

    def _close_segment(self) -> None:
        if self.segment is not None:
            self.result.object_code.append(self.segment.build())
            self.segment = None

    def _instruction(self, line: str) -> None:
        mnemonic, _, arg_text = line.replace("\t", " ").partition(" ")
        opcode = opcode_by_mnemonic(mnemonic)
        if opcode is None:
            raise AssemblyError(f"Unknown instruction {mnemonic}.")

        values = [parse_value(token) for token in split_args(arg_text.strip())]

        if opcode.pops_arguments:
            if values:
                self.segment.instructions.extend(stack_pushes(opcode, values))
            self.segment.instructions.append(new_instruction(opcode))
            return

        self.segment.instructions.append(Instruction(opcode, self._inline_args(opcode, values)))

    def _inline_args(self, opcode: Opcode, values: list[Value]) -> tuple[Arg, ...]:
        params = opcode.params
        variadic = bool(params) and params[-1] in (ParamType.I_LABEL_VAR, ParamType.REG_REF_VAR)
        fixed = params[:-1] if variadic else params

        if len(values) < len(fixed) or (not variadic and len(values) > len(fixed)):
            expected = f"at least {len(fixed)}" if variadic else str(len(fixed))
            raise AssemblyError(f"Expected {expected} arguments, got {len(values)}.")

        args: list[Arg] = []
        for param, value in zip(fixed, values):
            if isinstance(value, Register) and param not in REGISTER_PARAM_TYPES:
                raise AssemblyError("Unexpected register reference.")
            check_value(param, value)
            if isinstance(value, Register):
                value = value.number
            elif param is ParamType.F32:
                value = float(value)
            args.append(new_arg(param, value))

        if variadic:
            rest = values[len(fixed):]
            if params[-1] is ParamType.REG_REF_VAR:
                for value in rest:
                    if not isinstance(value, Register):
                        raise AssemblyError("Expected a register reference.")
                    check_value(ParamType.REG_REF, value)
                args.append(new_arg(params[-1], [value.number for value in rest]))
            else:
                for value in rest:
                    if isinstance(value, Register):
                        raise AssemblyError("Unexpected register reference.")
                    check_value(ParamType.I_LABEL, value)
                args.append(new_arg(params[-1], rest))

        return tuple(args)

    def _data(self, line: str) -> None:
        for token in line.split():
            if not _HEX_BYTE_RE.match(token):
                raise AssemblyError(f"Expected hexadecimal bytes, got {token}.")
            self.segment.data.append(int(token, 16))

    def _string(self, line: str) -> None:
        value = parse_value(line)
        if not isinstance(value, str):
            raise AssemblyError("Expected a string literal.")
        self.segment.string.append(value)


def assemble(lines: Iterable[str]) -> AssemblyResult:
    """Assemble source lines into object code segments.

    Never raises on bad input; check `errors` on the result. Segments from a
    result with errors are incomplete.
    """
    return _Assembler().assemble(lines)
