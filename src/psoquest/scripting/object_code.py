"""Decode and encode the object code area of a .bin file.

The bytecode carries no segment table. Segment boundaries come from the
label table (label number → byte offset) and segment kinds from how labels
are used: decoding starts at a set of entry labels and follows every label
reference it finds, including references passed on the argument stack, plus
fall-through into the next label when a segment doesn't end in ret or jmp.
Bytes nothing points at become data segments.
"""

import bisect
import logging
import struct
from collections import deque
from collections.abc import Iterable, Sequence

from psoquest.models.diagnostics import Diagnostic, report
from psoquest.parser.binary_reader import BinaryReader
from psoquest.parser.binary_writer import BinaryWriter
from psoquest.parser.errors import InternalConsistencyError, ObjectCodeError
from psoquest.scripting.instructions import (
    Arg,
    DataSegment,
    Instruction,
    InstructionSegment,
    Segment,
    SegmentType,
    StringSegment,
    segment_size,
    string_segment_size,
)
from psoquest.scripting.opcodes import (
    ARG_PUSHA,
    ARG_PUSHR,
    LABEL_PARAM_TYPES,
    TERMINATORS,
    Opcode,
    ParamType,
    StackInteraction,
    opcode_by_code,
)


logger = logging.getLogger(__name__)

_SEGMENT_TYPE_BY_PARAM = {
    ParamType.I_LABEL: SegmentType.INSTRUCTIONS,
    ParamType.D_LABEL: SegmentType.DATA,
    ParamType.S_LABEL: SegmentType.STRING,
}

# Pushes whose argument is a register, not a literal; never a label.
_REGISTER_PUSHES = frozenset({ARG_PUSHR.code, ARG_PUSHA.code})


# --- Decoding ---

class _ObjectCodeDecoder:
    def __init__(
        self,
        code: bytes,
        label_offsets: Sequence[int],
        lenient: bool,
        warnings: list[Diagnostic],
    ) -> None:
        self.code = code
        self.label_offsets = label_offsets
        self.lenient = lenient
        self.warnings = warnings

        self.labels_by_offset: dict[int, list[int]] = {}
        for label, offset in enumerate(label_offsets):
            if offset != -1:
                self.labels_by_offset.setdefault(offset, []).append(label)
        self.label_starts = sorted(self.labels_by_offset)

        self.segments: dict[int, Segment] = {}
        self.pending: deque[tuple[int, SegmentType]] = deque()

    def decode(self, entry_labels: Iterable[int]) -> list[Segment]:
        for label in sorted(set(entry_labels)):
            self.pending.append((label, SegmentType.INSTRUCTIONS))

        while self.pending:
            label, segment_type = self.pending.popleft()
            self._parse_segment(label, segment_type)

        self._fill_gaps()
        self._check_unplaced_labels()

        segments = [self.segments[offset] for offset in sorted(self.segments)]
        total = sum(segment_size(segment) for segment in segments)
        if total != len(self.code):
            message = (
                f"Expected to parse {len(self.code)} bytes of object code but "
                f"the segments add up to {total} bytes."
            )
            if not self.lenient:
                logger.error(message)
                raise ObjectCodeError(message)
            report(self.warnings, logger, "object_code_size_mismatch", message)

        return segments

    def _segment_end(self, offset: int) -> int:
        index = bisect.bisect_right(self.label_starts, offset)
        if index < len(self.label_starts):
            return min(self.label_starts[index], len(self.code))
        return len(self.code)

    def _parse_segment(self, label: int, segment_type: SegmentType) -> None:
        if label < 0 or label >= len(self.label_offsets) or self.label_offsets[label] == -1:
            report(
                self.warnings, logger, "unregistered_label",
                f"Label {label} is not registered in the label table.",
            )
            return

        offset = self.label_offsets[label]
        if offset in self.segments:
            return
        if offset > len(self.code):
            report(
                self.warnings, logger, "label_out_of_bounds",
                f"Label {label} points to offset {offset}, past the end of the "
                f"object code ({len(self.code)} bytes).",
            )
            return

        end = self._segment_end(offset)
        labels = tuple(self.labels_by_offset[offset])

        if segment_type is SegmentType.DATA:
            self.segments[offset] = DataSegment(labels, self.code[offset:end])
        elif segment_type is SegmentType.STRING:
            reader = BinaryReader(self.code, offset, end)
            try:
                value = reader.cstring_utf16(end - offset)
            except ValueError:
                value = reader.string_utf16(end - offset)
                report(
                    self.warnings, logger, "unterminated_string",
                    f"String segment at label {label} has no null terminator.",
                )
            self.segments[offset] = StringSegment(labels, value)
        else:
            instructions = self._parse_instructions(offset, end)
            self.segments[offset] = InstructionSegment(labels, tuple(instructions))

            if not instructions or instructions[-1].opcode.code not in TERMINATORS:
                if end in self.labels_by_offset:
                    self.pending.append((self.labels_by_offset[end][0], SegmentType.INSTRUCTIONS))

    def _parse_instructions(self, offset: int, end: int) -> list[Instruction]:
        reader = BinaryReader(self.code, offset, end)
        instructions: list[Instruction] = []
        stack: list[Instruction] = []

        while reader.remaining:
            start = reader.position
            try:
                opcode = read_opcode(reader)
                args = () if opcode.pops_arguments else read_args(reader, opcode.params)
            except ValueError as e:
                message = (
                    f"Couldn't parse instruction at offset {offset + start} "
                    f"(label {self.labels_by_offset[offset][0]}): {e}"
                )
                if not self.lenient:
                    logger.error(message)
                    raise ObjectCodeError(message) from e
                report(self.warnings, logger, "instruction_parse_failed", message, severity="error")
                break

            instruction = Instruction(opcode, args)
            instructions.append(instruction)

            if opcode.stack is StackInteraction.PUSH:
                stack.append(instruction)
            elif opcode.stack is StackInteraction.POP:
                pushed = stack[-len(opcode.params):] if opcode.params else []
                stack.clear()
                self._follow_pushed_labels(opcode, pushed)
            else:
                self._follow_inline_labels(opcode, args)

        return instructions

    def _follow_inline_labels(self, opcode: Opcode, args: tuple[Arg, ...]) -> None:
        for param, arg in zip(opcode.params, args):
            if param in LABEL_PARAM_TYPES:
                self.pending.append((arg.value, _SEGMENT_TYPE_BY_PARAM[param]))
            elif param is ParamType.I_LABEL_VAR:
                for label in arg.value:
                    self.pending.append((label, SegmentType.INSTRUCTIONS))

    def _follow_pushed_labels(self, opcode: Opcode, pushed: list[Instruction]) -> None:
        # The pushes line up with the last len(pushed) parameters.
        params = opcode.params[len(opcode.params) - len(pushed):]
        for param, push in zip(params, pushed):
            if param not in LABEL_PARAM_TYPES or push.opcode.code in _REGISTER_PUSHES:
                continue
            value = push.args[0].value
            if isinstance(value, int):
                self.pending.append((value, _SEGMENT_TYPE_BY_PARAM[param]))

    def _fill_gaps(self) -> None:
        """Turn every byte range not covered by a segment into data segments."""
        covered = sorted(
            (offset, offset + segment_size(segment))
            for offset, segment in self.segments.items()
        )
        boundaries = set(self.label_starts)
        position = 0
        gaps: list[tuple[int, int]] = []
        for start, stop in covered:
            if start > position:
                gaps.append((position, start))
            position = max(position, stop)
        if position < len(self.code):
            gaps.append((position, len(self.code)))

        for start, stop in gaps:
            # Split at label offsets so every label keeps a segment of its own.
            cuts = [start] + [b for b in sorted(boundaries) if start < b < stop] + [stop]
            for begin, finish in zip(cuts, cuts[1:]):
                labels = tuple(self.labels_by_offset.get(begin, ()))
                self.segments[begin] = DataSegment(labels, self.code[begin:finish])

    def _check_unplaced_labels(self) -> None:
        for offset in self.label_starts:
            if offset in self.segments:
                continue
            for label in self.labels_by_offset[offset]:
                report(
                    self.warnings, logger, "unplaced_label",
                    f"Label {label} with offset {offset} does not point to the "
                    "start of a segment.",
                )


def parse_object_code(
    code: bytes,
    label_offsets: Sequence[int],
    entry_labels: Iterable[int],
    *,
    lenient: bool,
    warnings: list[Diagnostic],
) -> list[Segment]:
    """Split `code` into segments, in offset order.

    Raises:
        ObjectCodeError: In strict mode, on a malformed instruction or when the
            decoded segments don't add up to the object code size.
    """
    decoder = _ObjectCodeDecoder(code, label_offsets, lenient, warnings)
    return decoder.decode(entry_labels)


def read_opcode(reader: BinaryReader) -> Opcode:
    code = reader.uint8()
    if code in (0xF8, 0xF9):
        code = (code << 8) | reader.uint8()
    return opcode_by_code(code)


def read_args(reader: BinaryReader, params: Sequence[ParamType]) -> tuple[Arg, ...]:
    args: list[Arg] = []

    for param in params:
        if param is ParamType.U8:
            args.append(Arg(reader.uint8(), 1))
        elif param is ParamType.U16:
            args.append(Arg(reader.uint16(), 2))
        elif param is ParamType.U32:
            args.append(Arg(reader.uint32(), 4))
        elif param is ParamType.I32:
            args.append(Arg(reader.int32(), 4))
        elif param is ParamType.F32:
            args.append(Arg(reader.float32(), 4))
        elif param in (ParamType.REG_REF, ParamType.REG_TUP_REF):
            args.append(Arg(reader.uint8(), 1))
        elif param in LABEL_PARAM_TYPES:
            args.append(Arg(reader.uint16(), 2))
        elif param is ParamType.STRING:
            start = reader.position
            value = reader.cstring_utf16(reader.remaining)
            args.append(Arg(value, reader.position - start))
        elif param is ParamType.I_LABEL_VAR:
            count = reader.uint8()
            args.append(Arg(tuple(reader.uint16_array(count)), 1 + 2 * count))
        elif param is ParamType.REG_REF_VAR:
            count = reader.uint8()
            args.append(Arg(tuple(reader.bytes(count)), 1 + count))
        else:
            raise ValueError(f"Parameter type {param} not implemented.")

    return tuple(args)


# --- Encoding ---

def write_object_code(segments: Sequence[Segment]) -> tuple[bytes, list[int]]:
    """Encode segments; returns the bytecode and the label offset table.

    First pass lays out every segment to find label offsets, second pass
    writes the bytes. Unused label numbers get offset -1.

    Raises:
        ValueError: If a label is defined twice.
    """
    offsets: dict[int, int] = {}
    offset = 0
    for segment in segments:
        for label in segment.labels:
            if label in offsets:
                raise ValueError(f"Duplicate label {label}.")
            offsets[label] = offset
        offset += segment_size(segment)

    writer = BinaryWriter()
    for segment in segments:
        if isinstance(segment, InstructionSegment):
            for instruction in segment.instructions:
                write_instruction(writer, instruction)
        elif isinstance(segment, DataSegment):
            writer.bytes(segment.data)
        else:
            encoded = segment.value.encode("utf-16-le")
            writer.bytes(encoded)
            writer.zeros(string_segment_size(segment.value) - len(encoded))

    if writer.size != offset:
        raise InternalConsistencyError(
            f"Expected {offset} bytes of object code, but wrote {writer.size}."
        )

    label_offsets = [-1] * (max(offsets) + 1 if offsets else 0)
    for label, label_offset in offsets.items():
        label_offsets[label] = label_offset

    return writer.getvalue(), label_offsets


def write_instruction(writer: BinaryWriter, instruction: Instruction) -> None:
    opcode = instruction.opcode
    if opcode.size == 2:
        writer.uint8(opcode.code >> 8)
    writer.uint8(opcode.code & 0xFF)

    for param, arg in zip(opcode.params, instruction.args):
        value = arg.value
        if param in (ParamType.U8, ParamType.REG_REF, ParamType.REG_TUP_REF):
            writer.uint8(value)
        elif param is ParamType.U16 or param in LABEL_PARAM_TYPES:
            writer.uint16(value)
        elif param is ParamType.U32:
            writer.uint32(value)
        elif param is ParamType.I32:
            # arg_pushl also carries float bit patterns and unsigned values.
            writer.bytes(struct.pack("<I", value & 0xFFFFFFFF))
        elif param is ParamType.F32:
            writer.float32(value)
        elif param is ParamType.STRING:
            writer.bytes(value.encode("utf-16-le"))
            writer.uint16(0)
        elif param is ParamType.I_LABEL_VAR:
            writer.uint8(len(value))
            for label in value:
                writer.uint16(label)
        elif param is ParamType.REG_REF_VAR:
            writer.uint8(len(value))
            writer.bytes(bytes(value))
        else:
            raise ValueError(f"Parameter type {param} not implemented.")
