"""Read and write .qst archives (Blue Burst flavour).

A .qst file carries a quest's .dat and .bin files:
  2 x 88-byte file headers → interleaved 1056-byte chunks

Chunk layout (1056 bytes):
  bytes 0-3:      message header (1C 04 13 00 when written by us)
  byte  4:        chunk number
  bytes 5-7:      unused
  bytes 8-23:     file name (ASCII, null padded)
  bytes 24-1047:  payload (zero padded)
  bytes 1048-1051: payload size (uint32)
  bytes 1052-1055: trailer

Chunks of different files are interleaved and the chunk number, not the
arrival order, decides where a chunk's payload goes.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from psoquest.models.diagnostics import Diagnostic, report
from psoquest.models.records import QstContainedFile, QstFile
from psoquest.parser.binary_reader import BinaryReader
from psoquest.parser.binary_writer import BinaryWriter
from psoquest.parser.errors import (
    InternalConsistencyError,
    NameTooLongError,
    QuestFormatError,
    UnsupportedFormatError,
)


logger = logging.getLogger(__name__)

# Sizes in bytes
HEADER_SIZE = 88
CHUNK_SIZE = 1056
CHUNK_DATA_SIZE = 1024

MAX_NAME_LENGTH = 16
MAX_NAME2_LENGTH = 24

VERSION_BLUE_BURST = "Blue Burst"
VERSION_DC_GC = "Dreamcast/GameCube"
VERSION_DC_DOWNLOAD = "Dreamcast download"
VERSION_PC = "PC"

_CHUNK_MESSAGE_HEADER = bytes([0x1C, 0x04, 0x13, 0x00])


@dataclass(slots=True)
class QstHeader:
    quest_no: int
    file_name: str
    file_name2: str
    size: int


@dataclass(slots=True)
class QstFileInput:
    """A file to be written into a .qst archive."""
    name: str
    data: bytes
    name2: str | None = None
    quest_no: int | None = None


def detect_version(data: bytes) -> str:
    """Guess the QST flavour from the marker bytes at offsets 0 and 2."""
    version_a = data[0] if len(data) > 0 else None
    version_b = data[2] if len(data) > 2 else None

    if version_a == 0x44:
        return VERSION_DC_GC
    if version_a == 0x58:
        if version_b == 0x44:
            return VERSION_BLUE_BURST
    elif version_a == 0xA6:
        return VERSION_DC_DOWNLOAD
    return VERSION_PC


def parse_qst(data: bytes) -> QstFile:
    """Parse a .qst archive into its contained files.

    Raises:
        UnsupportedFormatError: If the archive isn't in Blue Burst format.
    """
    version = detect_version(data)
    if version != VERSION_BLUE_BURST:
        logger.error("Can't parse %s QST files.", version)
        raise UnsupportedFormatError(version)

    warnings: list[Diagnostic] = []
    reader = BinaryReader(data)
    headers = _read_headers(reader)
    files = _read_files(reader, {h.file_name: h.size for h in headers}, warnings)

    for file in files:
        header = next((h for h in headers if h.file_name == file.name), None)
        if header is not None:
            file.quest_no = header.quest_no
            file.name2 = header.file_name2

    return QstFile(version=version, files=files, warnings=warnings)


def _read_headers(reader: BinaryReader) -> list[QstHeader]:
    # Only the first two headers are read; a quest always has exactly a .dat and a .bin.
    headers: list[QstHeader] = []

    for _ in range(2):
        header = reader.slice(HEADER_SIZE)
        header.skip(4)   # header size + magic
        quest_no = header.uint16()
        header.skip(38)
        file_name = header.string_ascii(16)
        size = header.uint32()
        file_name2 = header.string_ascii(24)
        headers.append(QstHeader(quest_no, file_name, file_name2, size))

    return headers


@dataclass(slots=True)
class _FileBuffer:
    name: str
    expected_size: int | None
    data: bytearray
    size: int
    chunk_nos: set[int]


def _read_files(
    reader: BinaryReader,
    expected_sizes: dict[str, int],
    warnings: list[Diagnostic],
) -> list[QstContainedFile]:
    buffers: dict[str, _FileBuffer] = {}

    while reader.remaining >= CHUNK_SIZE:
        chunk = reader.slice(CHUNK_SIZE)
        chunk.skip(4)
        chunk_no = chunk.uint8()
        chunk.skip(3)
        file_name = chunk.string_ascii(16)

        buf = buffers.get(file_name)
        if buf is None:
            expected_size = expected_sizes.get(file_name)
            buf = buffers[file_name] = _FileBuffer(
                name=file_name,
                expected_size=expected_size,
                data=bytearray(expected_size or 10 * CHUNK_DATA_SIZE),
                size=0,
                chunk_nos=set(),
            )

        if chunk_no in buf.chunk_nos:
            report(
                warnings, logger, "duplicate_chunk",
                f"File chunk number {chunk_no} of file {file_name} was already "
                "encountered, overwriting previous chunk.",
            )
        else:
            buf.chunk_nos.add(chunk_no)

        payload = chunk.bytes(CHUNK_DATA_SIZE)
        size = chunk.uint32()
        if size > CHUNK_DATA_SIZE:
            report(
                warnings, logger, "chunk_size_clamped",
                f"Data segment size of {size} is larger than expected maximum "
                f"size, reading just {CHUNK_DATA_SIZE} bytes.",
            )
            size = CHUNK_DATA_SIZE

        chunk_position = chunk_no * CHUNK_DATA_SIZE
        end = chunk_position + size
        if end > len(buf.data):
            buf.data.extend(b"\x00" * (end - len(buf.data)))
        buf.data[chunk_position:end] = payload[:size]
        buf.size = max(buf.size, end)

    if reader.remaining:
        report(warnings, logger, "trailing_bytes", f"{reader.remaining} Bytes left in file.")

    files: list[QstContainedFile] = []

    for buf in buffers.values():
        if buf.expected_size is not None and buf.size != buf.expected_size:
            report(
                warnings, logger, "file_size_mismatch",
                f"File {buf.name} has an actual size of {buf.size} instead of "
                f"the expected size {buf.expected_size}.",
            )

        actual_size = max(buf.size, buf.expected_size or 0)

        for chunk_no in range(math.ceil(actual_size / CHUNK_DATA_SIZE)):
            if chunk_no not in buf.chunk_nos:
                report(
                    warnings, logger, "missing_chunk",
                    f"File {buf.name} is missing chunk {chunk_no}.",
                )

        files.append(QstContainedFile(
            name=buf.name,
            data=bytes(buf.data[:actual_size]),
            chunk_nos=tuple(sorted(buf.chunk_nos)),
            expected_size=buf.expected_size,
        ))

    return files


def write_qst(files: Sequence[QstFileInput]) -> bytes:
    """Write files into a Blue Burst .qst archive.

    Raises:
        NameTooLongError: If a name exceeds 16 (or name2 24) characters.
        InternalConsistencyError: If the output size doesn't match the prediction.
    """
    if len(files) > 2:
        raise QuestFormatError(f"A QST archive holds at most 2 files, got {len(files)}.")
    for file in files:
        # Chunk numbers are a single byte.
        if len(file.data) > 256 * CHUNK_DATA_SIZE:
            raise QuestFormatError(
                f"File {file.name} is {len(file.data)} bytes, more than a QST "
                f"archive can address ({256 * CHUNK_DATA_SIZE} bytes)."
            )

    total_size = sum(
        HEADER_SIZE + math.ceil(len(f.data) / CHUNK_DATA_SIZE) * CHUNK_SIZE
        for f in files
    )
    writer = BinaryWriter()

    _write_file_headers(writer, files)
    _write_file_chunks(writer, files)

    if writer.size != total_size:
        raise InternalConsistencyError(
            f"Expected a final file size of {total_size}, but got {writer.size}."
        )

    return writer.getvalue()


def default_name2(name: str, suffix: str = "_j") -> str:
    """Derive the secondary header name, e.g. "quest1.dat" → "quest1_j.dat"."""
    dot = name.rfind(".")
    if dot == -1:
        return name + suffix
    return name[:dot] + suffix + name[dot:]


def _write_file_headers(writer: BinaryWriter, files: Sequence[QstFileInput]) -> None:
    for file in files:
        if len(file.name) > MAX_NAME_LENGTH:
            raise NameTooLongError(
                f"File {file.name} has a name longer than {MAX_NAME_LENGTH} characters."
            )

        file_name2 = default_name2(file.name) if file.name2 is None else file.name2

        if len(file_name2) > MAX_NAME2_LENGTH:
            raise NameTooLongError(
                f"File {file.name} has a file_name2 ({file_name2}) longer than "
                f"{MAX_NAME2_LENGTH} characters."
            )

        writer.uint16(HEADER_SIZE)
        writer.uint16(0x44)   # magic
        writer.uint16(file.quest_no or 0)
        writer.zeros(38)
        writer.string_ascii(file.name, MAX_NAME_LENGTH)
        writer.uint32(len(file.data))
        writer.string_ascii(file_name2, MAX_NAME2_LENGTH)


def _write_file_chunks(writer: BinaryWriter, files: Sequence[QstFileInput]) -> None:
    # Round-robin: one chunk of each file per pass until every file is done.
    pending = [(file, 0) for file in files if file.data]

    while pending:
        still_pending = []
        for file, chunk_no in pending:
            if _write_file_chunk(writer, file.data, chunk_no, file.name):
                still_pending.append((file, chunk_no + 1))
        pending = still_pending


def _write_file_chunk(writer: BinaryWriter, data: bytes, chunk_no: int, name: str) -> bool:
    """Write one chunk; return True if `data` has bytes left after it."""
    start = chunk_no * CHUNK_DATA_SIZE
    payload = data[start : start + CHUNK_DATA_SIZE]

    writer.bytes(_CHUNK_MESSAGE_HEADER)
    writer.uint8(chunk_no)
    writer.zeros(3)
    writer.string_ascii(name, MAX_NAME_LENGTH)
    writer.bytes(payload)
    writer.zeros(CHUNK_DATA_SIZE - len(payload))
    writer.uint32(len(payload))
    writer.uint32(0)

    return start + CHUNK_DATA_SIZE < len(data)
