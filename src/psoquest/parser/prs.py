"""PRS compression, the LZ77 variant that wraps every .dat and .bin payload.

Stream layout: control bits are read LSB first from control bytes that are
interleaved with the data; a new control byte is fetched the moment the
previous one runs out.

  - Bit 1:              literal byte follows
  - Bits 0, 0, b1, b0:  short copy; length = (b1 b0) + 2, one byte offset - 256
  - Bits 0, 1:          long copy; uint16 LE word:
      - word == 0:      end of stream
      - low 3 bits:     length - 2 (3-9), or 0 = extra byte holds length - 1
      - high 13 bits:   offset + 8192

Copies may overlap their own output (offset closer than length).
"""

from psoquest.parser.errors import PrsError


MAX_SHORT_DISTANCE = 256
MAX_SHORT_LENGTH = 5
# 8192 would encode, with an extended length, as the end-of-stream word.
MAX_LONG_DISTANCE = 8191
MAX_LENGTH = 256
MIN_MATCH = 3

_MAX_CANDIDATES = 64


def decompress(data: bytes) -> bytes:
    """Decompress a PRS stream.

    Raises:
        PrsError: If the stream ends before the end marker or a copy reaches
            before the start of the output.
    """
    pos = 0
    flags = 0
    bits_left = 0
    out = bytearray()

    def read_u8() -> int:
        nonlocal pos
        if pos >= len(data):
            raise PrsError(f"PRS: unexpected end of data at offset {pos}")
        val = data[pos]
        pos += 1
        return val

    def read_bit() -> int:
        nonlocal flags, bits_left
        if bits_left == 0:
            flags = read_u8()
            bits_left = 8
        bit = flags & 1
        flags >>= 1
        bits_left -= 1
        return bit

    while True:
        if read_bit():
            out.append(read_u8())
            continue

        if read_bit():
            word = read_u8() | (read_u8() << 8)
            if word == 0:
                break
            length = word & 0x07
            offset = (word >> 3) - 8192
            if length == 0:
                length = read_u8() + 1
            else:
                length += 2
        else:
            length = ((read_bit() << 1) | read_bit()) + 2
            offset = read_u8() - 256

        start = len(out) + offset
        if start < 0:
            raise PrsError(
                f"PRS: copy from {offset} at output offset {len(out)} reaches "
                "before the start of the data"
            )
        for i in range(length):
            out.append(out[start + i])

    return bytes(out)


class _Encoder:
    __slots__ = ("out", "_flag_pos", "_bits_used")

    def __init__(self) -> None:
        self.out = bytearray()
        self._flag_pos = -1
        self._bits_used = 8

    def bit(self, value: int) -> None:
        # Allocate the control byte where the decoder will look for it.
        if self._bits_used == 8:
            self._flag_pos = len(self.out)
            self.out.append(0)
            self._bits_used = 0
        if value:
            self.out[self._flag_pos] |= 1 << self._bits_used
        self._bits_used += 1

    def literal(self, value: int) -> None:
        self.bit(1)
        self.out.append(value)

    def short_copy(self, distance: int, length: int) -> None:
        self.bit(0)
        self.bit(0)
        self.bit(((length - 2) >> 1) & 1)
        self.bit((length - 2) & 1)
        self.out.append(256 - distance)

    def long_copy(self, distance: int, length: int) -> None:
        self.bit(0)
        self.bit(1)
        field = (8192 - distance) << 3
        if length <= 9:
            word = field | (length - 2)
            self.out += word.to_bytes(2, "little")
        else:
            self.out += field.to_bytes(2, "little")
            self.out.append(length - 1)

    def end(self) -> None:
        self.bit(0)
        self.bit(1)
        self.out += b"\x00\x00"


def compress(data: bytes) -> bytes:
    """Compress `data` into a PRS stream (greedy longest-match)."""
    encoder = _Encoder()
    table: dict[bytes, list[int]] = {}
    size = len(data)
    pos = 0

    while pos < size:
        length, distance = _find_match(data, pos, table)

        if length >= MIN_MATCH:
            if distance <= MAX_SHORT_DISTANCE and length <= MAX_SHORT_LENGTH:
                encoder.short_copy(distance, length)
            else:
                encoder.long_copy(distance, length)
        else:
            length = 1
            encoder.literal(data[pos])

        for p in range(pos, pos + length):
            _insert(table, data, p)
        pos += length

    encoder.end()
    return bytes(encoder.out)


def _find_match(data: bytes, pos: int, table: dict[bytes, list[int]]) -> tuple[int, int]:
    size = len(data)
    if pos + MIN_MATCH > size:
        return 0, 0
    candidates = table.get(data[pos : pos + MIN_MATCH])
    if not candidates:
        return 0, 0

    max_length = min(MAX_LENGTH, size - pos)
    best_length = 0
    best_distance = 0

    for checked, candidate in enumerate(reversed(candidates)):
        distance = pos - candidate
        if distance > MAX_LONG_DISTANCE or checked >= _MAX_CANDIDATES:
            break
        length = MIN_MATCH
        while length < max_length and data[candidate + length] == data[pos + length]:
            length += 1
        if length > best_length:
            best_length, best_distance = length, distance
            if length == max_length:
                break

    return best_length, best_distance


def _insert(table: dict[bytes, list[int]], data: bytes, pos: int) -> None:
    if pos + MIN_MATCH > len(data):
        return
    positions = table.setdefault(data[pos : pos + MIN_MATCH], [])
    positions.append(pos)
    if len(positions) > 2 * _MAX_CANDIDATES:
        del positions[:_MAX_CANDIDATES]
