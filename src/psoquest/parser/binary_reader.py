"""Low-level little-endian binary reader with typed reads and a moving cursor."""

import struct

from psoquest.models.records import Vec3


class BinaryReader:
    """Wraps a bytes buffer with typed reads and a moving cursor.

    Key design: slice(size) returns a new BinaryReader bounded to the next
    `size` bytes. This lets table parsers read one section freely without
    overrunning into the next one.
    """

    __slots__ = ("_data", "_pos", "_start", "_end")

    def __init__(self, data: bytes, offset: int = 0, end: int | None = None) -> None:
        self._data = data
        self._pos = offset
        self._start = offset
        self._end = end if end is not None else len(data)

    @property
    def position(self) -> int:
        """Position relative to the start of this (possibly sliced) reader."""
        return self._pos - self._start

    @property
    def size(self) -> int:
        return self._end - self._start

    @property
    def remaining(self) -> int:
        return self._end - self._pos

    def _read(self, size: int) -> bytes:
        if size < 0 or self._pos + size > self._end:
            raise ValueError(
                f"Read of {size} bytes at offset {self.position} "
                f"would exceed boundary at {self.size}"
            )
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def uint8(self) -> int:
        return self._read(1)[0]

    def int8(self) -> int:
        return struct.unpack_from("<b", self._read(1))[0]

    def uint16(self) -> int:
        return struct.unpack_from("<H", self._read(2))[0]

    def int16(self) -> int:
        return struct.unpack_from("<h", self._read(2))[0]

    def uint32(self) -> int:
        return struct.unpack_from("<I", self._read(4))[0]

    def int32(self) -> int:
        return struct.unpack_from("<i", self._read(4))[0]

    def float32(self) -> float:
        return struct.unpack_from("<f", self._read(4))[0]

    def vec3_float32(self) -> Vec3:
        return Vec3(*struct.unpack_from("<fff", self._read(12)))

    def uint16_array(self, count: int) -> list[int]:
        return list(struct.unpack_from(f"<{count}H", self._read(2 * count)))

    def uint32_array(self, count: int) -> list[int]:
        return list(struct.unpack_from(f"<{count}I", self._read(4 * count)))

    def int32_array(self, count: int) -> list[int]:
        return list(struct.unpack_from(f"<{count}i", self._read(4 * count)))

    def bytes(self, size: int) -> bytes:
        return self._read(size)

    def string_ascii(self, size: int) -> str:
        """Read a fixed-size ASCII field, cut at the first null byte."""
        raw = self._read(size)
        null = raw.find(b"\x00")
        if null != -1:
            raw = raw[:null]
        return raw.decode("ascii", errors="replace")

    def string_utf16(self, size: int) -> str:
        """Read a fixed-size UTF-16LE field, cut at the first null code unit."""
        raw = self._read(size)
        return _decode_utf16_until_null(raw)

    def cstring_utf16(self, max_size: int) -> str:
        """Read a null-terminated UTF-16LE string of at most `max_size` bytes.

        The cursor ends up just past the terminator. Raises ValueError when no
        terminator is found within `max_size` bytes.
        """
        start = self._pos
        limit = min(self._end, start + max_size)
        pos = start
        while pos + 1 < limit:
            if self._data[pos] == 0 and self._data[pos + 1] == 0:
                result = self._data[start:pos].decode("utf-16-le", errors="replace")
                self._pos = pos + 2
                return result
            pos += 2
        raise ValueError(f"No null terminator found starting at offset {start - self._start}")

    def skip(self, size: int) -> None:
        if self._pos + size > self._end:
            raise ValueError(
                f"Skip of {size} bytes at offset {self.position} "
                f"would exceed boundary at {self.size}"
            )
        self._pos += size

    def slice(self, size: int) -> "BinaryReader":
        """Return a new BinaryReader bounded to the next `size` bytes.

        Advances this reader's cursor past the sliced region. Positions in the
        returned reader are relative to the start of the slice.
        """
        if size < 0 or self._pos + size > self._end:
            raise ValueError(
                f"Slice of {size} bytes at offset {self.position} "
                f"would exceed boundary at {self.size}"
            )
        sub = BinaryReader(self._data, self._pos, self._pos + size)
        self._pos += size
        return sub

    def seek(self, offset: int) -> None:
        """Seek to a position relative to the start of this reader."""
        if offset < 0 or offset > self.size:
            raise ValueError(f"Seek to {offset} is outside bounds [0, {self.size}]")
        self._pos = self._start + offset


def _decode_utf16_until_null(raw: bytes) -> str:
    for i in range(0, len(raw) - 1, 2):
        if raw[i] == 0 and raw[i + 1] == 0:
            raw = raw[:i]
            break
    else:
        raw = raw[: len(raw) - len(raw) % 2]
    return raw.decode("utf-16-le", errors="replace")
