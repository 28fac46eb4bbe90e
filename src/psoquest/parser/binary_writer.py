"""Growable little-endian writer, the output-side mirror of BinaryReader."""

import struct

from psoquest.models.records import Vec3


class BinaryWriter:
    """Appends typed values to a bytearray.

    Writes happen at the cursor; the cursor can be moved back with seek() to
    patch placeholders (e.g. offsets only known after the body is written).
    Writing past the end grows the buffer.
    """

    __slots__ = ("_buf", "_pos")

    def __init__(self) -> None:
        self._buf = bytearray()
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def size(self) -> int:
        return len(self._buf)

    def getvalue(self) -> bytes:
        return bytes(self._buf)

    def _write(self, data: bytes) -> None:
        end = self._pos + len(data)
        if self._pos == len(self._buf):
            self._buf += data
        else:
            if end > len(self._buf):
                self._buf.extend(b"\x00" * (end - len(self._buf)))
            self._buf[self._pos : end] = data
        self._pos = end

    def uint8(self, value: int) -> None:
        self._write(struct.pack("<B", value))

    def int8(self, value: int) -> None:
        self._write(struct.pack("<b", value))

    def uint16(self, value: int) -> None:
        self._write(struct.pack("<H", value))

    def int16(self, value: int) -> None:
        self._write(struct.pack("<h", value))

    def uint32(self, value: int) -> None:
        self._write(struct.pack("<I", value))

    def int32(self, value: int) -> None:
        self._write(struct.pack("<i", value))

    def float32(self, value: float) -> None:
        self._write(struct.pack("<f", value))

    def vec3_float32(self, value: Vec3) -> None:
        self._write(struct.pack("<fff", value.x, value.y, value.z))

    def bytes(self, data: bytes) -> None:
        self._write(bytes(data))

    def zeros(self, count: int) -> None:
        self._write(b"\x00" * count)

    def string_ascii(self, value: str, size: int) -> None:
        """Write a fixed-size ASCII field, null padded (and truncated) to `size`."""
        raw = value.encode("ascii")[:size]
        self._write(raw + b"\x00" * (size - len(raw)))

    def string_utf16(self, value: str, size: int) -> None:
        """Write a fixed-size UTF-16LE field, null padded (and truncated) to `size`."""
        raw = value.encode("utf-16-le")[:size]
        self._write(raw + b"\x00" * (size - len(raw)))

    def seek(self, offset: int) -> None:
        if offset < 0 or offset > len(self._buf):
            raise ValueError(f"Seek to {offset} is outside bounds [0, {len(self._buf)}]")
        self._pos = offset
