"""
Shielded Parameters Serialization

Fixed-width integer codecs and byte buffers used by the message assembler.

All multi-byte integers are BIG-ENDIAN unless noted.
"""

from __future__ import annotations
import struct
from typing import List, Tuple

from shielded.constants import U64_MAX


def serialize_u8(value: int) -> bytes:
    """Serialize unsigned 8-bit integer."""
    if not 0 <= value <= 0xFF:
        raise ValueError(f"u8 out of range: {value}")
    return struct.pack(">B", value)


def serialize_u64(value: int) -> bytes:
    """Serialize unsigned 64-bit integer (big-endian)."""
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"u64 out of range: {value}")
    return struct.pack(">Q", value)


def serialize_u64_le(value: int) -> bytes:
    """Serialize unsigned 64-bit integer (little-endian, note plaintext only)."""
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"u64 out of range: {value}")
    return struct.pack("<Q", value)


def deserialize_u8(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Deserialize u8, return (value, bytes_consumed)."""
    return struct.unpack_from(">B", data, offset)[0], 1


def deserialize_u64(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Deserialize big-endian u64, return (value, bytes_consumed)."""
    return struct.unpack_from(">Q", data, offset)[0], 8


def deserialize_u64_le(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Deserialize little-endian u64, return (value, bytes_consumed)."""
    return struct.unpack_from("<Q", data, offset)[0], 8


def pad_to_size(data: bytes, size: int) -> bytes:
    """Right-pad data with zero bytes to exactly size bytes."""
    if len(data) > size:
        raise ValueError(f"data too long: {len(data)} > {size}")
    return data + bytes(size - len(data))


class ByteWriter:
    """
    Append-only byte buffer.

    Parts are joined once on getvalue(), so incremental message
    assembly stays linear in the total size.
    """

    def __init__(self):
        self._parts: List[bytes] = []
        self._size = 0

    def write_raw(self, data: bytes) -> ByteWriter:
        self._parts.append(bytes(data))
        self._size += len(data)
        return self

    def write_fixed(self, data: bytes, size: int) -> ByteWriter:
        """Write a field that must be exactly size bytes."""
        if len(data) != size:
            raise ValueError(f"field must be {size} bytes, got {len(data)}")
        return self.write_raw(data)

    def write_u8(self, value: int) -> ByteWriter:
        return self.write_raw(serialize_u8(value))

    def write_u64(self, value: int) -> ByteWriter:
        return self.write_raw(serialize_u64(value))

    def write_u64_le(self, value: int) -> ByteWriter:
        return self.write_raw(serialize_u64_le(value))

    def __len__(self) -> int:
        return self._size

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


class ByteReader:
    """Sequential reader over a byte string."""

    def __init__(self, data: bytes, offset: int = 0):
        self._data = data
        self._pos = offset

    @property
    def position(self) -> int:
        return self._pos

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read_raw(self, size: int) -> bytes:
        if size < 0 or self._pos + size > len(self._data):
            raise ValueError(
                f"read past end: need {size} bytes at {self._pos}, have {self.remaining()}"
            )
        chunk = self._data[self._pos:self._pos + size]
        self._pos += size
        return chunk

    def read_u8(self) -> int:
        value, _ = deserialize_u8(self.read_raw(1))
        return value

    def read_u64(self) -> int:
        value, _ = deserialize_u64(self.read_raw(8))
        return value

    def read_u64_le(self) -> int:
        value, _ = deserialize_u64_le(self.read_raw(8))
        return value
