"""
Primitive codec for the OrientDB binary protocol.

Binary format conventions:
- All integers are big-endian, fixed-width, two's complement
- Strings and byte arrays are length-prefixed: [4 bytes len][N bytes]
- Length 0 is an empty value, length -1 is an absent (null) value

Writers append to a bytearray. Readers consume from any object with a
``read(size)`` method that returns exactly ``size`` bytes or raises
TransportError; transports and BytesReader both qualify.
"""

from __future__ import annotations

import struct
from typing import Optional, Protocol, Union

from .errors import ProtocolError, ShortReadError

_I8 = struct.Struct(">b")
_I16 = struct.Struct(">h")
_I32 = struct.Struct(">i")
_I64 = struct.Struct(">q")

NULL_LENGTH = -1


class Reader(Protocol):
    """Anything that can hand out an exact number of bytes."""

    def read(self, size: int) -> bytes:
        ...


class BytesReader:
    """Reader over an in-memory buffer.

    Used to decode complete byte strings, such as a command payload that
    was itself encoded as a length-prefixed field.
    """

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def read(self, size: int) -> bytes:
        available = len(self._data) - self._pos
        if size > available:
            raise ShortReadError(size, available)
        chunk = self._data[self._pos:self._pos + size]
        self._pos += size
        return chunk

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos


def _pack(fmt: struct.Struct, value: int, out: bytearray) -> None:
    try:
        out += fmt.pack(value)
    except struct.error as e:
        raise ValueError(f"{value!r} does not fit in {fmt.size * 8} bits: {e}") from e


def write_i8(value: int, out: bytearray) -> None:
    _pack(_I8, value, out)


def write_i16(value: int, out: bytearray) -> None:
    _pack(_I16, value, out)


def write_i32(value: int, out: bytearray) -> None:
    _pack(_I32, value, out)


def write_i64(value: int, out: bytearray) -> None:
    _pack(_I64, value, out)


def write_bytes(value: Optional[bytes], out: bytearray) -> None:
    """Write a length-prefixed byte array; None is written as length -1."""
    if value is None:
        write_i32(NULL_LENGTH, out)
        return
    write_i32(len(value), out)
    out += value


def write_string(value: Optional[Union[str, bytes]], out: bytearray) -> None:
    """Write a length-prefixed UTF-8 string.

    Three cases are kept apart on the wire: None (length -1), the empty
    string (length 0) and everything else.
    """
    if isinstance(value, str):
        value = value.encode("utf-8")
    write_bytes(value, out)


def _unpack(fmt: struct.Struct, reader: Reader) -> int:
    return fmt.unpack(reader.read(fmt.size))[0]


def read_i8(reader: Reader) -> int:
    return _unpack(_I8, reader)


def read_i16(reader: Reader) -> int:
    return _unpack(_I16, reader)


def read_i32(reader: Reader) -> int:
    return _unpack(_I32, reader)


def read_i64(reader: Reader) -> int:
    return _unpack(_I64, reader)


def read_bytes(reader: Reader) -> Optional[bytes]:
    """Read a length-prefixed byte array; length -1 yields None."""
    length = read_i32(reader)
    if length == NULL_LENGTH:
        return None
    if length < 0:
        raise ProtocolError(f"Negative length prefix: {length}")
    if length == 0:
        return b""
    return reader.read(length)


def read_string(reader: Reader) -> Optional[str]:
    """Read a length-prefixed UTF-8 string; length -1 yields None."""
    data = read_bytes(reader)
    if data is None:
        return None
    return data.decode("utf-8")
