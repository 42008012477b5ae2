"""Typed little-endian integer and big-endian tag I/O over binary streams."""

from __future__ import annotations

import struct
from typing import BinaryIO, NamedTuple

from .errors import UnexpectedEofError

_U8 = struct.Struct("<B")
_U16_LE = struct.Struct("<H")
_U32_LE = struct.Struct("<I")
_I16_LE = struct.Struct("<h")
_TAG_BE = struct.Struct(">I")

TAG_SIZE = 4


class Tag(NamedTuple):
    """Four-byte chunk identifier as a big-endian integer plus its text."""

    value: int
    text: str

    def __str__(self) -> str:
        return self.text


def tag_from_text(text: str) -> Tag:
    raw = text.encode("latin-1")
    if len(raw) != TAG_SIZE:
        raise ValueError(f"tag must be exactly {TAG_SIZE} characters: {text!r}")
    return Tag(_TAG_BE.unpack(raw)[0], text)


def read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if data is None or len(data) < size:
        got = 0 if data is None else len(data)
        raise UnexpectedEofError(f"End of file reached unexpectedly ({got} of {size} bytes).")
    return data


def read_u8(stream: BinaryIO) -> int:
    return _U8.unpack(read_exact(stream, _U8.size))[0]


def read_u16_le(stream: BinaryIO) -> int:
    return _U16_LE.unpack(read_exact(stream, _U16_LE.size))[0]


def read_u32_le(stream: BinaryIO) -> int:
    return _U32_LE.unpack(read_exact(stream, _U32_LE.size))[0]


def read_i16_le(stream: BinaryIO) -> int:
    return _I16_LE.unpack(read_exact(stream, _I16_LE.size))[0]


def read_tag_be(stream: BinaryIO) -> Tag:
    raw = read_exact(stream, TAG_SIZE)
    return Tag(_TAG_BE.unpack(raw)[0], raw.decode("latin-1"))


def _write(stream: BinaryIO, data: bytes) -> None:
    written = stream.write(data)
    # Raw (unbuffered) streams may accept fewer bytes than offered.
    if written is not None and written != len(data):
        raise OSError(f"short write: {written} of {len(data)} bytes")


def write_u8(stream: BinaryIO, value: int) -> None:
    _write(stream, _U8.pack(value & 0xFF))


def write_u16_le(stream: BinaryIO, value: int) -> None:
    _write(stream, _U16_LE.pack(value & 0xFFFF))


def write_i16_le(stream: BinaryIO, value: int) -> None:
    _write(stream, _I16_LE.pack(value))


def write_u32_le(stream: BinaryIO, value: int) -> None:
    _write(stream, _U32_LE.pack(value & 0xFFFFFFFF))


def write_tag_be(stream: BinaryIO, tag: Tag | str) -> None:
    value = tag_from_text(tag).value if isinstance(tag, str) else tag.value
    _write(stream, _TAG_BE.pack(value))


def write_bytes(stream: BinaryIO, data: bytes) -> None:
    _write(stream, data)
