from __future__ import annotations

import io

import pytest

from wavbeats.binary import (
    read_exact,
    read_i16_le,
    read_tag_be,
    read_u16_le,
    read_u32_le,
    tag_from_text,
    write_i16_le,
    write_tag_be,
    write_u16_le,
    write_u32_le,
)
from wavbeats.errors import UnexpectedEofError, WaveReadError


def test_integers_are_little_endian() -> None:
    stream = io.BytesIO(b"\x01\x02\x01\x02\x03\x04\xfe\xff")
    assert read_u16_le(stream) == 0x0201
    assert read_u32_le(stream) == 0x04030201
    assert read_i16_le(stream) == -2


def test_tag_keeps_big_endian_value_and_text() -> None:
    tag = read_tag_be(io.BytesIO(b"RIFF"))
    assert tag.value == 0x52494646
    assert tag.text == "RIFF"
    assert str(tag) == "RIFF"
    assert tag_from_text("fmt ") == (0x666D7420, "fmt ")


def test_tag_from_text_requires_four_characters() -> None:
    with pytest.raises(ValueError):
        tag_from_text("fmt")


def test_short_read_raises_unexpected_eof() -> None:
    with pytest.raises(UnexpectedEofError) as excinfo:
        read_u32_le(io.BytesIO(b"\x01\x02"))
    assert isinstance(excinfo.value, WaveReadError)
    assert isinstance(excinfo.value, EOFError)
    with pytest.raises(UnexpectedEofError):
        read_exact(io.BytesIO(b""), 1)


def test_writers_emit_expected_bytes() -> None:
    stream = io.BytesIO()
    write_tag_be(stream, "data")
    write_u32_le(stream, 176_400)
    write_u16_le(stream, 1)
    write_i16_le(stream, -1)
    assert stream.getvalue() == b"data" + (176_400).to_bytes(4, "little") + b"\x01\x00\xff\xff"


class _ShortWriter(io.RawIOBase):
    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        return max(len(data) - 1, 0)


def test_short_write_is_an_os_error() -> None:
    with pytest.raises(OSError):
        write_u32_le(_ShortWriter(), 1)  # type: ignore[arg-type]
