"""Byte builders for hand-made RIFF/WAVE test inputs."""

from __future__ import annotations

import struct
from collections.abc import Sequence
from typing import Any


def chunk(tag: bytes, body: bytes, *, pad: bool = True) -> bytes:
    raw = tag + struct.pack("<I", len(body)) + body
    if pad and len(body) % 2:
        raw += b"\x00"
    return raw


def fmt_body(
    *,
    compression: int = 1,
    channels: int = 1,
    sample_rate: int = 8000,
    bits: int = 8,
    extra: bytes = b"",
) -> bytes:
    block_align = channels * (bits // 8)
    return (
        struct.pack(
            "<HHIIHH",
            compression,
            channels,
            sample_rate,
            sample_rate * block_align,
            block_align,
            bits,
        )
        + extra
    )


def list_info(*copyrights: bytes) -> bytes:
    return chunk(b"LIST", b"INFO" + b"".join(chunk(b"ICOP", text) for text in copyrights))


def riff(*chunks: bytes) -> bytes:
    body = b"WAVE" + b"".join(chunks)
    return b"RIFF" + struct.pack("<I", len(body)) + body


def wave_bytes(
    data: bytes,
    *,
    extra_chunks: Sequence[bytes] = (),
    **fmt: Any,
) -> bytes:
    return riff(chunk(b"fmt ", fmt_body(**fmt)), chunk(b"data", data), *extra_chunks)

