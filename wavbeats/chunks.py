"""Sequential walking of RIFF chunk headers."""

from __future__ import annotations

from collections.abc import Iterator
from typing import BinaryIO, NamedTuple

from .binary import Tag, read_tag_be, read_u8, read_u32_le
from .errors import UnexpectedEofError

CHUNK_HEADER_SIZE = 8


class ChunkHeader(NamedTuple):
    tag: Tag
    data_size: int

    @property
    def padded(self) -> bool:
        return self.data_size % 2 != 0

    @property
    def total_size(self) -> int:
        """Bytes the chunk occupies on disk, header and pad byte included."""
        return padded_size(self.data_size) + CHUNK_HEADER_SIZE


def pad_size(data_size: int) -> int:
    return data_size % 2


def padded_size(data_size: int) -> int:
    return data_size + pad_size(data_size)


def next_chunk(stream: BinaryIO) -> ChunkHeader | None:
    """Read the next 8-byte chunk header, or ``None`` at end of stream.

    Running out of bytes anywhere inside the header is treated as a clean end
    of stream; this is the only place a short read is tolerated.
    """

    try:
        tag = read_tag_be(stream)
        data_size = read_u32_le(stream)
    except UnexpectedEofError:
        return None
    return ChunkHeader(tag, data_size)


def skip_padding(stream: BinaryIO, header: ChunkHeader) -> int | None:
    """Consume the pad byte after an odd-sized body and return its value."""

    if not header.padded:
        return None
    return read_u8(stream)


def iter_chunks(stream: BinaryIO, budget: int | None = None) -> Iterator[ChunkHeader]:
    """Yield chunk headers in file order.

    The consumer must read each chunk body, and its pad byte, before asking
    for the next header. With ``budget`` the walk stops once fewer bytes than
    a chunk header remain of that many (headers, bodies and pads included);
    this bounds nested walks such as the sub-chunks of a ``LIST`` chunk.
    """

    consumed = 0
    while budget is None or budget - consumed >= CHUNK_HEADER_SIZE:
        header = next_chunk(stream)
        if header is None:
            if budget is not None:
                raise UnexpectedEofError("End of file reached inside a nested chunk list.")
            return
        consumed += header.total_size
        yield header
