"""Streaming RIFF/WAVE writer with precomputed chunk sizes."""

from __future__ import annotations

import logging
import struct
from collections.abc import Sequence
from pathlib import Path
from types import TracebackType
from typing import Any, BinaryIO

import numpy as np
from numpy.typing import NDArray

from .binary import write_bytes, write_tag_be, write_u8, write_u16_le, write_u32_le
from .chunks import CHUNK_HEADER_SIZE, pad_size, padded_size
from .errors import WaveWriteError
from .reader import WaveFile
from .wave_format import FMT_CHUNK_DATA_SIZE, PCM, SUPPORTED_BITS_PER_SAMPLE, WaveFormat

_LOGGER = logging.getLogger("wavbeats.writer")
_MAX_U32 = 0xFFFFFFFF
_WRITE_CHANNELS = (1, 2)


def list_info_data_size(copyrights: Sequence[str]) -> int:
    """Data size of a ``LIST``/``INFO`` chunk holding one ``ICOP`` per entry."""

    size = 4
    for text in copyrights:
        size += CHUNK_HEADER_SIZE + padded_size(len(text.encode("latin-1")))
    return size


class WaveWriter:
    """Writes a PCM WAVE file whose sizes are fixed before any sample arrives.

    Usage is ``begin_write`` once, ``push_frame``/``push_frames`` exactly
    ``total_frames`` times in total, then ``end_write``. Samples are signed
    values; 8-bit output has its sign bit flipped to the unsigned encoding.
    Copyright strings go in a ``LIST``/``INFO`` chunk after the data, or
    between ``fmt `` and ``data`` with ``copyrights_first``.
    Nothing is rewound on failure: a partially written file is left for the
    caller to remove.
    """

    def __init__(self) -> None:
        self._stream: BinaryIO | None = None
        self._path: Path | None = None
        self._format: WaveFormat | None = None
        self._frame_struct: struct.Struct | None = None
        self._copyrights: tuple[str, ...] = ()
        self.total_frames = 0
        self.frames_written = 0
        self.data_size = 0
        self.riff_data_size = 0

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def begin_write(
        self,
        path: str | Path,
        fmt: WaveFormat,
        total_frames: int,
        *,
        copyrights: Sequence[str] = (),
        copyrights_first: bool = False,
    ) -> None:
        if self._stream is not None:
            raise WaveWriteError("begin_write called while a file is already open")
        if fmt.compression_code != PCM:
            raise WaveWriteError(f"only PCM output is supported, not code {fmt.compression_code}")
        if fmt.channels not in _WRITE_CHANNELS:
            raise WaveWriteError(f"cannot write {fmt.channels} channels")
        if fmt.bits_per_sample not in SUPPORTED_BITS_PER_SAMPLE:
            raise WaveWriteError(f"cannot write {fmt.bits_per_sample} bits per sample")
        if total_frames < 0:
            raise WaveWriteError("total_frames must be non-negative")

        data_size = fmt.channels * fmt.bytes_per_sample * total_frames
        riff_data_size = (
            4
            + CHUNK_HEADER_SIZE
            + padded_size(FMT_CHUNK_DATA_SIZE)
            + CHUNK_HEADER_SIZE
            + padded_size(data_size)
        )
        if copyrights:
            riff_data_size += CHUNK_HEADER_SIZE + padded_size(list_info_data_size(copyrights))
        if riff_data_size > _MAX_U32:
            raise WaveWriteError(f"{total_frames} frames do not fit in a RIFF file")

        code = "h" if fmt.bits_per_sample == 16 else "B"
        self._frame_struct = struct.Struct("<" + code * fmt.channels)
        self._format = fmt
        self._copyrights = () if copyrights_first else tuple(copyrights)
        self.total_frames = total_frames
        self.frames_written = 0
        self.data_size = data_size
        self.riff_data_size = riff_data_size
        self._path = Path(path)

        try:
            self._stream = self._path.open("wb")
            write_tag_be(self._stream, "RIFF")
            write_u32_le(self._stream, riff_data_size)
            write_tag_be(self._stream, "WAVE")
            self._write_format_chunk(self._stream, fmt)
            if copyrights and copyrights_first:
                self._write_list_chunk(self._stream, copyrights)
            write_tag_be(self._stream, "data")
            write_u32_le(self._stream, data_size)
        except OSError as exc:
            self.close()
            raise WaveWriteError(f"Error saving file: {self._path}: {exc}") from exc
        _LOGGER.debug(
            "Started %s: %s, %d frames, RIFF size %d",
            self._path,
            fmt.describe(),
            total_frames,
            riff_data_size,
        )

    @staticmethod
    def _write_format_chunk(stream: BinaryIO, fmt: WaveFormat) -> None:
        write_tag_be(stream, "fmt ")
        write_u32_le(stream, FMT_CHUNK_DATA_SIZE)
        write_u16_le(stream, fmt.compression_code)
        write_u16_le(stream, fmt.channels)
        write_u32_le(stream, fmt.sample_rate)
        write_u32_le(stream, fmt.avg_bytes_per_second)
        write_u16_le(stream, fmt.block_align)
        write_u16_le(stream, fmt.bits_per_sample)

    def _require_open(self, frames: int) -> tuple[BinaryIO, WaveFormat]:
        if self._stream is None or self._format is None:
            raise WaveWriteError("no file is open for writing")
        if self.frames_written + frames > self.total_frames:
            raise WaveWriteError(
                f"cannot write {frames} more frame(s): {self.frames_written} of "
                f"{self.total_frames} already written"
            )
        return self._stream, self._format

    def _check_range(self, fmt: WaveFormat, low: int, high: int) -> None:
        if low < fmt.sample_min or high > fmt.sample_max:
            raise WaveWriteError(
                f"sample outside the {fmt.bits_per_sample}-bit range "
                f"[{fmt.sample_min}, {fmt.sample_max}]"
            )

    def push_frame(self, *samples: int) -> None:
        """Write one frame, one signed sample per channel in channel order."""

        stream, fmt = self._require_open(1)
        if len(samples) != fmt.channels:
            raise WaveWriteError(f"expected {fmt.channels} samples per frame, got {len(samples)}")
        self._check_range(fmt, min(samples), max(samples))
        assert self._frame_struct is not None
        if fmt.bits_per_sample == 8:
            samples = tuple((value & 0xFF) ^ 0x80 for value in samples)
        try:
            write_bytes(stream, self._frame_struct.pack(*samples))
        except OSError as exc:
            raise WaveWriteError(f"Error saving file: {self._path}: {exc}") from exc
        self.frames_written += 1

    def push_frames(self, frames: NDArray[Any]) -> None:
        """Write a block of frames shaped ``(frames, channels)``."""

        block = np.asarray(frames)
        if block.ndim != 2:
            raise WaveWriteError(f"expected a (frames, channels) block, got shape {block.shape}")
        stream, fmt = self._require_open(block.shape[0])
        if block.shape[1] != fmt.channels:
            raise WaveWriteError(f"expected {fmt.channels} samples per frame, got {block.shape[1]}")
        if block.size == 0:
            return
        self._check_range(fmt, int(block.min()), int(block.max()))
        if fmt.bits_per_sample == 8:
            encoded = ((block.astype(np.int16) & 0xFF) ^ 0x80).astype(np.uint8)
        else:
            encoded = block.astype("<i2")
        try:
            write_bytes(stream, encoded.tobytes())
        except OSError as exc:
            raise WaveWriteError(f"Error saving file: {self._path}: {exc}") from exc
        self.frames_written += block.shape[0]

    def end_write(self) -> None:
        """Pad the data chunk, append any ``LIST`` chunk and close the file."""

        if self._stream is None:
            raise WaveWriteError("no file is open for writing")
        stream = self._stream
        try:
            if self.frames_written != self.total_frames:
                raise WaveWriteError(
                    f"only {self.frames_written} of {self.total_frames} frames were written"
                )
            if pad_size(self.data_size):
                write_u8(stream, 0)
            if self._copyrights:
                self._write_list_chunk(stream, self._copyrights)
            stream.flush()
        except OSError as exc:
            raise WaveWriteError(f"Error saving file: {self._path}: {exc}") from exc
        finally:
            self.close()

    @staticmethod
    def _write_list_chunk(stream: BinaryIO, copyrights: Sequence[str]) -> None:
        data_size = list_info_data_size(copyrights)
        write_tag_be(stream, "LIST")
        write_u32_le(stream, data_size)
        write_tag_be(stream, "INFO")
        for text in copyrights:
            raw = text.encode("latin-1")
            write_tag_be(stream, "ICOP")
            write_u32_le(stream, len(raw))
            write_bytes(stream, raw)
            if pad_size(len(raw)):
                write_u8(stream, 0)
        if pad_size(data_size):
            write_u8(stream, 0)

    def close(self) -> None:
        """Close the file without finishing it."""

        stream = self._stream
        self._stream = None
        if stream is None:
            return
        try:
            stream.close()
        except OSError as exc:
            raise WaveWriteError(f"Error closing file: {self._path}: {exc}") from exc

    def __enter__(self) -> WaveWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def write_wave(path: str | Path, wave: WaveFile) -> Path:
    """Write a decoded :class:`WaveFile` back to disk."""

    samples = np.asarray(wave.samples)
    if wave.format.bits_per_sample == 8:
        signed = samples.astype(np.int16) - 128
    else:
        signed = samples.astype(np.int16)
    target = Path(path)
    with WaveWriter() as writer:
        writer.begin_write(
            target,
            wave.format,
            wave.frames,
            copyrights=wave.copyrights,
            copyrights_first=wave.copyrights_before_data,
        )
        writer.push_frames(signed.T)
        writer.end_write()
    return target
