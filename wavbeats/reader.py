"""RIFF/WAVE decoding into a format descriptor and a sample matrix."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, BinaryIO, NoReturn

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field

from .binary import read_exact, read_tag_be, read_u16_le, read_u32_le
from .chunks import ChunkHeader, iter_chunks, skip_padding
from .errors import ChunkOrderError, FormatRejectedError, SizeOverflowError
from .ports import LogSink, LoggerLogSink
from .wave_format import (
    FMT_CHUNK_DATA_SIZE,
    FORMAT_REQUIREMENTS,
    MAX_FRAMES,
    PCM,
    SUPPORTED_BITS_PER_SAMPLE,
    SUPPORTED_CHANNELS,
    WaveFormat,
    compression_name,
)

_LOGGER = logging.getLogger("wavbeats.reader")
_SKIP_BLOCK = 64 * 1024
_HEX_ROW = 16

SampleMatrix = NDArray[Any]
ChunkHandler = Callable[[BinaryIO, ChunkHeader], None]


class WaveFile(BaseModel):
    """Decoded WAVE file.

    ``samples`` has shape ``(channels, frames)``. 8-bit audio keeps its
    unsigned representation (midpoint 128) as ``uint8``; 16-bit audio is
    ``int16``.
    ``copyrights_before_data`` is set when the copyright ``LIST`` chunk came
    before ``data``, so a rewrite can keep that layout.
    """

    format: WaveFormat
    samples: np.ndarray
    copyrights: list[str] = Field(default_factory=list)
    copyrights_before_data: bool = False

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def channels(self) -> int:
        return self.format.channels

    @property
    def frames(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        if self.format.sample_rate == 0:
            return 0.0
        return self.frames / self.format.sample_rate


def _banner(title: str) -> str:
    return f"-- {title} ".ljust(56, "-")


def _hex32(value: int) -> str:
    return f"0x{value:08x}"


class WaveReader:
    """Chunk dispatcher that materialises a :class:`WaveFile`.

    Chunks are handled strictly in file order. ``RIFF`` must come first and
    ``fmt `` must precede ``data``; unknown chunks are logged and skipped.
    """

    def __init__(
        self,
        log: LogSink | None = None,
        *,
        show_samples: bool = False,
        max_samples: int = 64,
        max_dump_bytes: int = 256,
    ) -> None:
        self._log: LogSink = log if log is not None else LoggerLogSink()
        self._show_samples = show_samples
        self._max_samples = max_samples
        self._max_dump_bytes = max_dump_bytes
        self._handlers: Mapping[str, ChunkHandler] = {
            "RIFF": self._handle_riff,
            "fmt ": self._handle_format,
            "data": self._handle_data,
            "LIST": self._handle_list,
        }
        self._reset()

    def _reset(self) -> None:
        self._riff_seen = False
        self._format: WaveFormat | None = None
        self._samples: SampleMatrix | None = None
        self._copyrights: list[str] = []
        self._copyrights_before_data = False

    def read(self, stream: BinaryIO) -> WaveFile:
        self._reset()
        for header in iter_chunks(stream):
            _LOGGER.debug("Dispatching chunk %r (%d bytes)", header.tag.text, header.data_size)
            self._check_order(header)
            handler = self._handlers.get(header.tag.text, self._handle_unknown)
            handler(stream, header)

        if not self._riff_seen:
            self._reject("Error -- WAVE type RIFF file expected: ", "no RIFF chunk found")
        if self._format is None:
            self._reject("Error -- Format Chunk not found: ", "no fmt chunk found")
        samples = self._samples
        if samples is None:
            dtype = np.uint8 if self._format.bits_per_sample == 8 else np.int16
            samples = np.zeros((self._format.channels, 0), dtype=dtype)
        return WaveFile(
            format=self._format,
            samples=samples,
            copyrights=list(self._copyrights),
            copyrights_before_data=self._copyrights_before_data,
        )

    # -- ordering -------------------------------------------------------------

    def _check_order(self, header: ChunkHeader) -> None:
        tag = header.tag.text
        if tag == "RIFF":
            if self._riff_seen:
                raise ChunkOrderError("Only one RIFF Type Chunk is allowed.")
            return
        if not self._riff_seen:
            raise ChunkOrderError(
                "The RIFF Type Chunk must be located before any other chunk type."
            )
        if tag == "fmt " and self._format is not None:
            raise ChunkOrderError("Only one Format Chunk is allowed.")
        if tag == "data":
            if self._format is None:
                raise ChunkOrderError("The Format Chunk must be located before the Data Chunk.")
            if self._samples is not None:
                raise ChunkOrderError("Only one Data Chunk is allowed.")

    def _reject(
        self,
        message: str,
        detail: str,
        error: type[FormatRejectedError] | type[SizeOverflowError] = FormatRejectedError,
    ) -> NoReturn:
        self._log.append_line(f"{message}{detail}")
        for line in FORMAT_REQUIREMENTS:
            self._log.append_line(line)
        raise error(f"{message.removeprefix('Error -- ').rstrip(': ')}: {detail}")

    # -- handlers -------------------------------------------------------------

    def _log_header(self, header: ChunkHeader) -> None:
        self._log.append_string("Chunk ID: ")
        self._log.append_string(_hex32(header.tag.value))
        self._log.append_string("  as a text string: ")
        self._log.append_line(header.tag.text)
        self._log.append_line(f"Chunk Data Size: {header.data_size}")

    def _handle_riff(self, stream: BinaryIO, header: ChunkHeader) -> None:
        self._log.append_line(_banner("RIFF Type Chunk"))
        self._log_header(header)
        form_type = read_tag_be(stream)
        self._log.append_line(
            f"File Type: {_hex32(form_type.value)}  as a text string: {form_type.text}"
        )
        if form_type.text != "WAVE":
            self._reject("Error -- WAVE type RIFF file expected: ", repr(form_type.text))
        self._riff_seen = True

    def _handle_format(self, stream: BinaryIO, header: ChunkHeader) -> None:
        self._log.append_line(_banner("Format Chunk"))
        self._log_header(header)
        if header.data_size < FMT_CHUNK_DATA_SIZE:
            self._reject("Error -- Format Chunk too small: ", f"{header.data_size} bytes")

        compression_code = read_u16_le(stream)
        self._log.append_line(
            f"Compression Type: {compression_code} ({compression_name(compression_code)})"
        )
        if compression_code != PCM:
            self._reject("Error -- Compression Code not Supported: ", str(compression_code))

        channels = read_u16_le(stream)
        self._log.append_line(f"Number of Channels: {channels}")
        sample_rate = read_u32_le(stream)
        self._log.append_line(f"Sample Rate: {sample_rate}")
        avg_bytes_per_second = read_u32_le(stream)
        self._log.append_line(f"Average Bytes Per Second: {avg_bytes_per_second}")
        block_align = read_u16_le(stream)
        self._log.append_line(f"Block Align: {block_align}")
        bits_per_sample = read_u16_le(stream)
        self._log.append_line(f"Significant Bits per Sample: {bits_per_sample}")

        if channels not in SUPPORTED_CHANNELS:
            self._reject(
                "Error -- Specified Number of Channels not supported: ", str(channels)
            )
        if bits_per_sample not in SUPPORTED_BITS_PER_SAMPLE:
            self._reject(
                "Error -- Specified Significant Bits per Sample not supported: ",
                str(bits_per_sample),
            )

        extra = header.data_size - FMT_CHUNK_DATA_SIZE
        if extra:
            self._log.append_line(f"Extra Format Bytes (ignored): {extra}")
            self._skip(stream, extra)
        self._log_pad(stream, header)

        fmt = WaveFormat(
            compression_code=compression_code,
            channels=channels,
            sample_rate=sample_rate,
            avg_bytes_per_second=avg_bytes_per_second,
            block_align=block_align,
            bits_per_sample=bits_per_sample,
        )
        if block_align != fmt.frame_size:
            _LOGGER.warning(
                "Block align %d does not match %d channels at %d bits",
                block_align,
                channels,
                bits_per_sample,
            )
        self._format = fmt

    def _handle_data(self, stream: BinaryIO, header: ChunkHeader) -> None:
        self._log.append_line(_banner("Data Chunk"))
        self._log_header(header)
        fmt = self._format
        assert fmt is not None

        frames = header.data_size // fmt.frame_size
        self._log.append_line(f"Number of Samples per Channel: {frames}")
        if frames > MAX_FRAMES:
            self._reject(
                "Error -- Too many Samples per Channel: ", str(frames), SizeOverflowError
            )

        used = frames * fmt.frame_size
        body = read_exact(stream, used)
        if header.data_size > used:
            self._log.append_line(f"Partial frame bytes (ignored): {header.data_size - used}")
            self._skip(stream, header.data_size - used)

        dtype = np.dtype("u1") if fmt.bits_per_sample == 8 else np.dtype("<i2")
        interleaved = np.frombuffer(body, dtype=dtype).reshape(frames, fmt.channels)
        native = np.uint8 if fmt.bits_per_sample == 8 else np.int16
        self._samples = np.ascontiguousarray(interleaved.T, dtype=native)

        if self._show_samples:
            self._log_samples(self._samples)
        self._log.append_line("")
        self._log_pad(stream, header)

    def _handle_list(self, stream: BinaryIO, header: ChunkHeader) -> None:
        self._log.append_line(_banner("LIST Chunk"))
        self._log_header(header)
        if header.data_size < 4:
            self._reject("Error -- LIST Chunk too small: ", f"{header.data_size} bytes")
        list_type = read_tag_be(stream)
        self._log.append_line(
            f"List Type: {_hex32(list_type.value)}  as a text string: {list_type.text}"
        )

        budget = header.data_size - 4
        consumed = 0
        for sub in iter_chunks(stream, budget):
            consumed += sub.total_size
            if consumed > budget:
                self._reject(
                    "Error -- LIST sub-chunk overruns its parent: ",
                    f"{sub.tag.text!r} by {consumed - budget} bytes",
                )
            if sub.tag.text == "ICOP":
                self._handle_icop(stream, sub)
                if self._samples is None:
                    self._copyrights_before_data = True
            else:
                self._handle_unknown(stream, sub)
        if budget > consumed:
            self._skip(stream, budget - consumed)
        self._log_pad(stream, header)

    def _handle_icop(self, stream: BinaryIO, header: ChunkHeader) -> None:
        self._log.append_line(_banner("LIST/INFO sub-chunk ICOP"))
        text = read_exact(stream, header.data_size).decode("latin-1")
        self._log.append_line(f"{header.tag.text}: {text}")
        self._copyrights.append(text)
        self._log_pad(stream, header)

    def _handle_unknown(self, stream: BinaryIO, header: ChunkHeader) -> None:
        self._log.append_line(_banner("Unknown Type Chunk"))
        self._log_header(header)
        remaining = header.data_size
        offset = 0
        while remaining > 0:
            block = read_exact(stream, min(remaining, _SKIP_BLOCK))
            remaining -= len(block)
            if offset < self._max_dump_bytes:
                self._hex_dump(block[: self._max_dump_bytes - offset], offset)
            offset += len(block)
        if header.data_size > self._max_dump_bytes:
            self._log.append_line(f"... ({header.data_size - self._max_dump_bytes} more bytes)")
        self._log_pad(stream, header)

    # -- helpers --------------------------------------------------------------

    def _hex_dump(self, data: bytes, offset: int) -> None:
        for start in range(0, len(data), _HEX_ROW):
            row = data[start : start + _HEX_ROW]
            self._log.append_line(f"{offset + start:08x}  {row.hex(' ')}")

    def _log_pad(self, stream: BinaryIO, header: ChunkHeader) -> None:
        pad = skip_padding(stream, header)
        if pad is not None:
            self._log.append_line(f"Padding byte: 0x{pad:02x}")

    def _log_samples(self, samples: SampleMatrix) -> None:
        self._log.append_line("")
        self._log.append_line("Data Samples (channel 1 or channel 1,channel 2):")
        shown = min(samples.shape[1], self._max_samples)
        for frame in range(shown):
            self._log.append_line(" , ".join(str(int(v)) for v in samples[:, frame]))
        if samples.shape[1] > shown:
            self._log.append_line(f"... ({samples.shape[1] - shown} more frames)")

    @staticmethod
    def _skip(stream: BinaryIO, size: int) -> None:
        remaining = size
        while remaining > 0:
            remaining -= len(read_exact(stream, min(remaining, _SKIP_BLOCK)))


def read_wave(stream: BinaryIO, log: LogSink | None = None, **options: Any) -> WaveFile:
    return WaveReader(log, **options).read(stream)


def read_wave_file(path: str | Path, log: LogSink | None = None, **options: Any) -> WaveFile:
    with Path(path).open("rb") as handle:
        return read_wave(handle, log, **options)
