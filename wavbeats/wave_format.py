from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PCM = 0x0001
FMT_CHUNK_DATA_SIZE = 16
SUPPORTED_CHANNELS = (1, 2)
SUPPORTED_BITS_PER_SAMPLE = (8, 16)
MAX_FRAMES = 2**31 - 1

ValueRange = Literal[1, 2]
SIGNED_WORD: ValueRange = 1
UNSIGNED_BYTE: ValueRange = 2

COMPRESSION_NAMES: Mapping[int, str] = MappingProxyType(
    {
        0x0000: "Unknown",
        0x0001: "PCM/uncompressed",
        0x0002: "Microsoft ADPCM",
        0x0006: "ITU G.711 a-law",
        0x0007: "ITU G.711 µ-law",
        0x0011: "IMA ADPCM",
        0x0016: "ITU G.723 ADPCM (Yamaha)",
        0x0031: "GSM 6.10",
        0x0040: "ITU G.721 ADPCM",
        0x0050: "MPEG",
        0xFFFF: "Experimental",
    }
)

FORMAT_REQUIREMENTS: tuple[str, ...] = (
    "--------------------------------------------------------",
    "WAV File Format Requirements",
    "",
    "This application can view WAV files with the following",
    "specifications:",
    "",
    "The RIFF Type Chunk must come before any other chunk.",
    "The Format Chunk must come before the Data Chunk.",
    "Extra Format Bytes in the Format Chunk are skipped.",
    "LIST chunks are scanned for ICOP (copyright) entries.",
    "All other Chunk types will be ignored.",
    "Compression types allowed:",
    "    1 (0x0001)  PCM/uncompressed",
    "Number of channels allowed: 1 or 2",
    "Valid samples per second values: any",
    "Valid block align values: any",
    "Valid bits per sample values: 8 or 16",
    f"Maximum number of samples per channel: {MAX_FRAMES}",
    "",
    "--------------------------------------------------------",
    "",
)


def compression_name(code: int) -> str:
    return COMPRESSION_NAMES.get(code, "unrecognized")


class WaveFormat(BaseModel):
    """Contents of a ``fmt `` chunk for linear PCM audio."""

    compression_code: int = Field(default=PCM, ge=0, le=0xFFFF)
    channels: int = Field(default=2, ge=0, le=0xFFFF)
    sample_rate: int = Field(default=44_100, ge=0, le=0xFFFFFFFF)
    avg_bytes_per_second: int = Field(default=176_400, ge=0, le=0xFFFFFFFF)
    block_align: int = Field(default=4, ge=0, le=0xFFFF)
    bits_per_sample: int = Field(default=16, ge=0, le=0xFFFF)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def pcm(cls, *, channels: int, sample_rate: int, bits_per_sample: int) -> WaveFormat:
        """Build a descriptor whose derived fields satisfy the PCM invariants."""

        block_align = channels * bits_per_sample // 8
        return cls(
            compression_code=PCM,
            channels=channels,
            sample_rate=sample_rate,
            avg_bytes_per_second=sample_rate * block_align,
            block_align=block_align,
            bits_per_sample=bits_per_sample,
        )

    @classmethod
    def for_value_range(cls, value_range: ValueRange, *, sample_rate: int) -> WaveFormat:
        bits = 16 if value_range == SIGNED_WORD else 8
        return cls.pcm(channels=2, sample_rate=sample_rate, bits_per_sample=bits)

    @property
    def bytes_per_sample(self) -> int:
        return self.bits_per_sample // 8

    @property
    def frame_size(self) -> int:
        return self.channels * self.bytes_per_sample

    @property
    def sample_min(self) -> int:
        """Smallest signed sample value a writer accepts for this format."""
        return -(1 << (self.bits_per_sample - 1))

    @property
    def sample_max(self) -> int:
        return (1 << (self.bits_per_sample - 1)) - 1

    def describe(self) -> str:
        return (
            f"{compression_name(self.compression_code)}, {self.channels} ch, "
            f"{self.sample_rate} Hz, {self.bits_per_sample}-bit"
        )
