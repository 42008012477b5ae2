from __future__ import annotations

from .errors import (
    ChunkOrderError,
    ConfigOpenError,
    DurationLimitError,
    FormatRejectedError,
    InvalidConfigError,
    JobCancelledError,
    SizeOverflowError,
    UnexpectedEofError,
    WavBeatsError,
    WaveReadError,
    WaveWriteError,
)
from .jobs import create_binaural_wav_file, inspect_wav_file, output_path_for
from .keyed_config import KeyedConfig
from .logging_utils import configure_logging
from .ports import CancelToken, LoggerLogSink, LogSink, NullProgressSink, ProgressSink
from .reader import WaveFile, WaveReader, read_wave, read_wave_file
from .synth import (
    BinauralJob,
    BinauralResult,
    BinauralSynthesizer,
    ChannelState,
    ToneSection,
    render_binaural,
)
from .wave_format import WaveFormat
from .writer import WaveWriter, write_wave

__all__ = [
    "BinauralJob",
    "BinauralResult",
    "BinauralSynthesizer",
    "CancelToken",
    "ChannelState",
    "ChunkOrderError",
    "ConfigOpenError",
    "DurationLimitError",
    "FormatRejectedError",
    "InvalidConfigError",
    "JobCancelledError",
    "KeyedConfig",
    "LogSink",
    "LoggerLogSink",
    "NullProgressSink",
    "ProgressSink",
    "SizeOverflowError",
    "ToneSection",
    "UnexpectedEofError",
    "WavBeatsError",
    "WaveFile",
    "WaveFormat",
    "WaveReadError",
    "WaveReader",
    "WaveWriteError",
    "WaveWriter",
    "configure_logging",
    "create_binaural_wav_file",
    "inspect_wav_file",
    "output_path_for",
    "read_wave",
    "read_wave_file",
    "render_binaural",
    "write_wave",
]

__version__ = "0.1.0"
