"""Callable jobs for hosts: inspect a WAVE file, create a binaural WAVE file.

Terminal errors are written to the log sink and to its error file, along
with the offending filename, and then re-raised for the host to map.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

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
    WaveWriteError,
)
from .keyed_config import KeyedConfig
from .ports import CancelToken, LoggerLogSink, LogSink, ProgressSink
from .reader import WaveFile, read_wave_file
from .synth import BinauralResult, render_binaural

_LOGGER = logging.getLogger("wavbeats.jobs")

_ERROR_MESSAGES: tuple[tuple[type[BaseException], str], ...] = (
    (ConfigOpenError, "Error -- Could not open configuration file: "),
    (InvalidConfigError, "Error -- Invalid configuration file: "),
    (DurationLimitError, "Error -- Audio too long: "),
    (JobCancelledError, "Creation cancelled by user: "),
    (FormatRejectedError, "Error -- Unsupported WAV file: "),
    (ChunkOrderError, "Error -- Chunks out of order: "),
    (SizeOverflowError, "Error -- WAV file too large: "),
    (UnexpectedEofError, "Error -- End of file reached unexpectedly: "),
    (WaveWriteError, "Error saving file: "),
    (OSError, "Error opening or reading file: "),
)


def output_path_for(config_path: str | Path) -> Path:
    """``tones.ini`` -> ``tones.wav``; a path without an extension gains one."""
    return Path(config_path).with_suffix(".wav")


def log_error(log: LogSink, message: str, filename: str | Path, details: str = "") -> None:
    for line in (f"{message}{filename}", details, ""):
        log.append_line(line)
        log.append_to_error_file(line)


def _report_failure(log: LogSink, exc: BaseException, filename: str | Path) -> None:
    message = next(
        (text for kind, text in _ERROR_MESSAGES if isinstance(exc, kind)),
        "Error -- ",
    )
    log_error(log, message, filename, str(exc))


def inspect_wav_file(
    path: str | Path,
    *,
    log: LogSink | None = None,
    **options: Any,
) -> WaveFile:
    """Decode ``path`` while writing a structured dump to ``log``."""

    sink: LogSink = log if log is not None else LoggerLogSink()
    target = Path(path)
    sink.append_line(f"Opening: {target.name}.")
    sink.append_line("")
    try:
        wave = read_wave_file(target, sink, **options)
    except (WavBeatsError, OSError) as exc:
        _report_failure(sink, exc, target)
        raise
    _LOGGER.debug("Read %s: %s, %d frames", target, wave.format.describe(), wave.frames)
    return wave


def create_binaural_wav_file(
    config_path: str | Path,
    *,
    output_path: str | Path | None = None,
    log: LogSink | None = None,
    progress: ProgressSink | None = None,
    cancel: CancelToken | None = None,
    **options: Any,
) -> BinauralResult:
    """Synthesize the job described by ``config_path`` into a WAVE file.

    The output defaults to the config path with its extension replaced by
    ``.wav``. A partially written file is left in place on failure.
    """

    sink: LogSink = log if log is not None else LoggerLogSink()
    source = Path(config_path)
    target = Path(output_path) if output_path is not None else output_path_for(source)
    sink.append_line(f"Creating Binaural WAV file: {target.name}.")
    sink.append_line("")
    try:
        sink.append_line("Reading audio configuration file...")
        config = KeyedConfig.load(source)
        return render_binaural(
            config, target, log=sink, progress=progress, cancel=cancel, **options
        )
    except (ConfigOpenError, InvalidConfigError) as exc:
        _report_failure(sink, exc, source)
        raise
    except (WavBeatsError, OSError) as exc:
        _report_failure(sink, exc, target)
        raise
