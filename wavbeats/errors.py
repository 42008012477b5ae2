from __future__ import annotations


class WavBeatsError(Exception):
    """Base error for the wavbeats library."""


class WaveReadError(WavBeatsError):
    """Raised when a RIFF/WAVE stream cannot be decoded."""


class UnexpectedEofError(WaveReadError, EOFError):
    """Raised when a read cannot produce the requested number of bytes."""


class FormatRejectedError(WaveReadError):
    """Raised for WAVE content outside the supported PCM subset."""


class ChunkOrderError(WaveReadError):
    """Raised when chunks appear in an order the reader cannot process."""


class SizeOverflowError(WaveReadError):
    """Raised when a sample count exceeds the supported ceiling."""


class WaveWriteError(WavBeatsError):
    """Raised when a WAVE file cannot be written."""


class ConfigOpenError(WavBeatsError):
    """Raised when a keyed-section config file cannot be opened."""


class InvalidConfigError(WavBeatsError):
    """Raised when a config cannot be parsed or validated."""


class DurationLimitError(WavBeatsError):
    """Raised when a synthesis job exceeds the duration or frame cap."""


class JobCancelledError(WavBeatsError):
    """Raised when a job observes its cancellation token."""
