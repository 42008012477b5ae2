"""Binaural tone synthesis: linearly ramped sine pairs streamed into a writer.

Each section ramps the frequency of each channel from its start to its end
value by a fixed per-sample step. The sine argument uses the global sample
index ``k`` (counted from the start of the file, never reset per section),
so consecutive sections join phase-continuously.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import DurationLimitError, InvalidConfigError, JobCancelledError
from .keyed_config import KeyedConfig
from .ports import CancelToken, LoggerLogSink, LogSink, NullProgressSink, ProgressSink
from .wave_format import SIGNED_WORD, ValueRange, WaveFormat
from .writer import WaveWriter

_LOGGER = logging.getLogger("wavbeats.synth")

TWO_PI = 2 * math.pi
MAX_TOTAL_SECONDS = 36_000
MAX_TOTAL_FRAMES = 1_587_600_000
DEFAULT_SAMPLE_RATE = 44_100
DEFAULT_FREQUENCY = 1
DEFAULT_AMPLITUDE = 10_000
DEFAULT_BLOCK_FRAMES = 4_096

GENERAL_SECTIONS = ("general", "General")
SAMPLE_RATE_KEY = "samples per second"
VALUE_RANGE_KEY = "sample value range"
DURATION_KEY = "time duration in seconds"
_SECTION_KEYS = {
    "left_start_hz": ("left channel starting frequency Hz", DEFAULT_FREQUENCY),
    "left_end_hz": ("left channel ending frequency Hz", DEFAULT_FREQUENCY),
    "left_amp": ("left channel amplitude", DEFAULT_AMPLITUDE),
    "right_start_hz": ("right channel starting frequency Hz", DEFAULT_FREQUENCY),
    "right_end_hz": ("right channel ending frequency Hz", DEFAULT_FREQUENCY),
    "right_amp": ("right channel amplitude", DEFAULT_AMPLITUDE),
}

IntArray = NDArray[np.int64]


def round_half_up(values: NDArray[np.float64]) -> NDArray[np.float64]:
    """Round halves towards positive infinity (``np.round`` rounds to even)."""
    return np.floor(values + 0.5)


class ToneSection(BaseModel):
    """One span of output with a linear frequency ramp on each channel."""

    left_start_hz: int = DEFAULT_FREQUENCY
    left_end_hz: int = DEFAULT_FREQUENCY
    left_amp: int = Field(default=DEFAULT_AMPLITUDE, ge=0)
    right_start_hz: int = DEFAULT_FREQUENCY
    right_end_hz: int = DEFAULT_FREQUENCY
    right_amp: int = Field(default=DEFAULT_AMPLITUDE, ge=0)
    duration_seconds: int = Field(ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class BinauralJob(BaseModel):
    """Validated synthesis request built from a keyed-section config."""

    sample_rate: int = Field(default=DEFAULT_SAMPLE_RATE, gt=0, le=0xFFFFFFFF)
    value_range: ValueRange = SIGNED_WORD
    sections: tuple[ToneSection, ...] = ()

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _amplitudes_fit_sample_range(self) -> BinauralJob:
        peak = self.wave_format.sample_max
        for index, section in enumerate(self.sections, start=1):
            for amp in (section.left_amp, section.right_amp):
                if amp > peak:
                    raise ValueError(
                        f"section {index}: amplitude {amp} exceeds {peak} for "
                        f"{self.wave_format.bits_per_sample}-bit samples"
                    )
        return self

    @property
    def wave_format(self) -> WaveFormat:
        return WaveFormat.for_value_range(self.value_range, sample_rate=self.sample_rate)

    @property
    def total_seconds(self) -> int:
        return sum(section.duration_seconds for section in self.sections)

    @property
    def total_frames(self) -> int:
        return self.sample_rate * self.total_seconds

    def check_limits(self) -> None:
        total_seconds = self.total_seconds
        if total_seconds < 0 or total_seconds > MAX_TOTAL_SECONDS:
            raise DurationLimitError(
                f"Total time duration cannot exceed 10 hours ({MAX_TOTAL_SECONDS} seconds); "
                f"got {total_seconds}"
            )
        if self.total_frames > MAX_TOTAL_FRAMES:
            raise DurationLimitError(
                "Total number of samples cannot exceed 44100 samples per second "
                f"over 10 hours ({MAX_TOTAL_FRAMES}); got {self.total_frames}"
            )

    @classmethod
    def from_config(cls, config: KeyedConfig, log: LogSink | None = None) -> BinauralJob:
        """Read ``general`` settings and ``section 1``, ``section 2``, ...

        Enumeration stops at the first section without a non-negative
        ``time duration in seconds``; later sections are ignored.
        """

        general = next((name for name in GENERAL_SECTIONS if config.has_section(name)), "general")
        sample_rate = config.read_int(general, SAMPLE_RATE_KEY, DEFAULT_SAMPLE_RATE)
        value_range = config.read_int(general, VALUE_RANGE_KEY, SIGNED_WORD)
        if log is not None:
            log.append_line(f"Sample Rate: {sample_rate}")
            range_name = "signed word" if value_range == SIGNED_WORD else "unsigned byte"
            log.append_line(f"SampleValueRange: {range_name}")
            peak = 32767 if value_range == SIGNED_WORD else 127
            log.append_line(f"Amplitude range: 0 to {peak}")

        sections: list[dict[str, int]] = []
        index = 1
        while True:
            name = f"section {index}"
            duration = config.read_int(name, DURATION_KEY, -1)
            if duration < 0:
                break
            values = {
                field: config.read_int(name, key, default)
                for field, (key, default) in _SECTION_KEYS.items()
            }
            values["duration_seconds"] = duration
            sections.append(values)
            if log is not None:
                log.append_line(f"{name} time duration: {duration}")
            index += 1

        try:
            return cls.model_validate(
                {"sample_rate": sample_rate, "value_range": value_range, "sections": sections}
            )
        except ValidationError as exc:
            raise InvalidConfigError(f"Invalid binaural configuration: {exc}") from exc


@dataclass(slots=True)
class ChannelState:
    """Running oscillator state for one output channel."""

    frequency: float = 0.0
    freq_step: float = 0.0
    amplitude: int = 0
    last_frequency: float = 0.0

    def begin(self, start_hz: int, end_hz: int, amplitude: int, frames: int) -> None:
        self.amplitude = amplitude
        self.freq_step = float(end_hz - start_hz) / float(frames) if frames else 0.0
        self.frequency = float(start_hz)
        self.last_frequency = float(start_hz)

    def sample(self, k: int, sample_rate: int) -> int:
        """Sample at global index ``k`` for the current frequency."""
        value = self.amplitude * math.sin(self.frequency * TWO_PI * k / sample_rate)
        return math.floor(value + 0.5)

    def render(self, k0: int, count: int, sample_rate: int) -> IntArray:
        """Render ``count`` samples from global index ``k0`` and advance the ramp.

        Frequencies are accumulated sequentially, exactly as a per-sample loop
        adding ``freq_step`` after every sample would.
        """

        steps = np.full(count, self.freq_step, dtype=np.float64)
        steps[0] = self.frequency
        frequencies = np.add.accumulate(steps)
        k = np.arange(k0, k0 + count, dtype=np.float64)
        values = round_half_up(self.amplitude * np.sin(frequencies * TWO_PI * k / sample_rate))
        self.last_frequency = float(frequencies[-1])
        self.frequency = self.last_frequency + self.freq_step
        return values.astype(np.int64)


class SectionSummary(BaseModel):
    index: int
    frames: int
    left_actual_end_hz: float
    right_actual_end_hz: float

    model_config = ConfigDict(frozen=True)


class BinauralResult(BaseModel):
    path: Path
    total_frames: int
    sections: list[SectionSummary]

    model_config = ConfigDict(frozen=True)


class BinauralSynthesizer:
    """Streams a :class:`BinauralJob` through a :class:`WaveWriter`.

    Frames are produced in blocks of ``block_frames``; the cancellation token
    is polled and progress may be reported between blocks. Progress text has
    the form ``"Processing <k> of <total>"`` and is always reported once with
    ``k == total`` before the file is closed.
    """

    def __init__(
        self,
        job: BinauralJob,
        *,
        log: LogSink | None = None,
        progress: ProgressSink | None = None,
        progress_label: str = "progress",
        font_hint: Any = None,
        cancel: CancelToken | None = None,
        block_frames: int = DEFAULT_BLOCK_FRAMES,
        progress_interval: int | None = None,
    ) -> None:
        if block_frames <= 0:
            raise ValueError("block_frames must be positive")
        self.job = job
        self._log: LogSink = log if log is not None else LoggerLogSink()
        self._progress: ProgressSink = progress if progress is not None else NullProgressSink()
        self._progress_label = progress_label
        self._font_hint = font_hint
        self._cancel = cancel
        self._block_frames = block_frames
        self._progress_interval = progress_interval or job.sample_rate
        self._last_reported = -1
        self.left = ChannelState()
        self.right = ChannelState()

    def run(self, path: str | Path, writer: WaveWriter | None = None) -> BinauralResult:
        job = self.job
        job.check_limits()
        total_frames = job.total_frames
        self._log.append_line(f"Total Time Duration: {job.total_seconds}")
        self._log.append_line(f"Total Number of Samples for Each Channel: {total_frames}")

        writer = writer or WaveWriter()
        writer.begin_write(path, job.wave_format, total_frames)
        self._report(0, total_frames, force=True)
        summaries: list[SectionSummary] = []
        try:
            self._log.append_line("Creating audio...")
            k = 0
            for index, section in enumerate(job.sections, start=1):
                self._check_cancelled(writer, k)
                self._log.append_line(f"---- processing section {index}...")
                k = self._render_section(writer, section, k, total_frames)
                self._log_channel(
                    "--- Left Channel", self.left, section.left_start_hz, section.left_end_hz
                )
                self._log_channel(
                    "--- Right Channel", self.right, section.right_start_hz, section.right_end_hz
                )
                summaries.append(
                    SectionSummary(
                        index=index,
                        frames=job.sample_rate * section.duration_seconds,
                        left_actual_end_hz=self.left.last_frequency,
                        right_actual_end_hz=self.right.last_frequency,
                    )
                )
            self._report(k, total_frames, force=True)
            writer.end_write()
        finally:
            writer.close()
        self._log.append_line("-------------------------------------------------------")
        self._log.append_line("")
        return BinauralResult(path=Path(path), total_frames=total_frames, sections=summaries)

    def _render_section(
        self, writer: WaveWriter, section: ToneSection, k: int, total_frames: int
    ) -> int:
        sample_rate = self.job.sample_rate
        frames = sample_rate * section.duration_seconds
        self.left.begin(section.left_start_hz, section.left_end_hz, section.left_amp, frames)
        self.right.begin(section.right_start_hz, section.right_end_hz, section.right_amp, frames)

        end = min(k + frames, total_frames)
        while k < end:
            count = min(self._block_frames, end - k)
            block = np.column_stack(
                (
                    self.left.render(k, count, sample_rate),
                    self.right.render(k, count, sample_rate),
                )
            )
            writer.push_frames(block)
            k += count
            self._report(k, total_frames)
            self._check_cancelled(writer, k)
        return k

    def _check_cancelled(self, writer: WaveWriter, k: int) -> None:
        if self._cancel is None or not self._cancel.is_set():
            return
        _LOGGER.info("Synthesis cancelled after %d frames", k)
        writer.close()
        raise JobCancelledError(f"Cancelled after {k} of {self.job.total_frames} frames")

    def _report(self, k: int, total_frames: int, *, force: bool = False) -> None:
        if not force and k - self._last_reported < self._progress_interval:
            return
        if k == self._last_reported:
            return
        self._last_reported = k
        text = f"Processing {k} of {total_frames}"
        self._progress.update(self._progress_label, self._font_hint, text)

    def _log_channel(self, title: str, channel: ChannelState, start_hz: int, end_hz: int) -> None:
        self._log.append_line(title)
        self._log.append_line(f"beginning frequency: {start_hz}...")
        self._log.append_line(f"ending frequency: {end_hz}...")
        self._log.append_line(
            f"actual ending frequency (with rounding error): {channel.last_frequency}..."
        )
        self._log.append_line(f"amplitude: {channel.amplitude}...")


def render_binaural(
    config: KeyedConfig,
    path: str | Path,
    *,
    log: LogSink | None = None,
    progress: ProgressSink | None = None,
    cancel: CancelToken | None = None,
    writer: WaveWriter | None = None,
    **options: Any,
) -> BinauralResult:
    """Validate ``config`` and synthesize it into a WAVE file at ``path``."""

    job = BinauralJob.from_config(config, log)
    synth = BinauralSynthesizer(job, log=log, progress=progress, cancel=cancel, **options)
    return synth.run(path, writer)
