from __future__ import annotations

import numpy as np
import pytest
import soundfile as sf

from wav_builders import chunk, fmt_body, list_info, riff
from wavbeats.errors import WaveWriteError
from wavbeats.reader import read_wave_file
from wavbeats.wave_format import WaveFormat
from wavbeats.writer import WaveWriter, list_info_data_size, write_wave

STEREO_16 = WaveFormat.pcm(channels=2, sample_rate=44100, bits_per_sample=16)
STEREO_8 = WaveFormat.pcm(channels=2, sample_rate=8000, bits_per_sample=8)
MONO_8 = WaveFormat.pcm(channels=1, sample_rate=8000, bits_per_sample=8)


def test_header_sizes_for_16bit_stereo(tmp_path) -> None:
    path = tmp_path / "out.wav"
    writer = WaveWriter()
    writer.begin_write(path, STEREO_16, 3)
    for frame in range(3):
        writer.push_frame(frame, -frame)
    writer.end_write()

    raw = path.read_bytes()
    assert len(raw) == 44 + 12
    assert writer.data_size == 12
    assert writer.riff_data_size == 36 + 12
    assert raw[:4] == b"RIFF"
    assert int.from_bytes(raw[4:8], "little") == len(raw) - 8
    assert raw[8:16] == b"WAVEfmt "
    assert raw[36:40] == b"data"
    assert not writer.is_open


def test_odd_data_size_gets_pad_byte(tmp_path) -> None:
    path = tmp_path / "odd.wav"
    with WaveWriter() as writer:
        writer.begin_write(path, MONO_8, 3)
        writer.push_frames(np.array([[0], [1], [-1]]))
        writer.end_write()
    raw = path.read_bytes()
    assert len(raw) == 44 + 3 + 1
    assert int.from_bytes(raw[4:8], "little") == 36 + 4
    assert raw[44:47] == b"\x80\x81\x7f"
    assert raw[-1:] == b"\x00"


def test_8bit_stereo_writes_both_channels(tmp_path) -> None:
    path = tmp_path / "stereo8.wav"
    with WaveWriter() as writer:
        writer.begin_write(path, STEREO_8, 2)
        writer.push_frame(-128, 127)
        writer.push_frame(5, -5)
        writer.end_write()
    assert path.read_bytes()[44:] == bytes([0x00, 0xFF, 0x85, 0x7B])


def test_push_beyond_declared_frames_fails(tmp_path) -> None:
    writer = WaveWriter()
    writer.begin_write(tmp_path / "short.wav", STEREO_16, 1)
    writer.push_frame(0, 0)
    with pytest.raises(WaveWriteError):
        writer.push_frame(0, 0)
    with pytest.raises(WaveWriteError):
        writer.push_frames(np.zeros((1, 2), dtype=np.int16))
    writer.end_write()


def test_end_write_requires_all_frames(tmp_path) -> None:
    writer = WaveWriter()
    writer.begin_write(tmp_path / "missing.wav", STEREO_16, 2)
    writer.push_frame(0, 0)
    with pytest.raises(WaveWriteError):
        writer.end_write()
    assert not writer.is_open


def test_rejects_out_of_range_and_wrong_width(tmp_path) -> None:
    writer = WaveWriter()
    writer.begin_write(tmp_path / "range.wav", STEREO_8, 4)
    with pytest.raises(WaveWriteError):
        writer.push_frame(128, 0)
    with pytest.raises(WaveWriteError):
        writer.push_frame(0)
    with pytest.raises(WaveWriteError):
        writer.push_frames(np.zeros((2, 3), dtype=np.int16))
    writer.close()


def test_rejects_unsupported_formats(tmp_path) -> None:
    adpcm = WaveFormat(compression_code=2)
    wide = WaveFormat.pcm(channels=2, sample_rate=8000, bits_per_sample=24)
    for fmt in (adpcm, wide):
        with pytest.raises(WaveWriteError):
            WaveWriter().begin_write(tmp_path / "bad.wav", fmt, 1)


def test_push_without_begin_fails() -> None:
    with pytest.raises(WaveWriteError):
        WaveWriter().push_frame(0, 0)


def test_unwritable_path_is_a_write_error(tmp_path) -> None:
    with pytest.raises(WaveWriteError):
        WaveWriter().begin_write(tmp_path / "missing" / "out.wav", STEREO_16, 1)


def test_round_trip_with_copyright(tmp_path) -> None:
    samples = np.array([[0, 1000, -32768], [32767, -1, 5]], dtype=np.int16)
    source = tmp_path / "source.wav"
    with WaveWriter() as writer:
        writer.begin_write(source, STEREO_16, 3, copyrights=["Public Domain"])
        writer.push_frames(samples.T)
        writer.end_write()

    wave = read_wave_file(source)
    assert wave.copyrights == ["Public Domain"]
    assert np.array_equal(wave.samples, samples)
    assert len(source.read_bytes()) == 44 + 12 + 8 + list_info_data_size(["Public Domain"])

    copy = write_wave(tmp_path / "copy.wav", wave)
    assert copy.read_bytes() == source.read_bytes()


def test_round_trip_keeps_copyright_ahead_of_data(tmp_path) -> None:
    raw = riff(
        chunk(b"fmt ", fmt_body(channels=2, bits=8)),
        list_info(b"PD"),
        chunk(b"data", b"\x80\x81\x7f\x80"),
    )
    source = tmp_path / "list-first.wav"
    source.write_bytes(raw)
    wave = read_wave_file(source)
    assert wave.copyrights_before_data
    assert write_wave(tmp_path / "copy.wav", wave).read_bytes() == raw


def test_round_trip_8bit_keeps_unsigned_samples(tmp_path) -> None:
    path = tmp_path / "mono8.wav"
    with WaveWriter() as writer:
        writer.begin_write(path, MONO_8, 3)
        writer.push_frames(np.array([[0], [1], [-1]]))
        writer.end_write()
    wave = read_wave_file(path)
    assert wave.samples.tolist() == [[128, 129, 127]]
    write_wave(tmp_path / "again.wav", wave)
    assert (tmp_path / "again.wav").read_bytes() == path.read_bytes()


def test_output_is_readable_by_libsndfile(tmp_path) -> None:
    path = tmp_path / "sf.wav"
    block = np.array([[100, -100], [2000, -2000], [0, 32767]], dtype=np.int16)
    with WaveWriter() as writer:
        writer.begin_write(path, STEREO_16, len(block))
        writer.push_frames(block)
        writer.end_write()
    data, rate = sf.read(str(path), dtype="int16")
    assert rate == 44100
    assert np.array_equal(data, block)
