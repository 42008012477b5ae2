from __future__ import annotations

import pytest

from wav_builders import wave_bytes
from wavbeats.errors import ConfigOpenError, DurationLimitError, FormatRejectedError
from wavbeats.jobs import create_binaural_wav_file, inspect_wav_file, output_path_for

CONFIG = """
[general]
samples per second = 1000
sample value range = 1

[section 1]
left channel starting frequency Hz = 100
left channel ending frequency Hz = 100
right channel starting frequency Hz = 104
right channel ending frequency Hz = 104
time duration in seconds = 2
"""


def test_output_path_replaces_extension() -> None:
    assert output_path_for("sessions/theta.ini").as_posix() == "sessions/theta.wav"
    assert output_path_for("theta").as_posix() == "theta.wav"


def test_create_writes_next_to_config(tmp_path, transcript) -> None:
    config = tmp_path / "theta.ini"
    config.write_text(CONFIG, encoding="utf-8")
    result = create_binaural_wav_file(config, log=transcript)

    assert result.path == tmp_path / "theta.wav"
    assert result.path.stat().st_size == 44 + 2000 * 4
    assert transcript.lines[0] == "Creating Binaural WAV file: theta.wav."
    assert "Reading audio configuration file..." in transcript.lines
    assert "---- processing section 1..." in transcript.lines


def test_missing_config_is_logged_to_error_file(tmp_path, transcript, error_log) -> None:
    missing = tmp_path / "absent.ini"
    with pytest.raises(ConfigOpenError):
        create_binaural_wav_file(missing, log=transcript)
    lines = error_log.read_text(encoding="utf-8").splitlines()
    assert lines[0] == f"Error -- Could not open configuration file: {missing}"
    assert lines[2] == ""
    assert f"Error -- Could not open configuration file: {missing}" in transcript.lines


def test_duration_limit_is_reported_against_output(tmp_path, transcript, error_log) -> None:
    config = tmp_path / "long.ini"
    config.write_text("[section 1]\ntime duration in seconds = 40000\n", encoding="utf-8")
    target = tmp_path / "out.wav"
    with pytest.raises(DurationLimitError):
        create_binaural_wav_file(config, output_path=target, log=transcript)
    assert not target.exists()
    assert error_log.read_text(encoding="utf-8").startswith(
        f"Error -- Audio too long: {target}\n"
    )


def test_inspect_returns_decoded_file(tmp_path, transcript) -> None:
    path = tmp_path / "tiny.wav"
    path.write_bytes(wave_bytes(b"\x80\x81\x7f"))
    wave = inspect_wav_file(path, log=transcript)
    assert wave.samples.tolist() == [[128, 129, 127]]
    assert transcript.lines[0] == "Opening: tiny.wav."


def test_inspect_rejection_is_logged(tmp_path, transcript, error_log) -> None:
    path = tmp_path / "adpcm.wav"
    path.write_bytes(wave_bytes(b"\x00\x00", compression=2))
    with pytest.raises(FormatRejectedError):
        inspect_wav_file(path, log=transcript)
    assert error_log.read_text(encoding="utf-8").startswith(
        f"Error -- Unsupported WAV file: {path}\n"
    )
