from __future__ import annotations

import pytest

from wavbeats.ports import LoggerLogSink


@pytest.fixture
def error_log(tmp_path, monkeypatch):
    path = tmp_path / "Error Log.txt"
    monkeypatch.setenv("WAVBEATS_ERROR_LOG", str(path))
    monkeypatch.setenv("WAVBEATS_LOG_DIR", str(tmp_path / "logs"))
    return path


@pytest.fixture
def transcript(error_log) -> LoggerLogSink:
    return LoggerLogSink(error_log_path=error_log, keep_transcript=True)
