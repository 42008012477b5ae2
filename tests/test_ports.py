from __future__ import annotations

import logging
import threading

from wavbeats.ports import CancelToken, LoggerLogSink, LogSink, NullProgressSink, ProgressSink


def test_sinks_satisfy_protocols() -> None:
    assert isinstance(LoggerLogSink(), LogSink)
    assert isinstance(NullProgressSink(), ProgressSink)
    assert isinstance(threading.Event(), CancelToken)


def test_fragments_are_joined_into_one_line(caplog) -> None:
    sink = LoggerLogSink(keep_transcript=True)
    with caplog.at_level(logging.INFO, logger="wavbeats.log"):
        sink.append_string("Chunk ID: ")
        sink.append_string("0x52494646")
        sink.append_line("  as a text string: RIFF")
        sink.append_line("first\nsecond")
    assert sink.lines == ["Chunk ID: 0x52494646  as a text string: RIFF", "first", "second"]
    assert [record.getMessage() for record in caplog.records] == sink.lines


def test_flush_emits_pending_fragment() -> None:
    sink = LoggerLogSink(keep_transcript=True)
    sink.flush()
    sink.append_string("partial")
    assert sink.lines == []
    sink.flush()
    assert sink.lines == ["partial"]


def test_error_file_is_appended(tmp_path) -> None:
    path = tmp_path / "nested" / "Error Log.txt"
    sink = LoggerLogSink(error_log_path=path)
    sink.append_to_error_file("Error -- something: x.wav")
    sink.append_to_error_file("")
    assert path.read_text(encoding="utf-8") == "Error -- something: x.wav\n\n"


def test_error_file_defaults_to_environment(error_log) -> None:
    sink = LoggerLogSink()
    assert sink.error_log_path == error_log
    sink.append_to_error_file("hello")
    assert error_log.read_text(encoding="utf-8") == "hello\n"


def test_unwritable_error_file_only_warns(tmp_path, caplog) -> None:
    sink = LoggerLogSink(error_log_path=tmp_path)
    with caplog.at_level(logging.WARNING, logger="wavbeats.ports"):
        sink.append_to_error_file("lost")
    assert any("Failed to append" in record.getMessage() for record in caplog.records)
