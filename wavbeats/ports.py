"""Sinks through which the codec and synthesizer talk to their host."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from .logging_utils import get_error_log_path

_LOGGER = logging.getLogger("wavbeats.ports")
_TRANSCRIPT_LOGGER = logging.getLogger("wavbeats.log")


@runtime_checkable
class LogSink(Protocol):
    """Line-oriented, human-readable diagnostics.

    Implementations may be called from a worker thread and must serialise
    their own writes.
    """

    def append_line(self, text: str) -> None: ...

    def append_string(self, text: str) -> None: ...

    def append_to_error_file(self, text: str) -> None: ...


@runtime_checkable
class ProgressSink(Protocol):
    """Progress display. ``font_hint`` is opaque and passed through unchanged."""

    def update(self, label: str, font_hint: object | None, text: str) -> None: ...


@runtime_checkable
class CancelToken(Protocol):
    def is_set(self) -> bool: ...


class NullProgressSink:
    def update(self, label: str, font_hint: object | None, text: str) -> None:
        _ = label
        _ = font_hint
        _ = text


class LoggerLogSink:
    """Log sink backed by the ``wavbeats.log`` logger and ``Error Log.txt``.

    ``append_string`` fragments are held until the next ``append_line`` so each
    logger record carries one complete line. With ``keep_transcript`` the
    completed lines are also kept in :attr:`lines`.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger | None = None,
        error_log_path: str | Path | None = None,
        keep_transcript: bool = False,
    ) -> None:
        self._logger = logger or _TRANSCRIPT_LOGGER
        self._error_log_path = Path(error_log_path) if error_log_path else None
        self._keep_transcript = keep_transcript
        self._pending: list[str] = []
        self._lock = threading.Lock()
        self.lines: list[str] = []

    @property
    def error_log_path(self) -> Path:
        return self._error_log_path or get_error_log_path()

    def append_string(self, text: str) -> None:
        with self._lock:
            self._pending.append(text)

    def append_line(self, text: str) -> None:
        with self._lock:
            self._pending.append(text)
            joined = "".join(self._pending)
            self._pending.clear()
            for line in joined.split("\n"):
                self._emit(line)

    def flush(self) -> None:
        with self._lock:
            if not self._pending:
                return
            joined = "".join(self._pending)
            self._pending.clear()
            self._emit(joined)

    def append_to_error_file(self, text: str) -> None:
        with self._lock:
            path = self.error_log_path
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with path.open("a", encoding="utf-8") as handle:
                    handle.write(f"{text}\n")
            except OSError as exc:
                _LOGGER.warning("Failed to append to %s: %s", path, exc, exc_info=True)

    def _emit(self, line: str) -> None:
        if self._keep_transcript:
            self.lines.append(line)
        self._logger.info("%s", line)
