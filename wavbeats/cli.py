from __future__ import annotations

import argparse
import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from rich.console import Console

from .errors import (
    ChunkOrderError,
    ConfigOpenError,
    DurationLimitError,
    FormatRejectedError,
    InvalidConfigError,
    JobCancelledError,
    SizeOverflowError,
    UnexpectedEofError,
    WaveWriteError,
)
from .jobs import create_binaural_wav_file, inspect_wav_file
from .logging_utils import configure_logging, debug_enabled, log_exception
from .ports import LoggerLogSink
from .spinner import Spinner, SpinnerProgressSink, render_error

_LOGGER = logging.getLogger("wavbeats.cli")
_CONSOLE = Console(stderr=True)

EXIT_OK = 0
EXIT_IO_ERROR = 1
EXIT_FORMAT_ERROR = 2
EXIT_CANCELLED = 130

_FORMAT_ERRORS = (
    FormatRejectedError,
    ChunkOrderError,
    SizeOverflowError,
    UnexpectedEofError,
    DurationLimitError,
    InvalidConfigError,
)
_IO_ERRORS = (OSError, WaveWriteError, ConfigOpenError)


def exit_code_for(exc: BaseException) -> int:
    if isinstance(exc, JobCancelledError):
        return EXIT_CANCELLED
    if isinstance(exc, _FORMAT_ERRORS):
        return EXIT_FORMAT_ERROR
    return EXIT_IO_ERROR


def _add_inspect_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", type=Path, help="WAV file to decode.")
    parser.add_argument(
        "--show-samples", action="store_true", help="List decoded samples in the dump."
    )
    parser.add_argument("--max-samples", type=int, default=64)


def _add_binaural_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("config", type=Path, help="Keyed-section audio configuration file.")
    parser.add_argument(
        "--output", type=Path, default=None, help="Defaults to the config path with .wav."
    )
    parser.add_argument("--block-frames", type=int, default=4096)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wavbeats")
    sub = parser.add_subparsers(dest="command", required=True)
    _add_inspect_arguments(sub.add_parser("inspect", help="Dump the structure of a WAV file."))
    _add_binaural_arguments(
        sub.add_parser("binaural", help="Create a binaural WAV file from a configuration.")
    )
    return parser


def _run_inspect(args: argparse.Namespace) -> int:
    wave = inspect_wav_file(
        args.path,
        log=LoggerLogSink(),
        show_samples=args.show_samples,
        max_samples=args.max_samples,
    )
    _CONSOLE.print(
        f"{args.path}: {wave.format.describe()}, {wave.frames} frames ({wave.duration:.3f} s)",
        soft_wrap=True,
    )
    return EXIT_OK


def _run_binaural(args: argparse.Namespace) -> int:
    cancel = threading.Event()
    with Spinner("Creating binaural audio") as status, ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(
            create_binaural_wav_file,
            args.config,
            output_path=args.output,
            log=LoggerLogSink(),
            progress=SpinnerProgressSink(status),
            cancel=cancel,
            block_frames=args.block_frames,
        )
        try:
            result = future.result()
        except KeyboardInterrupt:
            cancel.set()
            result = future.result()
    _CONSOLE.print(
        f"Wrote {result.path} ({result.total_frames} frames per channel)", soft_wrap=True
    )
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "inspect":
            return _run_inspect(args)
        if args.command == "binaural":
            return _run_binaural(args)
        parser.print_help()
        return EXIT_IO_ERROR
    except (*_FORMAT_ERRORS, *_IO_ERRORS, JobCancelledError) as exc:
        _LOGGER.debug("wavbeats %s failed: %s", args.command, exc, exc_info=debug_enabled())
        return exit_code_for(exc)
    except Exception as exc:
        _LOGGER.warning("wavbeats CLI failed: %s", exc, exc_info=debug_enabled())
        log_exception(f"wavbeats {args.command}", exc)
        render_error(f"wavbeats {args.command}", exc)
        return EXIT_IO_ERROR


def inspect_main(argv: list[str] | None = None) -> int:
    """Entry point for ``wav-inspect <path.wav>``."""
    return main(["inspect", *(sys.argv[1:] if argv is None else argv)])


def binaural_main(argv: list[str] | None = None) -> int:
    """Entry point for ``wav-binaural <config-path>``."""
    return main(["binaural", *(sys.argv[1:] if argv is None else argv)])


if __name__ == "__main__":
    raise SystemExit(main())
