"""Reader for line-oriented ``[section]`` / ``key = value`` files."""

from __future__ import annotations

import configparser
import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from .errors import ConfigOpenError, InvalidConfigError

_LOGGER = logging.getLogger("wavbeats.keyed_config")


def _parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        delimiters=("=",),
        comment_prefixes=("#", ";"),
        inline_comment_prefixes=None,
        strict=False,
        empty_lines_in_values=False,
        allow_no_value=True,
        interpolation=None,
        default_section="\x00",
    )
    # Keys are matched literally, so keep their case.
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    return parser


def _flatten(text: str) -> str:
    """Strip every line so indentation never continues the previous value."""

    lines = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if line.startswith("="):
            _LOGGER.debug("Line %d has no key; ignoring %r", lineno, line)
            line = ""
        lines.append(line)
    return "\n".join(lines)


class KeyedConfig:
    """Keyed-section settings with typed, defaulting accessors.

    Section names and keys are matched literally after trimming whitespace.
    A missing section or key, or a value that does not parse, yields the
    caller's default.
    """

    def __init__(
        self,
        sections: Mapping[str, Mapping[str, str | None]],
        *,
        source: Path | None = None,
    ) -> None:
        self._sections: Mapping[str, Mapping[str, str | None]] = MappingProxyType(
            {
                name.strip(): MappingProxyType({key.strip(): value for key, value in items.items()})
                for name, items in sections.items()
            }
        )
        self.source = source

    @classmethod
    def from_string(cls, text: str, *, source: Path | None = None) -> KeyedConfig:
        parser = _parser()
        try:
            parser.read_string(_flatten(text), source=str(source) if source else "<string>")
        except configparser.Error as exc:
            raise InvalidConfigError(f"Could not parse configuration: {exc}") from exc
        sections = {name: dict(parser.items(name, raw=True)) for name in parser.sections()}
        return cls(sections, source=source)

    @classmethod
    def load(cls, path: str | Path, *, encoding: str = "utf-8") -> KeyedConfig:
        target = Path(path)
        try:
            text = target.read_text(encoding=encoding, errors="replace")
        except OSError as exc:
            raise ConfigOpenError(f"Could not open configuration file {target}: {exc}") from exc
        return cls.from_string(text, source=target)

    def sections(self) -> list[str]:
        return list(self._sections)

    def has_section(self, section: str) -> bool:
        return section.strip() in self._sections

    def _lookup(self, section: str, key: str) -> str | None:
        items = self._sections.get(section.strip())
        if items is None:
            return None
        return items.get(key.strip())

    def read_string(self, section: str, key: str, default: str) -> str:
        value = self._lookup(section, key)
        return default if value is None else value

    def read_int(self, section: str, key: str, default: int) -> int:
        value = self._lookup(section, key)
        if value is None:
            return default
        try:
            return int(value.strip())
        except ValueError:
            _LOGGER.debug("[%s] %s = %r is not an integer; using %d", section, key, value, default)
            return default
