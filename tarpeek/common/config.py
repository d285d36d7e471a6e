"""Option resolution and runtime settings for tarpeek.

Two layers of configuration exist:
* `resolve_options` validates the per-call option mapping against
  `OPTION_TABLE` and produces an immutable `SelectionOptions`
* `TarpeekSettings` reads process-wide knobs from the environment:
    - `TARPEEK_LOG_LEVEL`
    - `TARPEEK_CHUNK_SIZE`
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from ..constants import DEFAULT_CHUNK_SIZE, MAX_BUFFER_SIZE, SUPPORTED_COMPRESSION_PROGRAMS
from .errors import ConflictingOptionsError, InvalidOptionError, UnsupportedCompressionError
from .logging_config import get_logger


# name -> accepted value types. bool is checked separately from int.
OPTION_TABLE: Dict[str, Tuple[type, ...]] = {
    "debug": (bool, str),
    "ignore_case": (bool,),
    "wildcards": (bool,),
    "wildcards_match_slash": (bool,),
    "recursion": (bool,),
    "anchored": (bool,),
    "pattern": (str,),
    "max_size": (int,),
    "use_compress_program": (str,),
    "I": (str,),
    "bzip2": (bool,),
    "gzip": (bool,),
    "lzma": (bool,),
    "xz": (bool,),
}

COMPRESS_PROGRAM_KEYS = ("use_compress_program", "I")

DEBUG_LEVELS = ("error", "warning", "warn", "info", "verbose", "debug", "matcher")


@dataclass(frozen=True)
class SelectionOptions:
    """Resolved, read-only options for a single list or read call."""

    pattern: Optional[str] = None
    ignore_case: bool = False
    wildcards: bool = False
    wildcards_match_slash: bool = False
    recursion: bool = True
    anchored: bool = True
    max_size: Optional[int] = None
    compression: Optional[str] = None
    debug: Optional[str] = None
    unknown_keys: Tuple[str, ...] = ()

    @property
    def globstar(self) -> bool:
        return self.wildcards and self.wildcards_match_slash

    def with_pattern(self, pattern: str) -> "SelectionOptions":
        return replace(self, pattern=pattern)


def _check_shape(key: str, value: Any) -> None:
    expected = OPTION_TABLE[key]
    if isinstance(value, bool) and bool not in expected:
        raise InvalidOptionError(f'Invalid value type given for option "{key}"')
    if not isinstance(value, expected):
        raise InvalidOptionError(f'Invalid value type given for option "{key}"')


def _resolve_debug(value: Any) -> Optional[str]:
    if value is False:
        return None
    if value is True:
        return "verbose"
    level = value.strip().lower()
    if level not in DEBUG_LEVELS:
        raise InvalidOptionError(f'Invalid value given for option "debug": {value!r}')
    return "warning" if level == "warn" else level


def resolve_options(options: Optional[Mapping[str, Any]] = None, **overrides: Any) -> SelectionOptions:
    """Validate an option mapping and return `SelectionOptions`.

    Keyword overrides are merged over ``options``. Keys whose value is
    ``None`` count as unset. Unknown keys are collected in
    ``unknown_keys`` and otherwise ignored.
    """
    if options is not None and not isinstance(options, Mapping):
        raise InvalidOptionError("Options must be given as a mapping")

    merged: Dict[str, Any] = dict(options or {})
    merged.update(overrides)

    values: Dict[str, Any] = {}
    unknown = []
    selectors = []

    for key, value in merged.items():
        if key not in OPTION_TABLE:
            unknown.append(key)
            continue
        if value is None:
            continue
        _check_shape(key, value)

        if key == "max_size":
            if value < 0:
                raise InvalidOptionError("max_size option cannot be negative")
            if value > MAX_BUFFER_SIZE:
                get_logger(__name__).warning(
                    "max_size %d exceeds the largest allocatable buffer; ignoring the limit", value
                )
            elif value:
                values["max_size"] = value
        elif key in COMPRESS_PROGRAM_KEYS:
            if value:
                selectors.append(value)
        elif key in SUPPORTED_COMPRESSION_PROGRAMS:
            if value:
                selectors.append(key)
        elif key == "debug":
            values["debug"] = _resolve_debug(value)
        else:
            values[key] = value

    if len(selectors) > 1:
        raise ConflictingOptionsError("Conflicting compression options")
    if selectors:
        program = selectors[0]
        if program not in SUPPORTED_COMPRESSION_PROGRAMS:
            raise UnsupportedCompressionError(f"Compression method unsupported: {program}")
        values["compression"] = program

    if values.get("wildcards") and "wildcards_match_slash" not in values:
        values["wildcards_match_slash"] = True
    if values.get("pattern") == "":
        del values["pattern"]

    return SelectionOptions(unknown_keys=tuple(unknown), **values)


def env_int(key: str, default: int, environ: Optional[Mapping[str, str]] = None) -> int:
    value = (environ if environ is not None else os.environ).get(key)
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


@dataclass
class TarpeekSettings:
    """Typed process settings sourced from the environment."""

    log_level: str
    chunk_size: int

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TarpeekSettings":
        environ = environ if environ is not None else os.environ
        return cls(
            log_level=environ.get("TARPEEK_LOG_LEVEL", "WARNING"),
            chunk_size=env_int("TARPEEK_CHUNK_SIZE", DEFAULT_CHUNK_SIZE, environ),
        )
