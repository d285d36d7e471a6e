"""Segment-wise glob matching for archive entry paths.

Patterns and paths are split on runs of ``/`` and compared segment by
segment. Within a segment ``*``, ``?`` and ``[...]`` classes never match a
slash. With ``globstar`` a segment consisting of exactly ``**`` matches zero
or more whole segments. Braces, extended globs, ``#`` comments and ``!``
negation have no special meaning: tar does not know them.

A path with a trailing slash (a directory entry) also satisfies a pattern
that stops right before the slash, so ``a/b`` matches ``a/b/``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Sequence, Union

_SLASH_SPLIT = re.compile(r"/+")
_FORBIDDEN_CHARS = ("\n", "\r", "\x00")
_CLASS_SPECIALS = re.compile(r"([&~|\[])")

# Wildcard segments never match the "." and ".." path components, nor an
# empty component.
_SEGMENT_GUARD = r"(?!\.{1,2}$)(?=.)"


class GlobError(ValueError):
    """Raised when a glob pattern cannot be compiled."""


class _Globstar:
    def __repr__(self) -> str:
        return "GLOBSTAR"


GLOBSTAR = _Globstar()

Segment = Union[str, "re.Pattern[str]", _Globstar]


@dataclass(frozen=True)
class MatchOptions:
    """Switches understood by `GlobMatcher`."""

    nocase: bool = False
    globstar: bool = False
    match_base: bool = False
    dot: bool = True


def _translate_class(segment: str, start: int):
    """Translate the ``[...]`` class opening at ``start - 1``.

    Returns ``(regex, next_index)`` or ``None`` when the bracket is unclosed
    and must be taken literally.
    """
    j = start
    if j < len(segment) and segment[j] in "!^":
        j += 1
    if j < len(segment) and segment[j] == "]":
        j += 1
    while j < len(segment) and segment[j] != "]":
        j += 1
    if j >= len(segment):
        return None

    body = segment[start:j]
    negate = body[:1] in ("!", "^")
    if negate:
        body = body[1:]
    body = body.replace("\\", "\\\\")
    body = _CLASS_SPECIALS.sub(r"\\\1", body)
    if not negate and body.startswith("^"):
        body = "\\" + body
    return "[%s%s]" % ("^" if negate else "", body), j + 1


def translate_segment(segment: str):
    """Translate one path segment.

    Returns ``(literal, None)`` for a segment without wildcards (escapes
    removed), or ``(None, regex_source)`` otherwise.
    """
    parts: List[str] = []
    literal: List[str] = []
    magic = False
    i = 0
    n = len(segment)
    while i < n:
        c = segment[i]
        i += 1
        if c == "\\":
            if i < n:
                c = segment[i]
                i += 1
            parts.append(re.escape(c))
            literal.append(c)
        elif c == "*":
            magic = True
            if not parts or parts[-1] != "[^/]*":
                parts.append("[^/]*")
        elif c == "?":
            magic = True
            parts.append("[^/]")
        elif c == "[":
            translated = _translate_class(segment, i)
            if translated is None:
                parts.append(re.escape(c))
                literal.append(c)
            else:
                magic = True
                regex, i = translated
                parts.append(regex)
        else:
            parts.append(re.escape(c))
            literal.append(c)

    if not magic:
        return "".join(literal), None
    return None, _SEGMENT_GUARD + "".join(parts)


class GlobMatcher:
    """Compiled glob pattern."""

    def __init__(self, pattern: str, options: MatchOptions = MatchOptions()) -> None:
        if any(ch in pattern for ch in _FORBIDDEN_CHARS):
            raise GlobError(f"Pattern contains a forbidden control character: {pattern!r}")
        self.pattern = pattern
        self.options = options
        self._flags = re.DOTALL | (re.IGNORECASE if options.nocase else 0)
        self.sources: List[str] = []
        self._segments: List[Segment] = [
            self._compile_segment(part) for part in _SLASH_SPLIT.split(pattern)
        ]

    def _compile_segment(self, part: str) -> Segment:
        if self.options.globstar and part == "**":
            self.sources.append("**")
            return GLOBSTAR
        literal, source = translate_segment(part)
        if source is None:
            self.sources.append(re.escape(literal))
            return literal.lower() if self.options.nocase else literal
        self.sources.append(source)
        try:
            return re.compile(source, self._flags)
        except re.error as exc:
            raise GlobError(f"Cannot compile segment {part!r}: {exc}") from exc

    def match(self, path: str) -> bool:
        if self.pattern == "":
            return path == ""
        parts = _SLASH_SPLIT.split(path)
        if self.options.match_base and len(self._segments) == 1:
            basename = ""
            for part in reversed(parts):
                if part:
                    basename = part
                    break
            parts = [basename]
        return self._match_from(parts, 0, 0)

    __call__ = match

    def _match_segment(self, segment: Segment, name: str) -> bool:
        if isinstance(segment, str):
            return (name.lower() if self.options.nocase else name) == segment
        return segment.fullmatch(name) is not None

    def _swallowable(self, name: str) -> bool:
        if name in (".", ".."):
            return False
        return self.options.dot or not name.startswith(".")

    def _match_from(self, parts: Sequence[str], fi: int, pi: int) -> bool:
        segments = self._segments
        fl = len(parts)
        pl = len(segments)
        while fi < fl and pi < pl:
            segment = segments[pi]
            if segment is GLOBSTAR:
                if pi + 1 == pl:
                    # A trailing ** takes whatever is left.
                    return all(self._swallowable(name) for name in parts[fi:])
                fr = fi
                while fr < fl:
                    if self._match_from(parts, fr, pi + 1):
                        return True
                    if not self._swallowable(parts[fr]):
                        break
                    fr += 1
                return False
            if not self._match_segment(segment, parts[fi]):
                return False
            fi += 1
            pi += 1

        if fi == fl and pi == pl:
            return True
        if fi == fl:
            return False
        # Pattern used up: only a trailing slash may remain on the path.
        return fi == fl - 1 and parts[fi] == ""


@lru_cache(maxsize=256)
def compile_glob(pattern: str, options: MatchOptions = MatchOptions()) -> GlobMatcher:
    return GlobMatcher(pattern, options)


def glob_match(path: str, pattern: str, options: MatchOptions = MatchOptions()) -> bool:
    """One-off match of ``path`` against ``pattern``."""
    return compile_glob(pattern, options).match(path)
