"""Compile a selection pattern into the matcher used for entry selection."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Optional

from ..common.config import SelectionOptions
from ..common.errors import InvalidPatternError
from ..common.logging_config import ScanLog
from .globbing import GlobError, GlobMatcher, MatchOptions, glob_match

# A lone `*` occupying a whole path segment.
RE_STAR_CONTEXT = re.compile(r"(?:^|/)\*(?:/|$)")


def stars_to_globstars(source: str) -> str:
    """Rewrite whole-segment ``*`` into ``**``.

    With slash-matching wildcards tar lets ``*`` span directories; globstar
    gives the same reach, except that a leading ``**/`` would no longer
    match a top-level name by itself, hence the ``*/`` prefix.
    """
    parts = []
    while True:
        found = RE_STAR_CONTEXT.search(source)
        if not found:
            break
        if found.start() > 0:
            parts.append(source[:found.start()])
        parts.append(found.group(0).replace("*", "**", 1))
        source = source[found.end():]
    if source:
        parts.append(source)
    result = "".join(parts)
    if result.startswith("**/"):
        result = "*/" + result
    return result


@dataclass(frozen=True)
class CompiledMatcher:
    """A compiled pattern plus the option set reused for recursion tests."""

    matcher: GlobMatcher
    pattern: str
    options: MatchOptions
    recursion_options: MatchOptions

    def match(self, path: str) -> bool:
        return self.matcher.match(path)

    def match_recursive(self, path: str, pattern: str) -> bool:
        """Test ``path`` against a derived pattern with recursion options."""
        return glob_match(path, pattern, self.recursion_options)


def build_match_options(options: SelectionOptions) -> MatchOptions:
    return MatchOptions(
        nocase=options.ignore_case,
        globstar=options.globstar,
        match_base=options.anchored is False,
    )


def compile_pattern(pattern: str, options: SelectionOptions,
                    log: Optional[ScanLog] = None) -> CompiledMatcher:
    """Compile ``pattern`` under ``options``.

    Raises:
        InvalidPatternError: the pattern has no usable matching form
    """
    rewritten = pattern
    if options.globstar and RE_STAR_CONTEXT.search(pattern):
        rewritten = stars_to_globstars(pattern)
        if log:
            log.debug("Modified pattern: %s", rewritten)

    match_options = build_match_options(options)
    try:
        matcher = GlobMatcher(rewritten, match_options)
    except GlobError as exc:
        raise InvalidPatternError(pattern) from exc

    if log and options.debug == "matcher":
        log.debug("Compiled %r as segments %s", rewritten, matcher.sources)

    return CompiledMatcher(
        matcher=matcher,
        pattern=rewritten,
        options=match_options,
        recursion_options=replace(match_options, globstar=True),
    )
