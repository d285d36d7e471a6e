"""Entry selection: which archive entries a pattern selects.

`EntryLister` reproduces tar's listing semantics, including recursion into
matched directories and recovery for archives that store files without
their parent directory entries. `EntrySeeker` finds the single file entry a
read request names and copies its body.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Iterable, Iterator, List, Optional

from ..common.config import SelectionOptions
from ..common.errors import NoMatchError, SizeExceededError, TruncatedInputError
from ..common.logging_config import ScanLog
from ..constants import DEFAULT_CHUNK_SIZE
from .patterns import CompiledMatcher, compile_pattern

# Trailing run of stars at the start of the pattern or after a slash.
RE_RECURS_TAIL = re.compile(r"(?:^|/)\**$")
# Parent of a directory path, both with trailing slashes.
RE_DIRPARENT = re.compile(r"^(.+/)[^/]+/$")


class EntryType(enum.Enum):
    FILE = "File"
    DIRECTORY = "Directory"
    OTHER = "Other"


@dataclass
class EntryRecord:
    """One archive entry as handed over by the tar decoder."""

    path: str
    entry_type: EntryType
    size: int = 0
    opener: Optional[Callable[[], BinaryIO]] = field(default=None, repr=False, compare=False)

    @property
    def is_dir(self) -> bool:
        return self.entry_type is EntryType.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.entry_type is EntryType.FILE

    def open_body(self) -> BinaryIO:
        if self.opener is None:
            raise ValueError(f"Entry {self.path!r} has no readable body")
        return self.opener()


class RecursionFrontier:
    """Recursive patterns derived from matched directories, in discovery order."""

    def __init__(self) -> None:
        self.patterns: List[str] = []
        self.cursor: Optional[int] = None

    def push(self, pattern: str) -> None:
        self.cursor = len(self.patterns)
        self.patterns.append(pattern)

    @property
    def current(self) -> Optional[str]:
        if self.cursor is None:
            return None
        return self.patterns[self.cursor]

    def __len__(self) -> int:
        return len(self.patterns)

    def __iter__(self) -> Iterator[str]:
        return iter(self.patterns)


def adhoc_pattern(pattern: str) -> Optional[str]:
    """Derive the fallback recursive pattern, or None if there is none."""
    tail = RE_RECURS_TAIL.search(pattern)
    if tail is None:
        return pattern + "/**"
    if tail.group(0) == "/":
        return pattern + "**"
    if tail.group(0) in ("/*", "*"):
        return pattern + "*"
    # Already ends in ** or /**; nothing left to widen.
    return None


def _no_checkpoint() -> None:
    return None


class _SelectionEngine:
    """Shared wiring between the controller and a selection mode."""

    def __init__(self, options: SelectionOptions) -> None:
        self.options = options
        self.matcher: Optional[CompiledMatcher] = None
        self._log: Optional[ScanLog] = None
        self._checkpoint: Callable[[], None] = _no_checkpoint

    def prepare(self, log: ScanLog, checkpoint: Callable[[], None] = _no_checkpoint) -> None:
        """Bind call-scoped collaborators and compile the pattern."""
        self._log = log
        self._checkpoint = checkpoint
        if self.wants_matcher():
            self._log.debug("Requested pattern: %s", self.options.pattern)
            self.matcher = compile_pattern(self.options.pattern, self.options, log)

    def wants_matcher(self) -> bool:
        return bool(self.options.pattern)


class EntryLister(_SelectionEngine):
    """Listing mode: every selected entry path, in archive order."""

    stops_early = False

    def __init__(self, options: SelectionOptions) -> None:
        super().__init__(options)
        self.frontier = RecursionFrontier()

    def scan(self, entries: Iterable[EntryRecord]) -> List[str]:
        if self.matcher is None:
            self._log.info("No pattern given; all entries will be returned.")
        elif self.options.recursion:
            self._log.info("Recursion will be employed.")

        selected: List[str] = []
        for entry in entries:
            self._checkpoint()
            if self.accept(entry):
                selected.append(entry.path)
        return selected

    def accept(self, entry: EntryRecord) -> bool:
        if self.matcher is None:
            return True

        path = entry.path
        matcher = self.matcher
        frontier = self.frontier
        self._log.debug('Testing "%s"', path)

        if frontier.cursor is not None:
            if matcher.match_recursive(path, frontier.current):
                self._log.debug("Matched by recursion from %s", frontier.current)
                return True

        if matcher.match(path):
            # A trailing ** also matches the empty remainder, which would let
            # a directory in through its own trailing slash.
            if matcher.pattern.endswith("/**") and path.endswith("/"):
                parent = RE_DIRPARENT.match(path)
                if parent and matcher.match(parent.group(1)):
                    return True
                self._log.debug("Discarded non-recursive match %s", path)
                return False
            frontier.cursor = None
            if entry.is_dir and self.options.recursion:
                frontier.push(path + "**")
            return True

        if not self.options.recursion:
            return False
        return self._sweep(path) or self._adhoc(path)

    def _sweep(self, path: str) -> bool:
        frontier = self.frontier
        for index, pattern in enumerate(frontier.patterns):
            if index == frontier.cursor:
                frontier.cursor = None
                continue
            if self.matcher.match_recursive(path, pattern):
                self._log.debug("Matched by nonconsecutive recursion from %s", pattern)
                return True
        return False

    def _adhoc(self, path: str) -> bool:
        """Recover descendants of a directory the archive has no entry for."""
        if self.options.anchored is False:
            return False
        pattern = adhoc_pattern(self.matcher.pattern)
        if pattern is None or not self.matcher.match_recursive(path, pattern):
            return False
        # Directory hits are not accepted here, only their contents.
        if path.endswith("/"):
            self._log.debug("Discarded ad-hoc match %s", path)
            return False
        self._log.debug("Ad-hoc match %s by %s", path, pattern)
        self.frontier.push(pattern)
        return True


class EntrySeeker(_SelectionEngine):
    """Extraction mode: the body of the first file entry the pattern names."""

    stops_early = True

    def __init__(self, options: SelectionOptions, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        super().__init__(options)
        self.chunk_size = chunk_size

    def wants_matcher(self) -> bool:
        return self.options.wildcards

    def is_match(self, entry: EntryRecord) -> bool:
        if not entry.is_file:
            return False
        if self.matcher is not None:
            return self.matcher.match(entry.path)
        pattern = self.options.pattern
        if self.options.ignore_case:
            return entry.path.lower() == pattern.lower()
        return entry.path == pattern

    def scan(self, entries: Iterable[EntryRecord]) -> bytes:
        limit = self.options.max_size
        for entry in entries:
            self._checkpoint()
            if not self.is_match(entry):
                continue
            if limit is not None and entry.size > limit:
                raise SizeExceededError(limit, entry.size, pattern=entry.path)
            self._log.debug("Match found for pattern %s: %s", self.options.pattern, entry.path)
            return self.read_body(entry)
        raise NoMatchError(self.options.pattern)

    def read_body(self, entry: EntryRecord) -> bytes:
        content = bytearray(entry.size)
        offset = 0
        with entry.open_body() as body:
            while offset < entry.size:
                self._checkpoint()
                chunk = body.read(min(self.chunk_size, entry.size - offset))
                if not chunk:
                    raise TruncatedInputError(
                        f"Entry {entry.path} ended after {offset} of {entry.size} bytes"
                    )
                content[offset:offset + len(chunk)] = chunk
                offset += len(chunk)
        self._log.debug("Reached end of data for matched entry")
        return bytes(content)
