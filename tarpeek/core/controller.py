"""Resource controller for a single archive scan.

An `ArchiveScan` owns the archive file handle for one call. It drives the
stages in order (open, sniff, decompress, decode, select), records the
first result or error in an `Outcome`, and closes the file exactly once on
every exit path.
"""

from __future__ import annotations

import enum
import logging
import tarfile
import threading
from typing import Any, BinaryIO, Iterator, Optional

from ..common.config import SelectionOptions, TarpeekSettings
from ..common.errors import (
    InvalidArchiveError,
    ScanCancelledError,
    TarpeekError,
    TruncatedInputError,
)
from ..common.logging_config import ScanLog, get_logger, level_from_name
from .selection import EntryRecord, EntryType
from .streams import PeekableSource, open_decoded_stream, select_program


class ScanState(enum.Enum):
    IDLE = "idle"
    SNIFFING = "sniffing"
    DECOMPRESSING = "decompressing"
    SCANNING = "scanning"
    MATCHED = "matched"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
    CLOSED = "closed"


_TRANSITIONS = {
    ScanState.IDLE: {ScanState.SNIFFING, ScanState.FAILED, ScanState.CLOSED},
    ScanState.SNIFFING: {ScanState.DECOMPRESSING, ScanState.SCANNING, ScanState.FAILED, ScanState.CLOSED},
    ScanState.DECOMPRESSING: {ScanState.SCANNING, ScanState.FAILED, ScanState.CLOSED},
    ScanState.SCANNING: {ScanState.MATCHED, ScanState.EXHAUSTED, ScanState.FAILED, ScanState.CLOSED},
    ScanState.MATCHED: {ScanState.CLOSED},
    ScanState.EXHAUSTED: {ScanState.CLOSED},
    ScanState.FAILED: {ScanState.CLOSED},
    ScanState.CLOSED: set(),
}


class Outcome:
    """Settle-once result cell.

    The first call to `succeed` or `fail` wins. Later errors are logged and
    dropped so a late stream event cannot overwrite a delivered result.
    """

    def __init__(self, log: Optional[ScanLog] = None) -> None:
        self._lock = threading.Lock()
        self._settled = False
        self._value: Any = None
        self._error: Optional[BaseException] = None
        self._log = log

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def succeed(self, value: Any) -> bool:
        with self._lock:
            if self._settled:
                return False
            self._settled = True
            self._value = value
            return True

    def fail(self, error: BaseException) -> bool:
        with self._lock:
            if not self._settled:
                self._settled = True
                self._error = error
                return True
        if self._log:
            self._log.warning("Outcome already settled; ignoring later error: %s", error)
        return False

    def result(self) -> Any:
        with self._lock:
            if not self._settled:
                raise RuntimeError("Outcome has not been settled")
            if self._error is not None:
                raise self._error
            return self._value


class StrictTarInfo(tarfile.TarInfo):
    """TarInfo that reports header faults instead of ending the archive.

    `tarfile` treats a bad header after the first member as the end of the
    archive. A malformed record makes every later offset unreliable, so it
    is surfaced as an error here. An empty stream, on the other hand, is an
    archive without entries, as it is for tar.
    """

    @classmethod
    def frombuf(cls, buf, encoding, errors):
        try:
            return super().frombuf(buf, encoding, errors)
        except tarfile.EmptyHeaderError as exc:
            raise tarfile.EOFHeaderError("end of file header") from exc
        except tarfile.TruncatedHeaderError as exc:
            raise TruncatedInputError("Tar header is truncated") from exc
        except tarfile.InvalidHeaderError as exc:
            raise InvalidArchiveError("Invalid entry for a tar archive") from exc


def _debug_threshold(debug: Optional[str]) -> int:
    if debug is None:
        return logging.WARNING
    if debug == "matcher":
        return logging.DEBUG
    return level_from_name(debug, logging.DEBUG)


class ArchiveScan:
    """One list or read call against one archive."""

    def __init__(self, archive_path: str, options: SelectionOptions,
                 settings: Optional[TarpeekSettings] = None) -> None:
        self.archive_path = archive_path
        self.options = options
        self.settings = settings or TarpeekSettings.from_env()
        self.log = ScanLog(
            get_logger("tarpeek.scan"),
            threshold=_debug_threshold(options.debug),
            archive_path=archive_path,
        )
        self.state = ScanState.IDLE
        self.history = [ScanState.IDLE]
        self.outcome = Outcome(self.log)
        self.program: Optional[str] = None
        self._source: Optional[BinaryIO] = None
        self._release_lock = threading.Lock()
        self._cancelled = threading.Event()

    @property
    def source_open(self) -> bool:
        return self._source is not None

    def _transition(self, state: ScanState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal scan transition {self.state.name} -> {state.name}")
        self.log.debug("State %s -> %s", self.state.name, state.name)
        self.state = state
        self.history.append(state)

    def cancel(self) -> None:
        """Ask the scan to stop at the next entry or body chunk.

        Safe to call from any thread; the scanning thread performs the
        release itself.
        """
        self._cancelled.set()

    def checkpoint(self) -> None:
        if self._cancelled.is_set():
            raise ScanCancelledError("Scan cancelled", path=self.archive_path)

    def run(self, engine) -> Any:
        """Run ``engine`` over the archive and return its result.

        Raises the first error recorded by any stage.
        """
        if self.state is not ScanState.IDLE:
            raise RuntimeError("ArchiveScan instances are single-use")
        if self.options.unknown_keys:
            self.log.warning("Invalid option(s) given: %s", ", ".join(self.options.unknown_keys))

        try:
            engine.prepare(self.log, self.checkpoint)
            result = self._scan(engine)
        except Exception as exc:
            self._fail(exc)
        else:
            self.outcome.succeed(result)
        finally:
            self.release()
            self._transition(ScanState.CLOSED)
        return self.outcome.result()

    def _scan(self, engine) -> Any:
        self.checkpoint()
        self._open_source()
        self._transition(ScanState.SNIFFING)
        source = PeekableSource(self._source)
        self.program = select_program(source, self.options.compression)
        if self.program:
            self._transition(ScanState.DECOMPRESSING)
        stream = open_decoded_stream(source, self.program, self.settings.chunk_size, self.log)

        self._transition(ScanState.SCANNING)
        with tarfile.open(fileobj=stream, mode="r|", tarinfo=StrictTarInfo) as tar:
            result = engine.scan(self._entries(tar))
        self._transition(ScanState.MATCHED if engine.stops_early else ScanState.EXHAUSTED)
        return result

    def _open_source(self) -> None:
        try:
            self._source = open(self.archive_path, "rb")
        except OSError as exc:
            if exc.filename is None:
                exc.filename = self.archive_path
            raise
        self.log.debug("Opened source")

    def _entries(self, tar: tarfile.TarFile) -> Iterator[EntryRecord]:
        for member in tar:
            yield self._record(tar, member)

    @staticmethod
    def _record(tar: tarfile.TarFile, member: tarfile.TarInfo) -> EntryRecord:
        if member.isdir():
            # tarfile strips the trailing slash from directory names.
            return EntryRecord(member.name.rstrip("/") + "/", EntryType.DIRECTORY, member.size)
        if member.isfile():
            return EntryRecord(member.name, EntryType.FILE, member.size,
                               opener=lambda: tar.extractfile(member))
        return EntryRecord(member.name, EntryType.OTHER, member.size)

    def _normalize(self, exc: Exception) -> Exception:
        if isinstance(exc, tarfile.ReadError):
            message = str(exc)
            if "unexpected end of data" in message:
                normalized: Exception = TruncatedInputError(message, path=self.archive_path)
            else:
                normalized = InvalidArchiveError(f"Invalid tar archive: {message}", path=self.archive_path)
            normalized.__cause__ = exc
            return normalized
        if isinstance(exc, TarpeekError) and exc.path is None:
            exc.path = self.archive_path
        elif isinstance(exc, OSError) and exc.filename is None:
            exc.filename = self.archive_path
        return exc

    def _fail(self, exc: Exception) -> None:
        error = self._normalize(exc)
        if ScanState.FAILED in _TRANSITIONS[self.state]:
            self._transition(ScanState.FAILED)
        self.log.info("Scan failed: %s", error)
        self.outcome.fail(error)

    def release(self) -> None:
        """Close the archive file. Calling it again is a no-op."""
        with self._release_lock:
            source, self._source = self._source, None
        if source is None:
            return
        self.log.debug("Releasing source")
        source.close()
