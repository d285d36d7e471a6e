"""Byte-stream stages in front of the tar decoder.

* `PeekableSource` lets the sniffer look at the leading bytes without
  consuming them.
* `DecompressingReader` feeds an incremental decompressor from the source
  and exposes the result through ``read()``.
* `open_decoded_stream` picks the stage for a compression selection.
"""

from __future__ import annotations

from typing import BinaryIO, Callable, Optional, Tuple, Type

from ..common.errors import CompressionFormatError, DecompressorUnavailableError, TruncatedInputError
from ..common.logging_config import ScanLog
from ..constants import DEFAULT_CHUNK_SIZE, GZIP_MAGIC


class PeekableSource:
    """Read-only wrapper that can hand back bytes it has already read."""

    def __init__(self, raw: BinaryIO) -> None:
        self._raw = raw
        self._pending = b""

    def peek(self, size: int) -> bytes:
        while len(self._pending) < size:
            chunk = self._raw.read(size - len(self._pending))
            if not chunk:
                break
            self._pending += chunk
        return self._pending[:size]

    def read(self, size: Optional[int] = -1) -> bytes:
        if not self._pending:
            return self._raw.read(size)
        if size is None or size < 0:
            data = self._pending + self._raw.read()
            self._pending = b""
            return data
        data = self._pending[:size]
        self._pending = self._pending[size:]
        return data


DecompressorFactory = Callable[[], object]


def load_decompressor(program: str) -> Tuple[DecompressorFactory, Tuple[Type[BaseException], ...]]:
    """Return a decompressor factory and the errors it raises on bad data."""
    try:
        if program == "gzip":
            import zlib
            return (lambda: zlib.decompressobj(16 + zlib.MAX_WBITS)), (zlib.error,)
        if program == "bzip2":
            import bz2
            return bz2.BZ2Decompressor, (OSError, ValueError)
        import lzma
        container = lzma.FORMAT_ALONE if program == "lzma" else lzma.FORMAT_XZ
        return (lambda: lzma.LZMADecompressor(format=container)), (lzma.LZMAError,)
    except ImportError as exc:
        raise DecompressorUnavailableError(
            f"{program} decoding is not available in this Python build"
        ) from exc


class DecompressingReader:
    """Decompress ``source`` on demand.

    Concatenated compressed streams are decoded back to back. Data after the
    last complete stream that does not decode is ignored, the way the gzip,
    bz2 and lzma file readers of the standard library treat it.
    """

    def __init__(self, source, program: str, factory: DecompressorFactory,
                 format_errors: Tuple[Type[BaseException], ...],
                 chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._source = source
        self.program = program
        self._factory = factory
        self._format_errors = format_errors
        self._decompressor = factory()
        self._buffer = bytearray()
        self._eof = False
        self.chunk_size = chunk_size

    def read(self, size: Optional[int] = -1) -> bytes:
        if size is None or size < 0:
            parts = []
            while True:
                data = self.read(self.chunk_size)
                if not data:
                    return b"".join(parts)
                parts.append(data)

        while len(self._buffer) < size and not self._eof:
            self._fill()
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def _fill(self) -> None:
        if self._decompressor.eof:
            raw = self._decompressor.unused_data or self._source.read(self.chunk_size)
            if not raw:
                self._eof = True
                return
            self._decompressor = self._factory()
            try:
                self._buffer += self._decompressor.decompress(raw)
            except self._format_errors:
                self._eof = True
            return

        raw = self._source.read(self.chunk_size)
        if not raw:
            raise TruncatedInputError(f"{self.program}: unexpected end of file")
        try:
            self._buffer += self._decompressor.decompress(raw)
        except self._format_errors as exc:
            raise CompressionFormatError(f"{self.program}: {exc}") from exc


def sniff_compression(source: PeekableSource) -> Optional[str]:
    """Classify the stream: ``"gzip"`` on gzip magic, else None (naked tar)."""
    if source.peek(len(GZIP_MAGIC)) == GZIP_MAGIC:
        return "gzip"
    return None


def verify_gzip_magic(source: PeekableSource) -> None:
    head = source.peek(len(GZIP_MAGIC))
    if len(head) < len(GZIP_MAGIC):
        raise TruncatedInputError("File is too short")
    if head != GZIP_MAGIC:
        raise CompressionFormatError("not in gzip format")


def select_program(source: PeekableSource, compression: Optional[str]) -> Optional[str]:
    """Resolve the decompression program for ``source``.

    An explicit program is honoured; without one the sniffer decides.
    """
    if compression is None:
        return sniff_compression(source)
    if compression == "gzip":
        verify_gzip_magic(source)
    return compression


def open_decoded_stream(source: PeekableSource, program: Optional[str],
                        chunk_size: int = DEFAULT_CHUNK_SIZE,
                        log: Optional[ScanLog] = None):
    """Return a readable stream of tar bytes for ``source``."""
    if program is None:
        if log:
            log.debug("No compression detected; reading naked tar stream")
        return source
    factory, format_errors = load_decompressor(program)
    if log:
        log.debug("Attaching %s decompressor", program)
    return DecompressingReader(source, program, factory, format_errors, chunk_size)
