"""
Custom exception classes for tarpeek.

Every error carries a ``kind`` string so callers can branch on the failure
class without importing each exception type.
"""

from typing import Optional


class TarpeekError(Exception):
    """Base exception class for tarpeek errors."""

    kind = "Error"

    def __init__(self, message: str = "", *, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class InvalidArgumentError(TarpeekError, TypeError):
    """Raised when a required call argument has the wrong type."""
    kind = "InvalidArgument"


class MissingArgumentError(InvalidArgumentError):
    """Raised when a required call argument is missing or empty."""
    pass


class InvalidOptionError(TarpeekError, ValueError):
    """Raised when a recognized option is given a value of the wrong shape."""
    kind = "InvalidOption"


class ConflictingOptionsError(InvalidOptionError):
    """Raised when more than one compression selector is supplied."""
    kind = "ConflictingOptions"


class UnsupportedCompressionError(InvalidOptionError):
    """Raised when the named compression program is not supported."""
    kind = "UnsupportedCompression"


class DecompressorUnavailableError(TarpeekError):
    """Raised when the decompressor module for a program cannot be loaded."""
    kind = "DecompressorUnavailable"


class InvalidPatternError(TarpeekError, ValueError):
    """Raised when a pattern cannot be compiled into a matcher."""

    kind = "InvalidPattern"

    def __init__(self, pattern: str, *, path: Optional[str] = None) -> None:
        super().__init__(f"Invalid match pattern {pattern!r}", path=path)
        self.pattern = pattern


class CompressionFormatError(TarpeekError):
    """Raised when the decompression stage rejects the stream contents."""
    kind = "CompressionFormatError"


class TruncatedInputError(TarpeekError):
    """Raised when the stream ends before decompression or parsing completes."""
    kind = "TruncatedInput"


class InvalidArchiveError(TarpeekError):
    """Raised when the tar decoder meets a structurally invalid record."""
    kind = "InvalidArchive"


class SizeExceededError(TarpeekError):
    """Raised when the matched entry is larger than the caller allows."""

    kind = "SizeExceeded"

    def __init__(self, limit: int, actual: int, *, pattern: Optional[str] = None,
                 path: Optional[str] = None) -> None:
        super().__init__(f"Limit of {limit} bytes exceeded ({actual})", path=path)
        self.limit = limit
        self.actual = actual
        self.pattern = pattern


class NoMatchError(TarpeekError):
    """Raised when extraction finds no entry satisfying the pattern."""

    kind = "NoMatch"

    def __init__(self, pattern: str, *, path: Optional[str] = None) -> None:
        super().__init__(f"No match for {pattern} in archive", path=path)
        self.pattern = pattern


class ScanCancelledError(TarpeekError):
    """Raised when a scan is cancelled before it settles."""
    kind = "Cancelled"
