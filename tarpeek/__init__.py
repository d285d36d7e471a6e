"""tarpeek - list and read tar archive entries without unpacking.

Provides:
* tar-compatible entry selection (wildcards, globstar, recursion, anchoring)
* gzip / bzip2 / lzma / xz / naked tar input
* blocking and asyncio entry points
* Thin CLI wrapper (`tarpeek`)
"""

from ._version import __version__
from .api import list_entries, list_entries_async, read_entry, read_entry_async
from .common.errors import (  # noqa: F401
    CompressionFormatError,
    ConflictingOptionsError,
    DecompressorUnavailableError,
    InvalidArchiveError,
    InvalidArgumentError,
    InvalidOptionError,
    InvalidPatternError,
    MissingArgumentError,
    NoMatchError,
    ScanCancelledError,
    SizeExceededError,
    TarpeekError,
    TruncatedInputError,
    UnsupportedCompressionError,
)
from .common.logging_config import configure_logging  # noqa: F401

__all__ = [
    "__version__",
    "configure_logging",
    "list_entries",
    "list_entries_async",
    "read_entry",
    "read_entry_async",
    "TarpeekError",
    "InvalidArgumentError",
    "MissingArgumentError",
    "InvalidOptionError",
    "ConflictingOptionsError",
    "UnsupportedCompressionError",
    "DecompressorUnavailableError",
    "InvalidPatternError",
    "CompressionFormatError",
    "TruncatedInputError",
    "InvalidArchiveError",
    "SizeExceededError",
    "NoMatchError",
    "ScanCancelledError",
]
