"""
Constants and exit codes for tarpeek.
"""

import sys

# Compression programs accepted by name, in the order tar documents them.
SUPPORTED_COMPRESSION_PROGRAMS = ('bzip2', 'gzip', 'lzma', 'xz')

GZIP_MAGIC = b'\x1f\x8b'

DEFAULT_CHUNK_SIZE = 64 * 1024

# Largest buffer a single extraction may allocate; larger `max_size`
# values are treated as "no limit".
MAX_BUFFER_SIZE = sys.maxsize


class ExitCodes:
    """Exit codes for different error conditions."""
    OK = 0
    FAILURE = 1
    INVALID_USAGE = 2
    NO_MATCH = 3
    SIZE_EXCEEDED = 4
    BAD_ARCHIVE = 5
    FILE_ERROR = 6
