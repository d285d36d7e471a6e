"""Shared CLI helpers for tarpeek commands."""

import argparse
import sys
from typing import Any, Dict, Optional

from tarpeek.common.errors import (
    CompressionFormatError,
    DecompressorUnavailableError,
    InvalidArchiveError,
    InvalidArgumentError,
    InvalidOptionError,
    InvalidPatternError,
    NoMatchError,
    SizeExceededError,
    TruncatedInputError,
)
from tarpeek.constants import ExitCodes


def exit_with_error(message: str, exit_code: int) -> None:
    """Print an error message and exit with the specified code."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(exit_code)


def map_exception_to_exit_code(exc: Exception) -> Optional[int]:
    """Translate known exceptions to tarpeek exit codes."""
    if isinstance(exc, (InvalidArgumentError, InvalidOptionError, InvalidPatternError)):
        return ExitCodes.INVALID_USAGE
    if isinstance(exc, NoMatchError):
        return ExitCodes.NO_MATCH
    if isinstance(exc, SizeExceededError):
        return ExitCodes.SIZE_EXCEEDED
    if isinstance(exc, (InvalidArchiveError, TruncatedInputError,
                        CompressionFormatError, DecompressorUnavailableError)):
        return ExitCodes.BAD_ARCHIVE
    if isinstance(exc, OSError):
        return ExitCodes.FILE_ERROR
    return None


def add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the tar-style selection and compression flags."""
    parser.add_argument('--ignore-case', action='store_true',
                        help='Ignore case when matching entry names')
    parser.add_argument('--wildcards', action='store_true',
                        help='Treat the pattern as a glob')
    parser.add_argument('--no-wildcards-match-slash', dest='wildcards_match_slash',
                        action='store_false', default=None,
                        help="Wildcards do not match '/'")
    parser.add_argument('--no-recursion', dest='recursion', action='store_false', default=None,
                        help='Do not descend into matched directories')
    parser.add_argument('--no-anchored', dest='anchored', action='store_false', default=None,
                        help='Patterns match after any slash')
    parser.add_argument('--debug', nargs='?', const='verbose', default=None, metavar='LEVEL',
                        help='Emit diagnostics for this call (error, warning, info, verbose, matcher)')

    compression = parser.add_argument_group('compression')
    compression.add_argument('-z', '--gzip', action='store_true', default=None,
                             help='Filter the archive through gzip')
    compression.add_argument('-j', '--bzip2', action='store_true', default=None,
                             help='Filter the archive through bzip2')
    compression.add_argument('--lzma', action='store_true', default=None,
                             help='Filter the archive through lzma')
    compression.add_argument('-J', '--xz', action='store_true', default=None,
                             help='Filter the archive through xz')
    compression.add_argument('-I', '--use-compress-program', dest='use_compress_program',
                             metavar='PROG', help='Filter the archive through PROG')


def options_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Collect the option mapping for the API from parsed arguments."""
    keys = (
        'wildcards_match_slash', 'recursion', 'anchored', 'debug',
        'gzip', 'bzip2', 'lzma', 'xz', 'use_compress_program',
    )
    options: Dict[str, Any] = {key: getattr(args, key) for key in keys}
    options['ignore_case'] = args.ignore_case
    options['wildcards'] = args.wildcards
    return options
