"""Entry extraction command for the tarpeek CLI."""

import sys
from pathlib import Path

from tarpeek.api import read_entry
from tarpeek.cli_helpers import (
    add_selection_arguments,
    exit_with_error,
    map_exception_to_exit_code,
    options_from_args,
)
from tarpeek.constants import ExitCodes


class CatCommand:
    """Handles `tarpeek cat`."""

    @staticmethod
    def add_parser(subparsers) -> None:
        """Add cat command parser to subparsers."""
        parser = subparsers.add_parser('cat', help='Write the contents of one archive entry')
        parser.add_argument('archive', help='Path to the tar archive')
        parser.add_argument('entry', help='Entry path (a glob with --wildcards)')
        parser.add_argument('--max-size', dest='max_size', type=int,
                            help='Refuse entries larger than this many bytes')
        parser.add_argument('-o', '--output', help='Write to this file instead of stdout')
        add_selection_arguments(parser)
        parser.set_defaults(func=CatCommand.execute)

    @staticmethod
    def execute(args) -> None:
        """Read the entry and write it out."""
        options = options_from_args(args)
        options['max_size'] = args.max_size
        try:
            data = read_entry(args.archive, args.entry, options)
        except Exception as exc:
            exit_code = map_exception_to_exit_code(exc)
            if exit_code is None:
                exit_code = ExitCodes.FAILURE
            exit_with_error(str(exc), exit_code)
            return

        if args.output:
            Path(args.output).write_bytes(data)
        else:
            sys.stdout.buffer.write(data)
            sys.stdout.flush()
