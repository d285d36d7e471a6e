"""Entry listing command for the tarpeek CLI."""

from tarpeek.api import list_entries
from tarpeek.cli_helpers import (
    add_selection_arguments,
    exit_with_error,
    map_exception_to_exit_code,
    options_from_args,
)
from tarpeek.constants import ExitCodes


class ListCommand:
    """Handles `tarpeek list`."""

    @staticmethod
    def add_parser(subparsers) -> None:
        """Add list command parser to subparsers."""
        parser = subparsers.add_parser('list', help='List archive entries')
        parser.add_argument('archive', help='Path to the tar archive')
        parser.add_argument('pattern', nargs='?', help='Only list entries selected by this pattern')
        add_selection_arguments(parser)
        parser.set_defaults(func=ListCommand.execute)

    @staticmethod
    def execute(args) -> None:
        """List the selected entries, one per line."""
        options = options_from_args(args)
        options['pattern'] = args.pattern
        try:
            entries = list_entries(args.archive, options)
        except Exception as exc:
            exit_code = map_exception_to_exit_code(exc)
            if exit_code is None:
                exit_code = ExitCodes.FAILURE
            exit_with_error(str(exc), exit_code)
            return

        for path in entries:
            print(path)
