"""
Command Line Interface for tarpeek.

Provides CLI commands for listing and reading tar archive entries.
"""

import argparse
import sys
from typing import List, Optional

from ._version import __version__
from .cli_commands import COMMANDS
from .common.config import TarpeekSettings
from .common.logging_config import configure_logging, get_logger
from .constants import ExitCodes


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog='tarpeek',
        description='List and read tar archive entries without unpacking'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    for command in COMMANDS:
        command.add_parser(subparsers)

    return parser


def main(args: Optional[List[str]] = None) -> None:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)
    """
    parser = create_parser()

    if args is None:
        args = sys.argv[1:]

    # If no arguments provided, show help
    if not args:
        parser.print_help()
        sys.exit(ExitCodes.OK)

    parsed_args = parser.parse_args(args)
    settings = TarpeekSettings.from_env()
    configure_logging('DEBUG' if getattr(parsed_args, 'debug', None) else settings.log_level)
    get_logger(__name__).debug("Parsed arguments: %s", parsed_args)

    if hasattr(parsed_args, 'func'):
        parsed_args.func(parsed_args)
    else:
        parser.print_help()
        sys.exit(ExitCodes.OK)


if __name__ == '__main__':
    main()
