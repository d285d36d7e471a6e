"""Registry for CLI subcommands."""

from .cat_command import CatCommand
from .list_command import ListCommand

COMMANDS = (
    ListCommand,
    CatCommand,
)

__all__ = ["COMMANDS", "ListCommand", "CatCommand"]
