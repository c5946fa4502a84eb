"""CLI commands package.

Each command is a separate module following the command pattern:

- Command class extending PSearchCommand
- Typer wrapper function for CLI integration

Commands:
- search: Rank documents for a query
- parse: Show the parsed query tree
- mark: Highlight query matches in a file
"""

from __future__ import annotations

# Import command wrappers (not classes, to avoid circular imports)
from psearch.cli.commands.mark import command as mark_command
from psearch.cli.commands.parse import command as parse_command
from psearch.cli.commands.search import command as search_command

__all__ = [
    "mark_command",
    "parse_command",
    "search_command",
]
