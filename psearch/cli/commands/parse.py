"""Parse command - Show how a query is understood.

Prints the parsed query tree and its canonical query string, without
touching any document.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.panel import Panel
from rich.pretty import Pretty
from rich.text import Text

from psearch.cli.core import PSearchCommand
from psearch.query.parser import QueryParser


class ParseCommand(PSearchCommand):
    """Parse a query and display its tree."""

    def execute(
        self,
        query: str,
        config_file: Optional[Path] = None,
        debug: bool = False,
    ) -> int:
        try:
            config = self.load_config(config_file, debug)
            parser = QueryParser(config.query.default_boost)
            node = parser.parse(query)

            self.console.print(Panel(Pretty(node), title="Query tree"))
            canonical = parser.to_query_string(node)
            self.console.print(Text.assemble("Canonical: ", (canonical, "bold")))
            return 0

        except Exception as e:
            return self.handle_error(e, "Parse failed")


def command(
    query: str = typer.Argument(..., help="Query string"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file"
    ),
    debug: bool = typer.Option(False, "--debug", help="Show debug logs"),
) -> None:
    """Show the parsed form of a query.

    Examples:
        psearch parse '+foo (bar baz)~ -"Qux"'
    """
    cmd = ParseCommand()
    exit_code = cmd.execute(query, config_file, debug)
    if exit_code != 0:
        raise typer.Exit(code=exit_code)
