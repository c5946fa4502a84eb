"""Mark command - Highlight query matches in a file.

Every positive term of the query (expanded the same way a search
expands it) is highlighted in the file's text.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.text import Text

from psearch.cli.core import PSearchCommand
from psearch.retrieval.session import Session, text_match_finder
from psearch.sources.filesystem import read_text

HIGHLIGHT_STYLE = "bold black on yellow"


class MarkCommand(PSearchCommand):
    """Print a file with query matches highlighted."""

    def execute(
        self,
        query: str,
        file: Path,
        no_expand: bool = False,
        config_file: Optional[Path] = None,
        debug: bool = False,
    ) -> int:
        """Execute marking.

        Args:
            query: Query string
            file: Text file to mark
            no_expand: Disable camel/snake/kebab term expansion
            config_file: Explicit configuration file
            debug: Show tracebacks and debug logs

        Returns:
            0 on success, 1 on error
        """
        try:
            config = self.load_config(config_file, debug)
            if no_expand:
                config.query.expand_terms = False

            if not file.is_file():
                raise FileNotFoundError(f"No such file: {file}")
            text = read_text(str(file))

            ranges = Session(config=config).mark_query(query, text_match_finder(text))
            highlighted = Text(text)
            for start, end in ranges:
                highlighted.stylize(HIGHLIGHT_STYLE, start, end)

            self.console.print(highlighted, highlight=False)
            self.print_info(f"{len(ranges)} match range(s) in {file}")
            return 0

        except Exception as e:
            return self.handle_error(e, "Mark failed")


def command(
    query: str = typer.Argument(..., help="Query string"),
    file: Path = typer.Argument(..., help="Text file to mark"),
    no_expand: bool = typer.Option(
        False, "--no-expand", help="Disable camelCase/snake_case term expansion"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file"
    ),
    debug: bool = typer.Option(False, "--debug", help="Show debug logs"),
) -> None:
    """Highlight the ranges a query matches in a file.

    Examples:
        psearch mark "parseQuery" src/parser.py
    """
    cmd = MarkCommand()
    exit_code = cmd.execute(query, file, no_expand, config_file, debug)
    if exit_code != 0:
        raise typer.Exit(code=exit_code)
