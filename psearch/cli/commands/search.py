"""Search command - Rank documents for a query.

Runs the query over the given paths, folds it into the posterior engine
and prints one page of the ranking.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.table import Table

from psearch.cli.console import ErrorRenderer, tip
from psearch.cli.core import PSearchCommand
from psearch.core.types import DEFAULT_KEY
from psearch.posterior import PosteriorEngine
from psearch.retrieval.session import Session
from psearch.sources.base import NAME


class SearchCommand(PSearchCommand):
    """Rank documents below the given paths."""

    def execute(
        self,
        query: str,
        paths: Optional[List[str]] = None,
        page: int = 0,
        page_size: Optional[int] = None,
        field: Optional[str] = None,
        no_expand: bool = False,
        ripgrep: bool = False,
        config_file: Optional[Path] = None,
        debug: bool = False,
    ) -> int:
        """Execute a ranked search.

        Args:
            query: Query string
            paths: Files or directories (current directory when empty)
            page: Zero-based page to show
            page_size: Results per page (config value when omitted)
            field: Only count matches inside this field
            no_expand: Disable camel/snake/kebab term expansion
            ripgrep: Use ripgrep for listing and counting
            config_file: Explicit configuration file
            debug: Show tracebacks and debug logs

        Returns:
            0 on success, 1 on error
        """
        try:
            if page < 0:
                raise ValueError("--page cannot be negative")
            config = self.load_config(config_file, debug)
            if no_expand:
                config.query.expand_terms = False

            session = self.build_session(paths or ["."], config, ripgrep)
            engine = asyncio.run(session.rank(query, field_filter=field))
            size = page_size or config.posterior.page_size

            self._report_failures(session)
            self._display_page(session, engine, page, size)
            return 0

        except Exception as e:
            return self.handle_error(e, "Search failed")

    def _report_failures(self, session: Session) -> None:
        for failure in session.failures:
            ErrorRenderer.render_warning(
                f"Source '{failure.source}' failed: {failure.reason}",
                "Results may be incomplete",
                console=self.console,
            )

    def _display_page(
        self, session: Session, engine: PosteriorEngine, page: int, size: int
    ) -> None:
        """Print one page of the ranking as a table."""
        rows = engine.page(page, size)
        if not rows:
            self.print_info(f"No results on page {page}")
            return

        query_scores = engine.priors["query"].scores
        if not any(key != DEFAULT_KEY for key in query_scores):
            self.print_warning("No document matched the query")

        table = Table(title=f"Page {page + 1} of {engine.page_count(size)}")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Probability", justify="right", style="cyan")
        table.add_column("Document", style="green")

        for offset, (doc_id, _posterior) in enumerate(rows):
            name = session.registry.get_property(doc_id, NAME) or doc_id
            table.add_row(
                str(page * size + offset + 1),
                f"{engine.relative(doc_id):.4f}",
                str(name),
            )
        self.console.print(table)

        if page + 1 < engine.page_count(size):
            tip(f"Use --page {page + 1} to see the next results")


def command(
    query: str = typer.Argument(..., help="Query string"),
    paths: Optional[List[str]] = typer.Argument(
        None, help="Files or directories to search (default: current directory)"
    ),
    page: int = typer.Option(0, "--page", "-p", help="Zero-based page number"),
    page_size: Optional[int] = typer.Option(
        None, "--page-size", "-n", help="Results per page", min=1
    ),
    field: Optional[str] = typer.Option(
        None, "--field", "-f", help="Only count matches inside this field"
    ),
    no_expand: bool = typer.Option(
        False, "--no-expand", help="Disable camelCase/snake_case term expansion"
    ),
    ripgrep: bool = typer.Option(
        False, "--ripgrep", "--rg", help="Use ripgrep to list and count matches"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file"
    ),
    debug: bool = typer.Option(False, "--debug", help="Show debug logs"),
) -> None:
    """Rank documents by how probably they match a query.

    Query syntax:
        foo bar        either term, ranked by BM25
        +foo -bar      foo required, bar excluded
        !foo           foo lowers the score
        foo^  foo^2    boost by the default factor or by 2
        (foo bar)      both foo and bar
        (foo bar)~     foo and bar within a few lines
        foo~           proximity marker on a single term
        "Foo Bar"      exact, case-sensitive literal
        #fo+           regular expression

    Examples:
        # Search the current directory
        psearch search "parseQuery"

        # Second page of a search in src/
        psearch search "+session -test" src --page 1

        # Use ripgrep for large trees
        psearch search "(cache generation)~" . --ripgrep
    """
    cmd = SearchCommand()
    exit_code = cmd.execute(
        query,
        paths,
        page,
        page_size,
        field,
        no_expand,
        ripgrep,
        config_file,
        debug,
    )
    if exit_code != 0:
        raise typer.Exit(code=exit_code)
