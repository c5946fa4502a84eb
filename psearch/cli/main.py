"""psearch CLI - Main application entry point.

Registers the commands and wraps each of them with a last-resort error
handler so no raw traceback reaches the user unless --debug is given.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable

import typer

from psearch.cli.commands import mark_command, parse_command, search_command
from psearch.cli.console import ErrorRenderer
from psearch.core.logging import get_logger

logger = get_logger(__name__)


def _handle_cli_error(e: Exception, operation_name: str, show_debug: bool) -> None:
    """
    Handle CLI error with user-friendly formatting.

    JPL Rule #7: No return value (side effects only).

    Args:
        e: The exception that occurred
        operation_name: Human-readable operation name
        show_debug: Whether to show the traceback
    """
    ErrorRenderer.render(e, f"Error during {operation_name}", show_traceback=show_debug)
    logger.error(
        "Command failed", operation=operation_name, error=f"{type(e).__name__}: {e}"
    )


def safe_cli_command(
    operation_name: str,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator to wrap CLI commands with user-friendly error handling.

    ``typer.Exit`` passes through untouched; any other exception is
    rendered and turned into exit code 1.

    Args:
        operation_name: Human-readable operation name for error context

    Returns:
        Decorator function that wraps the command with error handling
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except typer.Exit:
                raise
            except Exception as e:
                show_debug = kwargs.get("debug", False)
                _handle_cli_error(e, operation_name, show_debug)
                raise typer.Exit(code=1)

        return wrapper

    return decorator


# Create main Typer application
app = typer.Typer(
    name="psearch",
    help="Probabilistic multi-source document search",
    add_completion=True,
    pretty_exceptions_enable=True,
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit"
    ),
) -> None:
    """psearch - rank documents by the probability that they match a query."""
    if version:
        from psearch import __version__

        typer.echo(f"psearch {__version__}")
        raise typer.Exit()

    # If no command provided, show help
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


app.command("search", rich_help_panel="Search")(
    safe_cli_command("search")(search_command)
)
app.command("mark", rich_help_panel="Search")(safe_cli_command("mark")(mark_command))
app.command("parse", rich_help_panel="Query")(safe_cli_command("parse")(parse_command))


def cli_main() -> None:
    """Entry point for console_scripts.

    This function is called when running the 'psearch' command.
    """
    app()


if __name__ == "__main__":
    cli_main()
