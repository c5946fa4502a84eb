"""Base class for all CLI commands.

Every command is a class with an ``execute()`` returning an exit code
plus a thin typer wrapper in its module. Shared setup (configuration,
logging and the search session) lives here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional, Sequence

from rich.console import Console

from psearch.cli.console import ErrorRenderer, set_verbose_mode
from psearch.core.config import Config
from psearch.core.config_loaders import load_config
from psearch.core.logging import configure_logging
from psearch.retrieval.session import Session
from psearch.sources import DocumentSource, FileSystemSource, RipgrepSource
from psearch.sources.filesystem import existing_paths


class PSearchCommand(ABC):
    """Abstract base class for all psearch CLI commands.

    Provides common functionality:
    - Console output
    - Error handling via ErrorRenderer
    - Configuration, logging and session setup

    Example:
        class MyCommand(PSearchCommand):
            def execute(self, query: str) -> int:
                session = self.build_session(["."], self.load_config())
                return 0
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize command.

        Args:
            console: Rich console (for testing, inject a recording console)
        """
        self.console = console or Console()

    @abstractmethod
    def execute(self, *args: Any, **kwargs: Any) -> int:
        """Execute the command.

        Returns:
            Exit code (0 = success, non-zero = error)
        """

    # === Setup ===

    def load_config(
        self, config_file: Optional[Path] = None, debug: bool = False
    ) -> Config:
        """Load configuration and apply its logging section.

        Args:
            config_file: Explicit YAML file; psearch.yaml in cwd otherwise
            debug: Force DEBUG logging and tracebacks
        """
        config = load_config(config_file)
        if debug:
            set_verbose_mode(True)
            configure_logging("DEBUG")
        else:
            log_file = Path(config.logging.file) if config.logging.file else None
            configure_logging(config.logging.level, log_file=log_file)
        return config

    def build_session(
        self, paths: Sequence[str], config: Config, ripgrep: bool = False
    ) -> Session:
        """Create a session over the given paths.

        Missing paths are reported and skipped.

        Args:
            paths: Files or directories to search
            config: Loaded configuration
            ripgrep: Count matches with ripgrep instead of reading files

        Raises:
            FileNotFoundError: If none of the paths exist
        """
        found = existing_paths(paths)
        for missing in sorted(set(paths) - set(found)):
            self.print_warning(f"Path not found, skipping: {missing}")
        if not found:
            raise FileNotFoundError(f"No such file or directory: {', '.join(paths)}")

        sources: List[DocumentSource] = []
        if ripgrep:
            sources.append(RipgrepSource(found, config.sources))
        else:
            sources.append(FileSystemSource(found, config.sources))
        return Session(sources, config)

    # === Output Methods ===

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow][WARN][/yellow] {message}")

    def print_info(self, message: str) -> None:
        self.console.print(f"[blue][INFO][/blue] {message}")

    # === Error Handling ===

    def handle_error(self, error: Exception, context: str = "") -> int:
        """Render the error and return an exit code.

        Does not exit - returns exit code for caller to decide.

        Returns:
            Exit code (1 for error)
        """
        ErrorRenderer.render(error, context, console=self.console)
        return 1
