"""
Centralized Exception Hierarchy for psearch.

This module defines all custom exceptions used throughout psearch.
All exceptions inherit from PSearchError for easy catching.

Each exception includes:
- user_message: Human-readable description of what went wrong
- why_it_happened: Explanation of the root cause
- how_to_fix: Actionable steps to resolve the issue
- error_code: Unique identifier for documentation lookup (e.g., "PS-QRY-001")

Usage
-----
    from psearch.core.exceptions import ParseError, PSearchError

    try:
        node = parser.parse(query)
    except ParseError as e:
        logger.error(f"Bad query: {e}")
    except PSearchError as e:
        logger.error(f"psearch error: {e}")

Exception Hierarchy
-------------------
    PSearchError (base)
    ├── QueryError
    │   ├── ParseError
    │   └── EmptyTermError
    ├── SourceError
    │   ├── MissingArgumentError
    │   └── SourceFailure
    ├── StaleGenerationError
    └── ConfigurationError

Design Principles
-----------------
1. All exceptions inherit from PSearchError
2. Query errors are fatal to the single query string and always reported
3. A failing source never aborts a query; it is recorded as SourceFailure
4. Every exception provides "why" and "how to fix" guidance
"""

from typing import Any, Dict, List, Optional


def get_root_cause(exc: BaseException) -> BaseException:
    """Extract the root cause from a chain of exceptions.

    Follows nested __cause__ and __context__ attributes to find
    the original error that started the chain.

    Args:
        exc: Exception to analyze

    Returns:
        Root cause exception (may be the same as input)
    """
    seen = set()
    current = exc

    while current is not None:
        if id(current) in seen:
            break
        seen.add(id(current))

        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__context__ is not None:
            current = current.__context__
        else:
            break

    return current


class PSearchError(Exception):
    """
    Base exception for all psearch errors.

    Example
    -------
        try:
            await session.run_query("fox bear~")
        except PSearchError as e:
            print(f"Fix: {e.how_to_fix}")
    """

    error_code: str = "PS-ERR-000"
    why_it_happened: str = "An unexpected error occurred"
    how_to_fix: List[str] = ["Check the error message for details"]

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        """Initialize PSearchError with helpful information.

        Args:
            message: Human-readable error message
            error_code: Unique identifier (e.g., "PS-QRY-001")
            why_it_happened: Explanation of root cause
            how_to_fix: List of actionable fix suggestions
        """
        super().__init__(message)

        if error_code is not None:
            self.error_code = error_code
        if why_it_happened is not None:
            self.why_it_happened = why_it_happened
        if how_to_fix is not None:
            self.how_to_fix = how_to_fix

    @property
    def user_message(self) -> str:
        """Get the user-friendly error message."""
        return str(self)

    def get_root_cause(self) -> BaseException:
        """Get the root cause of this exception chain."""
        return get_root_cause(self)


# ============================================================================
# Query Exceptions
# ============================================================================


class QueryError(PSearchError):
    """Base exception for problems with a single query string."""

    error_code = "PS-QRY-000"
    why_it_happened = "The query could not be interpreted"
    how_to_fix = ["Check the query syntax"]


class ParseError(QueryError):
    """
    Raised when a query string does not follow the query grammar.

    Carries the offending token text (if any) and its position in the
    query string. For an unmatched quote the position is the one of the
    opening quote.

    Example
    -------
        QueryParser().parse('"unterminated')
        # Raises: ParseError("Unmatched quote starting at position 0")
    """

    error_code = "PS-QRY-001"
    why_it_happened = (
        "The query contains an operator or character sequence the grammar "
        "does not accept at that position"
    )
    how_to_fix = [
        'Close every double quote: "exact phrase"',
        "Only use # directly before a single term: #regex.*",
        "Group bare words only inside parentheses: (fox bear)~",
    ]

    def __init__(
        self,
        message: str,
        *,
        token: Optional[str] = None,
        position: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.token = token
        self.position = position


class EmptyTermError(QueryError):
    """Raised when a blank term is handed to term expansion."""

    error_code = "PS-QRY-002"
    why_it_happened = "Term expansion was called with an empty or blank term"
    how_to_fix = ["Strip blank tokens before expanding terms"]


# ============================================================================
# Source Exceptions
# ============================================================================


class SourceError(PSearchError):
    """Base exception for document source problems."""

    error_code = "PS-SRC-000"
    why_it_happened = "A document source could not complete a request"
    how_to_fix = ["Check the source configuration"]


class MissingArgumentError(SourceError):
    """
    Raised when a source or prior lacks a required input.

    Surfaced before any computation starts.
    """

    error_code = "PS-SRC-001"
    why_it_happened = "A required argument for a document source was not supplied"
    how_to_fix = [
        "Pass every argument listed in the source's required_args",
        "Check the paths given on the command line",
    ]

    def __init__(self, source: str, argument: str) -> None:
        super().__init__(f"Source '{source}' is missing required argument '{argument}'")
        self.source = source
        self.argument = argument


class SourceFailure(SourceError):
    """
    A document source call errored, timed out or its subprocess failed.

    Never propagated out of a query: the engine records it, logs it and
    continues with the remaining sources.
    """

    error_code = "PS-SRC-002"
    why_it_happened = "A document source failed while counting term matches"
    how_to_fix = [
        "Re-run with --debug to see the underlying error",
        "Increase sources.timeout_seconds for slow sources",
    ]

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Source '{source}' failed: {reason}")
        self.source = source
        self.reason = reason


# ============================================================================
# Session / Configuration Exceptions
# ============================================================================


class StaleGenerationError(PSearchError):
    """Raised internally when a result arrives for a superseded generation."""

    error_code = "PS-SES-001"
    why_it_happened = "The session was restarted while this computation was running"
    how_to_fix = ["Nothing to do; the newer computation supersedes this one"]

    def __init__(self, generation: int, current: int) -> None:
        super().__init__(
            f"Result for generation {generation} discarded (current {current})"
        )
        self.generation = generation
        self.current = current


class ConfigurationError(PSearchError):
    """Raised when configuration values are invalid."""

    error_code = "PS-CFG-001"
    why_it_happened = "A configuration value is out of range or malformed"
    how_to_fix = [
        "Check psearch.yaml against the documented defaults",
        "Unset PSEARCH_* environment variables to fall back to defaults",
    ]


# ============================================================================
# Standard Exception Info
# ============================================================================

STANDARD_ERROR_INFO: Dict[type, Dict[str, Any]] = {
    FileNotFoundError: {
        "error_code": "PS-FILE-001",
        "why_it_happened": "The specified file or directory could not be found",
        "how_to_fix": [
            "Check that the path is correct",
            "Use an absolute path if the working directory is unclear",
        ],
    },
    PermissionError: {
        "error_code": "PS-FILE-002",
        "why_it_happened": "You don't have permission to read this file or directory",
        "how_to_fix": [
            "Check file permissions: ls -la <file>",
            "Search a directory you own",
        ],
    },
    ValueError: {
        "error_code": "PS-ARG-001",
        "why_it_happened": "An option or argument has a value outside its range",
        "how_to_fix": ["Check the option values with --help"],
    },
}


def get_error_info(exc: BaseException) -> Dict[str, Any]:
    """Get helpful error information for any exception.

    Looks up the exception type in STANDARD_ERROR_INFO or extracts
    info from PSearchError subclasses.

    Args:
        exc: Exception to get info for

    Returns:
        Dict with error_code, why_it_happened, how_to_fix
    """
    if isinstance(exc, PSearchError):
        return {
            "error_code": exc.error_code,
            "why_it_happened": exc.why_it_happened,
            "how_to_fix": exc.how_to_fix,
        }

    for parent_type, info in STANDARD_ERROR_INFO.items():
        if isinstance(exc, parent_type):
            return info

    return {
        "error_code": "PS-ERR-999",
        "why_it_happened": "An unexpected error occurred",
        "how_to_fix": [
            "Check the error message for details",
            "Re-run with --debug to see the traceback",
        ],
    }
