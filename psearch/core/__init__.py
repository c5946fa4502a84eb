"""
Core layer for psearch: logging, exceptions, configuration and shared types.

    from psearch.core import get_logger, PSearchError, Config
"""

from psearch.core.config import Config
from psearch.core.exceptions import (
    ConfigurationError,
    EmptyTermError,
    MissingArgumentError,
    ParseError,
    PSearchError,
    QueryError,
    SourceError,
    SourceFailure,
    StaleGenerationError,
)
from psearch.core.logging import QueryLogger, configure_logging, get_logger
from psearch.core.types import DEFAULT_KEY, DocumentId, ProbabilityMap, TermMap

__all__ = [
    "Config",
    "ConfigurationError",
    "EmptyTermError",
    "MissingArgumentError",
    "ParseError",
    "PSearchError",
    "QueryError",
    "SourceError",
    "SourceFailure",
    "StaleGenerationError",
    "QueryLogger",
    "configure_logging",
    "get_logger",
    "DEFAULT_KEY",
    "DocumentId",
    "ProbabilityMap",
    "TermMap",
]
