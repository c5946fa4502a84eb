"""
Document layer: source contract, registry and concrete sources.

    from psearch.sources import DocumentRegistry, InMemorySource
"""

from psearch.sources.base import (
    DocumentRegistry,
    DocumentResolver,
    DocumentSource,
    PropertyAccessor,
    Resolution,
    ResolutionKind,
    compile_leaf,
    field_term_counts,
)
from psearch.sources.filesystem import FileSystemSource, file_id
from psearch.sources.memory import InMemorySource
from psearch.sources.ripgrep import RipgrepSource

__all__ = [
    "DocumentRegistry",
    "DocumentResolver",
    "DocumentSource",
    "PropertyAccessor",
    "Resolution",
    "ResolutionKind",
    "compile_leaf",
    "field_term_counts",
    "FileSystemSource",
    "file_id",
    "InMemorySource",
    "RipgrepSource",
]
