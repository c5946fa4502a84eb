"""
Document source contract and the in-memory document registry.

A document is an opaque id plus a lazily resolved property bag. Sources
produce documents and count leaf matches; the registry stores properties
and folds derived ids back onto canonical ones.

    registry = DocumentRegistry()
    registry.add("mem:a", content="fox and bear", fields={"title": "Den"})
    registry.get_property("mem:a", "size")  # 12

Property values may be zero-argument callables. They are resolved on
first read and cached, so expensive reads (file content) only happen for
documents the query actually needs.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Set,
    Tuple,
    runtime_checkable,
)

from psearch.core.exceptions import MissingArgumentError, ParseError
from psearch.core.logging import get_logger
from psearch.core.types import DocumentId, TermMap
from psearch.query.ast import RegexTerm

logger = get_logger(__name__)

# Standard property names
CONTENT = "content"
SIZE = "size"
FIELDS = "fields"
NAME = "name"


class ResolutionKind(Enum):
    """How a document id maps onto session documents."""

    SELF = "self"
    REMAPPED = "remapped"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Resolution:
    """Result of resolving a document id."""

    kind: ResolutionKind
    targets: Tuple[DocumentId, ...] = ()

    @classmethod
    def self_(cls) -> "Resolution":
        return cls(ResolutionKind.SELF)

    @classmethod
    def remapped(cls, targets: Iterable[DocumentId]) -> "Resolution":
        return cls(ResolutionKind.REMAPPED, tuple(targets))

    @classmethod
    def unknown(cls) -> "Resolution":
        return cls(ResolutionKind.UNKNOWN)


@runtime_checkable
class PropertyAccessor(Protocol):
    """Read access to document properties."""

    def get_property(self, doc_id: DocumentId, name: str) -> Any:
        ...


@runtime_checkable
class DocumentResolver(Protocol):
    """Maps source-reported ids onto canonical session documents."""

    def resolve(self, doc_id: DocumentId) -> Resolution:
        ...


class DocumentRegistry:
    """
    In-memory property store and id resolver.

    Implements both PropertyAccessor and DocumentResolver.
    """

    def __init__(self) -> None:
        self._properties: Dict[DocumentId, Dict[str, Any]] = {}
        self._aliases: Dict[DocumentId, Tuple[DocumentId, ...]] = {}

    def add(self, doc_id: DocumentId, **properties: Any) -> DocumentId:
        """Register a document (or merge properties into an existing one)."""
        assert doc_id, "doc_id cannot be empty"
        self._properties.setdefault(doc_id, {}).update(properties)
        return doc_id

    def alias(self, doc_id: DocumentId, targets: Iterable[DocumentId]) -> None:
        """Fold matches reported for ``doc_id`` onto ``targets``."""
        resolved = tuple(targets)
        assert resolved, "alias needs at least one target"
        self._aliases[doc_id] = resolved

    def documents(self) -> List[DocumentId]:
        return list(self._properties)

    def clear(self) -> None:
        self._properties.clear()
        self._aliases.clear()

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._properties

    def __len__(self) -> int:
        return len(self._properties)

    def get_property(self, doc_id: DocumentId, name: str) -> Any:
        """
        Read a property, resolving and caching lazy values.

        ``size`` falls back to the content length and ``name`` to the id.

        Returns:
            Property value, or None if the document or property is absent
        """
        properties = self._properties.get(doc_id)
        if properties is None:
            return None

        if name not in properties:
            return self._derived_property(doc_id, name)

        value = properties[name]
        if callable(value):
            value = value()
            properties[name] = value
        return value

    def _derived_property(self, doc_id: DocumentId, name: str) -> Any:
        if name == SIZE:
            content = self.get_property(doc_id, CONTENT)
            return len(content) if content is not None else None
        if name == NAME:
            return doc_id
        return None

    def resolve(self, doc_id: DocumentId) -> Resolution:
        if doc_id in self._aliases:
            return Resolution.remapped(self._aliases[doc_id])
        if doc_id in self._properties:
            return Resolution.self_()
        return Resolution.unknown()


class DocumentSource(ABC):
    """
    Base class for document sources.

    Subclasses list their documents into the attached registry and count
    leaf matches. Counts may be reported for ids the registry does not know
    or for aliased ids; the query engine folds them through the resolver.

    Attributes:
        name: Short name used in logs and failure reports
        required_args: Keyword arguments that must be supplied
        args: Keyword arguments given at construction
    """

    name: str = "source"
    required_args: Tuple[str, ...] = ()

    def __init__(self, **args: Any) -> None:
        self.args: Dict[str, Any] = args
        self.registry: Optional[DocumentRegistry] = None

    def validate_args(self) -> None:
        """
        Check required arguments before any computation starts.

        Raises:
            MissingArgumentError: If a required argument is absent
        """
        for argument in self.required_args:
            value = self.args.get(argument)
            if value is None or (isinstance(value, (list, tuple)) and not value):
                raise MissingArgumentError(self.name, argument)

    def attach(self, registry: DocumentRegistry) -> None:
        """Attach the session registry documents are listed into."""
        self.registry = registry

    def _require_registry(self) -> DocumentRegistry:
        if self.registry is None:
            raise RuntimeError(f"Source '{self.name}' is not attached to a registry")
        return self.registry

    @abstractmethod
    async def list_documents(self) -> List[DocumentId]:
        """Register and return every document this source provides."""
        pass

    @abstractmethod
    async def term_frequency(self, leaf: RegexTerm) -> TermMap:
        """Count matches of ``leaf`` per document (zero counts omitted)."""
        pass

    async def term_presence(self, leaf: RegexTerm) -> Set[DocumentId]:
        """Documents with at least one match of ``leaf``."""
        counts = await self.term_frequency(leaf)
        return {doc_id for doc_id, count in counts.items() if count > 0}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# ---------------------------------------------------------------------------
# Matching helpers shared by sources, the engine and the ranker
# ---------------------------------------------------------------------------


def compile_leaf(leaf: RegexTerm) -> "re.Pattern[str]":
    """
    Compile a leaf for line-oriented matching.

    Raises:
        ParseError: If a user supplied regex does not compile
    """
    try:
        return re.compile(leaf.regex, re.MULTILINE)
    except re.error as e:
        raise ParseError(
            f"Invalid regex '{leaf.pattern}': {e}", token=leaf.pattern
        ) from e


def count_matches(pattern: "re.Pattern[str]", text: str) -> int:
    return sum(1 for _ in pattern.finditer(text))


def field_items(fields: Any) -> Iterator[Tuple[str, str]]:
    """
    Iterate a ``fields`` property as (name, text) pairs.

    Accepts a mapping or a sequence of pairs; a value may be a single
    string or a sequence of strings (one pair per element).
    """
    if not fields:
        return
    pairs: Iterable[Tuple[str, Any]] = (
        fields.items() if isinstance(fields, Mapping) else fields
    )
    for field_name, value in pairs:
        if isinstance(value, (list, tuple, set, frozenset)):
            for item in value:
                yield field_name, str(item)
        elif value is not None:
            yield field_name, str(value)


def field_lengths(fields: Any) -> Dict[str, int]:
    """Total text length per field name."""
    lengths: Dict[str, int] = {}
    for field_name, text in field_items(fields):
        lengths[field_name] = lengths.get(field_name, 0) + len(text)
    return lengths


def field_term_counts(
    accessor: PropertyAccessor,
    documents: Sequence[DocumentId],
    leaf: RegexTerm,
    field_filter: Optional[str] = None,
) -> Dict[str, TermMap]:
    """
    Count leaf matches inside documents' declared fields.

    Rule #4: Synchronous; runs before the leaf's source results are merged.

    Args:
        accessor: Property accessor for ``fields``
        documents: Documents to inspect
        leaf: Leaf to match
        field_filter: Only count inside this field when given

    Returns:
        field name -> {doc_id: count}, zero counts skipped
    """
    pattern = compile_leaf(leaf)
    counts: Dict[str, TermMap] = {}

    for doc_id in documents:
        for field_name, text in field_items(accessor.get_property(doc_id, FIELDS)):
            if field_filter is not None and field_name != field_filter:
                continue
            count = count_matches(pattern, text)
            if count == 0:
                continue
            per_field = counts.setdefault(field_name, {})
            per_field[doc_id] = per_field.get(doc_id, 0) + count

    return counts
