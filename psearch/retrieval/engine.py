"""
Asynchronous query execution engine.

Walks a parsed query tree and produces a tagged ``Result``:

    engine = QueryEngine(registry, registry, sources, documents)
    result = await engine.evaluate(parse_query("(fox bear)~ +den"))

Leaves are sent to every document source concurrently; each source's
counts are folded through the resolver onto canonical document ids and
the synchronous field counts are merged in. A failing source is logged,
recorded in ``failures`` and contributes nothing; the query continues.

Combinators:
- Terms:    ordered tuple of child results
- And:      documents present in every child, weakest count wins
- Near:     And plus a line-distance content scan, expansion disabled
- Not / Must / MustNot / Boost:  tag the child's result
- Subtract: general minus specific per document, general's tags kept
"""

import asyncio
from typing import Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from psearch.core.config import Config
from psearch.core.exceptions import SourceFailure, StaleGenerationError
from psearch.core.logging import get_logger
from psearch.core.types import DocumentId, TermMap
from psearch.query.ast import (
    And,
    Boost,
    Leaf,
    Must,
    MustNot,
    Near,
    Node,
    Not,
    RegexTerm,
    Subtract,
    Term,
    Terms,
    leaves,
    positive_leaves,
)
from psearch.query.context import QueryContext
from psearch.query.expander import expand_term
from psearch.retrieval.cache import GenerationCache
from psearch.retrieval.envelope import CalcType, FieldCounts, Result, present
from psearch.retrieval.proximity import elements_near
from psearch.sources.base import (
    CONTENT,
    DocumentResolver,
    DocumentSource,
    PropertyAccessor,
    ResolutionKind,
    compile_leaf,
    field_term_counts,
)

logger = get_logger(__name__)


def leaf_regex(leaf: Leaf) -> RegexTerm:
    """
    Matching form of an unexpanded leaf.

    A bare term matches case-insensitively, a quoted literal exactly.
    """
    if isinstance(leaf, RegexTerm):
        return leaf
    return RegexTerm.literal(leaf.text, case_insensitive=not leaf.literal)


class QueryEngine:
    """Evaluate query trees against a set of document sources."""

    def __init__(
        self,
        accessor: PropertyAccessor,
        resolver: DocumentResolver,
        sources: Sequence[DocumentSource],
        documents: Sequence[DocumentId],
        config: Optional[Config] = None,
        leaf_cache: Optional[GenerationCache[Result]] = None,
        generation: int = 0,
        current_generation: Optional[Callable[[], int]] = None,
    ) -> None:
        """
        Initialize engine for one evaluation.

        Args:
            accessor: Document properties (content, fields)
            resolver: Folds source ids onto canonical documents
            sources: Document sources to dispatch leaves to
            documents: Candidate documents (field counts, Near scans)
            config: Query and source settings
            leaf_cache: Session cache of leaf results
            generation: Session generation this evaluation belongs to
            current_generation: Returns the session's live generation
        """
        self.accessor = accessor
        self.resolver = resolver
        self.sources = list(sources)
        self.documents = list(documents)
        self.config = config or Config()
        self.leaf_cache = leaf_cache
        self.generation = generation
        self._current_generation = current_generation or (lambda: generation)
        self.failures: List[SourceFailure] = []

    async def evaluate(
        self, node: Node, context: Optional[QueryContext] = None
    ) -> Result:
        """
        Evaluate a node into a tagged result.

        Raises:
            StaleGenerationError: If the session restarted meanwhile
            ParseError: If a regex leaf does not compile
        """
        context = context or QueryContext(expand=self.config.query.expand_terms)

        if isinstance(node, Term):
            if node.literal:
                return await self._evaluate_leaf(leaf_regex(node), context)
            return await self.evaluate(expand_term(node.text, context.expand), context)
        if isinstance(node, RegexTerm):
            return await self._evaluate_leaf(node, context)
        if isinstance(node, Terms):
            return Result(await self._gather(node.children, context))
        if isinstance(node, And):
            return Result(intersect(await self._gather(node.children, context)))
        if isinstance(node, Near):
            return await self._evaluate_near(node, context)
        if isinstance(node, Not):
            child = await self.evaluate(node.child, context)
            return child.with_calc_type(CalcType.NOT)
        if isinstance(node, Must):
            return await self._evaluate_must(node, context)
        if isinstance(node, MustNot):
            child = await self.evaluate(node.child, context.for_presence())
            return child.with_calc_type(CalcType.MUST_NOT)
        if isinstance(node, Boost):
            child = await self.evaluate(node.child, context)
            return child.with_boost(node.factor)
        if isinstance(node, Subtract):
            specific = await self.evaluate(node.specific, context)
            general = await self.evaluate(node.general, context)
            return subtract(general, specific)
        raise TypeError(f"Not a query node: {node!r}")

    async def _gather(
        self, children: Sequence[Node], context: QueryContext
    ) -> Tuple[Result, ...]:
        results = await asyncio.gather(
            *(self.evaluate(child, context) for child in children)
        )
        return tuple(results)

    async def _evaluate_must(self, node: Must, context: QueryContext) -> Result:
        """Tag a must result; a group has each member tagged."""
        child = await self.evaluate(node.child, context)
        if not child.is_group:
            return child.with_calc_type(CalcType.MUST)
        members = tuple(m.with_calc_type(CalcType.MUST) for m in child.members)
        return Result(members, boost=child.boost, calc_type=child.calc_type)

    async def _evaluate_near(self, node: Near, context: QueryContext) -> Result:
        """
        Documents where every child matches within the line distance.

        A single-element Near is a loose marker: the child's result is
        returned unchanged.
        """
        if len(node.children) == 1:
            return await self.evaluate(node.children[0], context)

        inner = context.without_expansion()
        results = await self._gather(node.children, inner)
        candidates = intersect(results)
        if not candidates:
            return Result({})

        elements = [
            [compile_leaf(leaf_regex(leaf)) for leaf in positive_leaves(child)]
            for child in node.children
        ]
        distance = self.config.query.near_max_line_distance

        # Rule #4: synchronous scan, runs after every child result arrived
        qualified: TermMap = {}
        for doc_id, count in candidates.items():
            content = self.accessor.get_property(doc_id, CONTENT)
            if content and elements_near(content, elements, distance):
                qualified[doc_id] = count

        logger.debug(
            "Near scan finished",
            elements=len(elements),
            candidates=len(candidates),
            qualified=len(qualified),
        )
        return Result(qualified)

    async def _evaluate_leaf(self, leaf: RegexTerm, context: QueryContext) -> Result:
        """Dispatch a leaf, sharing the result through the session cache."""
        if self.leaf_cache is None:
            result = await self._dispatch_leaf(leaf, context)
        else:
            key: Hashable = (leaf.regex, context.field_filter, context.presence_only)
            result = await self.leaf_cache.get_or_compute(
                key, self.generation, lambda: self._dispatch_leaf(leaf, context)
            )

        current = self._current_generation()
        if current != self.generation:
            raise StaleGenerationError(self.generation, current)
        return result

    async def _dispatch_leaf(self, leaf: RegexTerm, context: QueryContext) -> Result:
        """
        Count a leaf across sources and declared fields.

        With a field filter only the field computation runs.
        """
        field_counts = field_term_counts(
            self.accessor, self.documents, leaf, context.field_filter
        )
        if context.presence_only:
            field_counts = {
                name: {doc_id: 1 for doc_id in per_doc}
                for name, per_doc in field_counts.items()
            }

        counts: TermMap = {}
        if context.field_filter is None and self.sources:
            outcomes = await asyncio.gather(
                *(self._query_source(s, leaf, context) for s in self.sources)
            )
            for source_counts in outcomes:
                self._fold(source_counts, counts)

        for per_doc in field_counts.values():
            for doc_id, count in per_doc.items():
                counts[doc_id] = counts.get(doc_id, 0) + count

        return Result(counts, field_counts=field_counts)

    async def _query_source(
        self, source: DocumentSource, leaf: RegexTerm, context: QueryContext
    ) -> TermMap:
        """Ask one source; a failure yields an empty map."""
        timeout = self.config.sources.timeout_seconds
        try:
            if context.presence_only:
                documents = await asyncio.wait_for(source.term_presence(leaf), timeout)
                return {doc_id: 1 for doc_id in documents}
            return await asyncio.wait_for(source.term_frequency(leaf), timeout)
        except asyncio.TimeoutError:
            failure = SourceFailure(source.name, f"timed out after {timeout}s")
        except SourceFailure as e:
            failure = e
        except Exception as e:
            failure = SourceFailure(source.name, f"{type(e).__name__}: {e}")

        logger.warning(
            "Source failed, continuing without it",
            source=failure.source,
            reason=failure.reason,
            term=leaf.regex,
        )
        self.failures.append(failure)
        return {}

    def _fold(self, source_counts: TermMap, into: TermMap) -> None:
        """Coalesce counts onto canonical ids; unknown ids are dropped."""
        for doc_id, count in source_counts.items():
            if count == 0:
                continue
            resolution = self.resolver.resolve(doc_id)
            if resolution.kind is ResolutionKind.SELF:
                targets = (doc_id,)
            elif resolution.kind is ResolutionKind.REMAPPED:
                targets = resolution.targets
            else:
                logger.debug("Dropping count for unknown document", doc_id=doc_id)
                continue
            for target in targets:
                into[target] = into.get(target, 0) + count


def intersect(results: Sequence[Result]) -> TermMap:
    """
    Documents matched by every result, mapped to the minimum count.

    Rule #1: Iterates the first result's documents once.
    """
    if not results:
        return {}
    maps = [present(r.collapse()) for r in results]
    first, rest = maps[0], maps[1:]
    combined: TermMap = {}
    for doc_id, count in first.items():
        if all(doc_id in other for other in rest):
            combined[doc_id] = min([count] + [other[doc_id] for other in rest])
    return combined


def subtract(general: Result, specific: Result) -> Result:
    """General counts minus specific counts; general's tags are kept."""
    general_counts = general.collapse()
    specific_counts = specific.collapse()

    counts: TermMap = dict(general_counts)
    for doc_id, count in specific_counts.items():
        counts[doc_id] = counts.get(doc_id, 0) - count

    return Result(
        counts,
        boost=general.boost,
        calc_type=general.calc_type,
        field_counts=_subtract_fields(general, specific),
    )


def _subtract_fields(general: Result, specific: Result) -> FieldCounts:
    """Per-field difference, positive entries only (leaves only)."""
    if general.is_group or not general.field_counts:
        return {}
    specific_fields = {} if specific.is_group else specific.field_counts

    fields: Dict[str, TermMap] = {}
    for name, per_doc in general.field_counts.items():
        other = specific_fields.get(name, {})
        remaining = {
            doc_id: count - other.get(doc_id, 0)
            for doc_id, count in per_doc.items()
            if count - other.get(doc_id, 0) > 0
        }
        if remaining:
            fields[name] = remaining
    return fields


def validate_regex_leaves(node: Node) -> None:
    """
    Compile every user regex leaf up front.

    Raises:
        ParseError: On the first invalid pattern
    """
    for leaf in leaves(node):
        if isinstance(leaf, RegexTerm):
            compile_leaf(leaf)
