"""
Search session.

A Session owns everything that lives longer than one query: the document
registry, the sources, the term-frequency and candidate caches and the
generation counter.

    session = Session([InMemorySource(documents={"a": "ABC DEF"})])
    probabilities = await session.run_query("ABC")
    ranges = session.mark_query("ABC", text_match_finder("xx ABC"))

``restart()`` starts a new generation: pending computations of the old
one are cancelled (a cancelled ripgrep count kills its process), caches
are emptied and any result still arriving for the old generation is
discarded with ``StaleGenerationError``.
"""

import asyncio
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from psearch.core.config import Config
from psearch.core.exceptions import PSearchError, SourceFailure, StaleGenerationError
from psearch.core.logging import QueryLogger, get_logger
from psearch.core.types import DocumentId, ProbabilityMap
from psearch.posterior import PosteriorEngine, Prior, query_prior
from psearch.query.ast import (
    NEGATING_NODES,
    Leaf,
    Near,
    Node,
    RegexTerm,
    Subtract,
    Term,
    children_of,
    positive_leaves,
)
from psearch.query.context import QueryContext
from psearch.query.expander import expand_term
from psearch.query.parser import QueryParser
from psearch.retrieval.bm25 import Bm25Ranker, CorpusStats
from psearch.retrieval.cache import GenerationCache
from psearch.retrieval.engine import QueryEngine, leaf_regex, validate_regex_leaves
from psearch.retrieval.envelope import Result
from psearch.retrieval.normalizer import normalize_scores
from psearch.sources.base import (
    DocumentRegistry,
    DocumentSource,
    ResolutionKind,
    compile_leaf,
)

logger = get_logger(__name__)

Range = Tuple[int, int]
MatchFinder = Callable[[RegexTerm], Iterable[Range]]

CANDIDATES_KEY = "candidates"


def text_match_finder(text: str) -> MatchFinder:
    """Match finder over a fixed text, for previews and the CLI."""

    def find(leaf: RegexTerm) -> List[Range]:
        pattern = compile_leaf(leaf)
        return [m.span() for m in pattern.finditer(text) if m.end() > m.start()]

    return find


def merge_ranges(ranges: Iterable[Range]) -> List[Range]:
    """Sort ranges and merge overlapping or touching ones."""
    merged: List[Range] = []
    for start, end in sorted(ranges):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
            continue
        merged.append((start, end))
    return merged


def marking_leaves(node: Node, expand: bool) -> Iterator[Tuple[Leaf, bool]]:
    """
    Positive leaves paired with whether a search would expand them.

    Children of a multi-element Near are evaluated without expansion, so
    their leaves are marked unexpanded too.
    """
    stack = [(node, expand)]
    while stack:
        current, current_expand = stack.pop()
        if isinstance(current, NEGATING_NODES):
            continue
        if isinstance(current, (Term, RegexTerm)):
            yield current, current_expand
            continue
        if isinstance(current, Subtract):
            stack.append((current.general, current_expand))
            continue
        if isinstance(current, Near) and len(current.children) > 1:
            current_expand = False
        children = reversed(children_of(current))
        stack.extend((child, current_expand) for child in children)


class Session:
    """Query session over a set of document sources."""

    def __init__(
        self,
        sources: Sequence[DocumentSource] = (),
        config: Optional[Config] = None,
        registry: Optional[DocumentRegistry] = None,
    ) -> None:
        """
        Initialize session.

        Args:
            sources: Document sources; required arguments are checked here
            config: Full configuration
            registry: Document registry shared with the sources

        Raises:
            MissingArgumentError: If a source lacks a required argument
        """
        self.config = config or Config()
        self.registry = registry if registry is not None else DocumentRegistry()
        self.parser = QueryParser(self.config.query.default_boost)
        self.ranker = Bm25Ranker(self.registry, self.config.ranking)
        self.sources: List[DocumentSource] = []
        self.failures: List[SourceFailure] = []

        self._generation = 0
        self._leaf_cache: GenerationCache[Result] = GenerationCache("term-frequency")
        self._candidate_cache: GenerationCache[List[DocumentId]] = GenerationCache(
            "candidates"
        )
        self._tasks: Set["asyncio.Task"] = set()

        for source in sources:
            self.add_source(source)

    @property
    def generation(self) -> int:
        return self._generation

    def add_source(self, source: DocumentSource) -> None:
        """Validate, attach and register a source; starts a new generation."""
        source.validate_args()
        source.attach(self.registry)
        self.sources.append(source)
        self.restart()

    def restart(self) -> int:
        """
        Start a new generation.

        Cancels in-flight work of the previous generation and empties the
        caches. Safe to call outside a running event loop.

        Returns:
            The new generation number
        """
        self._generation += 1
        cancelled = self._leaf_cache.reset(self._generation)
        cancelled += self._candidate_cache.reset(self._generation)

        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        for task in list(self._tasks):
            if task is not current and not task.done():
                task.cancel()
                cancelled += 1
        self._tasks.clear()
        self.failures = []

        logger.debug(
            "Session restarted", generation=self._generation, cancelled=cancelled
        )
        return self._generation

    def _check_generation(self, generation: int) -> None:
        if generation != self._generation:
            raise StaleGenerationError(generation, self._generation)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def documents(self) -> List[DocumentId]:
        """Canonical candidate documents of every source (cached)."""
        return await self._candidate_cache.get_or_compute(
            CANDIDATES_KEY, self._generation, self._list_documents
        )

    async def _list_documents(self) -> List[DocumentId]:
        listings = await asyncio.gather(
            *(self._list_source(source) for source in self.sources)
        )

        seen: Dict[DocumentId, None] = {}
        for listing in listings:
            for doc_id in listing:
                resolution = self.registry.resolve(doc_id)
                if resolution.kind is ResolutionKind.REMAPPED:
                    for target in resolution.targets:
                        seen.setdefault(target, None)
                elif resolution.kind is ResolutionKind.SELF:
                    seen.setdefault(doc_id, None)
        return list(seen)

    async def _list_source(self, source: DocumentSource) -> List[DocumentId]:
        timeout = self.config.sources.timeout_seconds
        try:
            return await asyncio.wait_for(source.list_documents(), timeout)
        except asyncio.TimeoutError:
            failure = SourceFailure(source.name, f"listing timed out after {timeout}s")
        except SourceFailure as e:
            failure = e
        except Exception as e:
            failure = SourceFailure(source.name, f"{type(e).__name__}: {e}")

        logger.warning(
            "Source could not list documents",
            source=failure.source,
            reason=failure.reason,
        )
        self.failures.append(failure)
        return []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def parse(self, query: str) -> Node:
        """Parse a query string with the session's default boost."""
        return self.parser.parse(query)

    async def evaluate(
        self, query: str, field_filter: Optional[str] = None
    ) -> Tuple[Result, List[DocumentId]]:
        """
        Parse and evaluate a query without ranking it.

        Returns:
            Tuple of (tagged result, candidate documents)
        """
        generation = self._generation
        node = self.parse(query)
        validate_regex_leaves(node)
        documents = await self.documents()

        engine = QueryEngine(
            self.registry,
            self.registry,
            self.sources,
            documents,
            config=self.config,
            leaf_cache=self._leaf_cache,
            generation=generation,
            current_generation=lambda: self._generation,
        )
        context = QueryContext(
            expand=self.config.query.expand_terms, field_filter=field_filter
        )
        try:
            result = await engine.evaluate(node, context)
        finally:
            if generation == self._generation:
                self.failures.extend(engine.failures)
        return result, documents

    async def run_query(
        self,
        query: str,
        document_count: Optional[int] = None,
        total_size: Optional[float] = None,
        field_filter: Optional[str] = None,
    ) -> ProbabilityMap:
        """
        Run a query and return per-document probabilities.

        Rule #7: Query errors propagate; source failures do not.

        Args:
            query: Query string
            document_count: N for idf; number of candidates when omitted
            total_size: Sum of document sizes; computed when omitted
            field_filter: Only count matches inside this field

        Returns:
            doc_id -> probability, plus DEFAULT_KEY for unmatched documents

        Raises:
            ParseError: On an invalid query
            StaleGenerationError: If the session restarted meanwhile
        """
        generation = self._generation
        query_log = QueryLogger(query, generation)
        task = self._track_current_task()

        try:
            query_log.start_stage("evaluate")
            result, documents = await self.evaluate(query, field_filter)

            query_log.start_stage("rank")
            stats = CorpusStats.from_documents(
                self.registry, documents, document_count, total_size
            )
            scores = self.ranker.rank_result(result, stats)
            probabilities = normalize_scores(scores, self.config.normalizer)
            self._check_generation(generation)
        except StaleGenerationError:
            logger.debug(
                "Dropping stale query result", query=query, generation=generation
            )
            raise
        except PSearchError as e:
            query_log.finish(False, error=str(e))
            raise
        finally:
            if task is not None:
                self._tasks.discard(task)

        query_log.finish(True, documents=len(scores))
        return probabilities

    def _track_current_task(self) -> Optional["asyncio.Task"]:
        task = asyncio.current_task()
        if task is not None:
            self._tasks.add(task)
        return task

    async def rank(
        self,
        query: str,
        priors: Iterable[Prior] = (),
        field_filter: Optional[str] = None,
    ) -> PosteriorEngine:
        """
        Run a query and fold it with other priors.

        The query's probabilities become a prior named ``query`` with the
        configured importance.

        Returns:
            Calculated PosteriorEngine ready for paging
        """
        probabilities = await self.run_query(query, field_filter=field_filter)
        engine = PosteriorEngine(
            [query_prior(probabilities, self.config.posterior.query_importance)],
            self.config.posterior,
        )
        for prior in priors:
            engine.set_prior(prior)
        engine.calculate(await self.documents())
        return engine

    def mark_query(self, query: str, match_finder: MatchFinder) -> List[Range]:
        """
        Ranges to highlight for a query.

        Every positive leaf (expanded when expansion is on, except inside
        a multi-element ``~`` group) is handed to ``match_finder``; the
        returned ranges are merged and sorted.
        """
        node = self.parse(query)
        validate_regex_leaves(node)

        regex_leaves: Dict[str, RegexTerm] = {}
        expand = self.config.query.expand_terms
        for leaf, leaf_expand in marking_leaves(node, expand):
            for regex_leaf in self._marking_leaves(leaf, leaf_expand):
                regex_leaves.setdefault(regex_leaf.regex, regex_leaf)

        ranges: List[Range] = []
        for regex_leaf in regex_leaves.values():
            ranges.extend(match_finder(regex_leaf))
        return merge_ranges(ranges)

    def _marking_leaves(self, leaf: Leaf, expand: bool) -> List[RegexTerm]:
        if isinstance(leaf, Term) and not leaf.literal and expand:
            expanded = expand_term(leaf.text, expand=True)
            return [
                leaf_regex(inner)
                for inner in positive_leaves(expanded)
                if isinstance(inner, (Term, RegexTerm))
            ]
        return [leaf_regex(leaf)]
