"""
Retrieval layer: execution engine, ranking, normalization and sessions.

    from psearch.retrieval import Session

    session = Session(sources)
    probabilities = await session.run_query("fooBar +baz")
"""

from psearch.retrieval.bm25 import BM25Params, Bm25Ranker, CorpusStats, bm25_score
from psearch.retrieval.cache import GenerationCache
from psearch.retrieval.engine import QueryEngine, intersect, leaf_regex, subtract
from psearch.retrieval.envelope import CalcType, Result, flatten
from psearch.retrieval.normalizer import normalize_scores
from psearch.retrieval.proximity import elements_near
from psearch.retrieval.session import (
    Session,
    merge_ranges,
    text_match_finder,
)

__all__ = [
    "BM25Params",
    "Bm25Ranker",
    "CorpusStats",
    "bm25_score",
    "GenerationCache",
    "QueryEngine",
    "intersect",
    "leaf_regex",
    "subtract",
    "CalcType",
    "Result",
    "flatten",
    "normalize_scores",
    "elements_near",
    "Session",
    "merge_ranges",
    "text_match_finder",
]
