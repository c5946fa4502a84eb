"""
BM25 / BM25F ranking over combined term-frequency results.

Scores are computed per flattened leaf result and combined according to
each leaf's calc_type:

- normal / must:  +score * boost
- not:            -score * boost
- must-not:       document removed from the result
- must:           when any must leaf matched, only those documents remain

Leaves that carry per-field counts are scored with BM25F: field matches
are length-normalized against their own field's average length and the
rest of the count against the document's size.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set

from psearch.core.config import RankingConfig
from psearch.core.logging import get_logger
from psearch.core.types import DocumentId, ScoreMap, TermMap
from psearch.retrieval.envelope import CalcType, Result, flatten
from psearch.sources.base import FIELDS, SIZE, PropertyAccessor, field_lengths

logger = get_logger(__name__)


@dataclass
class BM25Params:
    """BM25 algorithm parameters."""

    k1: float = 1.2  # Term frequency saturation
    b: float = 0.75  # Length normalization


@dataclass(frozen=True)
class CorpusStats:
    """
    Collection statistics shared by every leaf of one query.

    Attributes:
        document_count: N, number of candidate documents
        total_size: Sum of all candidate document sizes
        field_averages: field name -> mean length over documents having it
    """

    document_count: int
    total_size: float
    field_averages: Dict[str, float] = field(default_factory=dict)

    @property
    def avg_size(self) -> float:
        if self.document_count <= 0:
            return 0.0
        return self.total_size / self.document_count

    @classmethod
    def from_documents(
        cls,
        accessor: PropertyAccessor,
        documents: Iterable[DocumentId],
        document_count: Optional[int] = None,
        total_size: Optional[float] = None,
    ) -> "CorpusStats":
        """
        Gather statistics from the property accessor.

        Explicit ``document_count`` / ``total_size`` override the computed
        values (the caller may know the full corpus when only a subset is
        listed).
        """
        docs = list(documents)
        size_sum = 0.0
        field_totals: Dict[str, int] = {}
        field_docs: Dict[str, int] = {}

        for doc_id in docs:
            if total_size is None:
                size_sum += accessor.get_property(doc_id, SIZE) or 0
            lengths = field_lengths(accessor.get_property(doc_id, FIELDS))
            for name, length in lengths.items():
                field_totals[name] = field_totals.get(name, 0) + length
                field_docs[name] = field_docs.get(name, 0) + 1

        averages = {
            name: total / field_docs[name] for name, total in field_totals.items()
        }
        return cls(
            document_count=document_count if document_count is not None else len(docs),
            total_size=total_size if total_size is not None else size_sum,
            field_averages=averages,
        )


def inverse_document_frequency(document_count: int, matching: int) -> float:
    """idf = ln((N - n + 0.5) / (n + 0.5) + 1); always finite."""
    return math.log((document_count - matching + 0.5) / (matching + 0.5) + 1)


def length_norm(size: Optional[float], avg_size: float, params: BM25Params) -> float:
    """``1 - b + b*size/avg``; neutral (1.0) when either length is unknown."""
    if size is None or avg_size <= 0:
        return 1.0
    return 1 - params.b + params.b * size / avg_size


def bm25_score(
    count: float,
    size: Optional[float],
    avg_size: float,
    idf: float,
    params: Optional[BM25Params] = None,
) -> float:
    """
    Classic BM25 score for one document.

    Returns 0.0 for non-positive counts.
    """
    params = params or BM25Params()
    if count <= 0:
        return 0.0
    norm = length_norm(size, avg_size, params)
    return idf * count * (params.k1 + 1) / (count + params.k1 * norm)


class Bm25Ranker:
    """Turn an evaluated query result into a per-document score map."""

    def __init__(
        self,
        accessor: PropertyAccessor,
        config: Optional[RankingConfig] = None,
        params: Optional[BM25Params] = None,
    ) -> None:
        """
        Initialize ranker.

        Args:
            accessor: Property accessor for document and field sizes
            config: Field weights and the BM25F switch
            params: BM25 parameters
        """
        self.accessor = accessor
        self.config = config or RankingConfig()
        self.params = params or BM25Params()

    def score_leaf(self, leaf: Result, stats: CorpusStats) -> ScoreMap:
        """
        Score a single leaf result (boost not applied).

        Documents with a non-positive count are dropped.
        """
        counts = leaf.counts
        matching = sum(1 for count in counts.values() if count > 0)
        idf = inverse_document_frequency(stats.document_count, matching)

        if leaf.field_counts and self.config.bm25f:
            return self._score_fields(counts, leaf.field_counts, idf, stats)

        scores: ScoreMap = {}
        for doc_id, count in counts.items():
            if count <= 0:
                continue
            size = self.accessor.get_property(doc_id, SIZE)
            scores[doc_id] = bm25_score(count, size, stats.avg_size, idf, self.params)
        return scores

    def _score_fields(
        self,
        counts: TermMap,
        field_counts: Dict[str, TermMap],
        idf: float,
        stats: CorpusStats,
    ) -> ScoreMap:
        """BM25F: per-field weighted tf plus the remaining content tf."""
        k1 = self.params.k1
        scores: ScoreMap = {}

        for doc_id, count in counts.items():
            if count <= 0:
                continue
            lengths = field_lengths(self.accessor.get_property(doc_id, FIELDS))
            tf = 0.0
            field_total = 0
            for name, per_doc in field_counts.items():
                field_count = per_doc.get(doc_id, 0)
                if field_count <= 0:
                    continue
                field_total += field_count
                weight = self.config.field_weights.get(
                    name, self.config.default_field_weight
                )
                norm = length_norm(
                    lengths.get(name), stats.field_averages.get(name, 0.0), self.params
                )
                tf += weight * field_count / norm

            content_count = count - field_total
            if content_count > 0:
                size = self.accessor.get_property(doc_id, SIZE)
                tf += content_count / length_norm(size, stats.avg_size, self.params)

            if tf > 0:
                scores[doc_id] = idf * tf * (k1 + 1) / (tf + k1)
        return scores

    def rank_result(self, result: Result, stats: CorpusStats) -> ScoreMap:
        """
        Combine every leaf of a result into one score map.

        Rule #1: Single pass over flattened leaves.

        Returns:
            doc_id -> combined score, only documents with a positive total
        """
        total: Dict[DocumentId, float] = {}
        must: Set[DocumentId] = set()
        must_not: Set[DocumentId] = set()

        for leaf in flatten(result):
            scores = self.score_leaf(leaf, stats)
            if leaf.calc_type is CalcType.MUST:
                must.update(scores)
            elif leaf.calc_type is CalcType.MUST_NOT:
                must_not.update(scores)

            sign = -1.0 if leaf.calc_type is CalcType.NOT else 1.0
            for doc_id, score in scores.items():
                total[doc_id] = total.get(doc_id, 0.0) + sign * score * leaf.boost

        for doc_id in must_not:
            total.pop(doc_id, None)
        if must:
            total = {doc_id: s for doc_id, s in total.items() if doc_id in must}

        ranked = {doc_id: s for doc_id, s in total.items() if s > 0}
        logger.debug(
            "Ranked result",
            documents=len(ranked),
            must=len(must),
            must_not=len(must_not),
        )
        return ranked
