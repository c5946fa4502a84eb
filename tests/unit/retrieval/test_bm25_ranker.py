"""
Tests for BM25 / BM25F ranking.

Organization
------------
- TestBM25Params: defaults
- TestScoring: bm25_score and idf properties
- TestCorpusStats: statistics gathering
- TestRankResult: combining tagged leaves
- TestBM25F: field-weighted scoring
"""

import pytest

from psearch.core.config import RankingConfig
from psearch.retrieval.bm25 import (
    BM25Params,
    Bm25Ranker,
    CorpusStats,
    bm25_score,
    inverse_document_frequency,
    length_norm,
)
from psearch.retrieval.envelope import CalcType, Result
from psearch.sources import DocumentRegistry


# ============================================================================
# Test Helpers
# ============================================================================


def make_registry(**sizes):
    registry = DocumentRegistry()
    for doc_id, size in sizes.items():
        registry.add(doc_id, size=size)
    return registry


STATS = CorpusStats(document_count=10, total_size=1000.0)


# ============================================================================
# Test Classes
# ============================================================================


class TestBM25Params:
    """Tests for BM25Params dataclass."""

    def test_defaults(self):
        params = BM25Params()
        assert params.k1 == 1.2
        assert params.b == 0.75


class TestScoring:
    """Tests for the scoring functions."""

    def test_zero_count_scores_zero(self):
        assert bm25_score(0, 100, 100, 1.0) == 0.0

    def test_negative_count_scores_zero(self):
        assert bm25_score(-3, 100, 100, 1.0) == 0.0

    def test_monotonic_in_count(self):
        scores = [bm25_score(c, 100, 100, 1.0) for c in range(1, 20)]
        assert scores == sorted(scores)
        assert len(set(scores)) == len(scores)

    def test_saturates_below_k1_plus_one(self):
        assert bm25_score(10_000, 100, 100, 1.0) < 2.2

    def test_longer_documents_score_lower(self):
        assert bm25_score(2, 500, 100, 1.0) < bm25_score(2, 50, 100, 1.0)

    def test_idf_always_positive_and_decreasing(self):
        values = [inverse_document_frequency(10, n) for n in range(0, 11)]
        assert all(v > 0 for v in values)
        assert values == sorted(values, reverse=True)

    def test_unknown_size_is_neutral(self):
        assert length_norm(None, 100, BM25Params()) == 1.0
        assert length_norm(50, 0, BM25Params()) == 1.0

    def test_average_size_norm_is_one(self):
        assert length_norm(100, 100, BM25Params()) == pytest.approx(1.0)


class TestCorpusStats:
    """Tests for CorpusStats.from_documents()."""

    def test_sizes_summed(self):
        registry = make_registry(a=10, b=30)
        stats = CorpusStats.from_documents(registry, ["a", "b"])

        assert stats.document_count == 2
        assert stats.total_size == 40
        assert stats.avg_size == 20

    def test_explicit_totals_override(self):
        registry = make_registry(a=10)
        stats = CorpusStats.from_documents(registry, ["a"], 100, 5000.0)
        assert stats.document_count == 100
        assert stats.avg_size == 50

    def test_field_averages(self):
        registry = DocumentRegistry()
        registry.add("a", content="x", fields={"title": "abcd"})
        registry.add("b", content="y", fields={"title": "ab", "tags": ["x", "yz"]})

        stats = CorpusStats.from_documents(registry, ["a", "b"])
        assert stats.field_averages == {"title": 3.0, "tags": 3.0}

    def test_empty_corpus(self):
        stats = CorpusStats.from_documents(DocumentRegistry(), [])
        assert stats.avg_size == 0.0


class TestRankResult:
    """Tests for Bm25Ranker.rank_result()."""

    def setup_method(self):
        self.ranker = Bm25Ranker(make_registry(a=100, b=100, c=100))

    def test_higher_count_ranks_higher(self):
        scores = self.ranker.rank_result(Result({"a": 3, "b": 1}), STATS)
        assert scores["a"] > scores["b"] > 0

    def test_boost_multiplies(self):
        plain = self.ranker.rank_result(Result({"a": 1}), STATS)
        boosted = self.ranker.rank_result(Result({"a": 1}, boost=2.0), STATS)
        assert boosted["a"] == pytest.approx(2 * plain["a"])

    def test_not_subtracts(self):
        result = Result(
            (
                Result({"a": 1, "b": 1}),
                Result({"a": 1}, boost=2.0, calc_type=CalcType.NOT),
            )
        )
        scores = self.ranker.rank_result(result, STATS)
        assert "a" not in scores
        assert "b" in scores

    def test_must_not_removes(self):
        result = Result(
            (
                Result({"a": 5, "b": 1}),
                Result({"a": 1}, calc_type=CalcType.MUST_NOT),
            )
        )
        assert set(self.ranker.rank_result(result, STATS)) == {"b"}

    def test_must_restricts(self):
        result = Result(
            (
                Result({"a": 5, "b": 1}),
                Result({"b": 1}, calc_type=CalcType.MUST),
            )
        )
        assert set(self.ranker.rank_result(result, STATS)) == {"b"}

    def test_must_without_matches_does_not_restrict(self):
        result = Result(
            (Result({"a": 5}), Result({}, calc_type=CalcType.MUST))
        )
        assert set(self.ranker.rank_result(result, STATS)) == {"a"}

    def test_only_positive_totals_kept(self):
        result = Result({"a": 2, "b": 0, "c": -1})
        assert set(self.ranker.rank_result(result, STATS)) == {"a"}


class TestBM25F:
    """Tests for field-weighted scoring."""

    def make_ranker(self, **config):
        registry = DocumentRegistry()
        registry.add("a", size=100, fields={"title": "short"})
        registry.add("b", size=100, fields={"title": "short"})
        return Bm25Ranker(registry, RankingConfig(**config))

    def stats(self):
        return CorpusStats(10, 1000.0, {"title": 5.0})

    def test_title_weight_raises_score(self):
        ranker = self.make_ranker(field_weights={"title": 3.0})
        leaf = Result({"a": 1, "b": 1}, field_counts={"title": {"a": 1}})

        scores = ranker.rank_result(leaf, self.stats())
        assert scores["a"] > scores["b"]

    def test_bm25f_disabled_ignores_fields(self):
        ranker = self.make_ranker(bm25f=False, field_weights={"title": 3.0})
        leaf = Result({"a": 1, "b": 1}, field_counts={"title": {"a": 1}})

        scores = ranker.rank_result(leaf, self.stats())
        assert scores["a"] == pytest.approx(scores["b"])

    def test_unit_weight_on_average_field_matches_plain_bm25(self):
        """A match in an average-length field scores like a content match."""
        ranker = self.make_ranker()
        with_field = Result({"a": 1}, field_counts={"title": {"a": 1}})
        plain = Result({"a": 1})

        stats = CorpusStats(10, 1000.0, {"title": 5.0})
        assert ranker.rank_result(with_field, stats)["a"] == pytest.approx(
            ranker.rank_result(plain, stats)["a"]
        )
