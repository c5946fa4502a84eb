"""
Tests for min-max score normalization.

Organization
------------
- TestNormalizeScores: band mapping and the default entry
"""

import pytest

from psearch.core.config import NormalizerConfig
from psearch.core.types import DEFAULT_KEY
from psearch.retrieval.normalizer import normalize_scores


class TestNormalizeScores:
    """Tests for normalize_scores()."""

    def test_empty_scores_only_default(self):
        assert normalize_scores({}) == {DEFAULT_KEY: 0.3}

    def test_band_endpoints(self):
        probabilities = normalize_scores({"a": 10.0, "b": 2.0, "c": 6.0})

        assert probabilities["a"] == pytest.approx(0.7)
        assert probabilities["b"] == pytest.approx(0.5)
        assert probabilities["c"] == pytest.approx(0.6)
        assert probabilities[DEFAULT_KEY] == 0.3

    def test_equal_scores_get_max(self):
        probabilities = normalize_scores({"a": 1.5, "b": 1.5})
        assert probabilities["a"] == probabilities["b"] == 0.7

    def test_single_score_gets_max(self):
        assert normalize_scores({"a": 0.01})["a"] == 0.7

    def test_order_preserved(self):
        scores = {"a": 3.0, "b": 1.0, "c": 2.0, "d": 2.5}
        probabilities = normalize_scores(scores)
        ranked = sorted(scores, key=scores.get)
        assert [probabilities[d] for d in ranked] == sorted(
            probabilities[d] for d in ranked
        )

    def test_every_document_inside_band(self):
        probabilities = normalize_scores({str(i): i * 1.7 for i in range(20)})
        for doc_id, p in probabilities.items():
            if doc_id is not DEFAULT_KEY:
                assert 0.5 <= p <= 0.7

    def test_custom_band(self):
        config = NormalizerConfig(min_prob=0.6, max_prob=0.9, default_prob=0.1)
        probabilities = normalize_scores({"a": 1.0, "b": 3.0}, config)

        assert probabilities["a"] == pytest.approx(0.6)
        assert probabilities["b"] == pytest.approx(0.9)
        assert probabilities[DEFAULT_KEY] == 0.1
