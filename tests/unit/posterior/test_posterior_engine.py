"""
Tests for PosteriorEngine.

Organization
------------
- TestCalculate: folding priors, marginal
- TestPaging: Top-N page and full-sort pages
- TestObservation: observation multipliers
- TestPriors: adding and removing priors
"""

import pytest

from psearch.core.config import PosteriorConfig
from psearch.core.types import DEFAULT_KEY
from psearch.posterior.engine import MIN_OBSERVATION_MULTIPLIER, PosteriorEngine
from psearch.posterior.priors import Prior


def make_engine(count=30, top_n=5, page_size=5):
    """Documents d00..dNN with strictly increasing probability."""
    scores = {f"d{i:02d}": (i + 1) / (count + 1) for i in range(count)}
    engine = PosteriorEngine(
        [Prior("query", scores)],
        PosteriorConfig(top_n=top_n, page_size=page_size),
    )
    engine.calculate(scores)
    return engine


class TestCalculate:
    """Tests for calculate()."""

    def test_product_of_priors(self):
        engine = PosteriorEngine(
            [Prior("a", {"x": 0.8}), Prior("b", {"x": 0.5})]
        )
        engine.calculate(["x"])
        assert engine.probability("x") == pytest.approx(0.4)

    def test_marginal_and_relative(self):
        engine = PosteriorEngine([Prior("a", {"x": 0.6, "y": 0.2})])
        engine.calculate(["x", "y"])

        assert engine.marginal == pytest.approx(0.8)
        assert engine.relative("x") == pytest.approx(0.75)

    def test_duplicate_candidates_counted_once(self):
        engine = PosteriorEngine([Prior("a", {"x": 0.6})])
        engine.calculate(["x", "x"])
        assert engine.marginal == pytest.approx(0.6)

    def test_unlisted_documents_use_default_entry(self):
        engine = PosteriorEngine([Prior("q", {"x": 0.7, DEFAULT_KEY: 0.3})])
        engine.calculate(["x", "y"])
        assert engine.page(0) == [("x", 0.7), ("y", 0.3)]

    def test_zero_marginal_relative(self):
        engine = PosteriorEngine([Prior("f", {DEFAULT_KEY: 0.0}, importance="filter")])
        engine.calculate(["x"])
        assert engine.relative("x") == 0.0


class TestPaging:
    """Tests for page()."""

    def test_first_page_from_top_n(self):
        engine = make_engine()
        page = engine.page(0)

        assert [doc for doc, _ in page] == ["d29", "d28", "d27", "d26", "d25"]
        assert engine._sorted is None

    def test_later_page_triggers_full_sort(self):
        engine = make_engine()
        page = engine.page(2)

        assert [doc for doc, _ in page] == ["d19", "d18", "d17", "d16", "d15"]
        assert engine._sorted is not None

    def test_pages_are_contiguous(self):
        engine = make_engine(count=12, top_n=4, page_size=4)
        docs = [doc for index in range(3) for doc, _ in engine.page(index)]
        assert docs == [f"d{i:02d}" for i in range(11, -1, -1)]

    def test_page_past_end_is_empty(self):
        assert make_engine(count=3).page(5) == []

    def test_page_count(self):
        assert make_engine(count=12, page_size=5).page_count() == 3

    def test_negative_page_rejected(self):
        with pytest.raises(AssertionError):
            make_engine().page(-1)


class TestObservation:
    """Tests for observe()."""

    def test_observation_lowers_rank(self):
        engine = make_engine(count=3)
        assert engine.page(0)[0][0] == "d02"

        engine.observe("d02")

        assert engine.stale
        assert engine.page(0)[0][0] == "d01"

    def test_multiplier_compounds(self):
        engine = PosteriorEngine(config=PosteriorConfig(observation_factor=0.5))
        engine.observe("x")
        assert engine.observe("x") == pytest.approx(0.25)

    def test_multiplier_floor(self):
        engine = PosteriorEngine(config=PosteriorConfig(observation_factor=0.01))
        for _ in range(10):
            engine.observe("x")
        assert engine.observation_multiplier("x") == MIN_OBSERVATION_MULTIPLIER

    def test_unobserved_multiplier_is_one(self):
        assert PosteriorEngine().observation_multiplier("x") == 1.0


class TestPriors:
    """Tests for set_prior() and remove_prior()."""

    def test_set_prior_replaces_by_name(self):
        engine = PosteriorEngine([Prior("a", {"x": 0.2})])
        engine.set_prior(Prior("a", {"x": 0.9}))
        engine.calculate(["x"])
        assert engine.probability("x") == pytest.approx(0.9)

    def test_remove_prior_marks_stale(self):
        engine = make_engine(count=3)
        engine.remove_prior("query")

        assert engine.stale
        assert engine.page(0) == [("d02", 1.0), ("d01", 1.0), ("d00", 1.0)]
