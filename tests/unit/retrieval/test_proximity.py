"""
Tests for the Near line-distance scan.

Organization
------------
- TestLineStarts: line offset table
- TestFindElementMatches: match collection
- TestElementsNear: qualification rules
"""

import re

import pytest

from psearch.retrieval.proximity import (
    elements_near,
    find_element_matches,
    line_starts,
)


def elements(*words):
    return [[re.compile(re.escape(word))] for word in words]


class TestLineStarts:
    """Tests for line_starts()."""

    def test_offsets(self):
        assert line_starts("ab\ncd\n\nx") == [0, 3, 6, 7]

    def test_single_line(self):
        assert line_starts("abc") == [0]


class TestFindElementMatches:
    """Tests for find_element_matches()."""

    def test_sorted_by_position_with_lines(self):
        matches = find_element_matches("bear\nfox bear", elements("fox", "bear"))

        assert [(m.element, m.line) for m in matches] == [(1, 0), (0, 1), (1, 1)]

    def test_alternative_patterns_share_element(self):
        patterns = [[re.compile("fox"), re.compile("wolf")]]
        matches = find_element_matches("wolf fox", patterns)
        assert {m.element for m in matches} == {0}
        assert len(matches) == 2

    def test_cap_keeps_earliest_matches_across_patterns(self):
        patterns = [[re.compile("fox"), re.compile("wolf")]]
        matches = find_element_matches("fox wolf fox wolf", patterns, max_matches=2)
        assert [m.start for m in matches] == [0, 4]

    def test_cap_applies_per_element(self):
        matches = find_element_matches("a a a b b", elements("a", "b"), max_matches=1)
        assert [(m.element, m.start) for m in matches] == [(0, 0), (1, 6)]


class TestElementsNear:
    """Tests for elements_near()."""

    def test_same_line(self):
        assert elements_near("the fox and the bear", elements("fox", "bear"))

    def test_within_distance(self):
        content = "fox\n\n\nbear"
        assert elements_near(content, elements("fox", "bear"), max_line_distance=3)

    def test_beyond_distance(self):
        content = "fox\n\n\n\nbear"
        assert not elements_near(content, elements("fox", "bear"), 3)

    def test_zero_distance_requires_same_line(self):
        assert not elements_near("fox\nbear", elements("fox", "bear"), 0)
        assert elements_near("fox bear", elements("fox", "bear"), 0)

    def test_chain_of_matches_bridges_gap(self):
        """Consecutive matches may each be close while the ends are far."""
        content = "fox\n\n\nfox\n\n\nbear"
        assert elements_near(content, elements("fox", "bear"), 3)

    def test_gap_resets_active_set(self):
        content = "fox\n\n\n\n\n\n\nbear\nwolf"
        assert not elements_near(content, elements("fox", "bear", "wolf"), 3)

    def test_missing_element(self):
        assert not elements_near("fox fox", elements("fox", "bear"))

    def test_no_elements(self):
        assert not elements_near("fox", [])

    def test_negative_distance_rejected(self):
        with pytest.raises(AssertionError):
            elements_near("fox", elements("fox"), -1)
