"""Line-distance proximity scan for Near groups.

A document qualifies for ``(a b c)~`` when matches of every element occur
in a run where consecutive matches are at most ``max_line_distance``
lines apart. The scan walks all matches left to right once:

- a gap larger than the limit clears the active element set
- the document qualifies as soon as the active set covers every element

NASA JPL Power of Ten Compliance:
- Rule #1: No recursion (linear iteration)
- Rule #2: Fixed upper bounds (MAX_* constants)
- Rule #5: Assert preconditions
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from typing import List, Sequence, Set

from psearch.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_LINE_DISTANCE = 3
MAX_MATCHES_PER_ELEMENT = 10_000


@dataclass(frozen=True)
class ElementMatch:
    """One match of one Near element."""

    element: int
    start: int
    end: int
    line: int


def line_starts(content: str) -> List[int]:
    """Offsets at which each line begins."""
    starts = [0]
    index = content.find("\n")
    while index != -1:
        starts.append(index + 1)
        index = content.find("\n", index + 1)
    return starts


def find_element_matches(
    content: str,
    elements: Sequence[Sequence["re.Pattern[str]"]],
    max_matches: int = MAX_MATCHES_PER_ELEMENT,
) -> List[ElementMatch]:
    """
    Collect matches of every element, sorted by position.

    Each element keeps at most ``max_matches`` matches, the earliest ones
    across all of its patterns.

    Args:
        content: Document text
        elements: Per element, the patterns of its leaves
        max_matches: Cap on matches kept per element

    Returns:
        Matches ordered by start offset, then element index
    """
    starts = line_starts(content)
    matches: List[ElementMatch] = []

    for index, patterns in enumerate(elements):
        spans = sorted(
            m.span() for pattern in patterns for m in pattern.finditer(content)
        )
        if len(spans) > max_matches:
            logger.debug(
                "Near element match cap reached",
                element=index,
                matches=len(spans),
                kept=max_matches,
            )
            spans = spans[:max_matches]
        for start, end in spans:
            line = bisect.bisect_right(starts, start) - 1
            matches.append(ElementMatch(index, start, end, line))

    matches.sort(key=lambda m: (m.start, m.element))
    return matches


def elements_near(
    content: str,
    elements: Sequence[Sequence["re.Pattern[str]"]],
    max_line_distance: int = DEFAULT_MAX_LINE_DISTANCE,
    max_matches: int = MAX_MATCHES_PER_ELEMENT,
) -> bool:
    """
    Check whether every element matches within the line distance.

    Rule #1: Single left-to-right pass.

    Args:
        content: Document text
        elements: Per element, the patterns of its leaves
        max_line_distance: Largest allowed gap between consecutive matches
        max_matches: Cap on matches kept per element

    Returns:
        True when the active set covers every element
    """
    assert max_line_distance >= 0, "max_line_distance cannot be negative"
    if not elements:
        return False

    wanted = len(elements)
    active: Set[int] = set()
    previous_line = -1

    for match in find_element_matches(content, elements, max_matches):
        if previous_line >= 0 and match.line - previous_line > max_line_distance:
            active.clear()
        active.add(match.element)
        previous_line = match.line
        if len(active) == wanted:
            return True

    return False
