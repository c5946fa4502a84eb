"""Tagged result envelope for intermediate query results.

Every AST node evaluates to a ``Result``: either a term-frequency map
(a leaf, possibly with per-field counts) or an ordered tuple of child
results (a ``Terms`` group). Tags are only ever added on the way up the
tree:

- ``boost`` multiplies with every enclosing Boost factor
- ``calc_type`` set by a child is never overwritten by a parent
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Tuple, Union

from psearch.core.types import TermMap


class CalcType(Enum):
    """How a result contributes at ranking time."""

    NORMAL = "normal"
    NOT = "not"
    MUST = "must"
    MUST_NOT = "must-not"


FieldCounts = Dict[str, TermMap]


@dataclass(frozen=True)
class Result:
    """Payload plus boost/calc-type tags.

    Attributes:
        payload: TermMap for a leaf, tuple of Results for a group
        boost: Multiplicative weight
        calc_type: Contribution mode at ranking time
        field_counts: field name -> TermMap, counts already included in
            ``payload``; only set on leaves
    """

    payload: Union[TermMap, Tuple["Result", ...]]
    boost: float = 1.0
    calc_type: CalcType = CalcType.NORMAL
    field_counts: FieldCounts = field(default_factory=dict)

    @property
    def is_group(self) -> bool:
        return isinstance(self.payload, tuple)

    @property
    def members(self) -> Tuple["Result", ...]:
        """Child results of a group."""
        if not isinstance(self.payload, tuple):
            raise TypeError("Leaf result has no members")
        return self.payload

    @property
    def counts(self) -> TermMap:
        """Term-frequency map of a leaf."""
        if isinstance(self.payload, tuple):
            raise TypeError("Group result has no direct counts")
        return self.payload

    def with_boost(self, factor: float) -> "Result":
        """Multiply the boost tag by ``factor``."""
        return replace(self, boost=self.boost * factor)

    def with_calc_type(self, calc_type: CalcType) -> "Result":
        """Set calc_type unless a child already set a non-normal one."""
        if self.calc_type is not CalcType.NORMAL:
            return self
        return replace(self, calc_type=calc_type)

    def collapse(self) -> TermMap:
        """
        Sum the counts of every leaf into one map.

        Used by combinators that need a single count per document (And,
        Near, Subtract). Boost and calc_type are not applied; field
        breakdowns are dropped.
        """
        if not self.is_group:
            return dict(self.counts)

        total: TermMap = {}
        for leaf in flatten(self):
            for doc_id, count in leaf.counts.items():
                total[doc_id] = total.get(doc_id, 0) + count
        return total


def flatten(result: Result) -> List[Result]:
    """
    Flatten a result tree into tagged leaf results.

    Each returned leaf carries its effective boost (product of all
    enclosing boosts) and its effective calc_type (the innermost non-normal
    tag on its path).

    Rule #1: Iterative, explicit stack.
    """
    out: List[Result] = []
    stack: List[Tuple[Result, float, CalcType]] = [
        (result, 1.0, CalcType.NORMAL)
    ]

    while stack:
        current, boost, inherited = stack.pop()
        effective_boost = boost * current.boost
        effective_type = (
            current.calc_type
            if current.calc_type is not CalcType.NORMAL
            else inherited
        )

        if not current.is_group:
            out.append(
                replace(current, boost=effective_boost, calc_type=effective_type)
            )
            continue

        for member in reversed(current.members):
            stack.append((member, effective_boost, effective_type))

    return out


def present(counts: TermMap) -> TermMap:
    """Entries with a positive count."""
    return {doc_id: count for doc_id, count in counts.items() if count > 0}
