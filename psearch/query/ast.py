"""Query AST nodes.

The parser turns a query string into a tree of these immutable nodes; the
query engine walks the tree once per evaluation. Leaf matching goes
through ``RegexTerm`` whose ``regex`` form is understood both by Python's
``re`` module and by ripgrep, so every document source can consume the
same leaf.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple, Union

# Characters with special meaning outside character classes, identical for
# Python re and the Rust regex engine used by ripgrep.
_REGEX_SPECIALS = frozenset("\\.+*?()|[]{}^$")


def escape_literal(text: str) -> str:
    """Escape text so it matches itself in both Python and ripgrep regexes."""
    return "".join("\\" + ch if ch in _REGEX_SPECIALS else ch for ch in text)


@dataclass(frozen=True)
class Term:
    """A bare word-run (expanded at evaluation) or a quoted literal."""

    text: str
    literal: bool = False


@dataclass(frozen=True)
class RegexTerm:
    """A leaf matched by regular expression.

    ``pattern`` is kept apart from the matching flags so the leaf can be
    rendered for different engines; ``regex`` is the combined form.
    """

    pattern: str
    case_insensitive: bool = False
    word_bounded: bool = False

    @property
    def regex(self) -> str:
        """Full regex with inline flags and word boundaries applied."""
        body = self.pattern
        if self.word_bounded:
            body = rf"\b(?:{body})\b"
        if self.case_insensitive:
            body = "(?i)" + body
        return body

    @classmethod
    def literal(
        cls, text: str, case_insensitive: bool = False, word_bounded: bool = False
    ) -> "RegexTerm":
        """Leaf matching ``text`` verbatim."""
        return cls(escape_literal(text), case_insensitive, word_bounded)


@dataclass(frozen=True)
class Terms:
    """Ordered grouping whose children are ranked independently and summed."""

    children: Tuple["Node", ...]


@dataclass(frozen=True)
class And:
    """Documents matched by every child; count is the weakest child's count."""

    children: Tuple["Node", ...]


@dataclass(frozen=True)
class Near:
    """Every child must match within a bounded number of lines."""

    children: Tuple["Node", ...]


@dataclass(frozen=True)
class Not:
    """Subtracts the child's score at ranking time."""

    child: "Node"


@dataclass(frozen=True)
class Must:
    """Restricts the final result set to documents the child matched."""

    child: "Node"


@dataclass(frozen=True)
class MustNot:
    """Removes every document the child matched."""

    child: "Node"


@dataclass(frozen=True)
class Boost:
    """Multiplies the child's contribution by ``factor``."""

    child: "Node"
    factor: float


@dataclass(frozen=True)
class Subtract:
    """Counts of ``general`` minus counts of ``specific``, per document."""

    general: "Node"
    specific: "Node"


Node = Union[Term, RegexTerm, Terms, And, Near, Not, Must, MustNot, Boost, Subtract]
Leaf = Union[Term, RegexTerm]

NEGATING_NODES = (Not, MustNot)


def children_of(node: Node) -> Tuple[Node, ...]:
    """Direct children of a node, in evaluation order."""
    if isinstance(node, (Terms, And, Near)):
        return node.children
    if isinstance(node, (Not, Must, MustNot, Boost)):
        return (node.child,)
    if isinstance(node, Subtract):
        return (node.general, node.specific)
    return ()


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of the tree (iterative)."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(children_of(current)))


def leaves(node: Node) -> Iterator[Leaf]:
    """All leaf nodes in left-to-right order."""
    for current in walk(node):
        if isinstance(current, (Term, RegexTerm)):
            yield current


def positive_leaves(node: Node) -> Iterator[Leaf]:
    """Leaves that contribute positive evidence.

    Skips Not/MustNot subtrees and the subtracted side of Subtract nodes;
    used to decide what gets highlighted in a document preview.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, NEGATING_NODES):
            continue
        if isinstance(current, (Term, RegexTerm)):
            yield current
            continue
        if isinstance(current, Subtract):
            stack.append(current.general)
            continue
        stack.extend(reversed(children_of(current)))
