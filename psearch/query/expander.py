"""
Term expansion for improved recall.

Expands a raw query term into a weighted disjunction of alternate
spellings, so that ``fooBarBaz`` also finds ``foo_bar_baz``,
``foo-bar-baz`` and the individual words ``foo``, ``bar`` and ``baz``.

Weights:
- exact term (case-insensitive)          1.0
- joins with "", "_" and "-"             0.7
- individual word parts (word-bounded)   0.3
"""

import unicodedata
from typing import List

from psearch.core.exceptions import EmptyTermError
from psearch.query.ast import Boost, Node, RegexTerm, Subtract, Terms

EXACT_WEIGHT = 1.0
JOIN_WEIGHT = 0.7
PART_WEIGHT = 0.3
JOIN_SEPARATORS = ("", "_", "-")


def _is_word_char(ch: str) -> bool:
    """Letters, combining marks and digits in any script."""
    return unicodedata.category(ch)[0] in ("L", "M", "N")


def _is_upper(ch: str) -> bool:
    return unicodedata.category(ch) in ("Lu", "Lt")


def _is_lower(ch: str) -> bool:
    return unicodedata.category(ch) == "Ll"


def split_term(term: str) -> List[str]:
    """
    Split a term into word parts.

    Parts break on non-word characters and where a lowercase letter is
    followed by an uppercase one. Duplicate parts are dropped, first
    occurrence wins.

    Args:
        term: Raw term, e.g. ``parseHTTP_response``

    Returns:
        Parts in order, e.g. ``["parse", "HTTP", "response"]``
    """
    parts: List[str] = []
    current: List[str] = []
    previous = ""

    for ch in term:
        if not _is_word_char(ch):
            _flush(current, parts)
            previous = ""
            continue
        if previous and _is_lower(previous) and _is_upper(ch):
            _flush(current, parts)
        current.append(ch)
        previous = ch

    _flush(current, parts)
    return parts


def _flush(current: List[str], parts: List[str]) -> None:
    if current:
        part = "".join(current)
        if part not in parts:
            parts.append(part)
        current.clear()


def expand_term(term: str, expand: bool = True) -> Terms:
    """
    Expand a term into weighted alternatives.

    Rule #7: Parameter validation

    Args:
        term: Raw sub-term from the query (must not be blank)
        expand: When False only the exact case-insensitive term is returned

    Returns:
        Terms node whose children are Boost(alternative, weight)

    Raises:
        EmptyTermError: If term is empty or whitespace only
    """
    if not term or not term.strip():
        raise EmptyTermError(f"Cannot expand blank term {term!r}")

    exact = RegexTerm.literal(term, case_insensitive=True)
    if not expand:
        return Terms((Boost(exact, EXACT_WEIGHT),))

    parts = split_term(term)
    alternatives: List[Node] = []

    if len(parts) == 1:
        # whole-word hits are counted by the part alternative below
        whole_word = RegexTerm.literal(term, case_insensitive=True, word_bounded=True)
        alternatives.append(Boost(Subtract(exact, whole_word), EXACT_WEIGHT))
    else:
        alternatives.append(Boost(exact, EXACT_WEIGHT))

    if len(parts) >= 2:
        folded = term.casefold()
        lowered = [part.lower() for part in parts]
        for separator in JOIN_SEPARATORS:
            joined = separator.join(lowered)
            if joined.casefold() != folded:
                alternatives.append(
                    Boost(RegexTerm.literal(joined, case_insensitive=True), JOIN_WEIGHT)
                )

    for part in parts:
        word = RegexTerm.literal(
            part.lower(), case_insensitive=True, word_bounded=True
        )
        alternatives.append(Boost(word, PART_WEIGHT))

    return Terms(tuple(alternatives))
