"""
Shared type definitions for psearch.

Document identifiers are plain strings chosen by the document layer
(``file:/abs/path``, ``mem:notes-1``). Term-frequency maps are built per
query leaf, merged by combinators and consumed by the ranking engine.
"""

from enum import Enum
from typing import Dict, Final, Union

DocumentId = str

# document id -> match count; negative only while subtracting
TermMap = Dict[DocumentId, int]

# document id -> raw relevance score
ScoreMap = Dict[DocumentId, float]


class _DefaultKey(Enum):
    """Sentinel key type for a probability map's fallback entry."""

    DEFAULT = "default"

    def __repr__(self) -> str:
        return "DEFAULT_KEY"


# Key under which a probability map stores the probability of documents it
# does not list. Never a real document id.
DEFAULT_KEY: Final = _DefaultKey.DEFAULT

ProbabilityMap = Dict[Union[DocumentId, _DefaultKey], float]
