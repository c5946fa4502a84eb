"""Priors: independent per-document beliefs folded into the posterior."""

from dataclasses import dataclass, field
from typing import Union

from psearch.core.types import DEFAULT_KEY, DocumentId, ProbabilityMap
from psearch.posterior.importance import Importance, transform

NO_INFORMATION = 0.5


@dataclass
class Prior:
    """
    A named document -> probability belief.

    Attributes:
        name: Identifier (``query``, ``recently-modified`` ...)
        scores: Probabilities per document; may carry a DEFAULT_KEY entry
        default: Fallback when neither the document nor DEFAULT_KEY is listed
        importance: Strength of the prior's influence
        complement: Use ``1 - p`` instead of ``p``
    """

    name: str
    scores: ProbabilityMap = field(default_factory=dict)
    default: float = NO_INFORMATION
    importance: Importance = Importance.MEDIUM
    complement: bool = False

    def __post_init__(self) -> None:
        self.importance = Importance.parse(self.importance)
        assert 0.0 <= self.default <= 1.0, "default must be a probability"

    def score(self, doc_id: DocumentId) -> float:
        """Probability for a document after default fallback and complement."""
        if doc_id in self.scores:
            probability = self.scores[doc_id]
        elif DEFAULT_KEY in self.scores:
            probability = self.scores[DEFAULT_KEY]
        else:
            probability = self.default
        return 1.0 - probability if self.complement else probability

    def weight(self, doc_id: DocumentId) -> float:
        """Importance-transformed probability used as posterior factor."""
        return transform(self.score(doc_id), self.importance)


def query_prior(
    probabilities: ProbabilityMap,
    importance: Union[str, Importance] = Importance.HIGH,
    name: str = "query",
) -> Prior:
    """Prior over the probabilities produced by a query run."""
    return Prior(
        name=name, scores=probabilities, importance=Importance.parse(importance)
    )
