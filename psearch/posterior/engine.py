"""
Posterior engine.

Folds any number of priors into one probability per candidate document:

    posterior(d) = prod(transform(prior.score(d), prior.importance)) * observed(d)

``calculate()`` makes one pass over the candidates, accumulating the
marginal (sum of posteriors) and feeding the incremental Top-N
selection. The first page is served from the selection; any later page
sorts every candidate once and keeps using that full ordering.
"""

from typing import Dict, Iterable, List, Optional

from psearch.core.config import PosteriorConfig
from psearch.core.logging import get_logger
from psearch.core.types import DocumentId
from psearch.posterior.priors import Prior
from psearch.posterior.topn import Ranked, TopNSelection, sort_ranked

logger = get_logger(__name__)

MIN_OBSERVATION_MULTIPLIER = 1e-6


class PosteriorEngine:
    """Combine priors, track observations and page through the ranking."""

    def __init__(
        self,
        priors: Iterable[Prior] = (),
        config: Optional[PosteriorConfig] = None,
    ) -> None:
        """
        Initialize engine.

        Args:
            priors: Initial priors
            config: Top-N capacity, page size and observation factor
        """
        self.config = config or PosteriorConfig()
        assert 0.0 < self.config.observation_factor <= 1.0, "bad observation_factor"

        self.priors: Dict[str, Prior] = {}
        for prior in priors:
            self.priors[prior.name] = prior

        self.top_n = TopNSelection(self.config.top_n)
        self.marginal = 0.0
        self._multipliers: Dict[DocumentId, float] = {}
        self._candidates: List[DocumentId] = []
        self._probabilities: Dict[DocumentId, float] = {}
        self._sorted: Optional[List[Ranked]] = None
        self.stale = True

    # ------------------------------------------------------------------
    # Priors and observations
    # ------------------------------------------------------------------

    def set_prior(self, prior: Prior) -> None:
        """Add or replace a prior (by name)."""
        self.priors[prior.name] = prior
        self.stale = True

    def remove_prior(self, name: str) -> None:
        if self.priors.pop(name, None) is not None:
            self.stale = True

    def observe(self, doc_id: DocumentId) -> float:
        """
        Record that the user looked at a document.

        The document's multiplier is scaled by ``observation_factor`` and
        never drops below 1e-6.

        Returns:
            The new multiplier
        """
        current = self._multipliers.get(doc_id, 1.0)
        updated = max(
            current * self.config.observation_factor, MIN_OBSERVATION_MULTIPLIER
        )
        self._multipliers[doc_id] = updated
        self.stale = True
        logger.debug("Observed document", doc_id=doc_id, multiplier=updated)
        return updated

    def observation_multiplier(self, doc_id: DocumentId) -> float:
        return self._multipliers.get(doc_id, 1.0)

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def probability(self, doc_id: DocumentId) -> float:
        """Unnormalized posterior of one document."""
        value = self.observation_multiplier(doc_id)
        for prior in self.priors.values():
            value *= prior.weight(doc_id)
        return value

    def calculate(self, candidates: Optional[Iterable[DocumentId]] = None) -> None:
        """
        Score every candidate in one pass.

        Rule #1: Single linear pass, Top-N maintained incrementally.

        Args:
            candidates: Documents to rank; the previous set when omitted
        """
        if candidates is not None:
            self._candidates = list(dict.fromkeys(candidates))

        self.top_n.clear()
        self._probabilities = {}
        self._sorted = None
        marginal = 0.0

        for doc_id in self._candidates:
            value = self.probability(doc_id)
            self._probabilities[doc_id] = value
            marginal += value
            self.top_n.offer(doc_id, value)

        self.marginal = marginal
        self.stale = False
        logger.debug(
            "Posterior calculated",
            candidates=len(self._candidates),
            priors=len(self.priors),
            marginal=f"{marginal:.4f}",
        )

    def _ensure_current(self) -> None:
        if self.stale:
            self.calculate()

    def page(self, index: int = 0, size: Optional[int] = None) -> List[Ranked]:
        """
        One page of (document, probability) pairs, best first.

        Args:
            index: Zero-based page number
            size: Page size; config.page_size when omitted
        """
        assert index >= 0, "page index cannot be negative"
        size = size or self.config.page_size
        assert size > 0, "page size must be positive"
        self._ensure_current()

        end = (index + 1) * size
        if self._sorted is None and end <= self.top_n.capacity:
            return self.top_n.items()[index * size : end]

        if self._sorted is None:
            self._sorted = sort_ranked(list(self._probabilities.items()))
            logger.debug("Full sort for paging", documents=len(self._sorted))
        return self._sorted[index * size : end]

    def relative(self, doc_id: DocumentId) -> float:
        """Posterior divided by the marginal (0.0 when the marginal is 0)."""
        self._ensure_current()
        if self.marginal <= 0:
            return 0.0
        return self._probabilities.get(doc_id, 0.0) / self.marginal

    def page_count(self, size: Optional[int] = None) -> int:
        size = size or self.config.page_size
        return (len(self._candidates) + size - 1) // size
