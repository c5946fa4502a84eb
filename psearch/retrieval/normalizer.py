"""Min-max score normalization into a probability band.

Raw BM25 scores are mapped linearly into ``[min_prob, max_prob]``
(default ``[0.5, 0.7]``). Documents the query did not match get
``default_prob`` (0.3) through the map's ``DEFAULT_KEY`` entry.

JPL Power of Ten Compliance:
- Rule #1: No recursion
- Rule #5: Assert preconditions
- Rule #9: Complete type hints
"""

from __future__ import annotations

from typing import Optional

from psearch.core.config import NormalizerConfig
from psearch.core.types import DEFAULT_KEY, ProbabilityMap, ScoreMap


def normalize_scores(
    scores: ScoreMap,
    config: Optional[NormalizerConfig] = None,
) -> ProbabilityMap:
    """Map scores into the configured probability band.

    Args:
        scores: doc_id -> raw score.
        config: Probability band; defaults to 0.5 / 0.7 / 0.3.

    Returns:
        doc_id -> probability, plus DEFAULT_KEY -> default probability.
        When every score is equal each document gets ``max_prob``.
    """
    assert scores is not None, "scores cannot be None"
    config = config or NormalizerConfig()

    probabilities: ProbabilityMap = {DEFAULT_KEY: config.default_prob}
    if not scores:
        return probabilities

    min_val = min(scores.values())
    max_val = max(scores.values())
    score_range = max_val - min_val
    band = config.max_prob - config.min_prob

    for doc_id, raw_score in scores.items():
        if score_range > 0:
            probabilities[doc_id] = config.min_prob + band * (
                (raw_score - min_val) / score_range
            )
        else:
            probabilities[doc_id] = config.max_prob

    return probabilities
