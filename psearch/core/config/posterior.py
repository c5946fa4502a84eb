"""
Posterior configuration.

Controls how the query probability is weighted against other priors,
how many results are kept in the incremental top-N selection, and how
strongly an observation lowers a document's probability.
"""

from dataclasses import dataclass


@dataclass
class PosteriorConfig:
    """Posterior engine configuration."""

    top_n: int = 50  # capacity of the incremental selection
    page_size: int = 10
    query_importance: str = "high"
    observation_factor: float = 0.3  # multiplier applied per observation
