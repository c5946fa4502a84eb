"""
Posterior layer: priors, importance transforms and ranked paging.

    from psearch.posterior import PosteriorEngine, Prior, Importance

    engine = PosteriorEngine([Prior("query", probabilities, importance="high")])
    engine.calculate(documents)
    first_page = engine.page(0)
"""

from psearch.posterior.engine import PosteriorEngine
from psearch.posterior.importance import Importance, beta_table, transform
from psearch.posterior.priors import Prior, query_prior
from psearch.posterior.topn import TopNSelection

__all__ = [
    "PosteriorEngine",
    "Importance",
    "beta_table",
    "transform",
    "Prior",
    "query_prior",
    "TopNSelection",
]
