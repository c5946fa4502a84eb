"""
Search configuration.

Provides configuration for query parsing, term expansion, ranking
and score normalization.
"""

from dataclasses import dataclass, field
from typing import Dict


@dataclass
class QueryConfig:
    """Query parsing and evaluation configuration."""

    expand_terms: bool = True  # camel/snake/kebab alternatives for bare terms
    default_boost: float = 1.3  # factor for a bare ^
    near_max_line_distance: int = 3  # lines allowed between ~ group matches


@dataclass
class RankingConfig:
    """BM25 / BM25F ranking configuration.

    k1 and b are fixed at 1.2 / 0.75 in psearch.retrieval.bm25; only the
    field-weighted variant is tunable.
    """

    bm25f: bool = True  # use field-weighted scoring when field counts exist
    field_weights: Dict[str, float] = field(default_factory=dict)
    default_field_weight: float = 1.0


@dataclass
class NormalizerConfig:
    """Probability band for min-max normalized query scores."""

    min_prob: float = 0.5
    max_prob: float = 0.7
    default_prob: float = 0.3  # documents the query did not match
