"""
Main configuration class for psearch.

This module provides the Config dataclass that aggregates all sub-configs
and handles validation and YAML parsing.

Architecture Context
--------------------
Configuration sits at the Core layer and is consumed by every other module.
The Config object is typically created once at startup and passed to the
Session, which hands the relevant sections to the query engine, the
ranking engine and the posterior engine.

    User's psearch.yaml
           ↓
    load_config() → Config object
           ↓
    Passed to: Session, QueryEngine, Bm25Ranker, PosteriorEngine, CLI

Configuration Hierarchy
-----------------------
    Config
    ├── QueryConfig        # Expansion, default boost, near distance
    ├── RankingConfig      # BM25F field weights
    ├── NormalizerConfig   # Probability band
    ├── PosteriorConfig    # Top-N capacity, page size, query importance
    ├── SourceConfig       # Timeouts, ripgrep binary, globs
    └── LoggingConfig      # Level and optional log file

Environment Variables
---------------------
String values support ${VAR_NAME} and ${VAR_NAME:default}:

    sources:
      ripgrep_binary: ${PSEARCH_RG:rg}

Usage Example
-------------
    config = load_config()
    distance = config.query.near_max_line_distance
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

from psearch.core.config.posterior import PosteriorConfig
from psearch.core.config.search import NormalizerConfig, QueryConfig, RankingConfig
from psearch.core.config.sources import LoggingConfig, SourceConfig
from psearch.core.exceptions import ConfigurationError

VALID_IMPORTANCE = ("none", "low", "medium", "high", "critical", "filter")


@dataclass
class Config:
    """Main psearch configuration."""

    query: QueryConfig = field(default_factory=QueryConfig)
    ranking: RankingConfig = field(default_factory=RankingConfig)
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    posterior: PosteriorConfig = field(default_factory=PosteriorConfig)
    sources: SourceConfig = field(default_factory=SourceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Validates:
        - Probability band ordering
        - Positive distances, capacities and timeouts
        - Importance level names
        """
        assert isinstance(self.query, QueryConfig), "query must be QueryConfig"
        assert isinstance(
            self.normalizer, NormalizerConfig
        ), "normalizer must be NormalizerConfig"
        assert isinstance(
            self.posterior, PosteriorConfig
        ), "posterior must be PosteriorConfig"

        self._validate_band()

        if self.query.near_max_line_distance < 0:
            raise ConfigurationError("query.near_max_line_distance must be >= 0")
        if self.query.default_boost <= 0:
            raise ConfigurationError("query.default_boost must be positive")
        if self.posterior.top_n < 1 or self.posterior.page_size < 1:
            raise ConfigurationError("posterior.top_n and page_size must be >= 1")
        if not 0.0 < self.posterior.observation_factor <= 1.0:
            raise ConfigurationError("posterior.observation_factor must be in (0, 1]")
        if self.posterior.query_importance.lower() not in VALID_IMPORTANCE:
            raise ConfigurationError(
                f"posterior.query_importance must be one of {VALID_IMPORTANCE}, "
                f"got: {self.posterior.query_importance}"
            )
        if self.sources.timeout_seconds <= 0:
            raise ConfigurationError("sources.timeout_seconds must be positive")

    def _validate_band(self) -> None:
        """Check 0 <= default <= min <= max <= 1 for the normalizer band."""
        band = self.normalizer
        if not (0.0 <= band.default_prob <= band.min_prob <= band.max_prob <= 1.0):
            raise ConfigurationError(
                "normalizer band must satisfy 0 <= default_prob <= min_prob "
                f"<= max_prob <= 1, got {band.default_prob}/{band.min_prob}/"
                f"{band.max_prob}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @staticmethod
    def _filter_fields(cls_type: Any, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Filter dict to only keys that match dataclass fields, handling None."""
        if not data:
            return {}
        valid_keys = {f.name for f in fields(cls_type)}
        return {k: v for k, v in data.items() if k in valid_keys}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        # Import here to avoid circular dependency
        from psearch.core.config_loaders import expand_env_vars

        data = expand_env_vars(data or {})

        return cls(
            query=QueryConfig(**cls._filter_fields(QueryConfig, data.get("query"))),
            ranking=RankingConfig(
                **cls._filter_fields(RankingConfig, data.get("ranking"))
            ),
            normalizer=NormalizerConfig(
                **cls._filter_fields(NormalizerConfig, data.get("normalizer"))
            ),
            posterior=PosteriorConfig(
                **cls._filter_fields(PosteriorConfig, data.get("posterior"))
            ),
            sources=SourceConfig(
                **cls._filter_fields(SourceConfig, data.get("sources"))
            ),
            logging=LoggingConfig(
                **cls._filter_fields(LoggingConfig, data.get("logging"))
            ),
        )
