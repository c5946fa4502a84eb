"""
Configuration Management for psearch.

Dataclass hierarchy mapped onto a YAML file (psearch.yaml), with
environment variable expansion and overrides.

    from psearch.core.config import Config, QueryConfig

Loading functions live in config_loaders to avoid circular imports:

    from psearch.core.config_loaders import load_config
"""

from psearch.core.config.config import Config
from psearch.core.config.posterior import PosteriorConfig
from psearch.core.config.search import NormalizerConfig, QueryConfig, RankingConfig
from psearch.core.config.sources import LoggingConfig, SourceConfig

__all__ = [
    "Config",
    "QueryConfig",
    "RankingConfig",
    "NormalizerConfig",
    "PosteriorConfig",
    "SourceConfig",
    "LoggingConfig",
]
