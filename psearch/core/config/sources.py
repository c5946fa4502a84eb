"""
Document source and logging configuration.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class SourceConfig:
    """Document source configuration."""

    timeout_seconds: float = 10.0  # per source, per leaf term
    ripgrep_binary: str = "rg"
    include_globs: List[str] = field(default_factory=lambda: ["**/*"])
    max_file_size_kb: int = 2048  # files above this are not read


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    file: Optional[str] = None
