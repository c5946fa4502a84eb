"""
Shared pytest fixtures and configuration for psearch tests.

This file is automatically discovered by pytest and provides fixtures
that can be used across all test files.

Fixture Organization
--------------------
- **corpus**: Small in-memory document set with known term counts
- **memory_source**: InMemorySource over the corpus
- **session**: Session with the memory source attached
- **config**: Default configuration
- **text_tree**: Temporary directory with a few text files
"""

from pathlib import Path
from typing import Dict, Generator

import pytest

from psearch.core.config import Config
from psearch.retrieval.session import Session
from psearch.sources import InMemorySource


# ============================================================================
# Document Fixtures
# ============================================================================


@pytest.fixture
def corpus() -> Dict[str, str]:
    """Three documents: one matches ABC twice, one once, one never."""
    return {
        "a": "ABC DEF ABC",
        "b": "DEF GHI ABC",
        "c": "XYZ",
    }


@pytest.fixture
def memory_source(corpus: Dict[str, str]) -> InMemorySource:
    return InMemorySource(documents=corpus)


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def session(memory_source: InMemorySource, config: Config) -> Session:
    """Session over the in-memory corpus."""
    return Session([memory_source], config)


# ============================================================================
# Filesystem Fixtures
# ============================================================================


@pytest.fixture
def text_tree(tmp_path: Path) -> Generator[Path, None, None]:
    """Directory with a few text files and one hidden directory."""
    (tmp_path / "parser.py").write_text(
        "def parseQuery(text):\n    return parse_query(text)\n", encoding="utf-8"
    )
    (tmp_path / "notes.txt").write_text(
        "the fox ran\nfar away\n\n\n\n\nthe bear slept\n", encoding="utf-8"
    )
    (tmp_path / "empty.txt").write_text("", encoding="utf-8")
    hidden = tmp_path / ".git"
    hidden.mkdir()
    (hidden / "config").write_text("parseQuery", encoding="utf-8")
    yield tmp_path
