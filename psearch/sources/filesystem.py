"""
Filesystem document source.

Walks one or more paths, registers every matching file as a document
(content read lazily) and counts leaf matches in a worker thread so the
event loop stays free for other sources.
"""

import asyncio
import fnmatch
import os
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from psearch.core.config import SourceConfig
from psearch.core.logging import get_logger
from psearch.core.types import DocumentId, TermMap
from psearch.query.ast import RegexTerm
from psearch.sources.base import (
    CONTENT,
    DocumentRegistry,
    DocumentSource,
    compile_leaf,
    count_matches,
)

logger = get_logger(__name__)

FILE_PREFIX = "file:"

# Rule #2: Fixed upper bound on files listed per source
MAX_FILES = 100_000


def file_id(path: str) -> DocumentId:
    """Canonical document id for a filesystem path."""
    return FILE_PREFIX + os.path.abspath(path)


def read_text(path: str) -> str:
    """Read a file as text; undecodable bytes are replaced."""
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def register_file(registry: DocumentRegistry, path: str, size: int) -> DocumentId:
    """Register a file with lazily read content."""
    doc_id = file_id(path)
    registry.add(
        doc_id,
        name=path,
        size=size,
        path=os.path.abspath(path),
        content=lambda: read_text(path),
    )
    return doc_id


def _matches_globs(relative: str, globs: Sequence[str]) -> bool:
    if not globs:
        return True
    name = os.path.basename(relative)
    for pattern in globs:
        # "**/" also matches files at the top level
        if pattern.startswith("**/") and fnmatch.fnmatch(name, pattern[3:]):
            return True
        if fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(name, pattern):
            return True
    return False


def iter_files(
    paths: Iterable[str], globs: Sequence[str], max_size_bytes: int
) -> List[str]:
    """
    Expand files and directories into a sorted file list.

    Hidden directories are skipped. Files larger than ``max_size_bytes``
    are ignored.
    """
    found: List[str] = []
    for root in paths:
        if os.path.isfile(root):
            found.append(root)
            continue
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for filename in sorted(filenames):
                full = os.path.join(dirpath, filename)
                relative = os.path.relpath(full, root)
                if not _matches_globs(relative, globs):
                    continue
                try:
                    if os.path.getsize(full) > max_size_bytes:
                        continue
                except OSError:
                    continue
                found.append(full)
                if len(found) >= MAX_FILES:
                    logger.warning("File limit reached", limit=MAX_FILES, root=root)
                    return found
    return found


class FileSystemSource(DocumentSource):
    """Source over files below the given paths."""

    name = "filesystem"
    required_args = ("paths",)

    def __init__(
        self,
        paths: Optional[Sequence[str]] = None,
        config: Optional[SourceConfig] = None,
        **args: Any,
    ) -> None:
        super().__init__(paths=list(paths) if paths else None, **args)
        self.config = config or SourceConfig()
        self._files: List[str] = []

    async def list_documents(self) -> List[DocumentId]:
        registry = self._require_registry()
        self._files = await asyncio.to_thread(
            iter_files,
            self.args["paths"],
            self.config.include_globs,
            self.config.max_file_size_kb * 1024,
        )

        ids: List[DocumentId] = []
        for path in self._files:
            try:
                size = os.path.getsize(path)
            except OSError as e:
                logger.warning("Skipping unreadable file", path=path, error=str(e))
                continue
            ids.append(register_file(registry, path, size))

        logger.debug("Listed files", source=self.name, files=len(ids))
        return ids

    async def term_frequency(self, leaf: RegexTerm) -> TermMap:
        return await asyncio.to_thread(self._count, leaf)

    def _count(self, leaf: RegexTerm) -> TermMap:
        pattern = compile_leaf(leaf)
        registry = self._require_registry()

        counts: TermMap = {}
        for path in self._files:
            doc_id = file_id(path)
            try:
                content = registry.get_property(doc_id, CONTENT)
            except OSError as e:
                logger.debug("Cannot read file", path=path, error=str(e))
                continue
            if not content:
                continue
            count = count_matches(pattern, content)
            if count:
                counts[doc_id] = count
        return counts


def existing_paths(paths: Iterable[str]) -> List[str]:
    """Paths that exist on disk, in the given order."""
    return [p for p in paths if Path(p).exists()]
