"""
Ripgrep subprocess document source.

Counts matches with ``rg --count-matches``, one subprocess per leaf term.
Leaf regexes use the syntax shared by Python ``re`` and ripgrep's Rust
regex engine (inline ``(?i)``, ``\\b`` boundaries), so the same leaf is
valid for every source.

A cancelled count (session restart) kills its subprocess before the
cancellation propagates.
"""

import asyncio
import os
from typing import Any, Dict, List, Optional, Sequence, Set

from psearch.core.config import SourceConfig
from psearch.core.exceptions import SourceFailure
from psearch.core.logging import get_logger
from psearch.core.types import DocumentId, TermMap
from psearch.query.ast import RegexTerm
from psearch.sources.base import DocumentSource
from psearch.sources.filesystem import file_id, register_file

logger = get_logger(__name__)

# rg exit codes: 0 = matches, 1 = no matches, 2 = error
RG_NO_MATCH = 1


class RipgrepSource(DocumentSource):
    """Source backed by the ``rg`` binary."""

    name = "ripgrep"
    required_args = ("paths",)

    def __init__(
        self,
        paths: Optional[Sequence[str]] = None,
        config: Optional[SourceConfig] = None,
        **args: Any,
    ) -> None:
        super().__init__(paths=list(paths) if paths else None, **args)
        self.config = config or SourceConfig()

    def _base_command(self) -> List[str]:
        command = [self.config.ripgrep_binary, "--null", "--no-messages"]
        command += ["--max-filesize", f"{self.config.max_file_size_kb}K"]
        for glob in self.config.include_globs:
            if glob not in ("*", "**/*"):
                command += ["--glob", glob]
        return command

    async def _run(self, command: List[str], ok_codes: Set[int]) -> str:
        """
        Run rg and return stdout.

        Raises:
            SourceFailure: On a missing binary or an unexpected exit code
        """
        logger.debug("Running ripgrep", command=" ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise SourceFailure(self.name, f"binary not found: {command[0]}") from e

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            logger.debug("Killed cancelled ripgrep process", pid=process.pid)
            raise

        if process.returncode not in ok_codes:
            reason = stderr.decode("utf-8", errors="replace").strip()
            raise SourceFailure(
                self.name, f"exit code {process.returncode}: {reason or 'no output'}"
            )
        return stdout.decode("utf-8", errors="replace")

    async def list_documents(self) -> List[DocumentId]:
        registry = self._require_registry()
        command = self._base_command() + ["--files", "--"] + list(self.args["paths"])
        output = await self._run(command, {0, RG_NO_MATCH})

        ids: List[DocumentId] = []
        for path in output.split("\0"):
            path = path.strip("\n")
            if not path:
                continue
            try:
                size = os.path.getsize(path)
            except OSError:
                continue
            ids.append(register_file(registry, path, size))

        logger.debug("Listed files", source=self.name, files=len(ids))
        return ids

    async def term_frequency(self, leaf: RegexTerm) -> TermMap:
        command = self._base_command() + [
            "--count-matches",
            "--with-filename",
            "-e",
            leaf.regex,
            "--",
        ]
        output = await self._run(command + list(self.args["paths"]), {0, RG_NO_MATCH})
        return parse_count_output(output)


def parse_count_output(output: str) -> TermMap:
    """
    Parse ``rg --count-matches --null`` output.

    Each line is ``path NUL count``.
    """
    counts: Dict[DocumentId, int] = {}
    for line in output.splitlines():
        path, sep, count_text = line.partition("\0")
        if not sep:
            continue
        try:
            count = int(count_text)
        except ValueError:
            continue
        if count > 0:
            doc_id = file_id(path)
            counts[doc_id] = counts.get(doc_id, 0) + count
    return counts
