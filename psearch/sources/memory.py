"""In-memory document source.

Documents are given as a mapping of id to content string, or id to a
property dict (``content``, ``name``, ``size``, ``fields`` ...):

    source = InMemorySource(documents={
        "mem:1": "ABC DEF",
        "mem:2": {"content": "GHI JKL", "fields": {"tag": "letters"}},
    })
"""

from typing import Any, Dict, List, Mapping, Optional

from psearch.core.types import DocumentId, TermMap
from psearch.query.ast import RegexTerm
from psearch.sources.base import CONTENT, DocumentSource, compile_leaf, count_matches


class InMemorySource(DocumentSource):
    """Source over documents held in memory."""

    name = "memory"
    required_args = ("documents",)

    def __init__(
        self, documents: Optional[Mapping[DocumentId, Any]] = None, **args: Any
    ) -> None:
        super().__init__(documents=documents, **args)
        self._ids: List[DocumentId] = []

    async def list_documents(self) -> List[DocumentId]:
        registry = self._require_registry()
        documents: Mapping[DocumentId, Any] = self.args["documents"] or {}

        self._ids = []
        for doc_id, value in documents.items():
            properties: Dict[str, Any] = (
                dict(value) if isinstance(value, Mapping) else {CONTENT: value}
            )
            registry.add(doc_id, **properties)
            self._ids.append(doc_id)
        return list(self._ids)

    async def term_frequency(self, leaf: RegexTerm) -> TermMap:
        registry = self._require_registry()
        pattern = compile_leaf(leaf)

        counts: TermMap = {}
        for doc_id in self._ids:
            content = registry.get_property(doc_id, CONTENT)
            if not content:
                continue
            count = count_matches(pattern, content)
            if count:
                counts[doc_id] = count
        return counts
