"""Immutable evaluation context passed down the query tree."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class QueryContext:
    """Per-evaluation settings handed to every parser/engine call.

    A new context is derived for a subtree instead of mutating shared
    state, so two queries evaluated on the same event loop never see each
    other's flags.
    """

    expand: bool = True
    field_filter: Optional[str] = None
    presence_only: bool = False

    def without_expansion(self) -> "QueryContext":
        """Context for Near children and other exact-match subtrees."""
        if not self.expand:
            return self
        return replace(self, expand=False)

    def for_presence(self) -> "QueryContext":
        """Context for subtrees where only the matching document set matters."""
        if self.presence_only:
            return self
        return replace(self, presence_only=True)
