"""Fixed-capacity incremental Top-N selection.

Holds the N highest-probability documents seen so far, sorted
descending, ties broken by document id descending. Offering a document
costs O(N) at worst and O(1) once the selection is full and the document
falls below the threshold.
"""

from typing import List, Optional, Tuple

from psearch.core.types import DocumentId

Ranked = Tuple[DocumentId, float]


def ranks_before(a: Ranked, b: Ranked) -> bool:
    """Ordering used everywhere: probability, then id, both descending."""
    return (a[1], a[0]) > (b[1], b[0])


def sort_ranked(items: List[Ranked]) -> List[Ranked]:
    """Full sort with the same ordering as the selection."""
    return sorted(items, key=lambda item: (item[1], item[0]), reverse=True)


class TopNSelection:
    """Insertion-sorted array of the best ``capacity`` documents."""

    def __init__(self, capacity: int) -> None:
        assert capacity > 0, "capacity must be positive"
        self.capacity = capacity
        self._items: List[Ranked] = []

    def __len__(self) -> int:
        return len(self._items)

    @property
    def full(self) -> bool:
        return len(self._items) >= self.capacity

    @property
    def threshold(self) -> Optional[Ranked]:
        """Lowest kept entry once full; anything not above it is rejected."""
        return self._items[-1] if self.full else None

    def offer(self, doc_id: DocumentId, probability: float) -> bool:
        """
        Insert a document if it belongs in the top N.

        Returns:
            True if the document was kept
        """
        entry = (doc_id, probability)
        if self.full and not ranks_before(entry, self._items[-1]):
            return False

        # Rule #2: bounded by capacity
        index = len(self._items)
        while index > 0 and ranks_before(entry, self._items[index - 1]):
            index -= 1
        self._items.insert(index, entry)

        if len(self._items) > self.capacity:
            self._items.pop()
        return True

    def items(self) -> List[Ranked]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()
