"""
Per-generation computation cache.

Each entry is the task computing its value, so concurrent requests for
the same key share one computation (one writer per key). Entries are
append-only within a generation; ``reset()`` moves to a new generation,
cancels pending computations and drops every entry, so a late result of
an old generation is never written into the new one.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, TypeVar

from psearch.core.exceptions import StaleGenerationError
from psearch.core.logging import get_logger

logger = get_logger(__name__)

V = TypeVar("V")


class GenerationCache(Generic[V]):
    """
    Async get-or-compute cache bound to a session generation.

    Features:
    - Shared in-flight computations per key
    - Stale generation requests rejected
    - Hit/miss statistics
    """

    def __init__(self, name: str, generation: int = 0) -> None:
        self.name = name
        self.generation = generation
        self._entries: Dict[Hashable, "asyncio.Task[V]"] = {}
        self._stats = {"hits": 0, "misses": 0, "cancelled": 0}

    async def get_or_compute(
        self,
        key: Hashable,
        generation: int,
        factory: Callable[[], Awaitable[V]],
    ) -> V:
        """
        Return the cached value for ``key`` or compute it once.

        Waiters are shielded: cancelling one waiter does not cancel the
        shared computation.

        Raises:
            StaleGenerationError: If ``generation`` is not the current one
        """
        if generation != self.generation:
            raise StaleGenerationError(generation, self.generation)

        task = self._entries.get(key)
        if task is None:
            self._stats["misses"] += 1
            task = asyncio.ensure_future(factory())
            self._entries[key] = task
            task.add_done_callback(lambda t, k=key: self._drop_failed(k, t))
        else:
            self._stats["hits"] += 1

        value = await asyncio.shield(task)
        if generation != self.generation:
            raise StaleGenerationError(generation, self.generation)
        return value

    def _drop_failed(self, key: Hashable, task: "asyncio.Task[V]") -> None:
        """Failed computations are not cached."""
        if task.cancelled() or task.exception() is not None:
            if self._entries.get(key) is task:
                del self._entries[key]

    def reset(self, generation: int) -> int:
        """
        Switch to ``generation``, cancelling pending computations.

        Returns:
            Number of cancelled computations
        """
        cancelled = 0
        for task in self._entries.values():
            if not task.done():
                task.cancel()
                cancelled += 1

        self._entries.clear()
        self.generation = generation
        self._stats["cancelled"] += cancelled
        if cancelled:
            logger.debug(
                "Cancelled stale computations", cache=self.name, count=cancelled
            )
        return cancelled

    def __contains__(self, key: Hashable) -> bool:
        task = self._entries.get(key)
        return task is not None and task.done() and not task.cancelled()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total if total > 0 else 0.0
        return {
            "name": self.name,
            "generation": self.generation,
            "size": len(self._entries),
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "cancelled": self._stats["cancelled"],
            "hit_rate": round(hit_rate, 3),
        }
