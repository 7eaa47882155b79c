"""
Recently-used question identifiers.

Insertion-ordered so that the oldest half can be evicted when the
fallback bank runs short. Question generation runs in worker threads,
so every operation takes the lock.
"""
import threading
from typing import Dict, Iterable, Iterator, List


class RecentlyUsedSet:
    """Ordered set of question ids excluded from the next generation request."""

    def __init__(self, ids: Iterable[str] = ()):
        self._ids: Dict[str, None] = {}
        self._lock = threading.RLock()
        self.add_many(ids)

    def add(self, question_id: str) -> None:
        with self._lock:
            self._ids.setdefault(question_id, None)

    def add_many(self, ids: Iterable[str]) -> None:
        with self._lock:
            for question_id in ids:
                self._ids.setdefault(question_id, None)

    def evict_oldest_half(self) -> int:
        """
        Drop the older half of the recorded ids.

        Returns:
            Number of ids evicted (at least one when the set is not empty)
        """
        with self._lock:
            if not self._ids:
                return 0
            count = max(1, len(self._ids) // 2)
            for question_id in list(self._ids)[:count]:
                del self._ids[question_id]
            return count

    def clear(self) -> None:
        with self._lock:
            self._ids.clear()

    def snapshot(self) -> List[str]:
        """Ids in insertion order, oldest first."""
        with self._lock:
            return list(self._ids)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"RecentlyUsedSet({self.snapshot()!r})"
