"""Bounded memo cache for pure string-keyed computations.

Templates are parsed on every render pass; the parse only depends on the
template text, so results are memoized here. Keys are stored as short
xxhash digests so long property strings don't stay resident twice.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from .hash import hash_string

T = TypeVar("T")

_ABSENT = object()


@dataclass
class Stats:
    """Hit/miss counters for one cache."""

    size: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        return self.hits / self.lookups if self.lookups else 0.0


class LRUCache(Generic[T]):
    """
    Least-recently-used memo table.

    Cached values may be falsy or None; a miss is tracked separately from
    the stored value.
    """

    def __init__(self, max_size: int = 512):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.stats = Stats()
        self._entries: OrderedDict[str, T] = OrderedDict()

    @staticmethod
    def _digest(key: str) -> str:
        return hash_string(key, truncate=16)

    def _lookup(self, digest: str) -> object:
        value = self._entries.get(digest, _ABSENT)
        if value is _ABSENT:
            self.stats.misses += 1
        else:
            self._entries.move_to_end(digest)
            self.stats.hits += 1
        return value

    def _store(self, digest: str, value: T) -> None:
        self._entries[digest] = value
        self._entries.move_to_end(digest)
        self._trim()

    def _trim(self) -> None:
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
            self.stats.evictions += 1
        self.stats.size = len(self._entries)

    def get(self, key: str) -> T | None:
        value = self._lookup(self._digest(key))
        return None if value is _ABSENT else value  # type: ignore[return-value]

    def set(self, key: str, value: T) -> None:
        self._store(self._digest(key), value)

    def get_or_set(self, key: str, factory: Callable[[], T]) -> T:
        """Cached value for key, computed by factory on a miss."""
        digest = self._digest(key)
        value = self._lookup(digest)
        if value is _ABSENT:
            value = factory()
            self._store(digest, value)  # type: ignore[arg-type]
        return value  # type: ignore[return-value]

    def resize(self, max_size: int) -> None:
        """Change capacity, evicting the oldest entries if it shrinks."""
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._trim()

    def clear(self) -> None:
        self._entries.clear()
        self.stats.size = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self._digest(key) in self._entries


__all__ = ["LRUCache", "Stats"]
