"""Bounded read-through caches for geocoding and travel cost lookups."""

from __future__ import annotations

import re
import threading
from collections import OrderedDict
from typing import Callable, Generic, Optional, TypeVar

from ...models.domain import Coordinate

V = TypeVar("V")

_WHITESPACE = re.compile(r"\s+")


def address_cache_key(address: str) -> str:
    return _WHITESPACE.sub(" ", address.lower().strip())


def distance_cache_key(origin: Coordinate, destination: Coordinate) -> str:
    # 5 decimals is roughly one metre.
    return f"{origin.lat:.5f},{origin.lng:.5f}:{destination.lat:.5f},{destination.lng:.5f}"


class LookupCache(Generic[V]):
    """Thread-safe LRU cache. Entries live until evicted or ``clear()`` is called."""

    def __init__(self, max_entries: int) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, V] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            if key not in self._entries:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return self._entries[key]

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get_or_load(self, key: str, loader: Callable[[], Optional[V]]) -> Optional[V]:
        """Return the cached value or call ``loader``; ``None`` results are not stored."""

        cached = self.get(key)
        if cached is not None:
            return cached
        value = loader()
        if value is not None:
            self.set(key, value)
        return value

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self.hits,
                "misses": self.misses,
            }
