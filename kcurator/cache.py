"""Search cache: TTL-bounded result sets keyed by normalized query."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .store import Artifact

DEFAULT_TTL_MS = 300_000


def cache_key(term: str, limit: int, type_filter: str) -> tuple:
    """``(normalized term, limit, type)``; case and spacing don't split entries."""
    normalized = re.sub(r"\s+", " ", (term or "").strip().lower())
    return (normalized, limit, type_filter)


@dataclass
class CacheEntry:
    key: tuple
    results: list[Artifact]
    inserted_at: float
    strategy: str = "semantic"


@dataclass
class SearchCache:
    """Key/value store whose entries expire ``ttl_ms`` after insertion.

    An expired entry is never returned; it is dropped on the lookup that finds
    it, or by the sweep every ``put`` runs first. ``clock`` returns seconds
    (``time.time`` by default).
    """

    ttl_ms: int = DEFAULT_TTL_MS
    clock: Callable[[], float] = time.time
    _entries: dict = field(default_factory=dict, repr=False)

    def get(self, key) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry):
            del self._entries[key]
            return None
        return entry

    def put(self, key, results: list[Artifact], strategy: str = "semantic") -> CacheEntry:
        self.purge_expired()
        entry = CacheEntry(key=key, results=list(results), inserted_at=self.clock(), strategy=strategy)
        self._entries[key] = entry
        return entry

    def clear(self) -> int:
        n = len(self._entries)
        self._entries.clear()
        return n

    def purge_expired(self) -> int:
        stale = [k for k, e in self._entries.items() if self._expired(e)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def __contains__(self, key) -> bool:
        return self.get(key) is not None

    @property
    def size(self) -> int:
        return len(self._entries)

    def _expired(self, entry: CacheEntry) -> bool:
        return (self.clock() - entry.inserted_at) * 1000 >= self.ttl_ms
