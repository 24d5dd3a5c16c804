"""Search: cached strategy chain (semantic first, basic text as fallback).

A strategy only falls through to the next one when it raises StoreError;
an empty result is a valid answer and is cached like any other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .cache import SearchCache, cache_key
from .config import log
from .errors import SearchError, StoreError
from .store import Artifact, ArtifactStore, Query

ALL_TYPES = "all"


@dataclass(frozen=True)
class SearchStrategy:
    """One link of the chain: a name plus a query builder."""

    name: str
    build: Callable[[str, int, str], Query]
    degraded: bool = False


def _semantic_query(term: str, limit: int, type_filter: str) -> Query:
    return Query(
        match=term,
        match_fields=("content", "artifact_type", "context"),
        artifact_type=None if type_filter == ALL_TYPES else type_filter,
        order_by="relevance_score",
        descending=True,
        limit=limit,
    )


def _basic_query(term: str, limit: int, type_filter: str) -> Query:
    return Query(match=term, match_fields=("content",), order_by="created_at", descending=True, limit=limit)


SEMANTIC = SearchStrategy("semantic", _semantic_query)
BASIC = SearchStrategy("basic", _basic_query, degraded=True)
DEFAULT_CHAIN = (SEMANTIC, BASIC)


@dataclass
class SearchResult:
    term: str
    limit: int
    type_filter: str
    artifacts: list[Artifact] = field(default_factory=list)
    strategy: str = "semantic"
    cached: bool = False
    degraded: bool = False
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "term": self.term,
            "limit": self.limit,
            "type": self.type_filter,
            "strategy": self.strategy,
            "cached": self.cached,
            "degraded": self.degraded,
            "errors": list(self.errors),
            "count": len(self.artifacts),
            "results": [a.to_dict() for a in self.artifacts],
        }


class SearchCoordinator:
    """Runs the strategy chain against a store and owns the result cache."""

    def __init__(self, store: ArtifactStore, cache: Optional[SearchCache] = None,
                 strategies: Sequence[SearchStrategy] = DEFAULT_CHAIN,
                 use_cache: bool = True):
        if not strategies:
            raise ValueError("at least one search strategy is required")
        self.store = store
        self.cache = cache if cache is not None else SearchCache()
        self.strategies = tuple(strategies)
        self.use_cache = use_cache

    def search(self, term: str, limit: int, type_filter: str = ALL_TYPES) -> SearchResult:
        """Search for ``term``.

        Raises:
            SearchError: every strategy failed; nothing is cached.
        """
        type_filter = type_filter or ALL_TYPES
        key = cache_key(term, limit, type_filter)

        if self.use_cache:
            entry = self.cache.get(key)
            if entry is not None:
                log.debug("search cache hit: %s", key)
                return SearchResult(
                    term=term, limit=limit, type_filter=type_filter,
                    artifacts=list(entry.results), strategy=entry.strategy,
                    cached=True, degraded=self._is_degraded(entry.strategy),
                )

        errors = []
        last_err = None
        for strategy in self.strategies:
            try:
                rows = self.store.query(strategy.build(term, limit, type_filter))
            except StoreError as e:
                log.warning("search strategy %s failed: %s", strategy.name, e)
                errors.append(f"{strategy.name}: {e}")
                last_err = e
                continue

            if self.use_cache:
                self.cache.put(key, rows, strategy=strategy.name)
            return SearchResult(
                term=term, limit=limit, type_filter=type_filter,
                artifacts=rows, strategy=strategy.name,
                degraded=strategy.degraded, errors=errors,
            )

        raise SearchError("all search strategies failed: " + "; ".join(errors)) from last_err

    def clear_cache(self) -> int:
        n = self.cache.clear()
        log.info("search cache cleared (%d entries)", n)
        return n

    def _is_degraded(self, name: str) -> bool:
        return any(s.degraded for s in self.strategies if s.name == name)
