"""
Result Cache for preloaded records.

The cache remembers, per group and key, which persisted record a preload
produced, and memoizes the record instance so repeated lookups do not go
back to the store.

Design Principle:
    The store does not know about symbolic keys ("thom", "tour"). The
    cache keeps the key -> identity mapping captured at execution time,
    which survives invalidation, and a separate key -> instance memo,
    which does not.

Caching Guarantee:
    Two lookups of the same (group, key) with no invalidation in between
    return the same instance. After invalidate_all() the next lookup
    fetches from the store exactly once and memoizes the result again.

Usage:
    cache = ResultCache(store)
    cache.remember("users", "thom", user)

    cache.get("users", "thom")   # memo hit, no store call
    cache.invalidate_all()
    cache.get("users", "thom")   # one store.find(), then memoized
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import PreloadedRecordNotFoundError

if TYPE_CHECKING:
    from .store.base import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedIdentity:
    """Where a preloaded record lives in the store."""

    model: type
    identity: Hashable


class ResultCache:
    """
    Per-group memoization of preloaded records.

    Not thread-safe: preloading is a single-threaded setup phase.
    """

    def __init__(self, store: RecordStore):
        self._store = store
        self._identities: dict[str, dict[Hashable, CachedIdentity]] = {}
        self._records: dict[str, dict[Hashable, Any]] = {}

    def remember(self, group: str, key: Hashable, record: Any) -> None:
        """Record a persisted record produced by a preload."""
        self._identities.setdefault(group, {})[key] = CachedIdentity(
            model=type(record),
            identity=self._store.identity(record),
        )
        self._records.setdefault(group, {})[key] = record

    def get(self, group: str, key: Hashable) -> Any:
        """
        Get a preloaded record, fetching it from the store on a memo miss.

        Raises:
            PreloadedRecordNotFoundError: If no record was preloaded under key
        """
        memo = self._records.setdefault(group, {})
        if key in memo:
            logger.debug(f"[cache] Hit: {group}[{key!r}]")
            return memo[key]

        cached = self._identities.get(group, {}).get(key)
        if cached is None:
            raise PreloadedRecordNotFoundError(group, key)

        logger.debug(f"[cache] Miss: {group}[{key!r}], fetching {cached.model.__name__}")
        record = self._store.find(cached.model, cached.identity)
        memo[key] = record
        return record

    def has(self, group: str, key: Hashable) -> bool:
        return key in self._identities.get(group, {})

    def keys(self, group: str) -> list[Hashable]:
        return list(self._identities.get(group, {}))

    def invalidate_all(self) -> None:
        """Drop every memoized instance; identities are kept."""
        dropped = sum(len(records) for records in self._records.values())
        self._records.clear()
        logger.debug(f"[cache] Invalidated {dropped} memoized record(s)")

    def clear(self) -> None:
        """Drop identities and memoized instances for every group."""
        self._identities.clear()
        self._records.clear()

    def __len__(self) -> int:
        return sum(len(identities) for identities in self._identities.values())

    def __repr__(self) -> str:
        return f"<ResultCache groups={list(self._identities)} records={len(self)}>"
