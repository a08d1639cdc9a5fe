"""In-process caching of resolved permission sets"""
from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from qualitytrack.domain.entities import ResolvedPermissionSet
from qualitytrack.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class _CacheEntry:
    resolved: ResolvedPermissionSet
    fetched_at: float


class InMemoryPermissionCache:
    """
    Thread-safe TTL cache keyed by user id.

    A single coarse lock guards the dict. Callers never await while holding
    it: the resolver fetches from the store outside the cache and inserts
    the result with one set() call. Faults inside the cache are logged and
    reported as a miss so resolution falls through to the store.

    Every invalidation bumps a generation counter. A resolver reads
    generation() before fetching and hands it back to set(); if any
    invalidation happened in between, the fetched set may predate it and
    is not stored.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[int, _CacheEntry] = {}
        self._generation = 0
        self._lock = threading.Lock()

    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self, user_id: int) -> ResolvedPermissionSet | None:
        try:
            now = self._clock()
            with self._lock:
                entry = self._entries.get(user_id)
                if entry is None:
                    logger.debug("Permission cache MISS: user %s", user_id)
                    return None
                if now - entry.fetched_at >= self.ttl_seconds:
                    del self._entries[user_id]
                    logger.debug("Permission cache EXPIRED: user %s", user_id)
                    return None
            logger.debug("Permission cache HIT: user %s", user_id)
            return entry.resolved
        except Exception as e:
            logger.error("Permission cache get error for user %s: %s", user_id, e)
            return None

    def set(
        self,
        user_id: int,
        resolved: ResolvedPermissionSet,
        generation: int | None = None,
    ) -> None:
        try:
            entry = _CacheEntry(resolved=resolved, fetched_at=self._clock())
            with self._lock:
                if generation is not None and generation != self._generation:
                    logger.debug(
                        "Permission cache SKIP: user %s fetched before an invalidation",
                        user_id,
                    )
                    return
                self._entries[user_id] = entry
        except Exception as e:
            logger.error("Permission cache set error for user %s: %s", user_id, e)

    def invalidate(self, user_id: int) -> None:
        with self._lock:
            self._generation += 1
            removed = self._entries.pop(user_id, None)
        if removed is not None:
            logger.info("Permission cache INVALIDATE: user %s", user_id)

    def invalidate_all(self) -> None:
        with self._lock:
            self._generation += 1
            count = len(self._entries)
            self._entries.clear()
        logger.info("Permission cache INVALIDATE ALL (%d entries dropped)", count)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)


class NullPermissionCache:
    """Cache that never stores anything; every lookup goes to the store"""

    def generation(self) -> int:
        return 0

    def get(self, user_id: int) -> ResolvedPermissionSet | None:
        return None

    def set(
        self,
        user_id: int,
        resolved: ResolvedPermissionSet,
        generation: int | None = None,
    ) -> None:
        return None

    def invalidate(self, user_id: int) -> None:
        return None

    def invalidate_all(self) -> None:
        return None

    def size(self) -> int:
        return 0
