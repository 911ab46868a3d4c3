"""In-memory news cache with time-boxed freshness and graceful degradation.

Lookup policy for ``NewsCache.get_or_fetch``:

1. A fresh entry for the query is returned without touching the provider.
2. Otherwise the provider is called; a successful result replaces the entry.
3. If the provider fails, the existing entry is served even when stale.
4. With no entry at all, the caller-supplied fallback set is served.

Stale entries are never deleted for being stale; they only lose priority to a
live fetch. The entry count is bounded with least-recently-used eviction.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from core.errors import NewsProviderError
from core.models import Article, NewsQuery

logger = logging.getLogger(__name__)

#: Default freshness window (10 minutes).
DEFAULT_TTL_SECONDS = 600.0
DEFAULT_MAX_ENTRIES = 256


@dataclass
class CacheEntry:
    """Articles fetched for one query and when they were fetched."""

    articles: list[Article]
    fetched_at: float


class NewsCache:
    """Thread-safe query → articles cache shared by all requests of a process.

    A cache-wide lock guards the entry map. A second, per-key lock is held
    around the provider call so that concurrent requests for the same query
    wait for one fetch instead of issuing their own. Per-key locks live only
    while some request for the key is in flight.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialise an empty cache.

        Args:
            ttl_seconds: Freshness window for entries.
            max_entries: Maximum number of distinct queries kept.
            clock: Monotonic time source; injectable for tests.
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1.")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._key_locks: dict[str, threading.Lock] = {}
        self._key_waiters: dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ── Entry access ───────────────────────────────────────────────────────

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for *key*, fresh or stale, or ``None``."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
            return entry

    def put(self, key: str, articles: list[Article]) -> None:
        """Store *articles* under *key*, replacing any previous entry."""
        with self._lock:
            self._entries[key] = CacheEntry(list(articles), self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted)

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at < self.ttl_seconds

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @contextmanager
    def _key_lock(self, key: str) -> Iterator[None]:
        """Hold the per-key lock; drop it once no request for *key* remains."""
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            self._key_waiters[key] = self._key_waiters.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._lock:
                remaining = self._key_waiters[key] - 1
                if remaining:
                    self._key_waiters[key] = remaining
                else:
                    del self._key_waiters[key]
                    del self._key_locks[key]

    # ── Lookup policy ──────────────────────────────────────────────────────

    def get_or_fetch(
        self,
        query: NewsQuery,
        fetch: Callable[[], list[Article]],
        fallback: Callable[[], list[Article]],
    ) -> list[Article]:
        """Return articles for *query*, fetching or degrading as needed.

        Args:
            query: The retrieval parameters; its ``cache_key()`` is the key.
            fetch: Calls the live provider. Must raise ``NewsProviderError``
                on failure.
            fallback: Produces the static article set used when there is
                neither live data nor a cache entry.

        Returns:
            A list of articles. Never raises for provider failures.
        """
        key = query.cache_key()

        entry = self.get(key)
        if entry is not None and self.is_fresh(entry):
            logger.debug("Cache hit for %s", key)
            return list(entry.articles)

        with self._key_lock(key):
            # Another request may have refreshed the entry while we waited.
            entry = self.get(key)
            if entry is not None and self.is_fresh(entry):
                logger.debug("Cache filled by concurrent fetch for %s", key)
                return list(entry.articles)

            try:
                articles = fetch()
            except NewsProviderError as exc:
                if entry is not None:
                    logger.warning("News fetch failed (%s); serving stale cache for %s", exc, key)
                    return list(entry.articles)
                logger.warning("News fetch failed (%s); serving fallback articles for %s", exc, key)
                return fallback()

            self.put(key, articles)
            logger.debug("Cached %d articles for %s", len(articles), key)
            return list(articles)
