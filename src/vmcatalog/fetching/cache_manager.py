"""
In-memory cache manager for catalog listings.

This module provides the TTL cache behind the catalog clients. Entries are
keyed by a request fingerprint, expire lazily when read and can be dropped
one by one or by key prefix (all entries of one subscription).
"""

import time
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional
from urllib.parse import quote
import logging

from cachetools import TLRUCache

from .constants import DEFAULT_CACHE_MAXSIZE

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "/"


def make_cache_key(kind: str, subscription_id: str, *params: str) -> str:
    """
    Build the fingerprint of a logical request.

    The subscription id always comes first so that one subscription's
    entries share a common prefix. Components are percent-quoted, which
    keeps the separator unambiguous.

    Args:
        kind: Operation kind, e.g. 'publishers'
        subscription_id: Subscription the request is scoped to ('' for none)
        *params: Remaining request parameters in a fixed order

    Returns:
        Cache key string
    """
    parts: Iterable[str] = (subscription_id, kind) + tuple(params)
    return KEY_SEPARATOR.join(quote(str(part), safe='') for part in parts)


def subscription_scope(subscription_id: str) -> str:
    """Key prefix shared by every entry of one subscription."""
    return quote(subscription_id, safe='') + KEY_SEPARATOR


@dataclass(frozen=True)
class CacheEntry:
    """A cached value together with its absolute expiry time."""
    key: str
    value: Any
    expires_at: float


class CacheManager:
    """
    TTL cache for storing catalog listings.

    Features:
    - Per entry TTL, defaulting to the instance TTL
    - Lazy expiration on read, no timer threads
    - Point and prefix invalidation
    - Bounded size (least recently used entries go first)
    - Cache hit/miss metrics for monitoring
    """

    def __init__(
        self,
        default_ttl: float = 300,
        maxsize: int = DEFAULT_CACHE_MAXSIZE,
        timer: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the cache.

        Args:
            default_ttl: TTL in seconds used when set() gets none
            maxsize: Maximum number of entries
            timer: Monotonic clock used for expiry
        """
        self.default_ttl = default_ttl
        self._timer = timer
        self._cache: TLRUCache = TLRUCache(
            maxsize=maxsize,
            ttu=lambda _key, entry, _now: entry.expires_at,
            timer=timer
        )
        self._lock = threading.Lock()
        self._stats = {
            'hits': 0,
            'misses': 0,
            'stores': 0,
            'expires': 0
        }

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value from cache if it exists and hasn't expired.

        Args:
            key: Cache key

        Returns:
            Cached value if available and valid, None otherwise
        """
        with self._lock:
            self._expire()
            entry = self._cache.get(key)
            if entry is None:
                self._stats['misses'] += 1
                return None

            self._stats['hits'] += 1
            logger.debug("Cache hit for key: %s", key)
            return entry.value

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the raw entry for a key without touching statistics."""
        with self._lock:
            self._expire()
            return self._cache.get(key)

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        """
        Store a value in cache with TTL (time to live).

        A value stored under an existing key replaces the old entry.

        Args:
            key: Cache key
            value: Value to store
            ttl: Time to live in seconds, defaults to the instance TTL
        """
        if ttl is None:
            ttl = self.default_ttl
        with self._lock:
            entry = CacheEntry(key, value, self._timer() + ttl)
            self._cache[key] = entry
            self._stats['stores'] += 1
            logger.debug("Cached value for key: %s (TTL: %ss)", key, ttl)

    def invalidate(self, key: str):
        """Remove a specific key from cache."""
        with self._lock:
            if self._cache.pop(key, None) is not None:
                logger.debug("Invalidated cache for key: %s", key)

    def invalidate_by_prefix(self, prefix: str) -> int:
        """
        Remove every entry whose key starts with prefix.

        Args:
            prefix: Key prefix, e.g. from subscription_scope()

        Returns:
            Number of removed entries
        """
        with self._lock:
            self._expire()
            matching = [key for key in list(self._cache.keys()) if key.startswith(prefix)]
            for key in matching:
                self._cache.pop(key, None)
        logger.info("Invalidated %d cache entries with prefix: %s", len(matching), prefix)
        return len(matching)

    def clear(self):
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()
        logger.info("Cache cleared")

    def _expire(self):
        """Drop expired entries. Caller must hold the lock."""
        expired = self._cache.expire()
        if expired:
            self._stats['expires'] += len(expired)
            for key, _entry in expired:
                logger.debug("Cache entry expired for key: %s", key)

    def __len__(self):
        with self._lock:
            self._expire()
            return len(self._cache)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total_requests = self._stats['hits'] + self._stats['misses']
        hit_rate = (self._stats['hits'] / total_requests * 100) if total_requests > 0 else 0

        return {
            **self._stats,
            'hit_rate': hit_rate,
            'cache_size': len(self)
        }

    def reset_stats(self):
        """Reset cache statistics."""
        self._stats = {'hits': 0, 'misses': 0, 'stores': 0, 'expires': 0}
