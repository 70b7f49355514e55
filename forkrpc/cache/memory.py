"""
In-memory tier of the fork client cache.

Entries live as long as the owning client. There is no eviction and no TTL:
only responses that can no longer be reorganized are ever stored here.
"""
import threading
from typing import Any, Dict

# Returned by get() on a miss. Stored values may be falsy (e.g. an empty log list).
MISSING = object()


class MemoryCache:
    """
    Thread-safe mapping from cache key to decoded result.
    """

    def __init__(self):
        self._cache: Dict[str, Any] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any:
        """
        Get a value from the cache.

        Args:
            key: Cache key to retrieve

        Returns:
            The cached value, or MISSING if the key is not cached
        """
        with self._lock:
            if key not in self._cache:
                self._misses += 1
                return MISSING

            self._hits += 1
            return self._cache[key]

    def set(self, key: str, value: Any) -> None:
        """
        Store a value permanently.

        Args:
            key: Cache key
            value: Decoded value to cache
        """
        with self._lock:
            self._cache[key] = value

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with size, hits, misses and hit ratio
        """
        with self._lock:
            total_requests = self._hits + self._misses
            hit_ratio = self._hits / total_requests if total_requests > 0 else 0

            return {
                'size': len(self._cache),
                'hits': self._hits,
                'misses': self._misses,
                'hit_ratio': hit_ratio,
            }
