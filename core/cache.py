"""
Violation cache for storing lookup outcomes with TTL expiration.

This module implements a simple in-memory cache with per-entry expiry.
Expired entries are evicted lazily on read and by a periodic sweep.

Features:
- Per-entry TTL (default: 1 hour)
- Lazy eviction on get()
- cleanup() sweep plus an asyncio loop that runs it on a timer
- Management operations (delete, clear, size, keys, get_stats)
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from core.logger import get_logger

logger = get_logger("violation_lookup.cache")

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_CLEANUP_INTERVAL_SECONDS = 10 * 60


@dataclass
class CacheEntry:
    """A cached value with its creation and expiration times."""

    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class ViolationCache:
    """
    Simple in-memory cache with per-entry TTL expiration.

    Access is single-threaded (one event loop); writes are last-writer-wins.

    Attributes:
        cache: Dictionary storing CacheEntry objects by key
        ttl: Default time to live in seconds (default: 3600 = 1 hour)
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize cache with TTL.

        Args:
            ttl: Default time to live in seconds. Default is 3600 (1 hour).
            clock: Monotonic clock returning seconds (injectable for tests)
        """
        self.cache: Dict[str, CacheEntry] = {}
        self.ttl = ttl
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        """
        Get cached value if it exists and hasn't expired.

        An expired entry is removed as a side effect.

        Args:
            key: Cache key

        Returns:
            Cached value if found and not expired, None otherwise
        """
        entry = self.cache.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            logger.debug(f"Cache expired for key: {key}")
            del self.cache[key]
            return None

        logger.debug(f"Cache hit for key: {key}")
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Set cache value, overwriting any existing entry for the key.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (default: the cache's ttl)
        """
        actual_ttl = ttl if ttl is not None else self.ttl
        now = self._clock()
        self.cache[key] = CacheEntry(value=value, created_at=now, expires_at=now + actual_ttl)
        logger.debug(f"Cached data for key: {key} (TTL: {actual_ttl}s)")

    def delete(self, key: str) -> bool:
        """
        Delete one entry.

        Returns:
            True if the key was present
        """
        if key in self.cache:
            del self.cache[key]
            logger.debug(f"Deleted cache for key: {key}")
            return True
        return False

    def clear(self) -> None:
        """Clear all cache entries."""
        size = len(self.cache)
        self.cache.clear()
        logger.info(f"Cleared all cache ({size} entries)")

    def size(self) -> int:
        """Number of stored entries, including expired ones not yet evicted."""
        return len(self.cache)

    def keys(self) -> List[str]:
        return list(self.cache.keys())

    def cleanup(self) -> int:
        """
        Evict all expired entries.

        Returns:
            Number of entries evicted
        """
        now = self._clock()
        expired = [key for key, entry in self.cache.items() if entry.is_expired(now)]
        for key in expired:
            del self.cache[key]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired cache entries")

        return len(expired)

    def get_stats(self) -> Dict[str, int]:
        """
        Get cache statistics.

        Returns:
            Dictionary with total_entries, expired_entries and valid_entries
        """
        now = self._clock()
        expired = sum(1 for entry in self.cache.values() if entry.is_expired(now))
        return {
            "total_entries": len(self.cache),
            "expired_entries": expired,
            "valid_entries": len(self.cache) - expired,
        }

    async def run_periodic_cleanup(
        self, interval: float = DEFAULT_CLEANUP_INTERVAL_SECONDS
    ) -> None:
        """
        Run cleanup() every `interval` seconds until cancelled.

        Meant to be started with asyncio.create_task() so that expired entries
        that are never read again do not accumulate.

        Args:
            interval: Seconds between sweeps (default: 600 = 10 minutes)
        """
        logger.info(f"Cache cleanup loop started (interval: {interval}s)")
        try:
            while True:
                await asyncio.sleep(interval)
                self.cleanup()
        except asyncio.CancelledError:
            logger.info("Cache cleanup loop stopped")
            raise
