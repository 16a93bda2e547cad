"""In-memory TTL cache for variant price schedules."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from pricing_engine.schemas.pricing import PriceSchedule

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """A cached schedule with expiration."""

    value: PriceSchedule | None
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """Check if this entry has expired."""
        return now > self.expires_at


@dataclass
class ScheduleCacheConfig:
    """Configuration for schedule caching."""

    max_size: int = 1000
    ttl_seconds: int = 60
    cleanup_interval_seconds: int = 300

    @classmethod
    def from_settings(cls) -> "ScheduleCacheConfig":
        """Create config from application settings."""
        from pricing_engine.core.config import get_settings
        settings = get_settings()
        return cls(
            max_size=settings.schedule_cache_size,
            ttl_seconds=settings.schedule_cache_ttl,
        )


class ScheduleCache:
    """Thread-safe cache of price schedules keyed by variant and currency.

    The clock is injected so expiry is testable, and admin edits call
    `invalidate` so a changed tier is never served from cache.
    """

    def __init__(self, config: ScheduleCacheConfig | None = None, clock: Clock = time.monotonic) -> None:
        """Initialize the schedule cache.

        Args:
            config: Optional cache configuration.
            clock: Returns the current time in seconds.
        """
        self.config = config or ScheduleCacheConfig()
        self._clock = clock
        self._cache: dict[tuple[str, str], CacheEntry] = {}
        self._lock = Lock()
        self._cleanup_task: asyncio.Task | None = None

    async def start_cleanup_task(self) -> None:
        """Start background cleanup task."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Schedule cache cleanup task started")

    async def stop_cleanup_task(self) -> None:
        """Stop background cleanup task."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Schedule cache cleanup task stopped")

    async def _cleanup_loop(self) -> None:
        """Background loop to cleanup expired entries."""
        while True:
            await asyncio.sleep(self.config.cleanup_interval_seconds)
            count = self.cleanup()
            if count > 0:
                logger.debug("Schedule cache cleaned up %d expired entries", count)

    @staticmethod
    def _key(variant_id: str, currency: str) -> tuple[str, str]:
        return variant_id, currency.lower()

    def contains(self, variant_id: str, currency: str) -> bool:
        """Check for a live entry, including cached misses."""
        key = self._key(variant_id, currency)
        with self._lock:
            entry = self._cache.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def get(self, variant_id: str, currency: str) -> PriceSchedule | None:
        """Get a cached schedule if present and not expired.

        Returns:
            PriceSchedule | None: None on miss, expiry, or a cached "no price".
        """
        key = self._key(variant_id, currency)

        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                logger.debug("Schedule cache miss for %s", key)
                return None

            if entry.is_expired(self._clock()):
                logger.debug("Schedule cache expired for %s", key)
                del self._cache[key]
                return None

            return entry.value

    def set(self, variant_id: str, currency: str, schedule: PriceSchedule | None) -> None:
        """Cache a schedule (or the absence of one) with TTL."""
        key = self._key(variant_id, currency)
        expires_at = self._clock() + self.config.ttl_seconds

        with self._lock:
            if key not in self._cache and len(self._cache) >= self.config.max_size:
                self._evict_oldest()
            self._cache[key] = CacheEntry(value=schedule, expires_at=expires_at)

    def invalidate(self, variant_id: str) -> int:
        """Drop every cached currency for a variant.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            keys = [key for key in self._cache if key[0] == variant_id]
            for key in keys:
                del self._cache[key]
        if keys:
            logger.info("Invalidated %d cached schedules for variant %s", len(keys), variant_id)
        return len(keys)

    def _evict_oldest(self) -> None:
        """Evict oldest entries to make room. Must be called with lock held."""
        now = self._clock()
        expired_keys = [k for k, v in self._cache.items() if v.is_expired(now)]
        for key in expired_keys:
            del self._cache[key]

        if len(self._cache) >= self.config.max_size:
            sorted_entries = sorted(self._cache.items(), key=lambda x: x[1].expires_at)
            to_remove = max(1, len(self._cache) // 10)
            for key, _ in sorted_entries[:to_remove]:
                del self._cache[key]
            logger.debug("Evicted %d entries from schedule cache", to_remove)

    def cleanup(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired_keys = [k for k, v in self._cache.items() if v.is_expired(now)]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    def clear(self) -> int:
        """Clear all cached entries.

        Returns:
            Number of entries cleared.
        """
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            logger.info("Cleared %d entries from schedule cache", count)
            return count

    def get_stats(self) -> dict:
        """Get cache statistics for monitoring."""
        now = self._clock()
        with self._lock:
            valid_count = sum(1 for v in self._cache.values() if not v.is_expired(now))
            return {
                "total_entries": len(self._cache),
                "valid_entries": valid_count,
                "expired_entries": len(self._cache) - valid_count,
                "max_size": self.config.max_size,
                "ttl_seconds": self.config.ttl_seconds,
            }


_schedule_cache: ScheduleCache | None = None


def get_schedule_cache() -> ScheduleCache:
    """Get or create the application's schedule cache instance."""
    global _schedule_cache
    if _schedule_cache is None:
        _schedule_cache = ScheduleCache(ScheduleCacheConfig.from_settings())
    return _schedule_cache


async def init_schedule_cache() -> ScheduleCache:
    """Initialize schedule cache with cleanup task. Call at app startup."""
    cache = get_schedule_cache()
    await cache.start_cleanup_task()
    return cache


async def shutdown_schedule_cache() -> None:
    """Shutdown schedule cache cleanup task. Call at app shutdown."""
    global _schedule_cache
    if _schedule_cache:
        await _schedule_cache.stop_cleanup_task()
