"""
In-process TTL cache for dashboard and trend responses.

Sync completion and workflow updates invalidate by source:

    await cache.invalidate_source("edr")   # edr:*, dashboard views, trends:*
    await cache.invalidate_source("all")   # everything
"""

import asyncio
import fnmatch
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheKeys:
    DASHBOARD = "dashboard:main"
    SUMMARY = "dashboard:summary"
    BREAKDOWN = "dashboard:breakdown"

    @staticmethod
    def trends_daily(days: int) -> str:
        return f"trends:daily:{days}"

    @staticmethod
    def trends_series(series: str, days: int) -> str:
        return f"trends:{series}:{days}"

    TRENDS_COMPARISON = "trends:comparison"


class MemoryCache:
    """
    LRU cache with per-entry TTL. Expired entries are dropped lazily on read and before
    evicting live ones when full.
    """

    def __init__(self, max_size: int = 500) -> None:
        self._entries: OrderedDict[str, tuple[Any, float | None]] = OrderedDict()
        self._max_size = max_size
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and time.monotonic() > expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store value; ttl of None or 0 never expires."""
        async with self._lock:
            now = time.monotonic()
            if len(self._entries) >= self._max_size:
                for k in [k for k, (_, exp) in self._entries.items() if exp and now > exp]:
                    del self._entries[k]
            while len(self._entries) >= self._max_size:
                self._entries.popitem(last=False)
            self._entries[key] = (value, now + ttl if ttl else None)
            self._entries.move_to_end(key)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching a glob pattern (e.g. trends:*)."""
        async with self._lock:
            keys = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
            for k in keys:
                del self._entries[k]
            return len(keys)

    async def flush(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def wrap(self, key: str, ttl: int, producer: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value for key, or await producer() and cache its result."""
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await producer()
        await self.set(key, value, ttl)
        return value

    async def invalidate_source(self, source: str) -> None:
        """Drop everything derived from source; "all" flushes the cache."""
        if source == "all":
            await self.flush()
        else:
            await self.delete_pattern(f"{source}:*")
            await self.delete(CacheKeys.DASHBOARD)
            await self.delete(CacheKeys.SUMMARY)
            await self.delete(CacheKeys.BREAKDOWN)
            await self.delete_pattern("trends:*")
        logger.info("Cache invalidated", extra={"source": source})

    def __len__(self) -> int:
        return len(self._entries)
