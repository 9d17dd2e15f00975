"""In-memory cache provider using cachetools.TTLCache.

Process-local; suitable for development and single-worker deployments.
Use :class:`MongoCacheProvider` when several workers must share entries.
"""

from __future__ import annotations

from typing import Any

import structlog
from cachetools import TTLCache

from tiko.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class MemoryCacheProvider(ICacheProvider):
    """In-memory TTL cache backed by ``cachetools.TTLCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    ttl:
        Time-to-live in seconds applied to every entry.
    """

    def __init__(self, max_size: int = 1000, ttl: int = 86400) -> None:
        self._default_ttl = ttl
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=max_size, ttl=ttl)

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        value = self._cache.get(key)
        logger.debug("cache_hit" if value is not None else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store *value* under *key*.

        ``TTLCache`` applies one TTL to all entries, so *ttl* is ignored;
        callers that need finer freshness store a timestamp with the value.
        """
        self._cache[key] = value
        logger.debug("cache_set", key=key)

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)
        logger.debug("cache_delete", key=key)

    async def exists(self, key: str) -> bool:
        return key in self._cache

    async def clear(self, prefix: str | None = None) -> int:
        if prefix is None:
            removed = len(self._cache)
            self._cache.clear()
        else:
            keys = [k for k in list(self._cache.keys()) if k.startswith(prefix)]
            for key in keys:
                self._cache.pop(key, None)
            removed = len(keys)
        logger.info("cache_cleared", prefix=prefix, removed=removed)
        return removed
