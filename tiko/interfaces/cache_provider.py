"""Abstract base class for cache service providers.

Defines the contract for key-value caching of upstream API responses
(event listings, Spotify lookups).  Implementations may keep entries in
process memory or in the MongoDB ``apiCache`` collection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ICacheProvider(ABC):
    """Contract for key-value cache services."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Retrieve the value stored under *key*.

        Returns
        -------
        Any or None
            The cached value if present and not expired; ``None`` otherwise.
        """

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store *value* under *key* with an optional time-to-live.

        Parameters
        ----------
        key:
            The cache key.
        value:
            A JSON-compatible value (str, int, float, dict, list).
        ttl:
            Time-to-live in seconds.  ``None`` uses the provider default.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the entry stored under *key* (no-op if absent)."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present in the cache and not expired."""

    @abstractmethod
    async def clear(self, prefix: str | None = None) -> int:
        """Remove every entry, or only those whose key starts with *prefix*.

        Returns
        -------
        int
            Number of entries removed.
        """
