"""Abstract base class for upstream event listing sources.

Ticketmaster, EDMTrain and the built-in sample feed all implement this
contract.  Sources return RAW dicts in roughly their own shape; the
event normalizer turns them into :class:`~tiko.models.event.Event`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IEventSourceProvider(ABC):
    """Contract for event listing sources."""

    @abstractmethod
    async def fetch_events(
        self,
        city: str,
        genre: str,
        limit: int = 10,
        country_code: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch upcoming events for *city*.

        Parameters
        ----------
        city:
            City name as the user typed it (e.g. ``"Toronto"``).
        genre:
            Genre / classification filter.  Sources without genre
            filtering ignore it.
        limit:
            Maximum number of events to request.
        country_code:
            ISO 3166 country code narrowing an ambiguous city name.
            Sources without country filtering ignore it.

        Returns
        -------
        list[dict]
            Raw event documents, each carrying at least ``source`` and
            ``sourceId``.

        Raises
        ------
        ProviderUnavailableError
            Transport failure or non-2xx response.
        RateLimitError
            The source answered HTTP 429.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the short source name used in ids and cache keys."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` when the source is configured (API key present)."""
