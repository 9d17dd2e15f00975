"""Abstract base classes for the persisted collections.

    IEventStore    -> ``events_unified``
    IArtistStore   -> ``artistGenres``
    IProfileStore  -> ``userTasteProfiles``
    IInterestedEventStore -> ``interestedEvents``
    ICityRequestStore     -> ``cityRequests``

Writes are single-document updates; no operation here spans documents
atomically.  Implementations raise :class:`~tiko.utils.errors.StorageError`
on any backend failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from tiko.models.artist import Artist
from tiko.models.city_request import CityRequest, CityRequestStats
from tiko.models.event import Event, Venue
from tiko.models.saved_event import SavedEvent
from tiko.models.taste import UserTasteProfile


class IEventStore(ABC):
    """Contract for the unified event catalog."""

    @abstractmethod
    async def upsert_events(self, events: list[Event]) -> int:
        """Insert or refresh *events* keyed by id.  Existing scores are kept.

        Returns
        -------
        int
            Number of documents inserted or modified.
        """

    @abstractmethod
    async def find_events(self, city: str | None = None, limit: int = 100) -> list[Event]:
        """Return upcoming events, optionally filtered by venue city."""

    @abstractmethod
    async def count_events(self, city: str | None = None, scored: bool | None = None) -> int:
        """Count events, optionally by city and by whether they carry a score."""

    @abstractmethod
    async def find_unscored(self, limit: int, include_scored: bool = False) -> list[Event]:
        """Return events without ``personalizedScore`` (or all when *include_scored*)."""

    @abstractmethod
    async def update_score(
        self,
        event_id: str,
        score: int,
        method: str,
        version: str,
        scored_at: datetime,
        document_id: str | None = None,
    ) -> bool:
        """Write a score onto one event.  Returns ``False`` if no document matched.

        *document_id* is the backend key the event was read under
        (``Event.document_id``); when given it takes precedence over *event_id*.
        """

    @abstractmethod
    async def iter_raw_venues(self, limit: int | None = None) -> list[tuple[str, Any]]:
        """Return ``(event_id, raw venue value)`` pairs as stored, untouched."""

    @abstractmethod
    async def replace_venue(self, event_id: str, venue: Venue) -> bool:
        """Overwrite one event's venue with the object form."""


class IArtistStore(ABC):
    """Contract for the artist genre collection."""

    @abstractmethod
    async def find_needing_enrichment(self, limit: int) -> list[Artist]:
        """Return artists flagged ``needsGenreEnrichment``."""

    @abstractmethod
    async def update_enrichment(
        self,
        name: str,
        genres: list[str],
        popularity: int | None,
        spotify_id: str | None,
    ) -> bool:
        """Store looked-up genres and clear the enrichment flag."""

    @abstractmethod
    async def mark_enrichment_failed(self, name: str, reason: str) -> bool:
        """Record a failed lookup so the artist is not retried forever."""

    @abstractmethod
    async def add_placeholder(self, name: str) -> bool:
        """Insert an artist needing enrichment.  Returns ``False`` if it already existed."""

    @abstractmethod
    async def list_names(self) -> list[str]:
        """Return every stored artist name."""

    @abstractmethod
    async def count_artists(self, needing_enrichment: bool | None = None) -> int:
        """Count artists, optionally only those still flagged for enrichment."""


class IProfileStore(ABC):
    """Contract for persisted listener taste profiles."""

    @abstractmethod
    async def get_profile(self, user_id: str) -> UserTasteProfile | None:
        """Return the stored profile for *user_id*, or ``None``."""

    @abstractmethod
    async def save_profile(self, profile: UserTasteProfile) -> None:
        """Insert or replace the profile keyed by ``profile.user_id``."""


class IInterestedEventStore(ABC):
    """Contract for events listeners saved for later."""

    @abstractmethod
    async def list_saved(self, user_id: str) -> list[SavedEvent]:
        """Return *user_id*'s saved events, oldest first."""

    @abstractmethod
    async def save(self, user_id: str, event: Event) -> tuple[SavedEvent, bool]:
        """Save *event* for *user_id*.

        Returns the stored entry and ``True`` when it was newly created,
        or the existing entry and ``False`` when the event was already saved.
        """

    @abstractmethod
    async def remove(self, user_id: str, event_id: str) -> bool:
        """Remove one saved event.  Returns ``False`` if it was not saved."""


class ICityRequestStore(ABC):
    """Contract for the queue of requested cities."""

    @abstractmethod
    async def add_request(
        self,
        city: str,
        country: str,
        country_code: str,
        latitude: float,
        longitude: float,
        priority: int,
    ) -> tuple[CityRequest, bool]:
        """Queue a city, or re-queue it and bump its count.  ``True`` when new."""

    @abstractmethod
    async def pending(self, limit: int) -> list[CityRequest]:
        """Pending requests, highest priority then most requested first."""

    @abstractmethod
    async def mark_processing(self, city: str, country: str) -> bool:
        """Flag a request as being worked on."""

    @abstractmethod
    async def mark_completed(self, city: str, country: str, event_count: int) -> bool:
        """Record a finished request and how many events it produced."""

    @abstractmethod
    async def mark_error(self, city: str, country: str, message: str) -> bool:
        """Record a failed request."""

    @abstractmethod
    async def stats(self) -> CityRequestStats:
        """Counts per status and per country."""

    @abstractmethod
    async def cleanup_completed(self, older_than: datetime) -> int:
        """Delete requests completed before *older_than*; returns the count."""
