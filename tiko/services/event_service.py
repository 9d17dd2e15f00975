"""Event aggregation across every configured listing source.

Architecture overview
---------------------
``get_events(city, genre)`` answers "what is on in this city?" and never
fails because an upstream did:

  1. FRESH CACHE   -- a cached listing younger than ``cache_ttl`` is
                      returned as-is (``source="cache"``).
  2. LIVE FETCH    -- every available source is queried concurrently.
                      A source that raises is logged and recorded in
                      ``errors``; the others still count.  Results are
                      normalized, de-duplicated, cached and (when a store
                      is wired) upserted into ``events_unified``.
  3. STALE CACHE   -- no live events, but a cached listing younger than
                      ``stale_ttl`` exists: serve it (``source="cache"``).
  4. SAMPLE FEED   -- nothing at all: built-in sample events
                      (``source="sample"``).

An unexpected exception anywhere in 1-3 yields the sample feed labelled
``source="error"``.

Cache entries are ``{"stored_at": epoch seconds, "data": [raw docs]}``
kept for ``stale_ttl``; freshness is decided here, not by the cache.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any

from tiko.interfaces.cache_provider import ICacheProvider
from tiko.interfaces.document_store import IEventStore
from tiko.interfaces.event_source_provider import IEventSourceProvider
from tiko.models.event import Event, EventFeed
from tiko.providers.events.sample_provider import SampleEventProvider
from tiko.services.event_normalizer import deduplicate_events, event_to_document, normalize_events
from tiko.utils.concurrency import throttled_gather
from tiko.utils.errors import StorageError
from tiko.utils.logging import get_logger

_CACHE_PREFIX = "events:"


def cache_key(city: str, genre: str) -> str:
    return f"{_CACHE_PREFIX}all:{city.strip().lower()}:{genre.strip().lower()}"


class EventService:
    """Fans out to event sources and degrades to cache or sample data."""

    def __init__(
        self,
        sources: list[IEventSourceProvider],
        fallback: SampleEventProvider | None = None,
        cache: ICacheProvider | None = None,
        store: IEventStore | None = None,
        cache_ttl: int = 3600,
        stale_ttl: int = 86400,
        fetch_limit: int = 10,
        max_concurrency: int = 4,
    ) -> None:
        self._sources = sources
        self._fallback = fallback or SampleEventProvider()
        self._cache = cache
        self._store = store
        self._cache_ttl = cache_ttl
        self._stale_ttl = stale_ttl
        self._fetch_limit = fetch_limit
        self._max_concurrency = max_concurrency
        self._logger = get_logger(__name__)

    @property
    def sources(self) -> list[IEventSourceProvider]:
        return list(self._sources)

    def source_availability(self) -> dict[str, bool]:
        return {s.get_provider_name(): s.is_available() for s in self._sources}

    async def get_events(self, city: str, genre: str = "electronic") -> EventFeed:
        """Return the event feed for *city* and *genre*.  Never raises."""
        try:
            return await self._aggregate(city, genre)
        except Exception as exc:
            self._logger.error("event_aggregation_failed", city=city, genre=genre, error=str(exc), exc_info=True)
            return self._sample_feed(city, "error", errors={"aggregation": str(exc)})

    async def _aggregate(self, city: str, genre: str) -> EventFeed:
        key = cache_key(city, genre)
        cached = await self._read_cache(key)
        if cached is not None and time.time() - cached["stored_at"] < self._cache_ttl:
            events = normalize_events(cached["data"])
            self._logger.info("events_from_cache", city=city, count=len(events))
            return self._feed(events, "cache", {"cache": len(events)}, {})

        events, counts, errors = await self._fetch_live(city, genre)
        if events:
            await self._write_cache(key, events)
            await self._persist(events)
            return self._feed(events, "api", counts, errors)

        if cached is not None and time.time() - cached["stored_at"] < self._stale_ttl:
            stale = normalize_events(cached["data"])
            self._logger.warning("events_from_stale_cache", city=city, count=len(stale))
            return self._feed(stale, "cache", {"cache": len(stale)}, errors)

        self._logger.warning("events_fallback_to_sample", city=city, errors=errors)
        return self._sample_feed(city, "sample", counts, errors)

    async def _fetch_live(
        self,
        city: str,
        genre: str,
        limit: int | None = None,
        country_code: str | None = None,
        source_names: tuple[str, ...] | None = None,
    ) -> tuple[list[Event], dict[str, int], dict[str, str]]:
        available = [
            s for s in self._sources
            if s.is_available() and (source_names is None or s.get_provider_name() in source_names)
        ]
        limit = limit or self._fetch_limit
        counts: dict[str, int] = {}
        errors: dict[str, str] = {}
        if not available:
            self._logger.info("no_event_sources_available")
            return [], counts, errors

        results = await throttled_gather(
            [
                s.fetch_events(city, genre, limit, country_code=country_code)
                if country_code
                else s.fetch_events(city, genre, limit)
                for s in available
            ],
            semaphore=asyncio.Semaphore(self._max_concurrency),
        )
        events: list[Event] = []
        for source, result in zip(available, results):
            name = source.get_provider_name()
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                errors[name] = str(result)
                counts[name] = 0
                self._logger.warning("source_failed", source=name, city=city, error=str(result))
                continue
            normalized = normalize_events(result, source=name)
            counts[name] = len(normalized)
            events.extend(normalized)
            self._logger.info("events_fetched", source=name, city=city, count=len(normalized))
        return deduplicate_events(events), counts, errors

    def _sample_feed(
        self,
        city: str,
        label: str,
        counts: dict[str, int] | None = None,
        errors: dict[str, str] | None = None,
    ) -> EventFeed:
        events = normalize_events(self._fallback.sample_documents(city), source="sample")
        per_source = dict(counts or {})
        per_source["sample"] = len(events)
        return self._feed(events, label, per_source, errors or {})

    @staticmethod
    def _feed(events: list[Event], label: str, counts: dict[str, int], errors: dict[str, str]) -> EventFeed:
        ordered = sorted(events, key=lambda e: (e.date is None, e.date or datetime.max.replace(tzinfo=timezone.utc)))
        return EventFeed(
            events=ordered,
            source=label,
            per_source_counts=counts,
            errors=errors,
            fetched_at=datetime.now(timezone.utc),
        )

    # -- Cache / store ----------------------------------------------------

    async def _read_cache(self, key: str) -> dict[str, Any] | None:
        if self._cache is None:
            return None
        try:
            value = await self._cache.get(key)
        except StorageError as exc:
            self._logger.warning("event_cache_read_failed", key=key, error=str(exc))
            return None
        if isinstance(value, dict) and isinstance(value.get("data"), list) and "stored_at" in value:
            return value
        return None

    async def _write_cache(self, key: str, events: list[Event]) -> None:
        if self._cache is None:
            return
        payload = {"stored_at": time.time(), "data": [_jsonable(event_to_document(e)) for e in events]}
        try:
            await self._cache.set(key, payload, ttl=self._stale_ttl)
        except StorageError as exc:
            self._logger.warning("event_cache_write_failed", key=key, error=str(exc))

    async def _persist(self, events: list[Event]) -> None:
        if self._store is None:
            return
        try:
            await self._store.upsert_events(events)
        except StorageError as exc:
            self._logger.warning("event_persist_failed", count=len(events), error=str(exc))

    async def clear_cache(self) -> int:
        if self._cache is None:
            return 0
        return await self._cache.clear(prefix=_CACHE_PREFIX)

    async def refresh_city(
        self,
        city: str,
        genre: str = "music",
        limit: int = 200,
        country_code: str | None = None,
        source_names: tuple[str, ...] | None = None,
    ) -> EventFeed:
        """Fetch *city* live and store what comes back.

        Populates a city the catalog does not cover yet.  The fresh-cache
        check is skipped and there is no sample fallback: an empty feed
        with ``errors`` means the sources had nothing.  The city's cached
        feeds are dropped so the next :meth:`get_events` sees the new
        events.

        Raises
        ------
        StorageError
            The events could not be written to the store.
        """
        events, counts, errors = await self._fetch_live(
            city, genre, limit=limit, country_code=country_code, source_names=source_names
        )
        if events:
            if self._cache is not None:
                try:
                    await self._cache.clear(prefix=cache_key(city, ""))
                except StorageError as exc:
                    self._logger.warning("city_cache_clear_failed", city=city, error=str(exc))
            if self._store is not None:
                await self._store.upsert_events(events)
        self._logger.info("city_refreshed", city=city, count=len(events), errors=len(errors))
        return self._feed(events, "api", counts, errors)

    async def count_events(self, city: str | None = None) -> int:
        """Count stored events for *city*.

        Raises
        ------
        StorageError
            No store is configured or the query failed.
        """
        if self._store is None:
            raise StorageError("No event store configured", provider_name="mongodb")
        return await self._store.count_events(city=city)


def _jsonable(doc: dict[str, Any]) -> dict[str, Any]:
    """Replace datetimes with ISO strings so the document can be cached anywhere."""
    return {
        k: (v.isoformat() if isinstance(v, datetime) else v)
        for k, v in doc.items()
    }
