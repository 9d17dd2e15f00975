"""Queue of cities listeners asked for, and the job that fills them.

``request_city`` records a request (or bumps an existing one) for a city
in a country Ticketmaster covers.  ``process_queue`` later takes the
pending requests in priority order, fetches each city live through
:meth:`EventService.refresh_city` and marks the request ``completed``
with its event count, or ``error``.  Requests are processed one at a
time with ``request_delay`` seconds between them.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from tiko.config.genre_knowledge import (
    TICKETMASTER_COUNTRY_CODES,
    get_country_code,
    get_regional_priority,
)
from tiko.interfaces.document_store import ICityRequestStore
from tiko.models.city_request import CityRequest, CityRequestStats
from tiko.models.maintenance import JobReport
from tiko.services.event_service import EventService
from tiko.utils.concurrency import paced
from tiko.utils.errors import CitySupportError, ConfigurationError, StorageError
from tiko.utils.logging import get_logger

_MAX_REPORTED_ERRORS = 20


class CityRequestService:
    def __init__(
        self,
        store: ICityRequestStore,
        event_service: EventService | None = None,
        request_delay: float = 5.0,
        retention_days: int = 7,
        source_names: tuple[str, ...] = ("ticketmaster",),
        stop_event: asyncio.Event | None = None,
    ) -> None:
        self._store = store
        self._events = event_service
        self._delay = request_delay
        self._retention = timedelta(days=retention_days)
        self._source_names = source_names
        self._stop = stop_event or asyncio.Event()
        self._logger = get_logger(__name__)

    @staticmethod
    def supported_countries() -> list[str]:
        return sorted({name.title() for name in TICKETMASTER_COUNTRY_CODES})

    def request_stop(self) -> None:
        self._stop.set()

    async def request_city(
        self,
        city: str,
        country: str,
        latitude: float,
        longitude: float,
    ) -> tuple[CityRequest, bool, CityRequestStats]:
        """Queue *city* for a live fetch.

        Returns the stored request, whether it is new, and the queue stats.

        Raises
        ------
        CitySupportError
            *country* has no Ticketmaster coverage.
        StorageError
            The queue could not be written.
        """
        code = get_country_code(country)
        if code is None:
            raise CitySupportError(f"Events are not available in {country.strip() or 'that country'} yet")
        request, is_new = await self._store.add_request(
            city, country, code, latitude, longitude, get_regional_priority(code)
        )
        return request, is_new, await self._store.stats()

    async def stats(self) -> CityRequestStats:
        return await self._store.stats()

    async def process_queue(self, limit: int = 10, dry_run: bool = False) -> JobReport:
        """Fetch events for up to *limit* pending cities.

        Completed requests older than the retention period are deleted
        first.  A city whose sources all failed is marked ``error``; one
        that simply has no events is ``completed`` with a count of zero.
        """
        if self._events is None:
            raise ConfigurationError("No event service configured")
        started = datetime.now(timezone.utc)
        if not dry_run:
            removed = await self._store.cleanup_completed(started - self._retention)
            if removed:
                self._logger.info("city_requests_cleaned", removed=removed)

        requests = await self._store.pending(limit)
        self._logger.info("city_queue_started", pending=len(requests), dry_run=dry_run)
        processed = updated = failed = skipped = 0
        errors: list[str] = []

        async for request in paced(requests, self._delay, self._stop):
            processed += 1
            if dry_run:
                skipped += 1
                continue
            label = f"{request.city}, {request.country}"
            try:
                await self._store.mark_processing(request.city, request.country)
                feed = await self._events.refresh_city(
                    request.city,
                    country_code=request.country_code,
                    source_names=self._source_names,
                )
            except StorageError as exc:
                failed += 1
                errors.append(f"{label}: {exc}")
                self._logger.warning("city_request_failed", city=request.city, error=str(exc))
                await self._record_error(request, str(exc))
                continue

            if not feed.events and feed.errors:
                failed += 1
                message = "; ".join(f"{name}: {err}" for name, err in feed.errors.items())
                errors.append(f"{label}: {message}")
                await self._record_error(request, message)
                continue
            try:
                await self._store.mark_completed(request.city, request.country, len(feed.events))
            except StorageError as exc:
                failed += 1
                errors.append(f"{label}: {exc}")
                continue
            updated += 1
            self._logger.info("city_request_completed", city=request.city, events=len(feed.events))

        interrupted = self._stop.is_set() and processed < len(requests)
        self._logger.info("city_queue_finished", updated=updated, failed=failed, interrupted=interrupted)
        return JobReport(
            job="process_city_requests",
            processed=processed,
            updated=updated,
            failed=failed,
            skipped=skipped,
            dry_run=dry_run,
            interrupted=interrupted,
            errors=errors[:_MAX_REPORTED_ERRORS],
            started_at=started,
            finished_at=datetime.now(timezone.utc),
        )

    async def _record_error(self, request: CityRequest, message: str) -> None:
        try:
            await self._store.mark_error(request.city, request.country, message)
        except StorageError as exc:
            self._logger.warning("city_request_status_failed", city=request.city, error=str(exc))
