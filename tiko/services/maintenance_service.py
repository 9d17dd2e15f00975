"""Batch maintenance jobs over the event and artist collections.

Jobs
----
    populate_scores           baseline ``personalizedScore`` for unscored events
    audit_venue_shapes        count how events store their venue
    repair_venue_shapes       rewrite plain-string venues as objects
    backfill_artist_genres    Spotify genre lookup for flagged artists
    enrich_artists_from_events  register unknown event artists for lookup
    process_city_requests     live fetch for queued city requests
    data_quality_report       catalog-wide health summary

Every job writes one document at a time; a failure on one document is
logged and counted, never fatal to the run.  Jobs check a shared stop
event between documents, so a SIGINT from the CLI finishes the current
document and returns a report with ``interrupted=True``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from tiko.interfaces.document_store import IArtistStore, IEventStore
from tiko.interfaces.music_profile_provider import IMusicProfileProvider
from tiko.models.maintenance import DataQualityReport, JobReport, VenueShapeAudit
from tiko.services.city_request_service import CityRequestService
from tiko.services.event_normalizer import completeness_score, safe_venue, venue_shape
from tiko.services.vibe_match import BASELINE_METHOD, VibeMatchScorer
from tiko.utils.concurrency import paced
from tiko.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    ProviderUnavailableError,
    RateLimitError,
    StorageError,
)
from tiko.utils.logging import get_logger
from tiko.utils.text_normalizer import fuzzy_match

_DEFAULT_RETRY_AFTER = 30.0
_MAX_REPORTED_ERRORS = 20
_FUZZY_ARTIST_THRESHOLD = 0.9


class MaintenanceService:
    """Runs the batch jobs; one instance per CLI invocation."""

    def __init__(
        self,
        event_store: IEventStore,
        artist_store: IArtistStore | None = None,
        scorer: VibeMatchScorer | None = None,
        music_provider: IMusicProfileProvider | None = None,
        request_delay: float = 0.5,
        stop_event: asyncio.Event | None = None,
        city_requests: CityRequestService | None = None,
    ) -> None:
        self._events = event_store
        self._city_requests = city_requests
        self._artists = artist_store
        self._scorer = scorer
        self._music = music_provider
        self._delay = request_delay
        self._stop = stop_event or asyncio.Event()
        self._logger = get_logger(__name__)

    def request_stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _require_artists(self) -> IArtistStore:
        if self._artists is None:
            raise ConfigurationError("No artist store configured", provider_name="mongodb")
        return self._artists

    @staticmethod
    def _report(job: str, started: datetime, **counts) -> JobReport:
        errors = counts.pop("errors", [])
        return JobReport(
            job=job,
            errors=errors[:_MAX_REPORTED_ERRORS],
            started_at=started,
            finished_at=datetime.now(timezone.utc),
            **counts,
        )

    # -- Scores -----------------------------------------------------------

    async def populate_scores(
        self,
        batch_size: int = 20,
        limit: int = 1000,
        rescore: bool = False,
        dry_run: bool = False,
    ) -> JobReport:
        """Write a baseline score on every event that has none (or all with *rescore*)."""
        if self._scorer is None:
            raise ConfigurationError("No scorer configured")
        started = datetime.now(timezone.utc)
        events = await self._events.find_unscored(limit, include_scored=rescore)
        self._logger.info("populate_scores_started", candidates=len(events), rescore=rescore, dry_run=dry_run)

        processed = updated = failed = 0
        errors: list[str] = []
        interrupted = False
        for start in range(0, len(events), max(batch_size, 1)):
            if self.stopped:
                interrupted = True
                break
            batch = events[start:start + batch_size]
            for event in batch:
                processed += 1
                score = self._scorer.baseline_score(event)
                if dry_run:
                    continue
                try:
                    matched = await self._events.update_score(
                        event.id,
                        score,
                        BASELINE_METHOD,
                        self._scorer.version,
                        datetime.now(timezone.utc),
                        document_id=event.document_id,
                    )
                except StorageError as exc:
                    failed += 1
                    errors.append(f"{event.id}: {exc}")
                    self._logger.warning("score_write_failed", event_id=event.id, error=str(exc))
                    continue
                if matched:
                    updated += 1
                    self._logger.debug("score_written", event_id=event.id, score=score)
                else:
                    failed += 1
                    errors.append(f"{event.id}: no matching document")
            self._logger.info("populate_scores_batch", processed=processed, updated=updated, failed=failed)

        report = self._report(
            "populate_scores", started,
            processed=processed, updated=updated, failed=failed,
            skipped=len(events) - processed, dry_run=dry_run, interrupted=interrupted, errors=errors,
        )
        self._logger.info("populate_scores_finished", updated=report.updated, failed=report.failed)
        return report

    # -- Venue shapes -------------------------------------------------------

    async def audit_venue_shapes(self, sample_size: int = 10) -> VenueShapeAudit:
        pairs = await self._events.iter_raw_venues()
        counts = {"object": 0, "string": 0, "missing": 0, "other": 0}
        string_ids: list[str] = []
        for event_id, raw_venue in pairs:
            shape = venue_shape({"venue": raw_venue})
            counts[shape] += 1
            if shape == "string" and len(string_ids) < sample_size:
                string_ids.append(event_id)
        self._logger.info("venue_shapes_audited", total=len(pairs), **counts)
        return VenueShapeAudit(total=len(pairs), counts=counts, string_venue_ids=string_ids)

    async def repair_venue_shapes(self, dry_run: bool = False, limit: int | None = None) -> JobReport:
        """Convert plain-string venues to the object form."""
        started = datetime.now(timezone.utc)
        pairs = await self._events.iter_raw_venues(limit)
        processed = updated = failed = skipped = 0
        errors: list[str] = []
        interrupted = False
        for event_id, raw_venue in pairs:
            if self.stopped:
                interrupted = True
                break
            if venue_shape({"venue": raw_venue}) != "string":
                skipped += 1
                continue
            processed += 1
            if dry_run:
                continue
            try:
                if await self._events.replace_venue(event_id, safe_venue(raw_venue)):
                    updated += 1
                else:
                    failed += 1
                    errors.append(f"{event_id}: not modified")
            except StorageError as exc:
                failed += 1
                errors.append(f"{event_id}: {exc}")
                self._logger.warning("venue_repair_failed", event_id=event_id, error=str(exc))

        self._logger.info("venue_shapes_repaired", converted=updated, failed=failed, dry_run=dry_run)
        return self._report(
            "repair_venue_shapes", started,
            processed=processed, updated=updated, failed=failed, skipped=skipped,
            dry_run=dry_run, interrupted=interrupted, errors=errors,
        )

    # -- Artists --------------------------------------------------------------

    async def backfill_artist_genres(self, limit: int = 50, dry_run: bool = False) -> JobReport:
        """Look up genres on Spotify for artists flagged ``needsGenreEnrichment``.

        One request per ``request_delay`` seconds.  A rate limit pauses for
        the server's ``Retry-After`` and retries the same artist once; an
        authentication failure ends the run.
        """
        artists_store = self._require_artists()
        if self._music is None or not self._music.is_available():
            raise ConfigurationError("Spotify client credentials not configured", provider_name="spotify")

        started = datetime.now(timezone.utc)
        artists = await artists_store.find_needing_enrichment(limit)
        self._logger.info("genre_backfill_started", candidates=len(artists), dry_run=dry_run)
        processed = updated = failed = skipped = 0
        errors: list[str] = []

        async for artist in paced(artists, self._delay, self._stop):
            processed += 1
            try:
                match = await self._search_with_retry(self._music, artist.name)
            except AuthenticationError as exc:
                errors.append(f"{artist.name}: {exc}")
                failed += 1
                self._logger.error("genre_backfill_auth_failed", error=str(exc))
                self._stop.set()
                break
            except (ProviderUnavailableError, RateLimitError) as exc:
                failed += 1
                errors.append(f"{artist.name}: {exc}")
                self._logger.warning("genre_lookup_failed", artist=artist.name, error=str(exc))
                continue

            if dry_run:
                skipped += 1
                continue
            try:
                if match is None:
                    await artists_store.mark_enrichment_failed(artist.name, "not found on Spotify")
                    skipped += 1
                    self._logger.debug("genre_lookup_no_match", artist=artist.name)
                    continue
                await artists_store.update_enrichment(
                    artist.name,
                    [g.lower() for g in match.get("genres") or []],
                    match.get("popularity"),
                    match.get("id"),
                )
                updated += 1
                self._logger.info("artist_genres_written", artist=artist.name, genres=len(match.get("genres") or []))
            except StorageError as exc:
                failed += 1
                errors.append(f"{artist.name}: {exc}")

        interrupted = self.stopped and processed < len(artists)
        self._logger.info("genre_backfill_finished", updated=updated, failed=failed, interrupted=interrupted)
        return self._report(
            "backfill_artist_genres", started,
            processed=processed, updated=updated, failed=failed, skipped=skipped,
            dry_run=dry_run, interrupted=interrupted, errors=errors,
        )

    async def _search_with_retry(self, music: IMusicProfileProvider, name: str) -> dict | None:
        try:
            return await music.search_artist(name)
        except RateLimitError as exc:
            wait = exc.retry_after if exc.retry_after is not None else _DEFAULT_RETRY_AFTER
            self._logger.warning("genre_lookup_rate_limited", artist=name, retry_after=wait)
            await asyncio.sleep(wait)
            return await music.search_artist(name)

    async def enrich_artists_from_events(self, limit: int = 500, dry_run: bool = False) -> JobReport:
        """Register every event artist not yet in the artist collection."""
        artists_store = self._require_artists()
        started = datetime.now(timezone.utc)
        events = await self._events.find_unscored(limit, include_scored=True)
        known = await artists_store.list_names()
        known_keys = {n.strip().lower() for n in known}

        processed = updated = skipped = failed = 0
        errors: list[str] = []
        interrupted = False
        for event in events:
            if self.stopped:
                interrupted = True
                break
            for name in event.artist_names:
                processed += 1
                if name.strip().lower() in known_keys or fuzzy_match(name, known, _FUZZY_ARTIST_THRESHOLD):
                    skipped += 1
                    continue
                known.append(name)
                known_keys.add(name.strip().lower())
                if dry_run:
                    continue
                try:
                    if await artists_store.add_placeholder(name):
                        updated += 1
                    else:
                        skipped += 1
                except StorageError as exc:
                    failed += 1
                    errors.append(f"{name}: {exc}")

        self._logger.info("artists_registered", added=updated, skipped=skipped, dry_run=dry_run)
        return self._report(
            "enrich_artists_from_events", started,
            processed=processed, updated=updated, failed=failed, skipped=skipped,
            dry_run=dry_run, interrupted=interrupted, errors=errors,
        )

    # -- City requests ------------------------------------------------------

    async def process_city_requests(self, limit: int = 10, dry_run: bool = False) -> JobReport:
        if self._city_requests is None:
            raise ConfigurationError("No city request queue configured", provider_name="mongodb")
        return await self._city_requests.process_queue(limit=limit, dry_run=dry_run)

    # -- Reporting ---------------------------------------------------------

    async def data_quality_report(self, sample_size: int = 200) -> DataQualityReport:
        total = await self._events.count_events()
        scored = await self._events.count_events(scored=True)
        audit = await self.audit_venue_shapes()
        sample = await self._events.find_unscored(sample_size, include_scored=True)
        completeness = [completeness_score(e) for e in sample]

        total_artists = needing = 0
        if self._artists is not None:
            total_artists = await self._artists.count_artists()
            needing = await self._artists.count_artists(needing_enrichment=True)

        return DataQualityReport(
            total_events=total,
            scored_events=scored,
            scored_percentage=round(scored / total * 100, 1) if total else 0.0,
            venue_shapes=audit.counts,
            mean_completeness=round(sum(completeness) / len(completeness), 1) if completeness else 0.0,
            total_artists=total_artists,
            artists_needing_enrichment=needing,
        )
