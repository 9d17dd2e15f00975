"""Venue discovery ranked by genre fit and distance.

The catalog is the seed venue list merged with venues that appear on
stored events.  A stored venue with the same name as a seed venue adds
its event genres to the seed entry instead of creating a duplicate.

Match percentage: every (venue genre, listener genre) pair whose matrix
similarity is at least 0.5 contributes ``listener weight x similarity``;
the match is the mean contribution x 100.  A venue with no such pair
gets a floor of 20 so it can still be listed by distance.
"""

from __future__ import annotations

from typing import Any

from tiko.config.genre_knowledge import SEED_VENUES, normalize_genre
from tiko.interfaces.document_store import IEventStore
from tiko.models.event import DEFAULT_COORDINATES, Event, VenueSummary
from tiko.models.location import Location
from tiko.models.taste import UserTasteProfile
from tiko.services.genre_matrix import GenreSimilarityMatrix
from tiko.services.location_service import haversine_km
from tiko.utils.errors import StorageError
from tiko.utils.logging import get_logger

_MIN_PAIR_SIMILARITY = 0.5
_NO_MATCH_FLOOR = 20
_STORE_SCAN_LIMIT = 500


class VenueService:
    def __init__(
        self,
        catalog: list[dict[str, Any]] | None = None,
        store: IEventStore | None = None,
        matrix: GenreSimilarityMatrix | None = None,
    ) -> None:
        self._catalog = catalog if catalog is not None else SEED_VENUES
        self._store = store
        self._matrix = matrix or GenreSimilarityMatrix()
        self._logger = get_logger(__name__)

    def match_percentage(self, venue_genres: list[str], profile: UserTasteProfile) -> int:
        user_genres = profile.scoring_genres
        if not venue_genres or not user_genres:
            return _NO_MATCH_FLOOR
        contributions = []
        for venue_genre in venue_genres:
            for user_genre in user_genres:
                similarity = self._matrix.similarity(venue_genre, user_genre)
                if similarity >= _MIN_PAIR_SIMILARITY:
                    weight = profile.genre_weights.get(user_genre, 1.0)
                    contributions.append(weight * similarity)
        if not contributions:
            return _NO_MATCH_FLOOR
        return max(0, min(100, round(sum(contributions) / len(contributions) * 100)))

    async def catalog(self, city: str | None = None) -> list[dict[str, Any]]:
        """Seed venues plus venues seen on stored events (for *city* when given)."""
        entries = {normalize_genre(v["name"]): {**v, "genres": list(v["genres"])} for v in self._catalog}
        if self._store is None:
            return list(entries.values())
        try:
            events = await self._store.find_events(city=city, limit=_STORE_SCAN_LIMIT)
        except StorageError as exc:
            self._logger.warning("venue_catalog_store_failed", error=str(exc))
            return list(entries.values())
        for event in events:
            self._merge_event_venue(entries, event)
        return list(entries.values())

    @staticmethod
    def _merge_event_venue(entries: dict[str, dict[str, Any]], event: Event) -> None:
        venue = event.venue
        if venue.name == "Venue TBA":
            return
        key = normalize_genre(venue.name)
        entry = entries.get(key)
        if entry is None:
            has_point = event.location.coordinates != DEFAULT_COORDINATES
            entry = {
                "id": f"event-venue-{key.replace(' ', '-')}",
                "name": venue.name,
                "location": ", ".join(p for p in (venue.city, venue.state or venue.country) if p),
                "coordinates": (event.location.latitude, event.location.longitude) if has_point else None,
                "genres": [],
                "description": "",
                "website": venue.url,
                "capacity": venue.capacity,
            }
            entries[key] = entry
        for genre in event.genres:
            if genre not in entry["genres"]:
                entry["genres"].append(genre)

    async def list_venues(
        self,
        profile: UserTasteProfile,
        location: Location | None = None,
        radius_km: float | None = None,
        limit: int | None = None,
    ) -> list[VenueSummary]:
        """Return venues with their match percentage, best match first then nearest.

        Venues without coordinates are dropped when a radius filter applies.
        """
        venues = await self.catalog(city=location.city if location and location.city else None)
        summaries: list[VenueSummary] = []
        for entry in venues:
            coordinates = entry.get("coordinates")
            distance = None
            if location is not None and coordinates:
                distance = round(haversine_km((location.latitude, location.longitude), tuple(coordinates)), 1)
            if radius_km is not None and (distance is None or distance > radius_km):
                continue
            summaries.append(
                VenueSummary(
                    id=str(entry["id"]),
                    name=entry["name"],
                    location=entry.get("location", ""),
                    latitude=coordinates[0] if coordinates else None,
                    longitude=coordinates[1] if coordinates else None,
                    genres=list(entry.get("genres") or []),
                    capacity=entry.get("capacity"),
                    description=entry.get("description", ""),
                    website=entry.get("website", ""),
                    match_percentage=self.match_percentage(list(entry.get("genres") or []), profile),
                    distance_km=distance,
                )
            )
        summaries.sort(key=lambda v: (-v.match_percentage, v.distance_km if v.distance_km is not None else float("inf")))
        self._logger.info("venues_listed", count=len(summaries), radius_km=radius_km)
        return summaries[:limit] if limit else summaries
