"""Pydantic v2 models for events and venues.

Every event that leaves the normalizer is an :class:`Event` with a
:class:`Venue` object, regardless of whether the source document stored
the venue as a plain string, a nested object or not at all.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from tiko.models.artist import AudioFeatures

# Toronto city hall, the fallback coordinates for events with no location.
DEFAULT_COORDINATES: tuple[float, float] = (-79.3832, 43.6532)


class GeoPoint(BaseModel):
    """GeoJSON point; ``coordinates`` is ``[longitude, latitude]``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float] = DEFAULT_COORDINATES

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


class PriceRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float | None = Field(default=None, ge=0)
    max: float | None = Field(default=None, ge=0)
    currency: str = "USD"


class Venue(BaseModel):
    """A venue as embedded in an event document."""

    model_config = ConfigDict(frozen=True)

    name: str = "Venue TBA"
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    venue_type: str = Field(default="", description="e.g. 'club', 'festival', 'arena'.")
    capacity: int | None = Field(default=None, ge=0)
    url: str = ""
    location: GeoPoint | None = None


class EventArtist(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    spotify_id: str | None = None
    url: str = ""
    image: str = ""
    genres: list[str] = Field(default_factory=list)
    popularity: int | None = Field(default=None, ge=0, le=100)
    audio_features: AudioFeatures | None = None


class Event(BaseModel):
    """A normalized event from any source."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable identifier, '{source}-{source_id}'.")
    source: str = Field(description="ticketmaster, edmtrain, sample, ...")
    source_id: str
    name: str = "Untitled Event"
    description: str = ""
    status: str = "active"
    date: datetime | None = Field(default=None, description="Start, timezone-aware UTC.")
    start_time: str = ""
    venue: Venue = Field(default_factory=Venue)
    location: GeoPoint = Field(default_factory=GeoPoint)
    images: list[str] = Field(default_factory=list)
    price_range: PriceRange | None = None
    genres: list[str] = Field(default_factory=list)
    artists: list[EventArtist] = Field(default_factory=list)
    url: str = ""
    sound_characteristics: AudioFeatures | None = None
    personalized_score: int | None = Field(default=None, ge=0, le=100)
    scoring_method: str | None = None
    scoring_version: str | None = None
    scored_at: datetime | None = None
    document_id: str | None = Field(
        default=None, exclude=True, description="MongoDB _id when the event was read from the catalog."
    )

    @property
    def artist_names(self) -> list[str]:
        return [artist.name for artist in self.artists]

    @property
    def dedupe_key(self) -> tuple[str, str]:
        return (self.source, self.source_id)


class VenueSummary(BaseModel):
    """A venue listing with its match against a listener's taste."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    location: str = ""
    latitude: float | None = None
    longitude: float | None = None
    genres: list[str] = Field(default_factory=list)
    capacity: int | None = None
    description: str = ""
    website: str = ""
    match_percentage: int = Field(default=0, ge=0, le=100)
    distance_km: float | None = None


class EventFeed(BaseModel):
    """Result of one event aggregation request.

    ``source`` tells the caller where the events came from: ``api`` (live
    upstream data), ``cache`` (fresh or stale cached data), ``sample``
    (every upstream source came back empty) or ``error`` (aggregation
    itself failed and sample data was substituted).
    """

    model_config = ConfigDict(frozen=True)

    events: list[Event] = Field(default_factory=list)
    source: Literal["api", "cache", "sample", "error"] = "api"
    per_source_counts: dict[str, int] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)
    fetched_at: datetime | None = None
