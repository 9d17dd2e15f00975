"""Pydantic request/response schemas for the TIKO API.

# ─── HOW SCHEMAS WORK ─────────────────────────────────────────────────
#
# Request bodies are validated against these models (invalid JSON gets a
# 422 with details); responses are serialized through them.  Domain
# models (Event, EventFeed, VibeMatchResult, ...) are returned directly
# where their shape is already the public contract; the classes below
# cover request bodies and envelopes.
#
# Convention: request schemas end with "Request", response schemas
# end with "Response".
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from tiko.models.city_request import CityRequest, CityRequestStats
from tiko.models.event import Event, VenueSummary
from tiko.models.location import Location
from tiko.models.saved_event import SavedEvent
from tiko.models.scoring import VibeMatchResult
from tiko.models.taste import UserTasteProfile


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
    provider: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    scoring_version: str
    providers: dict[str, Any]


class EventCountResponse(BaseModel):
    city: str | None = None
    count: int


class RecommendationRequest(BaseModel):
    """Ask for ranked events.

    Profile resolution order: ``profile`` in the body, then a Spotify
    bearer token in the ``Authorization`` header, then the stored profile
    for ``user_id``, then the default profile.
    """

    profile: UserTasteProfile | None = None
    user_id: str = ""
    city: str | None = None
    genre: str | None = None
    limit: int | None = Field(default=None, ge=1, le=50)
    min_score: int | None = Field(default=None, ge=0, le=100)


class ScoreEventRequest(BaseModel):
    """Score one event document (any source shape) for one profile."""

    event: dict[str, Any]
    profile: UserTasteProfile | None = None


class ScoreEventResponse(BaseModel):
    event: Event
    match: VibeMatchResult


class VenueListResponse(BaseModel):
    venues: list[VenueSummary]
    count: int
    location: Location | None = None


class UserTasteResponse(BaseModel):
    """Raw Spotify history plus the profile derived from it."""

    top_artists: list[dict[str, Any]]
    top_tracks: list[dict[str, Any]]
    profile: UserTasteProfile
    saved: bool = False


class CitySearchResponse(BaseModel):
    query: str
    results: list[Location]


class CacheClearResponse(BaseModel):
    cleared: int


class CityRequestBody(BaseModel):
    city: str = Field(min_length=1, max_length=100)
    country: str = Field(min_length=1, max_length=100)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class CityRequestResponse(BaseModel):
    request: CityRequest
    is_new: bool
    stats: CityRequestStats


class SaveEventRequest(BaseModel):
    """Save one event document (any source shape) for a listener."""

    event: dict[str, Any]


class SavedEventListResponse(BaseModel):
    user_id: str
    events: list[SavedEvent]
    count: int


class SaveEventResponse(BaseModel):
    saved: SavedEvent
    is_new: bool


class RemoveSavedEventResponse(BaseModel):
    removed: bool
    event_id: str
