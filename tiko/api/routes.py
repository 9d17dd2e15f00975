"""FastAPI API routes for TIKO.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/events                        GET     Aggregated event feed for a city
# /api/v1/events/count                  GET     Stored event count
# /api/v1/events/recommendations        POST    Events ranked for a listener
# /api/v1/events/score                  POST    Vibe match for one event
# /api/v1/events/request-city           POST    Queue a city for a live fetch
# /api/v1/user/interested-events        GET     A listener's saved events
# /api/v1/user/interested-events        POST    Save an event
# /api/v1/user/interested-events        DELETE  Remove a saved event
# /api/v1/venues                        GET     Venues with match % and distance
# /api/v1/spotify/user-taste            GET     Spotify history + derived profile
# /api/v1/location/reverse-geocode      GET     Coordinates -> city
# /api/v1/location/search               GET     Fuzzy city search
# /api/v1/cache/clear                   POST    Drop cached event feeds
# /api/v1/health                        GET     Health check + source status
#
# Upstream failures never surface as 5xx on /events: the event service
# degrades to cache or sample data and says so in ``source``.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response

from tiko.api.schemas import (
    CacheClearResponse,
    CityRequestBody,
    CityRequestResponse,
    CitySearchResponse,
    EventCountResponse,
    HealthResponse,
    RecommendationRequest,
    RemoveSavedEventResponse,
    SavedEventListResponse,
    SaveEventRequest,
    SaveEventResponse,
    ScoreEventRequest,
    ScoreEventResponse,
    UserTasteResponse,
    VenueListResponse,
)
from tiko.interfaces.document_store import IInterestedEventStore
from tiko.models.event import EventFeed
from tiko.models.location import Location
from tiko.models.recommendation import RecommendationResult
from tiko.models.taste import UserTasteProfile
from tiko.services.city_request_service import CityRequestService
from tiko.services.event_normalizer import normalize_event
from tiko.services.event_service import EventService
from tiko.services.location_service import LocationService
from tiko.services.recommendation_service import RecommendationService
from tiko.services.taste_profile_service import TasteProfileService
from tiko.services.venue_service import VenueService
from tiko.services.vibe_match import VibeMatchScorer
from tiko.utils.errors import EventValidationError, StorageError
from tiko.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# All routes in this file are prefixed with /api/v1.
router = APIRouter(prefix="/api/v1")

APP_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency injection helpers - resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_event_service(request: Request) -> EventService:
    return request.app.state.event_service


def _get_recommendation_service(request: Request) -> RecommendationService:
    return request.app.state.recommendation_service


def _get_scorer(request: Request) -> VibeMatchScorer:
    return request.app.state.scorer


def _get_taste_service(request: Request) -> TasteProfileService:
    return request.app.state.taste_service


def _get_venue_service(request: Request) -> VenueService:
    return request.app.state.venue_service


def _get_location_service(request: Request) -> LocationService:
    return request.app.state.location_service


def _get_city_request_service(request: Request) -> CityRequestService:
    service = getattr(request.app.state, "city_request_service", None)
    if service is None:
        raise StorageError("City requests need a database", provider_name="mongodb")
    return service


def _get_interested_event_store(request: Request) -> IInterestedEventStore:
    store = getattr(request.app.state, "interested_event_store", None)
    if store is None:
        raise StorageError("Saved events need a database", provider_name="mongodb")
    return store


def _get_app_config(request: Request) -> dict[str, Any]:
    return getattr(request.app.state, "config", {}) or {}


EventServiceDep = Annotated[EventService, Depends(_get_event_service)]
RecommendationServiceDep = Annotated[RecommendationService, Depends(_get_recommendation_service)]
ScorerDep = Annotated[VibeMatchScorer, Depends(_get_scorer)]
TasteServiceDep = Annotated[TasteProfileService, Depends(_get_taste_service)]
VenueServiceDep = Annotated[VenueService, Depends(_get_venue_service)]
LocationServiceDep = Annotated[LocationService, Depends(_get_location_service)]
CityRequestServiceDep = Annotated[CityRequestService, Depends(_get_city_request_service)]
InterestedEventStoreDep = Annotated[IInterestedEventStore, Depends(_get_interested_event_store)]
ConfigDep = Annotated[dict[str, Any], Depends(_get_app_config)]


def _bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _events_defaults(config: dict[str, Any]) -> tuple[str, str]:
    events = config.get("events", {})
    return events.get("default_city", "Toronto"), events.get("genre", "electronic")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@router.get("/events", response_model=EventFeed, summary="Aggregated event feed")
async def get_events(
    event_service: EventServiceDep,
    config: ConfigDep,
    city: Annotated[str | None, Query(max_length=100)] = None,
    genre: Annotated[str | None, Query(max_length=50)] = None,
) -> EventFeed:
    default_city, default_genre = _events_defaults(config)
    return await event_service.get_events(city or default_city, genre or default_genre)


@router.get("/events/count", response_model=EventCountResponse, summary="Stored event count")
async def count_events(
    event_service: EventServiceDep,
    city: Annotated[str | None, Query(max_length=100)] = None,
) -> EventCountResponse:
    return EventCountResponse(city=city, count=await event_service.count_events(city))


@router.post(
    "/events/recommendations",
    response_model=RecommendationResult,
    summary="Events ranked by vibe match",
)
async def recommend_events(
    body: RecommendationRequest,
    recommendation_service: RecommendationServiceDep,
    config: ConfigDep,
    authorization: Annotated[str | None, Header()] = None,
) -> RecommendationResult:
    default_city, default_genre = _events_defaults(config)
    city = body.city or default_city
    genre = body.genre or default_genre

    if body.profile is not None:
        profile = body.profile.model_copy(update={"source": "request"})
        return await recommendation_service.recommend(
            profile, city, genre, limit=body.limit, min_score=body.min_score
        )
    return await recommendation_service.recommend_for_user(
        body.user_id,
        city,
        genre,
        limit=body.limit,
        min_score=body.min_score,
        access_token=_bearer_token(authorization),
    )


@router.post("/events/score", response_model=ScoreEventResponse, summary="Vibe match for one event")
async def score_event(
    body: ScoreEventRequest,
    scorer: ScorerDep,
    taste_service: TasteServiceDep,
) -> ScoreEventResponse:
    event = normalize_event(body.event, source=str(body.event.get("source") or "request"))
    if event is None:
        raise EventValidationError("Event document could not be normalized")
    profile = body.profile or taste_service.default_profile()
    return ScoreEventResponse(event=event, match=scorer.score(event, profile))


@router.post(
    "/events/request-city",
    response_model=CityRequestResponse,
    status_code=201,
    summary="Queue a city for a live fetch",
)
async def request_city(
    body: CityRequestBody,
    city_request_service: CityRequestServiceDep,
) -> CityRequestResponse:
    request, is_new, stats = await city_request_service.request_city(
        body.city, body.country, body.latitude, body.longitude
    )
    return CityRequestResponse(request=request, is_new=is_new, stats=stats)


# ---------------------------------------------------------------------------
# Saved events
# ---------------------------------------------------------------------------


@router.get(
    "/user/interested-events",
    response_model=SavedEventListResponse,
    summary="A listener's saved events",
)
async def list_interested_events(
    store: InterestedEventStoreDep,
    user_id: Annotated[str, Query(min_length=1, max_length=200)],
) -> SavedEventListResponse:
    saved = await store.list_saved(user_id)
    return SavedEventListResponse(user_id=user_id, events=saved, count=len(saved))


@router.post(
    "/user/interested-events",
    response_model=SaveEventResponse,
    status_code=201,
    summary="Save an event",
)
async def save_interested_event(
    body: SaveEventRequest,
    store: InterestedEventStoreDep,
    response: Response,
    user_id: Annotated[str, Query(min_length=1, max_length=200)],
) -> SaveEventResponse:
    event = normalize_event(body.event, source=str(body.event.get("source") or "request"))
    if event is None:
        raise EventValidationError("Event document could not be normalized")
    saved, is_new = await store.save(user_id, event)
    if not is_new:
        response.status_code = 200
    return SaveEventResponse(saved=saved, is_new=is_new)


@router.delete(
    "/user/interested-events",
    response_model=RemoveSavedEventResponse,
    summary="Remove a saved event",
)
async def remove_interested_event(
    store: InterestedEventStoreDep,
    user_id: Annotated[str, Query(min_length=1, max_length=200)],
    event_id: Annotated[str, Query(min_length=1)],
) -> RemoveSavedEventResponse:
    if not await store.remove(user_id, event_id):
        raise HTTPException(status_code=404, detail="Event is not saved")
    return RemoveSavedEventResponse(removed=True, event_id=event_id)


# ---------------------------------------------------------------------------
# Venues & location
# ---------------------------------------------------------------------------


@router.get("/venues", response_model=VenueListResponse, summary="Venues ranked by genre fit")
async def list_venues(
    venue_service: VenueServiceDep,
    taste_service: TasteServiceDep,
    lat: Annotated[float | None, Query(ge=-90, le=90)] = None,
    lon: Annotated[float | None, Query(ge=-180, le=180)] = None,
    radius_km: Annotated[float | None, Query(gt=0, le=20000)] = None,
    genres: Annotated[str | None, Query(description="Comma-separated genres")] = None,
    user_id: str = "",
) -> VenueListResponse:
    if (lat is None) != (lon is None):
        raise HTTPException(status_code=400, detail="lat and lon must be given together")
    location = Location(latitude=lat, longitude=lon, source="request") if lat is not None else None

    genre_list = [g.strip().lower() for g in (genres or "").split(",") if g.strip()]
    if genre_list:
        profile = UserTasteProfile(user_id=user_id, primary_genres=genre_list[:5], source="request")
    else:
        profile = await taste_service.load_profile(user_id)

    venues = await venue_service.list_venues(profile, location=location, radius_km=radius_km)
    return VenueListResponse(venues=venues, count=len(venues), location=location)


@router.get("/location/reverse-geocode", response_model=Location, summary="Coordinates to city")
async def reverse_geocode(
    location_service: LocationServiceDep,
    lat: Annotated[float, Query(ge=-90, le=90)],
    lon: Annotated[float, Query(ge=-180, le=180)],
) -> Location:
    return await location_service.resolve(lat, lon)


@router.get("/location/search", response_model=CitySearchResponse, summary="Fuzzy city search")
async def search_cities(
    location_service: LocationServiceDep,
    q: Annotated[str, Query(min_length=1, max_length=100)],
    limit: Annotated[int, Query(ge=1, le=20)] = 5,
) -> CitySearchResponse:
    return CitySearchResponse(query=q, results=location_service.search_cities(q, limit))


# ---------------------------------------------------------------------------
# Spotify
# ---------------------------------------------------------------------------


@router.get("/spotify/user-taste", response_model=UserTasteResponse, summary="Listener taste from Spotify")
async def user_taste(
    taste_service: TasteServiceDep,
    authorization: Annotated[str | None, Header()] = None,
    user_id: str = "",
    time_range: Annotated[str, Query(pattern="^(short_term|medium_term|long_term)$")] = "medium_term",
) -> UserTasteResponse:
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Spotify bearer token required")

    top_artists, top_tracks, features = await taste_service.fetch_listening_history(token, time_range)
    profile = taste_service.build_profile(user_id, top_artists, top_tracks, features)
    saved = await taste_service.save_profile(profile)
    _logger.info("user_taste_served", user_id=user_id, artists=len(top_artists), saved=saved)
    return UserTasteResponse(top_artists=top_artists, top_tracks=top_tracks, profile=profile, saved=saved)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@router.post("/cache/clear", response_model=CacheClearResponse, summary="Drop cached event feeds")
async def clear_cache(event_service: EventServiceDep) -> CacheClearResponse:
    return CacheClearResponse(cleared=await event_service.clear_cache())


@router.get("/health", response_model=HealthResponse, summary="Application health check")
async def health_check(request: Request) -> HealthResponse:
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}) or {})
    event_service: EventService | None = getattr(request.app.state, "event_service", None)
    if event_service is not None:
        providers.update(event_service.source_availability())
    scorer: VibeMatchScorer | None = getattr(request.app.state, "scorer", None)
    return HealthResponse(
        status="healthy",
        version=APP_VERSION,
        scoring_version=scorer.version if scorer is not None else "",
        providers=providers,
    )
