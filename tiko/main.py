"""TIKO FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

MongoDB is optional: without ``MONGODB_URI`` the app runs on the in-memory
cache with no persistence, and every store-backed feature degrades to its
default (default taste profile, seed venues only, no event counts).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from tiko.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from tiko.api.routes import APP_VERSION
from tiko.api.routes import router as api_router
from tiko.config.loader import load_config
from tiko.config.settings import Settings
from tiko.interfaces.cache_provider import ICacheProvider
from tiko.providers.cache.memory_cache import MemoryCacheProvider
from tiko.providers.cache.mongo_cache import MongoCacheProvider
from tiko.providers.events.edmtrain_provider import EDMTrainProvider
from tiko.providers.events.sample_provider import SampleEventProvider
from tiko.providers.events.ticketmaster_provider import TicketmasterProvider
from tiko.providers.location.google_geocoding_provider import GoogleGeocodingProvider
from tiko.providers.location.nominatim_provider import NominatimGeocodingProvider
from tiko.providers.spotify.spotify_provider import SpotifyProvider
from tiko.providers.storage.mongo_city_request_store import MongoCityRequestStore
from tiko.providers.storage.mongo_client import create_mongo_client, get_database
from tiko.providers.storage.mongo_event_store import MongoEventStore
from tiko.providers.storage.mongo_interested_event_store import MongoInterestedEventStore
from tiko.providers.storage.mongo_profile_store import MongoProfileStore
from tiko.services.city_request_service import CityRequestService
from tiko.services.event_service import EventService
from tiko.services.genre_matrix import GenreSimilarityMatrix
from tiko.services.location_service import LocationService
from tiko.services.recommendation_service import RecommendationService
from tiko.services.taste_profile_service import TasteProfileService
from tiko.services.venue_service import VenueService
from tiko.services.vibe_match import VibeMatchScorer
from tiko.utils.errors import StorageError
from tiko.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=app_settings.http_timeout)

    # -- Storage (optional) --
    mongo_client = None
    event_store = None
    profile_store = None
    interested_event_store = None
    city_request_store = None
    cache: ICacheProvider
    if app_settings.mongodb_uri:
        mongo_client = create_mongo_client(app_settings)
        database = get_database(mongo_client, app_settings)
        event_store = MongoEventStore(database)
        profile_store = MongoProfileStore(database)
        interested_event_store = MongoInterestedEventStore(database)
        city_request_store = MongoCityRequestStore(database)
        cache = MongoCacheProvider(database, ttl=app_settings.event_cache_stale_ttl)
    else:
        cache = MemoryCacheProvider(ttl=app_settings.event_cache_stale_ttl)

    # -- Event sources (ordered by priority for deduplication) --
    sources = [
        TicketmasterProvider(settings=app_settings, http_client=http_client),
        EDMTrainProvider(settings=app_settings, http_client=http_client),
    ]
    fallback = SampleEventProvider()

    # -- Music profile --
    spotify = SpotifyProvider(settings=app_settings, http_client=http_client)

    # -- Geocoders (Google first when keyed, Nominatim always) --
    geocoders = [
        GoogleGeocodingProvider(settings=app_settings, http_client=http_client),
        NominatimGeocodingProvider(settings=app_settings, http_client=http_client),
    ]

    # -- Scoring --
    matrix = GenreSimilarityMatrix()
    scorer = VibeMatchScorer.from_config(app_config, matrix=matrix)

    # -- Services --
    events_cfg = app_config.get("events", {})
    recs_cfg = app_config.get("recommendations", {})
    taste_service = TasteProfileService(music_provider=spotify, profile_store=profile_store)
    event_service = EventService(
        sources=sources,
        fallback=fallback,
        cache=cache,
        store=event_store,
        cache_ttl=app_settings.event_cache_ttl,
        stale_ttl=app_settings.event_cache_stale_ttl,
        fetch_limit=events_cfg.get("limit", app_settings.event_fetch_limit),
        max_concurrency=app_settings.max_concurrent_sources,
    )
    recommendation_service = RecommendationService(
        event_service=event_service,
        scorer=scorer,
        taste_service=taste_service,
        default_limit=recs_cfg.get("limit", 10),
        default_min_score=recs_cfg.get("min_score", 0),
    )
    venue_service = VenueService(store=event_store, matrix=matrix)
    location_service = LocationService(providers=geocoders)
    city_request_service = None
    if city_request_store is not None:
        city_cfg = app_config.get("city_requests", {})
        city_request_service = CityRequestService(
            store=city_request_store,
            event_service=event_service,
            request_delay=city_cfg.get("request_delay", 5.0),
            retention_days=city_cfg.get("retention_days", 7),
        )

    # -- Provider registry for /health --
    provider_registry: dict[str, bool] = {
        "spotify": spotify.is_available(),
        "storage": event_store is not None,
    }
    for geocoder in geocoders:
        provider_registry[geocoder.get_provider_name()] = geocoder.is_available()

    return {
        "http_client": http_client,
        "mongo_client": mongo_client,
        "cache": cache,
        "config": app_config,
        "settings": app_settings,
        "scorer": scorer,
        "taste_service": taste_service,
        "event_service": event_service,
        "recommendation_service": recommendation_service,
        "venue_service": venue_service,
        "location_service": location_service,
        "interested_event_store": interested_event_store,
        "city_request_store": city_request_store,
        "city_request_service": city_request_service,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    # Index creation needs a reachable server; the app still serves
    # (from memory and sample data) when it is not.
    indexed = [components["cache"], components["interested_event_store"], components["city_request_store"]]
    for component in indexed:
        if component is None or isinstance(component, MemoryCacheProvider):
            continue
        try:
            await component.ensure_indexes()
        except StorageError as exc:
            _logger.warning("index_setup_failed", component=type(component).__name__, error=str(exc))

    _logger.info(
        "app_startup",
        version=APP_VERSION,
        environment=settings.app_env,
        event_sources=settings.get_available_event_sources(),
        storage=components["mongo_client"] is not None,
    )

    yield

    # -- Shutdown: close shared clients --
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    if components["mongo_client"] is not None:
        components["mongo_client"].close()
    _logger.info("app_shutdown", message="HTTP and database clients closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="TIKO API",
        version=APP_VERSION,
        description=(
            "Aggregate electronic-music events from Ticketmaster and EDMTrain, "
            "build a listener taste profile from Spotify, and rank events and "
            "venues by how well they match it."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    configure_cors(application, allowed_origins=origins)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "tiko.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
