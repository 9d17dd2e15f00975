"""Shared pytest fixtures for the TIKO test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from tiko.config.settings import Settings
from tiko.interfaces.document_store import IArtistStore, IEventStore, IProfileStore
from tiko.models.artist import AudioFeatures
from tiko.models.event import Event, EventArtist, GeoPoint, Venue
from tiko.models.taste import ArtistAffinity, UserTasteProfile
from tiko.providers.cache.memory_cache import MemoryCacheProvider

# Fixed reference time: Monday 2025-05-05 12:00 UTC.
NOW = datetime(2025, 5, 5, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_event(**overrides: Any) -> Event:
    """Build a music event with sensible defaults; any field can be overridden."""
    fields: dict[str, Any] = {
        "id": "ticketmaster-abc123",
        "source": "ticketmaster",
        "source_id": "abc123",
        "name": "Techno Night with Charlotte de Witte",
        "date": NOW + timedelta(days=4),
        "venue": Venue(name="CODA", city="Toronto", venue_type="club"),
        "location": GeoPoint(coordinates=(-79.4113, 43.6529)),
        "genres": ["techno"],
        "artists": [EventArtist(name="Charlotte de Witte", genres=["techno"], popularity=75)],
    }
    fields.update(overrides)
    return Event(**fields)


def make_response(status_code: int = 200, json_data: Any = None, headers: dict[str, str] | None = None) -> httpx.Response:
    """Build a real ``httpx.Response`` bound to a dummy request."""
    return httpx.Response(
        status_code,
        json=json_data if json_data is not None else {},
        headers=headers,
        request=httpx.Request("GET", "https://example.test"),
    )


def _build_settings(**overrides: Any) -> Settings:
    """Settings with every external key configured and no .env lookup."""
    defaults: dict[str, Any] = {
        "ticketmaster_api_key": "tm-key",
        "edmtrain_api_key": "edm-key",
        "spotify_client_id": "client-id",
        "spotify_client_secret": "client-secret",
        "google_maps_api_key": "google-key",
        "mongodb_uri": "",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings() -> Settings:
    return _build_settings()


@pytest.fixture
def techno_event() -> Event:
    return make_event()


@pytest.fixture
def sample_events() -> list[Event]:
    return [
        make_event(),
        make_event(
            id="edmtrain-2001",
            source="edmtrain",
            source_id="2001",
            name="Deep House Sunday",
            date=NOW + timedelta(days=20),
            venue=Venue(name="Rebel", city="Toronto", venue_type="club"),
            genres=["deep house"],
            artists=[EventArtist(name="Lane 8")],
        ),
        make_event(
            id="ticketmaster-museum",
            source_id="museum",
            name="Casa Loma Castle General Admission",
            description="Historic castle tour and museum visit",
            venue=Venue(name="Casa Loma", city="Toronto"),
            genres=[],
            artists=[],
        ),
    ]


@pytest.fixture
def techno_profile() -> UserTasteProfile:
    return UserTasteProfile(
        user_id="user-1",
        primary_genres=["techno", "tech house", "minimal techno"],
        genre_weights={"techno": 1.0, "tech house": 0.6, "minimal techno": 0.4},
        expanded_genres=["techno", "tech house", "minimal techno", "acid techno"],
        edm_preference=1.0,
        sound_characteristics=AudioFeatures(energy=0.85, danceability=0.8, valence=0.35, tempo=130),
        track_count=50,
        top_artists=[ArtistAffinity(name="Charlotte de Witte", weight=1.0, genres=["techno"])],
        confidence=0.8,
        source="spotify",
    )


@pytest.fixture
def memory_cache() -> MemoryCacheProvider:
    return MemoryCacheProvider(max_size=100, ttl=3600)


@pytest.fixture
def mock_event_store() -> MagicMock:
    store = MagicMock(spec=IEventStore)
    store.upsert_events = AsyncMock(return_value=0)
    store.find_events = AsyncMock(return_value=[])
    store.count_events = AsyncMock(return_value=0)
    store.find_unscored = AsyncMock(return_value=[])
    store.update_score = AsyncMock(return_value=True)
    store.iter_raw_venues = AsyncMock(return_value=[])
    store.replace_venue = AsyncMock(return_value=True)
    return store


@pytest.fixture
def mock_artist_store() -> MagicMock:
    store = MagicMock(spec=IArtistStore)
    store.find_needing_enrichment = AsyncMock(return_value=[])
    store.update_enrichment = AsyncMock(return_value=True)
    store.mark_enrichment_failed = AsyncMock(return_value=True)
    store.add_placeholder = AsyncMock(return_value=True)
    store.list_names = AsyncMock(return_value=[])
    store.count_artists = AsyncMock(return_value=0)
    return store


@pytest.fixture
def mock_profile_store() -> MagicMock:
    store = MagicMock(spec=IProfileStore)
    store.get_profile = AsyncMock(return_value=None)
    store.save_profile = AsyncMock(return_value=None)
    return store


@pytest.fixture
def event_factory():
    """Return :func:`make_event` so tests can build variants."""
    return make_event


@pytest.fixture
def response_factory():
    """Return :func:`make_response` for stubbing ``httpx.AsyncClient`` calls."""
    return make_response


@pytest.fixture
def settings_factory():
    """Return a builder for ``Settings`` with per-test overrides."""
    return _build_settings
