"""Integration tests for the FastAPI endpoints using TestClient.

Services are real; only the network-facing providers and the MongoDB
stores are mocked.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tiko.api.middleware import ErrorHandlingMiddleware
from tiko.api.routes import router as api_router
from tiko.interfaces.document_store import ICityRequestStore, IInterestedEventStore
from tiko.interfaces.event_source_provider import IEventSourceProvider
from tiko.interfaces.geocoding_provider import IGeocodingProvider
from tiko.interfaces.music_profile_provider import IMusicProfileProvider
from tiko.models.city_request import CityRequest, CityRequestStats
from tiko.models.location import Location
from tiko.models.saved_event import SavedEvent
from tiko.providers.cache.memory_cache import MemoryCacheProvider
from tiko.services.city_request_service import CityRequestService
from tiko.services.event_service import EventService
from tiko.services.location_service import LocationService
from tiko.services.recommendation_service import RecommendationService
from tiko.services.taste_profile_service import TasteProfileService
from tiko.services.venue_service import VenueService
from tiko.services.vibe_match import VibeMatchScorer
from tiko.utils.errors import AuthenticationError, ProviderUnavailableError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _upcoming(days: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def _raw_events() -> list[dict]:
    return [
        {
            "sourceId": "deep-1",
            "name": "Deep House Sunday",
            "date": _upcoming(12),
            "venue": {"name": "Rebel", "city": "Toronto", "type": "club"},
            "genres": ["deep house"],
            "artists": [{"name": "Lane 8"}],
        },
        {
            "sourceId": "techno-1",
            "name": "Charlotte de Witte",
            "date": _upcoming(3),
            "venue": {"name": "CODA", "city": "Toronto", "type": "club"},
            "genres": ["techno"],
            "artists": [{"name": "Charlotte de Witte", "genres": ["techno"], "popularity": 75}],
        },
        {
            "sourceId": "museum-1",
            "name": "Casa Loma Castle General Admission",
            "description": "Historic castle tour and museum visit",
            "date": _upcoming(5),
            "venue": {"name": "Casa Loma", "city": "Toronto"},
        },
    ]


def _event_source(name: str = "ticketmaster", error: Exception | None = None) -> MagicMock:
    source = MagicMock(spec=IEventSourceProvider)
    source.get_provider_name.return_value = name
    source.is_available.return_value = True
    source.fetch_events = AsyncMock(return_value=_raw_events(), side_effect=error)
    return source


def _music_provider() -> MagicMock:
    provider = MagicMock(spec=IMusicProfileProvider)
    provider.get_provider_name.return_value = "spotify"
    provider.is_available.return_value = True
    provider.get_top_artists = AsyncMock(
        return_value=[
            {"id": "a1", "name": "Amelie Lens", "genres": ["techno", "belgian techno"], "popularity": 70},
            {"id": "a2", "name": "Charlotte de Witte", "genres": ["techno"], "popularity": 75},
        ]
    )
    provider.get_top_tracks = AsyncMock(
        return_value=[{"id": "t1", "name": "Doppler", "artists": ["Amelie Lens"], "popularity": 55}]
    )
    provider.get_audio_features = AsyncMock(
        return_value={"t1": {"energy": 0.9, "danceability": 0.8, "valence": 0.3, "tempo": 132}}
    )
    provider.search_artist = AsyncMock(return_value=None)
    return provider


def _create_test_app(
    event_store: MagicMock,
    profile_store: MagicMock,
    source: MagicMock | None = None,
    with_store: bool = True,
) -> tuple[FastAPI, dict]:
    """Create a FastAPI app with real services over mocked providers."""
    source = source or _event_source()
    music = _music_provider()
    geocoder = MagicMock(spec=IGeocodingProvider)
    geocoder.get_provider_name.return_value = "google"
    geocoder.is_available.return_value = True
    geocoder.reverse_geocode = AsyncMock(
        return_value=Location(latitude=52.52, longitude=13.405, city="Berlin", country="Germany", source="google")
    )

    scorer = VibeMatchScorer()
    cache = MemoryCacheProvider(max_size=50, ttl=3600)
    taste_service = TasteProfileService(music_provider=music, profile_store=profile_store)
    event_service = EventService(
        sources=[source],
        cache=cache,
        store=event_store if with_store else None,
    )

    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    app.include_router(api_router)
    app.state.config = {"events": {"default_city": "Toronto", "genre": "electronic"}}
    app.state.scorer = scorer
    app.state.event_service = event_service
    app.state.taste_service = taste_service
    app.state.recommendation_service = RecommendationService(
        event_service=event_service, scorer=scorer, taste_service=taste_service
    )
    app.state.venue_service = VenueService()
    app.state.location_service = LocationService(providers=[geocoder])
    app.state.provider_registry = {"spotify": True, "storage": with_store}

    interested = AsyncMock(spec=IInterestedEventStore)
    city_store = AsyncMock(spec=ICityRequestStore)
    city_store.add_request.return_value = (
        CityRequest(city="Berlin", country="Germany", country_code="DE", latitude=52.52, longitude=13.405),
        True,
    )
    city_store.stats.return_value = CityRequestStats(total=1, pending=1, by_country={"Germany": 1})
    app.state.interested_event_store = interested if with_store else None
    app.state.city_request_service = (
        CityRequestService(store=city_store, event_service=event_service) if with_store else None
    )

    return app, {
        "source": source,
        "music": music,
        "geocoder": geocoder,
        "cache": cache,
        "interested": interested,
        "city_store": city_store,
    }


@pytest.fixture
def api(mock_event_store, mock_profile_store):
    app, mocks = _create_test_app(mock_event_store, mock_profile_store)
    return TestClient(app), mocks


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class TestEventsEndpoint:
    def test_live_feed(self, api, mock_event_store) -> None:
        client, mocks = api

        resp = client.get("/api/v1/events", params={"city": "Toronto"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["source"] == "api"
        assert data["per_source_counts"] == {"ticketmaster": 3}
        assert [e["id"] for e in data["events"]] == [
            "ticketmaster-techno-1",
            "ticketmaster-museum-1",
            "ticketmaster-deep-1",
        ]
        assert mocks["source"].fetch_events.await_args.args[:2] == ("Toronto", "electronic")
        mock_event_store.upsert_events.assert_awaited_once()

    def test_second_request_is_served_from_cache(self, api) -> None:
        client, mocks = api

        client.get("/api/v1/events")
        resp = client.get("/api/v1/events")

        assert resp.json()["source"] == "cache"
        assert mocks["source"].fetch_events.await_count == 1

    def test_source_failure_falls_back_to_sample(self, mock_event_store, mock_profile_store) -> None:
        source = _event_source(error=ProviderUnavailableError("HTTP 503", provider_name="ticketmaster"))
        app, _ = _create_test_app(mock_event_store, mock_profile_store, source=source)

        resp = TestClient(app).get("/api/v1/events", params={"city": "Berlin", "genre": "techno"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["source"] == "sample"
        assert data["errors"] == {"ticketmaster": "[ticketmaster] HTTP 503"}
        assert data["per_source_counts"]["sample"] == len(data["events"])

    def test_count(self, api, mock_event_store) -> None:
        client, _ = api
        mock_event_store.count_events.return_value = 42

        resp = client.get("/api/v1/events/count", params={"city": "Toronto"})

        assert resp.json() == {"city": "Toronto", "count": 42}
        mock_event_store.count_events.assert_awaited_once_with(city="Toronto")

    def test_count_without_store(self, mock_event_store, mock_profile_store) -> None:
        app, _ = _create_test_app(mock_event_store, mock_profile_store, with_store=False)

        resp = TestClient(app).get("/api/v1/events/count")

        assert resp.status_code == 503
        assert resp.json()["error"] == "StorageError"
        assert resp.json()["provider"] == "mongodb"

    def test_clear_cache(self, api) -> None:
        client, _ = api
        client.get("/api/v1/events")

        assert client.post("/api/v1/cache/clear").json() == {"cleared": 1}
        assert client.post("/api/v1/cache/clear").json() == {"cleared": 0}


# ---------------------------------------------------------------------------
# Recommendations & scoring
# ---------------------------------------------------------------------------


class TestRecommendationsEndpoint:
    def test_profile_in_body(self, api, techno_profile) -> None:
        client, mocks = api

        resp = client.post(
            "/api/v1/events/recommendations",
            json={"profile": techno_profile.model_dump(mode="json"), "limit": 2},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["profile_source"] == "request"
        assert data["total_candidates"] == 3
        assert len(data["recommendations"]) == 2
        top = data["recommendations"][0]
        assert top["event"]["id"] == "ticketmaster-techno-1"
        assert top["match"]["score"] >= data["recommendations"][1]["match"]["score"]
        mocks["music"].get_top_artists.assert_not_awaited()

    def test_min_score_drops_non_music(self, api, techno_profile) -> None:
        client, _ = api

        resp = client.post(
            "/api/v1/events/recommendations",
            json={"profile": techno_profile.model_dump(mode="json"), "min_score": 11},
        )

        ids = [r["event"]["id"] for r in resp.json()["recommendations"]]
        assert "ticketmaster-museum-1" not in ids

    def test_bearer_token_builds_spotify_profile(self, api, mock_profile_store) -> None:
        client, mocks = api

        resp = client.post(
            "/api/v1/events/recommendations",
            json={"user_id": "user-9"},
            headers={"Authorization": "Bearer spotify-token"},
        )

        assert resp.status_code == 200
        assert resp.json()["profile_source"] == "spotify"
        mocks["music"].get_top_artists.assert_awaited_once()
        assert mocks["music"].get_top_artists.await_args.args[0] == "spotify-token"
        mock_profile_store.save_profile.assert_awaited_once()

    def test_stored_profile_without_token(self, api, mock_profile_store, techno_profile) -> None:
        client, mocks = api
        mock_profile_store.get_profile.return_value = techno_profile.model_copy(update={"source": "stored"})

        resp = client.post("/api/v1/events/recommendations", json={"user_id": "user-1"})

        assert resp.json()["profile_source"] == "stored"
        mock_profile_store.get_profile.assert_awaited_once_with("user-1")
        mocks["music"].get_top_artists.assert_not_awaited()

    def test_default_profile(self, api) -> None:
        client, _ = api
        resp = client.post("/api/v1/events/recommendations", json={})
        assert resp.json()["profile_source"] == "default"

    def test_invalid_limit(self, api) -> None:
        client, _ = api
        assert client.post("/api/v1/events/recommendations", json={"limit": 0}).status_code == 422

    def test_expired_spotify_token(self, api) -> None:
        client, mocks = api
        mocks["music"].get_top_artists.side_effect = AuthenticationError("HTTP 401", provider_name="spotify")

        resp = client.post(
            "/api/v1/events/recommendations",
            json={"user_id": "user-9"},
            headers={"Authorization": "Bearer expired"},
        )

        assert resp.status_code == 401
        assert resp.json() == {"error": "AuthenticationError", "detail": "HTTP 401", "provider": "spotify"}


class TestScoreEndpoint:
    def test_score_event(self, api, techno_profile) -> None:
        client, _ = api

        resp = client.post(
            "/api/v1/events/score",
            json={"event": _raw_events()[1] | {"source": "edmtrain"}, "profile": techno_profile.model_dump(mode="json")},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["event"]["id"] == "edmtrain-techno-1"
        assert data["match"]["is_music_event"] is True
        assert 0 <= data["match"]["score"] <= 100

    def test_non_music_event(self, api) -> None:
        client, _ = api

        resp = client.post("/api/v1/events/score", json={"event": _raw_events()[2]})

        assert resp.json()["match"]["is_music_event"] is False
        assert resp.json()["match"]["score"] == 10

    def test_missing_event(self, api) -> None:
        client, _ = api
        assert client.post("/api/v1/events/score", json={"profile": None}).status_code == 422

    def test_unusable_event_document(self, api, monkeypatch) -> None:
        client, _ = api
        monkeypatch.setattr("tiko.api.routes.normalize_event", lambda raw, source="unknown": None)

        resp = client.post("/api/v1/events/score", json={"event": {"name": "Broken"}})

        assert resp.status_code == 422
        assert resp.json() == {
            "error": "EventValidationError",
            "detail": "Event document could not be normalized",
            "provider": None,
        }


class TestRequestCityEndpoint:
    def test_queues_city(self, api) -> None:
        client, mocks = api

        resp = client.post(
            "/api/v1/events/request-city",
            json={"city": "Berlin", "country": "Germany", "latitude": 52.52, "longitude": 13.405},
        )

        assert resp.status_code == 201
        data = resp.json()
        assert data["is_new"] is True
        assert data["request"]["country_code"] == "DE"
        assert data["stats"]["by_country"] == {"Germany": 1}
        mocks["city_store"].add_request.assert_awaited_once_with("Berlin", "Germany", "DE", 52.52, 13.405, 80)

    def test_unsupported_country(self, api) -> None:
        client, mocks = api

        resp = client.post(
            "/api/v1/events/request-city",
            json={"city": "Reykjavik", "country": "Iceland", "latitude": 64.14, "longitude": -21.94},
        )

        assert resp.status_code == 400
        assert resp.json()["error"] == "CitySupportError"
        mocks["city_store"].add_request.assert_not_awaited()

    def test_invalid_coordinates(self, api) -> None:
        client, _ = api
        resp = client.post(
            "/api/v1/events/request-city",
            json={"city": "Berlin", "country": "Germany", "latitude": 152.0, "longitude": 13.4},
        )
        assert resp.status_code == 422

    def test_without_store(self, mock_event_store, mock_profile_store) -> None:
        app, _ = _create_test_app(mock_event_store, mock_profile_store, with_store=False)

        resp = TestClient(app).post(
            "/api/v1/events/request-city",
            json={"city": "Berlin", "country": "Germany", "latitude": 52.52, "longitude": 13.405},
        )

        assert resp.status_code == 503


class TestInterestedEventsEndpoint:
    def test_save_new_event(self, api, techno_event) -> None:
        client, mocks = api
        mocks["interested"].save.return_value = (SavedEvent(user_id="user-1", event=techno_event), True)

        resp = client.post(
            "/api/v1/user/interested-events", params={"user_id": "user-1"}, json={"event": _raw_events()[1]}
        )

        assert resp.status_code == 201
        assert resp.json()["is_new"] is True
        user_id, event = mocks["interested"].save.await_args.args
        assert user_id == "user-1"
        assert event.id == "request-techno-1"

    def test_save_again_is_ok(self, api, techno_event) -> None:
        client, mocks = api
        mocks["interested"].save.return_value = (SavedEvent(user_id="user-1", event=techno_event), False)

        resp = client.post(
            "/api/v1/user/interested-events", params={"user_id": "user-1"}, json={"event": _raw_events()[1]}
        )

        assert resp.status_code == 200
        assert resp.json()["is_new"] is False

    def test_list(self, api, techno_event) -> None:
        client, mocks = api
        mocks["interested"].list_saved.return_value = [SavedEvent(user_id="user-1", event=techno_event)]

        resp = client.get("/api/v1/user/interested-events", params={"user_id": "user-1"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 1
        assert data["events"][0]["event"]["id"] == techno_event.id

    def test_user_id_required(self, api) -> None:
        client, _ = api
        assert client.get("/api/v1/user/interested-events").status_code == 422

    def test_remove(self, api) -> None:
        client, mocks = api
        mocks["interested"].remove.return_value = True

        resp = client.delete(
            "/api/v1/user/interested-events", params={"user_id": "user-1", "event_id": "ticketmaster-abc123"}
        )

        assert resp.json() == {"removed": True, "event_id": "ticketmaster-abc123"}
        mocks["interested"].remove.assert_awaited_once_with("user-1", "ticketmaster-abc123")

    def test_remove_unknown_event(self, api) -> None:
        client, mocks = api
        mocks["interested"].remove.return_value = False

        resp = client.delete(
            "/api/v1/user/interested-events", params={"user_id": "user-1", "event_id": "ticketmaster-gone"}
        )

        assert resp.status_code == 404

    def test_without_store(self, mock_event_store, mock_profile_store) -> None:
        app, _ = _create_test_app(mock_event_store, mock_profile_store, with_store=False)

        resp = TestClient(app).get("/api/v1/user/interested-events", params={"user_id": "user-1"})

        assert resp.status_code == 503
        assert resp.json()["provider"] == "mongodb"


# ---------------------------------------------------------------------------
# Venues & location
# ---------------------------------------------------------------------------


class TestVenuesEndpoint:
    def test_genre_filter(self, api) -> None:
        client, _ = api

        resp = client.get("/api/v1/venues", params={"genres": "Techno, minimal techno"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == len(data["venues"]) > 0
        scores = [v["match_percentage"] for v in data["venues"]]
        assert scores == sorted(scores, reverse=True)

    def test_radius(self, api) -> None:
        client, _ = api

        resp = client.get("/api/v1/venues", params={"lat": 52.5108, "lon": 13.4430, "radius_km": 10, "genres": "techno"})

        data = resp.json()
        names = {v["name"] for v in data["venues"]}
        assert {"Berghain", "Tresor"} <= names
        assert all(v["distance_km"] <= 10 for v in data["venues"])
        assert data["location"]["source"] == "request"

    def test_lat_without_lon(self, api) -> None:
        client, _ = api
        resp = client.get("/api/v1/venues", params={"lat": 52.5})
        assert resp.status_code == 400

    def test_stored_profile_is_used_without_genres(self, api, mock_profile_store) -> None:
        client, _ = api
        client.get("/api/v1/venues", params={"user_id": "user-1"})
        mock_profile_store.get_profile.assert_awaited_once_with("user-1")


class TestLocationEndpoints:
    def test_reverse_geocode(self, api) -> None:
        client, mocks = api

        resp = client.get("/api/v1/location/reverse-geocode", params={"lat": 52.52, "lon": 13.405})

        assert resp.status_code == 200
        assert resp.json()["city"] == "Berlin"
        mocks["geocoder"].reverse_geocode.assert_awaited_once_with(52.52, 13.405)

    def test_reverse_geocode_validation(self, api) -> None:
        client, _ = api
        assert client.get("/api/v1/location/reverse-geocode", params={"lat": 95, "lon": 0}).status_code == 422
        assert client.get("/api/v1/location/reverse-geocode", params={"lat": 10}).status_code == 422

    def test_city_search(self, api) -> None:
        client, _ = api

        resp = client.get("/api/v1/location/search", params={"q": "nyc", "limit": 3})

        data = resp.json()
        assert data["query"] == "nyc"
        assert data["results"][0]["city"] == "New York"
        assert len(data["results"]) <= 3


# ---------------------------------------------------------------------------
# Spotify
# ---------------------------------------------------------------------------


class TestUserTasteEndpoint:
    def test_requires_bearer_token(self, api) -> None:
        client, _ = api
        assert client.get("/api/v1/spotify/user-taste").status_code == 401
        assert client.get("/api/v1/spotify/user-taste", headers={"Authorization": "Basic abc"}).status_code == 401

    def test_builds_and_saves_profile(self, api, mock_profile_store) -> None:
        client, mocks = api

        resp = client.get(
            "/api/v1/spotify/user-taste",
            params={"user_id": "user-7", "time_range": "short_term"},
            headers={"Authorization": "Bearer spotify-token"},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["saved"] is True
        assert data["profile"]["primary_genres"][0] == "techno"
        assert data["profile"]["user_id"] == "user-7"
        assert len(data["top_artists"]) == 2
        assert mocks["music"].get_top_tracks.await_args.kwargs["time_range"] == "short_term"
        mock_profile_store.save_profile.assert_awaited_once()

    def test_invalid_time_range(self, api) -> None:
        client, _ = api
        resp = client.get(
            "/api/v1/spotify/user-taste",
            params={"time_range": "forever"},
            headers={"Authorization": "Bearer spotify-token"},
        )
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    def test_health(self, api) -> None:
        client, _ = api

        resp = client.get("/api/v1/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["scoring_version"] == "2.0"
        assert data["providers"] == {"spotify": True, "storage": True, "ticketmaster": True}
