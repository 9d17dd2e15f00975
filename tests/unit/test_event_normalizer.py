"""Unit tests for the event normalizer's safe_* helpers and normalize_event."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from tiko.models.event import DEFAULT_COORDINATES, Event, Venue
from tiko.services.event_normalizer import (
    completeness_score,
    deduplicate_events,
    event_to_document,
    normalize_event,
    normalize_events,
    safe_array,
    safe_artists,
    safe_date,
    safe_genres,
    safe_images,
    safe_location,
    safe_number,
    safe_price_range,
    safe_string,
    safe_venue,
    venue_shape,
)


class TestScalarHelpers:
    def test_safe_string_strips(self) -> None:
        assert safe_string("  Berghain ") == "Berghain"

    def test_safe_string_numbers_and_fallback(self) -> None:
        assert safe_string(42) == "42"
        assert safe_string(None, "x") == "x"
        assert safe_string(True, "x") == "x"
        assert safe_string({"a": 1}) == ""

    def test_safe_array_splits_comma_text(self) -> None:
        assert safe_array("techno, house ,,trance") == ["techno", "house", "trance"]

    def test_safe_array_bounds_and_scalars(self) -> None:
        assert safe_array(list(range(20)), max_items=3) == [0, 1, 2]
        assert safe_array(None) == []
        assert safe_array({}) == []
        assert safe_array(5) == [5]

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("42", 42.0), (150, 100.0), (-3, 0.0), ("abc", 0.0), (float("nan"), 0.0), (True, 0.0)],
    )
    def test_safe_number(self, value, expected) -> None:
        assert safe_number(value) == expected

    def test_safe_number_custom_fallback(self) -> None:
        assert safe_number(None, fallback=None) is None


class TestSafeDate:
    def test_iso_string_with_z(self) -> None:
        parsed = safe_date("2025-05-09T22:00:00Z")
        assert parsed == datetime(2025, 5, 9, 22, 0, tzinfo=timezone.utc)

    def test_bare_date_combined_with_time(self) -> None:
        parsed = safe_date("2025-05-09", time_of_day="21:30:00")
        assert parsed == datetime(2025, 5, 9, 21, 30, tzinfo=timezone.utc)

    def test_date_object(self) -> None:
        assert safe_date(date(2025, 5, 9)) == datetime(2025, 5, 9, tzinfo=timezone.utc)

    def test_epoch_millis(self) -> None:
        assert safe_date(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_garbage_is_none(self) -> None:
        assert safe_date("next friday") is None
        assert safe_date(None) is None
        assert safe_date("") is None


class TestVenue:
    def test_string_venue_becomes_object(self) -> None:
        venue = safe_venue("Berghain")
        assert venue == Venue(name="Berghain")

    def test_missing_venue_is_tba(self) -> None:
        assert safe_venue(None).name == "Venue TBA"

    def test_ticketmaster_shaped_venue(self) -> None:
        venue = safe_venue(
            {
                "name": "REBEL",
                "address": {"line1": "11 Polson St"},
                "city": {"name": "Toronto"},
                "state": {"stateCode": "ON"},
                "country": {"countryCode": "CA"},
                "location": {"latitude": "43.64", "longitude": "-79.35"},
            }
        )
        assert venue.name == "REBEL"
        assert venue.address == "11 Polson St"
        assert venue.city == "Toronto"
        assert venue.state == "ON"
        assert venue.country == "CA"
        assert venue.location is not None
        assert venue.location.coordinates == (-79.35, 43.64)

    def test_capacity_parsed_from_string(self) -> None:
        assert safe_venue({"name": "Club", "capacity": "1500"}).capacity == 1500

    @pytest.mark.parametrize(
        ("raw", "shape"),
        [
            ({"venue": {"name": "x"}}, "object"),
            ({"venue": "x"}, "string"),
            ({"venue": None}, "missing"),
            ({}, "missing"),
            ({"venue": 7}, "other"),
            ("not a dict", "other"),
        ],
    )
    def test_venue_shape(self, raw, shape) -> None:
        assert venue_shape(raw) == shape


class TestLocation:
    def test_geojson_point(self) -> None:
        point = safe_location({"type": "Point", "coordinates": [13.44, 52.51]})
        assert point.coordinates == (13.44, 52.51)

    def test_falls_back_to_venue_coordinates(self) -> None:
        point = safe_location(None, {"name": "x", "latitude": 52.51, "longitude": 13.44})
        assert point.latitude == 52.51
        assert point.longitude == 13.44

    def test_default_is_toronto(self) -> None:
        assert safe_location(None).coordinates == DEFAULT_COORDINATES


class TestListFields:
    def test_artists_from_strings_and_dicts_deduplicated(self) -> None:
        artists = safe_artists(
            ["Amelie Lens", {"name": "amelie lens"}, {"name": "Lane 8", "genres": "deep house, melodic house"}]
        )
        assert [a.name for a in artists] == ["Amelie Lens", "Lane 8"]
        assert artists[1].genres == ["deep house", "melodic house"]

    def test_artists_skip_nameless(self) -> None:
        assert safe_artists([{"id": 1}, "", None]) == []

    def test_artists_from_lineup_string(self) -> None:
        artists = safe_artists("Carl Cox b2b Adam Beyer, Nina Kraviz with 3 more")
        assert [a.name for a in artists] == ["Carl Cox", "Adam Beyer", "Nina Kraviz"]
        assert [a.name for a in safe_artists("Above & Beyond")] == ["Above & Beyond"]

    def test_genres_from_classifications(self) -> None:
        genres = safe_genres(
            [{"genre": {"name": "Dance/Electronic"}, "subGenre": {"name": "Techno"}, "segment": {"name": "Music"}}]
        )
        assert genres == ["dance/electronic", "techno"]

    def test_genres_drop_placeholders(self) -> None:
        assert safe_genres(["Undefined", "Other", "House", "house"]) == ["house"]

    def test_images_deduplicated(self) -> None:
        assert safe_images([{"url": "a.jpg"}, "a.jpg", "b.jpg"]) == ["a.jpg", "b.jpg"]

    def test_price_range_from_list_or_scalar(self) -> None:
        assert safe_price_range([{"min": 20, "max": "45", "currency": "CAD"}]).max == 45.0
        flat = safe_price_range(None, price="30")
        assert flat is not None and flat.min == flat.max == 30.0
        assert safe_price_range(None) is None


class TestNormalizeEvent:
    def test_non_mapping_is_none(self) -> None:
        assert normalize_event("nope") is None
        assert normalize_event(None) is None

    def test_minimal_document(self) -> None:
        event = normalize_event({"id": "42", "name": "Warehouse Rave"}, source="edmtrain")
        assert event is not None
        assert event.id == "edmtrain-42"
        assert event.source_id == "42"
        assert event.venue.name == "Venue TBA"
        assert event.date is None
        assert event.location.coordinates == DEFAULT_COORDINATES

    def test_existing_prefix_not_doubled(self) -> None:
        event = normalize_event({"id": "ticketmaster-abc", "source": "ticketmaster"})
        assert event is not None
        assert event.id == "ticketmaster-abc"

    def test_generated_id_is_stable(self) -> None:
        raw = {"name": "Untitled Warehouse", "date": "2025-06-01"}
        first = normalize_event(raw, source="mongo")
        second = normalize_event(dict(raw), source="mongo")
        assert first is not None and second is not None
        assert first.id == second.id
        assert first.source_id.startswith("gen-")

    def test_ticketmaster_dates_block(self) -> None:
        event = normalize_event(
            {"id": "1", "dates": {"start": {"localDate": "2025-05-09", "localTime": "22:00:00"}}},
            source="ticketmaster",
        )
        assert event is not None
        assert event.date == datetime(2025, 5, 9, 22, 0, tzinfo=timezone.utc)
        assert event.start_time == "22:00:00"

    def test_camel_case_score_fields(self) -> None:
        event = normalize_event(
            {"id": "1", "personalizedScore": "87.6", "scoringMethod": "baseline", "scoringVersion": "2.0"},
            source="x",
        )
        assert event is not None
        assert event.personalized_score == 88
        assert event.scoring_method == "baseline"

    def test_string_venue_location_from_venue_object(self) -> None:
        event = normalize_event(
            {"id": "1", "venue": {"name": "Berghain", "location": {"lat": 52.51, "lng": 13.44}}}, source="x"
        )
        assert event is not None
        assert event.location.coordinates == (13.44, 52.51)


class TestBatchOperations:
    def test_normalize_events_drops_bad_and_duplicates(self) -> None:
        events = normalize_events([{"id": "1"}, "junk", {"id": "1"}, {"id": "2"}], source="edmtrain")
        assert [e.id for e in events] == ["edmtrain-1", "edmtrain-2"]

    def test_deduplicate_keeps_first(self, event_factory) -> None:
        first = event_factory(name="First")
        second = event_factory(name="Second")
        assert deduplicate_events([first, second]) == [first]


class TestCompletenessAndDocuments:
    def test_bare_event_scores_low(self) -> None:
        event = Event(id="x-1", source="x", source_id="1")
        assert completeness_score(event) == 0

    def test_rich_event_scores_high(self, techno_event: Event) -> None:
        # name, date, venue, location, genres, artists
        assert completeness_score(techno_event) == 60

    def test_document_round_trips(self, techno_event: Event) -> None:
        doc = event_to_document(techno_event)
        assert doc["sourceId"] == "abc123"
        assert doc["venue"]["type"] == "club"
        assert doc["location"] == {"type": "Point", "coordinates": [-79.4113, 43.6529]}
        again = normalize_event(doc)
        assert again is not None
        assert again.id == techno_event.id
        assert again.venue.name == "CODA"
        assert again.artist_names == ["Charlotte de Witte"]
