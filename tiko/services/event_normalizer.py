"""Event validation and normalization.

# ─── WHY THIS EXISTS ──────────────────────────────────────────────────
#
# Event documents arrive from Ticketmaster, EDMTrain, the sample feed and
# years of MongoDB rows written by different jobs.  The same field can be
# a string in one document and a nested object in the next (``venue`` is
# the classic case), numbers arrive as strings, lists arrive as
# comma-separated text.
#
# Every ``safe_*`` helper here is TOTAL: it accepts anything and returns a
# well-typed value or its fallback.  ``normalize_event`` composes them
# into a frozen :class:`~tiko.models.event.Event`, so nothing downstream
# ever has to ask "is the venue a string this time?".
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import hashlib
import math
from datetime import date, datetime, timezone
from typing import Any, Literal

from pydantic import ValidationError

from tiko.models.artist import AudioFeatures
from tiko.models.event import DEFAULT_COORDINATES, Event, EventArtist, GeoPoint, PriceRange, Venue
from tiko.utils.logging import get_logger
from tiko.utils.text_normalizer import split_artist_names

_logger = get_logger(__name__)

VenueShape = Literal["object", "string", "missing", "other"]

_MAX_ARTISTS = 10
_MAX_GENRES = 5
_MAX_IMAGES = 5
_IGNORED_GENRES = {"undefined", "other", "music", ""}


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------

def safe_string(value: Any, fallback: str = "") -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        return str(value)
    return fallback


def safe_array(value: Any, max_items: int = 10) -> list[Any]:
    """Coerce lists, comma-separated strings and scalars to a bounded list."""
    if isinstance(value, (list, tuple)):
        return list(value)[:max_items]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()][:max_items]
    if value is None or value == {}:
        return []
    return [value][:max_items]


def safe_number(
    value: Any,
    minimum: float = 0.0,
    maximum: float = 100.0,
    fallback: float | None = 0.0,
) -> float | None:
    """Parse ``value`` as a float clamped to [minimum, maximum]."""
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return fallback
    else:
        return fallback
    if math.isnan(number) or math.isinf(number):
        return fallback
    return max(minimum, min(maximum, number))


def safe_date(value: Any, time_of_day: str = "") -> datetime | None:
    """Parse a date/datetime/ISO string/epoch-millis into an aware UTC datetime.

    A bare date (``"2025-05-03"``) is combined with ``time_of_day`` when
    given.  Naive values are assumed to be UTC.
    """
    parsed: datetime | None = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        text = value.strip().replace("Z", "+00:00")
        if len(text) == 10 and time_of_day:
            text = f"{text}T{time_of_day}"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Structured field helpers
# ---------------------------------------------------------------------------

def venue_shape(raw_event: Any) -> VenueShape:
    """Classify how a raw document stores its venue."""
    if not isinstance(raw_event, dict):
        return "other"
    venue = raw_event.get("venue")
    if venue is None or venue == "":
        return "missing"
    if isinstance(venue, dict):
        return "object"
    if isinstance(venue, str):
        return "string"
    return "other"


def safe_venue(raw: Any) -> Venue:
    if isinstance(raw, str) and raw.strip():
        return Venue(name=raw.strip())
    if not isinstance(raw, dict):
        return Venue()

    capacity = safe_number(raw.get("capacity"), 0, 100000, None)
    address = raw.get("address")
    if isinstance(address, dict):
        address = address.get("line1")
    city = raw.get("city") or raw.get("locality")
    if isinstance(city, dict):
        city = city.get("name")
    state = raw.get("state") or raw.get("region")
    if isinstance(state, dict):
        state = state.get("name") or state.get("stateCode")
    country = raw.get("country")
    if isinstance(country, dict):
        country = country.get("name") or country.get("countryCode")
    location_raw = raw.get("location")
    location = _parse_point(location_raw) if isinstance(location_raw, dict) else None
    if location is None:
        location = _parse_point(raw)

    return Venue(
        name=safe_string(raw.get("name") or raw.get("venue") or raw.get("venueName"), "Venue TBA") or "Venue TBA",
        address=safe_string(address or (location_raw if isinstance(location_raw, str) else None) or raw.get("addr")),
        city=safe_string(city),
        state=safe_string(state),
        country=safe_string(country),
        venue_type=safe_string(raw.get("type") or raw.get("venueType") or raw.get("venue_type")),
        capacity=int(capacity) if capacity is not None else None,
        url=safe_string(raw.get("url")),
        location=location,
    )


def _parse_point(raw: dict) -> GeoPoint | None:
    if raw.get("type") == "Point" and isinstance(raw.get("coordinates"), (list, tuple)):
        coords = raw["coordinates"]
        if len(coords) == 2:
            return _point(coords[0], coords[1])
    for lat_key, lng_key in (("lat", "lng"), ("latitude", "longitude"), ("lat", "lon")):
        if raw.get(lat_key) is not None and raw.get(lng_key) is not None:
            return _point(raw[lng_key], raw[lat_key])
    return None


def _point(lng: Any, lat: Any) -> GeoPoint | None:
    longitude = safe_number(lng, -180.0, 180.0, None)
    latitude = safe_number(lat, -90.0, 90.0, None)
    if longitude is None or latitude is None:
        return None
    return GeoPoint(coordinates=(longitude, latitude))


def safe_location(location: Any, venue: Any = None) -> GeoPoint:
    """Resolve an event's GeoJSON point.

    Tries the event's own location, then the venue's, then falls back to
    Toronto.
    """
    if isinstance(location, dict):
        point = _parse_point(location)
        if point is not None:
            return point
    if isinstance(venue, dict):
        nested = venue.get("location")
        if isinstance(nested, dict):
            point = _parse_point(nested)
            if point is not None:
                return point
        point = _parse_point(venue)
        if point is not None:
            return point
    if isinstance(venue, Venue) and venue.location is not None:
        return venue.location
    return GeoPoint(coordinates=DEFAULT_COORDINATES)


def safe_artists(raw: Any) -> list[EventArtist]:
    """Artists from a list of names or dicts, or from a lineup string."""
    if isinstance(raw, str):
        items: list[Any] = split_artist_names(raw)
    else:
        items = list(raw) if isinstance(raw, (list, tuple)) else ([raw] if raw else [])
    artists: list[EventArtist] = []
    seen: set[str] = set()
    for item in items:
        artist: EventArtist | None = None
        if isinstance(item, str) and item.strip():
            artist = EventArtist(name=item.strip())
        elif isinstance(item, dict) and safe_string(item.get("name")):
            popularity = safe_number(item.get("popularity"), 0, 100, None)
            artist = EventArtist(
                name=safe_string(item.get("name")),
                spotify_id=safe_string(item.get("spotifyId") or item.get("spotify_id")) or None,
                url=safe_string(item.get("url")),
                image=safe_string(item.get("image") or item.get("img")),
                genres=[g for g in (safe_string(x).lower() for x in safe_array(item.get("genres"), 3)) if g],
                popularity=int(popularity) if popularity is not None else None,
                audio_features=AudioFeatures.from_mapping(
                    item.get("audioFeatures") or item.get("audio_features")
                ),
            )
        if artist is not None and artist.name.lower() not in seen:
            seen.add(artist.name.lower())
            artists.append(artist)
    return artists[:_MAX_ARTISTS]


def safe_genres(raw: Any) -> list[str]:
    genres: list[str] = []
    for item in safe_array(raw, 20):
        if isinstance(item, dict):
            candidates = [
                (item.get(key) or {}).get("name") if isinstance(item.get(key), dict) else item.get(key)
                for key in ("genre", "subGenre", "name")
            ]
        else:
            candidates = [item]
        for candidate in candidates:
            genre = safe_string(candidate).lower()
            if genre not in _IGNORED_GENRES and genre not in genres:
                genres.append(genre)
    return genres[:_MAX_GENRES]


def safe_images(raw: Any) -> list[str]:
    urls: list[str] = []
    for item in raw if isinstance(raw, (list, tuple)) else [raw]:
        url = safe_string(item.get("url")) if isinstance(item, dict) else safe_string(item)
        if url and url not in urls:
            urls.append(url)
    return urls[:_MAX_IMAGES]


def safe_price_range(price_range: Any, price: Any = None) -> PriceRange | None:
    if isinstance(price_range, (list, tuple)):
        price_range = price_range[0] if price_range else None
    if isinstance(price_range, dict):
        return PriceRange(
            min=safe_number(price_range.get("min"), 0, 10000, None),
            max=safe_number(price_range.get("max"), 0, 10000, None),
            currency=safe_string(price_range.get("currency"), "USD") or "USD",
        )
    amount = safe_number(price, 0, 10000, None)
    if amount is not None:
        return PriceRange(min=amount, max=amount)
    return None


# ---------------------------------------------------------------------------
# Event-level operations
# ---------------------------------------------------------------------------

def normalize_event(raw: Any, source: str = "unknown") -> Event | None:
    """Turn any event-shaped document into an :class:`Event`.

    Returns ``None`` only when ``raw`` is not a mapping at all.  The id is
    ``{source}-{source_id}``; documents without any id get a stable hash
    of name and date so re-normalizing them yields the same id.
    """
    if not isinstance(raw, dict):
        return None

    source = safe_string(raw.get("source")) or source
    name = safe_string(raw.get("name") or raw.get("title"), "Untitled Event") or "Untitled Event"
    dates = raw.get("dates") if isinstance(raw.get("dates"), dict) else {}
    start = dates.get("start") if isinstance(dates.get("start"), dict) else {}
    start_time = safe_string(raw.get("startTime") or raw.get("start_time") or raw.get("time") or start.get("localTime"))
    event_date = safe_date(
        raw.get("date") or raw.get("datetime") or start.get("dateTime") or start.get("localDate"),
        time_of_day=start_time,
    )

    source_id = safe_string(raw.get("sourceId") or raw.get("source_id") or raw.get("id") or raw.get("_id"))
    if not source_id:
        digest = hashlib.sha1(f"{name}|{event_date}".encode()).hexdigest()[:12]
        source_id = f"gen-{digest}"
    prefix = f"{source}-"
    event_id = source_id if source_id.startswith(prefix) else f"{prefix}{source_id}"

    raw_venue = raw.get("venue")
    venue = safe_venue(raw_venue)
    location = safe_location(raw.get("location"), raw_venue if isinstance(raw_venue, dict) else venue)

    artists = safe_artists(raw.get("artists") or raw.get("performers") or raw.get("headliners") or raw.get("artistList"))
    genres = safe_genres(raw.get("genres") or raw.get("genre") or raw.get("classifications"))
    score = safe_number(raw.get("personalizedScore", raw.get("personalized_score")), 0, 100, None)

    try:
        return Event(
            id=event_id,
            source=source,
            source_id=source_id,
            name=name,
            description=safe_string(raw.get("description") or raw.get("info")),
            status=safe_string(raw.get("status"), "active") or "active",
            date=event_date,
            start_time=start_time,
            venue=venue,
            location=location,
            images=safe_images(raw.get("images") or raw.get("image")),
            price_range=safe_price_range(raw.get("priceRange") or raw.get("priceRanges"), raw.get("price")),
            genres=genres,
            artists=artists,
            url=safe_string(raw.get("url") or raw.get("ticketUrl") or raw.get("ticketLink")),
            sound_characteristics=AudioFeatures.from_mapping(
                raw.get("soundCharacteristics") or raw.get("sound_characteristics")
            ),
            personalized_score=round(score) if score is not None else None,
            scoring_method=safe_string(raw.get("scoringMethod")) or None,
            scoring_version=safe_string(raw.get("scoringVersion")) or None,
            scored_at=safe_date(raw.get("scoringTimestamp")),
        )
    except ValidationError as exc:
        _logger.warning("event_normalize_failed", source=source, source_id=source_id, error=str(exc))
        return None


def normalize_events(raw_events: list[Any], source: str = "unknown") -> list[Event]:
    """Normalize a batch, dropping unusable documents and duplicates."""
    events = [e for e in (normalize_event(raw, source) for raw in raw_events) if e is not None]
    return deduplicate_events(events)


def deduplicate_events(events: list[Event]) -> list[Event]:
    """Keep the first event for each ``(source, source_id)`` pair."""
    seen: set[tuple[str, str]] = set()
    unique: list[Event] = []
    for event in events:
        if event.dedupe_key in seen:
            continue
        seen.add(event.dedupe_key)
        unique.append(event)
    return unique


def completeness_score(event: Event) -> int:
    """Score how much of an event's useful data is present (0-100, 10 per check)."""
    checks = (
        event.name != "Untitled Event",
        event.date is not None,
        event.venue.name != "Venue TBA",
        event.location.coordinates != DEFAULT_COORDINATES,
        bool(event.description),
        bool(event.images),
        event.price_range is not None and bool(event.price_range.min or event.price_range.max),
        bool(event.genres),
        bool(event.artists),
        bool(event.venue.address),
    )
    return min(100, 10 * sum(checks))


def event_to_document(event: Event) -> dict[str, Any]:
    """Serialize an :class:`Event` to the camelCase document shape stored in MongoDB."""
    doc: dict[str, Any] = {
        "id": event.id,
        "source": event.source,
        "sourceId": event.source_id,
        "name": event.name,
        "description": event.description,
        "status": event.status,
        "date": event.date,
        "startTime": event.start_time,
        "venue": {
            "name": event.venue.name,
            "address": event.venue.address,
            "city": event.venue.city,
            "state": event.venue.state,
            "country": event.venue.country,
            "type": event.venue.venue_type,
            "capacity": event.venue.capacity,
            "url": event.venue.url,
        },
        "location": {"type": "Point", "coordinates": list(event.location.coordinates)},
        "images": list(event.images),
        "genres": list(event.genres),
        "artists": [
            {
                "name": a.name,
                "spotifyId": a.spotify_id,
                "url": a.url,
                "image": a.image,
                "genres": list(a.genres),
                "popularity": a.popularity,
            }
            for a in event.artists
        ],
        "url": event.url,
    }
    if event.price_range is not None:
        doc["priceRange"] = event.price_range.model_dump()
    if event.sound_characteristics is not None:
        doc["soundCharacteristics"] = event.sound_characteristics.as_dict()
    return doc
