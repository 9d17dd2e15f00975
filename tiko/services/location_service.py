"""Location resolution: reverse geocoding, city search and distances.

Reverse geocoding tries each configured provider in order (Google, then
Nominatim).  A provider that fails or has no answer hands over to the
next one; when all are exhausted the New York default is returned, so
callers always get a :class:`Location`.

Any Canadian result resolves to the Toronto market, because Toronto is
the only Canadian market the event sources cover well.
"""

from __future__ import annotations

import math

from rapidfuzz import fuzz, process

from tiko.interfaces.geocoding_provider import IGeocodingProvider
from tiko.models.location import DEFAULT_LOCATION, TORONTO_LOCATION, Location
from tiko.utils.errors import TikoError
from tiko.utils.logging import get_logger

_EARTH_RADIUS_KM = 6371.0
_CITY_MATCH_THRESHOLD = 70

# (city, region, country, lat, lon, aliases)
_MAJOR_CITIES: tuple[tuple[str, str, str, float, float, tuple[str, ...]], ...] = (
    ("Toronto", "ON", "Canada", 43.6532, -79.3832, ("toronto", "t.o", "the 6ix")),
    ("Montreal", "QC", "Canada", 45.5017, -73.5673, ("montreal", "montréal", "mtl")),
    ("Vancouver", "BC", "Canada", 49.2827, -123.1207, ("vancouver", "yvr")),
    ("Calgary", "AB", "Canada", 51.0447, -114.0719, ("calgary", "yyc")),
    ("Ottawa", "ON", "Canada", 45.4215, -75.6972, ("ottawa",)),
    ("New York", "NY", "United States", 40.7128, -74.0060, ("new york", "nyc", "new york city", "manhattan")),
    ("Los Angeles", "CA", "United States", 34.0522, -118.2437, ("los angeles", "la", "l.a.")),
    ("Chicago", "IL", "United States", 41.8781, -87.6298, ("chicago", "chi")),
    ("Miami", "FL", "United States", 25.7617, -80.1918, ("miami",)),
    ("Las Vegas", "NV", "United States", 36.1699, -115.1398, ("las vegas", "vegas")),
    ("San Francisco", "CA", "United States", 37.7749, -122.4194, ("san francisco", "sf", "san fran")),
    ("Seattle", "WA", "United States", 47.6062, -122.3321, ("seattle",)),
    ("Denver", "CO", "United States", 39.7392, -104.9903, ("denver",)),
    ("Austin", "TX", "United States", 30.2672, -97.7431, ("austin", "atx")),
    ("Detroit", "MI", "United States", 42.3314, -83.0458, ("detroit", "motor city")),
    ("London", "England", "United Kingdom", 51.5074, -0.1278, ("london",)),
    ("Manchester", "England", "United Kingdom", 53.4808, -2.2426, ("manchester", "manc")),
    ("Berlin", "Berlin", "Germany", 52.5200, 13.4050, ("berlin",)),
    ("Amsterdam", "North Holland", "Netherlands", 52.3676, 4.9041, ("amsterdam", "adam")),
    ("Ibiza", "Balearic Islands", "Spain", 38.9067, 1.4206, ("ibiza", "eivissa")),
)


def haversine_km(a: tuple[float, float], b: tuple[float, float]) -> float:
    """Great-circle distance in kilometres between two ``(lat, lon)`` points."""
    lat1, lon1 = map(math.radians, a)
    lat2, lon2 = map(math.radians, b)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * _EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def _is_canada(location: Location) -> bool:
    return location.country.strip().lower() in {"canada", "ca"}


class LocationService:
    def __init__(self, providers: list[IGeocodingProvider] | None = None) -> None:
        self._providers = providers or []
        self._logger = get_logger(__name__)

    async def resolve(self, latitude: float, longitude: float) -> Location:
        """Reverse-geocode a point, falling back through providers to the default."""
        for provider in self._providers:
            if not provider.is_available():
                continue
            name = provider.get_provider_name()
            try:
                location = await provider.reverse_geocode(latitude, longitude)
            except TikoError as exc:
                self._logger.warning("geocoder_failed", provider=name, error=str(exc))
                continue
            if location is None:
                self._logger.debug("geocoder_no_result", provider=name)
                continue
            if _is_canada(location):
                return TORONTO_LOCATION.model_copy(update={"source": location.source})
            self._logger.info("location_resolved", provider=name, city=location.city, country=location.country)
            return location
        self._logger.info("location_default_used", latitude=latitude, longitude=longitude)
        return DEFAULT_LOCATION

    @staticmethod
    def search_cities(query: str, limit: int = 5) -> list[Location]:
        """Fuzzy-match *query* against the built-in city list (typos and nicknames included)."""
        query = query.strip().lower()
        if not query:
            return []
        best: dict[str, tuple[float, Location]] = {}
        for city, region, country, lat, lon, aliases in _MAJOR_CITIES:
            match = process.extractOne(query, aliases, scorer=fuzz.WRatio, score_cutoff=_CITY_MATCH_THRESHOLD)
            if match is None:
                continue
            score = match[1]
            if query == city.lower() or query in aliases:
                score = 101.0
            location = Location(
                latitude=lat, longitude=lon, city=city, region=region, country=country, source="catalog"
            )
            if city not in best or best[city][0] < score:
                best[city] = (score, location)
        ranked = sorted(best.values(), key=lambda pair: pair[0], reverse=True)
        return [location for _, location in ranked[:limit]]
