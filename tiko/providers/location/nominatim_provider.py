"""OpenStreetMap Nominatim reverse lookups.

Nominatim's usage policy asks for at most one request per second and an
identifying User-Agent; both are enforced here.
"""

from __future__ import annotations

import asyncio
import time

import httpx

from tiko.config.settings import Settings
from tiko.interfaces.geocoding_provider import IGeocodingProvider
from tiko.models.location import Location
from tiko.utils.errors import ProviderUnavailableError, RateLimitError
from tiko.utils.logging import get_logger

_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"
_MIN_REQUEST_INTERVAL = 1.0


class NominatimGeocodingProvider(IGeocodingProvider):
    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._user_agent = settings.nominatim_user_agent
        self._timeout = settings.http_timeout
        self._http = http_client
        self._last_request_time: float = 0.0
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return "nominatim"

    def is_available(self) -> bool:
        return bool(self._user_agent)

    async def _throttle(self) -> None:
        elapsed = time.monotonic() - self._last_request_time
        if self._last_request_time > 0 and elapsed < _MIN_REQUEST_INTERVAL:
            await asyncio.sleep(_MIN_REQUEST_INTERVAL - elapsed)
        self._last_request_time = time.monotonic()

    async def reverse_geocode(self, latitude: float, longitude: float) -> Location | None:
        await self._throttle()
        try:
            response = await self._http.get(
                _REVERSE_URL,
                params={"lat": latitude, "lon": longitude, "format": "jsonv2", "zoom": 10},
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                f"{type(exc).__name__}: {exc}", provider_name=self.get_provider_name()
            ) from exc
        if response.status_code == 429:
            raise RateLimitError("Nominatim rate limit exceeded", provider_name=self.get_provider_name())
        if response.status_code != 200:
            raise ProviderUnavailableError(f"HTTP {response.status_code}", provider_name=self.get_provider_name())

        payload = response.json()
        address = payload.get("address") if isinstance(payload, dict) else None
        if not address:
            return None
        city = address.get("city") or address.get("town") or address.get("village") or address.get("municipality") or ""
        self._logger.debug("nominatim_reverse_geocode", city=city, country=address.get("country"))
        return Location(
            latitude=latitude,
            longitude=longitude,
            city=city,
            region=address.get("state", ""),
            country=address.get("country", ""),
            source=self.get_provider_name(),
        )
