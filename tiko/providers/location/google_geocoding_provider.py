"""Google Maps Geocoding API reverse lookups."""

from __future__ import annotations

from typing import Any

import httpx

from tiko.config.settings import Settings
from tiko.interfaces.geocoding_provider import IGeocodingProvider
from tiko.models.location import Location
from tiko.utils.errors import ProviderUnavailableError, RateLimitError
from tiko.utils.logging import get_logger

_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GoogleGeocodingProvider(IGeocodingProvider):
    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._api_key = settings.google_maps_api_key
        self._timeout = settings.http_timeout
        self._http = http_client
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return "google"

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def reverse_geocode(self, latitude: float, longitude: float) -> Location | None:
        try:
            response = await self._http.get(
                _GEOCODE_URL,
                params={"latlng": f"{latitude},{longitude}", "key": self._api_key},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                f"{type(exc).__name__}: {exc}", provider_name=self.get_provider_name()
            ) from exc
        if response.status_code != 200:
            raise ProviderUnavailableError(f"HTTP {response.status_code}", provider_name=self.get_provider_name())

        payload = response.json()
        status = payload.get("status")
        if status == "ZERO_RESULTS":
            return None
        if status == "OVER_QUERY_LIMIT":
            raise RateLimitError("Google geocoding quota exceeded", provider_name=self.get_provider_name())
        if status != "OK":
            raise ProviderUnavailableError(f"status {status}", provider_name=self.get_provider_name())

        results = payload.get("results") or []
        if not results:
            return None
        parts = self._components(results[0].get("address_components") or [])
        self._logger.debug("google_reverse_geocode", city=parts.get("locality"), country=parts.get("country"))
        return Location(
            latitude=latitude,
            longitude=longitude,
            city=parts.get("locality") or parts.get("postal_town") or "",
            region=parts.get("administrative_area_level_1", ""),
            country=parts.get("country", ""),
            source=self.get_provider_name(),
        )

    @staticmethod
    def _components(components: list[dict[str, Any]]) -> dict[str, str]:
        """Map each component type to its name (short name for the region)."""
        parts: dict[str, str] = {}
        for component in components:
            for kind in component.get("types") or []:
                if kind in parts:
                    continue
                key = "short_name" if kind == "administrative_area_level_1" else "long_name"
                parts[kind] = component.get(key, "")
        return parts
