"""EDMTrain event source.

GET ``{base}/events?locationIds={id}`` with the API key in the
``Authorization`` header.  Listings come back under ``data``; a listing
often has no name of its own, so its name is the joined artist list.
EDMTrain does not publish start times, so 20:00 is assumed.
"""

from __future__ import annotations

from typing import Any

import httpx

from tiko.config.genre_knowledge import get_edmtrain_location_id
from tiko.config.settings import Settings
from tiko.interfaces.event_source_provider import IEventSourceProvider
from tiko.utils.errors import ProviderUnavailableError, RateLimitError
from tiko.utils.logging import get_logger

_DEFAULT_START_TIME = "20:00:00"
_LOGO_URL = "https://edmtrain-public.s3.us-east-2.amazonaws.com/img/logos/edmtrain-logo-tag.png"


class EDMTrainProvider(IEventSourceProvider):
    """Fetches electronic music listings from EDMTrain."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._api_key = settings.edmtrain_api_key
        self._base_url = settings.edmtrain_base_url.rstrip("/")
        self._timeout = settings.http_timeout
        self._http = http_client
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return "edmtrain"

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def fetch_events(
        self,
        city: str,
        genre: str,
        limit: int = 10,
        country_code: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch listings for *city*; *genre* is ignored (EDMTrain is all electronic)."""
        if not self.is_available():
            raise ProviderUnavailableError("API key not configured", provider_name=self.get_provider_name())

        location_id = get_edmtrain_location_id(city)
        try:
            response = await self._http.get(
                f"{self._base_url}/events",
                params={"locationIds": location_id},
                headers={"Authorization": self._api_key},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            self._logger.warning("edmtrain_request_failed", error=str(exc))
            raise ProviderUnavailableError(
                f"{type(exc).__name__}: {exc}", provider_name=self.get_provider_name()
            ) from exc

        if response.status_code == 429:
            raise RateLimitError("EDMTrain rate limit exceeded", provider_name=self.get_provider_name())
        if response.status_code != 200:
            raise ProviderUnavailableError(
                f"HTTP {response.status_code}", provider_name=self.get_provider_name()
            )

        payload = response.json()
        if isinstance(payload, dict) and payload.get("success") is False:
            raise ProviderUnavailableError(
                str(payload.get("message") or "request rejected"), provider_name=self.get_provider_name()
            )
        listings = payload.get("data") or [] if isinstance(payload, dict) else []
        events = [self._to_document(item, city) for item in listings[:limit] if isinstance(item, dict)]
        self._logger.info("edmtrain_events_fetched", city=city, location_id=location_id, count=len(events))
        return events

    @staticmethod
    def _to_document(item: dict[str, Any], city: str) -> dict[str, Any]:
        artists = [a for a in item.get("artistList") or [] if isinstance(a, dict) and a.get("name")]
        venue = item.get("venue") or {}
        name = item.get("name") or ", ".join(a["name"] for a in artists) or "EDMTrain Event"
        image = artists[0].get("img") if artists and artists[0].get("img") else _LOGO_URL

        return {
            "source": "edmtrain",
            "sourceId": str(item.get("id", "")),
            "name": name,
            "date": item.get("date"),
            "startTime": item.get("startTime") or _DEFAULT_START_TIME,
            "venue": {
                "name": venue.get("name"),
                "address": venue.get("address", ""),
                "city": city,
                "state": venue.get("state", ""),
                "country": venue.get("country", ""),
                "type": "festival" if item.get("festivalInd") else "",
                "location": {"latitude": venue.get("latitude"), "longitude": venue.get("longitude")},
            },
            "artists": [{"name": a["name"], "url": a.get("link", ""), "image": a.get("img") or ""} for a in artists],
            "genres": ["electronic"],
            "images": [image],
            "url": item.get("link") or f"https://edmtrain.com/{city.lower().replace(' ', '-')}",
        }
