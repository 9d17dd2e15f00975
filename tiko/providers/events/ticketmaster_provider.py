"""Ticketmaster Discovery API v2 event source.

GET ``{base}/events.json`` with ``classificationName``, ``city``,
``sort=date,asc`` and ``size``.  Events live under ``_embedded.events``;
each event's venue under ``_embedded.venues[0]`` and its lineup under
``_embedded.attractions``.

Non-2xx responses and transport errors raise instead of returning an
empty list, so the event service can tell "no events" from "source down".
5xx and transport failures are retried with linear backoff; 429 is not.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx

from tiko.config.genre_knowledge import get_dma_id
from tiko.config.settings import Settings
from tiko.interfaces.event_source_provider import IEventSourceProvider
from tiko.utils.errors import ProviderUnavailableError, RateLimitError
from tiko.utils.logging import get_logger

_MAX_RETRIES = 2
_RETRY_BACKOFF = 1.0
_MIN_REQUEST_INTERVAL = 0.25  # Discovery API allows 5 req/s
_FALLBACK_URL = "https://www.ticketmaster.ca/electronic-dance-music-tickets/category/10001"


class TicketmasterProvider(IEventSourceProvider):
    """Fetches event listings from the Ticketmaster Discovery API.

    Parameters
    ----------
    settings:
        Supplies ``ticketmaster_api_key``, ``ticketmaster_base_url`` and
        ``http_timeout``.
    http_client:
        Injected ``httpx.AsyncClient`` shared across providers.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._api_key = settings.ticketmaster_api_key
        self._base_url = settings.ticketmaster_base_url.rstrip("/")
        self._timeout = settings.http_timeout
        self._http = http_client
        self._last_request_time: float = 0.0
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return "ticketmaster"

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _throttle(self) -> None:
        elapsed = time.monotonic() - self._last_request_time
        if self._last_request_time > 0 and elapsed < _MIN_REQUEST_INTERVAL:
            await asyncio.sleep(_MIN_REQUEST_INTERVAL - elapsed)
        self._last_request_time = time.monotonic()

    async def _get(self, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/events.json"
        last_error = "no attempt made"
        for attempt in range(1, _MAX_RETRIES + 1):
            await self._throttle()
            try:
                response = await self._http.get(url, params=params, timeout=self._timeout)
            except httpx.HTTPError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                self._logger.warning("ticketmaster_request_failed", error=last_error, attempt=attempt)
                if attempt < _MAX_RETRIES:
                    await asyncio.sleep(_RETRY_BACKOFF * attempt)
                continue

            if response.status_code == 200:
                return response.json()
            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After")
                raise RateLimitError(
                    "Ticketmaster rate limit exceeded",
                    provider_name=self.get_provider_name(),
                    retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                )
            if response.status_code >= 500:
                last_error = f"HTTP {response.status_code}"
                self._logger.warning("ticketmaster_server_error", status=response.status_code, attempt=attempt)
                if attempt < _MAX_RETRIES:
                    await asyncio.sleep(_RETRY_BACKOFF * attempt)
                continue
            raise ProviderUnavailableError(
                f"HTTP {response.status_code}", provider_name=self.get_provider_name()
            )
        raise ProviderUnavailableError(last_error, provider_name=self.get_provider_name())

    async def fetch_events(
        self,
        city: str,
        genre: str,
        limit: int = 10,
        country_code: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch *city* listings.

        Without *country_code* the request is pinned to the city's DMA
        (Toronto for unknown cities).  With it the city is looked up by
        name and country only, since DMA names repeat across countries.
        """
        if not self.is_available():
            raise ProviderUnavailableError("API key not configured", provider_name=self.get_provider_name())

        params: dict[str, Any] = {
            "apikey": self._api_key,
            "classificationName": genre,
            "city": city,
            "sort": "date,asc",
            "size": limit,
        }
        if country_code:
            params["countryCode"] = country_code.upper()
        else:
            params["dmaId"] = get_dma_id(city)
        data = await self._get(params)
        raw_events = (data.get("_embedded") or {}).get("events") or []
        events = [self._to_document(item, city) for item in raw_events if isinstance(item, dict)]
        self._logger.info("ticketmaster_events_fetched", city=city, genre=genre, count=len(events))
        return events

    @staticmethod
    def _to_document(item: dict[str, Any], city: str) -> dict[str, Any]:
        embedded = item.get("_embedded") or {}
        venues = embedded.get("venues") or [{}]
        venue = venues[0] if isinstance(venues[0], dict) else {}
        start = (item.get("dates") or {}).get("start") or {}
        location = venue.get("location") or {}

        genres: list[str] = []
        for classification in item.get("classifications") or []:
            for key in ("genre", "subGenre"):
                name = (classification.get(key) or {}).get("name")
                if name:
                    genres.append(name)

        return {
            "source": "ticketmaster",
            "sourceId": item.get("id"),
            "name": item.get("name"),
            "description": item.get("info") or item.get("pleaseNote") or "",
            "date": start.get("dateTime") or start.get("localDate"),
            "startTime": start.get("localTime", ""),
            "venue": {
                "name": venue.get("name"),
                "address": (venue.get("address") or {}).get("line1", ""),
                "city": (venue.get("city") or {}).get("name") or city,
                "state": (venue.get("state") or {}).get("stateCode", ""),
                "country": (venue.get("country") or {}).get("countryCode", ""),
                "url": venue.get("url", ""),
                "location": {
                    "latitude": location.get("latitude"),
                    "longitude": location.get("longitude"),
                } if location else None,
            },
            "artists": [
                {"name": a.get("name"), "url": a.get("url", ""), "id": a.get("id", "")}
                for a in embedded.get("attractions") or []
                if isinstance(a, dict)
            ],
            "genres": genres,
            "images": [img.get("url") for img in item.get("images") or [] if isinstance(img, dict)],
            "priceRanges": item.get("priceRanges"),
            "url": item.get("url") or _FALLBACK_URL,
        }
