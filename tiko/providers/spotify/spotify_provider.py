"""Spotify Web API adapter.

User-scoped endpoints (``/me/top/...``) take a bearer token issued by the
caller's OAuth flow.  Catalog search uses an app token from the
client-credentials grant, cached until shortly before it expires.

Status mapping:
    401         -> AuthenticationError
    429         -> RateLimitError (``retry_after`` from the Retry-After header)
    other non-2xx / transport failure -> ProviderUnavailableError
"""

from __future__ import annotations

import time
from typing import Any

import httpx

from tiko.config.settings import Settings
from tiko.interfaces.music_profile_provider import IMusicProfileProvider
from tiko.utils.errors import AuthenticationError, ProviderUnavailableError, RateLimitError
from tiko.utils.logging import get_logger

_AUDIO_FEATURE_BATCH = 100
_TOKEN_EXPIRY_MARGIN = 60
_VALID_TIME_RANGES = frozenset({"short_term", "medium_term", "long_term"})


class SpotifyProvider(IMusicProfileProvider):
    """Reads listener history and catalog data from the Spotify Web API.

    Parameters
    ----------
    settings:
        Supplies client credentials, API / accounts URLs and the HTTP timeout.
    http_client:
        Injected ``httpx.AsyncClient``.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._client_id = settings.spotify_client_id
        self._client_secret = settings.spotify_client_secret
        self._api_url = settings.spotify_api_url.rstrip("/")
        self._accounts_url = settings.spotify_accounts_url
        self._timeout = settings.http_timeout
        self._http = http_client
        self._app_token: str | None = None
        self._app_token_expires_at: float = 0.0
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return "spotify"

    def is_available(self) -> bool:
        return bool(self._client_id and self._client_secret)

    # -- HTTP helpers -------------------------------------------------------

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        if status == 401:
            raise AuthenticationError("Spotify rejected the access token", provider_name=self.get_provider_name())
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                "Spotify rate limit exceeded",
                provider_name=self.get_provider_name(),
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        raise ProviderUnavailableError(f"HTTP {status}", provider_name=self.get_provider_name())

    async def _get(self, path: str, token: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        if not token:
            raise AuthenticationError("No access token provided", provider_name=self.get_provider_name())
        try:
            response = await self._http.get(
                f"{self._api_url}{path}",
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            self._logger.warning("spotify_request_failed", path=path, error=str(exc))
            raise ProviderUnavailableError(
                f"{type(exc).__name__}: {exc}", provider_name=self.get_provider_name()
            ) from exc
        self._raise_for_status(response)
        return response.json()

    async def get_client_token(self) -> str:
        """Return an app token from the client-credentials grant."""
        if self._app_token and time.monotonic() < self._app_token_expires_at:
            return self._app_token
        if not self.is_available():
            raise AuthenticationError("Spotify client credentials not configured", provider_name=self.get_provider_name())
        try:
            response = await self._http.post(
                self._accounts_url,
                data={"grant_type": "client_credentials"},
                auth=(self._client_id, self._client_secret),
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                f"{type(exc).__name__}: {exc}", provider_name=self.get_provider_name()
            ) from exc
        self._raise_for_status(response)
        payload = response.json()
        self._app_token = payload["access_token"]
        expires_in = int(payload.get("expires_in", 3600))
        self._app_token_expires_at = time.monotonic() + max(expires_in - _TOKEN_EXPIRY_MARGIN, 0)
        self._logger.debug("spotify_client_token_refreshed", expires_in=expires_in)
        return self._app_token

    # -- IMusicProfileProvider ----------------------------------------------

    async def get_top_artists(
        self, access_token: str, limit: int = 50, time_range: str = "medium_term"
    ) -> list[dict[str, Any]]:
        if time_range not in _VALID_TIME_RANGES:
            time_range = "medium_term"
        data = await self._get("/me/top/artists", access_token, {"limit": min(limit, 50), "time_range": time_range})
        artists = [
            {
                "id": item.get("id"),
                "name": item.get("name"),
                "genres": item.get("genres") or [],
                "popularity": item.get("popularity"),
                "image": ((item.get("images") or [{}])[0] or {}).get("url", ""),
            }
            for item in data.get("items") or []
        ]
        self._logger.info("spotify_top_artists", count=len(artists), time_range=time_range)
        return artists

    async def get_top_tracks(
        self, access_token: str, limit: int = 50, time_range: str = "medium_term"
    ) -> list[dict[str, Any]]:
        if time_range not in _VALID_TIME_RANGES:
            time_range = "medium_term"
        data = await self._get("/me/top/tracks", access_token, {"limit": min(limit, 50), "time_range": time_range})
        tracks = [
            {
                "id": item.get("id"),
                "name": item.get("name"),
                "artists": [a.get("name") for a in item.get("artists") or []],
                "popularity": item.get("popularity"),
            }
            for item in data.get("items") or []
        ]
        self._logger.info("spotify_top_tracks", count=len(tracks), time_range=time_range)
        return tracks

    async def get_audio_features(self, access_token: str, track_ids: list[str]) -> dict[str, dict[str, Any]]:
        features: dict[str, dict[str, Any]] = {}
        for start in range(0, len(track_ids), _AUDIO_FEATURE_BATCH):
            batch = track_ids[start:start + _AUDIO_FEATURE_BATCH]
            data = await self._get("/audio-features", access_token, {"ids": ",".join(batch)})
            for item in data.get("audio_features") or []:
                if isinstance(item, dict) and item.get("id"):
                    features[item["id"]] = item
        self._logger.debug("spotify_audio_features", requested=len(track_ids), returned=len(features))
        return features

    async def search_artist(self, name: str, access_token: str | None = None) -> dict[str, Any] | None:
        token = access_token or await self.get_client_token()
        data = await self._get("/search", token, {"q": name, "type": "artist", "limit": 1})
        items = (data.get("artists") or {}).get("items") or []
        self._logger.debug("spotify_artist_search", query=name, result_count=len(items))
        if not items:
            return None
        item = items[0]
        return {
            "id": item.get("id"),
            "name": item.get("name"),
            "genres": item.get("genres") or [],
            "popularity": item.get("popularity"),
        }
