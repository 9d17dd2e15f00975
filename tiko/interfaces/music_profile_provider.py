"""Abstract base class for listener music-profile sources (Spotify).

User-scoped calls take an OAuth access token that was issued elsewhere;
catalog calls (artist search) may use an app token obtained through the
client-credentials flow.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IMusicProfileProvider(ABC):
    """Contract for a listener's top artists / tracks and audio features."""

    @abstractmethod
    async def get_top_artists(
        self, access_token: str, limit: int = 50, time_range: str = "medium_term"
    ) -> list[dict[str, Any]]:
        """Return the listener's top artists (name, id, genres, popularity), most played first.

        Raises
        ------
        AuthenticationError
            The token is missing, expired or rejected.
        RateLimitError
            The API answered HTTP 429.
        """

    @abstractmethod
    async def get_top_tracks(
        self, access_token: str, limit: int = 50, time_range: str = "medium_term"
    ) -> list[dict[str, Any]]:
        """Return the listener's top tracks (id, name, artists), most played first."""

    @abstractmethod
    async def get_audio_features(self, access_token: str, track_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Return audio features keyed by track id.

        Tracks the API has no features for are simply absent from the
        result.
        """

    @abstractmethod
    async def search_artist(self, name: str, access_token: str | None = None) -> dict[str, Any] | None:
        """Look up an artist by name in the catalog.

        Uses an app token when *access_token* is ``None``.  Returns the
        best match (name, id, genres, popularity) or ``None``.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the provider name (``"spotify"``)."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` when app credentials are configured."""
