"""Spotify Web API adapter (listener history, audio features, artist search)."""

from tiko.providers.spotify.spotify_provider import SpotifyProvider

__all__ = ["SpotifyProvider"]
