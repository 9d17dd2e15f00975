"""Listener taste profile models.

A :class:`UserTasteProfile` is derived from a listener's Spotify top
artists and top tracks (see ``tiko.services.taste_profile_service``).
Every part carries its own confidence so the scorer can tell a thin
profile from a rich one.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from tiko.models.artist import AudioFeatures
from tiko.models.location import Location


class ArtistAffinity(BaseModel):
    """How much a listener likes a given artist (0-1)."""

    model_config = ConfigDict(frozen=True)

    name: str
    weight: float = Field(default=1.0, ge=0.0, le=1.0)
    genres: list[str] = Field(default_factory=list)
    popularity: int | None = Field(default=None, ge=0, le=100)
    spotify_id: str | None = None


class VenueVisit(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    visit_count: int = Field(default=1, ge=0)


class UserTasteProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str = ""
    primary_genres: list[str] = Field(
        default_factory=list, description="Top five genres, most listened first."
    )
    genre_weights: dict[str, float] = Field(
        default_factory=dict, description="Genre -> 0-1 weight, 1.0 for the top genre."
    )
    expanded_genres: list[str] = Field(default_factory=list)
    edm_preference: float = Field(default=0.0, ge=0.0, le=1.0)
    sound_characteristics: AudioFeatures | None = None
    track_count: int = Field(default=0, ge=0)
    top_artists: list[ArtistAffinity] = Field(default_factory=list)
    venue_history: list[VenueVisit] = Field(default_factory=list)
    location: Location | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source: str = Field(default="spotify", description="spotify, stored or default.")
    updated_at: datetime | None = None

    @property
    def scoring_genres(self) -> list[str]:
        """Genres the scorer compares against: primary, else weighted keys."""
        if self.primary_genres:
            return list(self.primary_genres)
        return sorted(self.genre_weights, key=self.genre_weights.__getitem__, reverse=True)[:5]
