"""Artist and audio-feature models.

Audio features follow the Spotify audio-features vocabulary: every
feature except ``tempo`` is a 0-1 float, ``tempo`` is beats per minute.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_UNIT_FEATURES = ("energy", "danceability", "valence", "acousticness", "instrumentalness")


class AudioFeatures(BaseModel):
    """Aggregated sound characteristics of a track, artist, event or listener."""

    model_config = ConfigDict(frozen=True)

    energy: float | None = Field(default=None, ge=0.0, le=1.0)
    danceability: float | None = Field(default=None, ge=0.0, le=1.0)
    valence: float | None = Field(default=None, ge=0.0, le=1.0)
    acousticness: float | None = Field(default=None, ge=0.0, le=1.0)
    instrumentalness: float | None = Field(default=None, ge=0.0, le=1.0)
    tempo: float | None = Field(default=None, ge=0.0, description="Beats per minute.")

    @classmethod
    def unit_feature_names(cls) -> tuple[str, ...]:
        return _UNIT_FEATURES

    def as_dict(self) -> dict[str, float]:
        """Return only the features that are present."""
        return {k: v for k, v in self.model_dump().items() if v is not None}

    def is_empty(self) -> bool:
        return not self.as_dict()

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> AudioFeatures | None:
        """Build from a loosely-typed dict, clamping unit features into 0-1.

        Returns ``None`` when no recognised feature is present.
        """
        if not isinstance(data, dict):
            return None
        values: dict[str, float] = {}
        for name in _UNIT_FEATURES:
            raw = data.get(name)
            if isinstance(raw, (int, float)) and not isinstance(raw, bool):
                values[name] = min(1.0, max(0.0, float(raw)))
        tempo = data.get("tempo")
        if isinstance(tempo, (int, float)) and not isinstance(tempo, bool) and tempo > 0:
            values["tempo"] = float(tempo)
        return cls(**values) if values else None

    @classmethod
    def mean(cls, items: list[AudioFeatures]) -> AudioFeatures | None:
        """Feature-wise mean over ``items``, ignoring missing values."""
        totals: dict[str, list[float]] = {}
        for item in items:
            for name, value in item.as_dict().items():
                totals.setdefault(name, []).append(value)
        if not totals:
            return None
        return cls(**{name: sum(vals) / len(vals) for name, vals in totals.items()})


class Artist(BaseModel):
    """An artist document from the ``artistGenres`` collection."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Display name as listed on events.")
    spotify_id: str | None = None
    genres: list[str] = Field(default_factory=list)
    popularity: int | None = Field(default=None, ge=0, le=100)
    audio_features: AudioFeatures | None = None
    edm_weight: float = Field(
        default=0.0, ge=0.0, le=1.0,
        description="Share of the artist's genres that are EDM genres.",
    )
    needs_genre_enrichment: bool = Field(
        default=False, description="Set when genres still need a Spotify lookup."
    )
    essentia_matrix: dict[str, Any] | None = Field(
        default=None, description="Optional track-level analysis from Essentia."
    )
