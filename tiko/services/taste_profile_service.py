"""Builds a :class:`UserTasteProfile` from a listener's Spotify history.

Three independent extractions, each with its own confidence:

    sound   recency-weighted mean of top-track audio features
            (weight = 1 - index / n * 0.5, so the #1 track counts 2x the last)
    genre   genre frequency over top artists; top 5 are "primary", all are
            expanded via the genre knowledge tables; EDM preference is the
            share of primary genres that are EDM genres
    artist  rank-weighted affinity for each top artist

Profiles are persisted through :class:`IProfileStore` when one is wired.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any

from tiko.config.genre_knowledge import DEFAULT_GENRE_WEIGHTS, expand_genres, is_edm_genre
from tiko.interfaces.document_store import IProfileStore
from tiko.interfaces.music_profile_provider import IMusicProfileProvider
from tiko.models.artist import AudioFeatures
from tiko.models.taste import ArtistAffinity, UserTasteProfile
from tiko.utils.confidence import calculate_confidence
from tiko.utils.errors import ConfigurationError, StorageError
from tiko.utils.logging import get_logger

_logger = get_logger(__name__)


def _recency_weight(index: int, total: int) -> float:
    return 1.0 - (index / total) * 0.5


class TasteProfileService:
    """Derives, loads and stores listener taste profiles."""

    def __init__(
        self,
        music_provider: IMusicProfileProvider | None = None,
        profile_store: IProfileStore | None = None,
    ) -> None:
        self._music = music_provider
        self._store = profile_store

    # -- Extraction -------------------------------------------------------

    @staticmethod
    def extract_sound_characteristics(
        top_tracks: list[dict[str, Any]],
        audio_features: dict[str, dict[str, Any]],
    ) -> tuple[AudioFeatures | None, float]:
        """Return the weighted mean features and their confidence (0-1)."""
        sums: dict[str, float] = {}
        weights: dict[str, float] = {}
        weight_total = 0.0
        total = len(top_tracks)
        for index, track in enumerate(top_tracks):
            features = audio_features.get(track.get("id", "")) or track.get("audio_features")
            parsed = AudioFeatures.from_mapping(features)
            if parsed is None:
                continue
            weight = _recency_weight(index, total)
            weight_total += weight
            for name, value in parsed.as_dict().items():
                sums[name] = sums.get(name, 0.0) + value * weight
                weights[name] = weights.get(name, 0.0) + weight
        if not sums:
            return None, 0.0
        averaged = AudioFeatures(**{name: sums[name] / weights[name] for name in sums})
        return averaged, min(weight_total / 50, 1.0)

    @staticmethod
    def extract_genre_preferences(
        top_artists: list[dict[str, Any]],
        sound: AudioFeatures | None = None,
    ) -> dict[str, Any]:
        counts: Counter[str] = Counter()
        for artist in top_artists:
            for genre in artist.get("genres") or []:
                if isinstance(genre, str) and genre.strip():
                    counts[genre.strip().lower()] += 1
        total = sum(counts.values())
        if not counts:
            return {"primary": [], "weights": {}, "expanded": [], "edm_preference": 0.0, "confidence": 0.0}

        ranked = counts.most_common()
        primary = [genre for genre, _ in ranked[:5]]
        top_count = ranked[0][1]
        edm_preference = sum(1 for g in primary if is_edm_genre(g)) / len(primary)
        return {
            "primary": primary,
            "weights": {genre: round(count / top_count, 3) for genre, count in ranked},
            "expanded": expand_genres([g for g, _ in ranked], sound.as_dict() if sound else None),
            "edm_preference": edm_preference,
            "confidence": min(total / 20, 1.0),
        }

    @staticmethod
    def extract_artist_affinities(top_artists: list[dict[str, Any]]) -> tuple[list[ArtistAffinity], float]:
        total = len(top_artists)
        affinities: list[ArtistAffinity] = []
        for index, artist in enumerate(top_artists):
            name = artist.get("name")
            if not isinstance(name, str) or not name.strip():
                continue
            popularity = artist.get("popularity")
            affinities.append(
                ArtistAffinity(
                    name=name.strip(),
                    weight=round(_recency_weight(index, total), 3),
                    genres=[g.lower() for g in artist.get("genres") or [] if isinstance(g, str)],
                    popularity=popularity if isinstance(popularity, int) and 0 <= popularity <= 100 else None,
                    spotify_id=artist.get("id"),
                )
            )
        return affinities, min(len(affinities) / 20, 1.0)

    def build_profile(
        self,
        user_id: str,
        top_artists: list[dict[str, Any]],
        top_tracks: list[dict[str, Any]],
        audio_features: dict[str, dict[str, Any]] | None = None,
    ) -> UserTasteProfile:
        """Combine the three extractions into one profile."""
        sound, sound_confidence = self.extract_sound_characteristics(top_tracks, audio_features or {})
        genres = self.extract_genre_preferences(top_artists, sound)
        affinities, artist_confidence = self.extract_artist_affinities(top_artists)
        confidence = calculate_confidence([sound_confidence, genres["confidence"], artist_confidence])
        return UserTasteProfile(
            user_id=user_id,
            primary_genres=genres["primary"],
            genre_weights=genres["weights"],
            expanded_genres=genres["expanded"],
            edm_preference=genres["edm_preference"],
            sound_characteristics=sound,
            track_count=len(top_tracks),
            top_artists=affinities,
            confidence=confidence,
            source="spotify",
            updated_at=datetime.now(timezone.utc),
        )

    @staticmethod
    def default_profile(user_id: str = "") -> UserTasteProfile:
        """Profile assumed for a listener with no taste data yet."""
        ranked = sorted(DEFAULT_GENRE_WEIGHTS, key=DEFAULT_GENRE_WEIGHTS.__getitem__, reverse=True)
        primary = ranked[:5]
        return UserTasteProfile(
            user_id=user_id,
            primary_genres=primary,
            genre_weights=dict(DEFAULT_GENRE_WEIGHTS),
            expanded_genres=expand_genres(ranked),
            edm_preference=sum(1 for g in primary if is_edm_genre(g)) / len(primary),
            confidence=0.0,
            source="default",
        )

    # -- Orchestration ----------------------------------------------------

    async def fetch_listening_history(
        self, access_token: str, time_range: str = "medium_term"
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]], dict[str, dict[str, Any]]]:
        """Return ``(top_artists, top_tracks, audio_features)`` for the token holder."""
        if self._music is None:
            raise ConfigurationError("No music profile provider configured", provider_name="spotify")
        top_artists = await self._music.get_top_artists(access_token, time_range=time_range)
        top_tracks = await self._music.get_top_tracks(access_token, time_range=time_range)
        track_ids = [t["id"] for t in top_tracks if t.get("id")]
        features = await self._music.get_audio_features(access_token, track_ids) if track_ids else {}
        return top_artists, top_tracks, features

    async def build_from_spotify(self, user_id: str, access_token: str) -> UserTasteProfile:
        """Fetch Spotify history for the token holder and derive a profile.

        Provider errors (authentication, rate limit, unavailable) propagate
        to the caller.  A failure to persist the profile is logged only.
        """
        top_artists, top_tracks, features = await self.fetch_listening_history(access_token)
        profile = self.build_profile(user_id, top_artists, top_tracks, features)
        _logger.info(
            "taste_profile_built",
            user_id=user_id,
            artists=len(top_artists),
            tracks=len(top_tracks),
            primary_genres=profile.primary_genres,
            confidence=round(profile.confidence, 2),
        )
        await self.save_profile(profile)
        return profile

    async def save_profile(self, profile: UserTasteProfile) -> bool:
        """Persist *profile* when a store is wired.  Failures are logged, not raised."""
        if self._store is None or not profile.user_id:
            return False
        try:
            await self._store.save_profile(profile)
        except StorageError as exc:
            _logger.warning("taste_profile_save_failed", user_id=profile.user_id, error=str(exc))
            return False
        return True

    async def load_profile(self, user_id: str) -> UserTasteProfile:
        """Return the stored profile for *user_id*, or the default profile."""
        if self._store is not None and user_id:
            try:
                stored = await self._store.get_profile(user_id)
            except StorageError as exc:
                _logger.warning("taste_profile_load_failed", user_id=user_id, error=str(exc))
                stored = None
            if stored is not None:
                return stored
        return self.default_profile(user_id)
