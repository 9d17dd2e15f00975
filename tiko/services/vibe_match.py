"""Vibe Match scoring: how well an event fits a listener, 0-100.

# ─── HOW THE SCORE IS BUILT ───────────────────────────────────────────
#
# Five components, each 0-100, blended with ScoringWeights:
#
#   sound   mean per-feature similarity (1 - |event - user|) over energy,
#           danceability, valence, acousticness, instrumentalness, plus
#           tempo similarity max(0, 1 - |dBPM| / 40)
#   genre   best of: exact primary-genre hit (100), expanded-genre hit
#           (85), matrix similarity x 100; EDM-lover floor of 70
#   artist  known favourite -> affinity-weighted 100; otherwise EDM
#           weight, shared sound DNA and a small popularity bonus
#   venue   visit history, else club/festival-type venue, else neutral
#   timing  how soon the event is, with a Friday/Saturday bump judged
#           on the venue's local start time
#
# A component with no data on either side is SKIPPED, not scored 0, and
# the final value is divided by the weights actually used.  The share of
# weight that had data is reported as the match confidence.
#
# Non-music listings (castle tours, general admission museum entries...)
# short-circuit to a fixed low score.  Nothing here is random.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from tiko.config.genre_knowledge import (
    CLUB_VENUE_KEYWORDS,
    MUSIC_KEYWORDS,
    NON_MUSIC_KEYWORDS,
    SCORING_EDM_KEYWORDS,
    count_keywords,
    is_edm_genre,
)
from tiko.models.artist import AudioFeatures
from tiko.models.event import Event
from tiko.models.scoring import ScoredEvent, ScoringWeights, VibeMatchResult
from tiko.models.taste import UserTasteProfile
from tiko.services.genre_matrix import GenreSimilarityMatrix
from tiko.utils.confidence import confidence_to_level, merge_confidence
from tiko.utils.errors import ScoringError
from tiko.utils.logging import get_logger
from tiko.utils.text_normalizer import artist_key, fuzzy_match

_logger = get_logger(__name__)

NON_MUSIC_SCORE = 10
BASELINE_METHOD = "baseline_music_detection"

_TEMPO_TOLERANCE_BPM = 40.0
_FUZZY_ARTIST_THRESHOLD = 0.9
_FAVOURITE_FLOOR = 0.6


def is_music_event(event: Event) -> bool:
    """Decide whether a listing is a music event.

    Music keywords in the name, description and venue name are weighed
    against attraction keywords.  A lineup or a genre tag counts as one
    extra music signal each.  "General admission" with no music signal
    at all is never music.
    """
    text = " ".join((event.name, event.description, event.venue.name))
    music = count_keywords(text, MUSIC_KEYWORDS)
    if event.artists:
        music += 1
    if event.genres:
        music += 1
    if music == 0 and "general admission" in text.lower():
        return False
    return music > count_keywords(text, NON_MUSIC_KEYWORDS)


def event_sound_profile(event: Event) -> tuple[AudioFeatures | None, float]:
    """Return the event's sound characteristics and how much to trust them.

    Event-level characteristics are fully trusted.  Otherwise the mean of
    the lineup's audio features is used, trusted in proportion to the
    share of the lineup that had features.
    """
    if event.sound_characteristics is not None and not event.sound_characteristics.is_empty():
        return event.sound_characteristics, 1.0
    with_features = [a.audio_features for a in event.artists if a.audio_features is not None]
    if not with_features:
        return None, 0.0
    return AudioFeatures.mean(with_features), len(with_features) / len(event.artists)


def local_event_datetime(event: Event) -> datetime | None:
    """The event's start in the venue's local time, as far as it can be told.

    ``date`` is UTC; ``start_time`` is the venue's wall-clock time.  Their
    difference, folded into the UTC-12..UTC+14 range, is the venue offset.
    Without a parseable ``start_time`` the UTC value is returned as-is.
    """
    if event.date is None:
        return None
    parts = event.start_time.split(":") if event.start_time else []
    try:
        hours = int(parts[0])
        minutes = int(parts[1]) if len(parts) > 1 else 0
    except (IndexError, ValueError):
        return event.date
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return event.date
    utc = event.date.astimezone(timezone.utc)
    offset = (hours * 60 + minutes) - (utc.hour * 60 + utc.minute)
    if offset > 14 * 60:
        offset -= 24 * 60
    elif offset < -12 * 60:
        offset += 24 * 60
    return utc + timedelta(minutes=offset)


class VibeMatchScorer:
    """Single source of truth for event scoring."""

    def __init__(
        self,
        weights: ScoringWeights | None = None,
        matrix: GenreSimilarityMatrix | None = None,
        edm_bonus_threshold: float = 0.8,
        edm_bonus_floor: int = 70,
        non_music_score: int = NON_MUSIC_SCORE,
        version: str = "2.0",
    ) -> None:
        self._weights = weights or ScoringWeights()
        self._matrix = matrix or GenreSimilarityMatrix()
        self._edm_bonus_threshold = edm_bonus_threshold
        self._edm_bonus_floor = edm_bonus_floor
        self._non_music_score = non_music_score
        self._version = version

    @classmethod
    def from_config(cls, config: dict, matrix: GenreSimilarityMatrix | None = None) -> VibeMatchScorer:
        scoring = config.get("scoring") or {}
        try:
            weights = ScoringWeights.from_config(config)
        except ValueError as exc:
            raise ScoringError(f"Invalid scoring weights: {exc}") from exc
        return cls(
            weights=weights,
            matrix=matrix,
            edm_bonus_threshold=float(scoring.get("edm_bonus_threshold", 0.8)),
            edm_bonus_floor=int(scoring.get("edm_bonus_floor", 70)),
            non_music_score=int(scoring.get("non_music_score", NON_MUSIC_SCORE)),
            version=str(scoring.get("version", "2.0")),
        )

    @property
    def weights(self) -> ScoringWeights:
        return self._weights

    @property
    def version(self) -> str:
        return self._version

    # -- Components -------------------------------------------------------

    @staticmethod
    def sound_similarity(event_sound: AudioFeatures | None, user_sound: AudioFeatures | None) -> int | None:
        """0-100 similarity between two feature sets, None with no overlap."""
        if event_sound is None or user_sound is None:
            return None
        similarities: list[float] = []
        for name in AudioFeatures.unit_feature_names():
            event_value = getattr(event_sound, name)
            user_value = getattr(user_sound, name)
            if event_value is not None and user_value is not None:
                similarities.append(1.0 - abs(event_value - user_value))
        if event_sound.tempo and user_sound.tempo:
            diff = abs(event_sound.tempo - user_sound.tempo)
            similarities.append(max(0.0, 1.0 - diff / _TEMPO_TOLERANCE_BPM))
        if not similarities:
            return None
        return round(100 * sum(similarities) / len(similarities))

    def sound_score(self, event: Event, profile: UserTasteProfile) -> int | None:
        event_sound, trust = event_sound_profile(event)
        raw = self.sound_similarity(event_sound, profile.sound_characteristics)
        if raw is None:
            return None
        return round(100 * merge_confidence(0.5, raw / 100, trust))

    def genre_score(self, event: Event, profile: UserTasteProfile) -> int | None:
        user_genres = profile.scoring_genres
        if not event.genres or not (user_genres or profile.expanded_genres):
            return None
        event_keys = {self._matrix.normalize(g) for g in event.genres}
        best = 0.0
        if event_keys & {self._matrix.normalize(g) for g in user_genres}:
            best = 100.0
        elif event_keys & {self._matrix.normalize(g) for g in profile.expanded_genres}:
            best = 85.0
        for user_genre in user_genres:
            best = max(best, 100 * self._matrix.best_match(user_genre, event.genres))
        if profile.edm_preference > self._edm_bonus_threshold and any(is_edm_genre(g) for g in event.genres):
            best = max(best, float(self._edm_bonus_floor))
        return round(best)

    def artist_score(self, event: Event, profile: UserTasteProfile) -> int | None:
        if not event.artists:
            return None
        favourites = {artist_key(a.name): a for a in profile.top_artists}
        favourite_keys = list(favourites)
        best = 0.0
        for artist in event.artists:
            key = artist_key(artist.name)
            favourite = favourites.get(key)
            if favourite is None and favourite_keys:
                matched = fuzzy_match(key, favourite_keys, threshold=_FUZZY_ARTIST_THRESHOLD)
                if matched is not None:
                    favourite = favourites[matched[0]]
            if favourite is not None:
                best = max(best, 100 * max(favourite.weight, _FAVOURITE_FLOOR))
                continue

            score = 0.0
            genres = artist.genres or event.genres
            if genres and profile.edm_preference:
                edm_weight = sum(1 for g in genres if is_edm_genre(g)) / len(genres)
                score += min(edm_weight, profile.edm_preference) * 60
            shared = self.sound_similarity(artist.audio_features, profile.sound_characteristics)
            if shared is not None:
                score += shared * 0.4
            if artist.popularity:
                score += min(artist.popularity / 100 * 10, 10)
            best = max(best, score)
        return round(min(best, 100.0))

    @staticmethod
    def venue_score(event: Event, profile: UserTasteProfile) -> int | None:
        name = event.venue.name.strip().lower()
        if name == "venue tba" and not event.venue.venue_type:
            return None
        for visit in profile.venue_history:
            if visit.name.strip().lower() == name:
                return min(100, 30 * visit.visit_count)
        venue_text = f"{event.venue.venue_type} {event.venue.name}"
        if count_keywords(venue_text, CLUB_VENUE_KEYWORDS):
            return 60
        return 40

    @staticmethod
    def timing_score(event: Event, now: datetime | None = None) -> int | None:
        if event.date is None:
            return None
        now = now or datetime.now(timezone.utc)
        delta_days = (event.date - now).total_seconds() / 86400
        if delta_days < 0:
            return 0
        if delta_days <= 14:
            score = 100
        elif delta_days <= 60:
            score = 70
        else:
            score = 40
        local = local_event_datetime(event) or event.date
        if local.weekday() in (4, 5):
            score += 10
        return min(score, 100)

    # -- Blending ---------------------------------------------------------

    def score(self, event: Event, profile: UserTasteProfile, now: datetime | None = None) -> VibeMatchResult:
        """Score one event for one listener."""
        if not is_music_event(event):
            return VibeMatchResult(
                score=self._non_music_score,
                is_music_event=False,
                method="non_music",
                version=self._version,
            )

        components = {
            "sound": self.sound_score(event, profile),
            "genre": self.genre_score(event, profile),
            "artist": self.artist_score(event, profile),
            "venue": self.venue_score(event, profile),
            "timing": self.timing_score(event, now),
        }
        weights = self._weights.as_dict()
        breakdown = {name: value for name, value in components.items() if value is not None and weights[name] > 0}
        weights_used = {name: weights[name] for name in breakdown}
        used = sum(weights_used.values())

        if used <= 0:
            return VibeMatchResult(score=0, method="vibe_match", version=self._version)

        blended = sum(breakdown[name] * weights_used[name] for name in breakdown) / used
        confidence = min(1.0, used / self._weights.total())
        return VibeMatchResult(
            score=max(0, min(100, round(blended))),
            breakdown=breakdown,
            weights_used=weights_used,
            confidence=confidence,
            confidence_level=confidence_to_level(confidence),
            method="vibe_match",
            version=self._version,
        )

    def score_many(
        self,
        events: list[Event],
        profile: UserTasteProfile,
        now: datetime | None = None,
    ) -> list[ScoredEvent]:
        """Score and rank events, best first; ties keep the earlier date first."""
        now = now or datetime.now(timezone.utc)
        scored = [ScoredEvent(event=e, match=self.score(e, profile, now)) for e in events]
        far_future = datetime.max.replace(tzinfo=timezone.utc)
        scored.sort(key=lambda s: s.event.date or far_future)
        scored.sort(key=lambda s: s.match.score, reverse=True)
        _logger.debug("events_scored", count=len(scored), user_id=profile.user_id)
        return scored

    def baseline_score(self, event: Event) -> int:
        """Profile-less catalog score used to backfill ``personalizedScore``.

        Music events start at 50, gain 5 per EDM genre word in the name or
        description, 4 per listed artist (at most 20) and 10 for a club or
        festival venue, clamped to 15-95.
        """
        if not is_music_event(event):
            return self._non_music_score
        score = 50
        score += 5 * count_keywords(f"{event.name} {event.description}", SCORING_EDM_KEYWORDS)
        score += min(20, 4 * len(event.artists))
        if count_keywords(event.venue.name, ("club", "festival")):
            score += 10
        return max(15, min(95, score))
