"""Event recommendations for a listener.

Architecture overview
---------------------
This module answers "which of tonight's events should I go to?":

  1. PROFILE  -- the caller passes a profile, or a user id whose stored
                 profile is loaded (default profile when none is stored),
                 or a Spotify token from which a fresh profile is built.
  2. EVENTS   -- the event service supplies the city's feed (live, cached
                 or sample; see ``event_service.py``).
  3. SCORING  -- every event is scored by the one ``VibeMatchScorer``.
  4. RANKING  -- events under ``min_score`` are dropped, the rest sorted
                 best first (earlier date wins ties) and cut to ``limit``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from tiko.models.recommendation import RecommendationResult
from tiko.models.taste import UserTasteProfile
from tiko.services.event_service import EventService
from tiko.services.taste_profile_service import TasteProfileService
from tiko.services.vibe_match import VibeMatchScorer
from tiko.utils.logging import get_logger

_DEFAULT_LIMIT = 10


class RecommendationService:
    """Ranks an event feed against a listener's taste profile."""

    def __init__(
        self,
        event_service: EventService,
        scorer: VibeMatchScorer,
        taste_service: TasteProfileService,
        default_limit: int = _DEFAULT_LIMIT,
        default_min_score: int = 0,
    ) -> None:
        self._events = event_service
        self._scorer = scorer
        self._taste = taste_service
        self._default_limit = default_limit
        self._default_min_score = default_min_score
        self._logger = get_logger(__name__)

    async def recommend(
        self,
        profile: UserTasteProfile,
        city: str,
        genre: str = "electronic",
        limit: int | None = None,
        min_score: int | None = None,
        now: datetime | None = None,
    ) -> RecommendationResult:
        limit = self._default_limit if limit is None else limit
        min_score = self._default_min_score if min_score is None else min_score
        now = now or datetime.now(timezone.utc)

        feed = await self._events.get_events(city, genre)
        scored = self._scorer.score_many(feed.events, profile, now)
        kept = [s for s in scored if s.match.score >= min_score][: max(limit, 0)]

        self._logger.info(
            "recommendations_ranked",
            user_id=profile.user_id,
            city=city,
            candidates=len(scored),
            returned=len(kept),
            event_source=feed.source,
            top_score=kept[0].match.score if kept else None,
        )
        return RecommendationResult(
            user_id=profile.user_id,
            city=city,
            genre=genre,
            profile_source=profile.source,
            profile_confidence=profile.confidence,
            event_source=feed.source,
            recommendations=kept,
            total_candidates=len(scored),
            source_errors=feed.errors,
            generated_at=now,
        )

    async def recommend_for_user(
        self,
        user_id: str,
        city: str,
        genre: str = "electronic",
        limit: int | None = None,
        min_score: int | None = None,
        access_token: str | None = None,
    ) -> RecommendationResult:
        """Recommend using a Spotify-derived profile when a token is given, else the stored one."""
        if access_token:
            profile = await self._taste.build_from_spotify(user_id, access_token)
        else:
            profile = await self._taste.load_profile(user_id)
        return await self.recommend(profile, city, genre, limit=limit, min_score=min_score)
