"""Recommendation result model.

A recommendation run scores one event feed against one listener profile.
The result keeps enough provenance (where the events and the profile came
from) for the client to explain what it is looking at.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from tiko.models.scoring import ScoredEvent


class RecommendationResult(BaseModel):
    """Ranked events for one listener, best match first."""

    model_config = ConfigDict(frozen=True)

    user_id: str = ""
    city: str
    genre: str
    # "spotify", "stored", "default" or "request"
    profile_source: str
    profile_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    # EventFeed.source of the underlying feed: api, cache, sample, error
    event_source: str
    recommendations: list[ScoredEvent] = Field(default_factory=list)
    total_candidates: int = 0
    source_errors: dict[str, str] = Field(default_factory=dict)
    generated_at: datetime | None = None
