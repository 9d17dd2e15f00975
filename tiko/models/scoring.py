"""Vibe match scoring models.

:class:`ScoringWeights` is the one place the relative importance of the
score components is defined.  :class:`VibeMatchResult` carries the score
together with its per-component breakdown so the UI can explain a match.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tiko.models.event import Event
from tiko.utils.confidence import ConfidenceLevel

COMPONENTS: tuple[str, ...] = ("sound", "genre", "artist", "venue", "timing")


class ScoringWeights(BaseModel):
    """Relative weights of the vibe match components.

    Weights need not sum to 1: the scorer divides by the total weight of
    the components it could actually compute.
    """

    model_config = ConfigDict(frozen=True)

    sound: float = Field(default=0.35, ge=0.0)
    genre: float = Field(default=0.30, ge=0.0)
    artist: float = Field(default=0.20, ge=0.0)
    venue: float = Field(default=0.10, ge=0.0)
    timing: float = Field(default=0.05, ge=0.0)

    @model_validator(mode="after")
    def _check_total(self) -> ScoringWeights:
        if self.total() <= 0:
            raise ValueError("at least one scoring weight must be positive")
        return self

    def total(self) -> float:
        return sum(self.as_dict().values())

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in COMPONENTS}

    @classmethod
    def from_config(cls, config: dict) -> ScoringWeights:
        """Read ``scoring.weights`` from a :func:`load_config` dict."""
        weights = (config.get("scoring") or {}).get("weights") or {}
        return cls(**{k: float(v) for k, v in weights.items() if k in COMPONENTS})


class VibeMatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    breakdown: dict[str, int] = Field(
        default_factory=dict, description="Component -> 0-100 for components with data."
    )
    weights_used: dict[str, float] = Field(default_factory=dict)
    confidence: float = Field(
        default=0.0, ge=0.0, le=1.0,
        description="Share of the total weight backed by data.",
    )
    confidence_level: ConfidenceLevel = ConfidenceLevel.VERY_LOW
    is_music_event: bool = True
    method: str = "vibe_match"
    version: str = "2.0"


class ScoredEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: Event
    match: VibeMatchResult
