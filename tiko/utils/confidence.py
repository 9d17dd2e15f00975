"""Confidence math shared by the taste profile and the vibe match scorer.

1. **calculate_confidence** -- weighted average of several 0-1 signals.
   The taste service combines the sound, genre and artist confidences
   of a profile into one number with it.
2. **confidence_to_level** -- maps a 0-1 score to a display tier.
3. **merge_confidence** -- linear blend of an existing value toward new
   evidence.  The scorer uses it to pull a thin-data sound score toward
   the neutral midpoint.
"""

from enum import Enum


class ConfidenceLevel(Enum):
    """Human-readable confidence tiers shown next to a match score."""

    VERY_LOW = "very_low"    # < 0.2
    LOW = "low"              # 0.2 - 0.4
    MEDIUM = "medium"        # 0.4 - 0.6
    HIGH = "high"            # 0.6 - 0.8
    VERY_HIGH = "very_high"  # >= 0.8


def calculate_confidence(
    scores: list[float],
    weights: list[float] | None = None,
) -> float:
    """Compute a weighted average confidence score.

    Args:
        scores: Individual confidence scores, each in [0.0, 1.0].
        weights: Optional weights for each score. Defaults to equal weighting.

    Returns:
        Weighted average clamped to [0.0, 1.0].

    Raises:
        ValueError: If scores is empty or lengths of scores and weights differ.
    """
    if not scores:
        raise ValueError("scores must not be empty")

    if weights is None:
        weights = [1.0] * len(scores)

    if len(scores) != len(weights):
        raise ValueError("scores and weights must have the same length")

    total_weight = sum(weights)
    if total_weight == 0:
        return 0.0

    weighted_sum = sum(s * w for s, w in zip(scores, weights, strict=True))
    return max(0.0, min(1.0, weighted_sum / total_weight))


def confidence_to_level(score: float) -> ConfidenceLevel:
    """Map a numeric confidence score to a human-readable level.

    Tiers are evenly spaced at 0.2 intervals.
    """
    if score < 0.2:
        return ConfidenceLevel.VERY_LOW
    if score < 0.4:
        return ConfidenceLevel.LOW
    if score < 0.6:
        return ConfidenceLevel.MEDIUM
    if score < 0.8:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.VERY_HIGH


def merge_confidence(existing: float, new: float, new_weight: float = 0.5) -> float:
    """Blend ``existing`` toward ``new`` by ``new_weight``.

    Args:
        existing: Current value in [0.0, 1.0].
        new: New evidence value in [0.0, 1.0].
        new_weight: Weight given to the new evidence (0.0--1.0).

    Returns:
        Blended value clamped to [0.0, 1.0].
    """
    new_weight = max(0.0, min(1.0, new_weight))
    merged = existing * (1.0 - new_weight) + new * new_weight
    return max(0.0, min(1.0, merged))
