"""Text normalization utilities for artist names.

Event listings and Spotify rarely agree on how an artist is written
("DJ Snake" vs "Dj snake", "Above & Beyond" vs "Above and Beyond").
There is no referential link between events and the artist collection,
so every join is a normalized-name or fuzzy-name comparison made here.
"""

import re

from rapidfuzz import fuzz, process


def normalize_artist_name(name: str) -> str:
    """Normalize an artist name for display and deduplication.

    Strips a leading "DJ" prefix, collapses whitespace and title-cases,
    so "DJ Snake", "dj snake" and "  DJ  Snake " all become "Snake".

    Args:
        name: Raw artist name string.

    Returns:
        Normalized artist name.
    """
    normalized = name.strip()
    normalized = re.sub(r"^[Dd][Jj]\s+", "", normalized)
    normalized = re.sub(r"\s+", " ", normalized)
    return normalized.title()


def artist_key(name: str) -> str:
    """Return the case-insensitive comparison key for an artist name."""
    key = normalize_artist_name(name).lower().replace(" & ", " and ")
    return re.sub(r"[^\w\s]", "", key).strip()


def fuzzy_match(
    query: str,
    candidates: list[str],
    threshold: float = 0.8,
) -> tuple[str, float] | None:
    """Find the best fuzzy match for a query among candidates.

    Uses rapidfuzz ``token_sort_ratio`` so word order does not matter
    ("Beyer Adam" matches "Adam Beyer").

    Args:
        query: The string to match.
        candidates: List of candidate strings to match against.
        threshold: Minimum similarity score (0.0--1.0) to accept a match.

    Returns:
        A (best_match, score) tuple if a match meets the threshold, else None.
    """
    if not candidates:
        return None

    result = process.extractOne(
        query,
        candidates,
        scorer=fuzz.token_sort_ratio,
        score_cutoff=threshold * 100,
    )

    if result is None:
        return None

    match_str, score, _ = result
    return (match_str, score / 100.0)


# Separators used in lineup strings: b2b, vs, feat., ft., featuring, commas,
# and "with N more" tails from EDMTrain-style titles.
_SEPARATOR_PATTERN = re.compile(
    r"\s+[Bb]2[Bb]\s+|\s+[Vv][Ss]\.?\s+|\s+feat\.?\s+" r"|\s+ft\.?\s+|\s+featuring\s+|,\s*",
    re.IGNORECASE,
)
_MORE_TAIL = re.compile(r"\s+with\s+\d+\s+more$", re.IGNORECASE)


def split_artist_names(raw: str) -> list[str]:
    """Split a lineup string into individual names.

    "Carl Cox b2b Adam Beyer, Nina Kraviz" -> ["Carl Cox", "Adam Beyer", "Nina Kraviz"].
    "&" is deliberately not a separator: "Above & Beyond" is one act.

    Args:
        raw: Raw artist name string potentially containing multiple names.

    Returns:
        List of individual artist name strings, stripped of whitespace.
    """
    raw = _MORE_TAIL.sub("", raw.strip())
    parts = _SEPARATOR_PATTERN.split(raw)
    return [part.strip() for part in parts if part.strip()]
