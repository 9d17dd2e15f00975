"""Genre similarity lookups over :data:`~tiko.config.genre_knowledge.GENRE_SIMILARITY`.

Similarity resolution order for two genres:

    1. identical after normalization  -> 1.0
    2. direct matrix entry (a -> b)
    3. reverse matrix entry (b -> a)
    4. partial word match: a shared word longer than 2 chars -> 0.3,
       one word containing the other (both longer than 3 chars) -> 0.2
    5. otherwise 0.0
"""

from __future__ import annotations

from tiko.config.genre_knowledge import GENRE_SIMILARITY, normalize_genre


class GenreSimilarityMatrix:
    """Symmetric genre similarity with partial-match fallback."""

    def __init__(self, matrix: dict[str, dict[str, float]] | None = None) -> None:
        source = matrix if matrix is not None else GENRE_SIMILARITY
        self._matrix: dict[str, dict[str, float]] = {
            normalize_genre(genre): {normalize_genre(other): score for other, score in related.items()}
            for genre, related in source.items()
        }

    @staticmethod
    def normalize(genre: str) -> str:
        return normalize_genre(genre)

    def similarity(self, genre_a: str, genre_b: str) -> float:
        if not genre_a or not genre_b:
            return 0.0
        a = normalize_genre(genre_a)
        b = normalize_genre(genre_b)
        if not a or not b:
            return 0.0
        if a == b:
            return 1.0
        direct = self._matrix.get(a, {}).get(b)
        if direct is not None:
            return direct
        reverse = self._matrix.get(b, {}).get(a)
        if reverse is not None:
            return reverse
        return self._partial_match(a, b)

    @staticmethod
    def _partial_match(a: str, b: str) -> float:
        best = 0.0
        for word_a in a.split(" "):
            for word_b in b.split(" "):
                if word_a == word_b and len(word_a) > 2:
                    best = max(best, 0.3)
                if (word_a in word_b or word_b in word_a) and min(len(word_a), len(word_b)) > 3:
                    best = max(best, 0.2)
        return best

    def similar_genres(self, genre: str, threshold: float = 0.3) -> list[tuple[str, float]]:
        """Genres related to ``genre`` at or above ``threshold``, best first."""
        key = normalize_genre(genre)
        found: dict[str, float] = {
            other: score for other, score in self._matrix.get(key, {}).items() if score >= threshold
        }
        for other, related in self._matrix.items():
            score = related.get(key)
            if score is not None and score >= threshold and other not in found:
                found[other] = score
        return sorted(found.items(), key=lambda item: item[1], reverse=True)

    def best_match(self, genre: str, candidates: list[str]) -> float:
        """Highest similarity between ``genre`` and any of ``candidates``."""
        return max((self.similarity(genre, other) for other in candidates), default=0.0)

    def genre_score(self, event_genres: list[str], user_genres: list[str]) -> int:
        """0-100 match: mean over the listener's genres of their best event match."""
        if not event_genres or not user_genres:
            return 0
        total = sum(self.best_match(user_genre, event_genres) for user_genre in user_genres)
        return round(100 * total / len(user_genres))

    def stats(self) -> dict[str, float | int]:
        genres = set(self._matrix)
        for related in self._matrix.values():
            genres.update(related)
        relationships = sum(len(related) for related in self._matrix.values())
        return {
            "total_genres": len(genres),
            "primary_genres": len(self._matrix),
            "total_relationships": relationships,
            "average_relationships_per_genre": round(relationships / len(self._matrix)) if self._matrix else 0,
        }
