"""Unit tests for GenreSimilarityMatrix and the static genre knowledge helpers."""

from __future__ import annotations

import pytest

from tiko.config.genre_knowledge import (
    MUSIC_KEYWORDS,
    count_keywords,
    expand_genres,
    get_country_code,
    get_dma_id,
    get_edmtrain_location_id,
    get_regional_priority,
    is_edm_genre,
    normalize_genre,
)
from tiko.services.genre_matrix import GenreSimilarityMatrix


@pytest.fixture
def matrix() -> GenreSimilarityMatrix:
    return GenreSimilarityMatrix()


class TestSimilarity:
    def test_identical_genres(self, matrix: GenreSimilarityMatrix) -> None:
        assert matrix.similarity("Techno", "techno") == 1.0

    def test_ampersand_spelling_is_identical(self, matrix: GenreSimilarityMatrix) -> None:
        assert matrix.similarity("Drum & Bass", "drum and bass") == 1.0

    def test_direct_entry(self, matrix: GenreSimilarityMatrix) -> None:
        assert matrix.similarity("house", "deep house") == 0.85

    def test_reverse_entry(self, matrix: GenreSimilarityMatrix) -> None:
        # Only "techno" -> "acid techno" is listed.
        assert matrix.similarity("acid techno", "techno") == 0.72

    def test_shared_word_partial_match(self, matrix: GenreSimilarityMatrix) -> None:
        assert matrix.similarity("minimal house", "house") == 0.3

    def test_containment_partial_match(self, matrix: GenreSimilarityMatrix) -> None:
        assert matrix.similarity("tech", "techno") == 0.2

    @pytest.mark.parametrize(("a", "b"), [("jazz", "polka"), ("", "techno"), ("techno", "")])
    def test_unrelated_or_empty(self, matrix: GenreSimilarityMatrix, a: str, b: str) -> None:
        assert matrix.similarity(a, b) == 0.0

    def test_custom_matrix_is_symmetric(self) -> None:
        custom = GenreSimilarityMatrix({"Acid": {"Trance": 0.5}})
        assert custom.similarity("trance", "acid") == 0.5


class TestScoring:
    def test_genre_score_averages_over_user_genres(self, matrix: GenreSimilarityMatrix) -> None:
        assert matrix.genre_score(["techno"], ["techno", "house"]) == 50

    def test_genre_score_empty_sides(self, matrix: GenreSimilarityMatrix) -> None:
        assert matrix.genre_score([], ["techno"]) == 0
        assert matrix.genre_score(["techno"], []) == 0

    def test_best_match(self, matrix: GenreSimilarityMatrix) -> None:
        assert matrix.best_match("house", ["trance", "deep house"]) == 0.85
        assert matrix.best_match("house", []) == 0.0

    def test_similar_genres_threshold_and_order(self, matrix: GenreSimilarityMatrix) -> None:
        assert matrix.similar_genres("house", threshold=0.8) == [
            ("deep house", 0.85),
            ("progressive house", 0.82),
        ]

    def test_stats(self) -> None:
        stats = GenreSimilarityMatrix({"a": {"b": 0.5, "c": 0.4}}).stats()
        assert stats == {
            "total_genres": 3,
            "primary_genres": 1,
            "total_relationships": 2,
            "average_relationships_per_genre": 2,
        }


class TestGenreKnowledge:
    def test_normalize_genre(self) -> None:
        assert normalize_genre("  Post-Rock ") == "postrock"
        assert normalize_genre("R&B") == "rb"

    def test_is_edm_genre(self) -> None:
        assert is_edm_genre("Melodic Techno")
        assert not is_edm_genre("jazz")

    def test_count_keywords_whole_words(self) -> None:
        assert count_keywords("Drum and Bass Rave", MUSIC_KEYWORDS) == 3
        # "showcase" must not count as "show"
        assert count_keywords("Art showcase", ("show",)) == 0

    def test_expand_genres_without_audio_adds_subgenres_only(self) -> None:
        expanded = expand_genres(["Techno"])
        assert expanded[0] == "techno"
        assert "acid techno" in expanded
        assert "house" not in expanded

    def test_expand_genres_with_matching_audio_adds_crossovers(self) -> None:
        expanded = expand_genres(["techno"], {"energy": 0.9, "danceability": 0.8, "valence": 0.4})
        assert "house" in expanded
        assert "deep house" in expanded

    def test_city_lookups_default_to_toronto(self) -> None:
        assert get_dma_id("Atlantis") == "527"
        assert get_edmtrain_location_id(" Chicago ") == "35"

    def test_country_lookups(self) -> None:
        assert get_country_code("  United   Kingdom ") == "GB"
        assert get_country_code("Atlantis") is None
        assert get_regional_priority("us") == 100
        assert get_regional_priority("KR") == 30
