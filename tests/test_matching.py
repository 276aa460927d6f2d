"""Tests for song-to-copyright matching."""

import pytest

from royalty_ops.calculators.matching import (
    ConfidenceFactors,
    SongLine,
    WorkCandidate,
    calculate_confidence_factors,
    calculate_confidence_score,
    find_potential_matches,
    get_match_type,
    normalize_iswc,
    normalize_title,
    similarity,
)
from royalty_ops.calculators.types import MatchType

HARBOR = WorkCandidate(
    work_id="harbor",
    work_title="Midnight Harbor",
    iswc="T-123.456.789-0",
    artist="The Quiet Tides",
    akas=["Harbor at Midnight"],
    writer_names=["Maya Lin"],
)
LANTERNS = WorkCandidate(work_id="lanterns", work_title="Paper Lanterns", artist="The Quiet Tides")
STATIC = WorkCandidate(
    work_id="static",
    work_title="Salt & Static",
    artist="Jonah Reyes",
    akas=["Salt and Static"],
    writer_names=["Jonah Reyes"],
)


class TestNormalization:
    def test_normalize_title(self):
        assert normalize_title("  Don't   Stop (Remix)! ") == "dont stop remix"
        assert normalize_title(None) == ""

    def test_normalize_iswc(self):
        assert normalize_iswc("T-123.456.789-0") == normalize_iswc("t1234567890")

    def test_similarity_bounds(self):
        assert similarity("Paper Lanterns", "paper lanterns!") == 1.0
        assert similarity("", "anything") == 0.0
        assert 0.0 < similarity("Paper Lanterns", "Paper Lantern") < 1.0


class TestConfidenceScore:
    def test_weights(self):
        factors = ConfidenceFactors(
            title_similarity=1.0,
            artist_similarity=1.0,
            iswc_match=False,
            aka_match=False,
            writer_match=False,
        )
        assert calculate_confidence_score(factors) == pytest.approx(0.65)

    def test_score_is_capped(self):
        factors = ConfidenceFactors(1.0, 1.0, True, True, True)
        assert calculate_confidence_score(factors) == 1.0

    def test_iswc_match_ignores_separators(self):
        factors = calculate_confidence_factors(
            SongLine("Midnight Harbour", "Quiet Tides", iswc="T1234567890"), HARBOR
        )
        assert factors.iswc_match is True

    def test_aka_and_writer_bonus(self):
        factors = calculate_confidence_factors(SongLine("Salt and Static", "Jonah Reyes"), STATIC)
        assert factors.aka_match is True
        assert factors.writer_match is True
        assert factors.artist_similarity == 1.0

    @pytest.mark.parametrize(
        "confidence, expected",
        [
            (0.97, MatchType.EXACT),
            (0.95, MatchType.EXACT),
            (0.85, MatchType.HIGH),
            (0.6, MatchType.MEDIUM),
            (0.59, MatchType.LOW),
        ],
    )
    def test_match_type_bands(self, confidence, expected):
        assert get_match_type(confidence) == expected


class TestFindPotentialMatches:
    def test_exact_iswc_match_ranks_first(self):
        song = SongLine("Midnight Harbor", "The Quiet Tides", iswc="T-123.456.789-0")
        matches = find_potential_matches(song, [LANTERNS, STATIC, HARBOR])

        assert matches[0].work.work_id == "harbor"
        assert matches[0].confidence == pytest.approx(0.85)
        assert matches[0].match_type == MatchType.HIGH

    def test_results_sorted_descending(self):
        song = SongLine("Paper Lanterns", "The Quiet Tides")
        matches = find_potential_matches(song, [HARBOR, LANTERNS, STATIC], min_confidence=0.0)

        confidences = [m.confidence for m in matches]
        assert confidences == sorted(confidences, reverse=True)
        assert matches[0].work.work_id == "lanterns"

    def test_min_confidence_filters(self):
        song = SongLine("Zzzz", "Qqqq")
        assert find_potential_matches(song, [HARBOR, LANTERNS, STATIC]) == []
