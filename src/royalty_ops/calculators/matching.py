"""Song-to-copyright matching with confidence scoring."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any, Sequence

from royalty_ops.calculators.types import MatchType

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")

TITLE_WEIGHT = 0.4
ARTIST_WEIGHT = 0.25
ISWC_BONUS = 0.2
AKA_BONUS = 0.1
WRITER_BONUS = 0.05


@dataclass
class SongLine:
    """Title/artist/ISWC of a statement line to be matched."""

    song_title: str
    artist: str = ""
    iswc: str | None = None


@dataclass
class WorkCandidate:
    """Copyright work considered as a match."""

    work_id: Any
    work_title: str
    iswc: str | None = None
    artist: str | None = None
    akas: list[str] = field(default_factory=list)
    writer_names: list[str] = field(default_factory=list)


@dataclass
class ConfidenceFactors:
    title_similarity: float
    artist_similarity: float
    iswc_match: bool
    aka_match: bool
    writer_match: bool


@dataclass
class MatchResult:
    work: WorkCandidate
    confidence: float
    factors: ConfidenceFactors
    match_type: MatchType


def normalize_title(value: str | None) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    if not value:
        return ""
    value = _PUNCTUATION.sub("", value.lower())
    return _WHITESPACE.sub(" ", value).strip()


def normalize_iswc(value: str | None) -> str:
    """ISWCs compare without separators: T-123.456.789-0 == T1234567890."""
    if not value:
        return ""
    return re.sub(r"[^0-9A-Za-z]", "", value).upper()


def similarity(a: str | None, b: str | None) -> float:
    """Ratio in [0, 1] between two normalized strings."""
    left, right = normalize_title(a), normalize_title(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    return SequenceMatcher(None, left, right).ratio()


def calculate_confidence_factors(song: SongLine, work: WorkCandidate) -> ConfidenceFactors:
    title_similarity = similarity(song.song_title, work.work_title)

    aka_match = any(similarity(song.song_title, aka) > 0.9 for aka in work.akas)

    song_iswc, work_iswc = normalize_iswc(song.iswc), normalize_iswc(work.iswc)
    iswc_match = bool(song_iswc and work_iswc and song_iswc == work_iswc)

    people = [n for n in [work.artist, *work.writer_names] if n]
    scores = [similarity(song.artist, name) for name in people]
    artist_similarity = max(scores, default=0.0)
    writer_match = any(similarity(song.artist, name) > 0.8 for name in work.writer_names)

    return ConfidenceFactors(
        title_similarity=title_similarity,
        artist_similarity=artist_similarity,
        iswc_match=iswc_match,
        aka_match=aka_match,
        writer_match=writer_match,
    )


def calculate_confidence_score(factors: ConfidenceFactors) -> float:
    """Weighted score capped at 1.0."""
    score = factors.title_similarity * TITLE_WEIGHT
    score += factors.artist_similarity * ARTIST_WEIGHT
    if factors.iswc_match:
        score += ISWC_BONUS
    if factors.aka_match:
        score += AKA_BONUS
    if factors.writer_match:
        score += WRITER_BONUS
    return min(score, 1.0)


def get_match_type(confidence: float) -> MatchType:
    if confidence >= 0.95:
        return MatchType.EXACT
    if confidence >= 0.8:
        return MatchType.HIGH
    if confidence >= 0.6:
        return MatchType.MEDIUM
    return MatchType.LOW


def find_potential_matches(
    song: SongLine,
    works: Sequence[WorkCandidate],
    min_confidence: float = 0.3,
) -> list[MatchResult]:
    """Score every work and return those above min_confidence, best first."""
    matches: list[MatchResult] = []
    for work in works:
        factors = calculate_confidence_factors(song, work)
        confidence = calculate_confidence_score(factors)
        if confidence >= min_confidence:
            matches.append(
                MatchResult(
                    work=work,
                    confidence=confidence,
                    factors=factors,
                    match_type=get_match_type(confidence),
                )
            )
    matches.sort(key=lambda m: m.confidence, reverse=True)
    return matches
