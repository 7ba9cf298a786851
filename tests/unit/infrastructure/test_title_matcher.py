"""Tests for the keyword pre-filter and rapidfuzz title scoring."""

from __future__ import annotations

import pytest

from reelmatch.domain.entities.media import Candidate, ParsedTitle
from reelmatch.infrastructure.matching.title_matcher import (
    TitleMatch,
    candidate_forms,
    fuzzy_contains,
    match_term,
    merge_matches,
    prefilter_candidates,
    similarity,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_candidate(
    name: str, *, id: str | None = None, source: str = "TorBox", title: str | None = None
) -> Candidate:
    return Candidate(
        id=id or name,
        name=name,
        source=source,
        parsed_info=ParsedTitle(title=title) if title is not None else None,
    )


# ---------------------------------------------------------------------------
# fuzzy_contains
# ---------------------------------------------------------------------------


class TestFuzzyContains:
    def test_exact_containment(self) -> None:
        assert fuzzy_contains("attack on titan s01", "titan", 0.85) is True

    def test_one_typo_in_long_keyword(self) -> None:
        assert fuzzy_contains("shingaki no kyojin 05", "shingeki", 0.85) is True

    def test_short_keyword_must_be_exact(self) -> None:
        assert fuzzy_contains("abd", "abc", 0.0) is False

    def test_allowed_differences_are_floored(self) -> None:
        keyword = "abcdefghijklmnopqrst"
        assert fuzzy_contains("XbcdefghijXlmnopqrsX", keyword, 0.85) is True
        assert fuzzy_contains("XbcdeXghijXlmnopqrsX", keyword, 0.85) is False

    def test_empty_keyword(self) -> None:
        assert fuzzy_contains("anything", "", 0.85) is False


# ---------------------------------------------------------------------------
# prefilter_candidates
# ---------------------------------------------------------------------------


class TestPrefilter:
    def test_keeps_mentions_in_input_order(self) -> None:
        candidates = [
            _make_candidate("Attack.on.Titan.S01E05.mkv"),
            _make_candidate("Breaking.Bad.S01.mkv"),
            _make_candidate("Shingaki no Kyojin 05"),
        ]
        kept = prefilter_candidates(candidates, ["Attack on Titan", "Shingeki no Kyojin"])
        assert [c.name for c in kept] == [
            "Attack.on.Titan.S01E05.mkv",
            "Shingaki no Kyojin 05",
        ]

    def test_punctuation_insensitive(self) -> None:
        kept = prefilter_candidates([_make_candidate("Re_Zero_S02E01.mkv")], ["Re:Zero"])
        assert len(kept) == 1

    def test_blank_keywords_match_nothing(self) -> None:
        assert prefilter_candidates([_make_candidate("Show.mkv")], ["", "  "]) == []


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestScoring:
    def test_similarity_of_empty_strings(self) -> None:
        assert similarity("", "breaking bad") == 0.0

    def test_candidate_forms_include_parsed_title(self) -> None:
        candidate = _make_candidate("BB.S01E02.mkv", title="Breaking Bad")
        assert candidate_forms(candidate) == ["bb s01e02 mkv", "breaking bad"]

    def test_release_name_is_perfect_match(self) -> None:
        candidate = _make_candidate("Breaking.Bad.S01E02.720p.mkv")
        (match,) = match_term("Breaking Bad", [candidate], 0.3)
        assert match.score == 0.0
        assert match.term == "Breaking Bad"
        assert match.candidate is candidate

    def test_unrelated_name_rejected(self) -> None:
        assert match_term("Breaking Bad", [_make_candidate("The.Office.S01E02.mkv")], 0.3) == []

    def test_parsed_title_can_carry_match(self) -> None:
        candidate = _make_candidate("BB.S01E02.mkv", title="Breaking Bad")
        assert len(match_term("Breaking Bad", [candidate], 0.1)) == 1

    @pytest.mark.parametrize("term", ["", "   "])
    def test_blank_term(self, term: str) -> None:
        assert match_term(term, [_make_candidate("Show.mkv")], 1.0) == []


class TestMergeMatches:
    def test_first_occurrence_wins(self) -> None:
        a = _make_candidate("A.mkv", id="1")
        a_other_source = _make_candidate("A.mkv", id="1", source="RealDebrid")
        per_term = [
            [TitleMatch(candidate=a, term="first", score=0.1)],
            [
                TitleMatch(candidate=a, term="second", score=0.0),
                TitleMatch(candidate=a_other_source, term="second", score=0.2),
            ],
        ]
        merged = merge_matches(per_term)
        assert [(m.candidate.source, m.term) for m in merged] == [
            ("TorBox", "first"),
            ("RealDebrid", "second"),
        ]
