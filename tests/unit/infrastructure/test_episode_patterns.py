"""Tests for the season/episode/absolute pattern library."""

from __future__ import annotations

import pytest

from reelmatch.domain.entities.media import ParsedTitle
from reelmatch.infrastructure.parsing.episode_patterns import (
    check_season_match,
    extract_episode_title,
    is_episode_match,
    normalize_text,
    parse_absolute_episode,
    parse_episode,
    parse_season,
    should_avoid_episode_parse,
)


class TestNormalizeText:
    def test_brackets_become_spaces(self) -> None:
        assert normalize_text("[Group] Show (2020)") == "Group  Show  2020"

    def test_empty(self) -> None:
        assert normalize_text("") == ""


class TestParseSeason:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Show Season 3", 3),
            ("Show.S02E05.mkv", 2),
            ("Show 2nd Season - 04", 2),
            ("Show/Season 04/file.mkv", 4),
            ("Show Staffel 2", 2),
            ("Show Temporada 5", 5),
        ],
    )
    def test_detects_season(self, text: str, expected: int) -> None:
        assert parse_season(text) == expected

    def test_roman_season_first(self) -> None:
        assert parse_season("Overlord III - 07") == 3

    def test_strict_mode_ignores_unreliable_patterns(self) -> None:
        assert parse_season("Show Staffel 2", strict=True) is None
        assert parse_season("Show Season 2", strict=True) == 2

    def test_numbers_above_twenty_are_not_seasons(self) -> None:
        assert parse_season("Show.S25E01") is None
        assert parse_season("Show - 029 MULTI.mkv") is None

    def test_no_season(self) -> None:
        assert parse_season("Some Movie 1080p") is None
        assert parse_season("") is None


class TestParseEpisode:
    @pytest.mark.parametrize(
        ("text", "season", "episode", "pattern"),
        [
            ("Show.S01E05.mkv", 1, 5, "season_episode"),
            ("Show Season 2 Episode 7.mkv", 2, 7, "written_season_episode"),
            ("Show.1x05.mkv", 1, 5, "number_x_number"),
            ("Show S03 - 04.mkv", 3, 4, "season_episode_dash"),
            ("Show E07.mkv", 1, 7, "episode_only"),
            ("Show - 12.mkv", 1, 12, "anime_dash_number"),
        ],
    )
    def test_patterns(self, text: str, season: int, episode: int, pattern: str) -> None:
        match = parse_episode(text)
        assert match is not None
        assert (match.season, match.episode, match.pattern) == (season, episode, pattern)

    def test_season_zero_is_valid(self) -> None:
        match = parse_episode("Show.S00E03.mkv")
        assert match is not None
        assert (match.season, match.episode) == (0, 3)

    def test_explicit_pattern_beats_dash_number(self) -> None:
        match = parse_episode("Show - S02E10 - 123.mkv")
        assert match is not None
        assert match.pattern == "season_episode"

    def test_no_episode(self) -> None:
        assert parse_episode("Movie.2019.1080p.mkv") is None
        assert parse_episode("") is None


class TestParseAbsoluteEpisode:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Show - 029 MULTI.mkv", 29),
            ("One.Piece.1015.1080p.WEB.mkv", 1015),
            ("Naruto.142.Title.720p.mkv", 142),
        ],
    )
    def test_infers_absolute(self, text: str, expected: int) -> None:
        assert parse_absolute_episode(text) == expected

    @pytest.mark.parametrize(
        "text",
        [
            "Show.S01E02.mkv",
            "Show (2019) S01E02 1080p.mkv",
            "Show Season 2 - 05 MULTI.mkv",
            "",
        ],
    )
    def test_refuses_with_explicit_numbering(self, text: str) -> None:
        assert parse_absolute_episode(text) is None


class TestEpisodeTitle:
    def test_double_single_quotes(self) -> None:
        assert extract_episode_title("Show - 05 ''The Return''.mkv") == "The Return"

    def test_double_quotes(self) -> None:
        assert extract_episode_title('Show - 05 "Pilot".mkv') == "Pilot"

    def test_too_short(self) -> None:
        assert extract_episode_title('Show "Up".mkv') is None


class TestAvoidEpisodeParse:
    def test_copy_suffix(self) -> None:
        assert should_avoid_episode_parse("Movie (2).mkv") is True

    def test_normal_name(self) -> None:
        assert should_avoid_episode_parse("Movie (2019).mkv") is False


class TestEpisodeMatch:
    def test_season_match(self) -> None:
        assert check_season_match(2, 2) is True
        assert check_season_match(None, 2) is False
        assert check_season_match(1, None) is False

    def test_exact_numbers(self) -> None:
        assert is_episode_match(ParsedTitle(season=2, episode=5), 2, 5) is True
        assert is_episode_match(ParsedTitle(season=2, episode=6), 2, 5) is False

    def test_missing_season_defaults_to_one(self) -> None:
        parsed = ParsedTitle(season=None, episode=5)
        assert is_episode_match(parsed, 1, 5) is True
        assert is_episode_match(parsed, 2, 5) is False

    def test_absolute_number(self) -> None:
        parsed = ParsedTitle(absolute_episode=29)
        assert is_episode_match(parsed, 2, 5, 29) is True
        assert is_episode_match(parsed, 2, 5, 30) is False
        assert is_episode_match(parsed, 2, 5) is False

    def test_season_out_of_range(self) -> None:
        assert is_episode_match(ParsedTitle(season=31, episode=1), 31, 1) is False
