"""Tests for Roman numeral helpers, keyword extraction and media vocabularies."""

from __future__ import annotations

import pytest

from reelmatch.infrastructure.parsing import media_patterns as mp
from reelmatch.infrastructure.parsing.keywords import extract_keywords, normalize_title
from reelmatch.infrastructure.parsing.roman import (
    int_to_roman,
    is_roman_numeral,
    join_roman_numerals,
    parse_roman_season,
    roman_to_int,
)


class TestRomanNumerals:
    @pytest.mark.parametrize(
        ("text", "value"),
        [("I", 1), ("iv", 4), ("IX", 9), ("XIV", 14), ("XL", 40), ("L", 50)],
    )
    def test_roman_to_int(self, text: str, value: int) -> None:
        assert roman_to_int(text) == value

    @pytest.mark.parametrize("text", ["", "IIII", "VV", "ABC", "LI", "C"])
    def test_invalid_or_out_of_range(self, text: str) -> None:
        assert roman_to_int(text) is None

    def test_is_roman_numeral(self) -> None:
        assert is_roman_numeral("xii") is True
        assert is_roman_numeral("IC") is False

    def test_int_to_roman(self) -> None:
        assert int_to_roman(14) == "XIV"
        assert int_to_roman(0) == ""

    def test_join_roman_numerals(self) -> None:
        assert join_roman_numerals("Rocky I I") == "Rocky II"


class TestParseRomanSeason:
    def test_dash_form(self) -> None:
        info = parse_roman_season("Overlord II - 05.mkv")
        assert info is not None
        assert (info.season, info.episode, info.roman_text) == (2, 5, "II")
        assert info.full_match == "II - 05"

    def test_episode_word_form(self) -> None:
        info = parse_roman_season("Overlord IV Episode 3")
        assert info is not None
        assert (info.season, info.episode) == (4, 3)

    def test_refuses_with_explicit_marker(self) -> None:
        assert parse_roman_season("Overlord II - S02E05.mkv") is None

    def test_season_above_ten_refused(self) -> None:
        assert parse_roman_season("Show XII - 05") is None


class TestKeywords:
    def test_punctuation_removed(self) -> None:
        assert (
            extract_keywords("Re:Zero - Starting Life in Another World")
            == "Re Zero Starting Life in Another World"
        )

    def test_single_letters_dropped_except_a_and_roman(self) -> None:
        assert extract_keywords("A Quiet Place: Part I") == "A Quiet Place Part I"
        assert extract_keywords("Movie b 2") == "Movie 2"

    def test_at_most_fifteen_words(self) -> None:
        text = " ".join(f"word{i}" for i in range(20))
        assert len(extract_keywords(text).split()) == 15

    def test_empty(self) -> None:
        assert extract_keywords("") == ""

    def test_normalize_title(self) -> None:
        assert normalize_title("Pokémon: Fire & Ice!") == "pokemon fire and ice"
        assert normalize_title("Some_Show.Name") == "some show name"


class TestMediaPatterns:
    def test_is_video(self) -> None:
        assert mp.is_video("Show.S01E01.MKV") is True
        assert mp.is_video("Show.S01E01.srt") is False
        assert mp.is_video("Show.S01E01") is False

    def test_is_subtitle(self) -> None:
        assert mp.is_subtitle("Show.S01E01.en.srt") is True

    def test_strip_video_extension(self) -> None:
        assert mp.strip_video_extension("Show - 01.mkv") == "Show - 01"

    def test_first_match_priority(self) -> None:
        assert mp.first_match(mp.QUALITY_PATTERNS, "Movie.2160p.mkv") == "4K"
        assert mp.first_match(mp.SOURCE_PATTERNS, "Movie.BDRip.x264") == "BDRip"
        assert mp.first_match(mp.CODEC_PATTERNS, "Movie.H.265") == "HEVC"

    def test_all_languages_in_priority_order(self) -> None:
        assert mp.all_matches(mp.LANGUAGE_PATTERNS, "Show MULTI FRENCH ENG") == [
            "MULTI",
            "French",
            "English",
        ]

    def test_audio_channels(self) -> None:
        assert mp.extract_audio_channels("Movie.DDP5.1.Atmos") == "5.1"
        assert mp.extract_audio_channels("Movie.AAC2.0") == "2.0"
        assert mp.extract_audio_channels("Movie.1080p") is None

    def test_obvious_episode_indicators(self) -> None:
        assert mp.has_obvious_episode_indicators("Show S01E01") is True
        assert mp.has_obvious_episode_indicators("Show - 029 MULTI") is True
        assert mp.has_obvious_episode_indicators("Movie (2019)") is False
