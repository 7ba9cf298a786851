"""Tests for phase 1: catalog fetch and title matching."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from reelmatch.application.search.preparation import PreparedQuery
from reelmatch.application.search.title_matching import (
    TitleMatcher,
    TitleMatchingResult,
    decide_next_phase,
    fetch_catalog,
)
from reelmatch.domain.entities.media import (
    Candidate,
    ParsedTitle,
    ProviderKind,
    SearchPhase,
    SearchRequest,
)
from reelmatch.domain.exceptions import ProviderAuthError, ProviderError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _RecordingParser:
    """parse_many stand-in that remembers what it was asked to parse."""

    def __init__(self) -> None:
        self.seen: list[str] = []

    def parse_many(self, filenames: list[str]) -> list[ParsedTitle]:
        self.seen.extend(filenames)
        return [ParsedTitle(title="parsed") for _ in filenames]


def _make_provider(*, bulk: bool = True, catalog: list[Candidate] | None = None) -> MagicMock:
    provider = MagicMock()
    provider.name = "RealDebrid"
    provider.supports_bulk_listing = bulk
    provider.bulk_list = AsyncMock(return_value=catalog or [])
    provider.search_by_title = AsyncMock(return_value=catalog or [])
    return provider


def _make_candidate(name: str, **kwargs) -> Candidate:
    return Candidate(id=name, name=name, source="RealDebrid", **kwargs)


@pytest.fixture()
def recording_parser() -> _RecordingParser:
    return _RecordingParser()


# ---------------------------------------------------------------------------
# decide_next_phase
# ---------------------------------------------------------------------------


class TestDecideNextPhase:
    def test_movie_is_done(self, movie_request: SearchRequest) -> None:
        assert decide_next_phase(movie_request, True) is SearchPhase.DONE
        assert decide_next_phase(movie_request, False) is SearchPhase.DONE

    def test_episode_with_matches(self, episode_request: SearchRequest) -> None:
        assert decide_next_phase(episode_request, True) is SearchPhase.CONTENT_ANALYSIS

    def test_episode_without_matches(self, episode_request: SearchRequest) -> None:
        assert decide_next_phase(episode_request, False) is SearchPhase.ANIME_FALLBACK

    def test_series_without_coordinates_is_done(self) -> None:
        request = SearchRequest(
            title="Dark",
            content_type="series",
            provider=ProviderKind.TORBOX,
            api_key="k",
        )
        assert decide_next_phase(request, True) is SearchPhase.DONE


# ---------------------------------------------------------------------------
# fetch_catalog
# ---------------------------------------------------------------------------


class TestFetchCatalog:
    async def test_bulk_listing(self) -> None:
        catalog = [_make_candidate("A.mkv")]
        provider = _make_provider(catalog=catalog)

        result = await fetch_catalog(provider, "key", fallback_term="A", threshold=0.3)

        assert result == catalog
        provider.bulk_list.assert_awaited_once_with("key")
        provider.search_by_title.assert_not_awaited()

    async def test_bulk_failure_falls_back_to_search(self) -> None:
        provider = _make_provider(catalog=[_make_candidate("A.mkv")])
        provider.bulk_list.side_effect = ProviderError("listing broke")

        result = await fetch_catalog(provider, "key", fallback_term="Show", threshold=0.4)

        assert [c.name for c in result] == ["A.mkv"]
        provider.search_by_title.assert_awaited_once_with("key", "Show", 0.4)

    async def test_provider_without_bulk_listing(self) -> None:
        provider = _make_provider(bulk=False)

        await fetch_catalog(provider, "key", fallback_term="Show", threshold=0.3)

        provider.bulk_list.assert_not_awaited()
        provider.search_by_title.assert_awaited_once()

    async def test_both_paths_failing_yield_empty_catalog(self) -> None:
        provider = _make_provider()
        provider.bulk_list.side_effect = ProviderAuthError("bad key")
        provider.search_by_title.side_effect = ProviderAuthError("bad key")

        assert await fetch_catalog(provider, "key", fallback_term="S", threshold=0.3) == []

    async def test_unexpected_errors_degrade_to_empty_catalog(self) -> None:
        provider = _make_provider()
        provider.bulk_list.side_effect = AttributeError("'str' object has no attribute 'get'")
        provider.search_by_title.side_effect = KeyError("id")

        assert await fetch_catalog(provider, "key", fallback_term="S", threshold=0.3) == []
        provider.search_by_title.assert_awaited_once()

    async def test_cancellation_propagates(self) -> None:
        provider = _make_provider()
        provider.bulk_list.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await fetch_catalog(provider, "key", fallback_term="S", threshold=0.3)
        provider.search_by_title.assert_not_awaited()


# ---------------------------------------------------------------------------
# TitleMatcher
# ---------------------------------------------------------------------------


class TestTitleMatcher:
    async def test_empty_catalog(
        self, episode_request: SearchRequest, recording_parser: _RecordingParser
    ) -> None:
        matcher = TitleMatcher(parser=recording_parser)

        result = await matcher.run(
            _make_provider(), episode_request, PreparedQuery(terms=("Breaking Bad",))
        )

        assert result == TitleMatchingResult()
        assert recording_parser.seen == []

    async def test_movie_match_ends_the_query(
        self, movie_request: SearchRequest, recording_parser: _RecordingParser
    ) -> None:
        matrix = _make_candidate("The.Matrix.1999.1080p.mkv")
        provider = _make_provider(catalog=[matrix, _make_candidate("Cooking.Show.mkv")])

        result = await TitleMatcher(parser=recording_parser).run(
            provider, movie_request, PreparedQuery(terms=("The Matrix",))
        )

        assert result.catalog_size == 2
        assert result.prefiltered == [matrix]
        assert result.matches == [matrix]
        assert result.next_phase is SearchPhase.DONE
        assert matrix.matched_term == "The Matrix"
        assert matrix.match_score is not None
        assert matrix.parsed_info == ParsedTitle(title="parsed")

    async def test_episode_match_continues_to_content_analysis(
        self, episode_request: SearchRequest, recording_parser: _RecordingParser
    ) -> None:
        season_pack = _make_candidate("Breaking.Bad.S01.1080p.BluRay")
        provider = _make_provider(catalog=[season_pack])

        result = await TitleMatcher(parser=recording_parser).run(
            provider, episode_request, PreparedQuery(terms=("Breaking Bad",))
        )

        assert result.matches == [season_pack]
        assert result.next_phase is SearchPhase.CONTENT_ANALYSIS

    async def test_no_match_goes_to_anime_fallback(
        self, episode_request: SearchRequest, recording_parser: _RecordingParser
    ) -> None:
        provider = _make_provider(catalog=[_make_candidate("Cooking.Show.S01E02.mkv")])

        result = await TitleMatcher(parser=recording_parser).run(
            provider, episode_request, PreparedQuery(terms=("Breaking Bad",))
        )

        assert result.catalog_size == 1
        assert result.matches == []
        assert result.next_phase is SearchPhase.ANIME_FALLBACK

    async def test_only_unparsed_candidates_are_parsed(
        self, movie_request: SearchRequest, recording_parser: _RecordingParser
    ) -> None:
        known = ParsedTitle(title="The Matrix", year=1999)
        parsed_already = _make_candidate("The.Matrix.1999.mkv", parsed_info=known)
        fresh = _make_candidate("The.Matrix.Reloaded.2003.mkv")
        provider = _make_provider(catalog=[parsed_already, fresh])

        await TitleMatcher(parser=recording_parser).run(
            provider, movie_request, PreparedQuery(terms=("The Matrix",))
        )

        assert recording_parser.seen == ["The.Matrix.Reloaded.2003.mkv"]
        assert parsed_already.parsed_info is known

    async def test_first_matching_term_is_recorded(
        self, episode_request: SearchRequest, recording_parser: _RecordingParser
    ) -> None:
        candidate = _make_candidate("Breaking.Bad.S01E02.720p.mkv")
        provider = _make_provider(catalog=[candidate])

        result = await TitleMatcher(parser=recording_parser, term_concurrency=2).run(
            provider,
            episode_request,
            PreparedQuery(terms=("Breaking Bad", "Breaking Bad 720p")),
        )

        assert result.matches == [candidate]
        assert candidate.matched_term == "Breaking Bad"

    async def test_provider_side_search_uses_keyword_title(
        self, episode_request: SearchRequest, recording_parser: _RecordingParser
    ) -> None:
        provider = _make_provider(bulk=False)

        await TitleMatcher(parser=recording_parser).run(
            provider, episode_request, PreparedQuery(terms=("Breaking: Bad!",))
        )

        provider.search_by_title.assert_awaited_once_with("rd-key", "Breaking Bad", 0.3)
