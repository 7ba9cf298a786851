"""Tests for phase 0: metadata signals and search terms."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from reelmatch.application.search.preparation import (
    PreparedQuery,
    QueryPreparer,
    build_episode_keywords,
    build_search_terms,
    title_variants,
)
from reelmatch.domain.entities.media import (
    AlternateTitle,
    EpisodeMapping,
    ProviderKind,
    SearchRequest,
)
from reelmatch.domain.exceptions import MetadataLookupError

_MAPPING = EpisodeMapping(
    original_season=1,
    original_episode=2,
    mapped_season=1,
    mapped_episode=2,
    absolute_episode=29,
)
_ALTERNATES = [AlternateTitle("Totally Bad", "ES"), AlternateTitle("Breaking Bad", "US")]


@pytest.fixture()
def episode_mapper() -> AsyncMock:
    mapper = AsyncMock()
    mapper.resolve_absolute_episode = AsyncMock(return_value=_MAPPING)
    return mapper


@pytest.fixture()
def title_lookup() -> AsyncMock:
    lookup = AsyncMock()
    lookup.fetch_alternate_titles = AsyncMock(return_value=_ALTERNATES)
    return lookup


# ---------------------------------------------------------------------------
# Pure builders
# ---------------------------------------------------------------------------


class TestBuildSearchTerms:
    def test_raw_then_keywords_then_variants(self) -> None:
        terms = build_search_terms(
            "Fast & Furious", ["F&F"], [AlternateTitle("Fast and Furious", "US")]
        )
        assert terms == ["Fast & Furious", "F&F", "Fast and Furious", "Fast Furious"]

    def test_case_insensitive_dedupe_keeps_first_casing(self) -> None:
        assert build_search_terms("Dark", ["DARK", "dark "]) == ["Dark"]

    def test_keyword_form_added(self) -> None:
        assert build_search_terms("Re:Zero") == ["Re:Zero", "Re Zero"]


class TestTitleVariants:
    def test_ampersand(self) -> None:
        assert title_variants("Tom & Jerry") == ["Tom and Jerry"]

    def test_without_ampersand(self) -> None:
        assert title_variants("Tom and Jerry") == []


class TestBuildEpisodeKeywords:
    def test_plain_episode(self) -> None:
        assert build_episode_keywords(1, 5) == ["S01E05"]

    def test_with_absolute(self) -> None:
        assert build_episode_keywords(2, 5, 29) == ["S02E05", "029", "29"]

    def test_absolute_equal_to_episode(self) -> None:
        assert build_episode_keywords(1, 29, 29) == ["S01E29"]

    def test_four_digit_absolute(self) -> None:
        assert build_episode_keywords(21, 5, 1015) == ["S21E05", "1015"]

    def test_movie(self) -> None:
        assert build_episode_keywords(None, None) == []


class TestPreparedQuery:
    def test_keyword_title(self) -> None:
        assert PreparedQuery(terms=("Re:Zero", "Re Zero")).keyword_title == "Re Zero"

    def test_keyword_title_without_terms(self) -> None:
        assert PreparedQuery(terms=()).keyword_title == ""


# ---------------------------------------------------------------------------
# QueryPreparer
# ---------------------------------------------------------------------------


class TestQueryPreparer:
    async def test_episode_query_gathers_both_signals(
        self,
        episode_request: SearchRequest,
        episode_mapper: AsyncMock,
        title_lookup: AsyncMock,
    ) -> None:
        preparer = QueryPreparer(episode_mapper=episode_mapper, title_lookup=title_lookup)

        prepared = await preparer.prepare(episode_request)

        assert prepared.terms == ("Breaking Bad", "Totally Bad")
        assert prepared.episode_keywords == ("S01E02", "029", "29")
        assert prepared.alternate_titles == tuple(_ALTERNATES)
        assert prepared.absolute_episode is _MAPPING
        episode_mapper.resolve_absolute_episode.assert_awaited_once_with("tt0903747", 1, 2)
        title_lookup.fetch_alternate_titles.assert_awaited_once_with("tt0903747", "series")

    async def test_movie_skips_absolute_lookup(
        self,
        movie_request: SearchRequest,
        episode_mapper: AsyncMock,
        title_lookup: AsyncMock,
    ) -> None:
        preparer = QueryPreparer(episode_mapper=episode_mapper, title_lookup=title_lookup)

        prepared = await preparer.prepare(movie_request)

        assert prepared.absolute_episode is None
        assert prepared.episode_keywords == ()
        episode_mapper.resolve_absolute_episode.assert_not_awaited()
        title_lookup.fetch_alternate_titles.assert_awaited_once_with("tt0133093", "movie")

    async def test_failing_signals_degrade(
        self,
        episode_request: SearchRequest,
        episode_mapper: AsyncMock,
        title_lookup: AsyncMock,
    ) -> None:
        episode_mapper.resolve_absolute_episode.side_effect = MetadataLookupError("down")
        title_lookup.fetch_alternate_titles.side_effect = RuntimeError("boom")
        preparer = QueryPreparer(episode_mapper=episode_mapper, title_lookup=title_lookup)

        prepared = await preparer.prepare(episode_request)

        assert prepared.absolute_episode is None
        assert prepared.alternate_titles == ()
        assert prepared.terms == ("Breaking Bad",)
        assert prepared.episode_keywords == ("S01E02",)

    async def test_without_collaborators(self, episode_request: SearchRequest) -> None:
        prepared = await QueryPreparer(episode_mapper=None, title_lookup=None).prepare(
            episode_request
        )
        assert prepared.terms == ("Breaking Bad",)
        assert prepared.absolute_episode is None

    async def test_manual_aliases_by_imdb_id(self, movie_request: SearchRequest) -> None:
        preparer = QueryPreparer(
            episode_mapper=None,
            title_lookup=None,
            manual_aliases={"tt0133093": ["Matrix"]},
        )
        prepared = await preparer.prepare(movie_request)
        assert prepared.terms == ("The Matrix", "Matrix")

    async def test_request_without_imdb_id(
        self, episode_mapper: AsyncMock, title_lookup: AsyncMock
    ) -> None:
        request = SearchRequest(
            title="Dark",
            content_type="series",
            provider=ProviderKind.TORBOX,
            api_key="k",
            season=1,
            episode=1,
        )
        preparer = QueryPreparer(episode_mapper=episode_mapper, title_lookup=title_lookup)

        await preparer.prepare(request)

        episode_mapper.resolve_absolute_episode.assert_not_awaited()
        title_lookup.fetch_alternate_titles.assert_not_awaited()

    async def test_cancellation_propagates(
        self,
        episode_request: SearchRequest,
        episode_mapper: AsyncMock,
    ) -> None:
        episode_mapper.resolve_absolute_episode.side_effect = asyncio.CancelledError()
        preparer = QueryPreparer(episode_mapper=episode_mapper, title_lookup=None)

        with pytest.raises(asyncio.CancelledError):
            await preparer.prepare(episode_request)
