"""Shared test fixtures for the reelmatch test suite."""

from __future__ import annotations

import pytest

from reelmatch.domain.entities.media import ProviderKind, SearchRequest
from reelmatch.infrastructure.cache.ttl_cache import TtlCache
from reelmatch.infrastructure.parsing.absolute_episode import AbsoluteEpisodeProcessor
from reelmatch.infrastructure.parsing.filename_parser import FilenameParser


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(clock: FakeClock) -> TtlCache:
    """Small TTL cache driven by the fake clock."""
    return TtlCache(max_size=100, default_ttl_seconds=60, clock=clock)


@pytest.fixture()
def parser(cache: TtlCache) -> FilenameParser:
    return FilenameParser(cache)


@pytest.fixture()
def absolute_processor(cache: TtlCache) -> AbsoluteEpisodeProcessor:
    return AbsoluteEpisodeProcessor(cache)


# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def movie_request() -> SearchRequest:
    return SearchRequest(
        title="The Matrix",
        content_type="movie",
        provider=ProviderKind.REAL_DEBRID,
        api_key="rd-key",
        imdb_id="tt0133093",
    )


@pytest.fixture()
def episode_request() -> SearchRequest:
    return SearchRequest(
        title="Breaking Bad",
        content_type="series",
        provider=ProviderKind.REAL_DEBRID,
        api_key="rd-key",
        imdb_id="tt0903747",
        season=1,
        episode=2,
    )
