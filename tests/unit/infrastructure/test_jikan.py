"""Tests for the Jikan client, season labelling and the anime episode remap."""

from __future__ import annotations

import httpx
import pytest
import respx

from reelmatch.domain.entities.media import AlternateTitle, AnimeSeason
from reelmatch.domain.exceptions import MetadataLookupError
from reelmatch.infrastructure.cache.ttl_cache import TtlCache
from reelmatch.infrastructure.metadata.jikan import (
    JIKAN_BASE_URL,
    AnimeEntry,
    HttpxJikanClient,
    assign_season_labels,
    map_anime_episode,
    select_title_variations,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _entry(mal_id: int, title: str, aired: str | None, episodes: int, kind: str = "TV") -> AnimeEntry:
    return AnimeEntry(
        mal_id=mal_id, title=title, media_type=kind, aired_date=aired, episode_count=episodes
    )


def _season(label: str, episodes: int, title: str | None = None, kind: str = "TV") -> AnimeSeason:
    return AnimeSeason(
        title=title or f"Show {label}",
        episode_count=episodes,
        aired_date="2020-01-01",
        season_label=label,
        media_type=kind,
    )


# ---------------------------------------------------------------------------
# assign_season_labels
# ---------------------------------------------------------------------------


class TestAssignSeasonLabels:
    def test_air_order_specials_and_split_parts(self) -> None:
        entries = [
            _entry(4, "Attack on Titan Season 3 Part 2", "2019-04-29", 10),
            _entry(2, "Attack on Titan Season 2", "2017-04-01", 12),
            _entry(5, "Attack on Titan: Lost Girls", "2017-12-08", 2, kind="Special"),
            _entry(1, "Attack on Titan", "2013-04-07", 25),
            _entry(3, "Attack on Titan Season 3", "2018-07-23", 12),
            _entry(6, "Attack on Titan: Undated", None, 3),
        ]

        seasons = assign_season_labels(entries)

        assert [(s.mal_id, s.season_label) for s in seasons] == [
            (1, "S01"),
            (2, "S02"),
            (5, "S00"),
            (3, "S03"),
            (4, "S03"),
        ]

    def test_part_two_after_special_is_new_season(self) -> None:
        entries = [
            _entry(1, "Show Part 1", "2020-01-01", 12, kind="Special"),
            _entry(2, "Show Part 2", "2020-06-01", 12),
        ]
        assert [s.season_label for s in assign_season_labels(entries)] == ["S00", "S01"]

    def test_empty(self) -> None:
        assert assign_season_labels([]) == []


# ---------------------------------------------------------------------------
# map_anime_episode
# ---------------------------------------------------------------------------


class TestMapAnimeEpisode:
    def test_episode_inside_requested_season_needs_no_remap(self) -> None:
        assert map_anime_episode([_season("S01", 12), _season("S02", 24)], 1, 5) is None

    def test_overflow_lands_in_next_season(self) -> None:
        mapping = map_anime_episode([_season("S01", 12), _season("S02", 24)], 1, 20)
        assert mapping is not None
        assert (mapping.mapped_season, mapping.mapped_episode) == (2, 8)
        assert (mapping.original_season, mapping.original_episode) == (1, 20)

    def test_last_season_is_open_ended(self) -> None:
        mapping = map_anime_episode([_season("S01", 12), _season("S02", 24)], 1, 99)
        assert mapping is not None
        assert (mapping.mapped_season, mapping.mapped_episode) == (2, 87)

    def test_split_season_parts_add_up(self) -> None:
        seasons = [
            _season("S01", 25),
            _season("S02", 12),
            _season("S03", 12, title="Season 3"),
            _season("S03", 10, title="Season 3 Part 2"),
        ]
        assert map_anime_episode(seasons, 3, 20) is None

        mapping = map_anime_episode(seasons, 1, 40)
        assert mapping is not None
        assert (mapping.mapped_season, mapping.mapped_episode) == (3, 3)
        assert mapping.source_title == "Season 3 + Season 3 Part 2"

    def test_specials_and_unknown_counts_ignored(self) -> None:
        seasons = [
            _season("S00", 5, kind="Special"),
            _season("S01", 12),
            _season("S02", 0),
        ]
        mapping = map_anime_episode(seasons, 2, 3)
        assert mapping is not None
        assert (mapping.mapped_season, mapping.mapped_episode) == (1, 3)

    def test_nothing_to_map(self) -> None:
        assert map_anime_episode([], 1, 5) is None
        assert map_anime_episode([_season("S01", 12)], 1, 0) is None
        assert map_anime_episode([_season("S00", 5, kind="Special")], 1, 5) is None


# ---------------------------------------------------------------------------
# select_title_variations
# ---------------------------------------------------------------------------


class TestSelectTitleVariations:
    _ALTERNATES = [
        AlternateTitle("Shingeki no Kyojin", "JP"),
        AlternateTitle("進撃の巨人", "JP"),
        AlternateTitle("AoT", "US"),
        AlternateTitle("attack on titan", "US"),
        AlternateTitle("L'Attaque des Titans", "FR"),
        AlternateTitle("Angriff auf Titan", "DE"),
        AlternateTitle("Shingeki", "XX"),
        AlternateTitle("SnK", "JP"),
        AlternateTitle("AT", "US"),
    ]

    def test_priority_order(self) -> None:
        assert select_title_variations("Attack on Titan", self._ALTERNATES) == [
            "Attack on Titan",
            "Shingeki no Kyojin",
            "AoT",
            "進撃の巨人",
            "L'Attaque des Titans",
            "Angriff auf Titan",
            "Shingeki",
            "SnK",
        ]

    def test_limit(self) -> None:
        assert select_title_variations("Attack on Titan", self._ALTERNATES, limit=3) == [
            "Attack on Titan",
            "Shingeki no Kyojin",
            "AoT",
        ]

    def test_without_alternates(self) -> None:
        assert select_title_variations("Attack on Titan", []) == ["Attack on Titan"]


# ---------------------------------------------------------------------------
# HttpxJikanClient
# ---------------------------------------------------------------------------

_SEARCH_RESPONSE = {
    "data": [
        {"mal_id": 16498, "type": "TV", "titles": [{"type": "Default", "title": "Shingeki no Kyojin"}]},
        {"mal_id": 18397, "type": "OVA", "titles": [{"type": "Default", "title": "Shingeki no Kyojin OVA"}]},
        {"mal_id": 25777, "type": "TV", "titles": [{"type": "Default", "title": "Shingeki no Kyojin Season 2"}]},
        {"mal_id": 1, "type": "TV", "titles": [{"type": "Default", "title": "Cowboy Bebop"}]},
    ]
}
_DETAIL_RESPONSE = {
    "data": {
        "mal_id": 16498,
        "title": "Shingeki no Kyojin",
        "type": "TV",
        "episodes": 25,
        "aired": {"prop": {"from": {"day": 7, "month": 4, "year": 2013}}},
    }
}


@pytest.fixture()
def client(cache: TtlCache) -> HttpxJikanClient:
    return HttpxJikanClient(http_client=httpx.AsyncClient(), cache=cache)


class TestHttpxJikanClient:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_fetch_seasons_skips_failed_details(self, client: HttpxJikanClient) -> None:
        search = respx.get(f"{JIKAN_BASE_URL}/anime").respond(json=_SEARCH_RESPONSE)
        respx.get(f"{JIKAN_BASE_URL}/anime/16498").respond(json=_DETAIL_RESPONSE)
        respx.get(f"{JIKAN_BASE_URL}/anime/25777").respond(status_code=500)

        seasons = await client.fetch_anime_seasons("Shingeki no Kyojin")

        assert seasons == [
            AnimeSeason(
                title="Shingeki no Kyojin",
                episode_count=25,
                aired_date="2013-04-07",
                season_label="S01",
                media_type="TV",
                mal_id=16498,
            )
        ]
        assert search.calls.last.request.url.params["q"] == "Shingeki no Kyojin"

    @respx.mock
    @pytest.mark.asyncio()
    async def test_results_are_cached(self, client: HttpxJikanClient, cache: TtlCache) -> None:
        search = respx.get(f"{JIKAN_BASE_URL}/anime").respond(json={"data": []})

        assert await client.fetch_anime_seasons("Nothing") == []
        assert await client.fetch_anime_seasons("nothing ") == []

        assert search.call_count == 1
        assert cache.has("jikan:anime_seasons:nothing")

    @respx.mock
    @pytest.mark.asyncio()
    async def test_search_failure_raises(self, client: HttpxJikanClient) -> None:
        respx.get(f"{JIKAN_BASE_URL}/anime").mock(side_effect=httpx.ConnectError("down"))

        with pytest.raises(MetadataLookupError):
            await client.fetch_anime_seasons("Shingeki no Kyojin")

    @respx.mock
    @pytest.mark.asyncio()
    async def test_invalid_json_raises(self, client: HttpxJikanClient) -> None:
        respx.get(f"{JIKAN_BASE_URL}/anime").respond(text="not json")

        with pytest.raises(MetadataLookupError):
            await client.fetch_anime_seasons("Shingeki no Kyojin")

    @pytest.mark.asyncio()
    async def test_blank_query(self, client: HttpxJikanClient) -> None:
        assert await client.fetch_anime_seasons("  ") == []
