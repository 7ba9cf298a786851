"""Trakt client: canonical absolute episode number for a series episode."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from reelmatch.domain.entities.media import EpisodeMapping
from reelmatch.domain.ports.cache import CachePort
from reelmatch.infrastructure.metadata.cinemeta import (
    HttpxCinemetaClient,
    absolute_from_season_counts,
)

log = structlog.get_logger(__name__)

_BASE_URL = "https://api.trakt.tv"

_TTL_EPISODE = 86_400  # 24 hours
_TTL_MISS = 3_600  # 1 hour

_MISS = object()

# A season whose first episode number lies this far past the requested
# one is numbered absolutely.
_ABSOLUTE_NUMBERING_GAP = 10


class HttpxTraktClient:
    """Async Trakt client using httpx + CachePort.

    Implements ``EpisodeMappingPort``. Lookup order for ``S{s}E{e}``:

    1. ``/shows/{id}/seasons/{s}?extended=full``, the episode itself;
    2. if the season endpoint fails, every season's episode list, matching
       ``number_abs == e`` or the literal season/episode;
    3. if the season exists but numbers its episodes absolutely (its
       first episode lies more than ten past ``e``), Cinemeta's season
       counts give the absolute number, looked up across all seasons;
    4. if the season exists but ends before ``e``, its last episode
       (flagged ``is_fallback``).

    Unknown episodes are cached as ``None`` for an hour.
    """

    def __init__(
        self,
        *,
        api_key: str,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        cinemeta: HttpxCinemetaClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._http = http_client
        self._cache = cache
        self._cinemeta = cinemeta

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "trakt-api-version": "2",
            "trakt-api-key": self._api_key,
        }

    async def _get(self, path: str, **params: Any) -> Any:
        url = f"{_BASE_URL}{path}"
        try:
            resp = await self._http.get(url, params=params or None, headers=self._headers())
            if resp.status_code in (401, 403):
                log.error("trakt_api_key_invalid", status=resp.status_code)
                return None
            if resp.status_code == 404:
                log.debug("trakt_resource_not_found", path=path)
                return None
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError:
            log.warning("trakt_http_error", path=path, exc_info=True)
            return None
        except httpx.HTTPError:
            log.warning("trakt_network_error", path=path, exc_info=True)
            return None
        except ValueError:
            log.warning("trakt_invalid_json", path=path)
            return None

    async def _trakt_id(self, imdb_id: str) -> int | None:
        data = await self._get(f"/search/imdb/{imdb_id}")
        if not data:
            return None
        first = data[0]
        media = first.get("show") or first.get(first.get("type", "")) or {}
        return media.get("ids", {}).get("trakt")

    @staticmethod
    def _mapping(
        season: int, episode: int, found_season: int, item: dict[str, Any], *, fallback: bool = False
    ) -> EpisodeMapping:
        return EpisodeMapping(
            original_season=season,
            original_episode=episode,
            mapped_season=found_season,
            mapped_episode=item["number"],
            absolute_episode=item.get("number_abs"),
            source_title=item.get("title"),
            is_fallback=fallback,
        )

    async def _scan_all_seasons(
        self, trakt_id: int, season: int, episode: int
    ) -> EpisodeMapping | None:
        seasons = await self._get(f"/shows/{trakt_id}/seasons", extended="episodes")
        for info in seasons or []:
            for item in info.get("episodes") or []:
                if item.get("number_abs") == episode or (
                    info.get("number") == season and item.get("number") == episode
                ):
                    return self._mapping(season, episode, info["number"], item)
        return None

    async def _find_by_absolute(
        self, trakt_id: int, season: int, episode: int, absolute: int
    ) -> EpisodeMapping | None:
        seasons = await self._get(f"/shows/{trakt_id}/seasons", extended="episodes")
        for info in seasons or []:
            for item in info.get("episodes") or []:
                if item.get("number_abs") == absolute:
                    return self._mapping(season, episode, info["number"], item)
        log.warning("trakt_absolute_episode_not_found", absolute=absolute)
        return None

    async def _via_cinemeta(
        self, imdb_id: str, trakt_id: int, season: int, episode: int
    ) -> EpisodeMapping | None:
        if self._cinemeta is None:
            return None
        counts = await self._cinemeta.season_episode_counts(imdb_id)
        if not counts or season not in counts:
            log.warning("cinemeta_season_unavailable", imdb_id=imdb_id, season=season)
            return None
        absolute = absolute_from_season_counts(counts, season, episode)
        log.info(
            "trakt_cinemeta_fallback", season=season, episode=episode, absolute=absolute
        )
        return await self._find_by_absolute(trakt_id, season, episode, absolute)

    async def _from_season(
        self,
        season_data: list[dict[str, Any]],
        imdb_id: str,
        trakt_id: int,
        season: int,
        episode: int,
    ) -> EpisodeMapping | None:
        for item in season_data:
            if item.get("number") == episode:
                return self._mapping(season, episode, season, item)

        numbered = [item for item in season_data if isinstance(item.get("number"), int)]
        if not numbered:
            return None

        first = min(item["number"] for item in numbered)
        if first > episode + _ABSOLUTE_NUMBERING_GAP:
            mapping = await self._via_cinemeta(imdb_id, trakt_id, season, episode)
            if mapping is not None:
                return mapping

        last = max(numbered, key=lambda item: item["number"])
        if episode > last["number"]:
            return self._mapping(season, episode, season, last, fallback=True)
        return None

    async def resolve_absolute_episode(
        self, imdb_id: str, season: int, episode: int
    ) -> EpisodeMapping | None:
        if not imdb_id:
            return None
        cache_key = f"trakt:episode:{imdb_id}:s{season}:e{episode}"
        cached = self._cache.get(cache_key, _MISS)
        if cached is not _MISS:
            return cached

        trakt_id = await self._trakt_id(imdb_id)
        if trakt_id is None:
            self._cache.set(cache_key, None, _TTL_MISS, {"type": "trakt"})
            return None

        season_data = await self._get(f"/shows/{trakt_id}/seasons/{season}", extended="full")
        if season_data is None:
            mapping = await self._scan_all_seasons(trakt_id, season, episode)
        else:
            mapping = await self._from_season(
                season_data, imdb_id, trakt_id, season, episode
            )

        ttl = _TTL_EPISODE if mapping is not None else _TTL_MISS
        self._cache.set(cache_key, mapping, ttl, {"type": "trakt"})
        log.debug(
            "trakt_episode_resolved",
            imdb_id=imdb_id,
            season=season,
            episode=episode,
            absolute=mapping.absolute_episode if mapping else None,
            fallback=mapping.is_fallback if mapping else False,
        )
        return mapping
