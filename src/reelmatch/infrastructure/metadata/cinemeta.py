"""Cinemeta client: episode counts per season of a series.

Used when Trakt numbers a season's episodes absolutely (common for
anime): the counts of the earlier seasons turn a season-relative
episode into an absolute number that Trakt can look up.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from reelmatch.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

_BASE_URL = "https://v3-cinemeta.strem.io"

_TTL_META = 3_600  # 1 hour


def absolute_from_season_counts(
    counts: Mapping[int, int], season: int, episode: int
) -> int:
    """Episodes of every regular season before *season*, plus *episode*.

    Specials (season 0) never count.
    """
    return sum(counts.get(s, 0) for s in range(1, season)) + episode


def count_season_episodes(videos: Any) -> dict[int, int]:
    """Season number to episode count, from a Cinemeta ``videos`` list.

    Entries without an integer season and episode are skipped.
    """
    counts: dict[int, int] = {}
    if not isinstance(videos, list):
        return counts
    for video in videos:
        if not isinstance(video, dict):
            continue
        season, episode = video.get("season"), video.get("episode")
        if not isinstance(season, int) or not isinstance(episode, int):
            continue
        counts[season] = counts.get(season, 0) + 1
    return counts


class HttpxCinemetaClient:
    """Async Cinemeta client using httpx + CachePort. Keyless."""

    def __init__(self, *, http_client: httpx.AsyncClient, cache: CachePort) -> None:
        self._http = http_client
        self._cache = cache

    async def _get(self, path: str) -> dict[str, Any] | None:
        url = f"{_BASE_URL}{path}"
        try:
            resp = await self._http.get(url)
            if resp.status_code == 404:
                log.debug("cinemeta_resource_not_found", path=path)
                return None
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError:
            log.warning("cinemeta_http_error", path=path, exc_info=True)
            return None
        except httpx.HTTPError:
            log.warning("cinemeta_network_error", path=path, exc_info=True)
            return None
        except ValueError:
            log.warning("cinemeta_invalid_json", path=path)
            return None
        return body if isinstance(body, dict) else None

    async def season_episode_counts(self, imdb_id: str) -> dict[int, int] | None:
        """Episode count of every season Cinemeta lists for *imdb_id*.

        ``None`` when the series is unknown or lists no numbered episodes.
        """
        if not imdb_id:
            return None
        cache_key = f"cinemeta:series:{imdb_id}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        body = await self._get(f"/meta/series/{imdb_id}.json")
        meta = body.get("meta") if body is not None else None
        counts = count_season_episodes(meta.get("videos") if isinstance(meta, dict) else None)
        if not counts:
            log.warning("cinemeta_no_episodes", imdb_id=imdb_id)
            return None

        self._cache.set(cache_key, counts, _TTL_META, {"type": "cinemeta"})
        log.debug(
            "cinemeta_seasons_counted",
            imdb_id=imdb_id,
            seasons={s: counts[s] for s in sorted(counts)},
        )
        return counts
