"""TMDB client: localized alternate titles for an IMDb id."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from reelmatch.domain.entities.media import AlternateTitle, ContentType
from reelmatch.domain.ports.cache import CachePort
from reelmatch.infrastructure.parsing.keywords import extract_keywords

log = structlog.get_logger(__name__)

_BASE_URL = "https://api.themoviedb.org/3"

# Cache TTLs (seconds)
_TTL_ALT_TITLES = 86_400  # 24 hours
_TTL_EMPTY = 1_800  # 30 minutes


class HttpxTmdbClient:
    """Async TMDB client using httpx + CachePort.

    Implements ``AlternateTitlesPort`` from domain.ports.metadata.
    """

    def __init__(
        self,
        *,
        api_key: str,
        http_client: httpx.AsyncClient,
        cache: CachePort,
    ) -> None:
        self._api_key = api_key
        self._http = http_client
        self._cache = cache

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get(self, path: str, **extra: Any) -> dict[str, Any] | None:
        """GET request with error handling. Returns parsed JSON or None."""
        url = f"{_BASE_URL}{path}"
        try:
            resp = await self._http.get(url, params={"api_key": self._api_key, **extra})
            if resp.status_code == 401:
                log.error("tmdb_api_key_invalid", status=401)
                return None
            if resp.status_code == 404:
                log.debug("tmdb_resource_not_found", path=path)
                return None
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError:
            log.warning("tmdb_http_error", path=path, exc_info=True)
            return None
        except httpx.HTTPError:
            log.warning("tmdb_network_error", path=path, exc_info=True)
            return None
        except ValueError:
            log.warning("tmdb_invalid_json", path=path)
            return None

    async def _find_tmdb_id(self, imdb_id: str, content_type: ContentType) -> int | None:
        data = await self._get(f"/find/{imdb_id}", external_source="imdb_id")
        if data is None:
            return None
        bucket = "movie_results" if content_type == "movie" else "tv_results"
        results = data.get(bucket) or []
        return results[0].get("id") if results else None

    @staticmethod
    def _to_titles(data: dict[str, Any]) -> list[AlternateTitle]:
        # Movies answer with "titles", TV shows with "results".
        raw = data.get("titles") or data.get("results") or []
        titles: list[AlternateTitle] = []
        for item in raw:
            title = (item.get("title") or "").strip()
            if not title or not extract_keywords(title):
                continue
            titles.append(
                AlternateTitle(title=title, country_code=item.get("iso_3166_1") or "XX")
            )
        return titles

    # ------------------------------------------------------------------
    # Public API (AlternateTitlesPort)
    # ------------------------------------------------------------------

    async def fetch_alternate_titles(
        self, imdb_id: str, content_type: ContentType
    ) -> list[AlternateTitle]:
        """Alternate titles with their country codes, empty when unknown."""
        if not imdb_id:
            return []
        cache_key = f"tmdb:alt_titles:{imdb_id}:{content_type}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        tmdb_id = await self._find_tmdb_id(imdb_id, content_type)
        if tmdb_id is None:
            self._cache.set(cache_key, [], _TTL_EMPTY, {"type": "tmdb"})
            return []

        endpoint = "movie" if content_type == "movie" else "tv"
        data = await self._get(f"/{endpoint}/{tmdb_id}/alternative_titles")
        if data is None:
            self._cache.set(cache_key, [], _TTL_EMPTY, {"type": "tmdb"})
            return []

        titles = self._to_titles(data)
        self._cache.set(cache_key, titles, _TTL_ALT_TITLES, {"type": "tmdb"})
        log.debug("tmdb_alt_titles_fetched", imdb_id=imdb_id, count=len(titles))
        return titles
