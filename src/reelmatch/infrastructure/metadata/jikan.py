"""Jikan (MyAnimeList) client plus the anime season remap helpers.

Anime databases often split what a catalog calls one long season into
several shorter ones. :func:`map_anime_episode` translates a requested
``S{s}E{e}`` into the numbering the anime's own releases use.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from reelmatch.domain.entities.media import AlternateTitle, AnimeSeason, EpisodeMapping
from reelmatch.domain.exceptions import MetadataLookupError
from reelmatch.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

JIKAN_BASE_URL = "https://api.jikan.moe/v4"
JIKAN_HOST = "api.jikan.moe"
JIKAN_REQUESTS_PER_SECOND = 3.0

_TTL_SEASONS = 86_400  # 24 hours, empty answers included
_SEARCH_LIMIT = 10
_KEPT_TYPES = frozenset({"TV", "Special"})

_CONTINUATION_RE = re.compile(r"part 2|part ii|cour 2|cours 2|season part 2")
_FIRST_PART_RE = re.compile(r"season \d+|part 1|part i|cour 1|cours 1")


# ---------------------------------------------------------------------------
# Season labelling
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnimeEntry:
    """One MyAnimeList entry before season labels are assigned."""

    mal_id: int
    title: str
    media_type: str
    aired_date: str | None
    episode_count: int


def _is_continuation(current: AnimeEntry, previous: AnimeEntry) -> bool:
    title = current.title.lower()
    previous_title = previous.title.lower()
    if previous.media_type == "Special" or not _CONTINUATION_RE.search(title):
        return False
    same_base = (
        _CONTINUATION_RE.sub("", title).strip() == _FIRST_PART_RE.sub("", previous_title).strip()
    )
    return same_base or previous_title.split(" ")[0] in title


def assign_season_labels(entries: Sequence[AnimeEntry]) -> list[AnimeSeason]:
    """Order entries by air date and label them ``S01``, ``S02``...

    Entries without an air date are dropped. Specials get ``S00``. A
    "Part 2"/"Cour 2" entry directly following its first part reuses the
    previous label.
    """
    dated = sorted((e for e in entries if e.aired_date), key=lambda e: e.aired_date or "")
    seasons: list[AnimeSeason] = []
    next_number = 1
    for index, entry in enumerate(dated):
        if entry.media_type == "Special":
            label = "S00"
        elif index > 0 and _is_continuation(entry, dated[index - 1]):
            label = f"S{max(next_number - 1, 1):02d}"
        else:
            label = f"S{next_number:02d}"
            next_number += 1
        seasons.append(
            AnimeSeason(
                title=entry.title,
                episode_count=entry.episode_count,
                aired_date=entry.aired_date or "",
                season_label=label,
                media_type=entry.media_type,
                mal_id=entry.mal_id,
            )
        )
    return seasons


# ---------------------------------------------------------------------------
# Episode remap
# ---------------------------------------------------------------------------


def _label_number(label: str) -> int:
    return int(label.lstrip("S") or 0)


def map_anime_episode(
    seasons: Sequence[AnimeSeason], season: int, episode: int
) -> EpisodeMapping | None:
    """Translate ``S{season}E{episode}`` into the anime's own numbering.

    TV seasons with a known episode count are grouped by label, so the
    parts of a split season add up. No remap (``None``) when the
    requested season exists and already holds the episode. Otherwise the
    episode is located in the cumulative episode ranges; the last season
    is open-ended because airing shows report incomplete counts.
    """
    if not seasons or not episode:
        return None

    groups: dict[str, list[AnimeSeason]] = {}
    for item in seasons:
        if item.media_type == "TV" and item.episode_count > 0:
            groups.setdefault(item.season_label, []).append(item)
    if not groups:
        return None

    ordered = sorted(groups.items(), key=lambda kv: _label_number(kv[0]))
    counts = {label: sum(s.episode_count for s in parts) for label, parts in ordered}

    requested = f"S{season:02d}"
    if requested in counts and episode <= counts[requested]:
        return None

    cumulative = 0
    for position, (label, parts) in enumerate(ordered):
        count = counts[label]
        is_last = position == len(ordered) - 1
        if cumulative < episode <= cumulative + count or (is_last and episode > cumulative):
            mapping = EpisodeMapping(
                original_season=season,
                original_episode=episode,
                mapped_season=_label_number(label),
                mapped_episode=episode - cumulative,
                source_title=" + ".join(s.title for s in parts),
            )
            log.info(
                "anime_episode_mapped",
                original=f"S{season}E{episode}",
                mapped=f"S{mapping.mapped_season}E{mapping.mapped_episode}",
            )
            return mapping
        cumulative += count
    return None


# ---------------------------------------------------------------------------
# Title variations
# ---------------------------------------------------------------------------

MAX_TITLE_VARIATIONS = 8
_SECONDARY_COUNTRIES = ("GB", "DE", "ES", "IT", "KR", "CN", "TW", "XX")


def select_title_variations(
    original: str,
    alternates: Sequence[AlternateTitle],
    *,
    limit: int = MAX_TITLE_VARIATIONS,
) -> list[str]:
    """Queries to try against the anime database, most promising first.

    Original title, then JP, US, JP, US, FR, the first title of each
    secondary country, then the remaining JP and US titles alternately.
    """
    variations = [original]
    seen = {original.lower()}

    def add(title: str) -> None:
        if len(variations) >= limit:
            return
        if len(title) > 2 and title.lower() not in seen:
            variations.append(title)
            seen.add(title.lower())

    def by_country(code: str) -> list[str]:
        return [a.title for a in alternates if a.country_code == code]

    jp, us, fr = by_country("JP"), by_country("US"), by_country("FR")
    for title in (jp[:1], us[:1], jp[1:2], us[1:2], fr[:1]):
        for t in title:
            add(t)
    for code in _SECONDARY_COUNTRIES:
        first = by_country(code)[:1]
        for t in first:
            add(t)

    rest_jp, rest_us = jp[2:], us[2:]
    for index in range(max(len(rest_jp), len(rest_us))):
        for pool in (rest_jp, rest_us):
            if index < len(pool):
                add(pool[index])
    return variations


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


def _aired_date(anime: dict[str, Any]) -> str | None:
    start = ((anime.get("aired") or {}).get("prop") or {}).get("from") or {}
    year, month, day = start.get("year"), start.get("month"), start.get("day")
    if not (year and month and day):
        return None
    return f"{year:04d}-{month:02d}-{day:02d}"


class HttpxJikanClient:
    """Keyless Jikan v4 client implementing ``AnimeSeasonsPort``.

    Pacing (three requests per second) is done by the shared transport's
    host rate limiter, see :mod:`reelmatch.infrastructure.common`.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        base_url: str = JIKAN_BASE_URL,
    ) -> None:
        self._http = http_client
        self._cache = cache
        self._base_url = base_url

    async def _get(self, path: str, **params: Any) -> dict[str, Any] | None:
        """GET returning parsed JSON, ``None`` for 404.

        Raises:
            MetadataLookupError: On HTTP errors and unreadable payloads.
        """
        try:
            resp = await self._http.get(
                f"{self._base_url}{path}",
                params=params or None,
                headers={"Accept": "application/json"},
            )
            if resp.status_code == 404:
                log.debug("jikan_resource_not_found", path=path)
                return None
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as exc:
            raise MetadataLookupError(f"Jikan request failed: {path}") from exc
        except ValueError as exc:
            raise MetadataLookupError(f"Jikan returned invalid JSON: {path}") from exc

    async def _search_ids(self, query: str) -> list[int]:
        data = await self._get("/anime", q=query, limit=_SEARCH_LIMIT)
        needle = query.lower()
        ids: list[int] = []
        for entry in (data or {}).get("data") or []:
            if entry.get("type") not in _KEPT_TYPES:
                continue
            titles = entry.get("titles") or []
            if not any(needle in (t.get("title") or "").lower() for t in titles):
                continue
            mal_id = entry.get("mal_id")
            if mal_id is not None and mal_id not in ids:
                ids.append(mal_id)
        return ids

    async def _entry(self, mal_id: int) -> AnimeEntry | None:
        data = await self._get(f"/anime/{mal_id}")
        anime = (data or {}).get("data")
        if not anime:
            return None
        return AnimeEntry(
            mal_id=mal_id,
            title=anime.get("title") or "",
            media_type=anime.get("type") or "",
            aired_date=_aired_date(anime),
            episode_count=anime.get("episodes") or 0,
        )

    async def fetch_anime_seasons(self, title_query: str) -> list[AnimeSeason]:
        """Seasons of the anime matching *title_query*, labelled in air order.

        Raises:
            MetadataLookupError: When the search request itself fails.
                Failed detail lookups only drop that entry.
        """
        query = (title_query or "").strip()
        if not query:
            return []
        cache_key = f"jikan:anime_seasons:{query.lower()}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        entries: list[AnimeEntry] = []
        for mal_id in await self._search_ids(query):
            try:
                entry = await self._entry(mal_id)
            except MetadataLookupError:
                log.warning("jikan_detail_failed", mal_id=mal_id, exc_info=True)
                continue
            if entry is not None:
                entries.append(entry)

        seasons = assign_season_labels(entries)
        self._cache.set(cache_key, seasons, _TTL_SEASONS, {"type": "anime_season"})
        log.debug("jikan_seasons_fetched", query=query, count=len(seasons))
        return seasons
