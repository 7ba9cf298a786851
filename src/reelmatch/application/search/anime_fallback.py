"""Phase 3: retry with the anime database's own season numbering.

Anime is often released with one long season where the metadata
catalogs split it (or the other way round). The anime database lists
the seasons in air-date order; the requested ``S{s}E{e}`` is remapped
onto them and the already known candidates are analysed again. Only
containers whose file list was never loaded cost a provider call.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from reelmatch.application.search.content_analysis import ContentAnalyzer
from reelmatch.domain.entities.media import (
    AlternateTitle,
    AnimeSeason,
    Candidate,
    EpisodeMapping,
    MatchedVideo,
)
from reelmatch.domain.exceptions import CollaboratorUnavailableError
from reelmatch.domain.ports.metadata import AnimeSeasonsPort
from reelmatch.domain.ports.provider import ProviderPort
from reelmatch.infrastructure.metadata.jikan import (
    map_anime_episode,
    select_title_variations,
)

log = structlog.get_logger(__name__)


class AnimeFallback:
    def __init__(
        self, *, anime_seasons: AnimeSeasonsPort, analyzer: ContentAnalyzer
    ) -> None:
        self._anime_seasons = anime_seasons
        self._analyzer = analyzer

    async def find_seasons(
        self, title: str, alternates: Sequence[AlternateTitle]
    ) -> list[AnimeSeason]:
        """Seasons for the first title variation the database knows."""
        for variation in select_title_variations(title, alternates):
            try:
                seasons = await self._anime_seasons.fetch_anime_seasons(variation)
            except CollaboratorUnavailableError:
                log.warning("anime_seasons_lookup_failed", query=variation, exc_info=True)
                continue
            if seasons:
                log.debug("anime_seasons_found", query=variation, seasons=len(seasons))
                return seasons
        return []

    async def run(
        self,
        title: str,
        season: int,
        episode: int,
        alternates: Sequence[AlternateTitle],
        candidates: Sequence[Candidate],
        *,
        provider: ProviderPort | None = None,
        api_key: str = "",
    ) -> tuple[list[MatchedVideo], EpisodeMapping | None]:
        """Remap and re-analyse.

        With a *provider*, containers without a loaded file list get their
        details first. Returns the matched files (each carrying the
        mapping) and the mapping itself; ``([], None)`` when no remap
        applies.
        """
        if not candidates:
            log.info("phase3_no_candidates")
            return [], None

        seasons = await self.find_seasons(title, alternates)
        mapping = map_anime_episode(seasons, season, episode)
        if mapping is None:
            log.info("phase3_no_remap", seasons=len(seasons))
            return [], None

        if provider is not None:
            await self._analyzer.fetch_details(provider, api_key, candidates)

        results = await self._analyzer.analyze(
            candidates,
            mapping.mapped_season,
            mapping.mapped_episode,
            anime_mapping=mapping,
        )
        log.info(
            "phase3_complete",
            mapped_season=mapping.mapped_season,
            mapped_episode=mapping.mapped_episode,
            matches=len(results),
        )
        return results, mapping
