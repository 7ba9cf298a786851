"""Search coordination use case.

request -> validate -> phase 0 (metadata, terms)
-> phase 1 (catalog title matching) -> phase 2 (file analysis)
-> phase 3 (anime remap) -> absolute-episode post-processing.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Protocol

import structlog

from reelmatch.application.search.anime_fallback import AnimeFallback
from reelmatch.application.search.content_analysis import (
    ContentAnalyzer,
    candidate_to_match,
)
from reelmatch.application.search.preparation import QueryPreparer
from reelmatch.application.search.title_matching import TitleMatcher
from reelmatch.domain.entities.media import (
    EpisodeMapping,
    MatchedVideo,
    ParsedTitle,
    ProviderKind,
    SearchOutcome,
    SearchPhase,
    SearchRequest,
    VideoFile,
)
from reelmatch.domain.ports.metadata import (
    AlternateTitlesPort,
    AnimeSeasonsPort,
    EpisodeMappingPort,
)
from reelmatch.domain.ports.provider import ProviderPort

# ---------------------------------------------------------------------------
# Protocols: define what this use case needs from its dependencies.
# Infrastructure components satisfy these via structural subtyping.
# ---------------------------------------------------------------------------


class _SearchConfig(Protocol):
    """Configuration values consumed by SearchCoordinator."""

    query_timeout_seconds: float
    detail_batch_size: int
    analysis_batch_size: int
    term_concurrency: int
    prefilter_similarity: float


class _ProviderLookup(Protocol):
    def get(self, name: str | ProviderKind) -> ProviderPort: ...


class _Parser(Protocol):
    def parse(self, filename: str) -> ParsedTitle: ...

    def parse_many(self, filenames: Sequence[str]) -> list[ParsedTitle]: ...


class _AbsoluteProcessor(Protocol):
    def matches(self, filename: str, absolute_number: int) -> bool: ...

    def process(
        self, mapping: EpisodeMapping | None, videos: Sequence[VideoFile]
    ) -> list[VideoFile]: ...


log = structlog.get_logger(__name__)


class SearchCoordinator:
    """Answer "is this title/episode in the user's provider catalog?".

    Flow:
        1. Validate the request and resolve the provider (input errors raise).
        2. Phase 0: absolute episode + alternate titles, search terms.
        3. Phase 1: one catalog fetch, pre-filter, fuzzy title matching.
        4. Phase 2: load container details, match files by episode.
        5. Phase 3: remap onto anime seasons when phase 2 found nothing.
        6. Stamp the canonical absolute episode onto matching results.

    Collaborator failures never escape: a failing provider yields no
    results and a failing metadata service only removes its signal.
    """

    def __init__(
        self,
        *,
        providers: _ProviderLookup,
        parser: _Parser,
        absolute_processor: _AbsoluteProcessor,
        episode_mapper: EpisodeMappingPort | None,
        title_lookup: AlternateTitlesPort | None,
        anime_seasons: AnimeSeasonsPort,
        config: _SearchConfig,
        manual_aliases: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self._providers = providers
        self._query_timeout = config.query_timeout_seconds
        self._preparer = QueryPreparer(
            episode_mapper=episode_mapper,
            title_lookup=title_lookup,
            manual_aliases=manual_aliases,
        )
        self._title_matcher = TitleMatcher(
            parser=parser,
            term_concurrency=config.term_concurrency,
            prefilter_similarity=config.prefilter_similarity,
        )
        self._analyzer = ContentAnalyzer(
            parser=parser,
            absolute_processor=absolute_processor,
            detail_batch_size=config.detail_batch_size,
            analysis_batch_size=config.analysis_batch_size,
        )
        self._anime_fallback = AnimeFallback(
            anime_seasons=anime_seasons, analyzer=self._analyzer
        )

    async def coordinate(self, request: SearchRequest) -> SearchOutcome:
        """Run all phases for *request*.

        Args:
            request: Title, content type, provider credentials and the
                optional episode coordinates.

        Returns:
            The matched files, the canonical absolute episode (if one was
            resolved) and the phases the query went through.

        Raises:
            InputError: Unknown provider or inconsistent request; raised
                before any phase starts.
        """
        request.validate()
        provider = self._providers.get(request.provider)

        trace: list[SearchPhase] = []
        with structlog.contextvars.bound_contextvars(
            provider=provider.name, title=request.title
        ):
            try:
                outcome = await asyncio.wait_for(
                    self._run(provider, request, trace),
                    timeout=self._query_timeout,
                )
            except TimeoutError:
                log.warning(
                    "search_timeout",
                    timeout=self._query_timeout,
                    reached=trace[-1].value if trace else None,
                )
                return SearchOutcome(phases=(*trace, SearchPhase.DONE))

            log.info(
                "search_complete",
                results=len(outcome.results),
                phases=[p.value for p in outcome.phases],
            )
            return outcome

    async def _run(
        self,
        provider: ProviderPort,
        request: SearchRequest,
        trace: list[SearchPhase],
    ) -> SearchOutcome:
        trace.append(SearchPhase.PREPARING)
        prepared = await self._preparer.prepare(request)
        absolute = prepared.absolute_episode

        trace.append(SearchPhase.TITLE_MATCHING)
        matching = await self._title_matcher.run(provider, request, prepared)
        next_phase = matching.next_phase
        results: list[MatchedVideo] = []

        if next_phase is SearchPhase.DONE:
            results = [candidate_to_match(c) for c in matching.matches]

        elif next_phase is SearchPhase.CONTENT_ANALYSIS:
            trace.append(SearchPhase.CONTENT_ANALYSIS)
            await self._analyzer.fetch_details(
                provider, request.api_key, matching.matches
            )
            results = await self._analyzer.analyze(
                matching.matches,
                request.season or 0,
                request.episode or 0,
                absolute.absolute_episode if absolute is not None else None,
            )
            if not results:
                next_phase = SearchPhase.ANIME_FALLBACK

        if next_phase is SearchPhase.ANIME_FALLBACK:
            if not request.season:
                log.info("phase3_skipped_specials", season=request.season)
            else:
                trace.append(SearchPhase.ANIME_FALLBACK)
                results, _ = await self._anime_fallback.run(
                    request.title,
                    request.season,
                    request.episode or 0,
                    prepared.alternate_titles,
                    matching.matches or matching.prefiltered,
                    provider=provider,
                    api_key=request.api_key,
                )

        results = self._analyzer.stamp_absolute(absolute, results)
        trace.append(SearchPhase.DONE)
        return SearchOutcome(
            results=tuple(results),
            absolute_episode=absolute,
            phases=tuple(trace),
        )
