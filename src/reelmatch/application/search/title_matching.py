"""Phase 1: find catalog items whose name matches one of the search terms.

catalog fetch -> keyword pre-filter -> parse names (thread)
-> per-term fuzzy matching (parallel) -> merge -> next phase.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from reelmatch.application.search.preparation import PreparedQuery
from reelmatch.domain.entities.media import (
    Candidate,
    ParsedTitle,
    SearchPhase,
    SearchRequest,
)
from reelmatch.domain.ports.provider import ProviderPort
from reelmatch.infrastructure.matching.title_matcher import (
    DEFAULT_PREFILTER_SIMILARITY,
    TitleMatch,
    match_term,
    merge_matches,
    prefilter_candidates,
)

log = structlog.get_logger(__name__)


class _BatchParser(Protocol):
    def parse_many(self, filenames: list[str]) -> list[ParsedTitle]: ...


@dataclass
class TitleMatchingResult:
    """What phase 1 hands to the coordinator."""

    catalog_size: int = 0
    prefiltered: list[Candidate] = field(default_factory=list)
    matches: list[Candidate] = field(default_factory=list)
    next_phase: SearchPhase = SearchPhase.DONE


def decide_next_phase(request: SearchRequest, has_matches: bool) -> SearchPhase:
    """Where a query goes after phase 1.

    Only an episode query can continue: to content analysis when titles
    matched, to the anime fallback when nothing did.
    """
    if not request.is_episode_query:
        return SearchPhase.DONE
    return SearchPhase.CONTENT_ANALYSIS if has_matches else SearchPhase.ANIME_FALLBACK


async def fetch_catalog(
    provider: ProviderPort,
    api_key: str,
    *,
    fallback_term: str,
    threshold: float,
) -> list[Candidate]:
    """One catalog fetch per query.

    Bulk listing when the provider supports it; provider-side title
    search otherwise or when the listing fails. A failing fallback
    yields an empty catalog, whatever the provider raised.
    """
    if provider.supports_bulk_listing:
        try:
            return await provider.bulk_list(api_key)
        except Exception:
            log.warning(
                "provider_bulk_list_failed", provider=provider.name, exc_info=True
            )
        except BaseException:
            log.warning("provider_fetch_cancelled", provider=provider.name)
            raise

    try:
        return await provider.search_by_title(api_key, fallback_term, threshold)
    except Exception:
        log.warning("provider_fetch_failed", provider=provider.name, exc_info=True)
        return []
    except BaseException:
        log.warning("provider_fetch_cancelled", provider=provider.name)
        raise


class TitleMatcher:
    """Runs phase 1 against one provider catalog.

    Matching one term is CPU-bound (rapidfuzz over the pre-filtered
    catalog), so each term runs in the default executor, at most
    ``term_concurrency`` at a time.
    """

    def __init__(
        self,
        *,
        parser: _BatchParser,
        term_concurrency: int = 4,
        prefilter_similarity: float = DEFAULT_PREFILTER_SIMILARITY,
    ) -> None:
        self._parser = parser
        self._term_concurrency = max(1, term_concurrency)
        self._prefilter_similarity = prefilter_similarity

    async def run(
        self,
        provider: ProviderPort,
        request: SearchRequest,
        prepared: PreparedQuery,
    ) -> TitleMatchingResult:
        """Match the catalog of *provider* against the prepared terms.

        Args:
            provider: Adapter of the requested provider.
            request: The validated search request.
            prepared: Phase 0 output.

        Returns:
            Pre-filtered catalog, matched candidates (enriched in place
            with parsed info, matched term and score) and the next phase.
        """
        catalog = await fetch_catalog(
            provider,
            request.api_key,
            fallback_term=prepared.keyword_title,
            threshold=request.fuzzy_threshold,
        )
        if not catalog:
            log.info("phase1_empty_catalog", provider=provider.name)
            return TitleMatchingResult()

        prefiltered = prefilter_candidates(
            catalog, prepared.terms, min_similarity=self._prefilter_similarity
        )
        await self._parse_names(prefiltered)
        matches = await self._match_terms(
            prepared.terms, prefiltered, request.fuzzy_threshold
        )

        for match in matches:
            match.candidate.matched_term = match.term
            match.candidate.match_score = match.score
        candidates = [m.candidate for m in matches]

        result = TitleMatchingResult(
            catalog_size=len(catalog),
            prefiltered=prefiltered,
            matches=candidates,
            next_phase=decide_next_phase(request, bool(candidates)),
        )
        log.info(
            "phase1_complete",
            catalog=len(catalog),
            prefiltered=len(prefiltered),
            matches=len(candidates),
            next_phase=result.next_phase.value,
        )
        return result

    async def _parse_names(self, candidates: list[Candidate]) -> None:
        pending = [c for c in candidates if c.parsed_info is None]
        if not pending:
            return
        loop = asyncio.get_running_loop()
        parsed = await loop.run_in_executor(
            None, lambda: self._parser.parse_many([c.name for c in pending])
        )
        for candidate, info in zip(pending, parsed):
            candidate.parsed_info = info

    async def _match_terms(
        self,
        terms: tuple[str, ...],
        candidates: list[Candidate],
        threshold: float,
    ) -> list[TitleMatch]:
        if not candidates or not terms:
            return []
        loop = asyncio.get_running_loop()
        semaphore = asyncio.Semaphore(self._term_concurrency)

        async def _match_one(term: str) -> list[TitleMatch]:
            async with semaphore:
                return await loop.run_in_executor(
                    None, lambda: match_term(term, candidates, threshold)
                )

        per_term = await asyncio.gather(*(_match_one(t) for t in terms))
        return merge_matches(per_term)
