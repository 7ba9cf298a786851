"""Phase 2: look inside the matched items for the requested episode.

Containers without a video list get their details fetched first, in
sequential batches that run concurrently inside a batch. Analysis then
parses every filename (in a worker thread, batch by batch) and keeps
the files that denote the requested season/episode or carry the
canonical absolute number.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import replace
from typing import Protocol

import structlog

from reelmatch.domain.entities.media import (
    Candidate,
    EpisodeMapping,
    MatchedVideo,
    ParsedTitle,
    VideoFile,
)
from reelmatch.domain.ports.provider import ProviderPort
from reelmatch.infrastructure.parsing.episode_patterns import is_episode_match
from reelmatch.infrastructure.parsing.media_patterns import is_video

log = structlog.get_logger(__name__)


class _Parser(Protocol):
    def parse(self, filename: str) -> ParsedTitle: ...


class _AbsoluteMatcher(Protocol):
    def matches(self, filename: str, absolute_number: int) -> bool: ...

    def process(
        self, mapping: EpisodeMapping | None, videos: Sequence[VideoFile]
    ) -> list[VideoFile]: ...


def _chunks(items: Sequence[Candidate], size: int) -> list[Sequence[Candidate]]:
    return [items[i : i + size] for i in range(0, len(items), max(1, size))]


def needs_details(candidate: Candidate) -> bool:
    return candidate.videos is None and candidate.url is None and not candidate.details_loaded


def candidate_to_match(candidate: Candidate) -> MatchedVideo:
    """Phase 1 result for queries that stop after title matching."""
    return MatchedVideo(
        id=candidate.id,
        source=candidate.source,
        name=candidate.name,
        size=candidate.size,
        stream_url=candidate.url,
        parsed_info=candidate.parsed_info,
        matched_term=candidate.matched_term,
    )


class ContentAnalyzer:
    """Fetches details and matches files against episode coordinates."""

    def __init__(
        self,
        *,
        parser: _Parser,
        absolute_processor: _AbsoluteMatcher,
        detail_batch_size: int = 20,
        analysis_batch_size: int = 15,
    ) -> None:
        self._parser = parser
        self._absolute = absolute_processor
        self._detail_batch_size = detail_batch_size
        self._analysis_batch_size = analysis_batch_size

    # -- details ------------------------------------------------------------

    async def fetch_details(
        self, provider: ProviderPort, api_key: str, candidates: Sequence[Candidate]
    ) -> int:
        """Load video lists in place; returns how many candidates were loaded."""
        pending = [c for c in candidates if needs_details(c)]
        loaded = 0
        for batch in _chunks(pending, self._detail_batch_size):
            outcomes = await asyncio.gather(
                *(self._load_one(provider, api_key, c) for c in batch)
            )
            loaded += sum(outcomes)
        if pending:
            log.info("details_fetched", requested=len(pending), loaded=loaded)
        return loaded

    async def _load_one(
        self, provider: ProviderPort, api_key: str, candidate: Candidate
    ) -> bool:
        try:
            details = await provider.get_details(api_key, candidate.id)
        except Exception:
            log.warning(
                "candidate_details_failed",
                provider=provider.name,
                candidate_id=candidate.id,
                exc_info=True,
            )
            candidate.details_loaded = True
            return False
        except BaseException:
            log.warning("candidate_details_cancelled", candidate_id=candidate.id)
            raise

        candidate.details_loaded = True
        if details is None:
            return False
        candidate.videos = details.videos
        candidate.url = candidate.url or details.url
        return details.videos is not None or details.url is not None

    # -- analysis -----------------------------------------------------------

    async def analyze(
        self,
        candidates: Sequence[Candidate],
        season: int,
        episode: int,
        absolute_episode: int | None = None,
        *,
        anime_mapping: EpisodeMapping | None = None,
    ) -> list[MatchedVideo]:
        """Files among *candidates* that hold ``season``/``episode``.

        Args:
            candidates: Phase 1 matches (or the pre-filtered catalog).
            season: Requested (or remapped) season.
            episode: Requested (or remapped) episode.
            absolute_episode: Canonical absolute number, if known.
            anime_mapping: Attached to every result when set.

        Returns:
            Matched files in candidate order; a container can
            contribute several files.
        """
        loop = asyncio.get_running_loop()
        results: list[MatchedVideo] = []
        for batch in _chunks(candidates, self._analysis_batch_size):
            matched = await loop.run_in_executor(
                None,
                lambda batch=batch: self._analyze_batch(
                    batch, season, episode, absolute_episode, anime_mapping
                ),
            )
            results.extend(matched)
        log.info(
            "content_analysis_complete",
            candidates=len(candidates),
            matches=len(results),
            season=season,
            episode=episode,
            absolute_episode=absolute_episode,
        )
        return results

    def _analyze_batch(
        self,
        batch: Sequence[Candidate],
        season: int,
        episode: int,
        absolute_episode: int | None,
        anime_mapping: EpisodeMapping | None,
    ) -> list[MatchedVideo]:
        results: list[MatchedVideo] = []
        for candidate in batch:
            if candidate.videos is None:
                if not is_video(candidate.name):
                    continue
                parsed = candidate.parsed_info or self._parser.parse(candidate.name)
                if self._is_match(candidate.name, parsed, season, episode, absolute_episode):
                    results.append(
                        replace(
                            candidate_to_match(candidate),
                            parsed_info=parsed,
                            anime_mapping=anime_mapping,
                        )
                    )
                continue

            for video in candidate.videos:
                if video.parsed_info is None:
                    video.parsed_info = self._parser.parse(video.name)
                if self._is_match(
                    video.name, video.parsed_info, season, episode, absolute_episode
                ):
                    results.append(
                        MatchedVideo(
                            id=video.id,
                            source=candidate.source,
                            name=video.name,
                            size=video.size,
                            stream_url=video.stream_url,
                            parsed_info=video.parsed_info,
                            container_name=candidate.name,
                            anime_mapping=anime_mapping,
                            matched_term=candidate.matched_term,
                        )
                    )
        return results

    def _is_match(
        self,
        name: str,
        parsed: ParsedTitle,
        season: int,
        episode: int,
        absolute_episode: int | None,
    ) -> bool:
        if is_episode_match(parsed, season, episode, absolute_episode):
            return True
        return absolute_episode is not None and self._absolute.matches(name, absolute_episode)

    # -- post-processing ----------------------------------------------------

    def stamp_absolute(
        self, mapping: EpisodeMapping | None, results: Sequence[MatchedVideo]
    ) -> list[MatchedVideo]:
        """Run the absolute-episode processor over the result files."""
        if mapping is None or mapping.absolute_episode is None or not results:
            return list(results)
        videos = self._absolute.process(
            mapping,
            [
                VideoFile(
                    id=r.id,
                    name=r.name,
                    size=r.size,
                    stream_url=r.stream_url,
                    parsed_info=r.parsed_info,
                )
                for r in results
            ],
        )
        return [
            replace(
                result,
                parsed_info=video.parsed_info,
                is_absolute_match=video.is_absolute_match,
            )
            for result, video in zip(results, videos)
        ]
