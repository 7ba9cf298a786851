"""Reconcile a canonical absolute episode number against video filenames."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, replace

import structlog

from reelmatch.domain.entities.media import EpisodeMapping, ParsedTitle, VideoFile
from reelmatch.domain.ports.cache import CachePort
from reelmatch.infrastructure.parsing.episode_patterns import parse_season
from reelmatch.infrastructure.parsing.roman import parse_roman_season

log = structlog.get_logger(__name__)

ABSOLUTE_CACHE_TTL = 86_400  # filenames never change once observed

_EXPLICIT_SEASON_EPISODE_RE = re.compile(r"s(\d+)(?:e(\d+)|\s*-\s*(\d+))")


def _number_patterns(number: int) -> list[re.Pattern[str]]:
    n = str(number)
    return [
        re.compile(rf"\b0*{n}\b"),
        re.compile(rf"[-.]0*{n}[.\s-]"),
        re.compile(rf"(?:episode|ep)\s*0*{n}\b", re.IGNORECASE),
        re.compile(rf"\.0*{n}\."),
    ]


def matches_absolute_number(filename: str, absolute_number: int) -> bool:
    """Uncached check whether *filename* denotes *absolute_number*.

    Any explicit season context (Roman season, ``SxxEyy``, ``Sxx - yy``
    or a detected season indicator) makes the answer ``False``.
    """
    if not filename or absolute_number < 1:
        return False
    if parse_roman_season(filename) is not None:
        return False
    if _EXPLICIT_SEASON_EPISODE_RE.search(filename.lower()):
        return False
    if parse_season(filename) is not None:
        return False
    return any(p.search(filename) for p in _number_patterns(absolute_number))


@dataclass(frozen=True)
class AbsoluteValidation:
    valid: bool
    absolute_episode: int | None
    match_count: int
    total_videos: int
    matches: tuple[str, ...] = ()


@dataclass(frozen=True)
class AbsoluteProcessingStats:
    total_videos: int
    absolute_matches: int
    mapped: int
    has_absolute_episodes: bool
    match_percentage: float


class AbsoluteEpisodeProcessor:
    """Applies an externally resolved absolute episode to parsed videos.

    Match decisions are memoised under ``absolute:{filename}:{n}``.
    """

    def __init__(
        self, cache: CachePort, *, ttl_seconds: int = ABSOLUTE_CACHE_TTL
    ) -> None:
        self._cache = cache
        self._ttl = ttl_seconds

    def matches(self, filename: str, absolute_number: int) -> bool:
        if not filename or absolute_number < 1:
            return False
        key = f"absolute:{filename}:{absolute_number}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        result = matches_absolute_number(filename, absolute_number)
        self._cache.set(key, result, self._ttl, {"type": "absolute-episode"})
        return result

    def process(
        self, mapping: EpisodeMapping | None, videos: Sequence[VideoFile]
    ) -> list[VideoFile]:
        """Stamp the canonical season/episode onto every matching video.

        Non-matching videos pass through unchanged. Returns new objects;
        the inputs are not modified.
        """
        if mapping is None or mapping.absolute_episode is None:
            return list(videos)

        absolute = mapping.absolute_episode
        processed: list[VideoFile] = []
        match_count = 0
        for video in videos:
            if not self.matches(video.name, absolute):
                processed.append(video)
                continue
            match_count += 1
            info = video.parsed_info or ParsedTitle()
            processed.append(
                replace(
                    video,
                    is_absolute_match=True,
                    absolute_mapping=mapping,
                    parsed_info=replace(
                        info,
                        season=mapping.mapped_season,
                        episode=mapping.mapped_episode,
                        absolute_episode=absolute,
                        mapped_by_absolute=True,
                    ),
                )
            )

        log.debug(
            "absolute_episodes_processed",
            absolute_episode=absolute,
            matches=match_count,
            total=len(processed),
        )
        return processed

    @staticmethod
    def validate(
        mapping: EpisodeMapping | None, videos: Sequence[VideoFile]
    ) -> AbsoluteValidation:
        if mapping is None or mapping.absolute_episode is None:
            return AbsoluteValidation(
                valid=True, absolute_episode=None, match_count=0, total_videos=len(videos)
            )
        hits = [v for v in videos if v.is_absolute_match]
        return AbsoluteValidation(
            valid=bool(hits),
            absolute_episode=mapping.absolute_episode,
            match_count=len(hits),
            total_videos=len(videos),
            matches=tuple(v.name for v in hits),
        )

    @staticmethod
    def stats(videos: Sequence[VideoFile]) -> AbsoluteProcessingStats:
        total = len(videos)
        hits = sum(1 for v in videos if v.is_absolute_match)
        mapped = sum(
            1 for v in videos if v.parsed_info is not None and v.parsed_info.mapped_by_absolute
        )
        return AbsoluteProcessingStats(
            total_videos=total,
            absolute_matches=hits,
            mapped=mapped,
            has_absolute_episodes=hits > 0,
            match_percentage=round(hits / total * 100, 1) if total else 0.0,
        )
