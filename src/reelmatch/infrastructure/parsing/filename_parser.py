"""Filename parser: guessit baseline plus a season/episode decision table.

The numbering decision is a left-to-right chain of pure rule functions.
Each rule gets the immutable parse context and either returns a
definitive :class:`Numbering` or ``None`` ("no decision"); the first
definitive answer wins. The Roman-numeral fallback then runs as a
separate, independently testable refinement.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

import structlog
from guessit import guessit

from reelmatch.domain.entities.media import ParsedTitle, RomanSeasonInfo
from reelmatch.domain.ports.cache import CachePort
from reelmatch.infrastructure.parsing import media_patterns as mp
from reelmatch.infrastructure.parsing.episode_patterns import (
    EPISODE_PATTERNS,
    EpisodeMatch,
    extract_episode_title,
    parse_absolute_episode,
    parse_episode,
    parse_season,
)
from reelmatch.infrastructure.parsing.roman import parse_roman_season

log = structlog.get_logger(__name__)

PARSER_CACHE_TTL = 86_400  # 24 hours

# Bare numbers stay whole episodes ("1015", not S10E15).
GUESSIT_OPTIONS: dict[str, Any] = {"episode_prefer_number": True}

_DOMAIN_PREFIX_RE = re.compile(r"^www\.[a-zA-Z0-9]+\.[a-zA-Z]{2,}[ \-]+", re.IGNORECASE)
_SITE_TAG_PREFIX_RE = re.compile(r"^\[[a-zA-Z0-9 ._]+\][ \-]*")
_OBVIOUS_EPISODE_RE = re.compile(r"- (\d{2,3})\s")


def clean_filename(filename: str) -> str:
    """Strip ``www.site.tld -`` and ``[site.tld]`` prefixes."""
    cleaned = _DOMAIN_PREFIX_RE.sub("", filename)
    return _SITE_TAG_PREFIX_RE.sub("", cleaned)


# ---------------------------------------------------------------------------
# guessit baseline
# ---------------------------------------------------------------------------


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _as_int(value: Any) -> int | None:
    value = _first(value)
    return value if isinstance(value, int) else None


def _as_str(value: Any) -> str | None:
    value = _first(value)
    return str(value) if value not in (None, "") else None


def _run_guessit(filename: str) -> dict[str, Any]:
    try:
        return dict(guessit(filename, dict(GUESSIT_OPTIONS)))
    except Exception:  # noqa: BLE001
        log.warning("guessit_failed", filename=filename, exc_info=True)
        return {}


def _guess_languages(guess: dict[str, Any]) -> list[str]:
    raw = guess.get("language")
    if raw is None:
        return []
    values = raw if isinstance(raw, list) else [raw]
    names: list[str] = []
    for lang in values:
        name = getattr(lang, "name", None) or str(lang)
        if name and name.lower() not in names:
            names.append(name.lower())
    return names


# ---------------------------------------------------------------------------
# Numbering decision table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParseContext:
    """Everything the numbering rules may look at. Never mutated."""

    filename: str
    baseline_season: int | None
    baseline_episode: int | None
    year: int | None
    roman: RomanSeasonInfo | None


@dataclass(frozen=True)
class Numbering:
    season: int | None = None
    episode: int | None = None
    absolute_episode: int | None = None


NumberingRule = Callable[[ParseContext], "Numbering | None"]


def trust_baseline(ctx: ParseContext) -> Numbering | None:
    """Baseline found both numbers: explicit numbering, no absolute."""
    if ctx.baseline_season is not None and ctx.baseline_episode is not None:
        return Numbering(season=ctx.baseline_season, episode=ctx.baseline_episode)
    return None


def infer_absolute(ctx: ParseContext) -> int | None:
    """Absolute number, unless Roman season context or a movie-like year."""
    if ctx.roman is not None:
        return None
    if (
        ctx.year is not None
        and str(ctx.year) in ctx.filename
        and not mp.has_obvious_episode_indicators(ctx.filename)
    ):
        return None
    return parse_absolute_episode(ctx.filename)


def _baseline_episode_is_suspicious(ctx: ParseContext) -> bool:
    m = _OBVIOUS_EPISODE_RE.search(ctx.filename)
    return (
        m is not None
        and ctx.baseline_episode is not None
        and int(m.group(1)) > 50
        and ctx.baseline_episode < 10
    )


def find_episode(ctx: ParseContext) -> tuple[EpisodeMatch | None, int | None]:
    """Episode-pattern table first, then the baseline episode."""
    match = parse_episode(ctx.filename)
    if match is not None:
        return match, match.episode
    if _baseline_episode_is_suspicious(ctx):
        return None, None
    return None, ctx.baseline_episode


def _is_explicit(match: EpisodeMatch) -> bool:
    return EPISODE_PATTERNS[match.pattern].season_group is not None


def resolve_absolute_priority(
    numbering: Numbering, match: EpisodeMatch | None
) -> Numbering:
    """Explicit season/episode beats an inferred absolute number."""
    absolute = numbering.absolute_episode
    if absolute is None:
        return numbering
    if match is not None and _is_explicit(match):
        return Numbering(season=match.season, episode=match.episode)
    if numbering.episode == absolute:
        return numbering
    return replace(numbering, episode=absolute)


def infer_numbering(ctx: ParseContext) -> Numbering:
    """Full inference when the baseline was not conclusive."""
    absolute = infer_absolute(ctx)
    match, episode = find_episode(ctx)
    season = match.season if match is not None else None

    numbering = resolve_absolute_priority(
        Numbering(season=season, episode=episode, absolute_episode=absolute), match
    )
    if numbering.absolute_episode is None and numbering.season is None:
        detected = parse_season(ctx.filename, strict=False)
        numbering = replace(
            numbering,
            season=detected if detected is not None else ctx.baseline_season,
        )
    return numbering


NUMBERING_RULES: tuple[NumberingRule, ...] = (trust_baseline, infer_numbering)


def decide_numbering(
    ctx: ParseContext, rules: Sequence[NumberingRule] = NUMBERING_RULES
) -> Numbering:
    for rule in rules:
        decision = rule(ctx)
        if decision is not None:
            return decision
    return Numbering()


def apply_roman_fallback(ctx: ParseContext, numbering: Numbering) -> Numbering:
    """Use the Roman season when numbering is missing or a suspicious default.

    Only when no absolute number survived; Roman seasons are
    season-relative, so accepting one clears the absolute number.
    """
    roman = ctx.roman
    if roman is None or numbering.absolute_episode is not None:
        return numbering
    if (
        numbering.season is None
        or numbering.episode is None
        or (numbering.season == 1 and roman.season > 1)
    ):
        return Numbering(season=roman.season, episode=roman.episode)
    return numbering


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def parse_filename(filename: str) -> ParsedTitle:
    """Parse one filename without caching."""
    if not filename or not filename.strip():
        return ParsedTitle()

    cleaned = clean_filename(filename)
    guess = _run_guessit(cleaned)

    ctx = ParseContext(
        filename=cleaned,
        baseline_season=_as_int(guess.get("season")),
        baseline_episode=_as_int(guess.get("episode")),
        year=_as_int(guess.get("year")),
        roman=parse_roman_season(cleaned),
    )
    numbering = apply_roman_fallback(ctx, decide_numbering(ctx))

    languages = _guess_languages(guess)
    for lang in mp.all_matches(mp.LANGUAGE_PATTERNS, cleaned):
        if lang.lower() not in languages:
            languages.append(lang.lower())

    return ParsedTitle(
        title=_as_str(guess.get("title")) or "",
        season=numbering.season,
        episode=numbering.episode,
        absolute_episode=numbering.absolute_episode,
        year=ctx.year,
        resolution=_as_str(guess.get("screen_size"))
        or mp.first_match(mp.QUALITY_PATTERNS, cleaned),
        source_tag=mp.first_match(mp.SOURCE_PATTERNS, cleaned)
        or _as_str(guess.get("source")),
        codec=_as_str(guess.get("video_codec"))
        or mp.first_match(mp.CODEC_PATTERNS, cleaned),
        audio_tag=mp.first_match(mp.AUDIO_PATTERNS, cleaned)
        or _as_str(guess.get("audio_codec")),
        audio_channels=mp.extract_audio_channels(cleaned),
        bit_depth=mp.first_match(mp.BIT_DEPTH_PATTERNS, cleaned),
        hdr=mp.first_match(mp.HDR_PATTERNS, cleaned),
        frame_rate=mp.first_match(mp.FRAME_RATE_PATTERNS, cleaned),
        languages=tuple(languages),
        release_group=_as_str(guess.get("release_group")),
        episode_title=extract_episode_title(cleaned)
        or _as_str(guess.get("episode_title")),
        container=_as_str(guess.get("container")),
        roman_season_info=ctx.roman,
    )


class FilenameParser:
    """Cached front-end to :func:`parse_filename`.

    Results are stored under ``parser:{filename}`` and, when cleaning
    changed the name, under ``parser:{cleaned}`` as well.
    """

    def __init__(self, cache: CachePort, *, ttl_seconds: int = PARSER_CACHE_TTL) -> None:
        self._cache = cache
        self._ttl = ttl_seconds

    def parse(self, filename: str) -> ParsedTitle:
        if not filename or not filename.strip():
            return ParsedTitle()

        key = f"parser:{filename}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        cleaned = clean_filename(filename)
        cleaned_key = f"parser:{cleaned}"
        if cleaned != filename:
            cached = self._cache.get(cleaned_key)
            if cached is not None:
                self._cache.set(key, cached, self._ttl, {"type": "parser"})
                return cached

        result = parse_filename(filename)
        self._cache.set(key, result, self._ttl, {"type": "parser"})
        if cleaned != filename:
            self._cache.set(cleaned_key, result, self._ttl, {"type": "parser"})
        return result

    def parse_many(self, filenames: Sequence[str]) -> list[ParsedTitle]:
        """Parse a batch; meant to run in an executor thread."""
        return [self.parse(name) for name in filenames]
