"""Season, episode and absolute-episode detection.

Pure functions over ordered pattern tables. The order of every table is
part of the contract: the first structurally valid match wins, and
downstream matching depends on which pattern claims a substring.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import structlog

from reelmatch.domain.entities.media import ParsedTitle
from reelmatch.infrastructure.parsing.media_patterns import (
    VIDEO_EXTENSIONS,
    strip_video_extension,
)
from reelmatch.infrastructure.parsing.roman import parse_roman_season, roman_to_int

log = structlog.get_logger(__name__)

_I = re.IGNORECASE

# Library-wide accepted ranges.
MIN_SEASON = 0
MAX_SEASON = 30
MIN_EPISODE = 1
MAX_EPISODE = 999
MIN_ABSOLUTE = 1
MAX_ABSOLUTE = 9999

# Season *detection* is stricter than the library-wide bound: numbers
# above 20 next to a delimiter are almost always absolute episodes.
MAX_DETECTED_SEASON = 20

_WHITESPACE_RE = re.compile(r"\s+")
_BRACKETS_RE = re.compile(r"[\[\](){}]")


def normalize_text(text: str) -> str:
    """Collapse whitespace and turn brackets into spaces."""
    if not text:
        return ""
    return _BRACKETS_RE.sub(" ", _WHITESPACE_RE.sub(" ", text)).strip()


# ---------------------------------------------------------------------------
# Season patterns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _SeasonPattern:
    name: str
    regex: re.Pattern[str]
    roman: bool = False


SEASON_PATTERNS: list[_SeasonPattern] = [
    _SeasonPattern("ordinal_season", re.compile(r"\b(\d+)(?:st|nd|rd|th)[\s.-]*season", _I)),
    _SeasonPattern("standard", re.compile(r"s(?:eason[\s.-]*)?0*(\d{1,2})", _I)),
    _SeasonPattern("season_episode_extract", re.compile(r"S(\d+)E\d+", _I)),
    _SeasonPattern("season_word_spaced", re.compile(r"Season\s*(\d+)", _I)),
    _SeasonPattern("season_standalone", re.compile(r"\b(?:S|Season)(\d{1,2})\b", _I)),
    _SeasonPattern("french_season", re.compile(r"(?:saison|s[ae][\s.-]*?)(\d{1,2})", _I)),
    _SeasonPattern("german_season", re.compile(r"staffel[\s.-]*(\d{1,2})", _I)),
    _SeasonPattern("spanish_season", re.compile(r"temporada[\s.-]*(\d{1,2})", _I)),
    _SeasonPattern("italian_season", re.compile(r"stagione[\s.-]*(\d{1,2})", _I)),
    _SeasonPattern("japanese_season", re.compile(r"(?:シーズン|シリーズ)[\s.-]*(\d{1,2})", _I)),
    _SeasonPattern(
        "roman_season",
        re.compile(r"(?:season|saison|serie|temporada|staffel)[\s.-]*([IVX]+)", _I),
        roman=True,
    ),
    _SeasonPattern("plain_number", re.compile(r"[\s.-](\d{1,2})[ex]", _I)),
    _SeasonPattern("zero_padded", re.compile(r"[\s.-]0*(\d{1,2})[ex\s]", _I)),
    _SeasonPattern(
        "season_folder",
        re.compile(r"[\\/](?:s(?:eason)?|saison)[\s.-]*(\d{1,2})[\\/]", _I),
    ),
]  # fmt: skip

RELIABLE_SEASON_PATTERNS: frozenset[str] = frozenset(
    {"ordinal_season", "standard", "season_word_spaced", "season_folder"}
)

# Reliable patterns first, declaration order kept within each group.
_SEASON_PATTERNS_BY_PRIORITY: list[_SeasonPattern] = sorted(
    SEASON_PATTERNS, key=lambda p: p.name not in RELIABLE_SEASON_PATTERNS
)
_STRICT_SEASON_PATTERNS: list[_SeasonPattern] = [
    p for p in SEASON_PATTERNS if p.name in RELIABLE_SEASON_PATTERNS
]


def parse_season(text: str, strict: bool = False) -> int | None:
    """Detect a season number in *text*.

    Roman seasons are checked first. In *strict* mode only the reliable
    patterns are consulted. Values outside ``[0, 20]`` are skipped and the
    next pattern is tried.
    """
    if not text:
        return None

    roman = parse_roman_season(text)
    if roman is not None:
        return roman.season

    normalized = normalize_text(text)
    patterns = _STRICT_SEASON_PATTERNS if strict else _SEASON_PATTERNS_BY_PRIORITY
    for pattern in patterns:
        m = pattern.regex.search(normalized)
        if m is None or not m.group(1):
            continue
        number = roman_to_int(m.group(1)) if pattern.roman else int(m.group(1))
        if number is not None and MIN_SEASON <= number <= MAX_DETECTED_SEASON:
            return number
    return None


# ---------------------------------------------------------------------------
# Episode patterns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EpisodeMatch:
    season: int
    episode: int
    pattern: str


@dataclass(frozen=True)
class _EpisodePattern:
    name: str
    regex: re.Pattern[str]
    season_group: int | None
    episode_group: int
    default_season: int | None = None
    skip_resolution: bool = False
    roman_season: bool = False


EPISODE_PATTERNS: dict[str, _EpisodePattern] = {
    p.name: p
    for p in (
        _EpisodePattern("season_episode", re.compile(r"[Ss](\d+)[Ee](\d+)"), 1, 2),
        _EpisodePattern("season_episode_dash", re.compile(r"[Ss](\d+)\s*-\s*(\d+)"), 1, 2),
        _EpisodePattern(
            "number_x_number",
            re.compile(r"\b(\d{1,2})x(\d{1,3})\b"),
            1,
            2,
            skip_resolution=True,
        ),
        _EpisodePattern(
            "anime_dash_number",
            re.compile(r"(.+?)\s*-\s*(\d{2,3})(?:\s*\([^)]*\))?"),
            None,
            2,
            default_season=1,
        ),
        _EpisodePattern(
            "written_season_episode",
            re.compile(r"Season\s+(\d+)[\s\-]+Episode\s+(\d+)", _I),
            1,
            2,
        ),
        _EpisodePattern(
            "roman_season_written_episode",
            re.compile(r"Season\s+([IVX]+)\s+Episode\s+(\d+)", _I),
            1,
            2,
            roman_season=True,
        ),
        _EpisodePattern("episode_only", re.compile(r"[Ee](\d+)"), None, 1, default_season=1),
    )
}  # fmt: skip

# The generic anime dash form goes last: it only applies without season info.
EPISODE_PATTERN_PRIORITY: tuple[str, ...] = (
    "season_episode",
    "written_season_episode",
    "number_x_number",
    "season_episode_dash",
    "episode_only",
    "anime_dash_number",
)

AVOID_EPISODE_RE = re.compile(
    r"\(([1-3])\)\.(" + "|".join(sorted(VIDEO_EXTENSIONS)) + r")$", _I
)


def _looks_like_resolution(first: int, second: int) -> bool:
    return (
        (first >= 640 and second >= 480)
        or (first >= 320 and second >= 240)
        or (first, second) in {(1920, 1080), (1280, 720), (3840, 2160), (2560, 1440)}
    )


def parse_episode(text: str) -> EpisodeMatch | None:
    """Find an explicit season/episode pair in *text*.

    Patterns without a season group fall back to season 1. Seasons must
    lie in ``[0, 30]`` and episodes in ``[1, 999]``.
    """
    if not text:
        return None

    normalized = normalize_text(text)
    for name in EPISODE_PATTERN_PRIORITY:
        pattern = EPISODE_PATTERNS[name]
        m = pattern.regex.search(normalized)
        if m is None:
            continue

        if pattern.skip_resolution and _looks_like_resolution(
            int(m.group(1)), int(m.group(2))
        ):
            continue

        season: int | None = None
        if pattern.season_group is not None and m.group(pattern.season_group):
            raw = m.group(pattern.season_group)
            season = roman_to_int(raw) if pattern.roman_season else int(raw)
        elif pattern.default_season is not None:
            season = pattern.default_season

        raw_episode = m.group(pattern.episode_group)
        episode = int(raw_episode) if raw_episode else None

        if (
            season is not None
            and episode is not None
            and MIN_SEASON <= season <= MAX_SEASON
            and MIN_EPISODE <= episode <= MAX_EPISODE
        ):
            return EpisodeMatch(season=season, episode=episode, pattern=name)
    return None


def should_avoid_episode_parse(name: str) -> bool:
    """True for duplicate-copy names like ``Movie (2).mkv``."""
    return bool(AVOID_EPISODE_RE.search(name))


# ---------------------------------------------------------------------------
# Absolute-episode patterns
# ---------------------------------------------------------------------------

_RELEASE_WORDS = r"multi|bluray|1080p|720p|x264|x265|web|dl|hdtv"


@dataclass(frozen=True)
class _AbsolutePattern:
    name: str
    regex: re.Pattern[str]
    episode_group: int


ABSOLUTE_PATTERNS: tuple[_AbsolutePattern, ...] = (
    # One.Piece.1015.1080p
    _AbsolutePattern("four_digit_between_dots", re.compile(r"\b(\d{4})\b.*\s"), 1),
    # Naruto.142.Title.1080p
    _AbsolutePattern(
        "three_to_four_digit_with_quality",
        re.compile(rf"\.(\d{{3,4}})\..*(?:{_RELEASE_WORDS})", _I),
        1,
    ),
    # Title - 030 MULTI
    _AbsolutePattern(
        "dash_number",
        re.compile(rf"[-\s](\d{{2,4}})(?:\s+(?:{_RELEASE_WORDS}|$))", _I),
        1,
    ),
    _AbsolutePattern("episode_prefix_enhanced", re.compile(r"Episode\s*(\d{2,4})", _I), 1),
    _AbsolutePattern(
        "title_number_with_dots",
        re.compile(r"(\w+(?:\.\w+)*?)\.(\d{3,4})(?:\.|$)", _I),
        2,
    ),
    _AbsolutePattern("title_number_spaced", re.compile(r"(\w+)\s+(\d{3,4})(?:\s|$)", _I), 2),
    _AbsolutePattern(
        "episode_prefix", re.compile(r"(?:ep|episode)\s*(\d{2,4})(?:\s|$)", _I), 1
    ),
    _AbsolutePattern(
        "title_number_generic", re.compile(r"(\w+)\s+(\d{2,4})(?:\s|$)", _I), 2
    ),
    _AbsolutePattern(
        "title_dash_number", re.compile(r"(\w+)\s*-\s*(\d{2,4})(?:\s|$)", _I), 2
    ),
    _AbsolutePattern("number_dash_title", re.compile(r"^(\d{2,4})\s*-\s*(.+)", _I), 1),
    _AbsolutePattern(
        "before_quality",
        re.compile(rf"^([^0-9]*?)(\d{{2,4}})(?:\s+(?:{_RELEASE_WORDS}))", _I),
        2,
    ),
    _AbsolutePattern("absolute_only", re.compile(r"\b(\d{3,4})\s"), 1),
)  # fmt: skip

_YEAR_BEFORE_SE_RE = re.compile(r"\(\d{4}\).*?S\d+E\d+", _I)
_EXPLICIT_SE_RE = re.compile(r"S\d+E\d+", _I)
_ABSOLUTE_DIGITS_RE = re.compile(r"^\d{2,4}$")


def parse_absolute_episode(text: str) -> int | None:
    """Infer an absolute (cross-season) episode number from *text*.

    Refuses whenever explicit numbering exists: an ``SxxEyy`` marker or a
    season detected by the reliable season patterns.
    """
    if not text:
        return None

    cleaned = strip_video_extension(text)
    if _YEAR_BEFORE_SE_RE.search(cleaned) or _EXPLICIT_SE_RE.search(cleaned):
        return None
    if parse_season(cleaned, strict=True) is not None:
        return None

    for pattern in ABSOLUTE_PATTERNS:
        m = pattern.regex.search(cleaned)
        if m is None:
            continue
        raw = m.group(pattern.episode_group)
        if raw and _ABSOLUTE_DIGITS_RE.match(raw):
            number = int(raw)
            if MIN_ABSOLUTE <= number <= MAX_ABSOLUTE:
                log.debug("absolute_episode_found", episode=number, pattern=pattern.name)
                return number
    return None


# ---------------------------------------------------------------------------
# Episode titles
# ---------------------------------------------------------------------------

EPISODE_TITLE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"''(.*?)''"),
    re.compile(r'"([^"]+)"'),
)


def extract_episode_title(text: str) -> str | None:
    """Quoted episode title, e.g. ``Show - 05 ''The Return''.mkv``."""
    if not text:
        return None
    for pattern in EPISODE_TITLE_PATTERNS:
        m = pattern.search(text)
        if m and m.group(1):
            title = normalize_text(m.group(1).strip())
            if len(title) > 2:
                return title
    return None


# ---------------------------------------------------------------------------
# Matching helpers
# ---------------------------------------------------------------------------


def check_season_match(found: int | None, target: int | None) -> bool:
    if found is None or target is None:
        return False
    return int(found) == int(target)


def is_episode_match(
    parsed: ParsedTitle,
    season: int,
    episode: int,
    absolute_episode: int | None = None,
) -> bool:
    """Does *parsed* denote ``season``/``episode`` (or the absolute number)?

    A parsed name with an episode but no season counts as season 1.
    """
    found_season = parsed.season
    if found_season is None and parsed.episode is not None:
        found_season = 1
    if (
        found_season is not None
        and MIN_SEASON <= found_season <= MAX_SEASON
        and check_season_match(found_season, season)
        and parsed.episode == episode
    ):
        return True
    if absolute_episode is None:
        return False
    return parsed.absolute_episode is not None and parsed.absolute_episode == absolute_episode
