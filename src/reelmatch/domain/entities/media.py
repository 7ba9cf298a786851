"""Domain entities for cloud-storage content matching.

Pure value objects. No I/O, no framework dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal

from reelmatch.domain.exceptions import (
    InvalidSearchRequestError,
    UnsupportedProviderError,
)

ContentType = Literal["movie", "series"]


class ProviderKind(str, Enum):
    """Supported cloud/debrid providers."""

    ALL_DEBRID = "AllDebrid"
    DEBRID_LINK = "DebridLink"
    PREMIUMIZE = "Premiumize"
    REAL_DEBRID = "RealDebrid"
    TORBOX = "TorBox"

    @classmethod
    def parse(cls, name: str) -> ProviderKind:
        """Resolve a provider name case-insensitively.

        Raises:
            UnsupportedProviderError: If *name* is not a known provider.
        """
        wanted = name.strip().lower()
        for kind in cls:
            if kind.value.lower() == wanted:
                return kind
        raise UnsupportedProviderError(f"Unsupported provider: {name!r}")


class FileKind(Enum):
    """What a provider listing holds: cached torrents or direct downloads."""

    TORRENTS = "torrents"
    DOWNLOADS = "downloads"


class SearchPhase(str, Enum):
    """States of a search; each query moves strictly forward."""

    PREPARING = "preparing"
    TITLE_MATCHING = "title_matching"
    CONTENT_ANALYSIS = "content_analysis"
    ANIME_FALLBACK = "anime_fallback"
    DONE = "done"


# ---------------------------------------------------------------------------
# Parsed filename metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RomanSeasonInfo:
    """Season written as a Roman numeral, e.g. ``Title II - 05``."""

    season: int
    episode: int
    roman_text: str
    full_match: str


@dataclass(frozen=True)
class ParsedTitle:
    """Structured metadata extracted from a release filename.

    ``season``/``episode`` come from an explicit pattern when one exists;
    ``absolute_episode`` is only set when no explicit pair was found.
    """

    title: str = ""
    season: int | None = None
    episode: int | None = None
    absolute_episode: int | None = None
    year: int | None = None
    resolution: str | None = None
    source_tag: str | None = None
    codec: str | None = None
    audio_tag: str | None = None
    audio_channels: str | None = None
    bit_depth: str | None = None
    hdr: str | None = None
    frame_rate: str | None = None
    languages: tuple[str, ...] = ()
    release_group: str | None = None
    episode_title: str | None = None
    container: str | None = None
    roman_season_info: RomanSeasonInfo | None = None
    mapped_by_absolute: bool = False


# ---------------------------------------------------------------------------
# Search input / output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SearchRequest:
    """One user query: a known title plus optional episode coordinates."""

    title: str
    content_type: ContentType
    provider: ProviderKind
    api_key: str
    imdb_id: str | None = None
    season: int | None = None
    episode: int | None = None
    fuzzy_threshold: float = 0.3

    @property
    def is_episode_query(self) -> bool:
        return (
            self.content_type == "series"
            and self.season is not None
            and self.episode is not None
        )

    def validate(self) -> None:
        """Reject inconsistent input before any work starts.

        Raises:
            InvalidSearchRequestError: On blank title, threshold outside
                ``[0, 1]``, negative numbers or half-specified episodes.
        """
        if not self.title.strip():
            raise InvalidSearchRequestError("title must not be empty")
        if not 0.0 <= self.fuzzy_threshold <= 1.0:
            raise InvalidSearchRequestError(
                f"fuzzy_threshold must be within [0, 1], got {self.fuzzy_threshold}"
            )
        for label, value in (("season", self.season), ("episode", self.episode)):
            if value is not None and value < 0:
                raise InvalidSearchRequestError(f"{label} must be >= 0, got {value}")
        if self.content_type == "series" and (self.season is None) != (
            self.episode is None
        ):
            raise InvalidSearchRequestError(
                "series queries need both season and episode, or neither"
            )


@dataclass(frozen=True)
class EpisodeMapping:
    """Correspondence between two numberings of the same episode.

    Produced by the episode-mapping service (absolute numbering) and by
    the anime season remap.
    """

    original_season: int
    original_episode: int
    mapped_season: int
    mapped_episode: int
    absolute_episode: int | None = None
    source_title: str | None = None
    is_fallback: bool = False


@dataclass(frozen=True)
class AlternateTitle:
    """Title variant in another locale (``XX`` = unknown country)."""

    title: str
    country_code: str = "XX"


@dataclass(frozen=True)
class AnimeSeason:
    """One season entry from the anime database, in air-date order."""

    title: str
    episode_count: int
    aired_date: str
    season_label: str
    media_type: str = "TV"
    mal_id: int | None = None


# ---------------------------------------------------------------------------
# Provider items (mutable, enriched across phases)
# ---------------------------------------------------------------------------


@dataclass
class VideoFile:
    """A single playable file inside a container item."""

    id: str
    name: str
    size: int = 0
    stream_url: str | None = None
    parsed_info: ParsedTitle | None = None
    is_absolute_match: bool = False
    absolute_mapping: EpisodeMapping | None = None


@dataclass
class Candidate:
    """An item from the user's provider catalog.

    Either a container (``videos`` is a list once details are loaded) or
    a direct item (``url`` set, ``videos`` stays ``None``).
    """

    id: str
    name: str
    source: str
    size: int = 0
    created_at: datetime | None = None
    file_kind: FileKind = FileKind.TORRENTS
    videos: list[VideoFile] | None = None
    parsed_info: ParsedTitle | None = None
    url: str | None = None
    matched_term: str | None = None
    match_score: float | None = None
    details_loaded: bool = False


@dataclass(frozen=True)
class MatchedVideo:
    """A file confirmed to contain the requested content."""

    id: str
    source: str
    name: str
    size: int = 0
    stream_url: str | None = None
    parsed_info: ParsedTitle | None = None
    container_name: str | None = None
    anime_mapping: EpisodeMapping | None = None
    matched_term: str | None = None
    is_absolute_match: bool = False


@dataclass(frozen=True)
class SearchOutcome:
    """Final answer of one query plus the phases it visited."""

    results: tuple[MatchedVideo, ...] = ()
    absolute_episode: EpisodeMapping | None = None
    phases: tuple[SearchPhase, ...] = ()
