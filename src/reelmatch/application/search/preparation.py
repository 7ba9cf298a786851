"""Phase 0: gather metadata signals and build the search terms.

The absolute-episode lookup and the alternate-title lookup run
concurrently. Either one failing only removes its signal; the query
continues with what is left.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TypeVar

import structlog

from reelmatch.domain.entities.media import (
    AlternateTitle,
    EpisodeMapping,
    SearchRequest,
)
from reelmatch.domain.ports.metadata import AlternateTitlesPort, EpisodeMappingPort
from reelmatch.infrastructure.parsing.keywords import extract_keywords

log = structlog.get_logger(__name__)

_T = TypeVar("_T")


@dataclass(frozen=True)
class PreparedQuery:
    """Everything the later phases need besides the request itself."""

    terms: tuple[str, ...]
    episode_keywords: tuple[str, ...] = ()
    title_variants: tuple[str, ...] = ()
    alternate_titles: tuple[AlternateTitle, ...] = ()
    absolute_episode: EpisodeMapping | None = None

    @property
    def keyword_title(self) -> str:
        """Keyword form of the requested title, used for provider-side search."""
        title = self.terms[0] if self.terms else ""
        return extract_keywords(title) or title


# ---------------------------------------------------------------------------
# Pure builders
# ---------------------------------------------------------------------------


def _dedupe(values: Iterable[str]) -> list[str]:
    """Drop blanks and case-insensitive repeats, keeping the first casing."""
    seen: set[str] = set()
    kept: list[str] = []
    for value in values:
        text = value.strip()
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        kept.append(text)
    return kept


def title_variants(title: str) -> list[str]:
    """Spelling variants of *title* (``&`` written out as ``and``)."""
    if "&" not in title:
        return []
    variant = " ".join(title.replace("&", " and ").split())
    return [variant] if variant.lower() != title.lower() else []


def build_search_terms(
    title: str,
    aliases: Sequence[str] = (),
    alternates: Sequence[AlternateTitle] = (),
) -> list[str]:
    """Ordered, case-insensitively unique list of terms to match against.

    Raw title, aliases and alternate titles come first; their keyword
    forms follow, then the ``&``/``and`` variants of the title.
    """
    raw = [title, *aliases, *(a.title for a in alternates)]
    variants = title_variants(title)
    return _dedupe(
        [
            *raw,
            *(extract_keywords(t) for t in raw),
            *variants,
            *(extract_keywords(v) for v in variants),
        ]
    )


def build_episode_keywords(
    season: int | None,
    episode: int | None,
    absolute_episode: int | None = None,
) -> list[str]:
    """Episode tokens such as ``S01E05`` plus the absolute number forms."""
    if season is None or episode is None:
        return []
    keywords = [f"S{season:02d}E{episode:02d}"]
    if absolute_episode is not None and absolute_episode != episode:
        keywords.extend([f"{absolute_episode:03d}", str(absolute_episode)])
    return _dedupe(keywords)


# ---------------------------------------------------------------------------
# Preparer
# ---------------------------------------------------------------------------


class QueryPreparer:
    """Runs phase 0 for one request.

    *episode_mapper* and *title_lookup* are optional: a missing
    collaborator simply never produces its signal.
    """

    def __init__(
        self,
        *,
        episode_mapper: EpisodeMappingPort | None,
        title_lookup: AlternateTitlesPort | None,
        manual_aliases: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self._episode_mapper = episode_mapper
        self._title_lookup = title_lookup
        self._manual_aliases = dict(manual_aliases or {})

    async def prepare(self, request: SearchRequest) -> PreparedQuery:
        absolute, alternates = await asyncio.gather(
            self._resolve_absolute(request),
            self._alternate_titles(request),
        )
        aliases = self._manual_aliases.get(request.imdb_id or "", [])
        terms = build_search_terms(request.title, aliases, alternates)
        prepared = PreparedQuery(
            terms=tuple(terms),
            episode_keywords=tuple(
                build_episode_keywords(
                    request.season,
                    request.episode,
                    absolute.absolute_episode if absolute is not None else None,
                )
            ),
            title_variants=tuple(title_variants(request.title)),
            alternate_titles=tuple(alternates),
            absolute_episode=absolute,
        )
        log.info(
            "phase0_complete",
            terms=len(prepared.terms),
            alternate_titles=len(alternates),
            absolute_episode=absolute.absolute_episode if absolute else None,
        )
        return prepared

    async def _resolve_absolute(self, request: SearchRequest) -> EpisodeMapping | None:
        if (
            self._episode_mapper is None
            or not request.imdb_id
            or request.season is None
            or request.episode is None
            or request.content_type != "series"
        ):
            return None
        return await _degrade(
            self._episode_mapper.resolve_absolute_episode(
                request.imdb_id, request.season, request.episode
            ),
            default=None,
            signal="absolute_episode",
        )

    async def _alternate_titles(self, request: SearchRequest) -> list[AlternateTitle]:
        if self._title_lookup is None or not request.imdb_id:
            return []
        return await _degrade(
            self._title_lookup.fetch_alternate_titles(
                request.imdb_id, request.content_type
            ),
            default=[],
            signal="alternate_titles",
        )


async def _degrade(awaitable: Awaitable[_T], *, default: _T, signal: str) -> _T:
    """Await *awaitable*; on failure log it and fall back to *default*."""
    try:
        return await awaitable
    except Exception:
        log.warning("metadata_signal_unavailable", signal=signal, exc_info=True)
        return default
    except BaseException:
        log.warning("metadata_signal_cancelled", signal=signal)
        raise
