"""Ports for external metadata services."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from reelmatch.domain.entities.media import (
    AlternateTitle,
    AnimeSeason,
    ContentType,
    EpisodeMapping,
)


@runtime_checkable
class EpisodeMappingPort(Protocol):
    """Resolves the canonical absolute number of a series episode."""

    async def resolve_absolute_episode(
        self, imdb_id: str, season: int, episode: int
    ) -> EpisodeMapping | None:
        """None when the service does not know the episode."""
        ...


@runtime_checkable
class AlternateTitlesPort(Protocol):
    """Looks up localized titles of a work."""

    async def fetch_alternate_titles(
        self, imdb_id: str, content_type: ContentType
    ) -> list[AlternateTitle]:
        ...


@runtime_checkable
class AnimeSeasonsPort(Protocol):
    """Lists the seasons of an anime in air-date order."""

    async def fetch_anime_seasons(self, title_query: str) -> list[AnimeSeason]:
        ...
