"""Composition root: builds the cache, the shared HTTP client and the coordinator."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
import structlog

from reelmatch.application.use_cases.coordinate_search import SearchCoordinator
from reelmatch.domain.ports.cache import CachePort
from reelmatch.domain.ports.metadata import AlternateTitlesPort, EpisodeMappingPort
from reelmatch.infrastructure.cache.ttl_cache import TtlCache
from reelmatch.infrastructure.common.rate_limiter import HostRateLimiter
from reelmatch.infrastructure.common.retry_transport import RetryTransport
from reelmatch.infrastructure.config.schema import AppConfig
from reelmatch.infrastructure.metadata.cinemeta import HttpxCinemetaClient
from reelmatch.infrastructure.metadata.jikan import (
    JIKAN_HOST,
    JIKAN_REQUESTS_PER_SECOND,
    HttpxJikanClient,
)
from reelmatch.infrastructure.metadata.tmdb import HttpxTmdbClient
from reelmatch.infrastructure.metadata.trakt import HttpxTraktClient
from reelmatch.infrastructure.parsing.absolute_episode import AbsoluteEpisodeProcessor
from reelmatch.infrastructure.parsing.filename_parser import FilenameParser
from reelmatch.infrastructure.providers.registry import default_registry

log = structlog.get_logger(__name__)


def build_cache(config: AppConfig) -> TtlCache:
    return TtlCache(
        max_size=config.cache.max_size,
        default_ttl_seconds=config.cache.default_ttl_seconds,
        sweep_interval_seconds=config.cache.sweep_interval_seconds,
    )


def build_http_client(config: AppConfig) -> httpx.AsyncClient:
    """Shared client: retries 429/5xx and paces the rate-limited hosts."""
    transport = RetryTransport(
        httpx.AsyncHTTPTransport(),
        HostRateLimiter(
            per_host={JIKAN_HOST: JIKAN_REQUESTS_PER_SECOND},
            adaptive=config.http.rate_limit_adaptive,
        ),
        max_retries=config.http.max_retries,
        backoff_base=config.http.backoff_base,
        max_backoff=config.http.max_backoff,
    )
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(config.http.timeout_seconds),
        headers={"User-Agent": config.http.user_agent},
        follow_redirects=True,
    )


def build_coordinator(
    config: AppConfig,
    http_client: httpx.AsyncClient,
    cache: CachePort,
) -> SearchCoordinator:
    """Wire parser, processor, metadata clients and providers.

    Alternate titles need the TMDB key; absolute-episode resolution needs
    both the TMDB and the Trakt key. Anime seasons and the Cinemeta
    season counts are keyless.
    """
    title_lookup: AlternateTitlesPort | None = None
    if config.tmdb_api_key:
        title_lookup = HttpxTmdbClient(
            api_key=config.tmdb_api_key, http_client=http_client, cache=cache
        )

    episode_mapper: EpisodeMappingPort | None = None
    if config.absolute_episodes_enabled and config.trakt_api_key:
        episode_mapper = HttpxTraktClient(
            api_key=config.trakt_api_key,
            http_client=http_client,
            cache=cache,
            cinemeta=HttpxCinemetaClient(http_client=http_client, cache=cache),
        )

    providers = default_registry(http_client, addon_url=config.addon_url)
    log.info(
        "coordinator_wired",
        providers=providers.supported_providers,
        alternate_titles=title_lookup is not None,
        absolute_episodes=episode_mapper is not None,
    )
    return SearchCoordinator(
        providers=providers,
        parser=FilenameParser(cache, ttl_seconds=config.cache.parser_ttl_seconds),
        absolute_processor=AbsoluteEpisodeProcessor(
            cache, ttl_seconds=config.cache.absolute_ttl_seconds
        ),
        episode_mapper=episode_mapper,
        title_lookup=title_lookup,
        anime_seasons=HttpxJikanClient(http_client=http_client, cache=cache),
        config=config.search,
        manual_aliases=config.search.manual_aliases,
    )


@asynccontextmanager
async def open_coordinator(config: AppConfig) -> AsyncIterator[SearchCoordinator]:
    """Composition root: build all resources, yield the coordinator, clean up.

    Order matters:
        1. Cache (parser, processor and metadata clients share it)
        2. HTTP client
        3. Coordinator
    """
    cache = build_cache(config)
    try:
        await cache.__aenter__()  # starts the expiry sweep
        log.info("cache_initialized", max_size=config.cache.max_size)

        http_client = build_http_client(config)
        log.info("http_client_initialized")
        try:
            yield build_coordinator(config, http_client, cache)
        finally:
            await http_client.aclose()
            log.info("http_client_closed")
    finally:
        # The sweep task must stop even when the client never came up.
        await cache.aclose()
        log.info("cache_closed")
