"""RealDebrid adapter (REST API 1.0)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from reelmatch.domain.entities.media import Candidate, FileKind, ProviderKind
from reelmatch.domain.exceptions import ProviderError
from reelmatch.infrastructure.matching.title_matcher import match_term
from reelmatch.infrastructure.parsing.media_patterns import is_video
from reelmatch.infrastructure.providers._http import (
    bearer,
    expect_object,
    expect_records,
    make_video,
    parse_timestamp,
    request_json,
    resolve_url,
)

log = structlog.get_logger(__name__)

_BASE_URL = "https://api.real-debrid.com/rest/1.0"
_PAGE_SIZE = 100
_MAX_PAGES = 50
_INTERNAL_HOST = "real-debrid.com"


def _torrent_candidate(item: dict[str, Any]) -> Candidate:
    return Candidate(
        id=str(item["id"]),
        name=item.get("filename") or "",
        source=ProviderKind.REAL_DEBRID.value,
        size=int(item.get("bytes") or 0),
        created_at=parse_timestamp(item.get("added")),
        file_kind=FileKind.TORRENTS,
    )


def _download_candidate(item: dict[str, Any]) -> Candidate:
    return Candidate(
        id=str(item["id"]),
        name=item.get("filename") or "",
        source=ProviderKind.REAL_DEBRID.value,
        size=int(item.get("filesize") or 0),
        created_at=parse_timestamp(item.get("generated")),
        file_kind=FileKind.DOWNLOADS,
        url=item.get("download"),
        details_loaded=True,
    )


# kind -> (endpoint, normaliser)
_LISTINGS: dict[FileKind, tuple[str, Callable[[dict[str, Any]], Candidate]]] = {
    FileKind.TORRENTS: ("/torrents", _torrent_candidate),
    FileKind.DOWNLOADS: ("/downloads", _download_candidate),
}


class RealDebridProvider:
    """Torrents and unrestricted downloads of a RealDebrid account."""

    name = ProviderKind.REAL_DEBRID.value
    supports_bulk_listing = True

    def __init__(self, *, http_client: httpx.AsyncClient, addon_url: str | None = None) -> None:
        self._http = http_client
        self._addon_url = addon_url

    async def _page(self, api_key: str, endpoint: str, page: int) -> list[dict[str, Any]]:
        data = await request_json(
            self._http,
            "GET",
            f"{_BASE_URL}{endpoint}",
            provider=self.name,
            headers=bearer(api_key),
            params={"page": page, "limit": _PAGE_SIZE},
        )
        return expect_records(data, provider=self.name, what=endpoint)

    async def _list(self, api_key: str, kind: FileKind) -> list[Candidate]:
        endpoint, normalise = _LISTINGS[kind]
        items: list[dict[str, Any]] = []
        for page in range(1, _MAX_PAGES + 1):
            batch = await self._page(api_key, endpoint, page)
            items.extend(batch)
            if len(batch) < _PAGE_SIZE:
                break
        if kind is FileKind.DOWNLOADS:
            items = [i for i in items if i.get("host") != _INTERNAL_HOST]
        log.debug("provider_listed", provider=self.name, kind=kind.name, count=len(items))
        return [normalise(i) for i in items if i.get("id") is not None]

    async def bulk_list(self, api_key: str) -> list[Candidate]:
        return await self._list(api_key, FileKind.TORRENTS)

    async def search_by_title(
        self, api_key: str, term: str, threshold: float
    ) -> list[Candidate]:
        torrents, downloads = await asyncio.gather(
            self._list(api_key, FileKind.TORRENTS),
            self._list(api_key, FileKind.DOWNLOADS),
        )
        return [m.candidate for m in match_term(term, [*torrents, *downloads], threshold)]

    async def get_details(self, api_key: str, candidate_id: str) -> Candidate | None:
        item = await request_json(
            self._http,
            "GET",
            f"{_BASE_URL}/torrents/info/{candidate_id}",
            provider=self.name,
            headers=bearer(api_key),
        )
        if not item:
            return None
        item = expect_object(item, provider=self.name, what="torrent info")

        # links[] lines up with the selected files only
        files = expect_records(item.get("files"), provider=self.name, what="torrent files")
        selected = [f for f in files if f.get("selected")]
        links = item.get("links") or []
        if not isinstance(links, list):
            raise ProviderError(f"{self.name}: unexpected links for {candidate_id}")
        videos = []
        for index, file in enumerate(selected):
            if not is_video(str(file.get("path") or "")):
                continue
            link = links[index] if index < len(links) else None
            videos.append(
                make_video(
                    f"{candidate_id}:{file.get('id')}",
                    str(file.get("path") or "").lstrip("/"),
                    file.get("bytes"),
                    self.build_stream_url(candidate_id, link),
                )
            )

        candidate = _torrent_candidate(item)
        candidate.videos = videos
        candidate.details_loaded = True
        return candidate

    def build_stream_url(self, candidate_id: str, link: str | None) -> str | None:
        return resolve_url(self._addon_url, self.name, candidate_id, link)
