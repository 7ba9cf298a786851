"""TorBox adapter (API v1)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from reelmatch.domain.entities.media import Candidate, FileKind, ProviderKind
from reelmatch.domain.exceptions import ProviderError
from reelmatch.infrastructure.matching.title_matcher import match_term
from reelmatch.infrastructure.providers._http import (
    bearer,
    expect_records,
    make_video,
    parse_timestamp,
    request_json,
    resolve_url,
    video_entries,
)

log = structlog.get_logger(__name__)

_BASE_URL = "https://api.torbox.app/v1/api"
_PAGE_SIZE = 1000
_MAX_VIDEOS = 10


def _candidate(item: dict[str, Any], kind: FileKind) -> Candidate:
    return Candidate(
        id=str(item["id"]),
        name=item.get("name") or item.get("filename") or "",
        source=ProviderKind.TORBOX.value,
        size=int(item.get("size") or 0),
        created_at=parse_timestamp(item.get("created_at")),
        file_kind=kind,
    )


def _torrent_candidate(item: dict[str, Any]) -> Candidate:
    return _candidate(item, FileKind.TORRENTS)


def _webdl_candidate(item: dict[str, Any]) -> Candidate:
    return _candidate(item, FileKind.DOWNLOADS)


# kind -> (listing path, download path, id parameter, normaliser)
_LISTINGS: dict[FileKind, tuple[str, str, str, Callable[[dict[str, Any]], Candidate]]] = {
    FileKind.TORRENTS: ("/torrents/mylist", "/torrents/requestdl", "torrent_id", _torrent_candidate),
    FileKind.DOWNLOADS: ("/webdl/mylist", "/webdl/requestdl", "web_id", _webdl_candidate),
}


def _is_ready(item: dict[str, Any]) -> bool:
    return bool(item.get("download_finished") and item.get("download_present"))


class TorBoxProvider:
    """Finished torrents and web downloads of a TorBox account.

    Web downloads are listed together with their files, so they come back
    with ``videos`` already loaded; torrents need :meth:`get_details`.
    """

    name = ProviderKind.TORBOX.value
    supports_bulk_listing = True

    def __init__(self, *, http_client: httpx.AsyncClient, addon_url: str | None = None) -> None:
        self._http = http_client
        self._addon_url = addon_url

    async def _get(self, api_key: str, path: str, **params: Any) -> Any:
        body = await request_json(
            self._http,
            "GET",
            f"{_BASE_URL}{path}",
            provider=self.name,
            headers=bearer(api_key),
            params={"bypass_cache": "true", **params},
        )
        if not isinstance(body, dict) or not body.get("success", False):
            detail = body.get("detail") if isinstance(body, dict) else None
            raise ProviderError(f"{self.name}: {detail or 'request failed'} on {path}")
        return body.get("data")

    def _to_candidate(self, item: dict[str, Any], kind: FileKind, *, with_videos: bool) -> Candidate:
        _, download_path, id_param, normalise = _LISTINGS[kind]
        candidate = normalise(item)
        if not with_videos:
            return candidate

        videos = []
        files = expect_records(item.get("files"), provider=self.name, what="files")
        for file in video_entries(files, name_key="short_name")[:_MAX_VIDEOS]:
            link = f"{_BASE_URL}{download_path}?{id_param}={candidate.id}&file_id={file.get('id')}"
            videos.append(
                make_video(
                    f"{candidate.id}:{file.get('id')}",
                    file.get("short_name") or file.get("name") or "",
                    file.get("size"),
                    self.build_stream_url(candidate.id, link),
                )
            )
        candidate.videos = videos
        candidate.details_loaded = True
        return candidate

    async def _list(self, api_key: str, kind: FileKind) -> list[Candidate]:
        path = _LISTINGS[kind][0]
        items = expect_records(
            await self._get(api_key, path, offset=0, limit=_PAGE_SIZE),
            provider=self.name,
            what=path,
        )
        ready = [i for i in items if _is_ready(i)]
        log.debug("provider_listed", provider=self.name, kind=kind.name, count=len(ready))
        return [
            self._to_candidate(i, kind, with_videos=kind is FileKind.DOWNLOADS) for i in ready
        ]

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
        item = await self._get(api_key, _LISTINGS[FileKind.TORRENTS][0], id=candidate_id)
        if isinstance(item, list):
            records = expect_records(item, provider=self.name, what="torrent details")
            item = next((i for i in records if str(i.get("id")) == str(candidate_id)), None)
        elif item is not None and not isinstance(item, dict):
            raise ProviderError(f"{self.name}: unexpected torrent details for {candidate_id}")
        if not item or not _is_ready(item):
            return None
        return self._to_candidate(item, FileKind.TORRENTS, with_videos=True)

    def build_stream_url(self, candidate_id: str, link: str | None) -> str | None:
        return resolve_url(self._addon_url, self.name, candidate_id, link)
