"""DebridLink adapter (API v2 seedbox)."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from reelmatch.domain.entities.media import Candidate, FileKind, ProviderKind
from reelmatch.domain.exceptions import ProviderAuthError, ProviderError
from reelmatch.infrastructure.matching.title_matcher import match_term
from reelmatch.infrastructure.providers._http import (
    bearer,
    expect_object,
    expect_records,
    make_video,
    parse_timestamp,
    request_json,
    resolve_url,
    video_entries,
)

log = structlog.get_logger(__name__)

_BASE_URL = "https://debrid-link.com/api/v2"
_PER_PAGE = 50
_MAX_PAGES = 10
_AUTH_ERRORS = frozenset({"badToken", "notDebrid", "hidedToken", "disabledAccount"})


class DebridLinkProvider:
    """Seedbox torrents of a DebridLink account.

    The seedbox listing already carries each torrent's files, so listed
    candidates come back with ``videos`` loaded.
    """

    name = ProviderKind.DEBRID_LINK.value
    supports_bulk_listing = True

    def __init__(self, *, http_client: httpx.AsyncClient, addon_url: str | None = None) -> None:
        self._http = http_client
        self._addon_url = addon_url

    async def _get(self, api_key: str, path: str, **params: Any) -> dict[str, Any]:
        body = await request_json(
            self._http,
            "GET",
            f"{_BASE_URL}{path}",
            provider=self.name,
            headers=bearer(api_key),
            params=params,
        )
        if not isinstance(body, dict):
            raise ProviderError(f"{self.name}: unexpected payload from {path}")
        if not body.get("success", False):
            error = str(body.get("error") or "unknown error")
            if error in _AUTH_ERRORS:
                raise ProviderAuthError(f"{self.name}: {error}")
            raise ProviderError(f"{self.name}: {error} on {path}")
        return body

    def _to_candidate(self, item: dict[str, Any]) -> Candidate:
        torrent_id = str(item["id"])
        files = expect_records(item.get("files"), provider=self.name, what="seedbox files")
        videos = [
            make_video(
                file.get("id") or f"{torrent_id}:{index}",
                file.get("name") or "",
                file.get("size"),
                self.build_stream_url(torrent_id, file.get("downloadUrl")),
            )
            for index, file in enumerate(video_entries(files))
        ]
        return Candidate(
            id=torrent_id,
            name=item.get("name") or "",
            source=self.name,
            size=int(item.get("totalSize") or item.get("size") or 0),
            created_at=parse_timestamp(item.get("created")),
            file_kind=FileKind.TORRENTS,
            videos=videos,
            details_loaded=True,
        )

    async def bulk_list(self, api_key: str) -> list[Candidate]:
        items: list[dict[str, Any]] = []
        page = 0
        pages = 1
        while 0 <= page < min(pages, _MAX_PAGES):
            body = await self._get(api_key, "/seedbox/list", page=page, perPage=_PER_PAGE)
            items.extend(expect_records(body.get("value"), provider=self.name, what="seedbox"))
            pagination = expect_object(
                body.get("pagination") or {}, provider=self.name, what="pagination"
            )
            pages = int(pagination.get("pages") or 1)
            page = int(pagination.get("next", -1))
        log.debug("provider_listed", provider=self.name, count=len(items))
        return [self._to_candidate(i) for i in items if i.get("id")]

    async def search_by_title(
        self, api_key: str, term: str, threshold: float
    ) -> list[Candidate]:
        return [m.candidate for m in match_term(term, await self.bulk_list(api_key), threshold)]

    async def get_details(self, api_key: str, candidate_id: str) -> Candidate | None:
        body = await self._get(api_key, "/seedbox/list", ids=candidate_id)
        values = expect_records(body.get("value"), provider=self.name, what="seedbox")
        return self._to_candidate(values[0]) if values else None

    def build_stream_url(self, candidate_id: str, link: str | None) -> str | None:
        return resolve_url(self._addon_url, self.name, candidate_id, link)
