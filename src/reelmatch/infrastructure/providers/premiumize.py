"""Premiumize adapter: the cloud drive is a flat list of direct files."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from reelmatch.domain.entities.media import Candidate, FileKind, ProviderKind
from reelmatch.domain.exceptions import ProviderAuthError, ProviderError
from reelmatch.infrastructure.matching.title_matcher import match_term
from reelmatch.infrastructure.parsing.media_patterns import is_video
from reelmatch.infrastructure.providers._http import (
    expect_records,
    parse_timestamp,
    request_json,
    resolve_url,
)

log = structlog.get_logger(__name__)

_BASE_URL = "https://www.premiumize.me/api"


class PremiumizeProvider:
    """Video files stored in a Premiumize cloud drive.

    Every item is a direct file: ``url`` is set and ``videos`` stays
    ``None``, so the content analysis matches the item on its own name.
    """

    name = ProviderKind.PREMIUMIZE.value
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
            params={"apikey": api_key, **params},
        )
        if not isinstance(body, dict):
            raise ProviderError(f"{self.name}: unexpected payload from {path}")
        if body.get("status") != "success":
            message = str(body.get("message") or "request failed")
            if "auth" in message.lower() or "apikey" in message.lower():
                raise ProviderAuthError(f"{self.name}: {message}")
            raise ProviderError(f"{self.name}: {message}")
        return body

    def _to_candidate(self, item: dict[str, Any]) -> Candidate:
        file_id = str(item["id"])
        return Candidate(
            id=file_id,
            name=item.get("name") or "",
            source=self.name,
            size=int(item.get("size") or 0),
            created_at=parse_timestamp(item.get("created_at")),
            file_kind=FileKind.DOWNLOADS,
            url=self.build_stream_url(file_id, item.get("stream_link") or item.get("link")),
            details_loaded=True,
        )

    async def bulk_list(self, api_key: str) -> list[Candidate]:
        body = await self._get(api_key, "/item/listall")
        listed = expect_records(body.get("files"), provider=self.name, what="item list")
        files = [f for f in listed if f.get("id") and is_video(f.get("name") or "")]
        log.debug("provider_listed", provider=self.name, count=len(files))
        return [self._to_candidate(f) for f in files]

    async def search_by_title(
        self, api_key: str, term: str, threshold: float
    ) -> list[Candidate]:
        return [m.candidate for m in match_term(term, await self.bulk_list(api_key), threshold)]

    async def get_details(self, api_key: str, candidate_id: str) -> Candidate | None:
        body = await self._get(api_key, "/item/details", id=candidate_id)
        if not body.get("id"):
            return None
        return self._to_candidate(body)

    def build_stream_url(self, candidate_id: str, link: str | None) -> str | None:
        return resolve_url(self._addon_url, self.name, candidate_id, link)
