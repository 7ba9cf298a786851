"""AllDebrid adapter (API v4.1, form-encoded POST)."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import httpx
import structlog

from reelmatch.domain.entities.media import Candidate, FileKind, ProviderKind
from reelmatch.domain.exceptions import ProviderAuthError, ProviderError
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

_BASE_URL = "https://api.alldebrid.com/v4.1"
_AGENT = "reelmatch"
_READY = 4  # magnet statusCode once the download completed


def flatten_files(nodes: Any) -> Iterator[dict[str, Any]]:
    """Walk the ``n``/``s``/``l``/``e`` file tree depth-first.

    A node with name, size and link is a file; ``e`` holds children.
    """
    if isinstance(nodes, list):
        for node in nodes:
            yield from flatten_files(node)
        return
    if not isinstance(nodes, dict):
        return
    if nodes.get("n") and nodes.get("s") and nodes.get("l"):
        yield nodes
    if isinstance(nodes.get("e"), list):
        yield from flatten_files(nodes["e"])


def _magnet_candidate(item: dict[str, Any]) -> Candidate:
    return Candidate(
        id=str(item["id"]),
        name=item.get("filename") or "",
        source=ProviderKind.ALL_DEBRID.value,
        size=int(item.get("size") or 0),
        created_at=parse_timestamp(item.get("completionDate") or item.get("uploadDate")),
        file_kind=FileKind.TORRENTS,
    )


def _magnet_records(magnets: Any, *, provider: str) -> list[dict[str, Any]]:
    """Magnets arrive as a list, an id-keyed object or a single magnet."""
    if isinstance(magnets, dict):
        magnets = [magnets] if "id" in magnets else list(magnets.values())
    return expect_records(magnets or None, provider=provider, what="magnets")


def _find_magnet(magnets: list[dict[str, Any]], magnet_id: str) -> dict[str, Any] | None:
    for magnet in magnets:
        if str(magnet.get("id")) == str(magnet_id):
            return magnet
    return None


class AllDebridProvider:
    """Ready magnets of an AllDebrid account."""

    name = ProviderKind.ALL_DEBRID.value
    supports_bulk_listing = True

    def __init__(self, *, http_client: httpx.AsyncClient, addon_url: str | None = None) -> None:
        self._http = http_client
        self._addon_url = addon_url

    async def _call(self, api_key: str, endpoint: str, **form: Any) -> dict[str, Any]:
        body = await request_json(
            self._http,
            "POST",
            f"{_BASE_URL}/{endpoint}",
            provider=self.name,
            headers=bearer(api_key),
            data={"agent": _AGENT, **form},
        )
        if not isinstance(body, dict):
            raise ProviderError(f"{self.name}: unexpected payload from {endpoint}")
        if body.get("status") != "success":
            error = body.get("error") or {}
            code = str(error.get("code") or "")
            if code.startswith("AUTH_"):
                raise ProviderAuthError(f"{self.name}: {code}")
            raise ProviderError(f"{self.name}: {code or 'unknown error'} on {endpoint}")
        return expect_object(body.get("data") or {}, provider=self.name, what=endpoint)

    async def bulk_list(self, api_key: str) -> list[Candidate]:
        data = await self._call(api_key, "magnet/status")
        magnets = _magnet_records(data.get("magnets"), provider=self.name)
        ready = [m for m in magnets if m.get("statusCode") == _READY and m.get("filename")]
        log.debug("provider_listed", provider=self.name, count=len(ready))
        return [_magnet_candidate(m) for m in ready]

    async def search_by_title(
        self, api_key: str, term: str, threshold: float
    ) -> list[Candidate]:
        return [m.candidate for m in match_term(term, await self.bulk_list(api_key), threshold)]

    async def _files(self, api_key: str, magnet_id: str) -> list[dict[str, Any]]:
        data = await self._call(api_key, "magnet/files", **{"id[]": magnet_id})
        magnets = _magnet_records(data.get("magnets"), provider=self.name)
        return (magnets[0].get("files") or []) if magnets else []

    async def get_details(self, api_key: str, candidate_id: str) -> Candidate | None:
        data = await self._call(api_key, "magnet/status", id=candidate_id)
        magnet = _find_magnet(
            _magnet_records(data.get("magnets"), provider=self.name), candidate_id
        )
        if magnet is None:
            return None

        tree = magnet.get("files") or await self._files(api_key, candidate_id)
        videos = [
            make_video(
                f"{candidate_id}:{index}",
                node["n"],
                node["s"],
                self.build_stream_url(candidate_id, node["l"]),
            )
            for index, node in enumerate(n for n in flatten_files(tree) if is_video(n["n"]))
        ]

        candidate = _magnet_candidate(magnet)
        candidate.videos = videos
        candidate.details_loaded = True
        return candidate

    def build_stream_url(self, candidate_id: str, link: str | None) -> str | None:
        return resolve_url(self._addon_url, self.name, candidate_id, link)
