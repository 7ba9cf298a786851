"""Helpers shared by the provider adapters."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from reelmatch.domain.entities.media import VideoFile
from reelmatch.domain.exceptions import ProviderAuthError, ProviderError
from reelmatch.infrastructure.parsing.media_patterns import is_video

log = structlog.get_logger(__name__)

_AUTH_STATUS_CODES = frozenset({401, 403})


def bearer(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}


async def request_json(
    http: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    provider: str,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    data: dict[str, Any] | None = None,
) -> Any:
    """Send a request and decode the JSON body.

    Raises:
        ProviderAuthError: The provider rejected the credentials.
        ProviderError: Any other HTTP, network or decoding failure.
    """
    try:
        resp = await http.request(method, url, headers=headers, params=params, data=data)
    except httpx.HTTPError as exc:
        raise ProviderError(f"{provider}: request to {url} failed") from exc

    if resp.status_code in _AUTH_STATUS_CODES:
        log.error("provider_auth_rejected", provider=provider, status=resp.status_code)
        raise ProviderAuthError(f"{provider}: API key rejected ({resp.status_code})")
    if resp.status_code == 204:
        return None
    try:
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ProviderError(f"{provider}: HTTP {resp.status_code} from {url}") from exc
    try:
        return resp.json()
    except ValueError as exc:
        raise ProviderError(f"{provider}: invalid JSON from {url}") from exc


def resolve_url(
    addon_url: str | None, provider: str, candidate_id: str, link: str | None
) -> str | None:
    """``{addon_url}/resolve/{provider}/{id}/{link}`` or the bare link."""
    if not link:
        return None
    if not addon_url:
        return link
    return f"{addon_url.rstrip('/')}/resolve/{provider}/{candidate_id}/{quote(link, safe='')}"


def parse_timestamp(value: Any) -> datetime | None:
    """Epoch seconds or ISO-8601 text to an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    text = str(value).replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def video_entries(
    files: Iterable[dict[str, Any]], *, name_key: str = "name"
) -> list[dict[str, Any]]:
    """Only the files whose name carries a video extension."""
    return [f for f in files if is_video(str(f.get(name_key) or ""))]


def make_video(file_id: Any, name: str, size: Any, stream_url: str | None) -> VideoFile:
    return VideoFile(id=str(file_id), name=name, size=int(size or 0), stream_url=stream_url)


def expect_object(payload: Any, *, provider: str, what: str) -> dict[str, Any]:
    """*payload* as a JSON object, or :class:`ProviderError`."""
    if not isinstance(payload, dict):
        raise ProviderError(
            f"{provider}: expected an object for {what}, got {type(payload).__name__}"
        )
    return payload


def expect_records(payload: Any, *, provider: str, what: str) -> list[dict[str, Any]]:
    """*payload* as a list of JSON objects, or :class:`ProviderError`.

    ``None`` (an empty 204 body) counts as an empty list.
    """
    if payload is None:
        return []
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ProviderError(f"{provider}: expected a list of records for {what}")
    return payload
