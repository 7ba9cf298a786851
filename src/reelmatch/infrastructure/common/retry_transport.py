"""httpx transport that paces requests per host and retries transient errors.

Shared by every metadata and provider client, so retry policy lives in
one place and the search phases never retry on their own.
"""

from __future__ import annotations

import asyncio
import random

import httpx
import structlog

from reelmatch.infrastructure.common.rate_limiter import HostRateLimiter

log = structlog.get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
_THROTTLE_STATUS_CODES = frozenset({429, 503})


def _parse_retry_after(headers: httpx.Headers) -> float | None:
    """Seconds from a ``Retry-After`` header; HTTP-date values are ignored."""
    raw = headers.get("retry-after")
    if raw is None:
        return None
    try:
        return max(0.0, float(raw))
    except (ValueError, TypeError):
        return None


class RetryTransport(httpx.AsyncBaseTransport):
    """Wraps a transport with host pacing and capped exponential backoff.

    Before every attempt the request waits on the :class:`HostRateLimiter`.
    Responses with a retryable status (429 and 5xx gateway errors by
    default) are drained and retried up to *max_retries* times, waiting
    ``Retry-After`` when the server sends one and
    ``backoff_base * 2**attempt`` plus jitter otherwise, never longer than
    *max_backoff*. The last response is returned as-is so callers see the
    real status.
    """

    def __init__(
        self,
        wrapped: httpx.AsyncBaseTransport,
        rate_limiter: HostRateLimiter,
        *,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        max_backoff: float = 30.0,
        retryable_status_codes: frozenset[int] = RETRYABLE_STATUS_CODES,
    ) -> None:
        self._wrapped = wrapped
        self._rate_limiter = rate_limiter
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._max_backoff = max_backoff
        self._retryable = retryable_status_codes

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        attempt = 0
        while True:
            await self._rate_limiter.acquire(url)
            response = await self._wrapped.handle_async_request(request)

            if response.status_code not in self._retryable:
                self._rate_limiter.record_success(url)
                return response
            if response.status_code in _THROTTLE_STATUS_CODES:
                self._rate_limiter.record_throttle(url)
            if attempt >= self._max_retries:
                return response

            await response.aread()
            await response.aclose()

            delay = self._compute_delay(response, attempt)
            log.info(
                "http_retry",
                url=url,
                status=response.status_code,
                attempt=attempt + 1,
                delay=round(delay, 2),
            )
            await asyncio.sleep(delay)
            attempt += 1

    def _compute_delay(self, response: httpx.Response, attempt: int) -> float:
        retry_after = _parse_retry_after(response.headers)
        if retry_after is not None:
            return min(retry_after, self._max_backoff)
        delay = self._backoff_base * (2**attempt)
        jitter = random.uniform(0, self._backoff_base)  # noqa: S311
        return min(delay + jitter, self._max_backoff)

    async def aclose(self) -> None:
        await self._wrapped.aclose()
