"""Tests for RetryTransport (host pacing + transient-status retry)."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from reelmatch.infrastructure.common.rate_limiter import HostRateLimiter
from reelmatch.infrastructure.common.retry_transport import (
    RetryTransport,
    _parse_retry_after,
)


def _make_response(
    status: int = 200,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    return httpx.Response(status_code=status, headers=headers or {})


def _make_request(url: str = "https://api.jikan.moe/v4/anime") -> httpx.Request:
    return httpx.Request("GET", url)


def _make_transport(
    responses: list[httpx.Response] | httpx.Response,
    *,
    max_retries: int = 3,
    backoff_base: float = 1.0,
    max_backoff: float = 30.0,
    adaptive: bool = False,
) -> RetryTransport:
    """RetryTransport over a mock inner transport."""
    mock_wrapped = AsyncMock(spec=httpx.AsyncBaseTransport)
    if isinstance(responses, list):
        mock_wrapped.handle_async_request = AsyncMock(side_effect=responses)
    else:
        mock_wrapped.handle_async_request = AsyncMock(return_value=responses)
    limiter = HostRateLimiter(default_rps=10.0, burst=10, adaptive=adaptive)
    return RetryTransport(
        mock_wrapped,
        limiter,
        max_retries=max_retries,
        backoff_base=backoff_base,
        max_backoff=max_backoff,
    )


class TestParseRetryAfter:
    def test_seconds(self) -> None:
        assert _parse_retry_after(httpx.Headers({"Retry-After": "3"})) == 3.0

    def test_negative_clamped(self) -> None:
        assert _parse_retry_after(httpx.Headers({"Retry-After": "-2"})) == 0.0

    def test_http_date_ignored(self) -> None:
        headers = httpx.Headers({"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"})
        assert _parse_retry_after(headers) is None

    def test_missing(self) -> None:
        assert _parse_retry_after(httpx.Headers()) is None


class TestRetryTransport:
    @pytest.mark.asyncio()
    async def test_passes_through_successful_response(self) -> None:
        transport = _make_transport(_make_response(200))
        resp = await transport.handle_async_request(_make_request())
        assert resp.status_code == 200

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    async def test_retries_transient_status_then_succeeds(self, status: int) -> None:
        transport = _make_transport([_make_response(status), _make_response(200)])
        with patch("reelmatch.infrastructure.common.retry_transport.asyncio") as m:
            m.sleep = AsyncMock()
            resp = await transport.handle_async_request(_make_request())

        assert resp.status_code == 200
        assert m.sleep.await_count == 1
        assert transport._wrapped.handle_async_request.call_count == 2

    @pytest.mark.asyncio()
    async def test_respects_retry_after_header(self) -> None:
        transport = _make_transport(
            [_make_response(429, headers={"Retry-After": "5"}), _make_response(200)]
        )
        with patch("reelmatch.infrastructure.common.retry_transport.asyncio") as m:
            m.sleep = AsyncMock()
            await transport.handle_async_request(_make_request())

        m.sleep.assert_awaited_once_with(5.0)

    @pytest.mark.asyncio()
    async def test_caps_retry_after_at_max_backoff(self) -> None:
        transport = _make_transport(
            [_make_response(429, headers={"Retry-After": "120"}), _make_response(200)],
            max_backoff=10.0,
        )
        with patch("reelmatch.infrastructure.common.retry_transport.asyncio") as m:
            m.sleep = AsyncMock()
            await transport.handle_async_request(_make_request())

        m.sleep.assert_awaited_once_with(10.0)

    @pytest.mark.asyncio()
    async def test_gives_up_after_max_retries(self) -> None:
        transport = _make_transport(_make_response(503), max_retries=2)
        with patch("reelmatch.infrastructure.common.retry_transport.asyncio") as m:
            m.sleep = AsyncMock()
            resp = await transport.handle_async_request(_make_request())

        assert resp.status_code == 503
        assert m.sleep.await_count == 2
        assert transport._wrapped.handle_async_request.call_count == 3

    @pytest.mark.asyncio()
    async def test_exponential_backoff_without_retry_after(self) -> None:
        transport = _make_transport(
            [_make_response(429), _make_response(429), _make_response(200)],
            backoff_base=1.0,
            max_backoff=100.0,
        )
        with patch("reelmatch.infrastructure.common.retry_transport.asyncio") as m:
            m.sleep = AsyncMock()
            with patch("reelmatch.infrastructure.common.retry_transport.random") as rng:
                rng.uniform.return_value = 0.0
                await transport.handle_async_request(_make_request())

        delays = [call.args[0] for call in m.sleep.await_args_list]
        assert delays == [1.0, 2.0]

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("status", [400, 401, 404])
    async def test_does_not_retry_client_errors(self, status: int) -> None:
        transport = _make_transport(_make_response(status))
        resp = await transport.handle_async_request(_make_request())
        assert resp.status_code == status
        assert transport._wrapped.handle_async_request.call_count == 1

    @pytest.mark.asyncio()
    async def test_rate_limiter_called_per_attempt(self) -> None:
        transport = _make_transport([_make_response(429), _make_response(200)])
        transport._rate_limiter.acquire = AsyncMock()

        with patch("reelmatch.infrastructure.common.retry_transport.asyncio") as m:
            m.sleep = AsyncMock()
            await transport.handle_async_request(_make_request())

        assert transport._rate_limiter.acquire.await_count == 2

    @pytest.mark.asyncio()
    async def test_throttle_feedback_slows_host(self) -> None:
        transport = _make_transport(
            [_make_response(429), _make_response(200)], adaptive=True
        )
        with patch("reelmatch.infrastructure.common.retry_transport.asyncio") as m:
            m.sleep = AsyncMock()
            await transport.handle_async_request(_make_request())

        bucket = transport._rate_limiter._buckets["api.jikan.moe"]
        assert bucket.rate == pytest.approx(5.5)

    @pytest.mark.asyncio()
    async def test_zero_retries_disables_retry(self) -> None:
        transport = _make_transport(_make_response(429), max_retries=0)
        resp = await transport.handle_async_request(_make_request())
        assert resp.status_code == 429
        assert transport._wrapped.handle_async_request.call_count == 1

    @pytest.mark.asyncio()
    async def test_aclose_delegates_to_wrapped(self) -> None:
        transport = _make_transport(_make_response(200))
        transport._wrapped.aclose = AsyncMock()
        await transport.aclose()
        transport._wrapped.aclose.assert_awaited_once()
