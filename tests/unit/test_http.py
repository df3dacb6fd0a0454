"""Tests for the HTTP client and rate limiter."""

import asyncio
import time

import httpx
import pytest

from dependsight.errors import LookupFailure, RateLimitExceeded
from dependsight.utils.http import AsyncHttpClient, RateLimiter, create_github_rate_limiter


class TestRateLimiter:
    """Tests for RateLimiter."""

    @pytest.mark.asyncio
    async def test_burst_within_budget(self) -> None:
        limiter = RateLimiter(requests_per_window=3, window_seconds=3600, max_wait=0)

        for _ in range(3):
            await limiter.acquire()

    @pytest.mark.asyncio
    async def test_refuses_instead_of_sleeping(self) -> None:
        limiter = RateLimiter(requests_per_window=2, window_seconds=3600, max_wait=0)
        await limiter.acquire()
        await limiter.acquire()

        started = time.monotonic()
        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.acquire()

        assert time.monotonic() - started < 1
        assert isinstance(exc_info.value, LookupFailure)

    @pytest.mark.asyncio
    async def test_waiting_does_not_hold_the_lock(self) -> None:
        limiter = RateLimiter(requests_per_window=1, window_seconds=60)
        await limiter.acquire()

        waiter = asyncio.create_task(limiter.acquire())
        await asyncio.sleep(0.05)
        try:
            assert not waiter.done()
            assert not limiter._lock.locked()
        finally:
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

    @pytest.mark.asyncio
    async def test_refused_caller_does_not_consume_budget(self) -> None:
        limiter = RateLimiter(requests_per_window=1, window_seconds=3600, max_wait=0)
        await limiter.acquire()

        for _ in range(3):
            with pytest.raises(RateLimitExceeded):
                await limiter.acquire()

        assert limiter.tokens < 1
        assert limiter.tokens > -0.01

    def test_github_limiter_budgets(self) -> None:
        assert create_github_rate_limiter(has_token=False).capacity == 60
        assert create_github_rate_limiter(has_token=True).capacity == 5000
        assert create_github_rate_limiter().max_wait == 0


class TestAsyncHttpClient:
    """Tests for AsyncHttpClient."""

    @pytest.mark.asyncio
    async def test_user_agent_and_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["User-Agent"].startswith("dependsight/")
            return httpx.Response(200, json={"ok": True})

        async with AsyncHttpClient(
            base_url="https://example.test", transport=httpx.MockTransport(handler)
        ) as http:
            assert await http.get_json("/x") == {"ok": True}

    @pytest.mark.asyncio
    async def test_retries_server_errors(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(AsyncHttpClient, "RETRY_DELAYS", (0.0,))
        responses = iter([httpx.Response(503), httpx.Response(200, json=[1])])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        async with AsyncHttpClient(
            base_url="https://example.test", max_retries=1, transport=httpx.MockTransport(handler)
        ) as http:
            assert await http.get_json("/x") == [1]

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        async with AsyncHttpClient(
            base_url="https://example.test", max_retries=3, transport=httpx.MockTransport(handler)
        ) as http:
            with pytest.raises(httpx.HTTPStatusError):
                await http.get("/x")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_rate_limiter_refusal_propagates(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        limiter = RateLimiter(requests_per_window=1, window_seconds=3600, max_wait=0)
        async with AsyncHttpClient(
            base_url="https://example.test",
            rate_limiter=limiter,
            transport=httpx.MockTransport(handler),
        ) as http:
            await http.get("/a")
            with pytest.raises(RateLimitExceeded):
                await http.get("/b")
