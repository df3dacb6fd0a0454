"""Async HTTP access to the npm registry and the GitHub API."""

import asyncio
import time
from typing import Any

import httpx

from dependsight import __version__
from dependsight.errors import RateLimitExceeded
from dependsight.utils.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = f"dependsight/{__version__}"

GITHUB_REQUESTS_PER_HOUR = 60
GITHUB_REQUESTS_PER_HOUR_AUTHENTICATED = 5000


class RateLimiter:
    """Token bucket shared by every request to one API.

    Tokens are reserved under the lock and any wait happens after it is
    released, so one throttled caller never stalls the others' bookkeeping.
    With ``max_wait`` set, a caller that would wait longer than that gets
    RateLimitExceeded instead of sleeping.
    """

    def __init__(
        self,
        requests_per_window: int,
        window_seconds: float,
        max_wait: float | None = None,
        service: str = "API",
    ) -> None:
        """Initialize the rate limiter.

        Args:
            requests_per_window: Request budget per window; also the burst size.
            window_seconds: Window length in seconds.
            max_wait: Longest acceptable wait for a token, None for no limit.
            service: Name used in messages.
        """
        self.capacity = float(requests_per_window)
        self.refill_rate = requests_per_window / window_seconds
        self.max_wait = max_wait
        self.service = service
        self.tokens = self.capacity
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self._last_refill) * self.refill_rate)
        self._last_refill = now

    async def acquire(self) -> None:
        """Take one token, waiting for it if allowed.

        Raises:
            RateLimitExceeded: If the wait would exceed ``max_wait``.
        """
        async with self._lock:
            self._refill()
            wait_time = 0.0 if self.tokens >= 1 else (1 - self.tokens) / self.refill_rate
            if self.max_wait is not None and wait_time > self.max_wait:
                raise RateLimitExceeded(self.service, wait_time)
            # Tokens may go negative; later callers then wait for the debt too
            self.tokens -= 1

        if wait_time > 0:
            logger.debug("%s rate limit: waiting %.2f seconds", self.service, wait_time)
            await asyncio.sleep(wait_time)


def create_github_rate_limiter(
    has_token: bool = False,
    max_wait: float | None = 0.0,
) -> RateLimiter:
    """Create a rate limiter for the GitHub REST API quota.

    By default it never waits: once the hourly budget is spent, release
    lookups fail fast and callers fall back to other changelog sources.

    Args:
        has_token: Whether requests are authenticated.
        max_wait: Longest acceptable wait for a token.

    Returns:
        Configured rate limiter.
    """
    budget = GITHUB_REQUESTS_PER_HOUR_AUTHENTICATED if has_token else GITHUB_REQUESTS_PER_HOUR
    return RateLimiter(
        requests_per_window=budget,
        window_seconds=3600,
        max_wait=max_wait,
        service="GitHub API",
    )


class AsyncHttpClient:
    """httpx.AsyncClient wrapper adding retries and rate limiting.

    Server errors, connection errors and read timeouts are retried with
    exponential backoff; a 429 honours ``Retry-After`` while retries remain.
    Use as an async context manager.
    """

    DEFAULT_TIMEOUT = 30.0
    DEFAULT_RETRIES = 3
    RETRY_DELAYS = (1.0, 2.0, 4.0)

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_RETRIES,
        rate_limiter: RateLimiter | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Base URL for relative request paths.
            timeout: Request timeout in seconds.
            max_retries: Retries after the first attempt.
            rate_limiter: Optional limiter consulted before every attempt.
            headers: Headers sent with every request.
            transport: Optional httpx transport, e.g. httpx.MockTransport.
        """
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limiter = rate_limiter
        self.default_headers = {"User-Agent": USER_AGENT, **(headers or {})}
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "AsyncHttpClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url or "",
            timeout=self.timeout,
            headers=self.default_headers,
            follow_redirects=True,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """The underlying httpx client; only valid inside ``async with``."""
        if self._client is None:
            raise RuntimeError("Client not initialized. Use async with statement.")
        return self._client

    def _backoff(self, attempt: int) -> float:
        return self.RETRY_DELAYS[min(attempt, len(self.RETRY_DELAYS) - 1)]

    @staticmethod
    def _retry_after(response: httpx.Response) -> float | None:
        value = response.headers.get("Retry-After")
        return float(value) if value and value.isdigit() else None

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """GET a URL, retrying transient failures.

        Raises:
            httpx.HTTPStatusError: For a final 4xx/5xx response.
            httpx.HTTPError: If the last attempt failed to connect or read.
            RateLimitExceeded: If the rate limiter refuses to wait.
        """
        attempt = 0
        while True:
            if self.rate_limiter:
                await self.rate_limiter.acquire()

            try:
                response = await self.client.get(url, params=params, headers=headers)
            except (httpx.ConnectError, httpx.ReadTimeout) as e:
                if attempt >= self.max_retries:
                    raise
                delay = self._backoff(attempt)
                logger.warning("Request to %s failed (%s), retrying in %.1fs", url, e, delay)
            else:
                status = response.status_code
                retryable = status == 429 or status >= 500
                if not retryable or attempt >= self.max_retries:
                    response.raise_for_status()
                    return response
                delay = self._retry_after(response) if status == 429 else None
                if delay is None:
                    delay = self._backoff(attempt)
                logger.warning("HTTP %d from %s, retrying in %.1fs", status, url, delay)

            await asyncio.sleep(delay)
            attempt += 1

    async def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET a URL and decode its JSON body.

        Raises:
            ValueError: If the body is not JSON.
        """
        response = await self.get(url, params=params, headers=headers)
        return response.json()
