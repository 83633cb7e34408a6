"""Base HTTP client for ledger node APIs.

Provides:
- Rate limiting (token bucket)
- Optional retry with exponential backoff (off by default)
- Timeout handling
- Structured error handling

Node clients compose this rather than talking to httpx directly.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

log = logging.getLogger("mam.clients")


@dataclass
class RateLimiter:
    """Simple token-bucket rate limiter."""

    max_per_second: float
    _tokens: float = field(init=False)
    _last_refill: float = field(init=False)

    def __post_init__(self) -> None:
        self._tokens = self.max_per_second
        self._last_refill = time.monotonic()

    def acquire(self) -> float:
        """Acquire a token. Returns wait time in seconds (0 if immediate)."""
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self.max_per_second, self._tokens + elapsed * self.max_per_second)
        self._last_refill = now

        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return 0.0

        return (1.0 - self._tokens) / self.max_per_second


class APIError(Exception):
    """Structured API error."""

    def __init__(self, message: str, status_code: int = 0, provider: str = "", retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider
        self.retryable = retryable


class BaseClient:
    """Base HTTP client with rate limiting and optional retry.

    Usage:
        client = BaseClient(
            base_url="https://nodes.example.org:443",
            headers={"X-IOTA-API-Version": "1"},
            rate_limit=5.0,  # 5 req/sec
            timeout=30.0,
        )
        data = await client.post("/", json_data={"command": "getNodeInfo"})
    """

    def __init__(
        self,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        rate_limit: float = 10.0,
        timeout: float = 30.0,
        max_retries: int = 0,
        backoff_base: float = 1.0,
        backoff_max: float = 60.0,
        backoff_multiplier: float = 2.0,
        provider_name: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.provider_name = provider_name or self.base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.backoff_multiplier = backoff_multiplier
        self._rate_limiter = RateLimiter(max_per_second=rate_limit)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers or {},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def post(
        self,
        path: str,
        json_data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """POST request with rate limiting."""
        return await self._request("POST", path, json_data=json_data, headers=headers)

    async def _request(
        self,
        method: str,
        path: str,
        json_data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Execute request, retrying retryable failures up to max_retries times."""
        last_error: Exception | None = None
        delay = self.backoff_base

        for attempt in range(self.max_retries + 1):
            wait = self._rate_limiter.acquire()
            if wait > 0:
                await asyncio.sleep(wait)

            try:
                response = await self._client.request(
                    method,
                    path,
                    json=json_data,
                    headers=headers,
                )

                if response.status_code == 429:
                    raise APIError(
                        f"Rate limited by {self.provider_name}",
                        status_code=429,
                        provider=self.provider_name,
                        retryable=True,
                    )

                if response.status_code >= 500:
                    raise APIError(
                        f"Server error from {self.provider_name}: {response.status_code}",
                        status_code=response.status_code,
                        provider=self.provider_name,
                        retryable=True,
                    )

                if response.status_code >= 400:
                    raise APIError(
                        f"Client error from {self.provider_name}: {response.status_code} - {_error_text(response)}",
                        status_code=response.status_code,
                        provider=self.provider_name,
                        retryable=False,
                    )

                return response.json()

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_error = APIError(
                    f"Connection error to {self.provider_name}: {e}",
                    provider=self.provider_name,
                    retryable=True,
                )
            except APIError as e:
                last_error = e
                if not e.retryable:
                    raise

            if attempt < self.max_retries:
                log.debug("Retrying %s %s in %.1fs: %s", method, path, delay, last_error)
                await asyncio.sleep(min(delay, self.backoff_max))
                delay *= self.backoff_multiplier

        raise last_error or APIError(f"Request failed after {self.max_retries} retries")


def _error_text(response: httpx.Response) -> str:
    """Node APIs report failures as {"error": "..."}; fall back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])[:200]
    return response.text[:200]
