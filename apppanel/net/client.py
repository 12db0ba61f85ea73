"""HTTP client for the AppPanel API with retry and backoff."""

from __future__ import annotations

import asyncio
import math
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel

from apppanel.config.schema import Configuration
from apppanel.errors import (
    InvalidConfiguration,
    InvalidCredentials,
    InvalidResponse,
    NetworkError,
    ServerError,
    TokenExpired,
)
from apppanel.net.schemas import EmptyResponse, Response

SDK_VERSION = "1.0.0"
MIN_RATE_LIMIT_DELAY = 5.0
MAX_RATE_LIMIT_DELAY = 300.0

T = TypeVar("T", bound=Response)
Sleep = Callable[[float], Awaitable[Any]]


def backoff_delay(attempt: int) -> float:
    """Exponential delay after the failed attempt number ``attempt`` (0-based)."""
    return float(2**attempt)


def retry_after_seconds(value: str | None) -> float | None:
    """Parse a Retry-After header given as seconds or as an HTTP date."""
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds) if math.isfinite(seconds) else None
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - datetime.now(UTC)).total_seconds())


def rate_limit_delay(response: httpx.Response) -> float:
    server_delay = retry_after_seconds(response.headers.get("Retry-After"))
    return min(max(server_delay or 0.0, MIN_RATE_LIMIT_DELAY), MAX_RATE_LIMIT_DELAY)


def extract_error_message(response: httpx.Response) -> str | None:
    text = response.text
    if not text.strip():
        return None
    try:
        parsed = response.json()
    except ValueError:
        return text
    if isinstance(parsed, dict):
        for field in ("message", "error"):
            value = parsed.get(field)
            if isinstance(value, str) and value:
                return value
    return text


class NetworkClient:
    """Send requests to the AppPanel API.

    One call to :meth:`send` is one logical request. Transport failures and
    5xx answers are retried with exponential backoff, 429 answers after the
    server's Retry-After delay (between five seconds and five minutes). 401
    and 403 are final.
    """

    def __init__(
        self,
        config: Configuration,
        *,
        platform: str = "python",
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.config = config
        self._sleep: Sleep = sleep or asyncio.sleep
        self._closed = False
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "X-AppPanel-SDK-Version": SDK_VERSION,
                "X-AppPanel-Platform": platform,
            },
            timeout=httpx.Timeout(config.request_timeout),
            transport=transport,
        )

    async def send(
        self,
        endpoint: str,
        method: str = "POST",
        payload: BaseModel | None = None,
        response_model: type[T] = EmptyResponse,  # type: ignore[assignment]
    ) -> T:
        if not endpoint.startswith("/") or "://" in endpoint:
            raise InvalidConfiguration(f"Invalid endpoint: {endpoint}")

        method = method.upper()
        body = payload.model_dump(mode="json", exclude_none=True) if payload is not None else None
        log = logger.bind(endpoint=endpoint, method=method)
        if self.config.debug_logging:
            log.debug(f"Request: {method} {self.config.base_url}{endpoint} payload={body}")

        max_retries = self.config.max_retry_attempts
        attempt = 0
        while True:
            try:
                response = await self._attempt(method, endpoint, body)
            except (httpx.HTTPError, asyncio.TimeoutError) as e:
                if attempt < max_retries:
                    delay = backoff_delay(attempt)
                    log.debug(f"Transport error ({e!r}), retrying after {delay}s (attempt {attempt + 1}/{max_retries})")
                    await self._sleep(delay)
                    attempt += 1
                    continue
                log.error(f"Request failed after {attempt + 1} attempts: {e!r}")
                raise NetworkError(e) from e

            status = response.status_code
            if self.config.debug_logging:
                log.debug(f"Response: {status} body={response.text}")

            if 200 <= status < 300:
                return self._decode(response, response_model)
            if status == 401:
                raise InvalidCredentials()
            if status == 403:
                raise TokenExpired()
            if status == 429:
                if attempt < max_retries:
                    delay = rate_limit_delay(response)
                    log.debug(f"Rate limited, retrying after {delay}s (attempt {attempt + 1}/{max_retries})")
                    await self._sleep(delay)
                    attempt += 1
                    continue
                raise ServerError(429, "Rate limit exceeded")
            if 500 <= status < 600:
                if attempt < max_retries:
                    delay = backoff_delay(attempt)
                    log.debug(f"Server error {status}, retrying after {delay}s (attempt {attempt + 1}/{max_retries})")
                    await self._sleep(delay)
                    attempt += 1
                    continue
            raise ServerError(status, extract_error_message(response))

    async def _attempt(self, method: str, endpoint: str, body: dict[str, Any] | None) -> httpx.Response:
        if self._closed:
            raise NetworkError("client_closed")
        return await asyncio.wait_for(
            self._client.request(method, endpoint, json=body),
            timeout=self.config.resource_timeout,
        )

    def _decode(self, response: httpx.Response, response_model: type[T]) -> T:
        if issubclass(response_model, EmptyResponse):
            return response_model()
        if not response.content.strip():
            raise InvalidResponse("empty body")
        try:
            return response_model.model_validate(response.json())
        except ValueError as e:
            logger.error(f"Failed to decode response: {e}")
            raise InvalidResponse(str(e)) from e

    async def aclose(self) -> None:
        self._closed = True
        await self._client.aclose()

    async def __aenter__(self) -> "NetworkClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
