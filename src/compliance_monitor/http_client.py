"""Async HTTP client with timeout and optional retry for external services."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx

from .logging_config import get_logger
from .models import HttpClientConfig, RequestStats

logger = get_logger("http_client")

RETRYABLE_STATUS_CODES = {408, 409, 425, 429}


class HTTPClient:
    """httpx wrapper used by the scraper and summarizer clients.

    Retries are off unless ``max_retries`` is configured; when enabled they
    apply to 5xx, 408/409/425/429 and transport errors with capped
    exponential backoff.
    """

    def __init__(self, config: Optional[HttpClientConfig] = None) -> None:
        self.config = config or HttpClientConfig(name="default")
        self.timeout = httpx.Timeout(
            connect=10.0,
            read=self.config.timeout_seconds,
            write=10.0,
            pool=5.0,
        )
        self.headers = {
            "User-Agent": "Compliance-Monitor/1.0",
            **self.config.headers,
        }
        self.stats = RequestStats()

    async def get_async(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        follow_redirects: bool = True,
    ) -> httpx.Response:
        return await self.request_async(
            "GET",
            url,
            headers=headers,
            params=params,
            follow_redirects=follow_redirects,
        )

    async def post_async(
        self,
        url: str,
        *,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        return await self.request_async("POST", url, headers=headers, params=params, json=json)

    async def request_async(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Any] = None,
        json: Optional[Any] = None,
        follow_redirects: bool = True,
    ) -> httpx.Response:
        merged_headers = {**self.headers, **(headers or {})}

        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=follow_redirects,
        ) as client:
            for attempt in range(self.config.max_retries + 1):
                self.stats.http_requests += 1
                try:
                    response = await client.request(
                        method,
                        url,
                        headers=merged_headers,
                        params=params,
                        data=data,
                        json=json,
                    )
                    response.raise_for_status()
                    return response

                except httpx.HTTPStatusError as exc:
                    status_code = exc.response.status_code
                    if self._should_retry_status(status_code) and attempt < self.config.max_retries:
                        delay = self._calculate_retry_delay(attempt + 1)
                        self.stats.retry_attempts += 1
                        logger.warning(
                            "Request %s %s failed with status %s. Retrying in %.2fs (attempt %s/%s)",
                            method,
                            url,
                            status_code,
                            delay,
                            attempt + 1,
                            self.config.max_retries,
                        )
                        await asyncio.sleep(delay)
                        continue

                    logger.error("Request %s %s failed with status %s", method, url, status_code)
                    raise

                except httpx.RequestError as exc:
                    if attempt < self.config.max_retries:
                        delay = self._calculate_retry_delay(attempt + 1)
                        self.stats.retry_attempts += 1
                        logger.warning(
                            "Request %s %s failed (%s). Retrying in %.2fs (attempt %s/%s)",
                            method,
                            url,
                            exc,
                            delay,
                            attempt + 1,
                            self.config.max_retries,
                        )
                        await asyncio.sleep(delay)
                        continue

                    logger.error(
                        "Request %s %s failed after %s attempts: %s",
                        method,
                        url,
                        attempt + 1,
                        exc,
                    )
                    raise

        raise RuntimeError(f"Request {method} {url} failed after retries")

    def _should_retry_status(self, status_code: int) -> bool:
        if status_code >= 500:
            return True
        return status_code in RETRYABLE_STATUS_CODES

    def _calculate_retry_delay(self, retry_number: int) -> float:
        delay = self.config.retry_base_delay * (
            self.config.retry_exponential_base ** (retry_number - 1)
        )
        return min(delay, self.config.retry_max_delay)
