"""Scraper backends that turn a source URL into markdown-like text."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import httpx

from .config import ServiceSettings
from .errors import ScraperError
from .http_client import HTTPClient
from .logging_config import get_logger
from .models import ScrapeResponse
from .parser_utils import html_to_text

logger = get_logger("scraper")

FIRECRAWL_SCRAPE_PATH = "/v1/scrape"
FIRECRAWL_WAIT_FOR_MS = 2000
FIRECRAWL_MAX_AGE_MS = 172800000


class Scraper(Protocol):
    async def scrape(self, url: str) -> ScrapeResponse:
        ...


class FirecrawlScraper:
    """Client for the Firecrawl scrape endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.firecrawl.dev",
        http_client: Optional[HTTPClient] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client or HTTPClient()

    def build_payload(self, url: str) -> Dict[str, Any]:
        return {
            "url": url,
            "formats": ["markdown"],
            "onlyMainContent": False,
            "waitFor": FIRECRAWL_WAIT_FOR_MS,
            "maxAge": FIRECRAWL_MAX_AGE_MS,
            "removeBase64Images": True,
        }

    async def scrape(self, url: str) -> ScrapeResponse:
        try:
            response = await self.http_client.post_async(
                f"{self.base_url}{FIRECRAWL_SCRAPE_PATH}",
                json=self.build_payload(url),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPStatusError as exc:
            raise ScraperError(
                f"Firecrawl returned {exc.response.status_code} for {url}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ScraperError(f"Firecrawl request for {url} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ScraperError(f"Firecrawl returned invalid JSON for {url}") from exc

        data = body.get("data") or {}
        markdown = data.get("markdown")
        if not body.get("success", True) or not markdown:
            raise ScraperError(body.get("error") or f"No content returned from Firecrawl for {url}")

        return ScrapeResponse(success=True, markdown=markdown, metadata=data.get("metadata") or {})


class DirectPageScraper:
    """Fetches the page itself and flattens the HTML to text."""

    def __init__(self, http_client: Optional[HTTPClient] = None) -> None:
        self.http_client = http_client or HTTPClient()

    async def scrape(self, url: str) -> ScrapeResponse:
        try:
            response = await self.http_client.get_async(url)
        except httpx.HTTPStatusError as exc:
            raise ScraperError(
                f"GET {url} returned {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ScraperError(f"GET {url} failed: {exc}") from exc

        text = html_to_text(response.text)
        if not text:
            raise ScraperError(f"No text content extracted from {url}")
        return ScrapeResponse(
            success=True,
            markdown=text,
            metadata={
                "statusCode": response.status_code,
                "contentType": response.headers.get("content-type", ""),
                "sourceURL": url,
            },
        )


def build_scraper(settings: ServiceSettings) -> Scraper:
    http_client = HTTPClient(settings.http_config("scraper"))
    if settings.firecrawl_api_key:
        return FirecrawlScraper(settings.firecrawl_api_key, settings.firecrawl_base_url, http_client)
    logger.info("FIRECRAWL_API_KEY not set, fetching pages directly")
    return DirectPageScraper(http_client)
