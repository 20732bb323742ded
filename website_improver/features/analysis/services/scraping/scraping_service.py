import asyncio
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from website_improver.platform.config import settings
from website_improver.platform.exceptions import UpstreamFailureError
from website_improver.platform.logger import get_logger

logger = get_logger(__name__)

INCLUDE_TAGS = ["title", "meta", "h1", "h2", "h3", "p", "a", "img"]
EXCLUDE_TAGS = ["script", "style", "nav", "footer"]
CRAWL_EXCLUDES = ["*/admin/*", "*/login/*", "*/api/*"]
CRAWL_POLL_INTERVAL_SECONDS = 2.0


class ScrapedPage(BaseModel):
    url: str = ""
    html: str = ""
    markdown: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    screenshot: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], url: str = "") -> "ScrapedPage":
        metadata = payload.get("metadata") or {}
        return cls(
            url=metadata.get("sourceURL") or url,
            html=payload.get("html") or "",
            markdown=payload.get("markdown") or payload.get("content") or "",
            metadata=metadata,
            screenshot=payload.get("screenshot") or None,
        )


class ScrapingService:
    """
    Client for a Firecrawl-compatible scraping API.

    Any transport error, non-2xx status or `success: false` body is raised as
    UpstreamFailureError; callers decide whether that is fatal.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=settings.FIRECRAWL_API_URL,
                timeout=settings.FIRECRAWL_TIMEOUT_SECONDS,
                headers={"Authorization": f"Bearer {settings.FIRECRAWL_API_KEY}"},
            )
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ScrapingService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Dict[str, Any]:
        try:
            response = await self._get_client().request(method, path, json=json)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamFailureError(
                f"Scraping API error: {e.response.status_code} {e.response.reason_phrase}"
            )
        except httpx.TimeoutException:
            raise UpstreamFailureError("Scraping API request timed out")
        except httpx.RequestError as e:
            raise UpstreamFailureError(f"Scraping API unreachable: {e}")
        except ValueError:
            raise UpstreamFailureError("Scraping API returned invalid JSON")

        if not isinstance(body, dict):
            raise UpstreamFailureError("Scraping API returned an unexpected payload")
        return body

    async def scrape(self, url: str, include_screenshot: bool = False) -> ScrapedPage:
        body = await self._request("POST", "/v0/scrape", json={
            "url": url,
            "formats": ["markdown", "html"],
            "includeTags": INCLUDE_TAGS,
            "excludeTags": EXCLUDE_TAGS,
            "screenshot": include_screenshot,
        })

        if not body.get("success") or not body.get("data"):
            raise UpstreamFailureError(body.get("error") or "Failed to scrape website")

        return ScrapedPage.from_payload(body["data"], url=url)

    async def crawl(self, url: str) -> List[ScrapedPage]:
        body = await self._request("POST", "/v0/crawl", json={
            "url": url,
            "crawlerOptions": {
                "includes": [],
                "excludes": CRAWL_EXCLUDES,
                "maxDepth": settings.FIRECRAWL_CRAWL_MAX_DEPTH,
                "limit": settings.FIRECRAWL_CRAWL_LIMIT,
            },
            "pageOptions": {
                "formats": ["markdown", "html"],
                "includeTags": INCLUDE_TAGS,
                "excludeTags": EXCLUDE_TAGS,
                # Only the main page is screenshotted
                "screenshot": False,
            },
        })

        if body.get("success") is False:
            raise UpstreamFailureError(body.get("error") or "Failed to crawl website")

        pages = body.get("data")
        if pages is None and body.get("jobId"):
            pages = await self._wait_for_crawl(body["jobId"])

        if not isinstance(pages, list):
            raise UpstreamFailureError("Crawl returned no pages")

        return [ScrapedPage.from_payload(page) for page in pages if isinstance(page, dict)]

    async def _wait_for_crawl(self, crawl_id: str) -> List[Dict[str, Any]]:
        attempts = max(1, int(settings.FIRECRAWL_TIMEOUT_SECONDS / CRAWL_POLL_INTERVAL_SECONDS))
        for _ in range(attempts):
            body = await self._request("GET", f"/v0/crawl/status/{crawl_id}")
            status = body.get("status")
            if status == "completed":
                return body.get("data") or []
            if status == "failed":
                raise UpstreamFailureError(body.get("error") or "Crawl failed")
            await asyncio.sleep(CRAWL_POLL_INTERVAL_SECONDS)

        raise UpstreamFailureError(f"Crawl {crawl_id} did not finish in time")
