import ssl
import time
from typing import Optional

import httpx

from website_improver.features.analysis.schemas.analysis import AccessibilityCheckResult
from website_improver.platform.logger import get_logger

logger = get_logger(__name__)

CHECK_HEADERS = {
    "User-Agent": "Website-Improver-Bot/1.0 (+https://website-improver.com/bot)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}

STATUS_MESSAGES = {
    403: "Access forbidden - website blocks automated requests",
    404: "Page not found",
    500: "Server error - website may be temporarily unavailable",
    503: "Service unavailable - website may be under maintenance",
}


def _status_error(response: httpx.Response) -> str:
    return STATUS_MESSAGES.get(
        response.status_code,
        f"HTTP {response.status_code} - {response.reason_phrase}",
    )


def _connect_error(exc: httpx.RequestError) -> str:
    cause = exc.__cause__ or exc.__context__
    detail = f"{exc} {cause or ''}"
    lowered = detail.lower()

    if isinstance(cause, ssl.SSLError) or "certificate" in lowered or "ssl" in lowered:
        return "SSL certificate error - website may have security issues"
    if "name or service not known" in lowered or "nodename nor servname" in lowered \
            or "getaddrinfo" in lowered or "enotfound" in lowered or "name resolution" in lowered:
        return "Domain not found - please check the URL"
    if "refused" in lowered:
        return "Connection refused - website may be down"
    return str(exc) or "Unknown network error"


async def check_url_accessibility(
    url: str,
    timeout_ms: int = 10000,
    client: Optional[httpx.AsyncClient] = None,
) -> AccessibilityCheckResult:
    """
    Issue a HEAD request and describe whether the page can be fetched.

    Redirects are followed; 2xx and 3xx count as accessible. Network failures
    are reported in the result rather than raised.
    """
    timeout_seconds = timeout_ms / 1000
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient()

    start = time.monotonic()
    try:
        response = await client.head(
            url, headers=CHECK_HEADERS, timeout=timeout_seconds, follow_redirects=True
        )
        response_time = int((time.monotonic() - start) * 1000)

        if response.is_success or response.is_redirect:
            return AccessibilityCheckResult(
                accessible=True,
                status_code=response.status_code,
                response_time=response_time,
                content_type=response.headers.get("content-type"),
                server=response.headers.get("server"),
            )

        return AccessibilityCheckResult(
            accessible=False,
            status_code=response.status_code,
            response_time=response_time,
            error=_status_error(response),
        )

    except httpx.TimeoutException:
        return AccessibilityCheckResult(
            accessible=False,
            error=f"Request timeout after {timeout_seconds:g} seconds",
        )
    except httpx.RequestError as e:
        logger.info(f"Accessibility check for {url} failed: {e}")
        return AccessibilityCheckResult(accessible=False, error=_connect_error(e))
    finally:
        if owns_client:
            await client.aclose()
