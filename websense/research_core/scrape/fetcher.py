from __future__ import annotations

import asyncio

import httpx
from loguru import logger

from websense.research_core.errors import (
    ContentTypeError,
    FetchError,
    FetchTimeoutError,
)

USER_AGENT = "WebSense/1.0 (+https://github.com/websense)"
HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
DEFAULT_TIMEOUT_MS = 20000

REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


def is_html_content_type(content_type: str) -> bool:
    lowered = content_type.lower()
    return any(kind in lowered for kind in HTML_CONTENT_TYPES)


class HttpFetcher:
    """Fetches raw HTML for a single URL with one overall timeout."""

    def __init__(
        self,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_ms = max(int(timeout_ms), 1)
        self._transport = transport

    async def fetch(self, url: str, timeout_ms: int | None = None) -> str:
        timeout_ms = self.timeout_ms if timeout_ms is None else max(int(timeout_ms), 1)
        logger.debug(f"Fetching {url} (timeout={timeout_ms}ms)")
        try:
            return await asyncio.wait_for(
                self._get(url, timeout_ms),
                timeout=timeout_ms / 1000.0,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(f"Request to {url} timed out after {timeout_ms}ms")
            raise FetchTimeoutError(
                f"Request timed out after {timeout_ms}ms",
                details={"url": url, "timeout_ms": timeout_ms},
            ) from exc
        except FetchError:
            raise
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(f"Fetch failed for {url}: {exc}")
            raise FetchError(
                f"Failed to fetch content: {exc}",
                http_status=500,
                details={"url": url},
            ) from exc

    async def _get(self, url: str, timeout_ms: int) -> str:
        async with httpx.AsyncClient(
            timeout=timeout_ms / 1000.0,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            response = await client.get(url, headers=REQUEST_HEADERS)

        if not response.is_success:
            logger.warning(f"HTTP request to {url} failed with status {response.status_code}")
            raise FetchError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
                details={"url": url},
            )

        content_type = response.headers.get("content-type", "")
        if not is_html_content_type(content_type):
            logger.warning(f"Non-HTML content type {content_type!r} for {url}, skipping")
            raise ContentTypeError(
                "Non-HTML content not supported",
                content_type=content_type,
                details={"url": url, "content_type": content_type},
            )

        html = response.text
        if not html:
            raise FetchError("Empty response content", details={"url": url})

        logger.debug(f"Fetched {url} ({len(html)} chars)")
        return html
