from __future__ import annotations

import asyncio
import math
from typing import Any

import httpx
from loguru import logger

from websense.research_core.errors import RateLimitedError, SearchFailedError
from websense.research_core.models.interfaces import SearchResult

GOOGLE_CSE_URL = "https://www.googleapis.com/customsearch/v1"
PAGE_SIZE = 10  # Google CSE returns at most 10 items per request


def map_item(item: dict[str, Any]) -> SearchResult:
    return SearchResult(
        title=item.get("title") or "No title",
        url=item.get("link") or "",
        snippet=item.get("snippet") or item.get("htmlSnippet") or "No snippet",
    )


class GoogleCseSearch:
    """Google Custom Search JSON API with simple pagination."""

    def __init__(
        self,
        *,
        api_key: str,
        cx: str,
        timeout_ms: int = 30000,
        page_delay_ms: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.cx = cx
        self.timeout_ms = timeout_ms
        self.page_delay_ms = page_delay_ms
        self._transport = transport

    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        """Execute a Google CSE search, paging until ``max_results`` are collected."""
        if not self.api_key or not self.cx:
            raise SearchFailedError("GOOGLE_CSE_API_KEY / GOOGLE_CSE_CX are not configured")

        logger.info(f"Searching Google CSE for {query!r} (max_results={max_results})")
        results: list[SearchResult] = []
        start_index = 1
        max_pages = math.ceil(max_results / PAGE_SIZE)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_ms / 1000.0,
                transport=self._transport,
            ) as client:
                for page in range(max_pages):
                    if len(results) >= max_results:
                        break
                    payload = await self._fetch_page(
                        client,
                        query,
                        start=start_index,
                        num=min(PAGE_SIZE, max_results - len(results)),
                    )
                    results.extend(map_item(item) for item in payload.get("items") or [])

                    if not (payload.get("queries") or {}).get("nextPage"):
                        break
                    start_index += PAGE_SIZE
                    if page < max_pages - 1:
                        await asyncio.sleep(self.page_delay_ms / 1000.0)
        except (RateLimitedError, SearchFailedError):
            raise
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"Google CSE search failed: {exc}")
            raise SearchFailedError("Failed to search with Google CSE") from exc

        logger.info(f"Google CSE search completed with {len(results)} results")
        return results[:max_results]

    async def _fetch_page(
        self,
        client: httpx.AsyncClient,
        query: str,
        *,
        start: int,
        num: int,
    ) -> dict[str, Any]:
        response = await client.get(
            GOOGLE_CSE_URL,
            params={
                "key": self.api_key,
                "cx": self.cx,
                "q": query,
                "start": start,
                "num": num,
            },
            headers={"Accept": "application/json"},
        )
        if response.status_code == 429:
            logger.error(f"Google CSE rate limit exceeded: {response.text[:200]}")
            raise RateLimitedError("Google CSE rate limit exceeded")
        if not response.is_success:
            logger.error(f"Google CSE API error {response.status_code}: {response.text[:200]}")
            raise SearchFailedError(f"Google CSE API error: {response.status_code}")

        payload = response.json()
        error = payload.get("error") if isinstance(payload, dict) else None
        if error:
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            raise SearchFailedError(f"Google CSE error: {message}")
        if not isinstance(payload, dict):
            raise SearchFailedError("Google CSE returned an unexpected payload")
        return payload
