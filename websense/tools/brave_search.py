from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from websense.research_core.errors import RateLimitedError, SearchFailedError
from websense.research_core.models.interfaces import SearchResult

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
MAX_COUNT = 20  # Brave caps ``count`` per request


class BraveSearch:
    def __init__(
        self,
        *,
        api_key: str,
        timeout_ms: int = 30000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.timeout_ms = timeout_ms
        self._transport = transport

    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        """Execute a Brave web search and normalize results."""
        if not self.api_key:
            raise SearchFailedError("BRAVE_API_KEY is not configured")

        params: dict[str, Any] = {
            "q": query,
            "count": min(max_results, MAX_COUNT),
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_ms / 1000.0,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    BRAVE_SEARCH_URL,
                    params=params,
                    headers={
                        "Accept": "application/json",
                        "X-Subscription-Token": self.api_key,
                    },
                )
        except httpx.HTTPError as exc:
            logger.error(f"Brave search failed: {exc}")
            raise SearchFailedError("Failed to search with Brave") from exc

        if response.status_code == 429:
            raise RateLimitedError("Brave search rate limit exceeded")
        if not response.is_success:
            raise SearchFailedError(f"Brave search API error: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error(f"Brave search returned invalid JSON: {exc}")
            raise SearchFailedError("Failed to search with Brave") from exc
        if not isinstance(payload, dict):
            raise SearchFailedError("Brave search returned an unexpected payload")

        raw_results = (payload.get("web") or {}).get("results") or []
        mapped: list[SearchResult] = []
        for item in raw_results[:max_results]:
            snippets = item.get("extra_snippets", []) or []
            description = item.get("description", "") or ""
            mapped.append(
                SearchResult(
                    title=item.get("title") or "No title",
                    url=item.get("url", ""),
                    snippet=description.strip() or " ".join(snippets).strip() or "No snippet",
                )
            )
        return mapped
