from __future__ import annotations

import asyncio
from collections.abc import Sequence

from loguru import logger

from websense.research_core.errors import ErrorKind, WebSenseError
from websense.research_core.models.interfaces import (
    ExtractCapability,
    ExtractedDoc,
    FetchCapability,
    ScrapeFailure,
    ScrapeReport,
)
from websense.tools import web_utils

DEFAULT_CONCURRENCY = 4


def filter_urls(urls: Sequence[str], site_filter: Sequence[str] | None) -> list[str]:
    """Keep URLs that contain at least one allowed substring."""
    return [url for url in urls if web_utils.matches_site_filter(url, site_filter)]


class ScrapeService:
    """Fetch+extract many URLs under a concurrency cap, tolerating per-URL failures."""

    def __init__(
        self,
        fetcher: FetchCapability,
        extractor: ExtractCapability,
        *,
        max_parallel: int = DEFAULT_CONCURRENCY,
        timeout_ms: int | None = None,
        extract_in_thread: bool = False,
    ):
        self.fetcher = fetcher
        self.extractor = extractor
        self.max_parallel = max(int(max_parallel), 1)
        self.timeout_ms = timeout_ms
        self.extract_in_thread = bool(extract_in_thread)

    async def scrape(
        self,
        urls: Sequence[str],
        site_filter: Sequence[str] | None = None,
    ) -> ScrapeReport:
        filtered = filter_urls(urls, site_filter)
        if site_filter:
            logger.info(f"URLs filtered by site: {len(urls)} -> {len(filtered)}")
        unique_urls = web_utils.deduplicate_urls(filtered)
        logger.info(f"Scraping {len(unique_urls)} unique URLs (max_parallel={self.max_parallel})")

        semaphore = asyncio.Semaphore(self.max_parallel)

        async def run_one(url: str) -> ExtractedDoc:
            async with semaphore:
                return await self.scrape_one(url)

        # gather keeps argument order, so documents follow the input URL order.
        outcomes = await asyncio.gather(
            *(run_one(url) for url in unique_urls),
            return_exceptions=True,
        )

        report = ScrapeReport(attempted=unique_urls)
        for url, outcome in zip(unique_urls, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failure = _to_failure(url, outcome)
                logger.warning(f"Failed to scrape {url}: [{failure.kind}] {failure.message}")
                report.failures.append(failure)
                continue
            report.documents.append(outcome)

        logger.info(
            f"Content scraping completed: {len(report.documents)} succeeded, "
            f"{len(report.failures)} failed of {len(unique_urls)}"
        )
        return report

    async def scrape_documents(
        self,
        urls: Sequence[str],
        site_filter: Sequence[str] | None = None,
    ) -> list[ExtractedDoc]:
        report = await self.scrape(urls, site_filter)
        return report.documents

    async def scrape_one(self, url: str) -> ExtractedDoc:
        html = await self.fetcher.fetch(url, self.timeout_ms)
        if self.extract_in_thread:
            return await asyncio.to_thread(self.extractor.extract, html, url)
        return self.extractor.extract(html, url)


def _to_failure(url: str, exc: Exception) -> ScrapeFailure:
    if isinstance(exc, WebSenseError):
        kind = exc.kind.value
    else:
        kind = ErrorKind.SCRAPING_FAILED.value
    return ScrapeFailure(url=url, kind=kind, message=str(exc) or type(exc).__name__)
