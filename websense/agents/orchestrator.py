"""Answer pipeline: search -> scrape -> budget -> generate -> respond.

Each stage runs exactly once per request. Per-URL scrape failures are absorbed
by the scrape stage; every other failure ends the request and is reported with
the stage it came from.
"""
from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from websense.config import Settings
from websense.llm_client import LMStudioClient
from websense.models.schemas import AnswerRequest, AnswerResponse, ResponseMeta, Source
from websense.research_core.budget.service import BudgetService
from websense.research_core.errors import (
    InternalError,
    ScrapingFailedError,
    SearchFailedError,
    WebSenseError,
)
from websense.research_core.extract.service import ExtractService
from websense.research_core.models.interfaces import (
    BudgetedDoc,
    ExtractedDoc,
    GenerateCapability,
    SearchCapability,
    SearchResult,
)
from websense.research_core.scrape.fetcher import HttpFetcher
from websense.research_core.scrape.service import ScrapeService
from websense.services import logger as log_service
from websense.tools.search_provider import build_search_provider
from websense.tools.timing import create_timer, format_duration

CONTEXT_DELIMITER = "---"


def build_context(docs: Sequence[BudgetedDoc]) -> str:
    """Number documents from 1 in the given order; the model cites these numbers."""
    parts = [
        f"[{index}] {doc.title}\nURL: {doc.url}\n\n{doc.content}\n\n{CONTEXT_DELIMITER}\n"
        for index, doc in enumerate(docs, start=1)
    ]
    return "\n".join(parts)


class AnswerOrchestrator:
    def __init__(
        self,
        *,
        search: SearchCapability,
        scraper: ScrapeService,
        budget: BudgetService,
        generator: GenerateCapability,
        default_max_links: int = 5,
    ):
        self.search = search
        self.scraper = scraper
        self.budget = budget
        self.generator = generator
        self.default_max_links = default_max_links

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnswerOrchestrator":
        scraper = ScrapeService(
            HttpFetcher(timeout_ms=settings.request_timeout_ms),
            ExtractService(primary=settings.extractor_primary),
            max_parallel=settings.concurrent_fetches,
            timeout_ms=settings.request_timeout_ms,
            extract_in_thread=settings.extract_in_thread,
        )
        return cls(
            search=build_search_provider(settings),
            scraper=scraper,
            budget=BudgetService(
                per_doc_char_budget=settings.per_doc_char_budget,
                total_context_char_budget=settings.total_context_char_budget,
            ),
            generator=LMStudioClient(settings),
            default_max_links=settings.default_max_links,
        )

    async def answer(self, request: AnswerRequest) -> AnswerResponse:
        timer = create_timer()
        max_links = request.max_links or self.default_max_links
        logger.info(f"Processing answer request: query={request.query[:100]!r} max_links={max_links}")

        stage = "search"
        try:
            search_results = await self._search(request.query, max_links)

            stage = "scrape"
            extracted = await self._scrape(search_results, request.site_filter)

            stage = "budget"
            budgeted = self._budget(extracted)

            stage = "generate"
            answer = await self.generator.generate(build_context(budgeted), request.query)
            log_service.log_pipeline_stage("generate", "completed", {"answer_chars": len(answer)})
        except WebSenseError as exc:
            exc.stage = exc.stage or stage
            log_service.log_pipeline_stage(stage, "failed", {"kind": exc.kind.value, "error": exc.message})
            logger.error(f"Answer request failed at {stage} after {format_duration(timer())}: {exc.message}")
            raise
        except Exception as exc:
            log_service.log_pipeline_stage(stage, "failed", {"error": str(exc)})
            logger.exception(f"Unexpected failure at {stage} stage")
            raise InternalError("Failed to process answer request", stage=stage) from exc

        took_ms = timer()
        partial = len(extracted) < len(search_results)
        logger.info(
            f"Answer request completed in {format_duration(took_ms)}: "
            f"search={len(search_results)} extracted={len(extracted)} budgeted={len(budgeted)} partial={partial}"
        )
        return AnswerResponse(
            answer=answer,
            sources=[Source(title=doc.title, url=doc.url) for doc in budgeted],
            meta=ResponseMeta(took_ms=took_ms, partial=partial),
        )

    async def _search(self, query: str, max_links: int) -> list[SearchResult]:
        results = await self.search.search(query, max_links)
        if not results:
            raise SearchFailedError("No search results found", http_status=404)
        log_service.log_pipeline_stage("search", "completed", {"results": len(results)})
        return results

    async def _scrape(
        self,
        search_results: Sequence[SearchResult],
        site_filter: Sequence[str] | None,
    ) -> list[ExtractedDoc]:
        report = await self.scraper.scrape([result.url for result in search_results], site_filter)
        if not report.documents:
            raise ScrapingFailedError(
                "Failed to extract content from any sources",
                details={"attempted": len(report.attempted), "failures": len(report.failures)},
            )
        log_service.log_pipeline_stage(
            "scrape",
            "completed",
            {"attempted": len(report.attempted), "extracted": len(report.documents)},
        )
        return report.documents

    def _budget(self, docs: Sequence[ExtractedDoc]) -> list[BudgetedDoc]:
        budgeted = self.budget.budget_documents(docs)
        if not budgeted:
            raise ScrapingFailedError("No content available after budgeting")
        log_service.log_pipeline_stage(
            "budget",
            "completed",
            {"documents": len(budgeted), "chars": sum(doc.char_count for doc in budgeted)},
        )
        return budgeted
