"""Tests for the answer orchestrator."""
from __future__ import annotations

import pytest

from websense.agents.orchestrator import AnswerOrchestrator, build_context
from websense.config import Settings
from websense.llm_client import LMStudioClient
from websense.models.schemas import AnswerRequest
from websense.research_core.budget.service import BudgetService
from websense.research_core.errors import (
    ContextTooLongError,
    InternalError,
    RateLimitedError,
    ScrapingFailedError,
    SearchFailedError,
)
from websense.research_core.models.interfaces import ExtractedDoc, SearchResult
from websense.research_core.scrape.fetcher import HttpFetcher
from websense.research_core.scrape.service import ScrapeService
from websense.tools.google_cse import GoogleCseSearch


class FakeSearch:
    def __init__(self, results=None, error: Exception | None = None):
        self.results = results or []
        self.error = error
        self.calls: list[tuple[str, int]] = []

    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        self.calls.append((query, max_results))
        if self.error:
            raise self.error
        return self.results[:max_results]


class FakeFetcher:
    def __init__(self, pages: dict[str, str]):
        self.pages = pages

    async def fetch(self, url: str, timeout_ms: int | None = None) -> str:
        if url not in self.pages:
            raise ScrapingFailedError(f"HTTP 404 for {url}")
        return self.pages[url]


class FakeExtractor:
    def extract(self, html: str, url: str) -> ExtractedDoc:
        return ExtractedDoc(title=f"Page {url.rsplit('/', 1)[-1]}", url=url, content=html)


class FakeGenerator:
    def __init__(self, answer: str = "Photosynthesis converts light into chemical energy [1].", error=None):
        self.answer = answer
        self.error = error
        self.contexts: list[str] = []

    async def generate(self, context: str, query: str) -> str:
        self.contexts.append(context)
        if self.error:
            raise self.error
        return self.answer


def _results(n: int) -> list[SearchResult]:
    return [
        SearchResult(title=f"Result {i}", url=f"https://example.com/{i}", snippet=f"Snippet {i}")
        for i in range(1, n + 1)
    ]


def _pages(*indices: int, size: int = 300) -> dict[str, str]:
    return {
        f"https://example.com/{i}": (f"Sentence {i} about chlorophyll and light. " * 100)[: size + i]
        for i in indices
    }


def _orchestrator(search, pages, generator=None, **budget) -> AnswerOrchestrator:
    return AnswerOrchestrator(
        search=search,
        scraper=ScrapeService(FakeFetcher(pages), FakeExtractor(), max_parallel=2),
        budget=BudgetService(**budget),
        generator=generator or FakeGenerator(),
    )


@pytest.mark.asyncio
async def test_end_to_end_returns_cited_answer():
    orchestrator = _orchestrator(FakeSearch(_results(5)), _pages(1, 2, 3))

    response = await orchestrator.answer(AnswerRequest(query="what is photosynthesis", max_links=3))

    assert response.answer
    assert 1 <= len(response.sources) <= 3
    assert response.meta.took_ms >= 0
    assert response.meta.partial is False


@pytest.mark.asyncio
async def test_partial_is_true_when_some_pages_fail():
    orchestrator = _orchestrator(FakeSearch(_results(5)), _pages(1, 3, 5))

    response = await orchestrator.answer(AnswerRequest(query="what is photosynthesis", max_links=5))

    assert response.meta.partial is True
    assert {s.url for s in response.sources} == {
        "https://example.com/1",
        "https://example.com/3",
        "https://example.com/5",
    }


@pytest.mark.asyncio
async def test_partial_is_false_when_all_pages_succeed():
    orchestrator = _orchestrator(FakeSearch(_results(5)), _pages(1, 2, 3, 4, 5))

    response = await orchestrator.answer(AnswerRequest(query="what is photosynthesis", max_links=5))

    assert response.meta.partial is False


@pytest.mark.asyncio
async def test_context_and_sources_follow_budgeted_order():
    generator = FakeGenerator()
    # Longer pages rank first, so page 3 is cited as [1].
    orchestrator = _orchestrator(FakeSearch(_results(3)), _pages(1, 2, 3), generator)

    response = await orchestrator.answer(AnswerRequest(query="what is photosynthesis", max_links=3))

    assert [s.url for s in response.sources] == [
        "https://example.com/3",
        "https://example.com/2",
        "https://example.com/1",
    ]
    context = generator.contexts[0]
    assert context.startswith("[1] Page 3\nURL: https://example.com/3\n\n")
    assert "[3] Page 1\nURL: https://example.com/1" in context


@pytest.mark.asyncio
async def test_passes_max_links_to_search():
    search = FakeSearch(_results(5))
    orchestrator = _orchestrator(search, _pages(1, 2))

    await orchestrator.answer(AnswerRequest(query="what is photosynthesis", max_links=2))

    assert search.calls == [("what is photosynthesis", 2)]


@pytest.mark.asyncio
async def test_zero_search_results_is_fatal():
    orchestrator = _orchestrator(FakeSearch([]), {})

    with pytest.raises(SearchFailedError) as exc_info:
        await orchestrator.answer(AnswerRequest(query="what is photosynthesis"))

    assert exc_info.value.http_status == 404
    assert exc_info.value.stage == "search"


@pytest.mark.asyncio
async def test_rate_limit_propagates_unchanged():
    orchestrator = _orchestrator(FakeSearch(error=RateLimitedError("Google CSE rate limit exceeded")), {})

    with pytest.raises(RateLimitedError) as exc_info:
        await orchestrator.answer(AnswerRequest(query="what is photosynthesis"))

    assert exc_info.value.stage == "search"


@pytest.mark.asyncio
async def test_all_pages_failing_is_fatal():
    generator = FakeGenerator()
    orchestrator = _orchestrator(FakeSearch(_results(3)), {}, generator)

    with pytest.raises(ScrapingFailedError) as exc_info:
        await orchestrator.answer(AnswerRequest(query="what is photosynthesis", max_links=3))

    assert exc_info.value.stage == "scrape"
    assert generator.contexts == []


@pytest.mark.asyncio
async def test_empty_budget_is_fatal():
    # Nothing fits once the prompt reservation is taken out of a tiny budget.
    orchestrator = _orchestrator(
        FakeSearch(_results(2)),
        _pages(1, 2),
        per_doc_char_budget=4000,
        total_context_char_budget=1000,
    )

    with pytest.raises(ScrapingFailedError, match="after budgeting") as exc_info:
        await orchestrator.answer(AnswerRequest(query="what is photosynthesis", max_links=2))

    assert exc_info.value.stage == "budget"


@pytest.mark.asyncio
async def test_context_too_long_propagates_with_guidance():
    generator = FakeGenerator(error=ContextTooLongError())
    orchestrator = _orchestrator(FakeSearch(_results(2)), _pages(1, 2), generator)

    with pytest.raises(ContextTooLongError) as exc_info:
        await orchestrator.answer(AnswerRequest(query="what is photosynthesis", max_links=2))

    assert exc_info.value.stage == "generate"
    assert "reducing the number of sources" in exc_info.value.message


@pytest.mark.asyncio
async def test_unexpected_error_becomes_internal_error():
    generator = FakeGenerator(error=KeyError("boom"))
    orchestrator = _orchestrator(FakeSearch(_results(2)), _pages(1, 2), generator)

    with pytest.raises(InternalError) as exc_info:
        await orchestrator.answer(AnswerRequest(query="what is photosynthesis", max_links=2))

    assert exc_info.value.stage == "generate"
    assert isinstance(exc_info.value.__cause__, KeyError)


def test_build_context_format():
    docs = [
        ExtractedDoc(title="First", url="https://a.com/", content="Alpha."),
        ExtractedDoc(title="Second", url="https://b.com/", content="Beta."),
    ]

    assert build_context(docs) == (
        "[1] First\nURL: https://a.com/\n\nAlpha.\n\n---\n"
        "\n"
        "[2] Second\nURL: https://b.com/\n\nBeta.\n\n---\n"
    )


def test_from_settings_wires_configured_components():
    settings = Settings(
        concurrent_fetches=3,
        request_timeout_ms=5000,
        per_doc_char_budget=2000,
        total_context_char_budget=8000,
    )

    orchestrator = AnswerOrchestrator.from_settings(settings)

    assert isinstance(orchestrator.search, GoogleCseSearch)
    assert isinstance(orchestrator.scraper.fetcher, HttpFetcher)
    assert orchestrator.scraper.max_parallel == 3
    assert orchestrator.scraper.timeout_ms == 5000
    assert orchestrator.budget.limits.per_doc_max_chars == 1600
    assert isinstance(orchestrator.generator, LMStudioClient)
