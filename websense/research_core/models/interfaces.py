from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Protocol


@dataclass(frozen=True, slots=True)
class SearchResult:
    title: str
    url: str
    snippet: str


@dataclass(frozen=True, slots=True)
class ExtractedDoc:
    title: str
    url: str
    content: str
    char_count: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "char_count", len(self.content))

    def with_content(self, content: str) -> "ExtractedDoc":
        """Return a copy holding ``content``; ``char_count`` is recomputed."""
        return replace(self, content=content)


# A document after per-document truncation and relevance ordering.
BudgetedDoc = ExtractedDoc


@dataclass(frozen=True, slots=True)
class ScrapeFailure:
    url: str
    kind: str
    message: str


@dataclass(slots=True)
class ScrapeReport:
    documents: list[ExtractedDoc] = field(default_factory=list)
    failures: list[ScrapeFailure] = field(default_factory=list)
    attempted: list[str] = field(default_factory=list)


class SearchCapability(Protocol):
    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]: ...


class FetchCapability(Protocol):
    async def fetch(self, url: str, timeout_ms: int | None = None) -> str: ...


class ExtractCapability(Protocol):
    def extract(self, html: str, url: str) -> ExtractedDoc: ...


class GenerateCapability(Protocol):
    async def generate(self, context: str, query: str) -> str: ...
