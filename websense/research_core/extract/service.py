from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup
from loguru import logger

from websense.research_core.errors import ExtractionError
from websense.research_core.models.interfaces import ExtractedDoc

# Ordered from most to least specific; ``body`` is the last resort.
CONTENT_SELECTORS = (
    "main",
    "article",
    ".content",
    ".post-content",
    ".entry-content",
    "#content",
    "#main-content",
    "body",
)

MIN_SUBSTANTIVE_CHARS = 100
NO_TITLE = "No title"
NO_CONTENT = "No content available"
READABILITY_NO_TITLE = "[no-title]"


def clean_text(text: str | None) -> str:
    if not text:
        return ""
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"\n+", "\n", text)
    text = re.sub(r"\t+", " ", text)
    return text.strip()


@dataclass(slots=True)
class PrimaryArticle:
    title: str
    text: str


class ExtractService:
    """Readability-first article extraction with a selector-based fallback."""

    def __init__(self, *, primary: str = "readability"):
        self.primary = primary.lower().strip() or "readability"

    def extract(self, html: str, url: str) -> ExtractedDoc:
        logger.debug(f"Extracting content from {url} ({len(html)} chars of HTML)")
        try:
            article = self._extract_primary(html)
        except Exception as exc:
            logger.warning(f"{self.primary} extraction failed for {url}: {exc}")
            return self._fallback_or_raise(html, url)

        if article is None:
            logger.warning(f"{self.primary} returned nothing for {url}, using fallback")
            return self._fallback_or_raise(html, url)

        content = clean_text(article.text)
        if not content:
            logger.warning(f"Extracted content is empty for {url}, using fallback")
            return self._fallback_or_raise(html, url)

        doc = ExtractedDoc(
            title=clean_text(article.title) or NO_TITLE,
            url=url,
            content=content,
        )
        logger.info(f"Extracted {doc.char_count} chars from {url} with {self.primary}")
        return doc

    def _fallback_or_raise(self, html: str, url: str) -> ExtractedDoc:
        try:
            return self.fallback_extract(html, url)
        except Exception as exc:
            logger.error(f"Fallback extraction also failed for {url}: {exc}")
            raise ExtractionError(
                "Failed to extract content from HTML",
                details={"url": url},
            ) from exc

    def fallback_extract(self, html: str, url: str) -> ExtractedDoc:
        soup = BeautifulSoup(html, "html.parser")
        title = clean_text(soup.title.get_text() if soup.title else "") or NO_TITLE

        content = ""
        for selector in CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            content = clean_text(element.get_text(" "))
            if len(content) > MIN_SUBSTANTIVE_CHARS:
                break

        if not content:
            body = soup.body
            content = clean_text(body.get_text(" ") if body else "") or NO_CONTENT

        doc = ExtractedDoc(title=title, url=url, content=content)
        logger.info(f"Extracted {doc.char_count} chars from {url} with fallback")
        return doc

    def _extract_primary(self, html: str) -> PrimaryArticle | None:
        if self.primary == "trafilatura":
            return self._extract_trafilatura(html)
        return self._extract_readability(html)

    def _extract_readability(self, html: str) -> PrimaryArticle | None:
        from readability import Document

        doc = Document(html)
        summary_html = doc.summary(html_partial=True)
        if not summary_html:
            return None
        soup = BeautifulSoup(summary_html, "html.parser")
        title = doc.short_title() or doc.title()
        if title == READABILITY_NO_TITLE:
            title = ""
        return PrimaryArticle(title=title, text=soup.get_text(" "))

    def _extract_trafilatura(self, html: str) -> PrimaryArticle | None:
        import trafilatura

        extracted = trafilatura.extract(html, output_format="txt")
        if not isinstance(extracted, str) or not extracted:
            return None
        soup = BeautifulSoup(html, "html.parser")
        title = soup.title.get_text() if soup.title else ""
        return PrimaryArticle(title=title, text=extracted)
