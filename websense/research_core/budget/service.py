"""Context budgeting for extracted documents.

Documents are first capped individually, then ordered longest-first (the only
relevance signal available), then accumulated greedily until the token
estimate would exceed what is left of the total context budget.

All sizes are estimated at four characters per token. The working limits are
80% of the configured character budgets, and 500 tokens are held back for the
system prompt and the user question.
"""
from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from websense.research_core.models.interfaces import BudgetedDoc, ExtractedDoc

CHARS_PER_TOKEN = 4
RESERVED_TOKENS = 500
SAFETY_MARGIN = 0.8
FORCED_FIT_MIN_TOKENS = 100

SENTENCE_BOUNDARIES = (". ", "! ", "? ", "\n\n")
SENTENCE_CUT_RATIO = 0.8
WORD_CUT_RATIO = 0.9


@dataclass(frozen=True, slots=True)
class BudgetLimits:
    max_tokens: int
    available_tokens: int
    per_doc_max_tokens: int
    total_char_budget: int

    @classmethod
    def from_char_budgets(cls, per_doc_chars: int, total_chars: int) -> "BudgetLimits":
        max_tokens = math.floor(total_chars / CHARS_PER_TOKEN * SAFETY_MARGIN)
        per_doc_max_tokens = math.floor(per_doc_chars / CHARS_PER_TOKEN * SAFETY_MARGIN)
        return cls(
            max_tokens=max_tokens,
            available_tokens=max_tokens - RESERVED_TOKENS,
            per_doc_max_tokens=per_doc_max_tokens,
            total_char_budget=total_chars,
        )

    @property
    def per_doc_max_chars(self) -> int:
        return self.per_doc_max_tokens * CHARS_PER_TOKEN


def estimate_tokens(char_count: int) -> int:
    return math.ceil(char_count / CHARS_PER_TOKEN)


def truncate_content(content: str, max_chars: int) -> str:
    """Cut ``content`` to ``max_chars``, preferring sentence, then word boundaries."""
    if len(content) <= max_chars:
        return content

    truncated = content[: max(max_chars, 0)]
    last_sentence_end = max(truncated.rfind(marker) for marker in SENTENCE_BOUNDARIES)
    if last_sentence_end > max_chars * SENTENCE_CUT_RATIO:
        return truncated[: last_sentence_end + 1].strip()

    last_space = truncated.rfind(" ")
    if last_space > max_chars * WORD_CUT_RATIO:
        return truncated[:last_space].strip()

    return truncated.strip()


def truncate_doc(doc: ExtractedDoc, max_chars: int) -> ExtractedDoc:
    content = truncate_content(doc.content, max_chars)
    if content == doc.content:
        return doc
    return doc.with_content(content)


def rank_by_length(docs: Sequence[ExtractedDoc]) -> list[ExtractedDoc]:
    """Longest first; equal lengths keep their incoming order."""
    return sorted(docs, key=lambda doc: doc.char_count, reverse=True)


def select_within_budget(
    docs: Sequence[ExtractedDoc],
    available_tokens: int,
) -> list[BudgetedDoc]:
    """Greedily take ranked documents while the token estimate fits.

    Only the first slot may be forced to fit: when the top document alone is
    too large (and more than ``FORCED_FIT_MIN_TOKENS``), it is truncated to the
    whole remaining budget and returned on its own. Any later document that
    would overflow ends the selection.
    """
    selected: list[BudgetedDoc] = []
    if available_tokens <= 0:
        return selected

    total_tokens = 0
    for doc in docs:
        doc_tokens = estimate_tokens(doc.char_count)
        if total_tokens + doc_tokens <= available_tokens:
            selected.append(doc)
            total_tokens += doc_tokens
            continue

        if not selected and doc_tokens > FORCED_FIT_MIN_TOKENS:
            selected.append(truncate_doc(doc, available_tokens * CHARS_PER_TOKEN))
        break

    return selected


def budget_documents(docs: Sequence[ExtractedDoc], limits: BudgetLimits) -> list[BudgetedDoc]:
    if not docs:
        return []

    logger.info(
        f"Budgeting {len(docs)} documents ({sum(d.char_count for d in docs)} chars): "
        f"max_tokens={limits.max_tokens} available_tokens={limits.available_tokens} "
        f"per_doc_max_tokens={limits.per_doc_max_tokens} reserved_tokens={RESERVED_TOKENS}"
    )

    capped = [truncate_doc(doc, limits.per_doc_max_chars) for doc in docs]
    ranked = rank_by_length(capped)
    final_docs = select_within_budget(ranked, limits.available_tokens)

    final_chars = sum(doc.char_count for doc in final_docs)
    final_tokens = estimate_tokens(final_chars)
    char_utilization = final_chars / limits.total_char_budget * 100 if limits.total_char_budget else 0.0
    token_utilization = final_tokens / limits.max_tokens * 100 if limits.max_tokens > 0 else 0.0
    logger.info(
        f"Document budgeting completed: {len(docs)} -> {len(final_docs)} docs, "
        f"{final_chars} chars (~{final_tokens} tokens), "
        f"budget utilization {char_utilization:.1f}%, token utilization {token_utilization:.1f}%"
    )
    return final_docs


class BudgetService:
    def __init__(self, *, per_doc_char_budget: int = 4000, total_context_char_budget: int = 12000):
        self.limits = BudgetLimits.from_char_budgets(per_doc_char_budget, total_context_char_budget)

    def budget_documents(self, docs: Sequence[ExtractedDoc]) -> list[BudgetedDoc]:
        return budget_documents(docs, self.limits)
