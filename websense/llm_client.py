"""LM Studio client over the OpenAI-compatible chat completions API."""
from __future__ import annotations

import math
import time
from typing import Any

import openai
from loguru import logger

from websense.config import Settings
from websense.research_core.errors import ContextTooLongError, GenerationFailedError
from websense.services import logger as log_service
from websense.services.prompt_store import answer_messages

CONTEXT_LENGTH_MARKERS = ("context length", "context_length", "maximum context")


def estimate_tokens(text: str) -> int:
    # Rough estimation: 4 characters per token (conservative)
    return math.ceil(len(text) / 4)


# Singletons, one per (base_url, api_key); each owns an httpx connection pool.
_clients: dict[tuple[str, str], openai.AsyncOpenAI] = {}


def get_client(settings: Settings) -> openai.AsyncOpenAI:
    """Get or create the AsyncOpenAI client for the configured LM Studio server."""
    api_key = settings.lmstudio_api_key or "lm-studio"
    key = (settings.lmstudio_base_url, api_key)
    if key not in _clients:
        _clients[key] = openai.AsyncOpenAI(api_key=api_key, base_url=settings.lmstudio_base_url)
    return _clients[key]


async def close_clients() -> None:
    """Close every cached client; called on app shutdown."""
    clients = list(_clients.values())
    _clients.clear()
    for client in clients:
        await client.close()


def _is_context_length_error(exc: Exception) -> bool:
    text = str(exc).lower()
    body = getattr(exc, "body", None)
    if body is not None:
        text += " " + str(body).lower()
    return any(marker in text for marker in CONTEXT_LENGTH_MARKERS)


class LMStudioClient:
    def __init__(self, settings: Settings, client: Any | None = None):
        self.model = settings.lmstudio_model
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens
        self._client = client if client is not None else get_client(settings)

    async def generate(self, context: str, query: str) -> str:
        messages = answer_messages(context, query)
        prompt_tokens = estimate_tokens("".join(m["content"] for m in messages))
        logger.info(
            f"Generating answer with {self.model}: context={len(context)} chars, "
            f"~{prompt_tokens} prompt tokens"
        )

        started = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=False,
            )
        except openai.BadRequestError as exc:
            self._log_call(started, error=str(exc))
            if _is_context_length_error(exc):
                raise ContextTooLongError(details={"context_chars": len(context)}) from exc
            raise GenerationFailedError(f"LM Studio API error: {exc.status_code}") from exc
        except openai.APIStatusError as exc:
            self._log_call(started, error=str(exc))
            raise GenerationFailedError(f"LM Studio API error: {exc.status_code}") from exc
        except openai.OpenAIError as exc:
            self._log_call(started, error=str(exc))
            raise GenerationFailedError("Failed to generate answer with LM Studio") from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            self._log_call(started, error="no choices")
            raise GenerationFailedError("No response from LM Studio")

        content = getattr(choices[0].message, "content", None)
        answer = content.strip() if isinstance(content, str) else ""
        if not answer:
            self._log_call(started, error="empty answer")
            raise GenerationFailedError("Empty response from LM Studio")

        usage = getattr(response, "usage", None)
        self._log_call(
            started,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )
        return answer

    async def list_models(self) -> list[str]:
        page = await self._client.models.list()
        return [model.id for model in getattr(page, "data", []) or []]

    def _log_call(
        self,
        started: float,
        *,
        input_tokens: int = 0,
        output_tokens: int = 0,
        error: str | None = None,
    ) -> None:
        log_service.log_llm_call(
            model=self.model,
            caller="answer",
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=int((time.monotonic() - started) * 1000),
            status="error" if error else "success",
            error=error,
        )
