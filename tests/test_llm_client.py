"""Tests for the LM Studio generation client."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from websense.api.deps import get_orchestrator
from websense.config import Settings
from websense.llm_client import LMStudioClient, close_clients, get_client
from websense.research_core.errors import ContextTooLongError, ErrorKind, GenerationFailedError


def _completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=120, completion_tokens=30),
    )


def _client_with(create: AsyncMock) -> LMStudioClient:
    fake = MagicMock()
    fake.chat.completions.create = create
    return LMStudioClient(Settings(lmstudio_model="test-model"), client=fake)


def _bad_request(message: str) -> openai.BadRequestError:
    request = httpx.Request("POST", "http://localhost:1234/v1/chat/completions")
    response = httpx.Response(400, request=request, json={"error": {"message": message}})
    return openai.BadRequestError(message, response=response, body={"error": {"message": message}})


class TestGenerate:
    @pytest.mark.asyncio
    async def test_returns_trimmed_answer_and_sends_prompts(self):
        create = AsyncMock(return_value=_completion("  Plants make sugar [1].  "))
        client = _client_with(create)

        answer = await client.generate("[1] Photosynthesis\nURL: https://a.com/\n\nBody", "what is photosynthesis")

        assert answer == "Plants make sugar [1]."
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 2000
        system, user = kwargs["messages"]
        assert system["role"] == "system"
        assert "[1], [2], [3]" in system["content"]
        assert user["role"] == "user"
        assert '"what is photosynthesis"' in user["content"]
        assert "URL: https://a.com/" in user["content"]

    @pytest.mark.asyncio
    async def test_context_length_error_is_actionable(self):
        create = AsyncMock(side_effect=_bad_request("Trying to keep the first 9000 tokens when context length is 4096"))
        client = _client_with(create)

        with pytest.raises(ContextTooLongError) as exc_info:
            await client.generate("context", "query")

        assert exc_info.value.kind == ErrorKind.LLM_FAILED
        assert exc_info.value.http_status == 400
        assert "reducing the number of sources" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_other_bad_request_is_generic_failure(self):
        client = _client_with(AsyncMock(side_effect=_bad_request("model not loaded")))

        with pytest.raises(GenerationFailedError) as exc_info:
            await client.generate("context", "query")

        assert not isinstance(exc_info.value, ContextTooLongError)

    @pytest.mark.asyncio
    async def test_connection_error_is_generation_failure(self):
        request = httpx.Request("POST", "http://localhost:1234/v1/chat/completions")
        client = _client_with(AsyncMock(side_effect=openai.APIConnectionError(request=request)))

        with pytest.raises(GenerationFailedError, match="Failed to generate"):
            await client.generate("context", "query")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [_completion("   "), _completion(None), SimpleNamespace(choices=[])])
    async def test_empty_or_malformed_response_fails(self, response):
        client = _client_with(AsyncMock(return_value=response))

        with pytest.raises(GenerationFailedError):
            await client.generate("context", "query")


@pytest.mark.asyncio
async def test_list_models_returns_ids():
    fake = MagicMock()
    fake.models.list = AsyncMock(return_value=SimpleNamespace(data=[SimpleNamespace(id="qwen"), SimpleNamespace(id="llama")]))
    client = LMStudioClient(Settings(), client=fake)

    assert await client.list_models() == ["qwen", "llama"]


@pytest.mark.asyncio
async def test_requests_share_one_openai_client():
    settings = Settings(lmstudio_base_url="http://localhost:1234/v1")

    first = get_orchestrator(settings)
    second = get_orchestrator(settings)

    assert first.generator._client is second.generator._client
    assert get_client(settings) is first.generator._client

    await close_clients()
    assert first.generator._client.is_closed()
    assert get_client(settings) is not first.generator._client
    await close_clients()
