"""
tests/unit/test_brain.py — LLM Brain Unit Tests

Covers:
  - LLMClientFactory: provider selection, missing key, retry wrapping
  - RetryingLLMClient: retries transient errors, not permanent ones
  - OpenAIClient: message/tool conversion and response parsing (mocked SDK)
  - OpenAIImageClient / OpenAIEmbeddingClient (mocked SDK)

Run with:
    pytest tests/unit/test_brain.py -v
"""

from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

_ROOT = Path(__file__).parent.parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from brain import LLMClientFactory
from brain.llm_client import (
    BaseLLMClient,
    LLMConnectionError,
    LLMInvalidRequestError,
    RetryingLLMClient,
)
from brain.openai_client import OpenAIClient, OpenAIEmbeddingClient, OpenAIImageClient
from brain.types import (
    FinishReason,
    LLMConfig,
    LLMResponse,
    Message,
    Provider,
    Role,
    ToolCall,
    ToolResult,
    ToolSchema,
)
from config.settings import Settings
from exceptions import ImageGenerationError


CONFIG = LLMConfig(model="gpt-4o")


class ScriptedClient(BaseLLMClient):
    """Returns or raises the scripted outcomes in order."""

    def __init__(self, *outcomes):
        super().__init__()
        self.outcomes = list(outcomes)
        self.calls = 0

    async def generate(self, messages, config, tools=None):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def health_check(self):
        return True


# ─────────────────────────────────────────────────────────────────────────────
# Factory
# ─────────────────────────────────────────────────────────────────────────────


class TestLLMClientFactory:

    def test_openai(self):
        client = LLMClientFactory.create("openai", api_key="sk-test")
        assert isinstance(client, OpenAIClient)

    def test_azure(self):
        client = LLMClientFactory.create("Azure", api_key="k", base_url="https://aoai.example")
        assert isinstance(client, OpenAIClient)

    def test_missing_key(self):
        with pytest.raises(LLMConnectionError, match="AOAI_API_KEY"):
            LLMClientFactory.create("azure", api_key=None)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            LLMClientFactory.create("bytez", api_key="k")

    def test_from_settings_wraps_in_retry(self):
        settings = Settings(
            AOAI_API_KEY="k",
            AOAI_API_ENDPOINT="https://aoai.example",
            llm={"retry": {"max_attempts": 5}},
        )
        client = LLMClientFactory.from_settings(settings)
        assert isinstance(client, RetryingLLMClient)
        assert isinstance(client.inner, OpenAIClient)


# ─────────────────────────────────────────────────────────────────────────────
# Retry
# ─────────────────────────────────────────────────────────────────────────────


class TestRetryingLLMClient:

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self):
        inner = ScriptedClient(
            LLMConnectionError("reset"),
            LLMConnectionError("reset"),
            LLMResponse(content="ok"),
        )
        client = RetryingLLMClient(inner, max_attempts=3, base_delay=0.0, max_delay=0.0)
        response = await client.generate([Message.user("hi")], CONFIG)
        assert response.content == "ok"
        assert inner.calls == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        inner = ScriptedClient(LLMConnectionError("a"), LLMConnectionError("b"))
        with pytest.raises(LLMConnectionError, match="b"):
            await RetryingLLMClient(inner, max_attempts=2, max_delay=0.0).generate([Message.user("hi")], CONFIG)

    @pytest.mark.asyncio
    async def test_invalid_request_not_retried(self):
        inner = ScriptedClient(LLMInvalidRequestError("bad"), LLMResponse(content="never"))
        with pytest.raises(LLMInvalidRequestError):
            await RetryingLLMClient(inner).generate([Message.user("hi")], CONFIG)
        assert inner.calls == 1

    @pytest.mark.asyncio
    async def test_complete(self):
        client = ScriptedClient(LLMResponse(content="42"))
        assert await client.complete("meaning of life?", CONFIG) == "42"


# ─────────────────────────────────────────────────────────────────────────────
# OpenAIClient
# ─────────────────────────────────────────────────────────────────────────────


def sdk_completion(content=None, tool_calls=None, finish_reason="stop"):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason=finish_reason)],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3),
        model="gpt-4o",
    )


class TestOpenAIClient:

    def _client(self, response):
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(return_value=response)
        return OpenAIClient(api_key="k", provider=Provider.AZURE, sdk_client=sdk), sdk

    @pytest.mark.asyncio
    async def test_text_response(self):
        client, sdk = self._client(sdk_completion("Hello"))
        response = await client.generate([Message.system("s"), Message.user("hi")], CONFIG)
        assert response.content == "Hello"
        assert response.usage.total_tokens == 15
        assert response.provider == Provider.AZURE
        sent = sdk.chat.completions.create.call_args.kwargs["messages"]
        assert sent == [{"role": "system", "content": "s"}, {"role": "user", "content": "hi"}]

    @pytest.mark.asyncio
    async def test_tool_call_response(self):
        tool_call = SimpleNamespace(
            id="call_1",
            function=SimpleNamespace(name="generate_images", arguments='{"prompt": "cat", "n": 2}'),
        )
        client, sdk = self._client(sdk_completion(tool_calls=[tool_call], finish_reason="tool_calls"))
        tools = [ToolSchema(name="generate_images", description="Generate images.")]

        response = await client.generate([Message.user("draw")], CONFIG, tools=tools)

        assert response.finish_reason == FinishReason.TOOL_CALLS
        assert response.tool_calls == [ToolCall(id="call_1", name="generate_images", arguments={"prompt": "cat", "n": 2})]
        sent_tools = sdk.chat.completions.create.call_args.kwargs["tools"]
        assert sent_tools[0]["function"]["name"] == "generate_images"

    def test_tool_round_trip_messages(self):
        client, _ = self._client(sdk_completion("x"))
        messages = [
            Message(role=Role.ASSISTANT, tool_calls=[ToolCall(id="c1", name="web_search", arguments={"query": "q"})]),
            Message.tool_response(ToolResult(tool_call_id="c1", name="web_search", content="results")),
        ]
        converted = client._to_provider_messages(messages)
        assert converted[0]["tool_calls"][0]["function"]["arguments"] == '{"query": "q"}'
        assert converted[1] == {"role": "tool", "tool_call_id": "c1", "content": "results"}


# ─────────────────────────────────────────────────────────────────────────────
# Images + embeddings
# ─────────────────────────────────────────────────────────────────────────────


class TestOpenAIImageClient:

    @pytest.mark.asyncio
    async def test_returns_url(self):
        sdk = MagicMock()
        sdk.images.generate = AsyncMock(return_value=SimpleNamespace(data=[SimpleNamespace(url="https://img/1.png")]))
        url = await OpenAIImageClient(sdk, "dall-e-3").generate_image("a cat")
        assert url == "https://img/1.png"
        assert sdk.images.generate.call_args.kwargs["n"] == 1

    @pytest.mark.asyncio
    async def test_missing_url_raises(self):
        sdk = MagicMock()
        sdk.images.generate = AsyncMock(return_value=SimpleNamespace(data=[]))
        with pytest.raises(ImageGenerationError):
            await OpenAIImageClient(sdk, "dall-e-3").generate_image("a cat")


class TestOpenAIEmbeddingClient:

    @pytest.mark.asyncio
    async def test_embed(self):
        sdk = MagicMock()
        sdk.embeddings.create = AsyncMock(return_value=SimpleNamespace(data=[SimpleNamespace(embedding=[0.5, 0.25])]))
        assert await OpenAIEmbeddingClient(sdk, "text-embedding-3-small").embed("hello") == [0.5, 0.25]
