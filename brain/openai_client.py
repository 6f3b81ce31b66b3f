"""
brain/openai_client.py — OpenAI / Azure OpenAI Clients

OpenAIClient:          chat completions with tool calling (planner + direct answers)
OpenAIImageClient:     one image per generate_image() call (image skill)
OpenAIEmbeddingClient: query embeddings for document search

All three share one AsyncOpenAI (or AsyncAzureOpenAI) SDK client built by
build_sdk_client(); provider errors are normalised into brain/ and
exceptions.py types.
"""

from __future__ import annotations

import json
from typing import Optional

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI

from brain.llm_client import (
    BaseLLMClient,
    LLMConnectionError,
    LLMContextError,
    LLMError,
    LLMInvalidRequestError,
    LLMRateLimitError,
)
from brain.types import (
    FinishReason,
    LLMConfig,
    LLMResponse,
    Message,
    Provider,
    Role,
    TokenUsage,
    ToolCall,
    ToolSchema,
)
from exceptions import ImageGenerationError
from observability.logger import get_logger

log = get_logger(__name__)

_DEFAULT_AZURE_API_VERSION = "2024-06-01"


def build_sdk_client(
    provider: Provider,
    api_key: Optional[str],
    endpoint: Optional[str] = None,
    api_version: str = _DEFAULT_AZURE_API_VERSION,
) -> AsyncOpenAI:
    """Return the SDK client for the provider. Azure needs an endpoint."""
    if provider == Provider.AZURE:
        if not endpoint:
            raise LLMConnectionError("AOAI_API_ENDPOINT is required for azure", provider="azure")
        return AsyncAzureOpenAI(api_key=api_key, azure_endpoint=endpoint, api_version=api_version)
    return AsyncOpenAI(api_key=api_key, base_url=endpoint)


def _normalise_error(e: Exception, provider: str) -> LLMError:
    """Map an openai SDK exception to the LLMError family."""
    if isinstance(e, openai.AuthenticationError):
        return LLMConnectionError(str(e), provider=provider, status_code=401)
    if isinstance(e, openai.RateLimitError):
        return LLMRateLimitError(str(e), provider=provider)
    if isinstance(e, openai.BadRequestError):
        if "context" in str(e).lower() or "too long" in str(e).lower():
            return LLMContextError(str(e), provider=provider)
        return LLMInvalidRequestError(str(e), provider=provider)
    if isinstance(e, openai.APIConnectionError):
        return LLMConnectionError(str(e), provider=provider)
    return LLMError(str(e), provider=provider, status_code=getattr(e, "status_code", None))


class OpenAIClient(BaseLLMClient):
    """Chat completions client for OpenAI and Azure OpenAI deployments."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        provider: Provider = Provider.OPENAI,
        sdk_client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(api_key=api_key, base_url=base_url)
        self._provider = provider
        self._client = sdk_client or build_sdk_client(provider, api_key, base_url)

    # ── Public API ────────────────────────────────────────────────────────────

    async def generate(
        self,
        messages: list[Message],
        config: LLMConfig,
        tools: Optional[list[ToolSchema]] = None,
    ) -> LLMResponse:
        oai_messages = self._to_provider_messages(messages)
        oai_tools = self._to_provider_tools(tools) if tools else openai.NOT_GIVEN

        log.debug(
            "openai.generate.start",
            model=config.model,
            message_count=len(messages),
            has_tools=bool(tools),
        )

        try:
            response = await self._client.chat.completions.create(
                model=config.model,
                messages=oai_messages,
                tools=oai_tools,
                tool_choice="auto" if tools else openai.NOT_GIVEN,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                top_p=config.top_p,
                timeout=config.timeout_seconds,
            )
        except openai.APIError as e:
            raise _normalise_error(e, self._provider.value) from e

        result = self._from_provider_response(response)
        log.debug(
            "openai.generate.complete",
            model=result.model,
            input_tokens=result.usage.input_tokens,
            output_tokens=result.usage.output_tokens,
            finish_reason=result.finish_reason,
            tool_calls=len(result.tool_calls),
        )
        return result

    async def health_check(self) -> bool:
        try:
            await self._client.models.list()
            return True
        except (openai.APIError, OSError) as e:
            log.warning("openai.health_check.failed", error=str(e), error_type=type(e).__name__)
            return False

    # ── Private helpers ───────────────────────────────────────────────────────

    def _to_provider_messages(self, messages: list[Message]) -> list[dict]:
        result = []
        for msg in messages:
            if msg.role in (Role.SYSTEM, Role.USER):
                result.append({"role": msg.role.value, "content": msg.content or ""})

            elif msg.role == Role.ASSISTANT:
                entry: dict = {"role": "assistant"}
                if msg.content:
                    entry["content"] = msg.content
                if msg.tool_calls:
                    entry["tool_calls"] = [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {
                                "name": tc.name,
                                "arguments": json.dumps(tc.arguments),
                            },
                        }
                        for tc in msg.tool_calls
                    ]
                result.append(entry)

            elif msg.role == Role.TOOL and msg.tool_result:
                result.append({
                    "role": "tool",
                    "tool_call_id": msg.tool_result.tool_call_id,
                    "content": msg.tool_result.content,
                })

        return result

    def _to_provider_tools(self, tools: list[ToolSchema]) -> list[dict]:
        return [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.parameters,
                },
            }
            for t in tools
        ]

    def _from_provider_response(self, response) -> LLMResponse:
        choice = response.choices[0]
        msg = choice.message

        finish_map = {
            "stop": FinishReason.STOP,
            "tool_calls": FinishReason.TOOL_CALLS,
            "length": FinishReason.LENGTH,
        }
        finish_reason = finish_map.get(choice.finish_reason or "stop", FinishReason.STOP)

        tool_calls: list[ToolCall] = []
        for tc in msg.tool_calls or []:
            try:
                args = json.loads(tc.function.arguments or "{}")
            except json.JSONDecodeError:
                args = {"_raw": tc.function.arguments}
            tool_calls.append(ToolCall(id=tc.id, name=tc.function.name, arguments=args))

        usage = TokenUsage(
            input_tokens=response.usage.prompt_tokens if response.usage else 0,
            output_tokens=response.usage.completion_tokens if response.usage else 0,
        )

        return LLMResponse(
            content=msg.content,
            tool_calls=tool_calls,
            finish_reason=finish_reason,
            usage=usage,
            model=response.model or "",
            provider=self._provider,
        )


class OpenAIImageClient:
    """Image generation against a DALL-E style deployment, one image per call."""

    def __init__(self, sdk_client: AsyncOpenAI, model: str, size: str = "1024x1024"):
        self._client = sdk_client
        self._model = model
        self._size = size

    async def generate_image(self, prompt: str) -> str:
        """Generate one image and return its URL."""
        try:
            response = await self._client.images.generate(
                model=self._model,
                prompt=prompt,
                size=self._size,
                n=1,
            )
        except openai.APIError as e:
            raise ImageGenerationError(
                str(e), service="images", status_code=getattr(e, "status_code", None)
            ) from e

        if not response.data or not response.data[0].url:
            raise ImageGenerationError("Image service returned no image URL.", service="images")
        return response.data[0].url


class OpenAIEmbeddingClient:
    """Text embeddings for vector search."""

    def __init__(self, sdk_client: AsyncOpenAI, model: str):
        self._client = sdk_client
        self._model = model

    async def embed(self, text: str) -> list[float]:
        try:
            response = await self._client.embeddings.create(model=self._model, input=text)
        except openai.APIError as e:
            raise _normalise_error(e, "embeddings") from e
        return list(response.data[0].embedding)
