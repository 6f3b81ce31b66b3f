"""
brain/__init__.py — Plugbot LLM Brain
"""

from __future__ import annotations

from typing import Optional

from brain.llm_client import (
    BaseLLMClient,
    RetryingLLMClient,
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
    ToolResult,
    ToolSchema,
)

__all__ = [
    "LLMClientFactory",
    "BaseLLMClient",
    "RetryingLLMClient",
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMContextError",
    "LLMInvalidRequestError",
    "Message",
    "LLMConfig",
    "LLMResponse",
    "ToolCall",
    "ToolResult",
    "ToolSchema",
    "TokenUsage",
    "Role",
    "Provider",
    "FinishReason",
]


class LLMClientFactory:

    @staticmethod
    def create(
        provider: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        api_version: str = "2024-06-01",
    ) -> BaseLLMClient:

        provider = provider.lower().strip()

        if provider == "openai":
            if not api_key:
                raise LLMConnectionError("AOAI_API_KEY is required", provider="openai")
            from brain.openai_client import OpenAIClient
            return OpenAIClient(api_key=api_key, base_url=base_url, provider=Provider.OPENAI)

        elif provider == "azure":
            if not api_key:
                raise LLMConnectionError("AOAI_API_KEY is required", provider="azure")
            from brain.openai_client import OpenAIClient, build_sdk_client
            sdk = build_sdk_client(Provider.AZURE, api_key, base_url, api_version=api_version)
            return OpenAIClient(
                api_key=api_key, base_url=base_url, provider=Provider.AZURE, sdk_client=sdk,
            )

        else:
            raise ValueError(
                f"Unknown LLM provider: '{provider}'. Valid options: openai, azure"
            )

    @staticmethod
    def from_settings(settings) -> BaseLLMClient:
        """
        Create the chat client from Settings, wrapped in RetryingLLMClient.

        Reads settings.llm.retry (max_attempts, base_delay, max_delay).

        Example config.yaml:
            llm:
              provider: azure
              retry:
                max_attempts: 3
                base_delay: 1.0
                max_delay: 30.0
        """
        primary = LLMClientFactory.create(
            provider=settings.llm.provider,
            api_key=settings.aoai_api_key,
            base_url=settings.aoai_api_endpoint,
            api_version=settings.llm.api_version,
        )
        retry_cfg = settings.llm.retry
        return RetryingLLMClient(
            inner=primary,
            max_attempts=retry_cfg.max_attempts,
            base_delay=retry_cfg.base_delay,
            max_delay=retry_cfg.max_delay,
        )
