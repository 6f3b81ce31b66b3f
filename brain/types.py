"""
brain/types.py — Plugbot Brain Data Models

Shared types used by the LLM clients, the planners and the skill layer.
Providers (OpenAI, Azure OpenAI) map their native response shapes into
these types.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"           # skill result fed back to the LLM


class Provider(str, Enum):
    OPENAI = "openai"
    AZURE = "azure"


class FinishReason(str, Enum):
    STOP = "stop"
    TOOL_CALLS = "tool_calls"
    LENGTH = "length"
    ERROR = "error"


# ─────────────────────────────────────────────────────────────────────────────
# Tool calling types
# ─────────────────────────────────────────────────────────────────────────────


class ToolCall(BaseModel):
    """A single skill invocation requested by the LLM."""
    id: str = Field(..., description="Unique ID for this tool call (from LLM)")
    name: str = Field(..., description="Skill name to call")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Parsed JSON arguments")


class ToolResult(BaseModel):
    """The result of executing a tool call, fed back to the LLM."""
    tool_call_id: str
    name: str
    content: str
    is_error: bool = False


class ToolSchema(BaseModel):
    """Provider-agnostic function definition handed to the LLM."""
    name: str
    description: str
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )


# ─────────────────────────────────────────────────────────────────────────────
# Message types
# ─────────────────────────────────────────────────────────────────────────────


class Message(BaseModel):
    """
    A single message in an LLM exchange.

    For tool results, set role=TOOL and populate tool_result.
    For tool calls made by the assistant, set role=ASSISTANT and populate tool_calls.
    """
    role: Role
    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    tool_result: Optional[ToolResult] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def tool_response(cls, result: ToolResult) -> "Message":
        return cls(role=Role.TOOL, tool_result=result, content=result.content)


# ─────────────────────────────────────────────────────────────────────────────
# LLM config / response
# ─────────────────────────────────────────────────────────────────────────────


class LLMConfig(BaseModel):
    """Per-request LLM configuration."""
    model: str
    temperature: float = 0.7
    max_tokens: int = 4096
    top_p: float = 1.0
    timeout_seconds: float = 60.0


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMResponse(BaseModel):
    """Normalised response from any LLM provider."""
    content: Optional[str] = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    finish_reason: FinishReason = FinishReason.STOP
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str = ""
    provider: Provider = Provider.OPENAI

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0
