"""
skills/types.py — Skill System Data Contracts

All dataclasses shared across the skill layer.

  - ParamSpec:     one declared argument of a skill (ordered, typed)
  - SkillManifest: static metadata every skill must declare
  - SkillCall:     immutable snapshot of one invocation (never mutated post-creation)
  - SkillResult:   typed result returned from every skill execution
  - SkillContext:  per-turn handles a skill may use (channel, response assembler)
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from exceptions import SkillNotFoundError, SkillValidationError  # noqa: F401  (re-export)


# JSON Schema primitive types a ParamSpec may declare
PARAM_TYPES = frozenset({"string", "integer", "number", "boolean"})


# ─────────────────────────────────────────────────────────────────────────────
# ParamSpec: one declared argument
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ParamSpec:
    """
    A single declared skill parameter.

    type is a JSON Schema primitive name ("string", "integer", "number",
    "boolean"). A parameter with required=False falls back to default when
    the caller omits it.
    """
    name: str
    type: str = "string"
    description: str = ""
    required: bool = True
    default: Any = None

    def to_json_schema(self) -> dict[str, Any]:
        prop: dict[str, Any] = {"type": self.type}
        if self.description:
            prop["description"] = self.description
        if not self.required and self.default is not None:
            prop["default"] = self.default
        return prop


# ─────────────────────────────────────────────────────────────────────────────
# SkillManifest: static, declared as ClassVar on every skill
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SkillManifest:
    """
    Static metadata for a skill. Declared as a ClassVar on SkillBase subclasses.

    Rules:
      - name must be snake_case and unique within a registry.
      - parameters is an ordered tuple of ParamSpec; the order is the order
        the planner sees them in.
      - timeout_seconds: how long the skill may run before being cancelled.
    """
    name: str
    description: str
    parameters: tuple[ParamSpec, ...] = ()
    category: str = "general"
    timeout_seconds: int = 60

    def param(self, name: str) -> Optional[ParamSpec]:
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    def json_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {p.name: p.to_json_schema() for p in self.parameters},
            "required": [p.name for p in self.parameters if p.required],
        }

    def to_llm_schema(self) -> dict[str, Any]:
        """Return the schema in the format the LLM brain expects."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.json_schema(),
        }

    def signature(self) -> str:
        """Compact one-line description used in planner prompts."""
        args = ", ".join(
            f"{p.name}: {p.type}{'' if p.required else '?'}" for p in self.parameters
        )
        return f"{self.name}({args}): {self.description}"


# ─────────────────────────────────────────────────────────────────────────────
# SkillCall: immutable invocation snapshot
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SkillCall:
    """
    An immutable snapshot of one skill invocation.

    Created once by the planner or executor. The SkillBus binds and executes
    it unchanged.
    """
    id: str                               # plan step id or LLM tool_call_id
    skill_name: str
    arguments: dict = field(default_factory=dict)
    created_at: float = field(default_factory=time.monotonic)


# ─────────────────────────────────────────────────────────────────────────────
# SkillResult: typed result from every execution
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SkillResult:
    """
    The result of a skill execution.

    Rules:
      - success=True means the skill ran and produced output.
      - success=False means it failed; error and error_type describe why.
      - output is the short natural-language summary fed back to the planner.
      - attachments carries any rich payload the skill already delivered
        (image URLs and the like), for logging and tests.
    """
    success: bool
    output: Any
    skill_name: str
    skill_call_id: str
    attachments: tuple = ()
    error: Optional[str] = None
    error_type: Optional[str] = None      # exception class name
    duration_ms: float = 0.0

    @classmethod
    def ok(
        cls,
        skill_name: str,
        skill_call_id: str,
        output: Any,
        attachments: tuple = (),
        duration_ms: float = 0.0,
    ) -> "SkillResult":
        return cls(
            success=True,
            output=output,
            skill_name=skill_name,
            skill_call_id=skill_call_id,
            attachments=tuple(attachments),
            duration_ms=duration_ms,
        )

    @classmethod
    def fail(
        cls,
        skill_name: str,
        skill_call_id: str,
        error: str,
        error_type: str = "SkillError",
        duration_ms: float = 0.0,
    ) -> "SkillResult":
        return cls(
            success=False,
            output=None,
            skill_name=skill_name,
            skill_call_id=skill_call_id,
            error=error,
            error_type=error_type,
            duration_ms=duration_ms,
        )

    @property
    def summary(self) -> str:
        """The text a later plan step or the final answer sees."""
        if not self.success:
            return f"[{self.skill_name} failed: {self.error}]"
        if isinstance(self.output, str):
            return self.output
        try:
            return json.dumps(self.output, default=str)
        except (TypeError, ValueError):
            return str(self.output)

    def to_llm_content(self) -> str:
        """Return the string the LLM sees as the tool result."""
        if not self.success:
            return f"ERROR ({self.error_type}): {self.error}"
        return self.summary


# ─────────────────────────────────────────────────────────────────────────────
# SkillContext: per-turn handles
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SkillContext:
    """
    Handles a skill needs to talk back to the user during a turn.

    channel:   object with async send_message(text | OutgoingMessage) and send_typing()
    assembler: ResponseAssembler, used to build cards
    """
    channel: Any
    assembler: Any
    conversation_id: str = ""
