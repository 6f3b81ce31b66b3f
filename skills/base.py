"""
skills/base.py — SkillBase Abstract Base Class

Every Plugbot skill subclasses SkillBase and declares a ClassVar manifest.

Rules for skill authors:
  1. Declare `manifest: ClassVar[SkillManifest]` — static, not per-instance.
  2. Implement `async execute(**kwargs) -> SkillResult`.
  3. Backend failures surface as CapabilityBackendError subclasses; the
     SkillBus converts them into SkillResult.fail().
  4. Override validate() for argument-level pre-checks that go beyond the
     declared ParamSpec types.
  5. Per-turn handles (channel, assembler) arrive through SkillContext.

Example:
    class GreetSkill(SkillBase):
        manifest = SkillManifest(
            name="greet",
            description="Return a greeting for a given name.",
            parameters=(ParamSpec("name", "string", "Who to greet"),),
        )

        async def execute(self, name: str, **kwargs) -> SkillResult:
            return SkillResult.ok(
                skill_name=self.manifest.name,
                skill_call_id=kwargs.get("_skill_call_id", ""),
                output=f"Hello, {name}!",
            )
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Optional

from skills.types import PARAM_TYPES, SkillContext, SkillManifest, SkillResult, SkillValidationError


class SkillBase(ABC):
    """
    Abstract base class for all Plugbot skills.

    Subclass this, declare a `manifest` ClassVar, and implement `execute()`.
    """

    manifest: ClassVar[SkillManifest]

    def __init__(self, context: Optional[SkillContext] = None) -> None:
        self.context = context

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def validate(self, **kwargs) -> None:
        """
        Optional pre-execution argument validation.

        Raise SkillValidationError with a clear message if arguments are
        semantically invalid. The SkillBus calls this after binding and
        before execute(); execute() is not called on failure.
        """
        pass

    @abstractmethod
    async def execute(self, **kwargs) -> SkillResult:
        """
        Execute the skill and return a SkillResult.

        The bus injects `_skill_call_id` into kwargs.
        """
        ...

    # ── Channel helpers ───────────────────────────────────────────────────────

    async def notify(self, message) -> None:
        """Send a progress/result message to the user, if a channel is bound."""
        if self.context is not None and self.context.channel is not None:
            await self.context.channel.send_message(message)

    # ── Introspection ─────────────────────────────────────────────────────────

    def __repr__(self) -> str:
        m = getattr(self.__class__, "manifest", None)
        n = m.name if m else self.__class__.__name__
        return f"<Skill:{n}>"

    @classmethod
    def _validate_manifest(cls) -> None:
        """Raise SkillValidationError if the class manifest is malformed."""
        if not hasattr(cls, "manifest"):
            raise SkillValidationError(
                f"{cls.__name__} is missing a 'manifest' ClassVar. "
                f"Add: manifest = SkillManifest(...) as a class attribute."
            )
        m = cls.manifest
        if not m.name or not m.name.replace("_", "").isalnum() or m.name != m.name.lower():
            raise SkillValidationError(
                f"{cls.__name__}.manifest.name '{m.name}' must be non-empty snake_case."
            )
        seen: set[str] = set()
        for p in m.parameters:
            if p.type not in PARAM_TYPES:
                raise SkillValidationError(
                    f"{m.name}: parameter '{p.name}' has unsupported type '{p.type}'. "
                    f"Use one of {sorted(PARAM_TYPES)}."
                )
            if p.name in seen:
                raise SkillValidationError(f"{m.name}: duplicate parameter '{p.name}'.")
            seen.add(p.name)
