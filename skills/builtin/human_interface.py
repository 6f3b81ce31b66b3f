"""
skills/builtin/human_interface.py — Answer Directly Skill

Escape hatch for the direct planner: when no capability is needed, the
plan calls answer_directly and the language model answers the question
itself.
"""

from __future__ import annotations

from typing import ClassVar

from skills.base import SkillBase
from skills.types import ParamSpec, SkillManifest, SkillResult


class AnswerDirectlySkill(SkillBase):
    manifest: ClassVar[SkillManifest] = SkillManifest(
        name="answer_directly",
        description=(
            "Answer the user's question from general knowledge when no other "
            "skill is needed."
        ),
        category="general",
        parameters=(
            ParamSpec("question", "string", "The question to answer"),
        ),
        timeout_seconds=120,
    )

    def __init__(self, context=None, llm_client=None, llm_config=None) -> None:
        super().__init__(context)
        self._llm = llm_client
        self._config = llm_config

    async def execute(self, question: str, **kwargs) -> SkillResult:
        call_id = kwargs.get("_skill_call_id", "")
        answer = await self._llm.complete(question, self._config)
        return SkillResult.ok(skill_name=self.manifest.name, skill_call_id=call_id, output=answer)
