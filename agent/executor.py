"""
agent/executor.py — Plan Executor

Runs a Plan against the registry it was built for and folds the results
into the final reply text.

Responsibilities:
  - Terminal plans (including every stepwise plan): return the answer
  - Step plans: dispatch each step through the SkillBus, in order, one
    at a time; {{step_N}} in later string arguments and in the answer
    template is replaced with step N's summary
  - A failed step becomes "[<skill> failed: <error>]", a warning goes to
    the channel, and execution continues

Usage:
    executor = PlanExecutor(channel)
    reply = await executor.execute(plan, registry)
"""

from __future__ import annotations

from agent.plan import Plan, render_placeholders, substitute_arguments
from observability.logger import get_logger
from skills.bus import SkillBus
from skills.registry import SkillRegistry
from skills.types import SkillCall, SkillResult

log = get_logger(__name__)


class PlanExecutor:
    """
    Executes one plan per call. Holds only the channel; safe to build per turn.
    """

    def __init__(self, channel=None) -> None:
        self._channel = channel
        self.results: list[SkillResult] = []

    async def execute(self, plan: Plan, registry: SkillRegistry) -> str:
        if plan.is_terminal:
            return plan.answer or ""

        bus = SkillBus(registry)
        summaries: dict[int, str] = {}
        self.results = []

        for index, step in enumerate(plan.steps, 1):
            arguments = substitute_arguments(step.arguments, summaries)
            result = await bus.dispatch(
                SkillCall(id=f"step_{index}", skill_name=step.skill, arguments=arguments)
            )
            self.results.append(result)
            summaries[index] = result.summary

            if not result.success:
                log.warning(
                    "executor.step_failed",
                    step=index, skill=step.skill, error=result.error, error_type=result.error_type,
                )
                await self._warn(failure_notice(result))

        if plan.answer:
            return render_placeholders(plan.answer, summaries)

        return "\n".join(
            summaries[i] for i, step in enumerate(plan.steps, 1) if step.expects_result
        )

    async def _warn(self, text: str) -> None:
        if self._channel is not None:
            await self._channel.send_message(text)

    @property
    def failed(self) -> list[SkillResult]:
        return [r for r in self.results if not r.success]


def failure_notice(result: SkillResult) -> str:
    """The user-visible trace of a failed skill call."""
    return f"⚠️ {result.skill_name} failed: {result.error}"
