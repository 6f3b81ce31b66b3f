"""
agent/planner.py — Planners

Two strategies, chosen once from configuration by create_planner():

  DirectPlanner    one LLM call returns a JSON step plan; the executor
                   runs it unchanged
  StepwisePlanner  function-calling loop: the LLM calls skills one round
                   at a time, sees their results, and decides what to do
                   next until it answers or the token budget runs out

Both accept a registry with no optional skills; the plan then degenerates
to a direct answer.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod

from agent.executor import failure_notice
from agent.plan import Plan, PlanStep
from brain.llm_client import BaseLLMClient
from brain.types import LLMConfig, Message, Role, ToolResult, ToolSchema
from observability.logger import get_logger
from skills.bus import SkillBus
from skills.registry import SkillRegistry
from skills.types import SkillCall

log = get_logger(__name__)

FINAL_ANSWER_TOOL = "final_answer"

_DIRECT_SYSTEM = """\
You are the planner for a chat assistant. Read the conversation and decide
how to answer the user's latest message using the skills below.
Return ONLY valid JSON — no markdown fences, no explanation.

Skills:
{skill_list}

Required format:
{{"steps": [{{"skill": "<skill name>", "arguments": {{"<param>": <value>}}}}, ...],
  "answer": "<final reply to the user>"}}

Rules:
- Use only the skills listed above, with their declared parameters.
- Steps run in order. A later step argument or the answer may include
  {{{{step_1}}}}, {{{{step_2}}}}, ... to insert the result of an earlier step.
- If no skill is needed, return an empty "steps" list and put the reply in "answer".
- If "answer" is omitted, the step results are shown to the user as they are."""

_STEPWISE_SYSTEM = """\
{system_message}

Work step by step. Call the available functions when they help answer the
user's latest message. When you have everything you need, either reply in
plain text or call `final_answer` with your reply."""

_FORCE_ANSWER = (
    "Stop calling functions now. Using only what you already know from this "
    "conversation, give your best final answer to the user."
)


class BasePlanner(ABC):
    """Turns a serialised conversation plus a registry into a Plan."""

    strategy: str = ""

    def __init__(
        self,
        llm_client: BaseLLMClient,
        llm_config: LLMConfig,
        system_message: str = "",
        max_tokens: int = 128_000,
    ) -> None:
        self._llm = llm_client
        self._config = llm_config
        self._system_message = system_message
        self.max_tokens = max_tokens

    @abstractmethod
    async def run(self, history_prompt: str, registry: SkillRegistry, channel=None) -> Plan:
        """channel, when given, receives a trace of every failed skill call."""

    async def _answer_without_skills(self, history_prompt: str) -> Plan:
        messages = []
        if self._system_message:
            messages.append(Message.system(self._system_message))
        messages.append(Message.user(history_prompt))
        response = await self._llm.generate(messages=messages, config=self._config)
        return Plan.terminal(response.content or "")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} max_tokens={self.max_tokens}>"


# ─────────────────────────────────────────────────────────────────────────────
# Direct (single-shot) planning
# ─────────────────────────────────────────────────────────────────────────────

class DirectPlanner(BasePlanner):

    strategy = "direct"

    def __init__(self, llm_client, llm_config, system_message="", max_tokens=128_000):
        super().__init__(llm_client, llm_config, system_message, max_tokens)
        # Low temperature for deterministic plans
        self._plan_config = LLMConfig(
            model=llm_config.model,
            temperature=0.2,
            max_tokens=llm_config.max_tokens,
            timeout_seconds=llm_config.timeout_seconds,
        )

    async def run(self, history_prompt: str, registry: SkillRegistry, channel=None) -> Plan:
        if len(registry) == 0:
            return await self._answer_without_skills(history_prompt)

        skill_list = "\n".join(f"- {m.signature()}" for m in registry.list_manifests())
        messages = [
            Message.system(_DIRECT_SYSTEM.format(skill_list=skill_list)),
            Message.user(history_prompt),
        ]

        log.info("planner.direct.start", skills=registry.list_names())
        response = await self._llm.generate(messages=messages, config=self._plan_config)
        plan = self.parse_plan(response.content or "", registry)
        if plan.is_terminal and not plan.answer:
            plan = await self._answer_without_skills(history_prompt)
        log.info(
            "planner.plan_ready",
            strategy=self.strategy,
            steps=[s.skill for s in plan.steps],
            dropped=list(plan.dropped),
            tokens=response.usage.total_tokens,
        )
        return plan

    def parse_plan(self, content: str, registry: SkillRegistry) -> Plan:
        """
        Parse the LLM's JSON plan against the registry.

        Steps naming unregistered skills are dropped. Output that is not a
        JSON plan becomes a terminal plan carrying the raw text.
        """
        raw = content.strip()
        try:
            data = json.loads(_strip_fences(raw))
        except (json.JSONDecodeError, ValueError):
            log.warning("planner.parse_plan_failed", raw=raw[:200])
            return Plan.terminal(raw)

        if not isinstance(data, dict):
            return Plan.terminal(raw)

        answer = data.get("answer")
        answer = str(answer) if answer is not None else None

        raw_steps = data.get("steps") or []
        if not isinstance(raw_steps, list):
            log.warning("planner.parse_plan_bad_steps", steps_type=type(raw_steps).__name__)
            return Plan.terminal(answer or raw)

        steps: list[PlanStep] = []
        dropped: list[str] = []
        for item in raw_steps:
            if not isinstance(item, dict):
                continue
            name = str(item.get("skill", "")).strip()
            arguments = item.get("arguments") or {}
            if name not in registry or not isinstance(arguments, dict):
                dropped.append(name)
                continue
            steps.append(PlanStep(
                skill=name,
                arguments=arguments,
                expects_result=bool(item.get("expects_result", True)),
            ))

        if dropped:
            log.warning("planner.unknown_skills_dropped", skills=dropped)

        if not steps:
            return Plan(answer=answer or "", dropped=tuple(dropped))
        return Plan(answer=answer, steps=tuple(steps), dropped=tuple(dropped))


# ─────────────────────────────────────────────────────────────────────────────
# Stepwise (iterative) planning
# ─────────────────────────────────────────────────────────────────────────────

class StepwisePlanner(BasePlanner):
    """
    Function-calling loop. Ends when the model answers in plain text or calls
    final_answer. Reaching the token budget or the iteration cap is not an
    error: one more call without tools forces a best-effort answer.
    """

    strategy = "stepwise"

    def __init__(
        self,
        llm_client,
        llm_config,
        system_message="",
        max_tokens=128_000,
        max_iterations: int = 10,
    ):
        super().__init__(llm_client, llm_config, system_message, max_tokens)
        self.max_iterations = max_iterations

    async def run(self, history_prompt: str, registry: SkillRegistry, channel=None) -> Plan:
        bus = SkillBus(registry)
        tools = [ToolSchema(**m.to_llm_schema()) for m in registry.list_manifests()]
        tools.append(_final_answer_schema())

        messages = [
            Message.system(_STEPWISE_SYSTEM.format(system_message=self._system_message).strip()),
            Message.user(history_prompt),
        ]
        trace: list[str] = []
        tokens_used = 0

        for iteration in range(1, self.max_iterations + 1):
            response = await self._llm.generate(messages=messages, config=self._config, tools=tools)
            tokens_used += response.usage.total_tokens
            log.debug(
                "planner.stepwise.iteration",
                iteration=iteration,
                tool_calls=[tc.name for tc in response.tool_calls],
                tokens_used=tokens_used,
            )

            if not response.has_tool_calls:
                return self._finish(response.content or "", trace, tokens_used)

            for tc in response.tool_calls:
                if tc.name == FINAL_ANSWER_TOOL:
                    return self._finish(str(tc.arguments.get("answer", "")), trace, tokens_used)

            messages.append(Message(
                role=Role.ASSISTANT,
                content=response.content,
                tool_calls=response.tool_calls,
            ))
            for tc in response.tool_calls:
                result = await bus.dispatch(
                    SkillCall(id=tc.id, skill_name=tc.name, arguments=tc.arguments)
                )
                trace.append(tc.name)
                if not result.success:
                    log.warning(
                        "planner.stepwise.skill_failed",
                        skill=tc.name, error=result.error, error_type=result.error_type,
                    )
                    if channel is not None:
                        await channel.send_message(failure_notice(result))
                messages.append(Message.tool_response(ToolResult(
                    tool_call_id=tc.id,
                    name=tc.name,
                    content=result.to_llm_content(),
                    is_error=not result.success,
                )))

            if tokens_used >= self.max_tokens:
                log.warning("planner.stepwise.budget_exhausted", tokens_used=tokens_used, budget=self.max_tokens)
                break
        else:
            log.warning("planner.stepwise.iteration_cap", max_iterations=self.max_iterations)

        messages.append(Message.user(_FORCE_ANSWER))
        response = await self._llm.generate(messages=messages, config=self._config)
        tokens_used += response.usage.total_tokens
        return self._finish(response.content or "", trace, tokens_used, forced=True)

    def _finish(self, answer: str, trace: list[str], tokens_used: int, forced: bool = False) -> Plan:
        log.info(
            "planner.plan_ready",
            strategy=self.strategy,
            trace=trace,
            tokens=tokens_used,
            forced=forced,
        )
        return Plan.terminal(answer, trace=tuple(trace))


# ─────────────────────────────────────────────────────────────────────────────
# Factory + helpers
# ─────────────────────────────────────────────────────────────────────────────

def create_planner(settings, llm_client: BaseLLMClient) -> BasePlanner:
    """Pick the planner strategy once, from settings.planner.strategy."""
    config = LLMConfig(
        model=settings.llm.chat_model,
        temperature=settings.llm.temperature,
        max_tokens=settings.llm.max_tokens,
    )
    if settings.use_stepwise_planner:
        return StepwisePlanner(
            llm_client,
            config,
            system_message=settings.bot.system_message,
            max_tokens=settings.planner.max_tokens,
            max_iterations=settings.planner.max_iterations,
        )
    return DirectPlanner(
        llm_client,
        config,
        system_message=settings.bot.system_message,
        max_tokens=settings.planner.max_tokens,
    )


def _final_answer_schema() -> ToolSchema:
    return ToolSchema(
        name=FINAL_ANSWER_TOOL,
        description="Give the final answer to the user and stop.",
        parameters={
            "type": "object",
            "properties": {"answer": {"type": "string", "description": "The reply to the user"}},
            "required": ["answer"],
        },
    )


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        end = len(lines) - 1 if lines[-1].strip() == "```" else len(lines)
        text = "\n".join(lines[1:end])
    return text.strip()
