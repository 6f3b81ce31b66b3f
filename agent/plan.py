"""
agent/plan.py — Plan data model

A Plan is built once per turn and never reused. It is either:
  - terminal: just an answer string (no skill calls), or
  - a step plan: ordered PlanSteps plus an optional answer template that
    may reference earlier results as {{step_1}}, {{step_2}}, ...

Stepwise plans are always terminal by the time they leave the planner;
`trace` records which skills ran inside the planning loop.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

PLACEHOLDER = re.compile(r"\{\{\s*step_(\d+)\s*\}\}")


@dataclass(frozen=True)
class PlanStep:
    skill: str
    arguments: dict = field(default_factory=dict)
    expects_result: bool = True


@dataclass(frozen=True)
class Plan:
    answer: Optional[str] = None
    steps: tuple[PlanStep, ...] = ()
    trace: tuple[str, ...] = ()
    dropped: tuple[str, ...] = ()       # skill names removed because they were not registered

    @classmethod
    def terminal(cls, answer: str, trace: tuple[str, ...] = ()) -> "Plan":
        return cls(answer=answer, trace=trace)

    @property
    def is_terminal(self) -> bool:
        return not self.steps

    def __repr__(self) -> str:
        if self.is_terminal:
            return f"<Plan terminal trace={list(self.trace)}>"
        return f"<Plan steps={[s.skill for s in self.steps]}>"


def render_placeholders(text: str, results: Mapping[int, str]) -> str:
    """Replace {{step_N}} with the Nth step's summary; unknown steps render empty."""
    return PLACEHOLDER.sub(lambda m: results.get(int(m.group(1)), ""), text)


def substitute_arguments(arguments: Mapping[str, Any], results: Mapping[int, str]) -> dict:
    """Apply render_placeholders() to every string argument."""
    return {
        k: render_placeholders(v, results) if isinstance(v, str) else v
        for k, v in arguments.items()
    }
