"""
skills/builtin/sql_query.py — SQL Query Skill

Runs a read-only SELECT through the configured SqlConnectionFactory and
returns the rows as a compact text table for the planner.
"""

from __future__ import annotations

import re
from typing import ClassVar

from skills.base import SkillBase
from skills.types import ParamSpec, SkillManifest, SkillResult, SkillValidationError

_READ_PATTERN = re.compile(r"^\s*(SELECT|WITH)\b", re.IGNORECASE)
_MAX_CELL = 200


class SqlQuerySkill(SkillBase):
    manifest: ClassVar[SkillManifest] = SkillManifest(
        name="sql_query",
        description=(
            "Query the structured database with a single read-only SQL SELECT "
            "statement. Returns matching rows."
        ),
        category="data",
        parameters=(
            ParamSpec("query", "string", "A single SQL SELECT statement"),
        ),
        timeout_seconds=30,
    )

    def __init__(self, context=None, sql_factory=None) -> None:
        super().__init__(context)
        self._sql = sql_factory

    async def validate(self, query: str, **_) -> None:
        if not _READ_PATTERN.match(query):
            raise SkillValidationError("Only read-only SELECT statements are allowed.")
        if ";" in query.strip().rstrip(";"):
            raise SkillValidationError("Only a single SQL statement is allowed.")

    async def execute(self, query: str, **kwargs) -> SkillResult:
        call_id = kwargs.get("_skill_call_id", "")
        rows = await self._sql.query(query.strip().rstrip(";"))
        return SkillResult.ok(
            skill_name=self.manifest.name,
            skill_call_id=call_id,
            output=_format_rows(rows),
        )


def _format_rows(rows: list[dict]) -> str:
    if not rows:
        return "The query returned no rows."
    columns = list(rows[0].keys())
    lines = [" | ".join(columns)]
    for row in rows:
        lines.append(" | ".join(_clip(str(row.get(c, ""))) for c in columns))
    return f"{len(rows)} row(s):\n" + "\n".join(lines)


def _clip(value: str) -> str:
    return value if len(value) <= _MAX_CELL else value[:_MAX_CELL] + "…"
