"""
skills/builtin/web_search.py — Web Search Skill

Searches the public web through the configured Bing client and returns
titles, URLs and snippets as text.
"""

from __future__ import annotations

from typing import ClassVar

from skills.base import SkillBase
from skills.types import ParamSpec, SkillManifest, SkillResult


class WebSearchSkill(SkillBase):
    manifest: ClassVar[SkillManifest] = SkillManifest(
        name="web_search",
        description=(
            "Search the web and return the top results. "
            "Returns page titles, URLs, and short snippets."
        ),
        category="web",
        parameters=(
            ParamSpec("query", "string", "The search query"),
            ParamSpec("max_results", "integer", "Max results (default 5, max 10)", required=False, default=5),
        ),
        timeout_seconds=20,
    )

    def __init__(self, context=None, web_search_client=None) -> None:
        super().__init__(context)
        self._client = web_search_client

    async def execute(self, query: str, max_results: int = 5, **kwargs) -> SkillResult:
        call_id = kwargs.get("_skill_call_id", "")
        max_results = max(1, min(max_results or 5, 10))

        results = await self._client.search(query, count=max_results)
        if not results:
            output = f"No web results for '{query}'."
        else:
            output = "\n".join(
                f"{i}. {r['title']} ({r['url']})\n   {r['snippet']}" for i, r in enumerate(results, 1)
            )
        return SkillResult.ok(skill_name=self.manifest.name, skill_call_id=call_id, output=output)
