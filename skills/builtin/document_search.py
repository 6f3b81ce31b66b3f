"""
skills/builtin/document_search.py — Document Search Skill

Embeds the query, runs a hybrid vector + semantic search against the
configured index, and returns the top passages as text.
"""

from __future__ import annotations

from typing import ClassVar, Optional

from skills.base import SkillBase
from skills.types import ParamSpec, SkillManifest, SkillResult

_MAX_PASSAGE = 1_500
_MAX_TOP = 10


class DocumentSearchSkill(SkillBase):
    manifest: ClassVar[SkillManifest] = SkillManifest(
        name="search_documents",
        description=(
            "Search the organisation's document index for passages relevant "
            "to a question. Use for questions about internal documents."
        ),
        category="knowledge",
        parameters=(
            ParamSpec("query", "string", "What to search for"),
            ParamSpec("top", "integer", "How many passages to return (1-10)", required=False),
        ),
        timeout_seconds=30,
    )

    def __init__(self, context=None, search_client=None, embedding_client=None, default_top: int = 3) -> None:
        super().__init__(context)
        self._search = search_client
        self._embeddings = embedding_client
        self._default_top = default_top

    async def execute(self, query: str, top: Optional[int] = None, **kwargs) -> SkillResult:
        call_id = kwargs.get("_skill_call_id", "")
        top = max(1, min(top or self._default_top, _MAX_TOP))

        vector = await self._embeddings.embed(query)
        docs = await self._search.search(query, vector, top=top)

        if not docs:
            output = f"No documents matched '{query}'."
        else:
            parts = []
            for i, doc in enumerate(docs, 1):
                content = doc.get("content", "")
                if len(content) > _MAX_PASSAGE:
                    content = content[:_MAX_PASSAGE] + "…"
                parts.append(f"[{i}] {doc.get('title', '')}\n{content}")
            output = "\n\n".join(parts)

        return SkillResult.ok(skill_name=self.manifest.name, skill_call_id=call_id, output=output)
