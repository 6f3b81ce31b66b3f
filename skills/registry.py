"""
skills/registry.py — Skill Registry

Maps skill names to their SkillBase instances and manifests.
Built fresh for every turn by build_registry(): a skill whose backing
service is not configured is simply not registered.

Usage:
    registry = build_registry(services, context, use_stepwise=False)

    skill = registry.get("generate_images")
    manifest = registry.get_manifest("generate_images")
    all_manifests = registry.list_manifests()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from observability.logger import get_logger
from skills.base import SkillBase
from skills.types import SkillContext, SkillManifest, SkillNotFoundError

log = get_logger(__name__)


class SkillRegistry:
    """
    Name → skill store for one turn.

    Names are unique; registering a duplicate raises ValueError.
    Iteration order is registration order, but callers must not rely on it.
    """

    def __init__(self) -> None:
        self._skills: dict[str, SkillBase] = {}
        self._manifests: dict[str, SkillManifest] = {}

    def register(self, skill_instance: SkillBase) -> None:
        """Register a skill instance. Raises ValueError on duplicate name."""
        skill_instance._validate_manifest()
        name = skill_instance.manifest.name
        if name in self._skills:
            raise ValueError(
                f"Skill '{name}' is already registered. "
                f"Skill names must be unique within a registry."
            )
        self._skills[name] = skill_instance
        self._manifests[name] = skill_instance.manifest

    def unregister(self, name: str) -> None:
        """Remove a skill (used in tests)."""
        self._skills.pop(name, None)
        self._manifests.pop(name, None)

    # ── Read ──────────────────────────────────────────────────────────────────

    def get(self, name: str) -> SkillBase:
        """Return the skill instance. Raises SkillNotFoundError if not found."""
        if name not in self._skills:
            available = sorted(self._skills.keys())
            raise SkillNotFoundError(
                f"Skill '{name}' is not registered. "
                f"Available skills: {available}"
            )
        return self._skills[name]

    def get_or_none(self, name: str) -> Optional[SkillBase]:
        return self._skills.get(name)

    def get_manifest(self, name: str) -> Optional[SkillManifest]:
        return self._manifests.get(name)

    def list_manifests(self) -> list[SkillManifest]:
        return list(self._manifests.values())

    def list_names(self) -> list[str]:
        return list(self._manifests.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._skills

    def __len__(self) -> int:
        return len(self._skills)

    def __repr__(self) -> str:
        return f"<SkillRegistry skills={sorted(self._skills.keys())}>"


# ─────────────────────────────────────────────────────────────────────────────
# Per-turn registry builder
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ServiceHandles:
    """
    Backend clients shared across turns. Any handle left as None means the
    corresponding capability is not configured and its skill is omitted.
    """
    image_client: Any
    llm_client: Any = None
    llm_config: Any = None
    sql_factory: Any = None
    search_client: Any = None
    embedding_client: Any = None
    web_search_client: Any = None
    search_top: int = 3


def build_registry(
    services: ServiceHandles,
    context: SkillContext,
    use_stepwise: bool,
) -> SkillRegistry:
    """
    Build the registry for one turn.

    generate_images is always present. sql_query, search_documents and
    web_search appear only when their handles are configured. answer_directly
    is offered only to the direct planner; the stepwise planner answers in
    its own loop.
    """
    from skills.builtin.document_search import DocumentSearchSkill
    from skills.builtin.human_interface import AnswerDirectlySkill
    from skills.builtin.image_generation import ImageGenerationSkill
    from skills.builtin.sql_query import SqlQuerySkill
    from skills.builtin.web_search import WebSearchSkill

    registry = SkillRegistry()
    registry.register(ImageGenerationSkill(context, image_client=services.image_client))

    if services.sql_factory is not None:
        registry.register(SqlQuerySkill(context, sql_factory=services.sql_factory))

    if services.search_client is not None and services.embedding_client is not None:
        registry.register(DocumentSearchSkill(
            context,
            search_client=services.search_client,
            embedding_client=services.embedding_client,
            default_top=services.search_top,
        ))

    if services.web_search_client is not None:
        registry.register(WebSearchSkill(context, web_search_client=services.web_search_client))

    if not use_stepwise and services.llm_client is not None:
        registry.register(AnswerDirectlySkill(
            context, llm_client=services.llm_client, llm_config=services.llm_config,
        ))

    log.debug("registry.built", skills=registry.list_names(), stepwise=use_stepwise)
    return registry
