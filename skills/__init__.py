"""
skills/__init__.py — Plugbot Skills System

Public interface for the skills module.

Skills are self-describing capabilities the planner can invoke through
the SkillBus pipeline. The registry is built per turn from whichever
backend services are configured.

Usage:
    from skills import ServiceHandles, SkillBus, build_registry
    from skills.types import SkillCall, SkillContext

    registry = build_registry(services, SkillContext(channel, assembler), use_stepwise=False)
    bus = SkillBus(registry)
    result = await bus.dispatch(SkillCall(id="step-1", skill_name="generate_images",
                                          arguments={"prompt": "a red fox"}))
"""

from skills.base import SkillBase
from skills.bus import SkillBus, bind_arguments
from skills.registry import ServiceHandles, SkillRegistry, build_registry
from skills.types import (
    ParamSpec,
    SkillCall,
    SkillContext,
    SkillManifest,
    SkillNotFoundError,
    SkillResult,
)

__all__ = [
    "SkillRegistry",
    "SkillBus",
    "SkillBase",
    "ServiceHandles",
    "build_registry",
    "bind_arguments",
    # Types
    "ParamSpec",
    "SkillCall",
    "SkillContext",
    "SkillResult",
    "SkillManifest",
    "SkillNotFoundError",
]
