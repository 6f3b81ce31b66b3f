"""
exceptions.py — Plugbot Unified Error Hierarchy

All Plugbot-specific exceptions live here. Every layer of the stack
raises typed subclasses of PlugbotError — never bare Exception.

Import from here, not from individual modules:
    from exceptions import SkillTimeoutError, TranslationServiceError

Hierarchy:
    PlugbotError
    ├── SkillError
    │   ├── SkillNotFoundError
    │   ├── SkillTimeoutError
    │   └── SkillValidationError
    ├── CapabilityBackendError
    │   ├── TranslationServiceError
    │   ├── ImageGenerationError
    │   ├── SearchServiceError
    │   └── SqlQueryError
    └── LLMError  (re-exported from brain for convenience)
        ├── LLMConnectionError
        ├── LLMRateLimitError
        ├── LLMContextError
        └── LLMInvalidRequestError
"""

from __future__ import annotations

from typing import Optional

from brain.llm_client import (  # noqa: F401  (re-export)
    LLMConnectionError,
    LLMContextError,
    LLMError,
    LLMInvalidRequestError,
    LLMRateLimitError,
)


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class PlugbotError(Exception):
    """Base class for all Plugbot exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Skill layer
# ─────────────────────────────────────────────────────────────────────────────

class SkillError(PlugbotError):
    """Base for all skill-related errors."""


class SkillNotFoundError(SkillError):
    """Requested skill is not registered in the SkillRegistry."""


class SkillTimeoutError(SkillError):
    """Skill execution exceeded its configured timeout_seconds."""


class SkillValidationError(SkillError):
    """Skill arguments failed schema binding or semantic checks."""


# ─────────────────────────────────────────────────────────────────────────────
# Capability backends
# ─────────────────────────────────────────────────────────────────────────────

class CapabilityBackendError(PlugbotError):
    """An external service behind a capability failed."""

    def __init__(self, message: str, service: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class TranslationServiceError(CapabilityBackendError):
    """Translator returned a non-success status or could not be reached."""


class ImageGenerationError(CapabilityBackendError):
    """Image generation request failed or returned no image."""


class SearchServiceError(CapabilityBackendError):
    """Document or web search backend failed."""


class SqlQueryError(CapabilityBackendError):
    """SQL backend rejected or failed the query."""


__all__ = [
    "PlugbotError",
    # Skill
    "SkillError",
    "SkillNotFoundError",
    "SkillTimeoutError",
    "SkillValidationError",
    # Backends
    "CapabilityBackendError",
    "TranslationServiceError",
    "ImageGenerationError",
    "SearchServiceError",
    "SqlQueryError",
    # LLM (re-exported)
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMContextError",
    "LLMInvalidRequestError",
]
