"""
agent/translation.py — Translation Resolver

LanguageTable maps canonical short codes ("de") to display names
("German"). TranslationResolver turns a comma-separated target list into
one result line per requested language, in request order.

Per-language outcomes:
  - unknown token          → "The language '<token>' is not supported."
  - translator failure     → "Failed to translate to <token>: <reason>"  (batch continues)
  - success                → "Translated to <token>: <text>"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from exceptions import TranslationServiceError
from observability.logger import get_logger

log = get_logger(__name__)

NO_LANGUAGES_MESSAGE = "No valid languages were specified."


@dataclass(frozen=True)
class LanguageTable:
    """Read-only code → display-name table, shared by every conversation."""
    languages: Mapping[str, str] = field(default_factory=dict)

    def resolve(self, token: str) -> Optional[str]:
        """
        Return the lower-cased short code for a display name or code, or None.

        Display names win over codes; both comparisons ignore case.
        """
        wanted = token.strip().lower()
        by_name = {name.lower(): code.lower() for code, name in self.languages.items()}
        if wanted in by_name:
            return by_name[wanted]
        if wanted in {code.lower() for code in self.languages}:
            return wanted
        return None

    def describe(self) -> list[str]:
        """'<Name> (<code>)' per entry, in table order."""
        return [f"{name} ({code})" for code, name in self.languages.items()]

    def __bool__(self) -> bool:
        return bool(self.languages)

    def __len__(self) -> int:
        return len(self.languages)


def split_targets(raw: str) -> list[str]:
    """Comma-split and trim; empty tokens are dropped."""
    return [t.strip() for t in raw.split(",") if t.strip()]


class TranslationResolver:

    def __init__(self, table: LanguageTable, translator) -> None:
        self._table = table
        self._translator = translator

    @property
    def table(self) -> LanguageTable:
        return self._table

    async def translate_batch(self, text: str, targets: str) -> str:
        """
        Translate text into every language named in targets.

        TranslationServiceError for one language becomes an inline line and
        the loop continues. Anything else propagates to the caller.
        """
        tokens = split_targets(targets)
        if not tokens:
            return NO_LANGUAGES_MESSAGE

        lines: list[str] = []
        for token in tokens:
            code = self._table.resolve(token)
            if code is None:
                log.info("translation.unsupported_language", language=token)
                lines.append(f"The language '{token}' is not supported.")
                continue

            if self._translator is None:
                lines.append(f"Failed to translate to {token}: translator is not configured")
                continue

            try:
                translated = await self._translator.translate(text, code)
            except TranslationServiceError as e:
                log.warning(
                    "translation.backend_failed",
                    language=token, code=code, status_code=e.status_code, error=str(e),
                )
                lines.append(f"Failed to translate to {token}: {e}")
                continue

            lines.append(f"Translated to {token}: {translated}")

        return "\n".join(lines)
