"""
agent/commands.py — Command Interceptor

Recognises explicit commands before any planning happens:

  Translate[:] <text> to <lang1>[, <lang2>, ...]
  Show languages

Handled commands write their response to the channel themselves and
return it so the turn loop can record it in history.
"""

from __future__ import annotations

from dataclasses import dataclass

from agent.translation import LanguageTable, TranslationResolver
from observability.logger import get_logger

log = get_logger(__name__)

TRANSLATE_PREFIX = "translate"
SHOW_LANGUAGES = "show languages"
TARGET_SEPARATOR = " to "

INVALID_TRANSLATION_MESSAGE = (
    "Invalid translation request. Use the format: "
    "'Translate: [text] to [language1, language2,...]'."
)
TRANSLATION_FAILED_MESSAGE = "Failed to translate text. Please ensure the input format is correct."
NO_LANGUAGES_CONFIGURED_MESSAGE = "No supported languages found in the configuration."


@dataclass(frozen=True)
class InterceptResult:
    handled: bool
    reply: str = ""

    @classmethod
    def not_handled(cls) -> "InterceptResult":
        return cls(handled=False)

    @classmethod
    def done(cls, reply: str) -> "InterceptResult":
        return cls(handled=True, reply=reply)


def parse_translate(text: str) -> tuple[str, str] | None:
    """
    Split a translate command into (text, targets).

    Returns None when the command is malformed: the remainder after the
    prefix has no " to ", or either side of the first " to " is empty.
    """
    body = text.strip()[len(TRANSLATE_PREFIX):]
    body = body.lstrip()
    if body.startswith(":"):
        body = body[1:]
    # Leading space keeps "Translate to German" from matching an empty text part
    body = " " + body.strip() + " "
    source, sep, targets = body.partition(TARGET_SEPARATOR)
    if not sep or not source.strip() or not targets.strip():
        return None
    return source.strip(), targets.strip()


class CommandInterceptor:

    def __init__(self, table: LanguageTable, resolver: TranslationResolver) -> None:
        self._table = table
        self._resolver = resolver

    async def intercept(self, raw_text: str, channel) -> InterceptResult:
        text = (raw_text or "").strip()
        lowered = text.lower()

        if lowered.startswith(TRANSLATE_PREFIX):
            return await self._translate(text, channel)

        if lowered == SHOW_LANGUAGES:
            return await self._show_languages(channel)

        return InterceptResult.not_handled()

    # ── Commands ──────────────────────────────────────────────────────────────

    async def _translate(self, text: str, channel) -> InterceptResult:
        parsed = parse_translate(text)
        if parsed is None:
            log.info("commands.translate.malformed")
            await channel.send_message(INVALID_TRANSLATION_MESSAGE)
            return InterceptResult.done(INVALID_TRANSLATION_MESSAGE)

        source, targets = parsed
        log.info("commands.translate", targets=targets)
        try:
            reply = await self._resolver.translate_batch(source, targets)
        except Exception as e:
            log.error("commands.translate.aborted", error=str(e), error_type=type(e).__name__, exc_info=True)
            await channel.send_message(TRANSLATION_FAILED_MESSAGE)
            return InterceptResult.done(f"Error: {e}")

        await channel.send_message(reply)
        return InterceptResult.done(reply)

    async def _show_languages(self, channel) -> InterceptResult:
        if not self._table:
            message = NO_LANGUAGES_CONFIGURED_MESSAGE
        else:
            message = "Supported languages:\n" + "\n".join(self._table.describe())
        await channel.send_message(message)
        return InterceptResult.done(message)
