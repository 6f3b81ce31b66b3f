"""
agent/response_synthesizer.py — Response Assembler

Builds the outgoing message objects the channel renders:
  - welcome():     configured greeting plus one postBack action per suggested question
  - image_card():  a single adaptive-card attachment listing generated images
  - assemble():    text plus attachments, the final message of a turn
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"
IMAGE_CARD_HEADER = "Here are the generated images."


@dataclass(frozen=True)
class CardAction:
    """A quick-reply action. title is the label, value the payload sent back."""
    type: str
    title: str
    value: str


@dataclass(frozen=True)
class Attachment:
    content_type: str
    content: dict

    @property
    def is_adaptive_card(self) -> bool:
        return self.content_type == ADAPTIVE_CARD_CONTENT_TYPE

    def image_urls(self) -> list[str]:
        """URLs of every Image element in an adaptive card body, in order."""
        body = self.content.get("body", []) if isinstance(self.content, dict) else []
        return [el["url"] for el in body if el.get("type") == "Image" and el.get("url")]


@dataclass(frozen=True)
class OutgoingMessage:
    """
    One message for the channel. Always has `text` (possibly empty).
    Transports render attachments and suggested actions as they can.
    """
    text: str = ""
    attachments: tuple[Attachment, ...] = ()
    suggested_actions: tuple[CardAction, ...] = ()
    metadata: dict = field(default_factory=dict)

    def __str__(self) -> str:
        return self.text


class ResponseAssembler:
    """Formats greetings, cards and final answers into OutgoingMessage objects."""

    def __init__(
        self,
        welcome_message: str = "",
        suggested_questions: Optional[Sequence[str]] = None,
    ) -> None:
        self._welcome_message = welcome_message
        self._suggested_questions = tuple(suggested_questions or ())

    # ── Greeting ──────────────────────────────────────────────────────────────

    def welcome(self) -> OutgoingMessage:
        # Actions keep configured order; duplicates are passed through as configured
        actions = tuple(
            CardAction(type="postBack", title=q, value=q) for q in self._suggested_questions
        )
        return OutgoingMessage(text=self._welcome_message, suggested_actions=actions)

    # ── Cards ─────────────────────────────────────────────────────────────────

    def image_card(self, urls: Sequence[str]) -> Attachment:
        body: list[dict[str, Any]] = [
            {"type": "TextBlock", "text": IMAGE_CARD_HEADER, "size": "large"},
        ]
        body.extend({"type": "Image", "url": url} for url in urls)
        card = {"type": "AdaptiveCard", "version": "1.0", "body": body}
        return Attachment(content_type=ADAPTIVE_CARD_CONTENT_TYPE, content=card)

    # ── Final answer ──────────────────────────────────────────────────────────

    def assemble(self, text: str, attachments: Sequence[Attachment] = ()) -> OutgoingMessage:
        return OutgoingMessage(text=text or "", attachments=tuple(attachments))

    @classmethod
    def from_settings(cls, settings) -> "ResponseAssembler":
        return cls(
            welcome_message=settings.bot.welcome_message,
            suggested_questions=settings.bot.suggested_questions,
        )
