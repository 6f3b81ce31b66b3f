"""
agent/conversation.py — Conversation State

In-process conversation store. Holds the ordered turns of each
conversation plus transient per-turn scratch state.

No persistence — cleared when the process restarts.

  - ConversationTurn: one message (user / assistant / system), append-only
  - ConversationData: ordered turns + scratch; serialises history for the planner
  - ConversationStore: conversation_id → ConversationData, with one
    asyncio.Lock per conversation so turns never interleave
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# Rough chars-per-token ratio used to turn a token budget into a char budget
CHARS_PER_TOKEN = 4


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class ConversationTurn:
    role: TurnRole
    text: str
    timestamp: float = field(default_factory=time.time)

    def render(self) -> str:
        return f"{self.role.value}: {self.text}"


@dataclass
class ConversationData:
    """
    Mutable state for one conversation.

    turns is append-only and always chronological. scratch and
    pending_uploads are per-turn working space, cleared by reset_scratch().
    """
    conversation_id: str
    turns: list[ConversationTurn] = field(default_factory=list)
    scratch: dict[str, Any] = field(default_factory=dict)
    pending_uploads: list[Any] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)

    # ── Mutation ──────────────────────────────────────────────────────────────

    def add_turn(self, role: TurnRole, text: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, text=text)
        self.turns.append(turn)
        return turn

    def add_user(self, text: str) -> ConversationTurn:
        return self.add_turn(TurnRole.USER, text)

    def add_assistant(self, text: str) -> ConversationTurn:
        return self.add_turn(TurnRole.ASSISTANT, text)

    def reset_scratch(self) -> None:
        self.scratch.clear()
        self.pending_uploads.clear()

    # ── Views ─────────────────────────────────────────────────────────────────

    def recent_turns(self, max_chars: int) -> list[ConversationTurn]:
        """
        The newest turns whose rendered text fits in max_chars, returned in
        chronological order. The latest turn is always included.
        """
        kept: list[ConversationTurn] = []
        used = 0
        for turn in reversed(self.turns):
            cost = len(turn.render()) + 1
            if kept and used + cost > max_chars:
                break
            kept.append(turn)
            used += cost
        kept.reverse()
        return kept

    def history_prompt(self, system_message: str = "", max_tokens: int = 128_000) -> str:
        """
        Serialise the conversation into one bounded prompt string.

        The system message leads; turns follow oldest-first. When the budget
        is tight the oldest turns are dropped, never reordered.
        """
        budget = max_tokens * CHARS_PER_TOKEN - len(system_message)
        lines = [t.render() for t in self.recent_turns(max(budget, 0))]
        if system_message:
            lines.insert(0, f"system: {system_message}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.turns)


class ConversationStore:
    """conversation_id → ConversationData, plus a per-conversation lock."""

    def __init__(self) -> None:
        self._data: dict[str, ConversationData] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, conversation_id: str) -> ConversationData:
        data = self._data.get(conversation_id)
        if data is None:
            data = ConversationData(conversation_id=conversation_id)
            self._data[conversation_id] = data
        return data

    def lock(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    def reset(self, conversation_id: str) -> None:
        """Forget the history. The lock goes too unless a turn is holding it."""
        self._data.pop(conversation_id, None)
        lock = self._locks.get(conversation_id)
        if lock is not None and not lock.locked():
            del self._locks[conversation_id]

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._data

    def __len__(self) -> int:
        return len(self._data)
