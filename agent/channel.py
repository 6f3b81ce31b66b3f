"""
agent/channel.py — Chat channel contract

Every transport (Telegram, CLI, tests) hands the turn loop an object that
satisfies Channel. Messages already sent stay sent, even if the turn is
later cancelled or fails.
"""

from __future__ import annotations

from typing import Protocol, Union, runtime_checkable

from agent.response_synthesizer import OutgoingMessage

MessageLike = Union[str, OutgoingMessage]


@runtime_checkable
class Channel(Protocol):

    async def send_message(self, message: MessageLike) -> None:
        """Deliver a plain string or an OutgoingMessage to the user."""
        ...

    async def send_typing(self) -> None:
        """Show a typing indicator, if the transport supports one."""
        ...


def as_outgoing(message: MessageLike) -> OutgoingMessage:
    if isinstance(message, OutgoingMessage):
        return message
    return OutgoingMessage(text=str(message))
