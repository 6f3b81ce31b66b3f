"""
interfaces/telegram.py — Plugbot Telegram Interface

Telegram transport using python-telegram-bot.

Features:
  - /start   — welcome message with suggested questions as a reply keyboard
  - /clear   — forget the conversation history for this chat
  - /help    — show this list
  - Plain text messages go through Orchestrator.run_turn
  - Adaptive image cards are rendered as one photo per image
  - Typing indicator before every turn

Usage:
    python main.py --interface telegram
"""

from __future__ import annotations

import asyncio
from typing import Optional

from telegram import KeyboardButton, ReplyKeyboardMarkup, Update
from telegram.constants import ChatAction
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from agent.channel import MessageLike, as_outgoing
from agent.orchestrator import Orchestrator
from agent.response_synthesizer import CardAction
from config.settings import Settings
from observability.logger import get_logger

log = get_logger(__name__)


_MAX_MESSAGE_LEN = 4000  # Telegram limit is 4096 chars
# Telegram cannot send a keyboard without text
_KEYBOARD_ONLY_TEXT = "Choose an option:"


class TelegramChannel:
    """Channel bound to one Telegram chat."""

    def __init__(self, bot, chat_id: int) -> None:
        self._bot = bot
        self._chat_id = chat_id

    async def send_typing(self) -> None:
        try:
            await self._bot.send_chat_action(chat_id=self._chat_id, action=ChatAction.TYPING)
        except TelegramError as e:
            log.debug("telegram.typing_failed", error=str(e), chat_id=self._chat_id)

    async def send_message(self, message: MessageLike) -> None:
        outgoing = as_outgoing(message)
        markup = _keyboard(outgoing.suggested_actions)

        if outgoing.text:
            await self._safe_send(outgoing.text, reply_markup=markup)
        elif markup is not None:
            await self._safe_send(_KEYBOARD_ONLY_TEXT, reply_markup=markup)

        for attachment in outgoing.attachments:
            urls = attachment.image_urls()
            if not urls:
                continue
            for url in urls:
                try:
                    await self._bot.send_photo(chat_id=self._chat_id, photo=url)
                except TelegramError as e:
                    log.warning("telegram.send_photo_failed", error=str(e), chat_id=self._chat_id)
                    await self._safe_send(url)

    async def _safe_send(self, text: str, reply_markup=None) -> None:
        """Send a message, splitting if over Telegram's limit."""
        chunks = _split_message(text)
        for i, chunk in enumerate(chunks):
            try:
                await self._bot.send_message(
                    chat_id=self._chat_id,
                    text=chunk,
                    reply_markup=reply_markup if i == len(chunks) - 1 else None,
                )
            except TelegramError as e:
                log.warning("telegram.send_failed", error=str(e), chat_id=self._chat_id)


class TelegramBot:
    """
    Plugbot Telegram Bot.

    Each chat is one conversation; the chat id is the conversation id.
    """

    def __init__(self, settings: Settings, orchestrator: Optional[Orchestrator] = None):
        self._settings = settings
        self._orchestrator = orchestrator
        self._app: Optional[Application] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Initialize and start the bot polling loop."""
        token = self._settings.telegram_bot_token
        if not token:
            raise RuntimeError("TELEGRAM_BOT_TOKEN is not set.")

        if self._orchestrator is None:
            self._orchestrator = Orchestrator.from_settings(self._settings)

        self._app = Application.builder().token(token).build()
        self._register_handlers()

        log.info("telegram.starting")
        await self._app.initialize()
        await self._app.start()
        await self._app.updater.start_polling()

    async def stop(self) -> None:
        if self._app:
            if self._app.updater and self._app.updater.running:
                await self._app.updater.stop()
            await self._app.stop()
            await self._app.shutdown()
        log.info("telegram.stopped")

    # ── Handler registration ──────────────────────────────────────────────────

    def _register_handlers(self) -> None:
        app = self._app
        app.add_handler(CommandHandler("start", self._cmd_start))
        app.add_handler(CommandHandler("help", self._cmd_help))
        app.add_handler(CommandHandler("clear", self._cmd_clear))
        app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self._on_text))

    # ── Commands ──────────────────────────────────────────────────────────────

    async def _cmd_start(self, update: Update, ctx: ContextTypes.DEFAULT_TYPE) -> None:
        channel = TelegramChannel(ctx.bot, update.effective_chat.id)
        await self._orchestrator.on_members_added(channel)

    async def _cmd_help(self, update: Update, ctx: ContextTypes.DEFAULT_TYPE) -> None:
        await update.message.reply_text(
            "Plugbot commands\n\n"
            "Translate <text> to <language>[, <language>...]\n"
            "Show languages\n"
            "/clear — forget this conversation\n"
            "/help — this message\n\n"
            "Anything else is answered by the assistant."
        )

    async def _cmd_clear(self, update: Update, ctx: ContextTypes.DEFAULT_TYPE) -> None:
        self._orchestrator.store.reset(str(update.effective_chat.id))
        await update.message.reply_text("Conversation cleared.")

    async def _on_text(self, update: Update, ctx: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = update.effective_chat.id
        user = update.effective_user
        channel = TelegramChannel(ctx.bot, chat_id)
        await self._orchestrator.run_turn(
            conversation_id=str(chat_id),
            user_id=str(user.id) if user else "",
            text=update.message.text if update.message else "",
            channel=channel,
        )


# ── Helpers ───────────────────────────────────────────────────────────────────


def _keyboard(actions: tuple[CardAction, ...]) -> Optional[ReplyKeyboardMarkup]:
    """Suggested actions become a one-tap reply keyboard, one button per row."""
    if not actions:
        return None
    return ReplyKeyboardMarkup(
        [[KeyboardButton(a.value)] for a in actions],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def _split_message(text: str, max_len: int = _MAX_MESSAGE_LEN) -> list[str]:
    """Split long messages into chunks at newline boundaries."""
    if len(text) <= max_len:
        return [text]

    chunks = []
    while len(text) > max_len:
        split_at = text.rfind("\n", 0, max_len)
        if split_at == -1:
            split_at = max_len
        chunks.append(text[:split_at])
        text = text[split_at:].lstrip("\n")
    if text:
        chunks.append(text)
    return chunks


# ── Entry point ───────────────────────────────────────────────────────────────


async def run_telegram(settings: Settings, log) -> None:
    """Entry point called from main.py."""
    bot = TelegramBot(settings=settings)
    log.info("telegram_bot.starting")
    try:
        await bot.start()
        await asyncio.Event().wait()
    finally:
        await bot.stop()
        log.info("telegram_bot.stopped")
