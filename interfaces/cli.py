"""
interfaces/cli.py — Plugbot CLI Interface

Local interactive REPL for trying the bot without a chat platform.
Uses rich for terminal rendering and aioconsole for async input.

Features:
  - Welcome message and suggested questions on start
  - Adaptive image cards rendered as a list of image URLs
  - /clear, /help, /languages shortcuts; exit / quit / Ctrl+D to leave

Usage:
    python main.py --interface cli
    python main.py --interface cli --log-level DEBUG
"""

from __future__ import annotations

from typing import Optional

import aioconsole
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich import box

from agent.channel import MessageLike, as_outgoing
from agent.orchestrator import Orchestrator
from config.settings import Settings
from observability.logger import get_logger

log = get_logger(__name__)

_CONVERSATION_ID = "cli"
_USER_ID = "local"

_HELP_TEXT = """
## Plugbot CLI Commands

| Command | Description |
|---------|-------------|
| `Translate <text> to <lang>[, <lang>...]` | Translate text into one or more languages |
| `Show languages` | List the configured languages |
| `/languages` | Same as `Show languages` |
| `/clear` | Forget the conversation history |
| `/help` | Show this help |
| `exit` / `quit` | Leave |

Anything else is answered by the assistant.
"""


class CliChannel:
    """Channel that renders outgoing messages to a rich Console."""

    def __init__(self, console: Console) -> None:
        self.console = console

    async def send_typing(self) -> None:
        self.console.print("[dim]…[/]")

    async def send_message(self, message: MessageLike) -> None:
        outgoing = as_outgoing(message)
        text = outgoing.text.strip() if outgoing.text else ""

        if text:
            self.console.print(Panel(Markdown(text), border_style="cyan", padding=(0, 2)))

        for attachment in outgoing.attachments:
            urls = attachment.image_urls()
            if not urls:
                continue
            table = Table(box=box.SIMPLE, show_header=True, header_style="bold magenta")
            table.add_column("#", width=3)
            table.add_column("Image")
            for i, url in enumerate(urls, 1):
                table.add_row(str(i), url)
            self.console.print(table)

        if outgoing.suggested_actions:
            self.console.print("[bold]Try:[/]")
            for action in outgoing.suggested_actions:
                self.console.print(f"  [green]›[/] {action.title}")


class CLIInterface:
    """Interactive REPL around one Orchestrator and one conversation."""

    def __init__(
        self,
        settings: Settings,
        orchestrator: Optional[Orchestrator] = None,
        console: Optional[Console] = None,
    ) -> None:
        self._settings = settings
        self._orchestrator = orchestrator
        self.console = console or Console()
        self._channel = CliChannel(self.console)

    async def start(self) -> None:
        if self._orchestrator is None:
            self._orchestrator = Orchestrator.from_settings(self._settings)

        self.console.print(
            f"[bold cyan]{self._settings.bot.name}[/] [dim]v{self._settings.bot.version}[/]  "
            f"[dim]planner: {self._settings.planner.strategy}  /help for commands[/]"
        )
        await self._orchestrator.on_members_added(self._channel)
        await self._repl_loop()

    # ── REPL Loop ─────────────────────────────────────────────────────────────

    async def _repl_loop(self) -> None:
        while True:
            try:
                user_input = await aioconsole.ainput("you › ")
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[dim]Goodbye.[/]")
                break

            user_input = user_input.strip()
            if not user_input:
                continue
            if user_input.lower() in ("exit", "quit"):
                self.console.print("[dim]Goodbye.[/]")
                break

            await self.dispatch(user_input)

        log.info("cli.shutdown")

    async def dispatch(self, raw: str) -> None:
        """Handle one line of input: a slash shortcut or a conversation turn."""
        command = raw.lower()
        if command == "/help":
            self.console.print(Markdown(_HELP_TEXT))
            return
        if command == "/clear":
            self._orchestrator.store.reset(_CONVERSATION_ID)
            self.console.print("[dim]Conversation cleared.[/]")
            return
        if command == "/languages":
            raw = "Show languages"

        await self._orchestrator.run_turn(
            conversation_id=_CONVERSATION_ID,
            user_id=_USER_ID,
            text=raw,
            channel=self._channel,
        )


# ── Public entry point ────────────────────────────────────────────────────────


async def run_cli(settings: Settings, log) -> None:
    """
    Entry point called from main.py.

    Args:
        settings:  Loaded Plugbot settings.
        log:       Application-level logger.
    """
    cli = CLIInterface(settings=settings)

    log.info("cli.starting")
    try:
        await cli.start()
    except KeyboardInterrupt:
        log.info("cli.interrupted")
    finally:
        log.info("cli.stopped")
