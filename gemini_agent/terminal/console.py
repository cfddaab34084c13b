"""Terminal chat surface rendered with rich.

Speaks the same wire protocol as the editor webview: typed lines become
inbound messages on a TransportBridge, and outbound notifications are
rendered to a rich Console.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from rich.console import Console, Group
from rich.markdown import Markdown as RichMarkdown
from rich.rule import Rule
from rich.status import Status
from rich.text import Text

from gemini_agent.adapters.bridge import TransportBridge
from gemini_agent.adapters.events import (
    AssistantMessage,
    ChatCleared,
    CurrentSession,
    ErrorNotice,
    NewSession,
    Notification,
    StatusNotice,
    Thinking,
    dict_to_notification,
)
from gemini_agent.engine.orchestrator import AgentOrchestrator

logger = logging.getLogger(__name__)

PROMPT = "[bold cyan]>[/bold cyan] "

HELP_TEXT = (
    "Commands: /new (new session), /clear (clear chat), "
    "/reinit (reload settings), /quit"
)


def _tool_call_line(call: dict[str, Any]) -> Text:
    line = Text("  tool ", style="dim")
    line.append(call.get("name", "?"), style="bold")
    if "error" in call:
        line.append(f"  failed: {call['error']}", style="red")
    else:
        line.append("  ok", style="green")
    return line


class ConsoleSurface:
    """Interactive chat loop over one orchestrator."""

    def __init__(
        self,
        orchestrator: AgentOrchestrator,
        console: Console | None = None,
    ) -> None:
        self.console = console or Console()
        self.bridge = TransportBridge(orchestrator, self.post_message)
        self._status: Status | None = None

    async def post_message(self, data: dict[str, Any]) -> None:
        self.render(dict_to_notification(data))

    def render(self, notification: Notification) -> None:
        if isinstance(notification, Thinking):
            self._set_thinking(notification.thinking)
        elif isinstance(notification, AssistantMessage):
            self._render_assistant(notification.message)
        elif isinstance(notification, ErrorNotice):
            self.console.print(Text(f"Error: {notification.message}", style="bold red"))
        elif isinstance(notification, StatusNotice):
            self.console.print(Text(notification.message, style="green"))
        elif isinstance(notification, NewSession):
            session_id = notification.session.get("id", "")
            self.console.print(Rule(Text(f"New session {session_id}", style="dim")))
        elif isinstance(notification, ChatCleared):
            self.console.print(Rule(Text("Chat cleared", style="dim")))
        elif isinstance(notification, CurrentSession):
            self._render_history(notification.session)
        # userMessage: the user already sees what they typed.

    def _set_thinking(self, thinking: bool) -> None:
        if thinking:
            if self._status is None and self.console.is_terminal:
                self._status = self.console.status("Thinking...", spinner="dots")
                self._status.start()
            return
        if self._status is not None:
            self._status.stop()
            self._status = None

    def _render_assistant(self, message: dict[str, Any]) -> None:
        parts: list[Any] = [RichMarkdown(message.get("content", ""))]
        for call in message.get("toolCalls", ()):
            parts.append(_tool_call_line(call))
        self.console.print(Text("assistant", style="bold magenta"))
        self.console.print(Group(*parts))

    def _render_history(self, session: dict[str, Any]) -> None:
        messages = session.get("messages", [])
        self.console.print(Rule(Text(f"Session {session.get('id', '')}", style="dim")))
        for message in messages:
            if message.get("role") == "user":
                self.console.print(Text(f"> {message.get('content', '')}", style="cyan"))
            else:
                self._render_assistant(message)

    async def handle_line(self, line: str) -> bool:
        """Handle one typed line. Returns False when the user quits."""
        text = line.strip()
        if not text:
            return True
        if text in ("/quit", "/exit"):
            return False
        if text == "/new":
            await self.bridge.new_chat()
        elif text == "/clear":
            await self.bridge.clear_chat()
        elif text == "/reinit":
            await self.bridge.reinitialize()
        elif text == "/help":
            self.console.print(Text(HELP_TEXT, style="dim"))
        elif text.startswith("/"):
            self.console.print(Text(f"Unknown command {text}. {HELP_TEXT}", style="yellow"))
        else:
            await self.bridge.handle_message({"type": "sendMessage", "message": text})
        return True

    async def run(self) -> None:
        self.console.print(Text(HELP_TEXT, style="dim"))
        await self.bridge.handle_message({"type": "ready"})
        while True:
            try:
                line = await asyncio.to_thread(self.console.input, PROMPT)
            except (EOFError, KeyboardInterrupt):
                break
            if not await self.handle_line(line):
                break
        logger.info("Console session ended")
