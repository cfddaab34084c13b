"""Transport bridge between a UI surface and the agent orchestrator.

Inbound wire messages are handled one at a time, in arrival order, each
to completion before the next starts. Every orchestrator outcome is
translated into outbound wire notifications posted through a single
async ``post_message`` callable supplied by the surface.

For a sendMessage cycle the outbound order is always:

    userMessage, thinking(true), thinking(false), assistantMessage
    userMessage, thinking(true), thinking(false), [assistantMessage], error
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from gemini_agent.adapters.events import (
    AssistantMessage,
    ChatCleared,
    ClearChat,
    CurrentSession,
    ErrorNotice,
    NewChat,
    NewSession,
    Notification,
    Ready,
    SendMessage,
    StatusNotice,
    Thinking,
    UserMessage,
    notification_to_dict,
    parse_command,
)
from gemini_agent.engine.orchestrator import AgentOrchestrator
from gemini_agent.shared.models.message import Message, MessageRole

logger = logging.getLogger(__name__)

PostMessage = Callable[[dict[str, Any]], Awaitable[None]]


class TransportBridge:
    """Ordered message channel between one UI surface and the orchestrator."""

    def __init__(
        self,
        orchestrator: AgentOrchestrator,
        post_message: PostMessage,
        inbox_size: int = 1000,
    ) -> None:
        self._orchestrator = orchestrator
        self._post_message = post_message
        self._inbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=inbox_size)
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def orchestrator(self) -> AgentOrchestrator:
        return self._orchestrator

    # ── Inbound queue ──

    async def submit(self, data: dict[str, Any]) -> None:
        """Queue an inbound wire message for run()."""
        await self._inbox.put(data)

    async def run(self) -> None:
        """Handle queued inbound messages in FIFO order until close()."""
        while not self._closed:
            data = await self._inbox.get()
            try:
                await self.handle_message(data)
            except Exception:
                logger.exception("Unhandled error processing inbound message")
            finally:
                self._inbox.task_done()

    async def join(self) -> None:
        """Wait until every submitted message has been handled."""
        await self._inbox.join()

    def close(self) -> None:
        self._closed = True

    # ── Dispatch ──

    async def handle_message(self, data: dict[str, Any]) -> None:
        """Handle one inbound wire message to completion."""
        try:
            command = parse_command(data)
        except ValueError as exc:
            logger.warning("Dropping inbound message: %s", exc)
            return

        logger.debug("Inbound %s", command.type)
        async with self._lock:
            if isinstance(command, SendMessage):
                await self._handle_send_message(command.message)
            elif isinstance(command, NewChat):
                await self._handle_new_chat()
            elif isinstance(command, ClearChat):
                await self._handle_clear_chat()
            elif isinstance(command, Ready):
                await self._send_current_session()

    async def _notify(self, notification: Notification) -> None:
        try:
            await self._post_message(notification_to_dict(notification))
        except Exception:
            logger.warning(
                "Failed to post %s to UI surface", notification.type, exc_info=True,
            )

    async def _handle_send_message(self, text: str) -> None:
        if not text.strip():
            return

        logger.info("Handling message (%d chars)", len(text))
        if self._orchestrator.current_session is None:
            logger.info("No active session; creating one")
            await self._orchestrator.create_new_session()

        # Echo immediately; the stored copy is appended by the orchestrator.
        echo = Message(role=MessageRole.USER, content=text)
        await self._notify(UserMessage(message=echo.to_wire()))
        await self._notify(Thinking(thinking=True))

        reply: Message | None = None
        failure: Exception | None = None
        try:
            reply = await self._orchestrator.send_message(text)
        except Exception as exc:
            failure = exc
            logger.error("Error handling message: %s", exc)
        finally:
            await self._notify(Thinking(thinking=False))

        if failure is not None:
            recorded = getattr(failure, "assistant_message", None)
            if isinstance(recorded, Message):
                await self._notify(AssistantMessage(message=recorded.to_wire()))
            await self._notify(ErrorNotice(message=str(failure)))
            return

        if reply is not None:
            await self._notify(AssistantMessage(message=reply.to_wire()))
            logger.debug("Message handling completed (reply %s)", reply.id)

    async def _handle_new_chat(self) -> None:
        session = await self._orchestrator.create_new_session()
        await self._notify(NewSession(session=session.to_wire(include_messages=False)))

    async def _handle_clear_chat(self) -> None:
        await self._orchestrator.clear_current_session()
        await self._notify(ChatCleared())

    async def _send_current_session(self) -> None:
        session = self._orchestrator.current_session
        if session is None:
            logger.debug("Surface ready; no active session to send")
            return
        await self._notify(CurrentSession(session=session.to_wire()))

    # ── Host commands ──

    async def new_chat(self) -> None:
        await self.handle_message({"type": "newChat"})

    async def clear_chat(self) -> None:
        await self.handle_message({"type": "clearChat"})

    async def reinitialize(self) -> bool:
        """Re-read settings and rebuild the backend. Returns success."""
        async with self._lock:
            try:
                await self._orchestrator.reinitialize()
            except Exception as exc:
                logger.error("Failed to reinitialize: %s", exc)
                await self._notify(ErrorNotice(message=f"Failed to reinitialize: {exc}"))
                return False
            await self._notify(StatusNotice(
                message=f"Agent reinitialized ({self._orchestrator.generator_name})",
            ))
            return True
