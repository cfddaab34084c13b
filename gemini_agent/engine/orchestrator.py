"""Agent orchestrator: session lifecycle, backend selection, turn loop.

One orchestrator owns one session store and at most one ready content
generator. It is constructed explicitly with its configuration source
and generator factory; nothing here is module-global.

Turn flow (send_message):
    append user message
      -> generator.generate(history, tool catalog, workspace root)
      -> execute requested tool calls sequentially
      -> append exactly one assistant message
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Union

from gemini_agent.shared.models.message import Message
from gemini_agent.shared.models.session import Session

from .config import AgentConfig, EventCallback, fire_event
from .errors import (
    GenerationFailed,
    InitializationFailed,
    NoActiveSession,
    NotInitialized,
)
from .lifecycle import OrchestratorState, validate_transition
from .providers.base import ContentGenerator
from .providers.registry import GeneratorFactory, build_content_generator
from .session_store import SessionStore
from .tools import ToolContext, ToolRegistry, execute_tool_calls

logger = logging.getLogger(__name__)

ConfigSource = Union[AgentConfig, Callable[[], AgentConfig]]

NO_RESPONSE_TEXT = "No response received"
ERROR_PREFIX = "Error: "


class AgentOrchestrator:
    """Drives conversations against a single pluggable content generator."""

    def __init__(
        self,
        config_source: ConfigSource,
        *,
        generator_factory: GeneratorFactory = build_content_generator,
        tool_registry: ToolRegistry | None = None,
        workspace_root: str | None = None,
        event_callback: EventCallback | None = None,
    ) -> None:
        self._config_source = config_source
        self._generator_factory = generator_factory
        self._tool_registry = tool_registry if tool_registry is not None else ToolRegistry()
        self._workspace_root = workspace_root if workspace_root is not None else str(Path.cwd())
        self._event_callback = event_callback
        self._sessions = SessionStore()
        self._config: AgentConfig | None = None
        self._generator: ContentGenerator | None = None
        self._state = OrchestratorState.UNINITIALIZED
        self._init_lock = asyncio.Lock()
        # Serializes turns so concurrent callers cannot interleave appends.
        self._send_lock = asyncio.Lock()

    # ── Properties ──

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is OrchestratorState.READY

    @property
    def config(self) -> AgentConfig | None:
        return self._config

    @property
    def generator_name(self) -> str | None:
        return self._generator.name if self._generator is not None else None

    @property
    def tool_registry(self) -> ToolRegistry:
        return self._tool_registry

    @property
    def current_session(self) -> Session | None:
        return self._sessions.current

    # ── Lifecycle ──

    async def _set_state(self, target: OrchestratorState) -> None:
        validate_transition(self._state, target)
        old = self._state
        self._state = target
        logger.debug("Orchestrator state %s -> %s", old.value, target.value)
        await fire_event(self._event_callback, {
            "event": "state_changed",
            "old_state": old.value,
            "new_state": target.value,
        })

    def _load_config(self) -> AgentConfig:
        source = self._config_source
        if isinstance(source, AgentConfig):
            return source
        return source()

    async def initialize(self) -> None:
        """Build and initialize the content generator for the configured provider.

        On failure the state returns to UNINITIALIZED and the error is
        re-raised as InitializationFailed (or a subclass). From READY this
        is a re-initialization: the old generator is shut down first and
        the active session is kept.
        """
        async with self._init_lock:
            self._check_not_disposed()
            if self._state is OrchestratorState.READY:
                await self._teardown_generator()
            await self._set_state(OrchestratorState.INITIALIZING)

            generator: ContentGenerator | None = None
            try:
                config = self._load_config()
                logger.info(
                    "Initializing content generator for provider: %s (model=%s)",
                    config.provider, config.model,
                )
                generator = self._generator_factory(config)
                await generator.initialize()
                await self._tool_registry.initialize(config)
            except Exception as exc:
                if generator is not None:
                    await self._shutdown_quietly(generator)
                await self._set_state(OrchestratorState.UNINITIALIZED)
                logger.error("Failed to initialize agent orchestrator: %s", exc)
                if isinstance(exc, InitializationFailed):
                    raise
                raise InitializationFailed(str(exc)) from exc

            self._config = config
            self._generator = generator
            await self._set_state(OrchestratorState.READY)
            logger.info(
                "Agent orchestrator initialized (generator=%s)", generator.name,
            )

    async def reinitialize(self) -> None:
        """Tear down the current generator and build a fresh one from config."""
        logger.info("Reinitializing agent orchestrator with current settings")
        await self.initialize()

    async def _teardown_generator(self) -> None:
        generator, self._generator = self._generator, None
        self._config = None
        if generator is not None:
            await self._shutdown_quietly(generator)

    @staticmethod
    async def _shutdown_quietly(generator: ContentGenerator) -> None:
        try:
            await generator.shutdown()
        except Exception:
            logger.warning(
                "Error shutting down %s generator", generator.name, exc_info=True,
            )

    async def dispose(self) -> None:
        """Drop the session and generator. Safe to call more than once."""
        if self._state is OrchestratorState.DISPOSED:
            return
        async with self._init_lock:
            if self._state is OrchestratorState.DISPOSED:
                return
            self._sessions.clear()
            await self._teardown_generator()
            await self._set_state(OrchestratorState.DISPOSED)
            logger.info("Agent orchestrator disposed")

    # ── Sessions ──

    def _check_not_disposed(self) -> None:
        if self._state is OrchestratorState.DISPOSED:
            raise NotInitialized("Orchestrator has been disposed")

    async def create_new_session(self) -> Session:
        """Replace the active session with a fresh, empty one."""
        self._check_not_disposed()
        session = self._sessions.create(self._workspace_root)
        await fire_event(self._event_callback, {
            "event": "session_created",
            "session_id": session.session_id,
            "workspace_root": session.workspace_root,
        })
        return session

    async def clear_current_session(self) -> None:
        """Forget the active session. The generator is untouched."""
        previous = self._sessions.clear()
        if previous is not None:
            await fire_event(self._event_callback, {
                "event": "session_cleared",
                "session_id": previous.session_id,
            })

    # ── Turns ──

    async def send_message(self, content: str) -> Message:
        """Run one turn and return the appended assistant message.

        Raises NoActiveSession / NotInitialized before touching the session.
        If generation raises, an error assistant message is appended and
        GenerationFailed is raised. Tool failures are recorded on their
        ToolCall and never raise.
        """
        self._check_not_disposed()
        session = self._sessions.current
        if session is None:
            raise NoActiveSession()
        if self._generator is None or self._state is not OrchestratorState.READY:
            raise NotInitialized()

        async with self._send_lock:
            generator = self._generator
            if generator is None:
                raise NotInitialized()

            session.add_user_message(content)
            catalog = [d.to_dict() for d in self._tool_registry.list_tools()]

            try:
                result = await generator.generate(
                    session.history(), catalog, session.workspace_root,
                )
            except Exception as exc:
                error_message = session.add_assistant_message(f"{ERROR_PREFIX}{exc}")
                logger.error(
                    "Generation failed in session %s (%s): %s",
                    session.session_id, generator.name, exc,
                )
                await fire_event(self._event_callback, {
                    "event": "generation_failed",
                    "session_id": session.session_id,
                    "error": str(exc),
                })
                raise GenerationFailed(str(exc), assistant_message=error_message) from exc

            tool_calls = []
            if result.tool_calls:
                context = ToolContext(
                    workspace_root=session.workspace_root, config=self._config,
                )
                tool_calls = await execute_tool_calls(
                    self._tool_registry, result.tool_calls, context,
                )

            reply = session.add_assistant_message(
                result.text or NO_RESPONSE_TEXT, tool_calls,
            )
            logger.info(
                "Turn completed in session %s: %d messages, %d/%d tool call(s) resolved",
                session.session_id, session.message_count,
                len(tool_calls), len(result.tool_calls),
            )
            await fire_event(self._event_callback, {
                "event": "turn_completed",
                "session_id": session.session_id,
                "message_id": reply.id,
                "tool_calls": len(tool_calls),
                "input_tokens": result.usage.input_tokens,
                "output_tokens": result.usage.output_tokens,
            })
            return reply
