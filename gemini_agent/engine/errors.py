"""Exception hierarchy for the agent engine.

Specific exceptions for each failure mode. Initialization failures are
fatal to becoming ready; generation failures are per-turn and
recoverable; tool failures never leave the turn that produced them.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gemini_agent.shared.models.message import Message


class AgentError(Exception):
    """Base exception for all agent engine errors."""


class ConfigError(AgentError):
    """Configuration file could not be read or parsed."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config {path}: {reason}")


class InitializationFailed(AgentError):
    """The orchestrator could not reach the ready state."""


class MissingCredential(InitializationFailed):
    """The selected provider requires a credential that is not configured."""
    def __init__(self, provider: str, setting: str):
        self.provider = provider
        self.setting = setting
        super().__init__(
            f"Provider '{provider}' requires '{setting}' to be configured"
        )


class BackendUnavailable(InitializationFailed):
    """A content generator's liveness check failed."""
    def __init__(self, backend: str, reason: str):
        self.backend = backend
        self.reason = reason
        super().__init__(f"Backend '{backend}' is not available: {reason}")


class NotInitialized(AgentError):
    """An operation needs a ready content generator."""
    def __init__(self, detail: str = "Agent not initialized. Call initialize() first."):
        super().__init__(detail)


class NoActiveSession(AgentError):
    """An operation needs an active session."""
    def __init__(self) -> None:
        super().__init__("No active session. Create a new session first.")


class GenerationFailed(AgentError):
    """A single turn could not be generated.

    When raised by the orchestrator, ``assistant_message`` is the error
    message that was appended to the session for this failure.
    """
    def __init__(
        self,
        reason: str,
        assistant_message: Message | None = None,
    ):
        self.reason = reason
        self.assistant_message = assistant_message
        super().__init__(reason)


class MalformedResponse(AgentError):
    """Backend output was not a structured payload."""
    def __init__(self, reason: str, raw: str = ""):
        self.reason = reason
        self.raw = raw
        super().__init__(f"Malformed backend response: {reason}")


class ToolNotFound(AgentError):
    """Requested tool is not registered."""
    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool not found: {tool_name}")


class ToolExecutionFailed(AgentError):
    """A single tool call raised."""
    def __init__(self, tool_name: str, reason: str):
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(f"Tool '{tool_name}' failed: {reason}")
