"""Gemini Agent engine — session orchestration over pluggable content generators."""
from .config import AgentConfig
from .errors import (
    AgentError,
    BackendUnavailable,
    ConfigError,
    GenerationFailed,
    InitializationFailed,
    MalformedResponse,
    MissingCredential,
    NoActiveSession,
    NotInitialized,
    ToolExecutionFailed,
    ToolNotFound,
)
from .lifecycle import OrchestratorState
from .orchestrator import AgentOrchestrator
from .session_store import SessionStore
from .tools import Tool, ToolContext, ToolDescriptor, ToolRegistry, execute_tool_calls

__all__ = [
    "AgentConfig",
    "AgentOrchestrator",
    "OrchestratorState",
    "SessionStore",
    # Tools
    "Tool",
    "ToolContext",
    "ToolDescriptor",
    "ToolRegistry",
    "execute_tool_calls",
    # Errors
    "AgentError",
    "BackendUnavailable",
    "ConfigError",
    "GenerationFailed",
    "InitializationFailed",
    "MalformedResponse",
    "MissingCredential",
    "NoActiveSession",
    "NotInitialized",
    "ToolExecutionFailed",
    "ToolNotFound",
]
