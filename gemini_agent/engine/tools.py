"""Tool registry and per-turn tool execution.

The registry is a capability: it lists tool descriptors for the
generator and executes a named tool. No concrete tools ship here;
hosts register their own.
"""
from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from gemini_agent.shared.models.message import ToolCall, gen_id

from .errors import ToolExecutionFailed, ToolNotFound

if TYPE_CHECKING:
    from .config import AgentConfig
    from .providers.base import ToolCallRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


@dataclass(frozen=True)
class ToolContext:
    """Per-call execution context handed to tools."""
    workspace_root: str
    config: AgentConfig | None = None


class Tool(abc.ABC):
    """A callable tool exposed to content generators."""

    @property
    @abc.abstractmethod
    def descriptor(self) -> ToolDescriptor:
        """Name and parameter schema."""

    @abc.abstractmethod
    async def execute(self, parameters: Any, context: ToolContext) -> Any:
        """Run the tool. Raise to report failure."""


class ToolRegistry:
    """Registry of tools, kept in registration order."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}
        self._config: AgentConfig | None = None

    def register(self, tool: Tool) -> None:
        """Register a tool by its descriptor name (replaces same name)."""
        name = tool.descriptor.name
        if name in self._tools:
            logger.warning("Tool '%s' re-registered; replacing", name)
        self._tools[name] = tool
        logger.debug("Tool registered: %s", name)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_tools(self) -> list[ToolDescriptor]:
        return [tool.descriptor for tool in self._tools.values()]

    async def initialize(self, config: AgentConfig) -> None:
        """Bind the registry to the active backend configuration."""
        self._config = config
        logger.info("Tool registry initialized with %d tool(s)", len(self._tools))

    async def execute(
        self, name: str, parameters: Any, context: ToolContext,
    ) -> Any:
        """Execute a named tool.

        Raises ToolNotFound on a lookup miss and ToolExecutionFailed when
        the tool itself raises.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFound(name)
        try:
            return await tool.execute(parameters, context)
        except Exception as exc:
            raise ToolExecutionFailed(name, str(exc)) from exc

    @property
    def count(self) -> int:
        return len(self._tools)


async def execute_tool_calls(
    registry: ToolRegistry,
    requests: list[ToolCallRequest],
    context: ToolContext,
) -> list[ToolCall]:
    """Resolve one turn's tool requests, in order, one at a time.

    A name the registry does not know produces no entry. A tool that
    raises produces an entry with ``error`` set; the remaining requests
    still run.
    """
    resolved: list[ToolCall] = []
    for request in requests:
        call_id = request.id or gen_id("tool")
        try:
            result = await registry.execute(request.name, request.parameters, context)
        except ToolNotFound:
            logger.debug("Skipping unknown tool '%s' (call %s)", request.name, call_id)
            continue
        except ToolExecutionFailed as exc:
            logger.warning("Tool call %s failed: %s", call_id, exc)
            resolved.append(ToolCall(
                id=call_id,
                name=request.name,
                parameters=request.parameters,
                error=exc.reason,
            ))
            continue
        resolved.append(ToolCall(
            id=call_id,
            name=request.name,
            parameters=request.parameters,
            result=result,
        ))
    return resolved
