"""Abstract base for content generators.

Each generator wraps a different backend (in-process stub, hosted chat
API, external CLI process). The orchestrator calls generate() once per
turn with the full conversation history and the tool catalog, and gets
back one assistant turn.
"""
from __future__ import annotations

import abc
from dataclasses import dataclass, field
import logging
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    def to_wire(self) -> dict[str, int]:
        return {"inputTokens": self.input_tokens, "outputTokens": self.output_tokens}


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool invocation requested by a generator, not yet executed."""
    name: str
    parameters: Any = None
    id: str | None = None


@dataclass
class GenerationResult:
    """One assistant turn produced by a content generator."""
    text: str
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    metadata: dict[str, Any] = field(default_factory=dict)


class ContentGenerator(abc.ABC):
    """Abstract content generator interface.

    Implementations:
    - StubContentGenerator: deterministic placeholder, never fails
    - HostedContentGenerator: OpenAI-compatible chat completions API
    - CliContentGenerator: external CLI process, one spawn per turn
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short generator name (e.g. 'stub', 'cli')."""

    async def initialize(self) -> None:
        """Check that the backend is usable before it is marked ready.

        Default no-op. Raise BackendUnavailable to abort initialization.
        """
        return None

    @abc.abstractmethod
    async def generate(
        self,
        history: list[dict[str, str]],
        tools: list[dict[str, Any]],
        workspace_root: str,
    ) -> GenerationResult:
        """Produce one assistant turn.

        history is the ordered list of {"role", "content"} pairs, ending
        with the latest user message. tools is the catalog of tool
        descriptors the generator may request.
        """

    async def shutdown(self) -> None:
        """Release backend resources. Must be idempotent."""
        return None


def last_user_content(history: list[dict[str, str]]) -> str:
    """Content of the last message in *history*, or "" if empty."""
    if not history:
        return ""
    return history[-1].get("content") or ""
