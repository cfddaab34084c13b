"""Message and tool call models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import itertools
from typing import Any
import uuid


_id_counter = itertools.count(1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def gen_id(prefix: str) -> str:
    """Return ``<prefix>_<counter>_<random>``; ordered within one process."""
    return f"{prefix}_{next(_id_counter):06d}_{uuid.uuid4().hex[:9]}"


class MessageRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ToolCall:
    """A resolved tool invocation: exactly one of result/error is set."""

    id: str
    name: str
    parameters: Any
    result: Any = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_wire(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "parameters": self.parameters,
        }
        if self.error is not None:
            data["error"] = self.error
        else:
            data["result"] = self.result
        return data


@dataclass(frozen=True)
class Message:
    role: MessageRole
    content: str
    id: str = field(default_factory=lambda: gen_id("msg"))
    timestamp: datetime = field(default_factory=_utcnow)
    tool_calls: tuple[ToolCall, ...] = ()

    def to_wire(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.tool_calls:
            data["toolCalls"] = [tc.to_wire() for tc in self.tool_calls]
        return data

    def to_history(self) -> dict[str, str]:
        """Role/content pair handed to content generators."""
        return {"role": self.role.value, "content": self.content}
