"""Session state — one ordered conversation bound to a workspace root."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
import uuid

from gemini_agent.shared.models.message import Message, MessageRole, ToolCall


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


@dataclass
class Session:
    """Holds all conversation state for a session.

    Messages are append-only. Nothing in here reorders or removes an
    individual message; a session is discarded as a whole.
    """

    workspace_root: str = ""
    session_id: str = field(default_factory=_session_id)
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def add_user_message(self, content: str) -> Message:
        msg = Message(role=MessageRole.USER, content=content)
        self.messages.append(msg)
        return msg

    def add_assistant_message(
        self,
        content: str,
        tool_calls: list[ToolCall] | None = None,
    ) -> Message:
        msg = Message(
            role=MessageRole.ASSISTANT,
            content=content,
            tool_calls=tuple(tool_calls or ()),
        )
        self.messages.append(msg)
        self.updated_at = msg.timestamp
        return msg

    def history(self) -> list[dict[str, str]]:
        return [m.to_history() for m in self.messages]

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def last_message(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    def to_wire(self, include_messages: bool = True) -> dict[str, Any]:
        return {
            "id": self.session_id,
            "messages": [m.to_wire() for m in self.messages] if include_messages else [],
            "workspaceRoot": self.workspace_root,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
