"""Wire message types exchanged between the bridge and a UI surface.

Inbound (UI -> bridge) and outbound (bridge -> UI) messages are tagged
objects: a ``type`` key plus payload fields. Each type is parsed into a
typed dataclass so the bridge never handles raw dicts past the edge.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any


# ── Inbound: UI -> bridge ──


@dataclass
class UiCommand:
    """Base inbound message from a UI surface."""
    type: str = ""


@dataclass
class Ready(UiCommand):
    type: str = "ready"


@dataclass
class SendMessage(UiCommand):
    type: str = "sendMessage"
    message: str = ""


@dataclass
class NewChat(UiCommand):
    type: str = "newChat"


@dataclass
class ClearChat(UiCommand):
    type: str = "clearChat"


_COMMAND_MAP: dict[str, type[UiCommand]] = {
    "ready": Ready,
    "sendMessage": SendMessage,
    "newChat": NewChat,
    "clearChat": ClearChat,
}


def parse_command(data: Any) -> UiCommand:
    """Parse an inbound wire dict. Raises ValueError if it is not one."""
    if not isinstance(data, dict):
        raise ValueError(f"Inbound message must be an object, got {type(data).__name__}")
    msg_type = data.get("type")
    cls = _COMMAND_MAP.get(msg_type) if isinstance(msg_type, str) else None
    if cls is None:
        raise ValueError(f"Unknown inbound message type: {msg_type!r}")
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    if cls is SendMessage and not isinstance(filtered.get("message", ""), str):
        raise ValueError("sendMessage.message must be a string")
    return cls(**filtered)


# ── Outbound: bridge -> UI ──


@dataclass
class Notification:
    """Base outbound message to a UI surface."""
    type: str = ""


@dataclass
class UserMessage(Notification):
    type: str = "userMessage"
    message: dict[str, Any] = field(default_factory=dict)


@dataclass
class AssistantMessage(Notification):
    type: str = "assistantMessage"
    message: dict[str, Any] = field(default_factory=dict)


@dataclass
class Thinking(Notification):
    type: str = "thinking"
    thinking: bool = False


@dataclass
class ErrorNotice(Notification):
    type: str = "error"
    message: str = ""


@dataclass
class StatusNotice(Notification):
    type: str = "status"
    message: str = ""


@dataclass
class NewSession(Notification):
    type: str = "newSession"
    session: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatCleared(Notification):
    type: str = "clearChat"


@dataclass
class CurrentSession(Notification):
    type: str = "currentSession"
    session: dict[str, Any] = field(default_factory=dict)


_NOTIFICATION_MAP: dict[str, type[Notification]] = {
    "userMessage": UserMessage,
    "assistantMessage": AssistantMessage,
    "thinking": Thinking,
    "error": ErrorNotice,
    "status": StatusNotice,
    "newSession": NewSession,
    "clearChat": ChatCleared,
    "currentSession": CurrentSession,
}


def notification_to_dict(notification: Notification) -> dict[str, Any]:
    """Convert a typed notification to a plain dict for JSON serialization."""
    return {f.name: getattr(notification, f.name) for f in fields(notification)}


def dict_to_notification(data: dict[str, Any]) -> Notification:
    """Convert an outbound wire dict back to a typed notification."""
    cls = _NOTIFICATION_MAP.get(data.get("type", ""), Notification)
    valid_fields = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in valid_fields})
