"""Adapters package - bridge between the engine and UI surfaces.

This package contains the transport bridge, the wire message types and
the outbound event bus that connect the orchestrator to the editor
extension (HTTP + SSE) and the terminal console.
"""
from __future__ import annotations

__all__ = [
    "TransportBridge",
    "EventBus",
    "parse_command",
    "notification_to_dict",
]

from gemini_agent.adapters.bridge import TransportBridge
from gemini_agent.adapters.event_bus import EventBus
from gemini_agent.adapters.events import notification_to_dict, parse_command
