"""Placeholder generator used when no real backend is configured."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from .base import ContentGenerator, GenerationResult, last_user_content

logger = logging.getLogger(__name__)

STUB_REPLY_TEMPLATE = (
    "This is a placeholder response from the Gemini Agent. "
    "No backend is configured yet. Your message was: \"{message}\""
)


class StubContentGenerator(ContentGenerator):
    """Echoes the last user message after a fixed delay. Never fails."""

    def __init__(self, delay_seconds: float = 1.0) -> None:
        self._delay = max(0.0, delay_seconds)

    @property
    def name(self) -> str:
        return "stub"

    async def generate(
        self,
        history: list[dict[str, str]],
        tools: list[dict[str, Any]],
        workspace_root: str,
    ) -> GenerationResult:
        logger.debug(
            "Stub generate: %d messages, %d tools", len(history), len(tools),
        )
        if self._delay:
            await asyncio.sleep(self._delay)
        message = last_user_content(history) or "unknown"
        return GenerationResult(text=STUB_REPLY_TEMPLATE.format(message=message))
