"""Hosted chat API generator.

Talks to an OpenAI-compatible chat completions endpoint through the
official SDK. Failures never leave this module as exceptions: they come
back as a turn whose text is an error marker, so the conversation still
shows what happened.
"""
from __future__ import annotations

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from .base import ContentGenerator, GenerationResult, TokenUsage

logger = logging.getLogger(__name__)

API_ERROR_PREFIX = "API Error: "
EMPTY_COMPLETION_TEXT = "No response generated"


def to_chat_messages(history: list[dict[str, str]]) -> list[dict[str, str]]:
    """Translate internal history to the chat API schema."""
    return [
        {
            "role": "assistant" if msg.get("role") == "assistant" else "user",
            "content": msg.get("content") or "",
        }
        for msg in history
    ]


class HostedContentGenerator(ContentGenerator):
    """Generator backed by a hosted chat completions API.

    Tool calling is not requested from the API; tool_calls is always
    empty for this generator.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str | None = None,
        organization: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float | None = 120.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._closed = False
        if client is None:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                organization=organization,
                timeout=timeout,
            )
        self._client = client

    @property
    def name(self) -> str:
        return "hosted"

    @property
    def model(self) -> str:
        return self._model

    async def generate(
        self,
        history: list[dict[str, str]],
        tools: list[dict[str, Any]],
        workspace_root: str,
    ) -> GenerationResult:
        messages = to_chat_messages(history)
        logger.debug(
            "Hosted request: model=%s messages=%d max_tokens=%d temperature=%s",
            self._model, len(messages), self._max_tokens, self._temperature,
        )
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except openai.OpenAIError as exc:
            logger.error("Hosted API error (model=%s): %s", self._model, exc)
            return GenerationResult(
                text=f"{API_ERROR_PREFIX}{exc}",
                metadata={"error": True},
            )

        content = ""
        if completion.choices:
            content = completion.choices[0].message.content or ""

        usage = TokenUsage()
        if completion.usage is not None:
            usage = TokenUsage(
                input_tokens=completion.usage.prompt_tokens or 0,
                output_tokens=completion.usage.completion_tokens or 0,
            )

        return GenerationResult(
            text=content or EMPTY_COMPLETION_TEXT,
            usage=usage,
            metadata={"model": getattr(completion, "model", self._model)},
        )

    async def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._client.close()
