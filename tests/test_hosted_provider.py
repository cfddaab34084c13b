"""Tests for HostedContentGenerator."""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import openai
import pytest

from gemini_agent.engine.providers.hosted_provider import (
    HostedContentGenerator,
    to_chat_messages,
)


def _completion(content, prompt_tokens=5, completion_tokens=2):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(
            prompt_tokens=prompt_tokens, completion_tokens=completion_tokens,
        ),
        model="gpt-4o-mini",
    )


def _client(create: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = create
    client.close = AsyncMock()
    return client


def _generator(client) -> HostedContentGenerator:
    return HostedContentGenerator(
        api_key="sk-test", model="gpt-4o-mini",
        max_tokens=256, temperature=0.2, client=client,
    )


def test_to_chat_messages_role_translation():
    history = [
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
        {"role": "system", "content": "c"},
    ]
    assert to_chat_messages(history) == [
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
        {"role": "user", "content": "c"},
    ]


@pytest.mark.asyncio
async def test_generate_success():
    create = AsyncMock(return_value=_completion("Hello!"))
    generator = _generator(_client(create))

    result = await generator.generate([{"role": "user", "content": "hi"}], [], "/w")

    assert generator.name == "hosted"
    assert result.text == "Hello!"
    assert result.tool_calls == []
    assert result.usage.input_tokens == 5
    assert result.usage.output_tokens == 2
    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["max_tokens"] == 256
    assert kwargs["temperature"] == 0.2
    assert kwargs["messages"] == [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
async def test_generate_empty_completion():
    create = AsyncMock(return_value=_completion(None))
    result = await _generator(_client(create)).generate(
        [{"role": "user", "content": "hi"}], [], "/w",
    )
    assert result.text == "No response generated"


@pytest.mark.asyncio
async def test_generate_api_error_becomes_turn():
    create = AsyncMock(side_effect=openai.OpenAIError("rate limited"))
    result = await _generator(_client(create)).generate(
        [{"role": "user", "content": "hi"}], [], "/w",
    )
    assert result.text.startswith("API Error: ")
    assert "rate limited" in result.text
    assert result.metadata["error"] is True
    assert result.usage.input_tokens == 0


@pytest.mark.asyncio
async def test_shutdown_closes_client_once():
    client = _client(AsyncMock())
    generator = _generator(client)
    await generator.shutdown()
    await generator.shutdown()
    client.close.assert_awaited_once()
