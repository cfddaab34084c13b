"""Tests for TransportBridge message handling and ordering."""
from __future__ import annotations

import asyncio

import pytest

from gemini_agent.adapters.bridge import TransportBridge
from gemini_agent.engine.config import AgentConfig
from gemini_agent.engine.errors import BackendUnavailable
from gemini_agent.engine.orchestrator import AgentOrchestrator
from gemini_agent.engine.providers.base import ContentGenerator, GenerationResult


class ScriptedGenerator(ContentGenerator):
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.prompts: list[str] = []

    @property
    def name(self) -> str:
        return "scripted"

    async def generate(self, history, tools, workspace_root):
        self.prompts.append(history[-1]["content"])
        if self.error is not None:
            raise self.error
        return GenerationResult(text=f"reply to {history[-1]['content']}")


class Outbox:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    async def __call__(self, data: dict) -> None:
        self.messages.append(data)

    @property
    def types(self) -> list[str]:
        return [m["type"] for m in self.messages]


async def _ready_bridge(generator: ContentGenerator | None = None):
    generator = generator or ScriptedGenerator()
    orchestrator = AgentOrchestrator(
        AgentConfig(),
        generator_factory=lambda config: generator,
        workspace_root="/repo",
    )
    await orchestrator.initialize()
    outbox = Outbox()
    return TransportBridge(orchestrator, outbox), outbox, orchestrator


@pytest.mark.asyncio
async def test_send_message_emits_ordered_notifications():
    bridge, outbox, orchestrator = await _ready_bridge()

    await bridge.handle_message({"type": "sendMessage", "message": "hello"})

    assert outbox.types == ["userMessage", "thinking", "thinking", "assistantMessage"]
    assert outbox.messages[0]["message"]["role"] == "user"
    assert outbox.messages[0]["message"]["content"] == "hello"
    assert outbox.messages[1]["thinking"] is True
    assert outbox.messages[2]["thinking"] is False
    reply = outbox.messages[3]["message"]
    assert reply["content"] == "reply to hello"
    assert reply["id"] == orchestrator.current_session.last_message.id


@pytest.mark.asyncio
async def test_send_message_auto_creates_session():
    bridge, outbox, orchestrator = await _ready_bridge()
    assert orchestrator.current_session is None

    await bridge.handle_message({"type": "sendMessage", "message": "hi"})

    assert orchestrator.current_session is not None
    assert orchestrator.current_session.message_count == 2


@pytest.mark.asyncio
async def test_blank_message_is_ignored():
    generator = ScriptedGenerator()
    bridge, outbox, _ = await _ready_bridge(generator)

    await bridge.handle_message({"type": "sendMessage", "message": "   "})

    assert outbox.messages == []
    assert generator.prompts == []


@pytest.mark.asyncio
async def test_generation_failure_still_stops_thinking():
    bridge, outbox, orchestrator = await _ready_bridge(
        ScriptedGenerator(error=RuntimeError("backend down")),
    )

    await bridge.handle_message({"type": "sendMessage", "message": "hi"})

    assert outbox.types == ["userMessage", "thinking", "thinking", "assistantMessage", "error"]
    assert outbox.messages[2]["thinking"] is False
    assert outbox.messages[3]["message"]["content"] == "Error: backend down"
    assert "backend down" in outbox.messages[4]["message"]
    assert orchestrator.current_session.message_count == 2


@pytest.mark.asyncio
async def test_send_before_initialize_reports_error():
    orchestrator = AgentOrchestrator(AgentConfig(), workspace_root="/repo")
    outbox = Outbox()
    bridge = TransportBridge(orchestrator, outbox)

    await bridge.handle_message({"type": "sendMessage", "message": "hi"})

    assert outbox.types == ["userMessage", "thinking", "thinking", "error"]
    assert "not initialized" in outbox.messages[-1]["message"].lower()
    assert orchestrator.current_session.messages == []


@pytest.mark.asyncio
async def test_thinking_is_paired_across_many_turns():
    generator = ScriptedGenerator()
    bridge, outbox, _ = await _ready_bridge(generator)

    for i in range(3):
        generator.error = RuntimeError("flaky") if i == 1 else None
        await bridge.handle_message({"type": "sendMessage", "message": f"m{i}"})

    flags = [m["thinking"] for m in outbox.messages if m["type"] == "thinking"]
    assert flags == [True, False] * 3


@pytest.mark.asyncio
async def test_ready_sends_current_session():
    bridge, outbox, orchestrator = await _ready_bridge()
    await bridge.handle_message({"type": "sendMessage", "message": "hi"})
    outbox.messages.clear()

    await bridge.handle_message({"type": "ready"})

    assert outbox.types == ["currentSession"]
    session = outbox.messages[0]["session"]
    assert session["id"] == orchestrator.current_session.session_id
    assert len(session["messages"]) == 2
    assert session["workspaceRoot"] == "/repo"


@pytest.mark.asyncio
async def test_ready_without_session_sends_nothing():
    bridge, outbox, _ = await _ready_bridge()
    await bridge.handle_message({"type": "ready"})
    assert outbox.messages == []


@pytest.mark.asyncio
async def test_new_chat_and_clear_chat():
    bridge, outbox, orchestrator = await _ready_bridge()

    await bridge.new_chat()
    first_id = outbox.messages[-1]["session"]["id"]
    await bridge.handle_message({"type": "newChat"})
    second_id = outbox.messages[-1]["session"]["id"]
    await bridge.clear_chat()

    assert outbox.types == ["newSession", "newSession", "clearChat"]
    assert first_id != second_id
    assert orchestrator.current_session is None


@pytest.mark.asyncio
@pytest.mark.parametrize("data", [
    {"type": "launchRockets"},
    {"message": "no type"},
    {"type": "sendMessage", "message": 42},
    "not a dict",
])
async def test_invalid_inbound_messages_are_dropped(data):
    bridge, outbox, _ = await _ready_bridge()
    await bridge.handle_message(data)
    assert outbox.messages == []


@pytest.mark.asyncio
async def test_post_failures_do_not_break_handling():
    bridge, _, orchestrator = await _ready_bridge()

    async def broken(data):
        raise ConnectionResetError("webview gone")

    bridge._post_message = broken
    await bridge.handle_message({"type": "sendMessage", "message": "hi"})

    assert orchestrator.current_session.message_count == 2


@pytest.mark.asyncio
async def test_submit_run_join_preserves_order():
    generator = ScriptedGenerator()
    bridge, outbox, _ = await _ready_bridge(generator)
    runner = asyncio.create_task(bridge.run())
    try:
        for text in ("first", "second", "third"):
            await bridge.submit({"type": "sendMessage", "message": text})
        await asyncio.wait_for(bridge.join(), timeout=5)
    finally:
        bridge.close()
        runner.cancel()

    assert generator.prompts == ["first", "second", "third"]
    replies = [m["message"]["content"] for m in outbox.messages if m["type"] == "assistantMessage"]
    assert replies == ["reply to first", "reply to second", "reply to third"]


@pytest.mark.asyncio
async def test_reinitialize_success_and_failure():
    generators = [
        ScriptedGenerator(),
        ScriptedGenerator(),
    ]
    calls = {"n": 0}

    def factory(config):
        calls["n"] += 1
        if calls["n"] == 3:
            raise BackendUnavailable("scripted", "binary missing")
        return generators[calls["n"] - 1]

    orchestrator = AgentOrchestrator(AgentConfig(), generator_factory=factory)
    await orchestrator.initialize()
    outbox = Outbox()
    bridge = TransportBridge(orchestrator, outbox)

    assert await bridge.reinitialize() is True
    assert outbox.messages[-1] == {"type": "status", "message": "Agent reinitialized (scripted)"}

    assert await bridge.reinitialize() is False
    assert outbox.messages[-1]["type"] == "error"
    assert outbox.messages[-1]["message"].startswith("Failed to reinitialize: ")
    assert "binary missing" in outbox.messages[-1]["message"]
