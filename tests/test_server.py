"""Tests for the HTTP + SSE server."""
from __future__ import annotations

import asyncio
import tempfile

from aiohttp.test_utils import AioHTTPTestCase

from gemini_agent.engine.config import AgentConfig
from gemini_agent.engine.orchestrator import AgentOrchestrator
from gemini_agent.vscode.server import AgentServer


async def _collect(queue: asyncio.Queue, count: int) -> list[dict]:
    items = []
    for _ in range(count):
        items.append(await asyncio.wait_for(queue.get(), timeout=5))
    return items


class TestAgentServer(AioHTTPTestCase):
    """Server backed by a ready stub generator."""

    async def get_application(self):
        self.tmpdir = tempfile.mkdtemp()
        orchestrator = AgentOrchestrator(
            AgentConfig(provider="stub", stub_delay_seconds=0),
            workspace_root=self.tmpdir,
        )
        self.agent_server = AgentServer(cwd=self.tmpdir, orchestrator=orchestrator)
        return self.agent_server.app

    async def test_health(self):
        resp = await self.client.get("/health")
        assert resp.status == 200
        data = await resp.json()
        assert data["status"] == "ok"
        assert data["state"] == "ready"
        assert data["generator"] == "stub"
        assert data["init_error"] is None
        assert data["session_id"] is None

    async def test_session_is_null_initially(self):
        resp = await self.client.get("/session")
        data = await resp.json()
        assert data["session"] is None
        assert data["state"] == "ready"

    async def test_post_message_rejects_bad_json(self):
        resp = await self.client.post(
            "/messages", data="{not json", headers={"Content-Type": "application/json"},
        )
        assert resp.status == 400

    async def test_post_message_rejects_unknown_type(self):
        resp = await self.client.post("/messages", json={"type": "launchRockets"})
        assert resp.status == 400
        data = await resp.json()
        assert "launchRockets" in data["error"]

    async def test_send_message_fans_out_in_order(self):
        queue = self.agent_server.subscribe()

        resp = await self.client.post("/messages", json={"type": "sendMessage", "message": "hi"})
        assert resp.status == 202
        assert (await resp.json())["status"] == "queued"

        events = await _collect(queue, 4)
        assert [e["event"] for e in events] == [
            "userMessage", "thinking", "thinking", "assistantMessage",
        ]
        assert events[1]["data"]["thinking"] is True
        assert events[2]["data"]["thinking"] is False
        assert '"hi"' in events[3]["data"]["message"]["content"]

        resp = await self.client.get("/session")
        session = (await resp.json())["session"]
        assert len(session["messages"]) == 2
        assert session["workspaceRoot"] == self.tmpdir
        self.agent_server.unsubscribe(queue)

    async def test_new_chat_then_ready(self):
        queue = self.agent_server.subscribe()

        await self.client.post("/messages", json={"type": "newChat"})
        await self.client.post("/messages", json={"type": "ready"})

        new_session, current = await _collect(queue, 2)
        assert new_session["event"] == "newSession"
        assert current["event"] == "currentSession"
        assert current["data"]["session"]["id"] == new_session["data"]["session"]["id"]

    async def test_reinitialize(self):
        queue = self.agent_server.subscribe()

        resp = await self.client.post("/reinitialize")
        assert resp.status == 200
        data = await resp.json()
        assert data["status"] == "ok"
        assert data["state"] == "ready"

        (status,) = await _collect(queue, 1)
        assert status["event"] == "status"


class TestAgentServerInitFailure(AioHTTPTestCase):
    """Server whose backend cannot initialize keeps serving."""

    async def get_application(self):
        self.tmpdir = tempfile.mkdtemp()
        orchestrator = AgentOrchestrator(
            AgentConfig(provider="hosted", api_key=None),
            workspace_root=self.tmpdir,
        )
        self.agent_server = AgentServer(cwd=self.tmpdir, orchestrator=orchestrator)
        return self.agent_server.app

    async def test_health_reports_init_error(self):
        resp = await self.client.get("/health")
        data = await resp.json()
        assert data["state"] == "uninitialized"
        assert "api_key" in data["init_error"]
        assert data["generator"] is None

    async def test_reinitialize_fails(self):
        resp = await self.client.post("/reinitialize")
        assert resp.status == 500
        assert (await resp.json())["status"] == "error"

    async def test_send_message_reports_error(self):
        queue = self.agent_server.subscribe()

        await self.client.post("/messages", json={"type": "sendMessage", "message": "hi"})

        events = await _collect(queue, 4)
        assert [e["event"] for e in events] == ["userMessage", "thinking", "thinking", "error"]
