"""HTTP + SSE server for the editor extension.

The extension's webview posts wire messages to ``POST /messages`` and
listens on ``GET /events`` for outbound notifications. Everything
stateful lives in AgentOrchestrator; this module only routes HTTP,
feeds the transport bridge and fans notifications out to SSE clients.

Usage:
    gemini-agent --server [--port PORT]
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
import time
import uuid
from pathlib import Path
from typing import Any

from aiohttp import web

from gemini_agent.adapters.bridge import TransportBridge
from gemini_agent.adapters.event_bus import EventBus
from gemini_agent.adapters.events import notification_to_dict, parse_command
from gemini_agent.engine.config import AgentConfig, apply_log_level
from gemini_agent.engine.errors import InitializationFailed
from gemini_agent.engine.orchestrator import AgentOrchestrator
from gemini_agent.engine.yaml_config import load_agent_config

logger = logging.getLogger(__name__)


class AgentServer:
    """Single-session HTTP + SSE server wrapping one orchestrator.

    Thin adapter: inbound messages are queued on the bridge, which
    handles them one at a time; outbound notifications flow through an
    EventBus and are copied to every connected SSE client.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 0,
        cwd: str | None = None,
        config_path: str | None = None,
        config_overrides: dict[str, Any] | None = None,
        orchestrator: AgentOrchestrator | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._cwd = cwd or str(Path.cwd())
        self._config_path = config_path
        self._config_overrides = dict(config_overrides or {})
        self._orchestrator = orchestrator or AgentOrchestrator(
            self._load_config, workspace_root=self._cwd,
        )
        self._bus = EventBus()
        self._bridge = TransportBridge(self._orchestrator, self._bus.publish)
        self._sse_queues: list[asyncio.Queue[dict[str, Any]]] = []
        self._tasks: list[asyncio.Task] = []
        self._init_error: str | None = None
        self._started_at = time.time()
        self._app = web.Application(middlewares=[self._request_logging_middleware])
        self._app.on_startup.append(self._on_startup)
        self._app.on_cleanup.append(self._on_cleanup)
        self._setup_routes()
        logger.info(
            "AgentServer init host=%s port=%s cwd=%s config=%s pid=%s",
            self._host, self._port, self._cwd,
            self._config_path or "<auto>", os.getpid(),
        )

    @property
    def app(self) -> web.Application:
        return self._app

    @property
    def bridge(self) -> TransportBridge:
        return self._bridge

    @property
    def orchestrator(self) -> AgentOrchestrator:
        return self._orchestrator

    def _load_config(self) -> AgentConfig:
        config = load_agent_config(
            self._config_path, cwd=self._cwd, overrides=self._config_overrides,
        )
        apply_log_level(config.log_level)
        return config

    # ── Middleware ──

    @web.middleware
    async def _request_logging_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        req_id = request.headers.get("x-request-id", str(uuid.uuid4())[:8])
        request["req_id"] = req_id
        start = time.monotonic()
        logger.info("HTTP %s %s req=%s", request.method, request.path_qs, req_id)
        try:
            response = await handler(request)
        except Exception:
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.exception("HTTP %s %s req=%s failed duration_ms=%.1f",
                             request.method, request.path_qs, req_id, elapsed_ms)
            raise
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info(
            "HTTP %s %s req=%s status=%s duration_ms=%.1f",
            request.method, request.path_qs, req_id,
            getattr(response, "status", "?"), elapsed_ms,
        )
        return response

    # ── Route setup ──

    def _setup_routes(self) -> None:
        r = self._app.router
        r.add_get("/health", self._handle_health)
        r.add_get("/events", self._handle_sse)
        r.add_get("/session", self._handle_get_session)
        r.add_post("/messages", self._handle_post_message)
        r.add_post("/reinitialize", self._handle_reinitialize)

    # ── Lifecycle ──

    async def initialize_orchestrator(self) -> bool:
        """Initialize the backend, keeping the server up if it fails."""
        try:
            await self._orchestrator.initialize()
        except InitializationFailed as exc:
            self._init_error = str(exc)
            logger.error("Agent initialization failed: %s", exc)
            return False
        self._init_error = None
        return True

    async def _on_startup(self, app: web.Application) -> None:
        if not self._orchestrator.is_ready:
            await self.initialize_orchestrator()
        self._tasks.append(asyncio.create_task(self._bridge.run()))
        self._tasks.append(asyncio.create_task(self._fan_out_loop()))

    async def _on_cleanup(self, app: web.Application) -> None:
        self._bridge.close()
        self._bus.close()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        await self._orchestrator.dispose()

    async def start(self) -> None:
        """Start the server and print the port to stdout."""
        runner = web.AppRunner(self._app)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)
        await site.start()

        actual_port = self._resolve_port(site, runner)
        if actual_port is None:
            raise RuntimeError("Server started but no listening socket was reported.")
        self._port = actual_port

        sys.stdout.write(json.dumps({"port": actual_port}) + "\n")
        sys.stdout.flush()
        logger.info("Agent server listening on %s:%d", self._host, actual_port)

        try:
            await asyncio.Event().wait()
        except (KeyboardInterrupt, asyncio.CancelledError):
            logger.info("Server shutting down")
        finally:
            await runner.cleanup()

    @staticmethod
    def _resolve_port(site, runner) -> int | None:
        sockets = getattr(getattr(site, "_server", None), "sockets", None) or ()
        if sockets:
            return sockets[0].getsockname()[1]
        addresses = getattr(runner, "addresses", None) or ()
        if addresses:
            first = addresses[0]
            if isinstance(first, tuple) and len(first) >= 2:
                return int(first[1])
        return None

    # ── SSE fan-out ──

    def subscribe(self) -> asyncio.Queue[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=5000)
        self._sse_queues.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[dict[str, Any]]) -> None:
        if queue in self._sse_queues:
            self._sse_queues.remove(queue)

    def _broadcast_sse(self, event_type: str, data: dict[str, Any]) -> None:
        msg = {"event": event_type, "data": data}
        for queue in self._sse_queues:
            try:
                queue.put_nowait(msg)
            except asyncio.QueueFull:
                logger.warning("SSE queue full, dropping %s", event_type)

    async def _fan_out_loop(self) -> None:
        async for notification in self._bus.consume():
            self._broadcast_sse(notification.type, notification_to_dict(notification))

    # ── HTTP handlers ──

    async def _handle_health(self, request: web.Request) -> web.Response:
        session = self._orchestrator.current_session
        return web.json_response({
            "status": "ok",
            "pid": os.getpid(),
            "uptime_seconds": round(max(0.0, time.time() - self._started_at), 3),
            "cwd": self._cwd,
            "state": self._orchestrator.state.value,
            "generator": self._orchestrator.generator_name,
            "init_error": self._init_error,
            "session_id": session.session_id if session else None,
        })

    async def _handle_sse(self, request: web.Request) -> web.StreamResponse:
        response = web.StreamResponse(
            status=200,
            headers={
                "Content-Type": "text/event-stream",
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Access-Control-Allow-Origin": "*",
            },
        )
        await response.prepare(request)

        queue = self.subscribe()
        logger.info("SSE client connected req=%s active_clients=%d",
                    request.get("req_id", "unknown"), len(self._sse_queues))
        try:
            hello = {"state": self._orchestrator.state.value}
            await response.write(f"event: connected\ndata: {json.dumps(hello)}\n\n".encode())
            while True:
                try:
                    msg = await asyncio.wait_for(queue.get(), timeout=30.0)
                except asyncio.TimeoutError:
                    await response.write(b": keepalive\n\n")
                    continue
                data = json.dumps(msg["data"])
                await response.write(f"event: {msg['event']}\ndata: {data}\n\n".encode())
        except (ConnectionResetError, asyncio.CancelledError):
            pass
        finally:
            self.unsubscribe(queue)
            logger.info("SSE client disconnected req=%s active_clients=%d",
                        request.get("req_id", "unknown"), len(self._sse_queues))
        return response

    async def _handle_get_session(self, request: web.Request) -> web.Response:
        session = self._orchestrator.current_session
        return web.json_response({
            "session": session.to_wire() if session else None,
            "state": self._orchestrator.state.value,
        })

    async def _handle_post_message(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return web.json_response({"error": "Body must be JSON"}, status=400)
        try:
            command = parse_command(body)
        except ValueError as exc:
            return web.json_response({"error": str(exc)}, status=400)
        await self._bridge.submit(body)
        return web.json_response({"status": "queued", "type": command.type}, status=202)

    async def _handle_reinitialize(self, request: web.Request) -> web.Response:
        ok = await self._bridge.reinitialize()
        if not ok:
            self._init_error = "reinitialize failed"
            return web.json_response(
                {"status": "error", "state": self._orchestrator.state.value},
                status=500,
            )
        self._init_error = None
        return web.json_response({
            "status": "ok",
            "state": self._orchestrator.state.value,
            "generator": self._orchestrator.generator_name,
        })
