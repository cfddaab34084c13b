"""Tests for ToolRegistry and the per-turn tool loop."""
from __future__ import annotations

import pytest

from gemini_agent.engine.errors import ToolExecutionFailed, ToolNotFound
from gemini_agent.engine.providers.base import ToolCallRequest
from gemini_agent.engine.tools import (
    Tool,
    ToolContext,
    ToolDescriptor,
    ToolRegistry,
    execute_tool_calls,
)


class RecordingTool(Tool):
    def __init__(self, name: str, log: list[str], fail: bool = False) -> None:
        self._name = name
        self._log = log
        self._fail = fail

    @property
    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self._name,
            description=f"{self._name} tool",
            parameters={"type": "object"},
        )

    async def execute(self, parameters, context):
        self._log.append(self._name)
        if self._fail:
            raise RuntimeError(f"{self._name} exploded")
        return {"tool": self._name, "params": parameters, "root": context.workspace_root}


@pytest.fixture
def log():
    return []


@pytest.fixture
def registry(log):
    reg = ToolRegistry()
    reg.register(RecordingTool("read_file", log))
    reg.register(RecordingTool("write_file", log, fail=True))
    reg.register(RecordingTool("list_dir", log))
    return reg


def test_list_tools_in_registration_order(registry):
    names = [d.name for d in registry.list_tools()]
    assert names == ["read_file", "write_file", "list_dir"]
    assert registry.count == 3
    assert registry.list_tools()[0].to_dict() == {
        "name": "read_file",
        "description": "read_file tool",
        "parameters": {"type": "object"},
    }


def test_register_replaces_same_name(registry, log):
    registry.register(RecordingTool("read_file", log))
    assert registry.count == 3


@pytest.mark.asyncio
async def test_execute_unknown_raises(registry):
    with pytest.raises(ToolNotFound):
        await registry.execute("nope", {}, ToolContext(workspace_root="/w"))


@pytest.mark.asyncio
async def test_execute_wraps_tool_errors(registry):
    with pytest.raises(ToolExecutionFailed, match="write_file exploded"):
        await registry.execute("write_file", {}, ToolContext(workspace_root="/w"))


@pytest.mark.asyncio
async def test_execute_tool_calls_order_skip_and_errors(registry, log):
    requests = [
        ToolCallRequest(name="read_file", parameters={"path": "a"}, id="c1"),
        ToolCallRequest(name="unknown_tool", parameters={}, id="c2"),
        ToolCallRequest(name="write_file", parameters={"path": "b"}, id="c3"),
        ToolCallRequest(name="list_dir", parameters={"path": "."}),
    ]
    calls = await execute_tool_calls(registry, requests, ToolContext(workspace_root="/repo"))

    assert log == ["read_file", "write_file", "list_dir"]
    assert [c.name for c in calls] == ["read_file", "write_file", "list_dir"]

    assert calls[0].id == "c1"
    assert calls[0].result == {"tool": "read_file", "params": {"path": "a"}, "root": "/repo"}
    assert calls[0].error is None

    assert calls[1].id == "c3"
    assert calls[1].error == "write_file exploded"
    assert calls[1].result is None

    assert calls[2].id.startswith("tool_")
    assert calls[2].succeeded


@pytest.mark.asyncio
async def test_execute_tool_calls_empty(registry):
    assert await execute_tool_calls(registry, [], ToolContext(workspace_root="/w")) == []


@pytest.mark.asyncio
async def test_execute_tool_calls_all_unknown_leaves_registry_untouched(registry, log):
    context = ToolContext(workspace_root="/w")
    requests = [ToolCallRequest(name="missing"), ToolCallRequest(name="missing")]

    for _ in range(3):
        assert await execute_tool_calls(registry, requests, context) == []
        assert registry.count == 3
        assert [d.name for d in registry.list_tools()] == ["read_file", "write_file", "list_dir"]

    assert log == []
