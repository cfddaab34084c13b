"""Subprocess CLI generator.

Drives an external agent CLI (e.g. ``node packages/cli/dist/index.js``
or an installed ``gemini`` binary) with one child process per turn:

    argv:   --prompt "" --model <id> [--openai-api-key K [--openai-api-url U]]
    stdin:  latest user message, then closed
    stdout: captured until exit; a JSON object, or plain text
    stderr: captured; reported when the exit code is non-zero

A ``--version`` check with stdin at /dev/null runs once at initialization.
"""
from __future__ import annotations

import asyncio
import json
import logging
import shlex
import shutil
from typing import Any

from ..errors import BackendUnavailable, GenerationFailed, MalformedResponse
from .base import (
    ContentGenerator,
    GenerationResult,
    TokenUsage,
    ToolCallRequest,
    last_user_content,
)

logger = logging.getLogger(__name__)


def _usage_from_payload(raw: Any) -> TokenUsage:
    if not isinstance(raw, dict):
        return TokenUsage()

    def _pick(*keys: str) -> int:
        for key in keys:
            value = raw.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return int(value)
        return 0

    return TokenUsage(
        input_tokens=_pick("inputTokens", "input_tokens", "promptTokenCount"),
        output_tokens=_pick("outputTokens", "output_tokens", "candidatesTokenCount"),
    )


def _tool_calls_from_payload(raw: Any) -> list[ToolCallRequest]:
    if not isinstance(raw, list):
        return []
    requests: list[ToolCallRequest] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        if not isinstance(name, str) or not name:
            logger.debug("Dropping tool call without a name: %r", entry)
            continue
        parameters = entry.get("parameters", entry.get("args"))
        call_id = entry.get("id")
        requests.append(ToolCallRequest(
            name=name,
            parameters=parameters,
            id=str(call_id) if call_id else None,
        ))
    return requests


def parse_structured_output(stdout: str) -> GenerationResult:
    """Parse a CLI JSON payload. Raises MalformedResponse otherwise."""
    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(str(exc), raw=stdout) from exc
    if not isinstance(payload, dict):
        raise MalformedResponse(
            f"expected a JSON object, got {type(payload).__name__}",
            raw=stdout,
        )

    text = payload.get("content") or payload.get("text") or ""
    if not isinstance(text, str):
        text = json.dumps(text)
    return GenerationResult(
        text=text,
        tool_calls=_tool_calls_from_payload(
            payload.get("toolCalls", payload.get("tool_calls"))
        ),
        usage=_usage_from_payload(payload.get("usage")),
        metadata={"structured": True},
    )


def parse_cli_output(stdout: str) -> GenerationResult:
    """Parse CLI stdout, falling back to plain text when not structured."""
    try:
        return parse_structured_output(stdout)
    except MalformedResponse as exc:
        logger.debug("CLI output is not structured (%s); using plain text", exc.reason)
        return GenerationResult(
            text=stdout.strip(),
            usage=TokenUsage(input_tokens=0, output_tokens=0),
            metadata={"structured": False},
        )


class CliContentGenerator(ContentGenerator):
    """Generator backed by an external agent CLI process.

    backend selects what the CLI talks to: "gemini" (the CLI's own auth)
    or "openai" (hosted-relay mode, credentials passed as arguments).
    """

    def __init__(
        self,
        command: str = "gemini",
        model: str = "gemini-2.5-pro",
        *,
        backend: str = "gemini",
        api_key: str | None = None,
        api_url: str | None = None,
        timeout: float | None = 300.0,
    ) -> None:
        self._argv_prefix = self.resolve_command(command)
        self._model = model
        self._backend = backend
        self._api_key = api_key
        self._api_url = api_url
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "cli"

    @property
    def command(self) -> list[str]:
        return list(self._argv_prefix)

    @staticmethod
    def resolve_command(command: str) -> list[str]:
        """Split *command* and resolve its executable on PATH when possible.

        An executable that is not on PATH is kept as-is so spawn errors
        show the configured value.
        """
        parts = shlex.split(command)
        if not parts:
            raise ValueError("cli_command must not be empty")
        resolved = shutil.which(parts[0])
        if resolved:
            parts[0] = resolved
        else:
            logger.debug("CLI executable %s not found on PATH", parts[0])
        return parts

    def build_args(self) -> list[str]:
        """Arguments for one generation call (prompt arrives on stdin)."""
        args = ["--prompt", "", "--model", self._model]
        if self._backend == "openai":
            if self._api_key:
                args.extend(["--openai-api-key", self._api_key])
            if self._api_url:
                args.extend(["--openai-api-url", self._api_url])
        return args

    async def run_cli(self, args: list[str], input_text: str | None = None) -> str:
        """Run the CLI once and return its stdout.

        With *input_text* (even "") stdin is a pipe that receives the text
        and is then closed; without it stdin is /dev/null, so a CLI that
        reads stdin sees EOF instead of blocking.

        Raises GenerationFailed on spawn failure, timeout or non-zero exit.
        The child is always reaped before this returns.
        """
        cmd = [*self._argv_prefix, *args]
        if input_text is None:
            stdin = asyncio.subprocess.DEVNULL
            payload = None
        else:
            stdin = asyncio.subprocess.PIPE
            payload = input_text.encode("utf-8")
        # argv may carry an API key
        logger.debug("Spawning CLI: %s (+%d args)", self._argv_prefix[0], len(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=stdin,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise GenerationFailed(
                f"Could not start CLI '{self._argv_prefix[0]}': {exc}"
            ) from exc

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(payload), timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise GenerationFailed(
                f"CLI process timed out after {self._timeout}s"
            ) from exc
        finally:
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()

        stdout_text = (stdout_bytes or b"").decode("utf-8", errors="replace")
        if proc.returncode != 0:
            stderr_text = (stderr_bytes or b"").decode("utf-8", errors="replace")
            raise GenerationFailed(
                f"CLI process exited with code {proc.returncode}: {stderr_text.strip()}"
            )
        return stdout_text

    async def initialize(self) -> None:
        try:
            version = await self.run_cli(["--version"])
        except GenerationFailed as exc:
            logger.error("CLI version check failed: %s", exc)
            raise BackendUnavailable(self.name, str(exc)) from exc
        logger.info(
            "CLI backend ready: %s (version=%s, backend=%s, model=%s)",
            self._argv_prefix[-1], version.strip() or "?", self._backend, self._model,
        )

    async def generate(
        self,
        history: list[dict[str, str]],
        tools: list[dict[str, Any]],
        workspace_root: str,
    ) -> GenerationResult:
        prompt = last_user_content(history)
        logger.debug(
            "CLI generate: model=%s backend=%s prompt_chars=%d",
            self._model, self._backend, len(prompt),
        )
        stdout = await self.run_cli(self.build_args(), prompt)
        result = parse_cli_output(stdout)
        logger.debug(
            "CLI response: chars=%d tool_calls=%d structured=%s",
            len(result.text), len(result.tool_calls), result.metadata.get("structured"),
        )
        return result
