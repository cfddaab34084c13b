"""gemini-agent — command-line entry point.

Usage:
    gemini-agent                       # interactive terminal chat
    gemini-agent --server [--port N]   # HTTP+SSE server for the editor extension
    gemini-agent --provider cli --model gemini-2.5-flash
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"


def _configure_logging(log_name: str, verbose: bool, to_stderr: bool) -> Path:
    """Send logs to ~/.gemini-agent/logs/<log_name>, and to stderr if asked."""
    log_level = "DEBUG" if verbose else os.getenv("GEMINI_AGENT_LOG_LEVEL", "INFO").upper()
    log_dir = Path.home() / ".gemini-agent" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_name

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level, logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if to_stderr:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)
    return log_file


def _overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.provider:
        overrides["provider"] = args.provider
    if args.model:
        overrides["model"] = args.model
    if getattr(args, "verbose", False):
        overrides["log_level"] = "DEBUG"
    return overrides


def _config_loader(args: argparse.Namespace, cwd: Path):
    """Config source for the chat orchestrator; applies the log level on each load."""
    from gemini_agent.engine.config import apply_log_level
    from gemini_agent.engine.yaml_config import load_agent_config

    overrides = _overrides_from_args(args)

    def _load():
        config = load_agent_config(args.config, cwd=cwd, overrides=overrides)
        apply_log_level(config.log_level)
        return config

    return _load


async def _run_chat(args: argparse.Namespace) -> None:
    from rich.console import Console
    from rich.text import Text

    from gemini_agent.engine.errors import InitializationFailed
    from gemini_agent.engine.orchestrator import AgentOrchestrator
    from gemini_agent.terminal.console import ConsoleSurface

    cwd = Path.cwd()
    orchestrator = AgentOrchestrator(
        _config_loader(args, cwd),
        workspace_root=str(cwd),
    )
    console = Console()
    try:
        await orchestrator.initialize()
    except InitializationFailed as exc:
        console.print(Text(f"Initialization failed: {exc}", style="bold red"))
        console.print(Text("Fix the settings and type /reinit to retry.", style="dim"))
    else:
        console.print(Text(
            f"Connected to {orchestrator.generator_name} "
            f"(model {orchestrator.config.model})",
            style="green",
        ))

    surface = ConsoleSurface(orchestrator, console=console)
    try:
        await surface.run()
    finally:
        await orchestrator.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="gemini-agent",
        description="Chat with a coding agent backed by a stub, hosted API or CLI generator",
    )
    parser.add_argument(
        "--server", action="store_true",
        help="Start HTTP+SSE server mode (for the editor extension)",
    )
    parser.add_argument(
        "--port", type=int, default=0,
        help="Server port (0=random available port)",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file (default: auto-discover in the working directory)",
    )
    parser.add_argument(
        "--provider", choices=("stub", "hosted", "cli"),
        help="Override the configured provider",
    )
    parser.add_argument(
        "--model", default=None,
        help="Override the configured model",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Debug-level logging",
    )
    args = parser.parse_args()

    if args.config and not Path(args.config).is_file():
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        sys.exit(2)

    if args.server:
        from gemini_agent.vscode.server import AgentServer

        log_file = _configure_logging("gemini-agent-server.log", args.verbose, to_stderr=True)
        logging.getLogger(__name__).info(
            "Starting server mode cwd=%s port=%s config=%s log=%s",
            Path.cwd(), args.port, args.config or "<auto>", log_file,
        )
        server = AgentServer(
            port=args.port,
            cwd=str(Path.cwd()),
            config_path=args.config,
            config_overrides=_overrides_from_args(args),
        )
        try:
            asyncio.run(server.start())
        except KeyboardInterrupt:
            pass
        return

    log_file = _configure_logging("gemini-agent.log", args.verbose, to_stderr=False)
    logging.getLogger(__name__).info(
        "Starting chat mode cwd=%s config=%s log=%s",
        Path.cwd(), args.config or "<auto>", log_file,
    )
    try:
        asyncio.run(_run_chat(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
