"""Backend configuration loaded from environment variables.

All settings have sensible defaults. Override via GEMINI_AGENT_* env vars
or a YAML file (see yaml_config.py). A config instance is never mutated;
changing settings means building a new one and re-initializing.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


PROVIDERS = ("stub", "hosted", "cli")
CLI_BACKENDS = ("gemini", "openai")

# Optional async callback for orchestrator lifecycle observation.
# Signature: async def callback(event: dict[str, Any]) -> None
EventCallback = Callable[[dict[str, Any]], Awaitable[None]]


async def fire_event(
    callback: EventCallback | None,
    event: dict[str, Any],
) -> None:
    """Fire an event callback if set; errors are logged, never raised."""
    if callback is None:
        return
    try:
        await callback(event)
    except Exception:
        logger.debug("Event callback failed for %s", event.get("event"), exc_info=True)


def apply_log_level(level: str) -> None:
    """Set the root logger level from a config value; unknown names are ignored."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        logger.warning("Ignoring unknown log level %r", level)
        return
    logging.getLogger().setLevel(numeric)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


@dataclass(frozen=True)
class AgentConfig:
    """Backend configuration for one content generator instance."""

    # "stub", "hosted" (OpenAI-compatible chat API) or "cli" (subprocess)
    provider: str = "stub"
    model: str = "gemini-2.5-pro"

    # Credentials / endpoint. For the hosted provider these go to the SDK
    # client; for the cli provider in openai relay mode they become argv.
    api_key: str | None = field(default=None, repr=False)
    api_url: str | None = None
    organization: str | None = None

    # Hosted generation parameters
    max_tokens: int = 4096
    temperature: float = 0.7

    # Subprocess CLI settings. cli_command is shell-split, so
    # "node /opt/gemini-cli/dist/index.js" works as well as "gemini".
    cli_command: str = "gemini"
    cli_backend: str = "gemini"

    # Per-call timeouts. Set to 0 (or a negative value) to disable.
    cli_timeout_seconds: float = 300.0
    request_timeout_seconds: float = 120.0

    # Artificial latency of the stub generator
    stub_delay_seconds: float = 1.0

    log_level: str = "INFO"

    @property
    def requires_api_key(self) -> bool:
        if self.provider == "hosted":
            return True
        return self.provider == "cli" and self.cli_backend == "openai"

    @property
    def cli_timeout(self) -> float | None:
        return self.cli_timeout_seconds if self.cli_timeout_seconds > 0 else None

    @property
    def request_timeout(self) -> float | None:
        return self.request_timeout_seconds if self.request_timeout_seconds > 0 else None

    @classmethod
    def from_env(cls) -> AgentConfig:
        """Load configuration from GEMINI_AGENT_* environment variables.

        The API key falls back to the variable named by
        GEMINI_AGENT_API_KEY_ENV (default OPENAI_API_KEY).
        """
        agent_vars = sorted(
            k for k in os.environ if k.startswith("GEMINI_AGENT_")
        )
        if agent_vars:
            # Names only; values may hold credentials.
            logger.info(
                "AgentConfig.from_env: env overrides: %s", ", ".join(agent_vars),
            )
        else:
            logger.debug("AgentConfig.from_env: no GEMINI_AGENT_* env vars set, using defaults")

        key_env = os.getenv("GEMINI_AGENT_API_KEY_ENV", "OPENAI_API_KEY")
        api_key = os.getenv("GEMINI_AGENT_API_KEY") or os.getenv(key_env) or None

        config = cls(
            provider=os.getenv("GEMINI_AGENT_PROVIDER", cls.provider).strip().lower(),
            model=os.getenv("GEMINI_AGENT_MODEL", cls.model),
            api_key=api_key,
            api_url=os.getenv("GEMINI_AGENT_API_URL") or None,
            organization=os.getenv("GEMINI_AGENT_ORGANIZATION") or None,
            max_tokens=_env_int("GEMINI_AGENT_MAX_TOKENS", cls.max_tokens),
            temperature=_env_float("GEMINI_AGENT_TEMPERATURE", cls.temperature),
            cli_command=os.getenv("GEMINI_AGENT_CLI_COMMAND", cls.cli_command),
            cli_backend=os.getenv("GEMINI_AGENT_CLI_BACKEND", cls.cli_backend).strip().lower(),
            cli_timeout_seconds=_env_float(
                "GEMINI_AGENT_CLI_TIMEOUT", cls.cli_timeout_seconds,
            ),
            request_timeout_seconds=_env_float(
                "GEMINI_AGENT_REQUEST_TIMEOUT", cls.request_timeout_seconds,
            ),
            stub_delay_seconds=_env_float(
                "GEMINI_AGENT_STUB_DELAY", cls.stub_delay_seconds,
            ),
            log_level=os.getenv("GEMINI_AGENT_LOG_LEVEL", cls.log_level),
        )
        logger.info(
            "AgentConfig.from_env: provider=%s model=%s cli_backend=%s api_key=%s",
            config.provider, config.model, config.cli_backend,
            "set" if config.api_key else "unset",
        )
        return config
