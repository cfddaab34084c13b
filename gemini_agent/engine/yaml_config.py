"""YAML configuration loader.

Loads a single YAML file layered over the environment defaults from
AgentConfig.from_env(). When no file is found, env vars work exactly as
before.

Example YAML (.gemini-agent/agent.yaml):
    backend:
      provider: cli
      model: gpt-4o-mini
      cli_command: node /opt/gemini-cli/dist/index.js
      cli_backend: openai
      api_key_env: OPENAI_API_KEY
      api_url: https://api.openai.com/v1
      cli_timeout_seconds: 600

    logging:
      level: DEBUG
"""
from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from .config import CLI_BACKENDS, PROVIDERS, AgentConfig
from .errors import ConfigError

logger = logging.getLogger(__name__)


CONFIG_DIR_NAME = ".gemini-agent"
CONFIG_FILE_NAME = "agent.yaml"
LEGACY_CONFIG_FILE_NAME = "gemini-agent.yaml"

_FLOAT_FIELDS = {
    "temperature",
    "cli_timeout_seconds",
    "request_timeout_seconds",
    "stub_delay_seconds",
}
_INT_FIELDS = {"max_tokens"}


def discover_config_path(cwd: str | Path) -> Path | None:
    """Find .gemini-agent/agent.yaml (preferred) or gemini-agent.yaml."""
    cwd = Path(cwd)
    candidates = [
        cwd / CONFIG_DIR_NAME / CONFIG_FILE_NAME,
        cwd / LEGACY_CONFIG_FILE_NAME,
    ]
    for candidate in candidates:
        if candidate.is_file():
            logger.info("Auto-discovered config: %s", candidate)
            return candidate
    logger.debug(
        "No config file found (tried %s)",
        ", ".join(str(c) for c in candidates),
    )
    return None


def _coerce(name: str, value: Any, path: Path) -> Any:
    if value is None:
        return None
    try:
        if name in _FLOAT_FIELDS:
            return float(value)
        if name in _INT_FIELDS:
            return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(str(path), f"backend.{name}: {exc}") from exc
    return str(value)


def apply_backend_section(
    base: AgentConfig,
    section: dict[str, Any],
    path: Path,
) -> AgentConfig:
    """Return *base* with the keys of a ``backend:`` mapping applied."""
    known = {f.name for f in dataclasses.fields(AgentConfig)}
    overrides: dict[str, Any] = {}

    for key, value in section.items():
        if key == "api_key_env":
            env_value = os.getenv(str(value))
            if env_value:
                overrides.setdefault("api_key", env_value)
            else:
                logger.warning(
                    "load_yaml_config: api_key_env %s is not set", value,
                )
            continue
        if key not in known:
            logger.warning(
                "load_yaml_config: ignoring unknown backend key '%s' in %s",
                key, path,
            )
            continue
        overrides[key] = _coerce(key, value, path)

    for key in ("provider", "cli_backend"):
        if key in overrides and overrides[key] is not None:
            overrides[key] = overrides[key].strip().lower()

    provider = overrides.get("provider", base.provider)
    if provider not in PROVIDERS:
        raise ConfigError(
            str(path),
            f"backend.provider must be one of {', '.join(PROVIDERS)}, got '{provider}'",
        )
    cli_backend = overrides.get("cli_backend", base.cli_backend)
    if cli_backend not in CLI_BACKENDS:
        raise ConfigError(
            str(path),
            f"backend.cli_backend must be one of {', '.join(CLI_BACKENDS)}, got '{cli_backend}'",
        )

    return dataclasses.replace(base, **overrides)


def load_yaml_config(
    path: str | Path,
    base: AgentConfig | None = None,
) -> AgentConfig:
    """Load and parse a YAML config file over *base* (or env defaults)."""
    path = Path(path)
    logger.info(
        "load_yaml_config: loading config from %s (exists=%s)",
        path, path.exists(),
    )
    if base is None:
        base = AgentConfig.from_env()
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigError(str(path), "file not found") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(str(path), f"YAML parse error: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(str(path), "top level must be a mapping")

    config = base
    backend = data.get("backend") or {}
    if not isinstance(backend, dict):
        raise ConfigError(str(path), "'backend' must be a mapping")
    config = apply_backend_section(config, backend, path)

    log_section = data.get("logging") or {}
    if isinstance(log_section, dict) and log_section.get("level"):
        config = dataclasses.replace(
            config, log_level=str(log_section["level"]).upper(),
        )

    logger.info(
        "load_yaml_config: provider=%s model=%s from %s",
        config.provider, config.model, path,
    )
    return config


def load_agent_config(
    config_path: str | Path | None = None,
    cwd: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> AgentConfig:
    """Resolve the effective config: explicit path, discovered file, or env.

    *overrides* (from command-line flags) are applied last.
    """
    if config_path is None and cwd is not None:
        config_path = discover_config_path(cwd)
    if config_path is None:
        config = AgentConfig.from_env()
    else:
        config = load_yaml_config(config_path)
    if overrides:
        config = dataclasses.replace(config, **overrides)
    return config
