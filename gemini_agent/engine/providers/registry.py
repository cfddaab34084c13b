"""Generator factory — maps provider names to generator builders.

The provider is resolved once, when the orchestrator initializes; a
generator never re-checks which provider it is on a per-call basis.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..errors import InitializationFailed, MissingCredential
from .base import ContentGenerator

if TYPE_CHECKING:
    from ..config import AgentConfig

logger = logging.getLogger(__name__)

GeneratorFactory = Callable[["AgentConfig"], ContentGenerator]


def _build_stub(config: AgentConfig) -> ContentGenerator:
    from .stub_provider import StubContentGenerator

    return StubContentGenerator(delay_seconds=config.stub_delay_seconds)


def _build_hosted(config: AgentConfig) -> ContentGenerator:
    from .hosted_provider import HostedContentGenerator

    return HostedContentGenerator(
        api_key=config.api_key or "",
        model=config.model,
        base_url=config.api_url,
        organization=config.organization,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
        timeout=config.request_timeout,
    )


def _build_cli(config: AgentConfig) -> ContentGenerator:
    from .cli_provider import CliContentGenerator

    return CliContentGenerator(
        command=config.cli_command,
        model=config.model,
        backend=config.cli_backend,
        api_key=config.api_key,
        api_url=config.api_url,
        timeout=config.cli_timeout,
    )


GENERATOR_BUILDERS: dict[str, GeneratorFactory] = {
    "stub": _build_stub,
    "hosted": _build_hosted,
    "cli": _build_cli,
}


def check_credentials(config: AgentConfig) -> None:
    """Raise MissingCredential if the provider needs a key that is absent."""
    if config.requires_api_key and not config.api_key:
        provider = config.provider
        if provider == "cli":
            provider = f"cli ({config.cli_backend} relay)"
        raise MissingCredential(provider, "api_key")


def build_content_generator(config: AgentConfig) -> ContentGenerator:
    """Construct (but do not initialize) the generator for config.provider."""
    builder = GENERATOR_BUILDERS.get(config.provider)
    if builder is None:
        supported = ", ".join(GENERATOR_BUILDERS)
        raise InitializationFailed(
            f"Unsupported provider: '{config.provider}'. "
            f"Configure one of: {supported}"
        )
    check_credentials(config)
    generator = builder(config)
    logger.info(
        "Built %s content generator (model=%s)", generator.name, config.model,
    )
    return generator
