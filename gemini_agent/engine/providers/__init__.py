"""Content generator backends."""
from .base import ContentGenerator, GenerationResult, TokenUsage, ToolCallRequest
from .registry import GENERATOR_BUILDERS, build_content_generator, check_credentials
from .stub_provider import StubContentGenerator
from .hosted_provider import HostedContentGenerator
from .cli_provider import CliContentGenerator

__all__ = [
    "ContentGenerator",
    "GenerationResult",
    "TokenUsage",
    "ToolCallRequest",
    "GENERATOR_BUILDERS",
    "build_content_generator",
    "check_credentials",
    "StubContentGenerator",
    "HostedContentGenerator",
    "CliContentGenerator",
]
