"""
AI Provider Adapters

Closed set of built-in providers. Adding one means writing a
``ProviderAdapter`` subclass and registering it in ``PROVIDERS``.
"""

from enum import Enum
from typing import Dict, Type

from .base import AIRequest, ImagePayload, ProviderAdapter, looks_transient
from .openai_adapter import OpenAIProvider
from .claude_adapter import ClaudeProvider
from .gemini_adapter import GeminiProvider
from ...common.config import AIConfig
from ...common.errors import ConfigurationError


class ProviderName(str, Enum):
    """Supported AI providers"""
    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, value: str) -> "ProviderName":
        try:
            return cls((value or "openai").strip().lower())
        except ValueError:
            raise ConfigurationError(f"Unsupported AI provider: {value}") from None


PROVIDERS: Dict[ProviderName, Type[ProviderAdapter]] = {
    ProviderName.OPENAI: OpenAIProvider,
    ProviderName.CLAUDE: ClaudeProvider,
    ProviderName.GEMINI: GeminiProvider,
}


def build_provider(config: AIConfig) -> ProviderAdapter:
    """Create the adapter for the configured provider.

    Raises:
        ConfigurationError: unknown provider or missing API key
    """
    name = ProviderName.parse(config.provider)
    adapter = PROVIDERS[name](config.settings_for(name.value))
    if not adapter.is_configured:
        raise ConfigurationError(f"{adapter.display_name} API key not set")
    return adapter


__all__ = [
    "AIRequest",
    "ImagePayload",
    "ProviderAdapter",
    "ProviderName",
    "PROVIDERS",
    "OpenAIProvider",
    "ClaudeProvider",
    "GeminiProvider",
    "build_provider",
    "looks_transient",
]
