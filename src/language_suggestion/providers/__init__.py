"""
LLM text providers for Language Suggestion.

To add a new provider:
1. Create a new folder under providers/ with __init__.py and provider.py
2. Add a config section and an entry to PROVIDER_REGISTRY below

Usage:
    from language_suggestion.providers import create_provider

    provider = create_provider("openai")
    response, error = provider.transform("some text", "fix_grammar")
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .base import TextProvider


@dataclass
class ProviderInfo:
    """Metadata for a text provider."""
    id: str                    # Config identifier (e.g., "openai")
    name: str                  # Display name (e.g., "OpenAI")
    description: str           # Short description for menu
    factory: Callable[[], TextProvider]  # Function to create instance


def _create_openai() -> TextProvider:
    from .openai import OpenAIProvider
    return OpenAIProvider()


def _create_openrouter() -> TextProvider:
    from .openrouter import OpenRouterProvider
    return OpenRouterProvider()


def _create_gemini() -> TextProvider:
    from .gemini import GeminiProvider
    return GeminiProvider()


# ============================================================================
# PROVIDER REGISTRY - Add new providers here
# ============================================================================
PROVIDER_REGISTRY: Dict[str, ProviderInfo] = {
    "openai": ProviderInfo(
        id="openai",
        name="OpenAI",
        description="gpt-4o-mini via api.openai.com",
        factory=_create_openai,
    ),
    "openrouter": ProviderInfo(
        id="openrouter",
        name="OpenRouter",
        description="Any routed model, OpenAI-compatible",
        factory=_create_openrouter,
    ),
    "gemini": ProviderInfo(
        id="gemini",
        name="Gemini",
        description="Google Generative Language API",
        factory=_create_gemini,
    ),
}


def create_provider(provider_id: str) -> TextProvider:
    """
    Factory function to create a text provider instance.

    Raises:
        ValueError: If provider_id is not recognized.
    """
    if provider_id not in PROVIDER_REGISTRY:
        available = ", ".join(PROVIDER_REGISTRY.keys())
        raise ValueError(f"Unknown provider: {provider_id}. Available: {available}")

    return PROVIDER_REGISTRY[provider_id].factory()


def get_provider_info(provider_id: str) -> Optional[ProviderInfo]:
    """Get metadata for a provider id."""
    return PROVIDER_REGISTRY.get(provider_id)


__all__ = ["TextProvider", "ProviderInfo", "PROVIDER_REGISTRY", "create_provider", "get_provider_info"]
