# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Text transformation module for Language Suggestion.

This module provides a unified interface to the LLM providers.
The provider is selected based on the [provider] configuration.

Supported providers:
- openai: OpenAI chat completions
- openrouter: OpenRouter (OpenAI-compatible)
- gemini: Google Gemini generateContent

Usage:
    from language_suggestion.transformer import Transformer

    transformer = Transformer()
    response, error = transformer.fix("some text")
    transformer.close()
"""

from typing import Optional, Tuple

from .config import get_config
from .models import ACTION_CUSTOM, ACTION_FIX_GRAMMAR, ACTION_TRANSLATE, AIResponse, CustomPrompt
from .providers import TextProvider, create_provider
from .utils import log

Result = Tuple[Optional[AIResponse], Optional[str]]


class Transformer:
    """
    Unified text transformation interface.

    Wraps the configured provider and provides a consistent API.
    """

    def __init__(self, provider_id: Optional[str] = None):
        config = get_config()
        provider_id = provider_id or config.provider.name
        try:
            self._provider: TextProvider = create_provider(provider_id)
            self._provider_id = provider_id
            log(f"Text provider: {self._provider.name}", "INFO")
        except ValueError as e:
            log(f"Failed to create provider '{provider_id}': {e}", "ERR")
            raise

    def close(self) -> None:
        """Clean up provider resources."""
        self._provider.close()

    def fix(self, text: str) -> Result:
        """Fix grammar and spelling."""
        return self._provider.transform(text, ACTION_FIX_GRAMMAR)

    def translate(self, text: str, language: Optional[str] = None) -> Result:
        """Translate to language, or to the configured target language."""
        language = language or get_config().action.target_language
        return self._provider.transform(text, ACTION_TRANSLATE, language=language)

    def apply_prompt(self, text: str, prompt: CustomPrompt) -> Result:
        """Run a user-defined custom prompt."""
        return self._provider.transform(text, ACTION_CUSTOM, custom_prompt=prompt.prompt)

    def run_default(self, text: str) -> Result:
        """Run the configured default action."""
        if get_config().action.default_action == ACTION_TRANSLATE:
            return self.translate(text)
        return self.fix(text)

    def configured(self) -> bool:
        return self._provider.configured()

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def name(self) -> str:
        """Get the name of the current provider."""
        return self._provider.name

    @property
    def provider(self) -> TextProvider:
        """Get the underlying provider."""
        return self._provider
