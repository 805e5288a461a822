# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
OpenRouter provider implementation.

OpenRouter speaks the OpenAI chat format; it needs attribution headers and
does not get response_format, since not every routed model supports it.
"""

from ...config import get_config
from ..openai import OpenAIProvider

APP_REFERER = "LanguageSuggestion/1.0"
APP_TITLE = "LanguageSuggestion"


class OpenRouterProvider(OpenAIProvider):
    """Text provider using OpenRouter's OpenAI-compatible endpoint."""

    json_mode = False

    @property
    def name(self) -> str:
        return "OpenRouter"

    def _settings(self):
        return get_config().openrouter

    def _headers(self, settings) -> dict:
        headers = super()._headers(settings)
        headers["HTTP-Referer"] = APP_REFERER
        headers["X-Title"] = APP_TITLE
        return headers
