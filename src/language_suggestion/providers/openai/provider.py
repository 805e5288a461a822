# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
OpenAI provider implementation.

Sends chat completions with JSON-object response format.
"""

from typing import Optional

from ...config import get_config
from ..actions import TEMPERATURE, build_chat_messages
from ..base import TextProvider


class OpenAIProvider(TextProvider):
    """Text provider using the OpenAI chat completions API."""

    json_mode = True

    @property
    def name(self) -> str:
        return "OpenAI"

    def _settings(self):
        return get_config().openai

    def _headers(self, settings) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {settings.api_key.strip()}",
        }

    def _build_request(self, settings, action_id: str, text: str, language: Optional[str],
                       custom_prompt: Optional[str]):
        payload = {
            "model": settings.model,
            "messages": build_chat_messages(action_id, text, language, custom_prompt),
            "temperature": TEMPERATURE,
        }
        if self.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return settings.url, self._headers(settings), payload, None

    def _extract_content(self, data: dict) -> Optional[str]:
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        message = choices[0].get("message") or {}
        content = message.get("content")
        return content.strip() if isinstance(content, str) else None
