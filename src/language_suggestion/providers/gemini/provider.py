# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Gemini provider implementation.

Calls models/<model>:generateContent with the API key as a query parameter.
"""

from typing import Optional

from ...config import get_config
from ..actions import build_gemini_payload
from ..base import TextProvider


class GeminiProvider(TextProvider):
    """Text provider using the Google Generative Language API."""

    @property
    def name(self) -> str:
        return "Gemini"

    def _settings(self):
        return get_config().gemini

    def _build_request(self, settings, action_id: str, text: str, language: Optional[str],
                       custom_prompt: Optional[str]):
        url = f"{settings.url.rstrip('/')}/{settings.model}:generateContent"
        headers = {"Content-Type": "application/json"}
        params = {"key": settings.api_key.strip()}
        payload = build_gemini_payload(action_id, text, language, custom_prompt)
        return url, headers, payload, params

    def _extract_content(self, data: dict) -> Optional[str]:
        candidates = data.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return None
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts or not isinstance(parts[0], dict):
            return None
        text = parts[0].get("text")
        return text.strip() if isinstance(text, str) else None
