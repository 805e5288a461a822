# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Data models shared by providers, the prompt library and the UI.
"""

import json
import re
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

ACTION_FIX_GRAMMAR = "fix_grammar"
ACTION_TRANSLATE = "translate"
ACTION_CUSTOM = "custom"

DEFAULT_TARGET_LANGUAGE = "English"


class InvalidResponseError(ValueError):
    """Raised when a model reply is not the expected JSON object."""
    pass


@dataclass
class TextChange:
    original: str
    corrected: str
    reason: str = ""


@dataclass
class AIResponse:
    """Parsed model reply."""
    original_text: str
    processed_text: str
    action: str = ""
    language: Optional[str] = None
    changes: List[TextChange] = field(default_factory=list)
    confidence: Optional[float] = None

    @property
    def has_changes(self) -> bool:
        return bool(self.changes) or self.processed_text.strip() != self.original_text.strip()


@dataclass
class CustomPrompt:
    """A user-defined instruction shown in the overlay and menu bar."""
    name: str
    prompt: str
    key_equivalent: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "prompt": self.prompt,
            "keyEquivalent": self.key_equivalent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CustomPrompt":
        name = data.get("name")
        prompt = data.get("prompt")
        if not isinstance(name, str) or not isinstance(prompt, str):
            raise ValueError("Custom prompt needs a name and a prompt")
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            name=name,
            prompt=prompt,
            key_equivalent=str(data.get("keyEquivalent", "") or ""),
        )


_FENCE_RE = re.compile(r'^```(?:json)?\s*\n?(.*?)\n?```\s*$', re.DOTALL | re.IGNORECASE)


def strip_code_fence(text: str) -> str:
    """Remove a Markdown ```json ... ``` wrapper if present."""
    text = text.strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text


def _optional_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_ai_response(content: str, original_text: str = "", action: str = "") -> AIResponse:
    """
    Parse the model's JSON reply.

    Expected keys: originalText, processedText, action, language, changes,
    confidence. Only processedText is required.

    Raises:
        InvalidResponseError: If content is not a JSON object with processedText.
    """
    if not content or not content.strip():
        raise InvalidResponseError("Empty response")
    try:
        data = json.loads(strip_code_fence(content))
    except ValueError as e:
        raise InvalidResponseError(f"Not JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidResponseError("Response is not a JSON object")

    processed = data.get("processedText")
    if not isinstance(processed, str):
        raise InvalidResponseError("Missing processedText")

    changes = []
    for item in data.get("changes") or []:
        if not isinstance(item, dict):
            continue
        changes.append(TextChange(
            original=str(item.get("original", "")),
            corrected=str(item.get("corrected", "")),
            reason=str(item.get("reason", "") or ""),
        ))

    language = data.get("language")
    return AIResponse(
        original_text=str(data.get("originalText") or original_text),
        processed_text=processed,
        action=str(data.get("action") or action),
        language=str(language) if language else None,
        changes=changes,
        confidence=_optional_float(data.get("confidence")),
    )
