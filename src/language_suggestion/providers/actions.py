# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Text actions and their prompts.

Every action asks the model for one JSON object with the keys
originalText, processedText, action, language, changes and confidence.

To add a new action, add an entry to ACTION_REGISTRY.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models import ACTION_CUSTOM, ACTION_FIX_GRAMMAR, ACTION_TRANSLATE, DEFAULT_TARGET_LANGUAGE

TEMPERATURE = 0.3


@dataclass
class Action:
    """Definition of a text action."""
    id: str
    name: str                   # Also the "action" value the model echoes back
    system_prompt: str
    user_prompt_template: str   # Placeholders: {text}, {language}, {prompt}


# ============================================================================
# ACTION PROMPTS
# ============================================================================

TRANSLATE_SYSTEM_PROMPT = (
    "You are a professional translator. "
    "Always respond with valid JSON only, no markdown, no explanations."
)

GRAMMAR_SYSTEM_PROMPT = (
    "You are a professional grammar checker. "
    "Always respond with valid JSON only, no markdown, no explanations."
)

CUSTOM_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. "
    "Always respond with valid JSON only, no markdown, no explanations."
)

TRANSLATE_USER_TEMPLATE = """Translate the following text to {language}. Return the result as a JSON object with this exact structure:
{{
    "originalText": "original text here",
    "processedText": "translated text here",
    "action": "Translate",
    "language": "{language}",
    "changes": null,
    "confidence": 0.95
}}

Text to translate: {text}"""

GRAMMAR_USER_TEMPLATE = """Fix grammar and spelling errors in the following text. Return the result as a JSON object with this exact structure:
{{
    "originalText": "original text here",
    "processedText": "corrected text here",
    "action": "Fix Grammar",
    "language": null,
    "changes": [
        {{
            "original": "incorrect word",
            "corrected": "correct word",
            "reason": "grammar rule explanation"
        }}
    ],
    "confidence": 0.95
}}

Text to fix: {text}"""

CUSTOM_USER_TEMPLATE = """{prompt}

Return the result as a JSON object with this exact structure:
{{
    "originalText": "original text here",
    "processedText": "processed/transformed text here",
    "action": "Custom Prompt",
    "language": null,
    "changes": null,
    "confidence": 0.95
}}

Text to process: {text}"""


# ============================================================================
# ACTION REGISTRY
# ============================================================================

ACTION_REGISTRY: Dict[str, Action] = {
    ACTION_FIX_GRAMMAR: Action(
        id=ACTION_FIX_GRAMMAR,
        name="Fix Grammar",
        system_prompt=GRAMMAR_SYSTEM_PROMPT,
        user_prompt_template=GRAMMAR_USER_TEMPLATE,
    ),
    ACTION_TRANSLATE: Action(
        id=ACTION_TRANSLATE,
        name="Translate",
        system_prompt=TRANSLATE_SYSTEM_PROMPT,
        user_prompt_template=TRANSLATE_USER_TEMPLATE,
    ),
    ACTION_CUSTOM: Action(
        id=ACTION_CUSTOM,
        name="Custom Prompt",
        system_prompt=CUSTOM_SYSTEM_PROMPT,
        user_prompt_template=CUSTOM_USER_TEMPLATE,
    ),
}


def get_action(action_id: str) -> Optional[Action]:
    """Get an action by ID."""
    return ACTION_REGISTRY.get(action_id)


# ============================================================================
# PROMPT BUILDERS (per provider format)
# ============================================================================

class ActionNotFoundError(ValueError):
    """Raised when a requested action does not exist."""
    pass


def build_prompts(action_id: str, text: str, language: Optional[str] = None,
                  custom_prompt: Optional[str] = None) -> tuple:
    """
    Build (system_prompt, user_prompt) for an action.

    Raises:
        ActionNotFoundError: If action_id is not in ACTION_REGISTRY
        ValueError: If text is empty, or a custom action has no prompt
    """
    if not text:
        raise ValueError("Text cannot be empty")

    action = ACTION_REGISTRY.get(action_id)
    if not action:
        raise ActionNotFoundError(f"Unknown action: {action_id}")

    if action_id == ACTION_CUSTOM and not (custom_prompt and custom_prompt.strip()):
        raise ValueError("Custom action requires a prompt")

    user_prompt = action.user_prompt_template.format(
        text=text,
        language=language or DEFAULT_TARGET_LANGUAGE,
        prompt=(custom_prompt or "").strip(),
    )
    return action.system_prompt, user_prompt


def build_chat_messages(action_id: str, text: str, language: Optional[str] = None,
                        custom_prompt: Optional[str] = None) -> List[dict]:
    """
    Build OpenAI chat-format messages for an action.

    Raises:
        ActionNotFoundError: If action_id is not in ACTION_REGISTRY
        ValueError: If text is empty or None
    """
    system_prompt, user_prompt = build_prompts(action_id, text, language, custom_prompt)
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def build_gemini_payload(action_id: str, text: str, language: Optional[str] = None,
                         custom_prompt: Optional[str] = None) -> dict:
    """
    Build a Gemini generateContent request body for an action.

    Raises:
        ActionNotFoundError: If action_id is not in ACTION_REGISTRY
        ValueError: If text is empty or None
    """
    system_prompt, user_prompt = build_prompts(action_id, text, language, custom_prompt)
    return {
        "contents": [{"parts": [{"text": user_prompt}]}],
        "systemInstruction": {"parts": [{"text": system_prompt}]},
        "generationConfig": {
            "temperature": TEMPERATURE,
            "responseMimeType": "application/json",
        },
    }
