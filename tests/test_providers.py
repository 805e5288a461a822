# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Unit tests for the text providers.

The requests session is replaced with a MagicMock; no network access.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from language_suggestion.config import get_config
from language_suggestion.providers import PROVIDER_REGISTRY, create_provider, get_provider_info
from language_suggestion.providers.actions import (
    ActionNotFoundError,
    build_chat_messages,
    build_gemini_payload,
    build_prompts,
)
from language_suggestion.providers.base import (
    ERROR_INVALID_JSON,
    ERROR_INVALID_RESPONSE,
    ERROR_MISSING_API_KEY,
    ERROR_NO_TEXT,
    ERROR_TIMEOUT,
)
from language_suggestion.providers.gemini import GeminiProvider
from language_suggestion.providers.openai import OpenAIProvider
from language_suggestion.providers.openrouter import OpenRouterProvider

GRAMMAR_REPLY = json.dumps({
    "originalText": "I has a apple",
    "processedText": "I have an apple",
    "action": "Fix Grammar",
    "language": None,
    "changes": [
        {"original": "has", "corrected": "have", "reason": "subject-verb agreement"},
        {"original": "a", "corrected": "an", "reason": "article before vowel"},
    ],
    "confidence": 0.9,
})


def _response(status=200, body=None, json_error=False):
    r = MagicMock()
    r.status_code = status
    if json_error:
        r.json.side_effect = ValueError("no json")
    else:
        r.json.return_value = body if body is not None else {}
    if status >= 400:
        r.raise_for_status.side_effect = requests.exceptions.HTTPError(response=r)
    return r


def _chat_body(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _gemini_body(content):
    return {"candidates": [{"content": {"parts": [{"text": content}]}}]}


def _provider(cls, response=None, side_effect=None):
    provider = cls()
    provider._session = MagicMock()
    if side_effect is not None:
        provider._session.post.side_effect = side_effect
    else:
        provider._session.post.return_value = response
    return provider


@pytest.fixture
def keys():
    config = get_config()
    config.openai.api_key = "sk-openai"
    config.openrouter.api_key = "sk-or"
    config.gemini.api_key = "g-key"
    return config


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestProviderRegistry:
    def test_all_providers_registered(self):
        assert set(PROVIDER_REGISTRY) == {"openai", "openrouter", "gemini"}

    def test_provider_id_matches_key(self):
        for key, info in PROVIDER_REGISTRY.items():
            assert info.id == key
            assert info.name
            assert info.description

    def test_create_provider(self):
        assert isinstance(create_provider("openai"), OpenAIProvider)
        assert isinstance(create_provider("openrouter"), OpenRouterProvider)
        assert isinstance(create_provider("gemini"), GeminiProvider)

    def test_create_provider_raises_for_unknown(self):
        with pytest.raises(ValueError) as exc:
            create_provider("skynet")
        assert "openai" in str(exc.value)

    def test_get_provider_info(self):
        assert get_provider_info("gemini").name == "Gemini"
        assert get_provider_info("nope") is None


# ---------------------------------------------------------------------------
# Prompt building
# ---------------------------------------------------------------------------

class TestPrompts:
    def test_translate_uses_language(self):
        _, user = build_prompts("translate", "hola", language="German")
        assert "to German" in user
        assert user.endswith("Text to translate: hola")

    def test_translate_defaults_to_english(self):
        _, user = build_prompts("translate", "hola")
        assert "to English" in user

    def test_custom_prompt_inserted(self):
        _, user = build_prompts("custom", "text", custom_prompt="  Summarize this  ")
        assert user.startswith("Summarize this\n")

    def test_custom_without_prompt_raises(self):
        with pytest.raises(ValueError):
            build_prompts("custom", "text", custom_prompt=" ")

    def test_unknown_action_raises(self):
        with pytest.raises(ActionNotFoundError):
            build_prompts("rewrite", "text")

    def test_empty_text_raises(self):
        with pytest.raises(ValueError):
            build_chat_messages("fix_grammar", "")

    def test_chat_messages_shape(self):
        messages = build_chat_messages("fix_grammar", "I has")
        assert [m["role"] for m in messages] == ["system", "user"]
        assert "JSON" in messages[0]["content"]

    def test_gemini_payload_shape(self):
        payload = build_gemini_payload("fix_grammar", "I has")
        assert payload["contents"][0]["parts"][0]["text"].endswith("Text to fix: I has")
        assert payload["generationConfig"]["responseMimeType"] == "application/json"
        assert "systemInstruction" in payload


# ---------------------------------------------------------------------------
# Request shape per provider
# ---------------------------------------------------------------------------

class TestOpenAI:
    def test_success(self, keys):
        provider = _provider(OpenAIProvider, _response(body=_chat_body(GRAMMAR_REPLY)))
        response, error = provider.transform("I has a apple", "fix_grammar")
        assert error is None
        assert response.processed_text == "I have an apple"
        assert [c.corrected for c in response.changes] == ["have", "an"]

    def test_request_shape(self, keys):
        provider = _provider(OpenAIProvider, _response(body=_chat_body(GRAMMAR_REPLY)))
        provider.transform("I has a apple", "fix_grammar")
        args, kwargs = provider._session.post.call_args
        assert args[0] == "https://api.openai.com/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-openai"
        assert kwargs["json"]["model"] == "gpt-4o-mini"
        assert kwargs["json"]["response_format"] == {"type": "json_object"}
        assert kwargs["params"] is None
        assert kwargs["timeout"] == 30

    def test_zero_timeout_means_unlimited_read(self, keys):
        keys.openai.timeout = 0
        provider = _provider(OpenAIProvider, _response(body=_chat_body(GRAMMAR_REPLY)))
        provider.transform("text", "fix_grammar")
        assert provider._session.post.call_args.kwargs["timeout"] == (10, None)

    def test_fenced_reply_accepted(self, keys):
        fenced = f"```json\n{GRAMMAR_REPLY}\n```"
        provider = _provider(OpenAIProvider, _response(body=_chat_body(fenced)))
        response, error = provider.transform("I has a apple", "fix_grammar")
        assert error is None
        assert response.processed_text == "I have an apple"


class TestOpenRouter:
    def test_headers_and_no_response_format(self, keys):
        provider = _provider(OpenRouterProvider, _response(body=_chat_body(GRAMMAR_REPLY)))
        response, error = provider.transform("I has a apple", "fix_grammar")
        assert error is None
        kwargs = provider._session.post.call_args.kwargs
        assert provider._session.post.call_args.args[0] == "https://openrouter.ai/api/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-or"
        assert kwargs["headers"]["HTTP-Referer"] == "LanguageSuggestion/1.0"
        assert kwargs["headers"]["X-Title"] == "LanguageSuggestion"
        assert "response_format" not in kwargs["json"]
        assert kwargs["json"]["model"] == "openai/gpt-4o-mini"


class TestGemini:
    def test_success_and_request_shape(self, keys):
        reply = json.dumps({"processedText": "Hello", "language": "English", "changes": None})
        provider = _provider(GeminiProvider, _response(body=_gemini_body(reply)))
        response, error = provider.transform("Hola", "translate", language="English")
        assert error is None
        assert response.processed_text == "Hello"
        assert response.language == "English"
        assert response.original_text == "Hola"
        assert response.action == "Translate"
        args, kwargs = provider._session.post.call_args
        assert args[0] == "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"
        assert kwargs["params"] == {"key": "g-key"}
        assert "Authorization" not in kwargs["headers"]

    def test_missing_parts_is_invalid(self, keys):
        provider = _provider(GeminiProvider, _response(body={"candidates": [{"content": {}}]}))
        assert provider.transform("Hola", "translate") == (None, ERROR_INVALID_RESPONSE)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

class TestErrors:
    def test_unknown_action(self, keys):
        provider = _provider(OpenAIProvider)
        assert provider.transform("text", "rewrite") == (None, "Unknown action: rewrite")
        provider._session.post.assert_not_called()

    def test_empty_text(self, keys):
        provider = _provider(OpenAIProvider)
        assert provider.transform("   ", "fix_grammar") == (None, ERROR_NO_TEXT)

    def test_missing_api_key(self):
        provider = _provider(OpenAIProvider)
        assert provider.configured() is False
        assert provider.transform("text", "fix_grammar") == (None, ERROR_MISSING_API_KEY)
        provider._session.post.assert_not_called()

    def test_custom_without_prompt(self, keys):
        provider = _provider(OpenAIProvider)
        response, error = provider.transform("text", "custom")
        assert response is None
        assert error.startswith("Prompt error:")

    def test_api_error_message_passed_through(self, keys):
        body = {"error": {"message": "Incorrect API key provided", "type": "invalid_request_error"}}
        provider = _provider(OpenAIProvider, _response(status=401, body=body))
        assert provider.transform("text", "fix_grammar") == (None, "Incorrect API key provided")

    def test_http_error_without_message(self, keys):
        provider = _provider(OpenAIProvider, _response(status=503, json_error=True))
        assert provider.transform("text", "fix_grammar") == (None, "HTTP error 503")

    def test_no_content(self, keys):
        provider = _provider(OpenAIProvider, _response(body={"choices": []}))
        assert provider.transform("text", "fix_grammar") == (None, ERROR_INVALID_RESPONSE)

    def test_body_not_json(self, keys):
        provider = _provider(OpenAIProvider, _response(json_error=True))
        assert provider.transform("text", "fix_grammar") == (None, ERROR_INVALID_RESPONSE)

    def test_reply_not_json(self, keys):
        provider = _provider(OpenAIProvider, _response(body=_chat_body("Sure! Here you go.")))
        assert provider.transform("text", "fix_grammar") == (None, ERROR_INVALID_JSON)

    def test_reply_without_processed_text(self, keys):
        provider = _provider(OpenAIProvider, _response(body=_chat_body('{"originalText": "x"}')))
        assert provider.transform("text", "fix_grammar") == (None, ERROR_INVALID_JSON)

    def test_connection_error(self, keys):
        provider = _provider(OpenRouterProvider, side_effect=requests.exceptions.ConnectionError("refused"))
        assert provider.transform("text", "fix_grammar") == (None, "OpenRouter not reachable")

    def test_timeout(self, keys):
        provider = _provider(GeminiProvider, side_effect=requests.exceptions.Timeout())
        assert provider.transform("text", "fix_grammar") == (None, ERROR_TIMEOUT)

    def test_other_request_error_truncated(self, keys):
        provider = _provider(OpenAIProvider, side_effect=requests.exceptions.RequestException("x" * 200))
        response, error = provider.transform("text", "fix_grammar")
        assert response is None
        assert error == "x" * 80

    def test_close_closes_session(self, keys):
        provider = _provider(OpenAIProvider)
        session = provider._session
        provider.close()
        session.close.assert_called_once()
