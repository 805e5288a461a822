"""
Base text provider interface for Language Suggestion.

All providers inherit from TextProvider. transform() holds the shared
request flow; subclasses only describe how to shape the request and where
the model's reply sits in the response body.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple, Union

import requests

from ..models import AIResponse, InvalidResponseError, parse_ai_response
from ..utils import log
from .actions import get_action

# Shared constants
ERROR_TRUNCATE_LENGTH = 80
DEFAULT_CONNECT_TIMEOUT = 10

# User-facing error messages
ERROR_MISSING_API_KEY = "API key is missing. Please configure it in Settings."
ERROR_INVALID_RESPONSE = "Invalid response from API."
ERROR_INVALID_JSON = "Failed to parse JSON response from AI."
ERROR_TIMEOUT = "Request timed out"
ERROR_NO_TEXT = "No text to process"


class TextProvider(ABC):
    """
    Abstract base class for LLM text providers.

    transform() returns (AIResponse, None) on success and (None, message)
    on failure; it does not raise for network or API errors.
    """

    def __init__(self):
        self._session = requests.Session()

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the provider."""
        pass

    @abstractmethod
    def _settings(self) -> Any:
        """Config section with url, api_key, model and timeout."""
        pass

    @abstractmethod
    def _build_request(self, settings: Any, action_id: str, text: str, language: Optional[str],
                       custom_prompt: Optional[str]) -> Tuple[str, dict, dict, Optional[dict]]:
        """Return (url, headers, json_payload, query_params)."""
        pass

    @abstractmethod
    def _extract_content(self, data: dict) -> Optional[str]:
        """Pull the model's text reply out of a decoded response body."""
        pass

    def close(self) -> None:
        """Clean up resources."""
        try:
            self._session.close()
        except Exception:
            pass

    def configured(self) -> bool:
        """True if an API key is set."""
        return bool(str(self._settings().api_key).strip())

    def transform(self, text: str, action_id: str, language: Optional[str] = None,
                  custom_prompt: Optional[str] = None) -> Tuple[Optional[AIResponse], Optional[str]]:
        """
        Run an action on text.

        Args:
            text: Text captured from the target app.
            action_id: Key of ACTION_REGISTRY ("fix_grammar", "translate", "custom").
            language: Target language for "translate".
            custom_prompt: Instruction for "custom".

        Returns:
            Tuple of (response, error_message). Exactly one is None.
        """
        action = get_action(action_id)
        if not action:
            log(f"Unknown action requested: {action_id}", "ERR")
            return None, f"Unknown action: {action_id}"

        if not text or not text.strip():
            return None, ERROR_NO_TEXT

        settings = self._settings()
        if not str(settings.api_key).strip():
            log(f"{self.name}: API key missing", "WARN")
            return None, ERROR_MISSING_API_KEY

        try:
            url, headers, payload, params = self._build_request(settings, action_id, text, language, custom_prompt)
        except ValueError as e:
            log(f"Failed to build request for {action_id}: {e}", "ERR")
            return None, f"Prompt error: {e}"

        log(f"{self.name} {action.name}: {len(text)} chars", "AI")

        try:
            r = self._session.post(
                url,
                json=payload,
                headers=headers,
                params=params,
                timeout=self._get_timeout(settings.timeout),
            )
            if r.status_code >= 400:
                message = self._api_error_message(r)
                if message:
                    log(f"{self.name} API error {r.status_code}: {message}", "ERR")
                    return None, message
            r.raise_for_status()

            try:
                data = r.json()
            except ValueError as e:
                log(f"Invalid JSON body from {self.name}: {e}", "ERR")
                return None, ERROR_INVALID_RESPONSE

            content = self._extract_content(data) if isinstance(data, dict) else None
            if not content:
                log(f"{self.name} returned no content", "WARN")
                return None, ERROR_INVALID_RESPONSE

            try:
                response = parse_ai_response(content, original_text=text, action=action.name)
            except InvalidResponseError as e:
                log(f"{self.name} reply was not the expected JSON: {e}", "ERR")
                return None, ERROR_INVALID_JSON

            log(f"{self.name} {action.name} complete: {len(response.changes)} changes", "OK")
            return response, None

        except requests.exceptions.ConnectionError as e:
            log(f"{self.name} connection error: {e}", "ERR")
            return None, f"{self.name} not reachable"
        except requests.exceptions.Timeout:
            log(f"{self.name} timeout for {action_id}", "ERR")
            return None, ERROR_TIMEOUT
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            log(f"{self.name} HTTP error {status}", "ERR")
            return None, f"HTTP error {status}"
        except requests.exceptions.RequestException as e:
            log(f"Unexpected {self.name} error: {type(e).__name__}: {e}", "ERR")
            return None, self._truncate_error(e)

    # ─────────────────────────────────────────────────────────────────
    # Shared utilities
    # ─────────────────────────────────────────────────────────────────

    def _get_timeout(self, timeout_config: int) -> Union[int, Tuple[int, None]]:
        """
        Get timeout value for requests.

        Args:
            timeout_config: Timeout from config (0 = unlimited read)

        Returns:
            Timeout value: int if configured, or (connect_timeout, None) for unlimited read
        """
        if timeout_config > 0:
            return timeout_config
        return (DEFAULT_CONNECT_TIMEOUT, None)  # (connect, read=unlimited)

    def _truncate_error(self, error) -> str:
        """Truncate error message to consistent length."""
        return str(error)[:ERROR_TRUNCATE_LENGTH]

    def _api_error_message(self, response) -> Optional[str]:
        """error.message from an error body, if the API sent one."""
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        return None
