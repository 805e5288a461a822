# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Unit tests for cli.py commands that work without macOS frameworks.
"""

from unittest.mock import MagicMock, patch

import pytest

from language_suggestion import cli
from language_suggestion.ax import Point
from language_suggestion.config import get_config
from language_suggestion.models import AIResponse, TextChange
from language_suggestion.placement import PlacementStore
from language_suggestion.prompt_library import PromptLibrary


def _run(monkeypatch, *argv):
    monkeypatch.setattr("sys.argv", ["lsg", *argv])
    cli.cli_main()


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestDispatch:
    def test_unknown_command_exits(self, monkeypatch, capsys):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "frobnicate")
        assert exc.value.code == 1
        assert "Unknown command: frobnicate" in capsys.readouterr().err

    def test_help(self, monkeypatch, capsys):
        _run(monkeypatch, "--help")
        out = capsys.readouterr().out
        assert "locate" in out
        assert "translate" in out

    def test_not_running_without_lock(self):
        assert cli._is_running() == (False, None)


# ---------------------------------------------------------------------------
# Text actions
# ---------------------------------------------------------------------------

class TestTextActions:
    def _fake_transformer(self, result):
        fake = MagicMock()
        fake.fix.return_value = result
        fake.translate.return_value = result
        return fake

    def test_fix_prints_suggestion(self, monkeypatch, capsys):
        fake = self._fake_transformer((AIResponse("I has", "I have", changes=[TextChange("has", "have")]), None))
        with patch("language_suggestion.transformer.Transformer", return_value=fake):
            _run(monkeypatch, "fix", "I", "has")
        captured = capsys.readouterr()
        assert captured.out.strip() == "I have"
        assert "has → have" in captured.err
        fake.fix.assert_called_once_with("I has")
        fake.close.assert_called_once()

    def test_translate_with_language(self, monkeypatch, capsys):
        fake = self._fake_transformer((AIResponse("Hola", "Hallo"), None))
        with patch("language_suggestion.transformer.Transformer", return_value=fake):
            _run(monkeypatch, "translate", "--to", "German", "Hola")
        fake.translate.assert_called_once_with("Hola", "German")
        assert capsys.readouterr().out.strip() == "Hallo"

    def test_provider_error_exits(self, monkeypatch, capsys):
        fake = self._fake_transformer((None, "API key is missing. Please configure it in Settings."))
        with patch("language_suggestion.transformer.Transformer", return_value=fake):
            with pytest.raises(SystemExit):
                _run(monkeypatch, "fix", "text")
        assert "API key is missing" in capsys.readouterr().err
        fake.close.assert_called_once()


# ---------------------------------------------------------------------------
# Prompts, placements, provider
# ---------------------------------------------------------------------------

class TestPrompts:
    def test_list_seeds_defaults(self, monkeypatch, capsys):
        _run(monkeypatch, "prompts")
        assert "Paragraph IT Style" in capsys.readouterr().out

    def test_add_and_delete(self, monkeypatch, capsys):
        _run(monkeypatch, "prompts", "add", "Shorten", "Make it shorter:", "h")
        prompt = PromptLibrary().get("shorten")
        assert prompt.key_equivalent == "h"
        _run(monkeypatch, "prompts", "delete", "Shorten")
        assert PromptLibrary().get("shorten") is None

    def test_delete_unknown_exits(self, monkeypatch):
        with pytest.raises(SystemExit):
            _run(monkeypatch, "prompts", "delete", "Nope")


class TestPlacement:
    def test_show_and_clear(self, monkeypatch, capsys):
        PlacementStore().save("teams", Point(370, 1000))
        _run(monkeypatch, "placement")
        assert "(370, 1000)" in capsys.readouterr().out
        _run(monkeypatch, "placement", "clear", "Teams")
        assert PlacementStore().load("teams") is None

    def test_show_empty(self, monkeypatch, capsys):
        _run(monkeypatch, "placement", "show")
        assert "No saved placements" in capsys.readouterr().out


class TestProvider:
    def test_switch_provider(self, monkeypatch, config_file):
        _run(monkeypatch, "provider", "Gemini")
        assert get_config().provider.name == "gemini"
        assert 'name = "gemini"' in config_file.read_text(encoding="utf-8")

    def test_unknown_provider_exits(self, monkeypatch):
        with pytest.raises(SystemExit):
            _run(monkeypatch, "provider", "skynet")
        assert get_config().provider.name == "openai"

    def test_list_marks_current(self, monkeypatch, capsys):
        _run(monkeypatch, "provider")
        out = capsys.readouterr().out
        assert "openrouter" in out
        assert "●" in out


class TestDoctor:
    def test_checks_declared_packages(self, monkeypatch, capsys):
        checked = []
        monkeypatch.setattr(cli, "__import__", lambda name: checked.append(name), raising=False)
        monkeypatch.setattr("language_suggestion.utils.check_accessibility_trusted", lambda: True)
        get_config().openai.api_key = "sk-test"
        _run(monkeypatch, "doctor")
        assert checked == ["requests", "pynput", "ApplicationServices", "AppKit"]
        out = capsys.readouterr().out
        assert "Python packages" in out
        assert "Quartz" not in out
