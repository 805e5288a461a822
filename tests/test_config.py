# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Unit tests for config.py.

conftest.py points CONFIG_DIR/CONFIG_FILE at tmp_path, so nothing here
touches ~/.language-suggestion/.
"""

from language_suggestion import config as cfg_mod
from language_suggestion.config import (
    Config,
    _find_in_section,
    _replace_in_section,
    _serialize_toml_value,
    get_config,
    load_config,
    reset_config,
    update_config_field,
    update_config_provider,
)


# ---------------------------------------------------------------------------
# Basic loading
# ---------------------------------------------------------------------------

class TestLoadConfig:
    def test_missing_file_writes_defaults(self, config_file):
        config = load_config()
        assert config_file.exists()
        assert config.provider.name == "openai"

    def test_default_file_matches_dataclass_defaults(self, config_file):
        assert load_config() == Config()

    def test_valid_toml_loads_values(self, write_config):
        config = write_config("""
[provider]
name = "gemini"

[gemini]
api_key = "abc"
model = "gemini-2.0-flash"

[scan]
max_depth = 40
retry_delay = 0.1
""")
        assert config.provider.name == "gemini"
        assert config.gemini.api_key == "abc"
        assert config.gemini.model == "gemini-2.0-flash"
        assert config.scan.max_depth == 40
        assert config.scan.retry_delay == 0.1
        # Untouched fields keep their defaults
        assert config.scan.retry_attempts == 3
        assert config.gemini.url.startswith("https://generativelanguage")

    def test_invalid_toml_returns_defaults(self, write_config, capsys):
        config = write_config("[[[ not valid toml")
        assert config.provider.name == "openai"
        assert "Config parse error" in capsys.readouterr().err

    def test_empty_toml_returns_defaults(self, write_config):
        assert write_config("") == Config()

    def test_unknown_keys_ignored(self, write_config):
        config = write_config("[overlay]\nicon_size = 30\nsparkle = true\n")
        assert config.overlay.icon_size == 30
        assert not hasattr(config.overlay, "sparkle")

    def test_get_config_is_cached_until_reset(self, config_file):
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first


# ---------------------------------------------------------------------------
# Default values
# ---------------------------------------------------------------------------

class TestDefaultValues:
    def test_scan_defaults(self):
        scan = Config().scan
        assert scan.max_depth == 25
        assert scan.poll_interval == 1.0
        assert scan.retry_attempts == 3
        assert scan.retry_delay == 0.5
        assert scan.debounce_window == 0.25

    def test_overlay_defaults(self):
        overlay = Config().overlay
        assert overlay.icon_size == 24
        assert overlay.padding == 6
        assert 0.0 < overlay.opacity <= 1.0

    def test_teams_defaults(self):
        teams = Config().teams
        assert teams.bundle_ids == ["com.microsoft.teams2", "com.microsoft.teams"]
        assert "type a message" in teams.keywords
        assert teams.scroll_fallback is False

    def test_notes_defaults(self):
        notes = Config().notes
        assert notes.bundle_ids == ["com.apple.Notes"]
        assert notes.keywords == []
        assert notes.scroll_fallback is True

    def test_default_lists_are_not_shared(self):
        a, b = Config(), Config()
        a.teams.keywords.append("extra")
        assert "extra" not in b.teams.keywords

    def test_hotkey_default(self):
        assert Config().hotkey.capture == "<ctrl>+<shift>+g"


# ---------------------------------------------------------------------------
# Validation / sanitization
# ---------------------------------------------------------------------------

class TestValidation:
    def test_invalid_provider_falls_back(self, write_config):
        config = write_config('[provider]\nname = "skynet"\n')
        assert config.provider.name == "openai"

    def test_invalid_url_falls_back(self, write_config):
        config = write_config('[openrouter]\nurl = "not-a-url"\n')
        assert config.openrouter.url == "https://openrouter.ai/api/v1/chat/completions"

    def test_negative_timeout_falls_back(self, write_config):
        config = write_config("[openai]\ntimeout = -5\n")
        assert config.openai.timeout == 30

    def test_invalid_default_action_falls_back(self, write_config):
        config = write_config('[action]\ndefault_action = "rewrite"\n')
        assert config.action.default_action == "fix_grammar"

    def test_blank_target_language_falls_back(self, write_config):
        config = write_config('[action]\ntarget_language = "  "\n')
        assert config.action.target_language == "English"

    def test_max_depth_out_of_range(self, write_config):
        assert write_config("[scan]\nmax_depth = 0\n").scan.max_depth == 25
        assert write_config("[scan]\nmax_depth = 500\n").scan.max_depth == 25

    def test_retry_attempts_clamped(self, write_config):
        assert write_config("[scan]\nretry_attempts = 0\n").scan.retry_attempts == 3
        assert write_config("[scan]\nretry_attempts = 50\n").scan.retry_attempts == 10

    def test_negative_timings_fixed(self, write_config):
        config = write_config("[scan]\nretry_delay = -1.0\ndebounce_window = -0.5\npoll_interval = 0\n")
        assert config.scan.retry_delay == 0.5
        assert config.scan.debounce_window == 0.0
        assert config.scan.poll_interval == 1.0

    def test_wrong_types_fall_back(self, write_config):
        config = write_config(
            '[scan]\npoll_interval = "fast"\nretry_delay = "slow"\ndebounce_window = [1]\n\n'
            '[overlay]\nicon_size = "big"\npadding = 2.5\nopacity = "half"\n\n'
            '[ui]\npopup_width = "wide"\n'
        )
        assert config.scan.poll_interval == 1.0
        assert config.scan.retry_delay == 0.5
        assert config.scan.debounce_window == 0.0
        assert config.overlay.icon_size == 24
        assert config.overlay.padding == 6
        assert config.overlay.opacity == 0.95
        assert config.ui.popup_width == 420

    def test_overlay_values_fixed(self, write_config):
        config = write_config("[overlay]\nicon_size = 0\npadding = -3\nopacity = 5.0\n")
        assert config.overlay.icon_size == 24
        assert config.overlay.padding == 6
        assert config.overlay.opacity == 0.95

    def test_empty_bundle_ids_use_defaults(self, write_config):
        config = write_config("[teams]\nbundle_ids = []\n")
        assert config.teams.bundle_ids == ["com.microsoft.teams2", "com.microsoft.teams"]

    def test_blank_keywords_dropped(self, write_config):
        config = write_config('[teams]\nkeywords = ["compose", " ", ""]\n')
        assert config.teams.keywords == ["compose"]

    def test_non_string_keywords_use_defaults(self, write_config):
        config = write_config("[teams]\nkeywords = [1, 2]\n")
        assert config.teams.keywords == Config().teams.keywords

    def test_target_max_depth_takes_scan_depth(self, write_config):
        config = write_config("[scan]\nmax_depth = 30\n\n[notes]\nmax_depth = 0\n")
        assert config.notes.max_depth == 30

    def test_popup_size_minimums(self, write_config):
        config = write_config("[ui]\npopup_width = 10\npopup_height = 10\n")
        assert config.ui.popup_width == 200
        assert config.ui.popup_height == 120


# ---------------------------------------------------------------------------
# update_config_field round-trip
# ---------------------------------------------------------------------------

class TestUpdateConfigField:
    def test_update_string_field(self, config_file):
        get_config()
        assert update_config_field("action", "target_language", "German") is True
        assert 'target_language = "German"' in config_file.read_text(encoding="utf-8")
        assert get_config().action.target_language == "German"

    def test_update_bool_field(self, config_file):
        get_config()
        update_config_field("overlay", "enabled", False)
        written = config_file.read_text(encoding="utf-8")
        assert "enabled = false" in written
        assert get_config().overlay.enabled is False

    def test_update_int_field_in_right_section(self, config_file):
        get_config()
        update_config_field("notes", "max_depth", 12)
        reset_config()
        config = get_config()
        assert config.notes.max_depth == 12
        assert config.teams.max_depth == 25
        assert config.scan.max_depth == 25

    def test_update_list_field(self, config_file):
        get_config()
        update_config_field("teams", "keywords", ["compose", "reply"])
        reset_config()
        assert get_config().teams.keywords == ["compose", "reply"]

    def test_update_missing_key_appends(self, write_config, config_file):
        write_config("[ui]\nsounds_enabled = true\n")
        update_config_field("ui", "popup_width", 640)
        reset_config()
        assert get_config().ui.popup_width == 640
        assert get_config().ui.sounds_enabled is True

    def test_update_provider(self, config_file):
        get_config()
        assert update_config_provider("openrouter") is True
        assert get_config().provider.name == "openrouter"
        reset_config()
        assert get_config().provider.name == "openrouter"

    def test_update_unknown_provider_rejected(self, config_file):
        get_config()
        assert update_config_provider("skynet") is False
        assert get_config().provider.name == "openai"

    def test_write_failure_returns_false(self, config_file, monkeypatch, tmp_path):
        get_config()
        monkeypatch.setattr(cfg_mod, "CONFIG_FILE", tmp_path / "missing-dir" / "config.toml")
        assert update_config_field("ui", "sounds_enabled", False) is False


# ---------------------------------------------------------------------------
# Helper function unit tests
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_replace_in_section_replaces_string(self):
        content = '[openai]\nmodel = "old-model"\n'
        result = _replace_in_section(content, "openai", "model", '"new-model"')
        assert '"new-model"' in result
        assert '"old-model"' not in result

    def test_replace_in_section_replaces_bool(self):
        content = "[overlay]\nenabled = false\n"
        assert "enabled = true" in _replace_in_section(content, "overlay", "enabled", "true")

    def test_replace_in_section_only_touches_section(self):
        content = "[teams]\nmax_depth = 25\n\n[notes]\nmax_depth = 25\n"
        result = _replace_in_section(content, "notes", "max_depth", "9")
        assert result == "[teams]\nmax_depth = 25\n\n[notes]\nmax_depth = 9\n"

    def test_replace_in_section_skips_comments(self):
        content = "[scan]\n# max_depth = 1\nmax_depth = 25\n"
        result = _replace_in_section(content, "scan", "max_depth", "40")
        assert "# max_depth = 1" in result
        assert "\nmax_depth = 40\n" in result

    def test_replace_in_section_adds_missing_section(self):
        result = _replace_in_section("[ui]\n", "hotkey", "capture", '"<cmd>+g"')
        assert result.endswith('\n[hotkey]\ncapture = "<cmd>+g"\n')

    def test_find_in_section_finds_string(self):
        content = '[provider]\nname = "gemini"\n'
        assert _find_in_section(content, "provider", "name") == "gemini"

    def test_find_in_section_raw_values(self):
        content = "[scan]\nmax_depth = 25\nretry_delay = 0.5\n\n[overlay]\nenabled = true\n"
        assert _find_in_section(content, "scan", "max_depth") == "25"
        assert _find_in_section(content, "scan", "retry_delay") == "0.5"
        assert _find_in_section(content, "overlay", "enabled") == "true"

    def test_find_in_section_returns_none_for_missing_key(self):
        content = '[provider]\nname = "openai"\n'
        assert _find_in_section(content, "provider", "nonexistent") is None
        assert _find_in_section(content, "gemini", "name") is None

    def test_serialize_toml_value_bool(self):
        assert _serialize_toml_value(True) == "true"
        assert _serialize_toml_value(False) == "false"

    def test_serialize_toml_value_numbers(self):
        assert _serialize_toml_value(42) == "42"
        assert _serialize_toml_value(0.25) == "0.25"

    def test_serialize_toml_value_string(self):
        assert _serialize_toml_value("hello") == '"hello"'
        assert _serialize_toml_value('say "hi"\\') == '"say \\"hi\\"\\\\"'

    def test_serialize_toml_value_list(self):
        assert _serialize_toml_value(["a", 1, True]) == '["a", 1, true]'
