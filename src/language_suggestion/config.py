# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Configuration management for Language Suggestion.

Loads settings from ~/.language-suggestion/config.toml with sensible defaults.
"""

import fcntl
import os
import re
import sys
import threading
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Optional
from urllib.parse import urlparse

CONFIG_DIR = Path.home() / ".language-suggestion"
CONFIG_FILE = CONFIG_DIR / "config.toml"

# Available text providers
PROVIDERS = ("openai", "openrouter", "gemini")
ProviderType = Literal["openai", "openrouter", "gemini"]

# Actions that can run when the overlay or hotkey is used without a menu choice
DEFAULT_ACTIONS = ("fix_grammar", "translate")

TEAMS_BUNDLE_IDS = ["com.microsoft.teams2", "com.microsoft.teams"]
TEAMS_KEYWORDS = [
    "type a message",
    "compose",
    "message-editor",
    "ck-editor",
    "ckeditor",
    "message",
    "type",
]
NOTES_BUNDLE_IDS = ["com.apple.Notes"]

# Default configuration
DEFAULT_CONFIG = """# Language Suggestion Configuration
# Edit this file to customize behavior

[provider]
# Text provider: "openai", "openrouter", or "gemini"
name = "openai"

[openai]
url = "https://api.openai.com/v1/chat/completions"
api_key = ""
model = "gpt-4o-mini"

# Request timeout in seconds (0 = no limit)
timeout = 30

[openrouter]
url = "https://openrouter.ai/api/v1/chat/completions"
api_key = ""
model = "openai/gpt-4o-mini"
timeout = 30

[gemini]
# Base URL; the model and ":generateContent" are appended
url = "https://generativelanguage.googleapis.com/v1beta/models"
api_key = ""
model = "gemini-1.5-flash"
timeout = 30

[action]
# Action used by the overlay click and the capture hotkey: "fix_grammar" or "translate"
default_action = "fix_grammar"

# Target language for translation
target_language = "English"

[scan]
# Maximum accessibility tree depth to walk
max_depth = 25

# Seconds between background checks of the frontmost app
poll_interval = 1.0

# Attempts made when a locate is forced (app switch, manual retry)
retry_attempts = 3

# Seconds between forced attempts
retry_delay = 0.5

# Seconds to wait after a supported app launches before scanning
launch_settle_delay = 1.0

# Triggers closer together than this are merged into one scan
debounce_window = 0.25

[overlay]
# Show the floating icon next to the compose box
enabled = true

# Icon edge length in points
icon_size = 24

# Gap between the icon and the compose box edge
padding = 6

# Icon opacity (0.0-1.0)
opacity = 0.95

[teams]
bundle_ids = ["com.microsoft.teams2", "com.microsoft.teams"]

# Substrings (case-insensitive) that identify the compose box
keywords = ["type a message", "compose", "message-editor", "ck-editor", "ckeditor", "message", "type"]

max_depth = 25

[notes]
bundle_ids = ["com.apple.Notes"]
keywords = []
max_depth = 25

# Fall back to the largest scroll area when no text area is found
scroll_fallback = true

[ui]
# Play sound effects
sounds_enabled = true

# Show macOS notifications on errors
notifications_enabled = true

# Suggestion popup size (updated when the popup is resized)
popup_width = 420
popup_height = 320

[hotkey]
# Global shortcut that captures the focused text and runs the default action
capture = "<ctrl>+<shift>+g"
"""


@dataclass
class ProviderConfig:
    """Active text provider."""
    name: ProviderType = "openai"


@dataclass
class OpenAIConfig:
    url: str = "https://api.openai.com/v1/chat/completions"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    timeout: int = 30


@dataclass
class OpenRouterConfig:
    url: str = "https://openrouter.ai/api/v1/chat/completions"
    api_key: str = ""
    model: str = "openai/gpt-4o-mini"
    timeout: int = 30


@dataclass
class GeminiConfig:
    url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    api_key: str = ""
    model: str = "gemini-1.5-flash"
    timeout: int = 30


@dataclass
class ActionConfig:
    default_action: str = "fix_grammar"
    target_language: str = "English"


@dataclass
class ScanConfig:
    """Accessibility scan and retry timing."""
    max_depth: int = 25
    poll_interval: float = 1.0
    retry_attempts: int = 3
    retry_delay: float = 0.5
    launch_settle_delay: float = 1.0
    debounce_window: float = 0.25


@dataclass
class OverlayConfig:
    enabled: bool = True
    icon_size: int = 24
    padding: int = 6
    opacity: float = 0.95


@dataclass
class TeamsConfig:
    bundle_ids: List[str] = field(default_factory=lambda: list(TEAMS_BUNDLE_IDS))
    keywords: List[str] = field(default_factory=lambda: list(TEAMS_KEYWORDS))
    max_depth: int = 25
    scroll_fallback: bool = False


@dataclass
class NotesConfig:
    bundle_ids: List[str] = field(default_factory=lambda: list(NOTES_BUNDLE_IDS))
    keywords: List[str] = field(default_factory=list)
    max_depth: int = 25
    scroll_fallback: bool = True


@dataclass
class UIConfig:
    sounds_enabled: bool = True
    notifications_enabled: bool = True
    popup_width: int = 420
    popup_height: int = 320


@dataclass
class HotkeyConfig:
    capture: str = "<ctrl>+<shift>+g"


@dataclass
class Config:
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    openrouter: OpenRouterConfig = field(default_factory=OpenRouterConfig)
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    action: ActionConfig = field(default_factory=ActionConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    teams: TeamsConfig = field(default_factory=TeamsConfig)
    notes: NotesConfig = field(default_factory=NotesConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    hotkey: HotkeyConfig = field(default_factory=HotkeyConfig)


def _section(data: dict, cls, current):
    """Build a section dataclass, taking each field from data or the current value."""
    values = data if isinstance(data, dict) else {}
    kwargs = {
        name: values.get(name, getattr(current, name))
        for name in current.__dataclass_fields__
    }
    return cls(**kwargs)


def load_config() -> Config:
    """Load configuration from file, creating default if missing."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    try:
        CONFIG_DIR.chmod(0o700)
    except OSError:
        pass

    # Create default config if it doesn't exist
    if not CONFIG_FILE.exists():
        CONFIG_FILE.write_text(DEFAULT_CONFIG, encoding='utf-8')

    data = {}
    try:
        with open(CONFIG_FILE, 'rb') as f:
            data = tomllib.load(f)
    except Exception as e:
        print(f"Config parse error: {e}", file=sys.stderr)

    config = Config()

    if 'provider' in data:
        config.provider = _section(data['provider'], ProviderConfig, config.provider)
    if 'openai' in data:
        config.openai = _section(data['openai'], OpenAIConfig, config.openai)
    if 'openrouter' in data:
        config.openrouter = _section(data['openrouter'], OpenRouterConfig, config.openrouter)
    if 'gemini' in data:
        config.gemini = _section(data['gemini'], GeminiConfig, config.gemini)
    if 'action' in data:
        config.action = _section(data['action'], ActionConfig, config.action)
    if 'scan' in data:
        config.scan = _section(data['scan'], ScanConfig, config.scan)
    if 'overlay' in data:
        config.overlay = _section(data['overlay'], OverlayConfig, config.overlay)
    if 'teams' in data:
        config.teams = _section(data['teams'], TeamsConfig, config.teams)
    if 'notes' in data:
        config.notes = _section(data['notes'], NotesConfig, config.notes)
    if 'ui' in data:
        config.ui = _section(data['ui'], UIConfig, config.ui)
    if 'hotkey' in data:
        config.hotkey = _section(data['hotkey'], HotkeyConfig, config.hotkey)

    _validate_config(config)

    return config


def _is_valid_url(url: str) -> bool:
    """Check if a string is a valid HTTP/HTTPS URL."""
    try:
        result = urlparse(url)
        return result.scheme in ("http", "https") and bool(result.netloc)
    except (ValueError, AttributeError):
        return False


def _clean_string_list(values, default: List[str]) -> List[str]:
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        return list(default)
    return [v for v in values if v.strip()]


def _validate_config(config: Config):
    """Validate and sanitize configuration values."""
    # Provider validation
    if config.provider.name not in PROVIDERS:
        print(f"Config warning: Invalid provider '{config.provider.name}', using 'openai'", file=sys.stderr)
        config.provider.name = "openai"

    # URL validation
    for name, section_cls in (("openai", OpenAIConfig), ("openrouter", OpenRouterConfig), ("gemini", GeminiConfig)):
        section = getattr(config, name)
        if not _is_valid_url(section.url):
            default_url = section_cls().url
            print(f"Config warning: Invalid {name} URL '{section.url}', using default", file=sys.stderr)
            section.url = default_url
        if not isinstance(section.timeout, int) or section.timeout < 0:
            print(f"Config warning: {name} timeout must be a non-negative integer, using 30", file=sys.stderr)
            section.timeout = 30

    # Action validation
    if config.action.default_action not in DEFAULT_ACTIONS:
        print(f"Config warning: Invalid default_action '{config.action.default_action}', using 'fix_grammar'", file=sys.stderr)
        config.action.default_action = "fix_grammar"

    if not str(config.action.target_language).strip():
        config.action.target_language = "English"

    # Scan validation
    scan = config.scan
    if not isinstance(scan.max_depth, int) or not 1 <= scan.max_depth <= 200:
        print("Config warning: max_depth must be between 1 and 200, using 25", file=sys.stderr)
        scan.max_depth = 25

    if not isinstance(scan.poll_interval, (int, float)) or scan.poll_interval <= 0:
        print("Config warning: poll_interval must be positive, using 1.0", file=sys.stderr)
        scan.poll_interval = 1.0

    if not isinstance(scan.retry_attempts, int) or scan.retry_attempts < 1:
        print("Config warning: retry_attempts must be at least 1, using 3", file=sys.stderr)
        scan.retry_attempts = 3
    elif scan.retry_attempts > 10:
        print("Config warning: retry_attempts clamped to 10", file=sys.stderr)
        scan.retry_attempts = 10

    if not isinstance(scan.retry_delay, (int, float)) or scan.retry_delay < 0:
        scan.retry_delay = 0.5
    if not isinstance(scan.launch_settle_delay, (int, float)) or scan.launch_settle_delay < 0:
        scan.launch_settle_delay = 0.0
    if not isinstance(scan.debounce_window, (int, float)) or scan.debounce_window < 0:
        scan.debounce_window = 0.0

    # Overlay validation
    if not isinstance(config.overlay.icon_size, int) or config.overlay.icon_size <= 0:
        print("Config warning: icon_size must be positive, using 24", file=sys.stderr)
        config.overlay.icon_size = 24

    if not isinstance(config.overlay.padding, int) or config.overlay.padding < 0:
        print("Config warning: padding cannot be negative, using 6", file=sys.stderr)
        config.overlay.padding = 6

    if not isinstance(config.overlay.opacity, (int, float)) or not 0.0 <= config.overlay.opacity <= 1.0:
        print("Config warning: overlay opacity must be between 0.0 and 1.0, using 0.95", file=sys.stderr)
        config.overlay.opacity = 0.95

    # Target app validation
    for name, defaults in (("teams", TeamsConfig()), ("notes", NotesConfig())):
        target = getattr(config, name)
        target.bundle_ids = _clean_string_list(target.bundle_ids, defaults.bundle_ids)
        if not target.bundle_ids:
            print(f"Config warning: [{name}] bundle_ids is empty, using defaults", file=sys.stderr)
            target.bundle_ids = list(defaults.bundle_ids)
        target.keywords = _clean_string_list(target.keywords, defaults.keywords)
        if not isinstance(target.max_depth, int) or not 1 <= target.max_depth <= 200:
            print(f"Config warning: [{name}] max_depth must be between 1 and 200, using {scan.max_depth}", file=sys.stderr)
            target.max_depth = scan.max_depth

    # UI validation
    if not isinstance(config.ui.popup_width, int):
        config.ui.popup_width = 420
    elif config.ui.popup_width < 200:
        config.ui.popup_width = 200
    if not isinstance(config.ui.popup_height, int):
        config.ui.popup_height = 320
    elif config.ui.popup_height < 120:
        config.ui.popup_height = 120


# Global config instance with thread-safe initialization
_config: Optional[Config] = None
_config_lock = threading.Lock()


def get_config() -> Config:
    """Get the global configuration instance (thread-safe)."""
    global _config
    if _config is None:
        with _config_lock:
            # Double-check locking pattern for thread safety
            if _config is None:
                _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() reloads from disk."""
    global _config
    with _config_lock:
        _config = None


# ---------------------------------------------------------------------------
# TOML section helpers (shared by config.py and cli.py)
# ---------------------------------------------------------------------------

_VALUE_PATTERNS = (
    r'"(?:[^"\\]|\\.)*"',           # quoted string
    r'\[[^\]]*\]',                  # single-line array
    r'(?:true|false)',              # boolean
    r'[-+]?[0-9]*\.?[0-9]+',        # integer or float
)


def _find_in_section(content: str, section: str, key: str) -> Optional[str]:
    """Find a key's raw value within a specific TOML section. Returns the value or None.

    Quoted strings are returned without their quotes; other values are returned as written.
    """
    in_section = False
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("[") and stripped.endswith("]") and "=" not in stripped:
            in_section = stripped == f"[{section}]"
            continue
        if in_section:
            m = re.match(rf'{re.escape(key)}\s*=\s*"([^"]*)"', stripped)
            if m:
                return m.group(1)
            for pattern in _VALUE_PATTERNS[1:]:
                m = re.match(rf'{re.escape(key)}\s*=\s*({pattern})', stripped)
                if m:
                    return m.group(1)
    return None


def _replace_in_section(content: str, section: str, key: str, new_value: str) -> str:
    """Replace a key's value within a specific TOML section.

    new_value must already be serialized to its TOML string representation
    (e.g. '"quoted"' for strings, 'true'/'false' for bools, '42' for ints).

    If the key doesn't exist in the section, it is appended under the header.
    """
    lines = content.splitlines(keepends=True)
    in_section = False
    section_header_idx = None
    for i, line in enumerate(lines):
        stripped = line.strip()
        if stripped.startswith("[") and stripped.endswith("]") and "=" not in stripped:
            in_section = stripped == f"[{section}]"
            if in_section:
                section_header_idx = i
            continue
        if in_section and not stripped.startswith("#"):
            for pattern in _VALUE_PATTERNS:
                new_line, count = re.subn(
                    rf'^(\s*{re.escape(key)}\s*=\s*){pattern}',
                    lambda m: m.group(1) + new_value,
                    line,
                    count=1,
                )
                if count:
                    lines[i] = new_line
                    return "".join(lines)

    # Key not found in section - append it after the section header
    if section_header_idx is not None:
        lines.insert(section_header_idx + 1, f"{key} = {new_value}\n")
        return "".join(lines)

    # Section not found at all - append a new section at the end of the file
    lines.append(f"\n[{section}]\n")
    lines.append(f"{key} = {new_value}\n")
    return "".join(lines)


def _serialize_toml_value(value) -> str:
    """Serialize a Python value to its TOML string representation."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_serialize_toml_value(v) for v in value) + "]"
    # String: escape backslashes and quotes, wrap in double quotes
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _write_fields(updates: List[tuple]) -> bool:
    """Persist (section, key, value) updates to the TOML file under an exclusive lock."""
    try:
        fd = os.open(str(CONFIG_FILE), os.O_RDWR | os.O_CREAT, 0o600)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            content = CONFIG_FILE.read_text(encoding='utf-8')
            for section, key, value in updates:
                content = _replace_in_section(content, section, key, _serialize_toml_value(value))
            CONFIG_FILE.write_text(content, encoding='utf-8')
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)
        return True
    except Exception as e:
        print(f"Config write failed: {e}", file=sys.stderr)
        return False


def update_config_field(section: str, key: str, value) -> bool:
    """Update a single config field in-memory AND persist to TOML.

    value may be a bool, int, float, str, or list of those. Serialization is
    handled automatically so callers pass Python-native values directly.
    """
    config = get_config()
    section_obj = getattr(config, section, None)
    if section_obj is not None and hasattr(section_obj, key):
        with _config_lock:
            setattr(section_obj, key, value)
    return _write_fields([(section, key, value)])


def update_config_provider(new_provider: str) -> bool:
    """Switch the active text provider in-memory AND persist to TOML."""
    if new_provider not in PROVIDERS:
        print(f"Config warning: Unknown provider '{new_provider}'", file=sys.stderr)
        return False
    config = get_config()
    with _config_lock:
        config.provider.name = new_provider
    return _write_fields([("provider", "name", new_provider)])
