"""
Utility functions for Language Suggestion.

Includes logging, sound playback, clipboard, notifications and
Accessibility permission helpers.
"""

import subprocess
from datetime import datetime

from .config import get_config

# Console colors
C_RESET = "\033[0m"
C_BOLD = "\033[1m"
C_DIM = "\033[2m"
C_RED = "\033[91m"
C_GREEN = "\033[92m"
C_YELLOW = "\033[93m"
C_BLUE = "\033[94m"
C_CYAN = "\033[96m"
C_MAGENTA = "\033[95m"

# Log level styles
LOG_STYLES = {
    "INFO": (C_DIM, "›"),
    "OK": (C_GREEN, "✓"),
    "WARN": (C_YELLOW, "⚠"),
    "ERR": (C_RED, "✗"),
    "AI": (C_MAGENTA, "✦"),
    "APP": (C_CYAN, "◆"),
    "AX": (C_BLUE, "⌖"),
}

# Timeout values (seconds)
CLIPBOARD_TIMEOUT = 5
NOTIFICATION_TIMEOUT = 5

# Display truncation
LOG_TRUNCATE = 60
PREVIEW_TRUNCATE = 70

ACCESSIBILITY_SETTINGS_URL = (
    "x-apple.systempreferences:com.apple.preference.security?Privacy_Accessibility"
)


def log(msg: str, level: str = "INFO"):
    """Print a timestamped, colored log message."""
    ts = datetime.now().strftime("%H:%M:%S")
    color, sym = LOG_STYLES.get(level, (C_DIM, "›"))
    print(f"  {C_DIM}{ts}{C_RESET}  {color}{sym}{C_RESET}  {msg}", flush=True)


def truncate(text: str, length: int = LOG_TRUNCATE) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) > length:
        return text[:length] + "..."
    return text


def play_sound(name: str):
    """Play a macOS system sound (Tink, Pop, Glass, Basso, etc.)."""
    config = get_config()
    if not config.ui.sounds_enabled:
        return
    try:
        subprocess.Popen(
            ['afplay', f'/System/Library/Sounds/{name}.aiff'],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True
        )
    except Exception:
        pass  # Silent failure


def copy_to_clipboard(text: str) -> bool:
    """Copy text to the macOS clipboard. Returns True on success."""
    try:
        subprocess.run(['pbcopy'], input=text.encode(), check=True, timeout=CLIPBOARD_TIMEOUT)
        return True
    except Exception as e:
        log(f"Copy failed: {e}", "ERR")
        return False


def _applescript_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def send_notification(title: str, body: str):
    """Show a macOS notification if notifications are enabled."""
    config = get_config()
    if not config.ui.notifications_enabled:
        return
    script = (
        f"display notification {_applescript_string(truncate(body, 200))} "
        f"with title {_applescript_string(title)}"
    )
    try:
        subprocess.Popen(
            ['osascript', '-e', script],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True
        )
    except Exception as e:
        log(f"Notification failed: {e}", "WARN")


def hide_dock_icon():
    """Hide the dock icon (menu bar app only)."""
    try:
        from AppKit import NSApp, NSApplicationActivationPolicyAccessory
        if NSApp:
            NSApp.setActivationPolicy_(NSApplicationActivationPolicyAccessory)
    except Exception:
        pass


def check_accessibility_trusted() -> bool:
    """Return True if this process has Accessibility permission."""
    try:
        from ApplicationServices import AXIsProcessTrusted
        return bool(AXIsProcessTrusted())
    except Exception:
        return False


_accessibility_prompt_shown = False


def request_accessibility_permission() -> bool:
    """
    Trigger the macOS Accessibility permission prompt.
    Opens System Settings → Accessibility with this process highlighted.
    Returns True if already trusted, False if prompt was shown.
    Only shows the prompt once per process lifetime.
    """
    global _accessibility_prompt_shown
    if _accessibility_prompt_shown:
        return False
    _accessibility_prompt_shown = True
    try:
        from ApplicationServices import AXIsProcessTrustedWithOptions
        from Foundation import NSDictionary
        opts = NSDictionary.dictionaryWithObject_forKey_(True, 'AXTrustedCheckOptionPrompt')
        return bool(AXIsProcessTrustedWithOptions(opts))
    except Exception:
        return False


def open_accessibility_settings():
    """Open System Settings at the Accessibility privacy pane."""
    try:
        subprocess.Popen(
            ['open', ACCESSIBILITY_SETTINGS_URL],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True
        )
    except Exception as e:
        log(f"Could not open Accessibility settings: {e}", "WARN")
