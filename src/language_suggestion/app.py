# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Language Suggestion - grammar and translation help for Teams and Notes

Menu bar service. A small icon follows the compose box of the frontmost
supported app; clicking it (or the capture hotkey) sends the text being
written to the configured LLM and shows the suggestion in a popup.

Architecture:
    NSWorkspace notifications + poll timer -> ComposeTracker
        -> TreeScanner -> locate() -> OverlayPositioner -> FloatingIcon
    Overlay / menu bar / hotkey -> EventBus -> Transformer -> SuggestionPopup

Supported providers:
    - openai: OpenAI chat completions
    - openrouter: OpenRouter (OpenAI-compatible)
    - gemini: Google Gemini
"""

import atexit
import fcntl
import os
import signal
import sys
import threading
import warnings
from typing import Optional

from pynput import keyboard

from .ax import MacAccessibilityHost, PermissionDeniedError
from .config import CONFIG_DIR, CONFIG_FILE, get_config
from .events import (
    CAPTURE_REQUESTED,
    CLOSE_REQUESTED,
    CUSTOM_ACTION_REQUESTED,
    PROMPTS_CHANGED,
    QUIT_REQUESTED,
    RETRY_REQUESTED,
    EventBus,
)
from .menubar import MenuBar
from .models import ACTION_FIX_GRAMMAR, ACTION_TRANSLATE, CustomPrompt
from .overlay import FloatingIcon, perform_on_main_thread
from .popup import SuggestionPopup
from .prompt_library import PromptLibrary
from .providers import get_provider_info
from .targets import get_targets
from .tracker import ComposeTracker
from .transformer import Transformer
from .utils import (
    C_BOLD,
    C_CYAN,
    C_DIM,
    C_GREEN,
    C_RESET,
    C_YELLOW,
    PREVIEW_TRUNCATE,
    check_accessibility_trusted,
    hide_dock_icon,
    log,
    play_sound,
    request_accessibility_permission,
    send_notification,
    truncate,
)

warnings.filterwarnings("ignore", message="urllib3 v2 only supports OpenSSL")

ACTION_LABELS = {
    ACTION_FIX_GRAMMAR: "Fixing grammar",
    ACTION_TRANSLATE: "Translating",
}

_WorkspaceObserver = None


def _observer_class():
    """NSObject subclass receiving NSWorkspace app notifications."""
    global _WorkspaceObserver
    if _WorkspaceObserver is None:
        import AppKit
        import Foundation

        def _bundle_id(notification) -> Optional[str]:
            info = notification.userInfo() or {}
            running = info.get(AppKit.NSWorkspaceApplicationKey)
            return running.bundleIdentifier() if running is not None else None

        class _Observer(Foundation.NSObject):
            def appActivated_(self, notification):
                self._tracker.on_app_activated(_bundle_id(notification))

            def appLaunched_(self, notification):
                self._tracker.on_app_launched(_bundle_id(notification))

            def appTerminated_(self, notification):
                self._tracker.on_app_terminated(_bundle_id(notification))

        _WorkspaceObserver = _Observer
    return _WorkspaceObserver


class App:
    """Menu bar service: tracker, overlay, popup and provider wired together."""

    def __init__(self):
        self.config = get_config()
        self.bus = EventBus()
        self.prompts = PromptLibrary(on_change=lambda: self.bus.post(PROMPTS_CHANGED))
        self.host = MacAccessibilityHost()
        self.icon = FloatingIcon(self.bus, self.prompts)
        self.popup = SuggestionPopup()
        self.tracker = ComposeTracker(
            self.host,
            self.config,
            dispatch=perform_on_main_thread,
            on_update=self.icon.update,
            on_error=self._on_tracker_error,
        )
        self.menubar = MenuBar(
            self.bus, self.prompts,
            toggle_overlay=self._toggle_overlay,
            overlay_shown=lambda: not self.icon.dismissed,
        )

        self._transformer: Optional[Transformer] = None
        self._transformer_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._busy = False
        self._cleaned_up = False
        self._hotkey_listener = None
        self._observer = None

        self.bus.subscribe(CAPTURE_REQUESTED, self._on_capture_requested)
        self.bus.subscribe(CUSTOM_ACTION_REQUESTED, self._on_custom_action)
        self.bus.subscribe(CLOSE_REQUESTED, lambda _payload: self.icon.dismiss())
        self.bus.subscribe(RETRY_REQUESTED, lambda _payload: self.tracker.retry())
        self.bus.subscribe(QUIT_REQUESTED, lambda _payload: perform_on_main_thread(self.quit))

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def run(self):
        """Install UI, start tracking and block in the Cocoa event loop."""
        from AppKit import NSApplication
        from PyObjCTools import AppHelper

        NSApplication.sharedApplication()
        hide_dock_icon()
        self.menubar.install()
        self._register_workspace_observer()
        self._start_hotkey_listener()
        self.tracker.start()
        log("Ready", "OK")
        AppHelper.runEventLoop()

    def _register_workspace_observer(self):
        import AppKit

        self._observer = _observer_class().alloc().init()
        self._observer._tracker = self.tracker
        center = AppKit.NSWorkspace.sharedWorkspace().notificationCenter()
        for selector, name in (
            ("appActivated:", AppKit.NSWorkspaceDidActivateApplicationNotification),
            ("appLaunched:", AppKit.NSWorkspaceDidLaunchApplicationNotification),
            ("appTerminated:", AppKit.NSWorkspaceDidTerminateApplicationNotification),
        ):
            center.addObserver_selector_name_object_(self._observer, selector, name, None)

    def _start_hotkey_listener(self):
        """Register the global capture hotkey."""
        combo = self.config.hotkey.capture
        try:
            self._hotkey_listener = keyboard.GlobalHotKeys({
                combo: lambda: self.bus.post(CAPTURE_REQUESTED, {"action": self.config.action.default_action}),
            })
            self._hotkey_listener.daemon = True
            self._hotkey_listener.start()
            log(f"Capture hotkey: {combo}", "OK")
        except ValueError as e:
            log(f"Invalid hotkey '{combo}': {e}", "WARN")
        except Exception as e:
            log(f"Keyboard error: {e}", "ERR")

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_tracker_error(self, message: str):
        send_notification("Language Suggestion", message)

    def _toggle_overlay(self):
        if self.icon.dismissed:
            self.icon.restore()
            self.tracker.retry()
        else:
            self.icon.dismiss()

    def _on_capture_requested(self, payload: dict):
        action = payload.get("action") or self.config.action.default_action
        self._start_action(action, None)

    def _on_custom_action(self, payload: dict):
        prompt = self.prompts.get(payload.get("prompt_id", ""))
        if prompt is None:
            log(f"Unknown custom prompt: {payload.get('prompt_id')}", "WARN")
            return
        self._start_action(None, prompt)

    def _start_action(self, action: Optional[str], prompt: Optional[CustomPrompt]):
        with self._state_lock:
            if self._busy:
                log("Already processing, request ignored", "INFO")
                return
            self._busy = True
        threading.Thread(target=self._run_action, args=(action, prompt), daemon=True).start()

    def _run_action(self, action: Optional[str], prompt: Optional[CustomPrompt]):
        try:
            self._process(action, prompt)
        finally:
            with self._state_lock:
                self._busy = False

    def _process(self, action: Optional[str], prompt: Optional[CustomPrompt]):
        label = prompt.name if prompt is not None else ACTION_LABELS.get(action, action)
        try:
            text = self.tracker.capture_text()
        except PermissionDeniedError as e:
            self._show_error(str(e))
            return
        if not text:
            self._show_error("No text found in the compose box.")
            return

        log(f"{label}: {truncate(text, PREVIEW_TRUNCATE)}", "AI")
        play_sound("Tink")
        self.popup.show_loading(label)

        try:
            transformer = self._get_transformer()
        except ValueError as e:
            self._show_error(str(e))
            return

        if prompt is not None:
            response, error = transformer.apply_prompt(text, prompt)
        elif action == ACTION_TRANSLATE:
            response, error = transformer.translate(text)
        else:
            response, error = transformer.fix(text)

        if error:
            self._show_error(error)
            return
        play_sound("Glass")
        log(f"Suggestion: {truncate(response.processed_text, PREVIEW_TRUNCATE)}", "OK")
        self.popup.show_result(response)

    def _get_transformer(self) -> Transformer:
        with self._transformer_lock:
            if self._transformer is None:
                self._transformer = Transformer()
            return self._transformer

    def _show_error(self, message: str):
        log(message, "ERR")
        play_sound("Basso")
        self.popup.show_error(message)

    # ------------------------------------------------------------------
    # Quit / cleanup
    # ------------------------------------------------------------------

    def quit(self):
        """Clean up and leave the event loop. Runs on the main thread."""
        from PyObjCTools import AppHelper

        self._cleanup()
        AppHelper.stopEventLoop()

    def _cleanup(self):
        """Clean up all resources before exit."""
        with self._state_lock:
            if self._cleaned_up:
                return
            self._cleaned_up = True
        log("Shutting down...", "INFO")

        self.tracker.stop()

        if self._hotkey_listener:
            try:
                self._hotkey_listener.stop()
                log("Hotkey listener stopped", "OK")
            except Exception as e:
                log(f"Error stopping hotkey listener: {e}", "WARN")

        if self._observer is not None:
            try:
                import AppKit
                AppKit.NSWorkspace.sharedWorkspace().notificationCenter().removeObserver_(self._observer)
            except Exception as e:
                log(f"Error removing workspace observer: {e}", "WARN")
            self._observer = None

        with self._transformer_lock:
            transformer = self._transformer
            self._transformer = None
        if transformer is not None:
            try:
                transformer.close()
            except Exception as e:
                log(f"Error closing provider: {e}", "WARN")

        self.menubar.remove()
        log("Goodbye!", "OK")


# ---------------------------------------------------------------------------
# Service logging
# ---------------------------------------------------------------------------

LOG_FILE = CONFIG_DIR / "service.log"
LOG_MAX_SIZE = 1_000_000  # ~1MB


def _setup_service_logging():
    """Redirect stdout/stderr to service log when not attached to a terminal."""
    if sys.stdout.isatty():
        return
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    if LOG_FILE.exists() and LOG_FILE.stat().st_size > LOG_MAX_SIZE:
        LOG_FILE.write_text("")
    log_fd = open(LOG_FILE, "a", buffering=1, encoding="utf-8")
    sys.stdout = log_fd
    sys.stderr = log_fd


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

LOCK_FILE = CONFIG_DIR / "service.lock"


def service_main():
    """Entry point for the service (launched via lsg start)."""
    _setup_service_logging()

    # Single-instance lock
    LOCK_FILE.parent.mkdir(parents=True, exist_ok=True)
    lock_fd = os.open(str(LOCK_FILE), os.O_CREAT | os.O_WRONLY, 0o600)
    lock_file = os.fdopen(lock_fd, "w")
    try:
        fcntl.flock(lock_file, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        print("Language Suggestion is already running.", file=sys.stderr)
        sys.exit(0)
    lock_file.truncate(0)
    lock_file.write(str(os.getpid()))
    lock_file.flush()
    atexit.register(lambda: (fcntl.flock(lock_file, fcntl.LOCK_UN), lock_file.close()))

    config = get_config()

    if not check_accessibility_trusted():
        request_accessibility_permission()
        log("Accessibility permission required - System Settings opened", "WARN")
        log("Grant access to this process, then run: lsg restart", "WARN")

    provider_info = get_provider_info(config.provider.name)
    provider_name = provider_info.name if provider_info else config.provider.name
    targets = ", ".join(t.name for t in get_targets(config))

    print()
    print(f"  {C_BOLD}╭────────────────────────────────────────╮{C_RESET}")
    print(f"  {C_BOLD}│{C_RESET}  {C_CYAN}Language Suggestion{C_RESET} · Grammar + Tone  {C_BOLD}│{C_RESET}")
    print(f"  {C_BOLD}│{C_RESET}  {C_GREEN}Teams{C_RESET} · {C_GREEN}Notes{C_RESET} · menu bar           {C_BOLD}│{C_RESET}")
    print(f"  {C_BOLD}├────────────────────────────────────────┤{C_RESET}")
    print(f"  {C_BOLD}│{C_RESET}  Click the icon or press {C_YELLOW}{config.hotkey.capture:<14}{C_RESET}{C_BOLD}│{C_RESET}")
    print(f"  {C_BOLD}╰────────────────────────────────────────╯{C_RESET}")
    print()
    print(f"  {C_DIM}Provider:{C_RESET} {provider_name}")
    print(f"  {C_DIM}Targets:{C_RESET}  {targets}")
    print(f"  {C_DIM}Config:{C_RESET}   {CONFIG_FILE}")
    print()

    app = App()

    def handle_signal(*_):
        app.quit()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    app.run()
    app._cleanup()


if __name__ == "__main__":
    service_main()
