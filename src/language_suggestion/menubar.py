# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Menu bar status item.

Rebuilt whenever the custom prompts change so the list stays in sync with
the overlay menu.
"""

import subprocess
from typing import Callable, List

from .config import CONFIG_FILE, get_config
from .events import (
    CAPTURE_REQUESTED,
    CUSTOM_ACTION_REQUESTED,
    PROMPTS_CHANGED,
    QUIT_REQUESTED,
    RETRY_REQUESTED,
    EventBus,
)
from .models import ACTION_FIX_GRAMMAR, ACTION_TRANSLATE
from .overlay import _import_macos, add_menu_item, perform_on_main_thread
from .utils import log, open_accessibility_settings

STATUS_TITLE = "Aa"


class MenuBar:
    """NSStatusItem with the app's actions."""

    def __init__(self, bus: EventBus, prompts, toggle_overlay: Callable[[], None],
                 overlay_shown: Callable[[], bool]):
        self._bus = bus
        self._prompts = prompts
        self._toggle_overlay = toggle_overlay
        self._overlay_shown = overlay_shown
        self._status_item = None
        self._targets: List = []
        bus.subscribe(PROMPTS_CHANGED, lambda _payload: perform_on_main_thread(self.rebuild))

    def install(self):
        """Create the status item. Must run on the main thread."""
        _import_macos()
        import AppKit

        self._status_item = AppKit.NSStatusBar.systemStatusBar().statusItemWithLength_(
            AppKit.NSVariableStatusItemLength
        )
        self._status_item.button().setTitle_(STATUS_TITLE)
        self._status_item.button().setToolTip_("Language Suggestion")
        self.rebuild()

    def rebuild(self):
        if self._status_item is None:
            return
        import AppKit

        config = get_config()
        menu = AppKit.NSMenu.alloc().initWithTitle_("Language Suggestion")
        menu.setAutoenablesItems_(False)
        targets: List = []

        add_menu_item(
            menu, "Fix Grammar",
            lambda: self._bus.post(CAPTURE_REQUESTED, {"action": ACTION_FIX_GRAMMAR}),
            keep=targets,
        )
        add_menu_item(
            menu, f"Translate to {config.action.target_language}",
            lambda: self._bus.post(CAPTURE_REQUESTED, {"action": ACTION_TRANSLATE}),
            keep=targets,
        )

        prompts = self._prompts.all()
        if prompts:
            menu.addItem_(AppKit.NSMenuItem.separatorItem())
            for prompt in prompts:
                add_menu_item(
                    menu, prompt.name,
                    lambda pid=prompt.id: self._bus.post(CUSTOM_ACTION_REQUESTED, {"prompt_id": pid}),
                    key=prompt.key_equivalent,
                    keep=targets,
                )

        menu.addItem_(AppKit.NSMenuItem.separatorItem())
        overlay_title = "Hide Overlay" if self._overlay_shown() else "Show Overlay"
        add_menu_item(menu, overlay_title, self._on_toggle_overlay, keep=targets)
        add_menu_item(menu, "Retry Locate", lambda: self._bus.post(RETRY_REQUESTED), keep=targets)

        menu.addItem_(AppKit.NSMenuItem.separatorItem())
        add_menu_item(menu, "Accessibility Settings…", open_accessibility_settings, keep=targets)
        add_menu_item(menu, "Open Config…", _open_config, keep=targets)
        menu.addItem_(AppKit.NSMenuItem.separatorItem())
        add_menu_item(menu, "Quit", lambda: self._bus.post(QUIT_REQUESTED), key="q", keep=targets)

        self._status_item.setMenu_(menu)
        self._targets = targets

    def _on_toggle_overlay(self):
        self._toggle_overlay()
        perform_on_main_thread(self.rebuild)

    def remove(self):
        if self._status_item is None:
            return
        import AppKit

        AppKit.NSStatusBar.systemStatusBar().removeStatusItem_(self._status_item)
        self._status_item = None


def _open_config():
    try:
        subprocess.run(["open", "-t", str(CONFIG_FILE)], check=False, timeout=5)
    except (OSError, subprocess.SubprocessError) as e:
        log(f"Could not open config: {e}", "WARN")
