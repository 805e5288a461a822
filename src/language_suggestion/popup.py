# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Suggestion popup.

Shows the original text, the model's suggestion and the list of changes,
with Copy and Close buttons. Window size is remembered in [ui].
"""

from typing import List, Optional

from .config import get_config, update_config_field
from .models import AIResponse
from .overlay import _import_macos, make_action_target, perform_on_main_thread
from .utils import copy_to_clipboard, log

BUTTON_WIDTH = 90
BUTTON_HEIGHT = 28
MARGIN = 12
MIN_WIDTH = 280
MIN_HEIGHT = 180

_Delegate = None


def format_response(response: AIResponse) -> str:
    """Plain-text body for the popup."""
    lines = ["Original:", response.original_text.strip(), "", "Suggestion:", response.processed_text.strip()]
    if response.changes:
        lines += ["", "Changes:"]
        for change in response.changes:
            entry = f"• {change.original} → {change.corrected}"
            if change.reason:
                entry += f" ({change.reason})"
            lines.append(entry)
    elif not response.has_changes:
        lines += ["", "No changes needed."]
    if response.language:
        lines += ["", f"Language: {response.language}"]
    return "\n".join(lines)


def _delegate_class():
    global _Delegate
    if _Delegate is None:
        import Foundation

        class _PopupDelegate(Foundation.NSObject):
            def windowWillClose_(self, notification):
                owner = getattr(self, "_owner", None)
                if owner is not None:
                    owner._save_size()

        _Delegate = _PopupDelegate
    return _Delegate


class SuggestionPopup:
    """Result window. All public methods are safe to call from any thread."""

    def __init__(self):
        self._window = None
        self._text_view = None
        self._copy_button = None
        self._delegate = None
        self._targets: List = []
        self._suggestion: Optional[str] = None

    def _create_window(self):
        _import_macos()
        import AppKit
        import Foundation

        config = get_config()
        width = max(config.ui.popup_width, MIN_WIDTH)
        height = max(config.ui.popup_height, MIN_HEIGHT)

        style = (
            AppKit.NSWindowStyleMaskTitled
            | AppKit.NSWindowStyleMaskClosable
            | AppKit.NSWindowStyleMaskResizable
            | AppKit.NSWindowStyleMaskUtilityWindow
        )
        self._window = AppKit.NSPanel.alloc().initWithContentRect_styleMask_backing_defer_(
            Foundation.NSMakeRect(0, 0, width, height),
            style,
            AppKit.NSBackingStoreBuffered,
            False
        )
        self._window.setTitle_("Language Suggestion")
        self._window.setLevel_(AppKit.NSFloatingWindowLevel)
        self._window.setReleasedWhenClosed_(False)
        self._window.setHidesOnDeactivate_(False)
        self._window.setMinSize_(Foundation.NSMakeSize(MIN_WIDTH, MIN_HEIGHT))

        self._delegate = _delegate_class().alloc().init()
        self._delegate._owner = self
        self._window.setDelegate_(self._delegate)

        content = self._window.contentView()
        text_top = BUTTON_HEIGHT + MARGIN * 2
        scroll = AppKit.NSScrollView.alloc().initWithFrame_(
            Foundation.NSMakeRect(MARGIN, text_top, width - MARGIN * 2, height - text_top - MARGIN)
        )
        scroll.setHasVerticalScroller_(True)
        scroll.setAutoresizingMask_(AppKit.NSViewWidthSizable | AppKit.NSViewHeightSizable)
        self._text_view = AppKit.NSTextView.alloc().initWithFrame_(scroll.contentView().bounds())
        self._text_view.setEditable_(False)
        self._text_view.setFont_(AppKit.NSFont.systemFontOfSize_(13))
        self._text_view.setAutoresizingMask_(AppKit.NSViewWidthSizable)
        scroll.setDocumentView_(self._text_view)
        content.addSubview_(scroll)

        self._copy_button = self._add_button(content, "Copy", width - MARGIN - BUTTON_WIDTH * 2 - 8, self.copy)
        self._add_button(content, "Close", width - MARGIN - BUTTON_WIDTH, self.close)

    def _add_button(self, content, title, x, callback):
        import AppKit
        import Foundation

        button = AppKit.NSButton.alloc().initWithFrame_(
            Foundation.NSMakeRect(x, MARGIN, BUTTON_WIDTH, BUTTON_HEIGHT)
        )
        button.setTitle_(title)
        button.setBezelStyle_(AppKit.NSBezelStyleRounded)
        button.setAutoresizingMask_(AppKit.NSViewMinXMargin)
        target = make_action_target(callback)
        self._targets.append(target)
        button.setTarget_(target)
        button.setAction_("invoke:")
        content.addSubview_(button)
        return button

    def _present(self, body: str, suggestion: Optional[str]):
        import AppKit

        if self._window is None:
            self._create_window()
        self._suggestion = suggestion
        self._text_view.setString_(body)
        self._copy_button.setEnabled_(bool(suggestion))
        if not self._window.isVisible():
            self._window.center()
        self._window.makeKeyAndOrderFront_(None)
        AppKit.NSApplication.sharedApplication().activateIgnoringOtherApps_(True)

    def show_loading(self, label: str):
        perform_on_main_thread(lambda: self._present(f"{label}…", None))

    def show_result(self, response: AIResponse):
        perform_on_main_thread(lambda: self._present(format_response(response), response.processed_text))

    def show_error(self, message: str):
        perform_on_main_thread(lambda: self._present(f"Error: {message}", None))

    def copy(self):
        if self._suggestion and copy_to_clipboard(self._suggestion):
            log("Suggestion copied to clipboard", "OK")

    def close(self):
        if self._window is not None:
            self._window.close()

    def _save_size(self):
        frame = self._window.contentView().frame()
        width, height = int(frame.size.width), int(frame.size.height)
        config = get_config()
        if (width, height) == (config.ui.popup_width, config.ui.popup_height):
            return
        update_config_field("ui", "popup_width", width)
        update_config_field("ui", "popup_height", height)
