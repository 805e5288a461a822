# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Floating overlay icon for Language Suggestion.

A small non-activating panel that sits in the top-right corner of the
tracked compose box. Clicking it opens a menu with the custom prompts,
the default action and "Close Overlay".
"""

import queue
import threading
from typing import Callable, List, Optional

from .ax import Point
from .config import get_config
from .events import CAPTURE_REQUESTED, CLOSE_REQUESTED, CUSTOM_ACTION_REQUESTED, EventBus
from .models import ACTION_FIX_GRAMMAR
from .utils import log

# Will be imported lazily to avoid issues on non-macOS
_AppKit = None
_Foundation = None
_Performer = None
_ActionTarget = None
_IconView = None
# Bounded queue to prevent unbounded memory growth in long sessions
_callback_queue = queue.Queue(maxsize=100)


def _import_macos():
    """Lazily import macOS frameworks and create the Objective-C helper classes."""
    global _AppKit, _Foundation, _Performer, _ActionTarget, _IconView
    if _AppKit is None:
        import AppKit as _AppKit
        import Foundation as _Foundation

        class _PerformerClass(_Foundation.NSObject):
            def perform_(self, _):
                try:
                    while True:
                        func = _callback_queue.get_nowait()
                        try:
                            func()
                        except Exception as e:
                            # UI errors are non-fatal
                            log(f"Main thread callback error: {type(e).__name__}: {e}", "WARN")
                except queue.Empty:
                    pass

        class _ActionTargetClass(_Foundation.NSObject):
            """Target for NSMenuItem / NSButton actions that calls a Python callable."""

            def invoke_(self, sender):
                callback = getattr(self, "_callback", None)
                if callback is None:
                    return
                try:
                    callback()
                except Exception as e:
                    log(f"UI action error: {type(e).__name__}: {e}", "WARN")

        class _IconViewClass(_AppKit.NSView):
            def drawRect_(self, rect):
                bounds = self.bounds()
                _AppKit.NSColor.colorWithCalibratedRed_green_blue_alpha_(0.16, 0.45, 0.95, 1.0).setFill()
                _AppKit.NSBezierPath.bezierPathWithOvalInRect_(bounds).fill()
                size = bounds.size.height
                attrs = {
                    _AppKit.NSFontAttributeName: _AppKit.NSFont.boldSystemFontOfSize_(size * 0.42),
                    _AppKit.NSForegroundColorAttributeName: _AppKit.NSColor.whiteColor(),
                }
                label = _Foundation.NSString.stringWithString_("Aa")
                text_size = label.sizeWithAttributes_(attrs)
                label.drawAtPoint_withAttributes_(
                    _Foundation.NSMakePoint(
                        (bounds.size.width - text_size.width) / 2,
                        (size - text_size.height) / 2,
                    ),
                    attrs,
                )

            def mouseDown_(self, event):
                handler = getattr(self, "_on_click", None)
                if handler is not None:
                    handler(event, self)

            def acceptsFirstMouse_(self, event):
                return True

        _Performer = _PerformerClass
        _ActionTarget = _ActionTargetClass
        _IconView = _IconViewClass


def perform_on_main_thread(func: Callable, wait: bool = False):
    """Execute a function on the main thread."""
    _import_macos()
    try:
        _callback_queue.put_nowait(func)
    except queue.Full:
        log(f"Main-thread queue full, dropped {getattr(func, '__name__', 'callback')}", "WARN")
        return
    performer = _Performer.alloc().init()
    performer.performSelectorOnMainThread_withObject_waitUntilDone_(
        _Foundation.NSSelectorFromString("perform:"),
        None,
        wait
    )


def make_action_target(callback: Callable[[], None]):
    """NSObject whose invoke: selector calls callback. Caller must keep a reference."""
    _import_macos()
    target = _ActionTarget.alloc().init()
    target._callback = callback
    return target


def add_menu_item(menu, title: str, callback: Optional[Callable[[], None]], key: str = "",
                  keep: Optional[List] = None):
    """Append an item to an NSMenu wired to a Python callback."""
    _import_macos()
    item = _AppKit.NSMenuItem.alloc().initWithTitle_action_keyEquivalent_(
        title, "invoke:" if callback else None, key or ""
    )
    if callback is not None:
        target = make_action_target(callback)
        item.setTarget_(target)
        if keep is not None:
            keep.append(target)
    else:
        item.setEnabled_(False)
    menu.addItem_(item)
    return item


class FloatingIcon:
    """
    The clickable icon next to the compose box.

    update() is called by the tracker from the main thread with the icon's
    bottom-left origin, or None to hide it.
    """

    def __init__(self, bus: EventBus, prompts):
        self._bus = bus
        self._prompts = prompts
        self._panel = None
        self._view = None
        self._menu_targets: List = []
        self._lock = threading.Lock()
        self._dismissed = False
        self._dismissed_for: Optional[str] = None
        self._current_target_id: Optional[str] = None

    @property
    def dismissed(self) -> bool:
        return self._dismissed

    def _create_panel(self):
        """Create the icon panel on the main thread."""
        _import_macos()
        config = get_config()
        size = config.overlay.icon_size

        style = _AppKit.NSWindowStyleMaskBorderless | _AppKit.NSWindowStyleMaskNonactivatingPanel
        self._panel = _AppKit.NSPanel.alloc().initWithContentRect_styleMask_backing_defer_(
            _Foundation.NSMakeRect(0, 0, size, size),
            style,
            _AppKit.NSBackingStoreBuffered,
            False
        )
        self._panel.setLevel_(_AppKit.NSFloatingWindowLevel)
        self._panel.setOpaque_(False)
        self._panel.setAlphaValue_(config.overlay.opacity)
        self._panel.setBackgroundColor_(_AppKit.NSColor.clearColor())
        self._panel.setHasShadow_(True)
        self._panel.setFloatingPanel_(True)
        self._panel.setHidesOnDeactivate_(False)
        self._panel.setBecomesKeyOnlyIfNeeded_(True)
        self._panel.setCollectionBehavior_(
            _AppKit.NSWindowCollectionBehaviorCanJoinAllSpaces
            | _AppKit.NSWindowCollectionBehaviorFullScreenAuxiliary
        )

        self._view = _IconView.alloc().initWithFrame_(_Foundation.NSMakeRect(0, 0, size, size))
        self._view._on_click = self._on_click
        self._view.setToolTip_("Language Suggestion")
        self._panel.setContentView_(self._view)

    def _build_menu(self):
        menu = _AppKit.NSMenu.alloc().initWithTitle_("Language Suggestion")
        self._menu_targets = []
        for prompt in self._prompts.all():
            add_menu_item(
                menu, prompt.name,
                lambda pid=prompt.id: self._bus.post(CUSTOM_ACTION_REQUESTED, {"prompt_id": pid}),
                key=prompt.key_equivalent,
                keep=self._menu_targets,
            )
        menu.addItem_(_AppKit.NSMenuItem.separatorItem())
        add_menu_item(
            menu, "Fix Grammar (Default)",
            lambda: self._bus.post(CAPTURE_REQUESTED, {"action": ACTION_FIX_GRAMMAR}),
            keep=self._menu_targets,
        )
        menu.addItem_(_AppKit.NSMenuItem.separatorItem())
        add_menu_item(menu, "Close Overlay", lambda: self._bus.post(CLOSE_REQUESTED), keep=self._menu_targets)
        return menu

    def _on_click(self, event, view):
        menu = self._build_menu()
        _AppKit.NSMenu.popUpContextMenu_withEvent_forView_(menu, event, view)

    # ------------------------------------------------------------------
    # Main-thread API
    # ------------------------------------------------------------------

    def update(self, point: Optional[Point], target=None):
        """Move the icon to point, or hide it. Must run on the main thread."""
        target_id = target.id if target is not None else None
        with self._lock:
            if self._dismissed and target_id != self._dismissed_for:
                # A different app came to the front; the close applied to the old one
                self._dismissed = False
                self._dismissed_for = None
            self._current_target_id = target_id
            if point is None or self._dismissed or not get_config().overlay.enabled:
                self._order_out()
                return
            if self._panel is None:
                self._create_panel()
            self._panel.setFrameOrigin_(_Foundation.NSMakePoint(point.x, point.y))
            self._panel.orderFrontRegardless()

    def _order_out(self):
        if self._panel is not None:
            self._panel.orderOut_(None)

    # ------------------------------------------------------------------
    # Any-thread API
    # ------------------------------------------------------------------

    def dismiss(self):
        """Hide until the tracked app changes or restore() is called."""
        def _dismiss():
            with self._lock:
                self._dismissed = True
                self._dismissed_for = self._current_target_id
                self._order_out()

        perform_on_main_thread(_dismiss)

    def restore(self):
        """Undo dismiss(); the icon reappears on the next tracker update."""
        def _restore():
            with self._lock:
                self._dismissed = False
                self._dismissed_for = None

        perform_on_main_thread(_restore)
