# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Accessibility tree access.

AccessibilityHost is the typed query interface the scanner and tracker use.
Every attribute read returns an AttributeResult instead of raising, so one
unreadable attribute never aborts a scan. MacAccessibilityHost implements it
on top of the macOS AXUIElement API via pyobjc.

Usage:
    from language_suggestion.ax import MacAccessibilityHost, ROLE

    host = MacAccessibilityHost()
    app = host.find_running_application("com.apple.Notes")
    result = host.get_attribute(app, ROLE)
    if result.ok:
        print(result.value)
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, NamedTuple, Optional

# ─────────────────────────────────────────────────────────────────
# Logical attribute names
# ─────────────────────────────────────────────────────────────────

ROLE = "role"
TITLE = "title"
VALUE = "value"
DESCRIPTION = "description"
IDENTIFIER = "identifier"
POSITION = "position"
SIZE = "size"
ENABLED = "enabled"
FOCUSED = "focused"
SELECTED_TEXT = "selected-text"
CHILDREN = "children"
WINDOWS = "windows"
FOCUSED_WINDOW = "focused-window"
FOCUSED_ELEMENT = "focused-element"

# ─────────────────────────────────────────────────────────────────
# Attribute errors
# ─────────────────────────────────────────────────────────────────

ERR_UNSUPPORTED = "attribute-unsupported"
ERR_NO_VALUE = "no-value"
ERR_INVALID_ELEMENT = "invalid-element"
ERR_CANNOT_COMPLETE = "cannot-complete"
ERR_API_DISABLED = "api-disabled"
ERR_FAILURE = "failure"

# A role read failing with one of these means the node itself is gone
UNREACHABLE_ERRORS = frozenset({ERR_INVALID_ELEMENT, ERR_CANNOT_COMPLETE})

PERMISSION_HINT = (
    "Accessibility permission is required. Open System Settings > "
    "Privacy & Security > Accessibility and enable Language Suggestion "
    "(or your terminal app), then restart it."
)


class Point(NamedTuple):
    """Screen point. Top-left origin for element geometry, bottom-left for overlay placement."""
    x: float
    y: float


class Size(NamedTuple):
    width: float
    height: float


@dataclass(frozen=True)
class AttributeResult:
    """Outcome of a single attribute query."""
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None


class PermissionDeniedError(RuntimeError):
    """Raised when the process is not trusted for Accessibility."""

    def __init__(self, message: str = PERMISSION_HINT):
        super().__init__(message)


# ─────────────────────────────────────────────────────────────────
# Role normalization
# ─────────────────────────────────────────────────────────────────

ROLE_MAP = {
    "AXTextArea": "text-area",
    "AXTextField": "text-field",
    "AXScrollArea": "scroll-area",
    "AXButton": "button",
    "AXGroup": "group",
    "AXWindow": "window",
    "AXWebArea": "web-area",
    "AXApplication": "application",
    "AXStaticText": "static-text",
}

UNKNOWN_ROLE = "unknown"


def normalize_role(ax_role: Optional[str]) -> str:
    """Map a raw AX role ("AXTextArea") to a kebab-case role ("text-area")."""
    if not ax_role:
        return UNKNOWN_ROLE
    mapped = ROLE_MAP.get(ax_role)
    if mapped:
        return mapped
    name = ax_role[2:] if ax_role.startswith("AX") else ax_role
    if not name:
        return UNKNOWN_ROLE
    return re.sub(r'(?<=[a-z0-9])(?=[A-Z])', '-', name).lower()


class AccessibilityHost(ABC):
    """
    Read-only view of the OS accessibility tree.

    Nodes are opaque handles owned by the host. get_attribute never raises;
    failures are reported through AttributeResult.error.
    """

    @abstractmethod
    def get_attribute(self, node: Any, name: str) -> AttributeResult:
        """Read one logical attribute (ROLE, TITLE, POSITION, ...) from a node."""
        pass

    @abstractmethod
    def find_running_application(self, bundle_id: str) -> Optional[Any]:
        """Return the application node for a running bundle id, or None."""
        pass

    @abstractmethod
    def frontmost_bundle_id(self) -> Optional[str]:
        """Bundle id of the frontmost application."""
        pass

    @abstractmethod
    def is_trusted(self) -> bool:
        """True if this process may read other applications' trees."""
        pass

    @abstractmethod
    def prompt_for_trust(self) -> bool:
        """Ask the OS to show the Accessibility permission prompt."""
        pass

    @abstractmethod
    def screen_height(self) -> float:
        """Height of the primary screen in points."""
        pass

    @abstractmethod
    def get_focused_text(self) -> Optional[str]:
        """Text of the system-wide focused element (selection, then value, then title)."""
        pass

    # ─────────────────────────────────────────────────────────────────
    # Tree navigation built on get_attribute
    # ─────────────────────────────────────────────────────────────────

    def get_children(self, node: Any) -> List[Any]:
        result = self.get_attribute(node, CHILDREN)
        if not result.ok:
            return []
        return list(result.value)

    def get_windows(self, app: Any) -> List[Any]:
        result = self.get_attribute(app, WINDOWS)
        if not result.ok:
            return []
        return list(result.value)

    def get_focused_window(self, app: Any) -> Optional[Any]:
        result = self.get_attribute(app, FOCUSED_WINDOW)
        return result.value if result.ok else None


# ─────────────────────────────────────────────────────────────────
# macOS implementation
# ─────────────────────────────────────────────────────────────────

_AX_ATTRIBUTE_NAMES = {
    ROLE: "AXRole",
    TITLE: "AXTitle",
    VALUE: "AXValue",
    DESCRIPTION: "AXDescription",
    IDENTIFIER: "AXIdentifier",
    POSITION: "AXPosition",
    SIZE: "AXSize",
    ENABLED: "AXEnabled",
    FOCUSED: "AXFocused",
    SELECTED_TEXT: "AXSelectedText",
    CHILDREN: "AXChildren",
    WINDOWS: "AXWindows",
    FOCUSED_WINDOW: "AXFocusedWindow",
    FOCUSED_ELEMENT: "AXFocusedUIElement",
}

_TEXT_ATTRIBUTES = frozenset({TITLE, VALUE, DESCRIPTION, IDENTIFIER, SELECTED_TEXT})
_BOOL_ATTRIBUTES = frozenset({ENABLED, FOCUSED})
_LIST_ATTRIBUTES = frozenset({CHILDREN, WINDOWS})

# Will be imported lazily to avoid issues on non-macOS
_AS = None
_AppKit = None
_ERROR_NAMES = {}


def _import_macos():
    """Lazily import the Accessibility and AppKit frameworks."""
    global _AS, _AppKit, _ERROR_NAMES
    if _AS is None:
        import ApplicationServices as _AS
        import AppKit as _AppKit

        _ERROR_NAMES = {
            _AS.kAXErrorAttributeUnsupported: ERR_UNSUPPORTED,
            _AS.kAXErrorNoValue: ERR_NO_VALUE,
            _AS.kAXErrorInvalidUIElement: ERR_INVALID_ELEMENT,
            _AS.kAXErrorCannotComplete: ERR_CANNOT_COMPLETE,
            _AS.kAXErrorAPIDisabled: ERR_API_DISABLED,
        }


class MacAccessibilityHost(AccessibilityHost):
    """AccessibilityHost backed by AXUIElement (ApplicationServices)."""

    def __init__(self):
        _import_macos()

    def get_attribute(self, node: Any, name: str) -> AttributeResult:
        ax_name = _AX_ATTRIBUTE_NAMES.get(name)
        if node is None or ax_name is None:
            return AttributeResult(error=ERR_UNSUPPORTED)
        try:
            err, raw = _AS.AXUIElementCopyAttributeValue(node, ax_name, None)
        except Exception:
            return AttributeResult(error=ERR_FAILURE)
        if err != _AS.kAXErrorSuccess:
            return AttributeResult(error=_ERROR_NAMES.get(err, ERR_FAILURE))
        if raw is None:
            return AttributeResult(error=ERR_NO_VALUE)
        return self._convert(name, raw)

    def _convert(self, name: str, raw: Any) -> AttributeResult:
        """Turn a raw AX value into the Python type the scanner expects."""
        try:
            if name == ROLE:
                return AttributeResult(normalize_role(str(raw)))
            if name in _TEXT_ATTRIBUTES:
                # AXValue of sliders and checkboxes is numeric; only text is kept
                if isinstance(raw, str):
                    return AttributeResult(str(raw))
                return AttributeResult(error=ERR_NO_VALUE)
            if name in _BOOL_ATTRIBUTES:
                return AttributeResult(bool(raw))
            if name in _LIST_ATTRIBUTES:
                return AttributeResult(list(raw))
            if name == POSITION:
                ok, point = _AS.AXValueGetValue(raw, _AS.kAXValueCGPointType, None)
                if not ok or point is None:
                    return AttributeResult(error=ERR_NO_VALUE)
                return AttributeResult(Point(float(point.x), float(point.y)))
            if name == SIZE:
                ok, size = _AS.AXValueGetValue(raw, _AS.kAXValueCGSizeType, None)
                if not ok or size is None:
                    return AttributeResult(error=ERR_NO_VALUE)
                return AttributeResult(Size(float(size.width), float(size.height)))
            return AttributeResult(raw)
        except Exception:
            return AttributeResult(error=ERR_FAILURE)

    def find_running_application(self, bundle_id: str) -> Optional[Any]:
        apps = _AppKit.NSRunningApplication.runningApplicationsWithBundleIdentifier_(bundle_id)
        if not apps or len(apps) == 0:
            return None
        return _AS.AXUIElementCreateApplication(apps[0].processIdentifier())

    def frontmost_bundle_id(self) -> Optional[str]:
        app = _AppKit.NSWorkspace.sharedWorkspace().frontmostApplication()
        if app is None:
            return None
        bundle_id = app.bundleIdentifier()
        return str(bundle_id) if bundle_id else None

    def is_trusted(self) -> bool:
        from .utils import check_accessibility_trusted
        return check_accessibility_trusted()

    def prompt_for_trust(self) -> bool:
        from .utils import request_accessibility_permission
        return request_accessibility_permission()

    def screen_height(self) -> float:
        # AX geometry is relative to the primary display, which is screens()[0]
        screens = _AppKit.NSScreen.screens()
        screen = screens[0] if screens and len(screens) > 0 else _AppKit.NSScreen.mainScreen()
        return float(screen.frame().size.height)

    def get_focused_text(self) -> Optional[str]:
        system_wide = _AS.AXUIElementCreateSystemWide()
        focused = self.get_attribute(system_wide, FOCUSED_ELEMENT)
        if not focused.ok:
            return None
        return text_of(self, focused.value)


def text_of(host: AccessibilityHost, node: Any) -> Optional[str]:
    """First non-empty of a node's selected text, value and title."""
    for name in (SELECTED_TEXT, VALUE, TITLE):
        result = host.get_attribute(node, name)
        if result.ok and isinstance(result.value, str) and result.value:
            return result.value
    return None
