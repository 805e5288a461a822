# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Accessibility tree scanner.

Walks a UI element tree depth-first to a bounded depth and returns a flat,
immutable snapshot of every node visited. The depth cap is the only
termination guarantee: there is no visited-set, so a cyclic tree is walked
until max_depth and then stops.
"""

import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

from .ax import (
    DESCRIPTION,
    ENABLED,
    FOCUSED,
    IDENTIFIER,
    POSITION,
    ROLE,
    SIZE,
    TITLE,
    UNKNOWN_ROLE,
    UNREACHABLE_ERRORS,
    VALUE,
    AccessibilityHost,
    Point,
    Size,
)
from .utils import log

DEFAULT_MAX_DEPTH = 25
DESCRIBE_VALUE_TRUNCATE = 50


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ElementDescriptor:
    """Snapshot of one accessibility node, taken at scan time."""
    role: str
    depth: int
    title: Optional[str] = None
    value: Optional[str] = None
    description: Optional[str] = None
    identifier: Optional[str] = None
    position: Optional[Point] = None
    size: Optional[Size] = None
    enabled: bool = True
    focused: bool = False
    id: str = field(default_factory=_new_id)

    @property
    def area(self) -> Optional[float]:
        """width * height, or None unless both position and size are known."""
        if self.position is None or self.size is None:
            return None
        return self.size.width * self.size.height

    def text_fields(self) -> Tuple[Optional[str], ...]:
        return (self.title, self.value, self.description, self.identifier)

    def describe(self) -> str:
        """One indented line for tree dumps."""
        parts = [f"{'  ' * self.depth}[{self.role}]"]
        if self.title:
            parts.append(f"title: '{self.title}'")
        if self.value:
            value = self.value
            if len(value) > DESCRIBE_VALUE_TRUNCATE:
                value = value[:DESCRIBE_VALUE_TRUNCATE] + "..."
            parts.append(f"value: '{value}'")
        if self.identifier:
            parts.append(f"id: '{self.identifier}'")
        if self.position is not None:
            parts.append(f"pos: ({self.position.x:.0f}, {self.position.y:.0f})")
        if self.size is not None:
            parts.append(f"size: ({self.size.width:.0f}x{self.size.height:.0f})")
        if self.focused:
            parts.append("[FOCUSED]")
        if not self.enabled:
            parts.append("[DISABLED]")
        return " ".join(parts)

    @property
    def short_description(self) -> str:
        label = self.title or self.description or self.identifier or ""
        return f"{self.role} '{label}'" if label else self.role


class TreeScanner:
    """
    Depth-first, pre-order walker over an AccessibilityHost tree.

    Each scan builds a fresh tuple; nothing is cached between scans.
    """

    def __init__(self, host: AccessibilityHost):
        self._host = host

    @property
    def host(self) -> AccessibilityHost:
        return self._host

    def scan(self, root: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Tuple[ElementDescriptor, ...]:
        """
        Scan the tree under root.

        A node at depth == max_depth is recorded but its children are not
        fetched. Returns () if root is None or no longer reachable.
        """
        if root is None:
            return ()
        if max_depth < 0:
            raise ValueError("max_depth cannot be negative")
        role = self._host.get_attribute(root, ROLE)
        if role.error in UNREACHABLE_ERRORS:
            log(f"Scan root unreachable ({role.error})", "AX")
            return ()
        out: List[ElementDescriptor] = []
        self._walk(root, 0, max_depth, out)
        return tuple(out)

    def scan_application(self, app: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Tuple[ElementDescriptor, ...]:
        """
        Scan an application node, preferring its focused window.

        Falls back to every top-level window (each starting at depth 0), and
        finally to the application node itself.
        """
        if app is None:
            return ()
        focused = self._host.get_focused_window(app)
        if focused is not None:
            elements = self.scan(focused, max_depth)
            if elements:
                return elements
        windows = self._host.get_windows(app)
        if windows:
            out: List[ElementDescriptor] = []
            for window in windows:
                out.extend(self.scan(window, max_depth))
            if out:
                return tuple(out)
        return self.scan(app, max_depth)

    def _walk(self, node: Any, depth: int, max_depth: int, out: List[ElementDescriptor]):
        out.append(self._describe(node, depth))
        if depth >= max_depth:
            return
        for child in self._host.get_children(node):
            self._walk(child, depth + 1, max_depth, out)

    def _describe(self, node: Any, depth: int) -> ElementDescriptor:
        host = self._host

        def text(name: str) -> Optional[str]:
            result = host.get_attribute(node, name)
            if result.ok and isinstance(result.value, str):
                return result.value
            return None

        role = host.get_attribute(node, ROLE)
        position = host.get_attribute(node, POSITION)
        size = host.get_attribute(node, SIZE)
        enabled = host.get_attribute(node, ENABLED)
        focused = host.get_attribute(node, FOCUSED)

        return ElementDescriptor(
            role=role.value if role.ok and role.value else UNKNOWN_ROLE,
            depth=depth,
            title=text(TITLE),
            value=text(VALUE),
            description=text(DESCRIPTION),
            identifier=text(IDENTIFIER),
            position=Point(*position.value) if position.ok else None,
            size=Size(*size.value) if size.ok else None,
            enabled=bool(enabled.value) if enabled.ok else True,
            focused=bool(focused.value) if focused.ok else False,
        )


def role_histogram(elements: Iterable[ElementDescriptor]) -> List[Tuple[str, int]]:
    """Count roles, most frequent first."""
    return Counter(e.role for e in elements).most_common()


def dump_tree(elements: Iterable[ElementDescriptor]) -> str:
    """Render a scan as indented lines."""
    return "\n".join(e.describe() for e in elements)


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "ElementDescriptor",
    "Point",
    "Size",
    "TreeScanner",
    "dump_tree",
    "role_histogram",
]
