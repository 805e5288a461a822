# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
In-memory accessibility host for tests.

Builds synthetic trees out of FakeNode objects. Nodes can be marked
unreachable, and any attribute can be made to fail, so scanner and tracker
behaviour can be checked without pyobjc.
"""

from collections import Counter
from typing import Dict, List, Optional

from language_suggestion.ax import (
    CHILDREN,
    DESCRIPTION,
    ENABLED,
    ERR_INVALID_ELEMENT,
    ERR_NO_VALUE,
    FOCUSED,
    FOCUSED_WINDOW,
    IDENTIFIER,
    POSITION,
    ROLE,
    SELECTED_TEXT,
    SIZE,
    TITLE,
    VALUE,
    WINDOWS,
    AccessibilityHost,
    AttributeResult,
    Point,
    Size,
)


class FakeNode:
    """A node with plain attributes and a mutable children list."""

    def __init__(self, role: Optional[str], children=None, **attrs):
        self.attrs: Dict[str, object] = {}
        if role is not None:
            self.attrs[ROLE] = role
        for key, name in (
            ("title", TITLE),
            ("value", VALUE),
            ("description", DESCRIPTION),
            ("identifier", IDENTIFIER),
            ("enabled", ENABLED),
            ("focused", FOCUSED),
            ("selected_text", SELECTED_TEXT),
        ):
            if key in attrs:
                self.attrs[name] = attrs.pop(key)
        if "position" in attrs:
            self.attrs[POSITION] = Point(*attrs.pop("position"))
        if "size" in attrs:
            self.attrs[SIZE] = Size(*attrs.pop("size"))
        if attrs:
            raise TypeError(f"Unknown node attributes: {sorted(attrs)}")
        self.children: List["FakeNode"] = list(children or [])
        self.windows: List["FakeNode"] = []
        self.focused_window: Optional["FakeNode"] = None
        self.unreachable = False
        self.failing: Dict[str, str] = {}

    def __repr__(self):
        return f"FakeNode({self.attrs.get(ROLE)!r}, {len(self.children)} children)"


def node(role: Optional[str], *children, **attrs) -> FakeNode:
    return FakeNode(role, children=children, **attrs)


def app(*windows: FakeNode, focused: Optional[FakeNode] = None) -> FakeNode:
    """Application node whose windows are the given nodes."""
    application = FakeNode("application")
    application.windows = list(windows)
    application.focused_window = focused
    return application


def chain(length: int) -> FakeNode:
    """A linear tree of `length` nodes: group -> group -> ..."""
    root = node("group", title="level-0")
    current = root
    for depth in range(1, length):
        child = node("group", title=f"level-{depth}")
        current.children.append(child)
        current = child
    return root


def cycle() -> FakeNode:
    """Two groups that are each other's only child."""
    a = node("group", title="a")
    b = node("group", title="b")
    a.children.append(b)
    b.children.append(a)
    return a


class FakeHost(AccessibilityHost):
    """AccessibilityHost over FakeNode trees, with call counters."""

    def __init__(self, apps: Optional[Dict[str, FakeNode]] = None, frontmost: Optional[str] = None,
                 trusted: bool = True, screen_height: float = 1080.0, focused_text: Optional[str] = None):
        self.apps = dict(apps or {})
        self.frontmost = frontmost
        self.trusted = trusted
        self.height = screen_height
        self.focused_text = focused_text
        self.calls: Counter = Counter()
        self.prompts_shown = 0

    def get_attribute(self, node: FakeNode, name: str) -> AttributeResult:
        self.calls[name] += 1
        if node.unreachable:
            return AttributeResult(error=ERR_INVALID_ELEMENT)
        if name in node.failing:
            return AttributeResult(error=node.failing[name])
        if name == CHILDREN:
            return AttributeResult(value=list(node.children)) if node.children else AttributeResult(error=ERR_NO_VALUE)
        if name == WINDOWS:
            return AttributeResult(value=list(node.windows)) if node.windows else AttributeResult(error=ERR_NO_VALUE)
        if name == FOCUSED_WINDOW:
            return AttributeResult(value=node.focused_window) if node.focused_window else AttributeResult(error=ERR_NO_VALUE)
        if name in node.attrs:
            return AttributeResult(value=node.attrs[name])
        return AttributeResult(error=ERR_NO_VALUE)

    def find_running_application(self, bundle_id: str) -> Optional[FakeNode]:
        self.calls["find_running_application"] += 1
        return self.apps.get(bundle_id)

    def frontmost_bundle_id(self) -> Optional[str]:
        self.calls["frontmost_bundle_id"] += 1
        return self.frontmost

    def is_trusted(self) -> bool:
        return self.trusted

    def prompt_for_trust(self) -> bool:
        self.prompts_shown += 1
        return self.trusted

    def screen_height(self) -> float:
        return self.height

    def get_focused_text(self) -> Optional[str]:
        return self.focused_text


def notes_app(with_text_area: bool = True) -> FakeNode:
    """Apple Notes-like tree: window > split group > scroll area > text area."""
    body = node(
        "text-area",
        value="Hello wrld",
        position=(300, 120),
        size=(600, 500),
    )
    scroll = node("scroll-area", position=(290, 110), size=(620, 520))
    if with_text_area:
        scroll.children.append(body)
    sidebar = node("scroll-area", node("static-text", value="All iCloud"), position=(0, 110), size=(200, 520))
    window = node("window", node("group", sidebar, scroll), title="Notes", position=(0, 80), size=(1000, 600))
    return app(window, focused=window)


def teams_app(compose_position=(400, 900), compose_size=(700, 40)) -> FakeNode:
    """Teams-like tree with a message list and a compose box matched by keyword."""
    messages = node(
        "text-area",
        value="Earlier chat history",
        position=(400, 100),
        size=(700, 700),
    )
    compose = node(
        "text-area",
        description="Type a message",
        position=compose_position,
        size=compose_size,
    )
    web = node("web-area", node("group", messages), node("group", compose), title="Chat")
    window = node("window", web, title="Microsoft Teams", position=(0, 0), size=(1200, 1000))
    return app(window, focused=window)
