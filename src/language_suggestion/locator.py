# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Compose box locator.

Picks the element most likely to be an app's message input from a scan,
using an ordered list of fallback strategies. The first strategy that
produces a candidate wins:

    1. keyword              text-bearing element whose title, value,
                            description or identifier contains a keyword
    2. focus                focused text-bearing element
    3. largest-area         biggest text-bearing element with geometry
    4. fallback-scroll-area biggest scroll area (only when enabled)

locate() is a pure function of its inputs and never raises.
"""

from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .scanner import ElementDescriptor

# Strategy tags
STRATEGY_KEYWORD = "keyword"
STRATEGY_FOCUS = "focus"
STRATEGY_LARGEST_AREA = "largest-area"
STRATEGY_SCROLL_AREA = "fallback-scroll-area"
STRATEGY_NONE = "none"  # diagnostics only; locate() returns None instead

TEXT_ROLES = frozenset({"text-area", "text-field"})
SCROLL_ROLES = frozenset({"scroll-area"})


def _lowered(words: Iterable[str]) -> Tuple[str, ...]:
    if isinstance(words, str):
        words = (words,)
    return tuple(w.lower() for w in words if w and w.strip())


@dataclass(frozen=True)
class LocatorHints:
    """Per-app locator tuning. Keywords are matched case-insensitively."""
    keywords: Tuple[str, ...] = ()
    text_roles: FrozenSet[str] = TEXT_ROLES
    scroll_area_fallback: bool = False
    scroll_roles: FrozenSet[str] = SCROLL_ROLES

    def __post_init__(self):
        object.__setattr__(self, "keywords", _lowered(self.keywords))
        object.__setattr__(self, "text_roles", frozenset(self.text_roles))
        object.__setattr__(self, "scroll_roles", frozenset(self.scroll_roles))


@dataclass(frozen=True)
class LocatedElement:
    """The chosen compose box and the strategy that found it."""
    element: ElementDescriptor
    strategy: str


def _is_text_bearing(element: ElementDescriptor, hints: LocatorHints) -> bool:
    return element.role in hints.text_roles


def _matches_keyword(element: ElementDescriptor, keywords: Sequence[str]) -> bool:
    for text in element.text_fields():
        if not text:
            continue
        lowered = text.lower()
        if any(k in lowered for k in keywords):
            return True
    return False


def _largest(candidates: Iterable[ElementDescriptor]) -> Optional[ElementDescriptor]:
    """Largest element with both position and size; ties keep the earlier one."""
    best: Optional[ElementDescriptor] = None
    best_area = -1.0
    for element in candidates:
        area = element.area
        if area is None:
            continue
        if area > best_area:
            best = element
            best_area = area
    return best


def _by_keyword(elements, hints):
    if not hints.keywords:
        return None
    for element in elements:
        if _is_text_bearing(element, hints) and _matches_keyword(element, hints.keywords):
            return element
    return None


def _by_focus(elements, hints):
    for element in elements:
        if _is_text_bearing(element, hints) and element.focused:
            return element
    return None


def _by_largest_area(elements, hints):
    return _largest(e for e in elements if _is_text_bearing(e, hints))


def _by_scroll_area(elements, hints):
    if not hints.scroll_area_fallback:
        return None
    return _largest(e for e in elements if e.role in hints.scroll_roles)


# Ordered strategy table
STRATEGIES: List[Tuple[str, Callable[[Sequence[ElementDescriptor], LocatorHints], Optional[ElementDescriptor]]]] = [
    (STRATEGY_KEYWORD, _by_keyword),
    (STRATEGY_FOCUS, _by_focus),
    (STRATEGY_LARGEST_AREA, _by_largest_area),
    (STRATEGY_SCROLL_AREA, _by_scroll_area),
]


def locate(elements: Sequence[ElementDescriptor], hints: Optional[LocatorHints] = None) -> Optional[LocatedElement]:
    """Pick the compose box from a scan, or None if no strategy matches."""
    if not elements:
        return None
    hints = hints or LocatorHints()
    for tag, strategy in STRATEGIES:
        found = strategy(elements, hints)
        if found is not None:
            return LocatedElement(element=found, strategy=tag)
    return None


def explain(elements: Sequence[ElementDescriptor], hints: Optional[LocatorHints] = None) -> List[Tuple[str, Optional[ElementDescriptor]]]:
    """Run every strategy independently. Used by `lsg locate` for diagnostics."""
    hints = hints or LocatorHints()
    if not elements:
        return [(tag, None) for tag, _ in STRATEGIES]
    return [(tag, strategy(elements, hints)) for tag, strategy in STRATEGIES]


__all__ = [
    "LocatedElement",
    "LocatorHints",
    "STRATEGY_FOCUS",
    "STRATEGY_KEYWORD",
    "STRATEGY_LARGEST_AREA",
    "STRATEGY_NONE",
    "STRATEGY_SCROLL_AREA",
    "explain",
    "locate",
]
