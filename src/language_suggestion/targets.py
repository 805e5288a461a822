# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Supported target applications.

To add a new target:
1. Add a config section with bundle_ids, keywords and max_depth
2. Add an entry to TARGET_REGISTRY below

Usage:
    from language_suggestion.targets import get_target, target_for_bundle

    teams = get_target("teams")
    target = target_for_bundle("com.apple.Notes")
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .config import Config, get_config
from .locator import LocatorHints


@dataclass(frozen=True)
class TargetApp:
    """An application whose compose box can be tracked."""
    id: str                       # Registry key (e.g., "teams")
    name: str                     # Display name (e.g., "Microsoft Teams")
    bundle_ids: Tuple[str, ...]   # Tried in order
    hints: LocatorHints
    max_depth: int


@dataclass
class TargetInfo:
    """Registry entry; build() reads the current config."""
    id: str
    name: str
    build: Callable[[Config], TargetApp]


def _build_teams(config: Config) -> TargetApp:
    section = config.teams
    return TargetApp(
        id="teams",
        name="Microsoft Teams",
        bundle_ids=tuple(section.bundle_ids),
        hints=LocatorHints(
            keywords=tuple(section.keywords),
            scroll_area_fallback=section.scroll_fallback,
        ),
        max_depth=section.max_depth,
    )


def _build_notes(config: Config) -> TargetApp:
    section = config.notes
    return TargetApp(
        id="notes",
        name="Apple Notes",
        bundle_ids=tuple(section.bundle_ids),
        hints=LocatorHints(
            keywords=tuple(section.keywords),
            scroll_area_fallback=section.scroll_fallback,
        ),
        max_depth=section.max_depth,
    )


# ============================================================================
# TARGET REGISTRY - Add new target apps here
# ============================================================================
TARGET_REGISTRY: Dict[str, TargetInfo] = {
    "teams": TargetInfo(id="teams", name="Microsoft Teams", build=_build_teams),
    "notes": TargetInfo(id="notes", name="Apple Notes", build=_build_notes),
}


def get_targets(config: Optional[Config] = None) -> List[TargetApp]:
    """All targets, in registry order."""
    config = config or get_config()
    return [info.build(config) for info in TARGET_REGISTRY.values()]


def get_target(name: str, config: Optional[Config] = None) -> Optional[TargetApp]:
    """Look up a target by id or display name (case-insensitive)."""
    if not name:
        return None
    wanted = name.strip().lower()
    for target in get_targets(config):
        if wanted in (target.id, target.name.lower()):
            return target
    return None


def target_for_bundle(bundle_id: Optional[str], config: Optional[Config] = None) -> Optional[TargetApp]:
    """The target that owns a bundle id, or None for unsupported apps."""
    if not bundle_id:
        return None
    for target in get_targets(config):
        if bundle_id in target.bundle_ids:
            return target
    return None


__all__ = ["TargetApp", "TargetInfo", "TARGET_REGISTRY", "get_target", "get_targets", "target_for_bundle"]
