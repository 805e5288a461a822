# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Overlay positioning.

Converts a located element's top-left-origin geometry into the
bottom-left-origin point where the floating icon's frame starts, and
remembers the last good placement per app so the icon can be restored
when a scan comes up empty.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from .ax import Point, Size
from .config import CONFIG_DIR
from .locator import LocatedElement
from .utils import log

PLACEMENTS_FILE_NAME = "placements.json"


def compute_position(
    element_position: Point,
    element_size: Size,
    screen_height: float,
    icon_size: float,
    padding: float,
) -> Point:
    """
    Place the icon inside the element's top-right corner.

    x = ex + ew - icon - padding
    y = screen_height - ey - icon - padding
    """
    ex, ey = element_position
    ew = element_size[0]
    return Point(
        ex + ew - icon_size - padding,
        screen_height - ey - icon_size - padding,
    )


class PlacementStore:
    """JSON file of appKey -> [x, y]. The only durable state the pipeline owns."""

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path is not None else CONFIG_DIR / PLACEMENTS_FILE_NAME
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Dict[str, list]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log(f"Placement file unreadable, ignoring: {e}", "WARN")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, list]):
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self._path.parent), prefix=".placements-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self._path)
        except Exception:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    def save(self, app_key: str, point: Point) -> bool:
        with self._lock:
            try:
                data = self._read()
                data[app_key] = [float(point[0]), float(point[1])]
                self._write(data)
                return True
            except Exception as e:
                log(f"Placement save failed: {e}", "ERR")
                return False

    def load(self, app_key: str) -> Optional[Point]:
        """Saved point for app_key, or None if it was never saved."""
        with self._lock:
            entry = self._read().get(app_key)
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            return None
        try:
            return Point(float(entry[0]), float(entry[1]))
        except (TypeError, ValueError):
            return None

    def clear(self, app_key: Optional[str] = None) -> bool:
        """Forget one app's placement, or all of them."""
        with self._lock:
            try:
                if app_key is None:
                    self._write({})
                    return True
                data = self._read()
                if app_key not in data:
                    return False
                del data[app_key]
                self._write(data)
                return True
            except Exception as e:
                log(f"Placement clear failed: {e}", "ERR")
                return False

    def all(self) -> Dict[str, Point]:
        with self._lock:
            data = self._read()
        out = {}
        for key, entry in data.items():
            if isinstance(entry, (list, tuple)) and len(entry) == 2:
                try:
                    out[key] = Point(float(entry[0]), float(entry[1]))
                except (TypeError, ValueError):
                    continue
        return out


class OverlayPositioner:
    """compute_position plus the placement store, with icon metrics bound."""

    def __init__(self, store: PlacementStore, icon_size: float = 24, padding: float = 6):
        self._store = store
        self.icon_size = icon_size
        self.padding = padding

    @property
    def store(self) -> PlacementStore:
        return self._store

    def position_for(self, located: Optional[LocatedElement], screen_height: float) -> Optional[Point]:
        """Icon origin for a located element, or None if it has no geometry."""
        if located is None:
            return None
        element = located.element
        if element.position is None or element.size is None:
            return None
        return compute_position(element.position, element.size, screen_height, self.icon_size, self.padding)

    def save_placement(self, app_key: str, point: Point) -> bool:
        return self._store.save(app_key, point)

    def load_placement(self, app_key: str) -> Optional[Point]:
        return self._store.load(app_key)
