# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Custom prompt library.

Persists the user's custom prompts to ~/.language-suggestion/prompts.json.
An empty or missing file is seeded with the defaults; a non-empty library
gains any default added in a later release.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, List, Optional

from .config import CONFIG_DIR
from .models import CustomPrompt
from .utils import log

PROMPTS_FILE_NAME = "prompts.json"

# Names are the identity of defaults; ids are generated per install
DEFAULT_PROMPTS = (
    ("Summarize", "Summarize the following text concisely:", "s"),
    ("Make Professional", "Rewrite the following text in a professional tone:", "p"),
    ("Make Casual", "Rewrite the following text in a casual, friendly tone:", "c"),
    ("Paragraph IT Style",
     "Transform the following keyword-based text into a well-written paragraph in IT writing style:", "i"),
)

# Defaults added after the first release; appended to existing libraries
MIGRATED_DEFAULTS = ("Paragraph IT Style",)


def default_prompts() -> List[CustomPrompt]:
    return [CustomPrompt(name=n, prompt=p, key_equivalent=k) for n, p, k in DEFAULT_PROMPTS]


class PromptLibrary:
    """Thread-safe CRUD over the persisted custom prompts."""

    def __init__(self, path: Optional[Path] = None, on_change: Optional[Callable[[], None]] = None):
        self._path = Path(path) if path is not None else CONFIG_DIR / PROMPTS_FILE_NAME
        self._lock = threading.Lock()
        self._on_change = on_change
        self._prompts: List[CustomPrompt] = []
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    def set_on_change(self, callback: Optional[Callable[[], None]]):
        self._on_change = callback

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> List[CustomPrompt]:
        prompts: List[CustomPrompt] = []
        if self._path.exists():
            try:
                data = json.loads(self._path.read_text(encoding="utf-8"))
                for entry in data if isinstance(data, list) else []:
                    try:
                        prompts.append(CustomPrompt.from_dict(entry))
                    except (ValueError, AttributeError) as e:
                        log(f"Skipping invalid custom prompt: {e}", "WARN")
            except (OSError, ValueError) as e:
                log(f"Prompt library unreadable, using defaults: {e}", "WARN")

        changed = False
        if not prompts:
            prompts = default_prompts()
            changed = True
        else:
            names = {p.name for p in prompts}
            for default in default_prompts():
                if default.name in MIGRATED_DEFAULTS and default.name not in names:
                    prompts.append(default)
                    changed = True
                    log(f"Added default prompt: {default.name}", "INFO")

        with self._lock:
            self._prompts = prompts
            if changed:
                self._save_locked()
        return list(prompts)

    def _save_locked(self):
        tmp = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self._path.parent), prefix=".prompts-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump([p.to_dict() for p in self._prompts], f, indent=2, ensure_ascii=False)
            os.replace(tmp, self._path)
        except Exception as e:
            log(f"Prompt library save failed: {e}", "ERR")
            if tmp and os.path.exists(tmp):
                try:
                    os.unlink(tmp)
                except OSError:
                    pass

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def all(self) -> List[CustomPrompt]:
        with self._lock:
            return list(self._prompts)

    def get(self, key: str) -> Optional[CustomPrompt]:
        """Find a prompt by id, or by name (case-insensitive)."""
        if not key:
            return None
        wanted = key.strip().lower()
        with self._lock:
            for p in self._prompts:
                if p.id == key:
                    return p
            for p in self._prompts:
                if p.name.lower() == wanted:
                    return p
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, name: str, prompt: str, key_equivalent: str = "") -> CustomPrompt:
        name = name.strip()
        prompt = prompt.strip()
        if not name or not prompt:
            raise ValueError("Name and prompt cannot be empty")
        item = CustomPrompt(name=name, prompt=prompt, key_equivalent=key_equivalent[:1])
        with self._lock:
            self._prompts.append(item)
        self._notify()
        return item

    def update(self, prompt_id: str, name: Optional[str] = None, prompt: Optional[str] = None,
               key_equivalent: Optional[str] = None) -> Optional[CustomPrompt]:
        with self._lock:
            for item in self._prompts:
                if item.id != prompt_id:
                    continue
                if name is not None and name.strip():
                    item.name = name.strip()
                if prompt is not None and prompt.strip():
                    item.prompt = prompt.strip()
                if key_equivalent is not None:
                    item.key_equivalent = key_equivalent[:1]
                break
            else:
                return None
        self._notify()
        return item

    def delete(self, prompt_id: str) -> bool:
        with self._lock:
            before = len(self._prompts)
            self._prompts = [p for p in self._prompts if p.id != prompt_id]
            removed = len(self._prompts) != before
        if removed:
            self._notify()
        return removed

    def restore_defaults(self) -> List[CustomPrompt]:
        with self._lock:
            self._prompts = default_prompts()
        self._notify()
        return self.all()

    def _notify(self):
        with self._lock:
            self._save_locked()
        callback = self._on_change
        if callback:
            try:
                callback()
            except Exception as e:
                log(f"Prompt change callback failed: {e}", "WARN")
