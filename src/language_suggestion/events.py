# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
In-process notification bus between the UI shell and the pipeline.

Handlers run synchronously on the posting thread. A failing handler is
logged and does not stop the others.
"""

import threading
from typing import Callable, Dict, List, Optional

from .utils import log

CAPTURE_REQUESTED = "capture_requested"
CLOSE_REQUESTED = "close_requested"
CUSTOM_ACTION_REQUESTED = "custom_action_requested"
RETRY_REQUESTED = "retry_requested"
PROMPTS_CHANGED = "prompts_changed"
QUIT_REQUESTED = "quit_requested"

Handler = Callable[[dict], None]


class EventBus:
    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, name: str, handler: Handler):
        with self._lock:
            self._handlers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> bool:
        with self._lock:
            handlers = self._handlers.get(name, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def post(self, name: str, payload: Optional[dict] = None) -> int:
        """Deliver to every handler of name. Returns the number that ran without error."""
        with self._lock:
            handlers = list(self._handlers.get(name, []))
        delivered = 0
        for handler in handlers:
            try:
                handler(dict(payload or {}))
                delivered += 1
            except Exception as e:
                log(f"Event handler for '{name}' failed: {type(e).__name__}: {e}", "WARN")
        return delivered
