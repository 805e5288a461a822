# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Unit tests for overlay.py helpers that run without AppKit.
"""

import queue

from language_suggestion import overlay


class TestPerformOnMainThread:
    def test_full_queue_logs_dropped_callback(self, monkeypatch, capsys):
        full = queue.Queue(maxsize=1)
        full.put_nowait(lambda: None)
        monkeypatch.setattr(overlay, "_callback_queue", full)
        monkeypatch.setattr(overlay, "_import_macos", lambda: None)

        def apply_update():
            pass

        overlay.perform_on_main_thread(apply_update)
        out = capsys.readouterr().out
        assert "Main-thread queue full, dropped apply_update" in out
        assert full.qsize() == 1
