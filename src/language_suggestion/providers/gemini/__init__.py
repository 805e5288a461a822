# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""Google Gemini provider."""

from .provider import GeminiProvider

__all__ = ["GeminiProvider"]
