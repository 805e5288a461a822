# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""OpenRouter provider (OpenAI-compatible)."""

from .provider import OpenRouterProvider

__all__ = ["OpenRouterProvider"]
