# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""OpenAI chat completions provider."""

from .provider import OpenAIProvider

__all__ = ["OpenAIProvider"]
