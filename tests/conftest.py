# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""Shared fixtures. Every test runs against a config directory under tmp_path."""

import pytest

from language_suggestion import cli
from language_suggestion import config as cfg_mod
from language_suggestion import placement, prompt_library


@pytest.fixture(autouse=True)
def config_file(tmp_path, monkeypatch):
    """Point every module that reads CONFIG_DIR at tmp_path and reset the singleton."""
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    cfg_file = cfg_dir / "config.toml"
    monkeypatch.setattr(cfg_mod, "CONFIG_DIR", cfg_dir)
    monkeypatch.setattr(cfg_mod, "CONFIG_FILE", cfg_file)
    monkeypatch.setattr(placement, "CONFIG_DIR", cfg_dir)
    monkeypatch.setattr(prompt_library, "CONFIG_DIR", cfg_dir)
    monkeypatch.setattr(cli, "CONFIG_FILE", cfg_file)
    monkeypatch.setattr(cli, "LOCK_FILE", cfg_dir / "service.lock")
    monkeypatch.setattr(cli, "LOG_FILE", cfg_dir / "service.log")
    cfg_mod.reset_config()
    yield cfg_file
    cfg_mod.reset_config()


@pytest.fixture
def write_config(config_file):
    """Write TOML to the isolated config file and return the freshly loaded Config."""
    def _write(toml: str):
        config_file.write_text(toml, encoding="utf-8")
        cfg_mod.reset_config()
        return cfg_mod.get_config()
    return _write
