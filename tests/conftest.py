"""Shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def aicommand_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the configuration directory at a fresh temporary directory."""
    home = tmp_path / "aicommand-home"
    monkeypatch.setenv("AICOMMAND_HOME", str(home))
    monkeypatch.delenv("AICOMMAND_MODEL", raising=False)
    return home
