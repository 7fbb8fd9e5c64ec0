"""Shared fixtures for CLI execution tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> dict[str, str]:
    """Point the CLI at a fake server with a token and a private config dir."""
    env = {
        "HUBWATCH_API_URL": "http://hub.test",
        "HUBWATCH_ACCESS_TOKEN": "test-token-123",
        "HUBWATCH_CONFIG_DIR": str(tmp_path / "config"),
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    for key in ("HUBWATCH_USERNAME", "HUBWATCH_PASSWORD"):
        monkeypatch.delenv(key, raising=False)
    return env
