"""Fixtures shared by CLI tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from showroom.cli.main import app


@pytest.fixture(autouse=True)
def _isolated_project(tmp_path: Path, monkeypatch):
    """Run every command from tmp_path with no global config, no env overrides and wide output."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("showroom.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    monkeypatch.delenv("SHOWROOM_BASE_URL", raising=False)
    monkeypatch.delenv("SHOWROOM_DB", raising=False)
    monkeypatch.setenv("COLUMNS", "400")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An initialized showroom project in tmp_path."""
    result = CliRunner().invoke(app, ["init", str(tmp_path), "--base-url", "https://proposals.example.com/"])
    assert result.exit_code == 0, result.output
    return tmp_path
