"""Shared fixtures for the indexable test suite."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture()
def repo_root() -> Path:
    """Return the repository root directory."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture()
def example_config(repo_root: Path) -> Path:
    """Return path to the example callback configuration shipped with the repo."""
    return repo_root / "config" / "indexable.example.yaml"
