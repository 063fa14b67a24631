"""Shared test fixtures for flowboard tests."""

import sys
from pathlib import Path

import pytest

# Ensure the package is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def no_env_api_url(monkeypatch):
    monkeypatch.delenv("FLOWBOARD_API_URL", raising=False)
