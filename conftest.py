"""Pytest configuration - ensures the project root is importable."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))


@pytest.fixture(autouse=True)
def _isolated_store(tmp_path, monkeypatch):
    """Point every default MatchStore at a throwaway database - never touch ./gazette.db."""
    monkeypatch.setenv("GAZETTE_DB_PATH", str(tmp_path / "gazette.db"))
    yield
