"""Alembic migration tests.

File named test_zzz_alembic.py to sort LAST in pytest collection order.
Runs only against PostgreSQL (LC_TEST_DATABASE_URL).
"""

import os
import subprocess
from pathlib import Path

import pytest

TEST_DATABASE_URL = os.environ.get("LC_TEST_DATABASE_URL", "")

pytestmark = [
    pytest.mark.postgres,
    pytest.mark.skipif(not TEST_DATABASE_URL.startswith("postgresql"), reason="needs LC_TEST_DATABASE_URL pointing at PostgreSQL"),
]

ROOT = Path(__file__).resolve().parents[1]


def _alembic(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["alembic", *args],
        capture_output=True,
        text=True,
        cwd=ROOT,
        env={**os.environ, "LC_DATABASE_URL": TEST_DATABASE_URL},
    )


def test_alembic_upgrade_head() -> None:
    """alembic upgrade head succeeds without errors."""
    result = _alembic("upgrade", "head")
    assert result.returncode == 0, f"alembic upgrade failed: {result.stderr}"


def test_alembic_current_shows_head() -> None:
    """alembic current shows the latest revision."""
    result = _alembic("current")
    assert result.returncode == 0
    assert "001_initial_schema" in result.stdout
