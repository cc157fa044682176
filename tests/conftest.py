"""Pytest configuration for test isolation.

The package reads its configuration from the environment
(``DATABASE_URL``, ``BUDGET_MONITORING_*``) and memoizes one SQLAlchemy
engine per URL. To keep tests hermetic, an autouse fixture clears those
variables, resets package logging and disposes cached engines after every
test so each test's temporary SQLite file is released.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from db.client import dispose_engines
from budget_monitoring.logging_setup import reset_logging
from tests.helpers.db import bootstrap_sqlite_db

_ENV_VARS = (
    "DATABASE_URL",
    "BUDGET_MONITORING_USER",
    "BUDGET_MONITORING_LOG_LEVEL",
    "BUDGET_MONITORING_CACHE_TTL",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    reset_logging()
    dispose_engines()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """A fresh file-backed SQLite database with the budget schema."""

    return bootstrap_sqlite_db(tmp_path / "budget.sqlite3")
