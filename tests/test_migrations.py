from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from db.models.budget import BudgetTransactionRow

_ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "libs/db/alembic"


def _alembic_config() -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(_ALEMBIC_DIR))
    return cfg


def test_migrations_build_the_orm_schema(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    url = f"sqlite+pysqlite:///{tmp_path / 'migrated.sqlite3'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.chdir(tmp_path)
    cfg = _alembic_config()

    command.upgrade(cfg, "head")

    engine = create_engine(url)
    try:
        insp = inspect(engine)
        columns = {c["name"] for c in insp.get_columns("budget_transactions")}
        assert columns == {c.name for c in BudgetTransactionRow.__table__.columns}
        indexes = {i["name"] for i in insp.get_indexes("budget_transactions")}
        assert {"ix_bt_budget_code", "ix_bt_status", "ix_bt_stage"} <= indexes

        command.downgrade(cfg, "base")
        assert "budget_transactions" not in inspect(engine).get_table_names()
    finally:
        engine.dispose()
