"""DB helpers for tests: bootstrap a temporary SQLite DB and seed records."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from db.models.budget import BudgetTransactionRow
from sqlalchemy import text as sql_text

from budget_monitoring.models import BudgetTransactionRecord
from budget_monitoring.persistence import insert_record


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine)
    _assert_transactions_schema_in_sync(url)

    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def seed_records(database_url: str, records: Iterable[BudgetTransactionRecord]) -> list[str]:
    """Insert ``records`` in one transaction and return their ids in order."""

    with session_scope(database_url=database_url) as session:
        return [insert_record(session, r) for r in records]


def _assert_transactions_schema_in_sync(database_url: str) -> None:
    """Quick sanity check: ORM column set matches SQLite table column set."""

    expected = {c.name for c in BudgetTransactionRow.__table__.columns}
    with session_scope(database_url=database_url) as session:
        rows = session.execute(sql_text("PRAGMA table_info('budget_transactions')")).fetchall()
        got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
    missing = expected - got
    extra = got - expected
    assert not missing and not extra, (
        f"budget_transactions schema drift: missing={missing or '∅'}, extra={extra or '∅'}"
    )
