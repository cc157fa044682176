"""Persistence integration for budget_monitoring.

Functions here read and write budget transactions in the shared database
owned by ``libs/db``. They take an open SQLAlchemy ``Session`` (see
``db.client.session_scope``) so callers decide the transaction boundary.

:class:`SqlTransactionStore` is the storage collaborator used by the import
driver: it opens one ``session_scope`` per call, so each imported row is
committed on its own and a failing row never rolls back earlier ones.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.client import session_scope
from db.models.budget import BudgetTransactionRow

from .logging_setup import get_logger
from .models import (
    BudgetTransactionRecord,
    StoredTransaction,
    TransactionStatus,
    WorkflowStage,
)

_logger = get_logger("budget_monitoring.persistence")

# Columns owned by the database, never written from a record.
_DB_MANAGED = frozenset({"id", "created_at", "updated_at"})


class RecordNotFoundError(LookupError):
    """No budget transaction exists with the requested id."""


class TransactionStore(Protocol):
    def create_record(self, record: BudgetTransactionRecord) -> str: ...


# ----------------------------------------------------------------------------
# Row <-> record conversion
# ----------------------------------------------------------------------------


def _record_columns(record: BudgetTransactionRecord) -> dict[str, Any]:
    values = record.model_dump()
    # Store enum members as their plain string values
    values["status"] = str(record.status)
    values["stage"] = str(record.stage)
    return values


def row_to_stored(row: BudgetTransactionRow) -> StoredTransaction:
    data = {c.name: getattr(row, c.name) for c in BudgetTransactionRow.__table__.columns}
    return StoredTransaction.model_validate(data)


# ----------------------------------------------------------------------------
# Session-level operations
# ----------------------------------------------------------------------------


def insert_record(session: Session, record: BudgetTransactionRecord) -> str:
    """Add ``record`` to the session and flush; returns the new id."""

    row = BudgetTransactionRow(**_record_columns(record))
    session.add(row)
    session.flush()
    return row.id


def fetch_row(session: Session, record_id: str) -> BudgetTransactionRow:
    row = session.get(BudgetTransactionRow, record_id)
    if row is None:
        raise RecordNotFoundError(f"Budget transaction not found: {record_id}")
    return row


def query_records(
    session: Session,
    *,
    stage: WorkflowStage | str | None = None,
    status: TransactionStatus | str | None = None,
    created_by: str | None = None,
) -> list[StoredTransaction]:
    """Return matching records, most recently received first."""

    stmt = select(BudgetTransactionRow)
    if stage is not None:
        stmt = stmt.where(BudgetTransactionRow.stage == str(WorkflowStage(stage)))
    if status is not None:
        stmt = stmt.where(BudgetTransactionRow.status == str(TransactionStatus(status)))
    if created_by is not None:
        stmt = stmt.where(BudgetTransactionRow.created_by == created_by)
    stmt = stmt.order_by(BudgetTransactionRow.date_received.desc(), BudgetTransactionRow.id)
    return [row_to_stored(r) for r in session.scalars(stmt)]


def apply_updates(
    session: Session, record_id: str, fields: Mapping[str, Any]
) -> StoredTransaction:
    """Validate ``fields`` against the full record, then write them.

    The merged record is re-validated so an edit cannot break the beneficiary
    or amount invariants. Unknown or database-managed fields are rejected
    with ``ValueError``.
    """

    managed = _DB_MANAGED.intersection(fields)
    if managed:
        raise ValueError(f"Fields are managed by the database: {', '.join(sorted(managed))}")
    row = fetch_row(session, record_id)
    current = row_to_stored(row).model_dump(exclude=set(_DB_MANAGED))
    merged = BudgetTransactionRecord.model_validate({**current, **fields})
    columns = _record_columns(merged)
    for name in fields:
        setattr(row, name, columns[name])
    session.flush()
    return row_to_stored(row)


# ----------------------------------------------------------------------------
# Store
# ----------------------------------------------------------------------------


class SqlTransactionStore:
    """SQLAlchemy-backed storage collaborator.

    ``database_url`` defaults to ``DATABASE_URL`` from the environment.
    """

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url

    def create_record(self, record: BudgetTransactionRecord) -> str:
        with session_scope(database_url=self.database_url) as session:
            record_id = insert_record(session, record)
        _logger.debug("store:created id=%s code=%r", record_id, record.budget_code)
        return record_id

    def get_record(self, record_id: str) -> StoredTransaction:
        with session_scope(database_url=self.database_url) as session:
            return row_to_stored(fetch_row(session, record_id))

    def list_records(
        self,
        *,
        stage: WorkflowStage | str | None = None,
        status: TransactionStatus | str | None = None,
        created_by: str | None = None,
    ) -> list[StoredTransaction]:
        with session_scope(database_url=self.database_url) as session:
            return query_records(session, stage=stage, status=status, created_by=created_by)

    def update_record(self, record_id: str, **fields: Any) -> StoredTransaction:
        with session_scope(database_url=self.database_url) as session:
            return apply_updates(session, record_id, fields)


__all__ = [
    "RecordNotFoundError",
    "SqlTransactionStore",
    "TransactionStore",
    "apply_updates",
    "fetch_row",
    "insert_record",
    "query_records",
    "row_to_stored",
]
