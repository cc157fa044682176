"""Administrative maintenance: JSON backup, restore and the year-end wipe.

Backup file layout (``indent=2`` JSON)::

    {
      "metadata": {"fiscal_year": 2025, "exported_at": "...", "exported_by": "...",
                   "format_version": 1, "total_records": 42},
      "collections": {"budget_transactions": [{...}, ...]}
    }

Restoring inserts every record as a new row (fresh ids); it does not merge
with or replace rows that are already present. The wipe deletes every budget
transaction and is meant to run right after a backup at fiscal-year close.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from os import PathLike
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from db.models.budget import BudgetTransactionRow

from .logging_setup import get_logger
from .models import BudgetTransactionRecord
from .persistence import insert_record, row_to_stored

_logger = get_logger("budget_monitoring.maintenance")

BACKUP_FORMAT_VERSION = 1
TRANSACTIONS_COLLECTION = "budget_transactions"
_DB_MANAGED_KEYS = ("id", "created_at", "updated_at")


class BackupMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    fiscal_year: int | None = None
    exported_at: datetime
    exported_by: str
    format_version: int = BACKUP_FORMAT_VERSION
    total_records: int = 0


class BackupData(BaseModel):
    metadata: BackupMetadata
    collections: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)


def export_records(session: Session) -> list[dict[str, Any]]:
    """Every stored transaction as a JSON-safe dict, oldest first."""

    rows = session.scalars(
        select(BudgetTransactionRow).order_by(
            BudgetTransactionRow.created_at, BudgetTransactionRow.id
        )
    )
    return [row_to_stored(r).model_dump(mode="json") for r in rows]


def build_backup(
    session: Session, *, exported_by: str, fiscal_year: int | None = None
) -> BackupData:
    records = export_records(session)
    return BackupData(
        metadata=BackupMetadata(
            fiscal_year=fiscal_year,
            exported_at=datetime.now(UTC),
            exported_by=exported_by,
            total_records=len(records),
        ),
        collections={TRANSACTIONS_COLLECTION: records},
    )


def dump_json(path: str | PathLike[str], backup: BackupData) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    tmp.write_text(backup.model_dump_json(indent=2), encoding="utf-8")
    tmp.replace(p)
    _logger.info("backup:written path=%s records=%d", p, backup.metadata.total_records)
    return p


def load_backup(path: str | PathLike[str]) -> BackupData:
    return BackupData.model_validate_json(Path(path).read_text(encoding="utf-8"))


def restore_records(session: Session, payload: BackupData | Mapping[str, Any]) -> int:
    """Insert the backed-up transactions; returns how many were restored.

    Records are validated like imported ones, so a corrupt entry raises
    ``pydantic.ValidationError`` and the caller's session scope rolls the
    whole restore back.
    """

    backup = payload if isinstance(payload, BackupData) else BackupData.model_validate(payload)
    docs = backup.collections.get(TRANSACTIONS_COLLECTION, [])
    for doc in docs:
        data = {k: v for k, v in doc.items() if k not in _DB_MANAGED_KEYS}
        insert_record(session, BudgetTransactionRecord.model_validate(data))
    _logger.info("restore:done records=%d", len(docs))
    return len(docs)


def wipe_records(session: Session) -> int:
    """Delete every budget transaction; returns the number of rows removed."""

    result = session.execute(delete(BudgetTransactionRow))
    count = result.rowcount or 0
    _logger.warning("wipe:deleted records=%d", count)
    return count


__all__ = [
    "BACKUP_FORMAT_VERSION",
    "BackupData",
    "BackupMetadata",
    "TRANSACTIONS_COLLECTION",
    "build_backup",
    "dump_json",
    "export_records",
    "load_backup",
    "restore_records",
    "wipe_records",
]
