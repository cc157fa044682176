from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from budget_monitoring.maintenance import (
    TRANSACTIONS_COLLECTION,
    build_backup,
    dump_json,
    load_backup,
    restore_records,
    wipe_records,
)
from budget_monitoring.persistence import SqlTransactionStore
from db.client import session_scope
from tests.helpers.db import bootstrap_sqlite_db, seed_records
from tests.helpers.records import make_record


def test_backup_file_layout(database_url: str, tmp_path: Path):
    seed_records(database_url, [make_record(budget_code="A"), make_record(budget_code="B")])

    with session_scope(database_url=database_url) as session:
        backup = build_backup(session, exported_by="admin", fiscal_year=2025)
    path = dump_json(tmp_path / "backups" / "fy2025.json", backup)

    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["metadata"]["fiscal_year"] == 2025
    assert doc["metadata"]["exported_by"] == "admin"
    assert doc["metadata"]["format_version"] == 1
    assert doc["metadata"]["total_records"] == 2
    records = doc["collections"][TRANSACTIONS_COLLECTION]
    assert sorted(r["budget_code"] for r in records) == ["A", "B"]
    assert all(r["id"] for r in records)
    assert not (tmp_path / "backups" / "fy2025.json.tmp").exists()


def test_restore_into_empty_database_assigns_new_ids(database_url: str, tmp_path: Path):
    [old_id] = seed_records(
        database_url,
        [make_record(budget_code="A", beneficiaries_male=2, beneficiaries_female=3, beneficiaries_total=5)],
    )
    with session_scope(database_url=database_url) as session:
        path = dump_json(tmp_path / "b.json", build_backup(session, exported_by="admin"))

    target_url = bootstrap_sqlite_db(tmp_path / "restored.sqlite3")
    with session_scope(database_url=target_url) as session:
        assert restore_records(session, load_backup(path)) == 1

    [restored] = SqlTransactionStore(target_url).list_records()
    assert restored.id != old_id
    assert restored.budget_code == "A"
    assert restored.beneficiaries_total == 5


def test_restore_accepts_plain_mapping(database_url: str):
    payload = {
        "metadata": {"exported_at": "2025-12-31T00:00:00Z", "exported_by": "admin"},
        "collections": {
            TRANSACTIONS_COLLECTION: [
                make_record(budget_code="Z").model_dump(mode="json") | {"id": "old"}
            ]
        },
    }
    with session_scope(database_url=database_url) as session:
        assert restore_records(session, payload) == 1
    assert [r.budget_code for r in SqlTransactionStore(database_url).list_records()] == ["Z"]


def test_corrupt_entry_rolls_back_whole_restore(database_url: str):
    good = make_record(budget_code="OK").model_dump(mode="json")
    bad = {**good, "budget_code": "BAD", "status": "Lost"}
    payload = {
        "metadata": {"exported_at": "2025-12-31T00:00:00Z", "exported_by": "admin"},
        "collections": {TRANSACTIONS_COLLECTION: [good, bad]},
    }
    with pytest.raises(ValidationError):
        with session_scope(database_url=database_url) as session:
            restore_records(session, payload)
    assert SqlTransactionStore(database_url).list_records() == []


def test_wipe_deletes_everything(database_url: str):
    seed_records(database_url, [make_record(), make_record(), make_record()])
    with session_scope(database_url=database_url) as session:
        assert wipe_records(session) == 3
    assert SqlTransactionStore(database_url).list_records() == []
