from __future__ import annotations

from pathlib import Path

import pytest

import budget_monitoring as bm
from budget_monitoring.persistence import SqlTransactionStore
from tests.helpers.sheets import MONITORING_HEADERS, csv_text


def _monitoring_file(tmp_path: Path) -> Path:
    path = tmp_path / "ors.csv"
    path.write_text(
        csv_text(
            MONITORING_HEADERS,
            [
                {"Budget Code": "PB-EXT-001", "Activity": "Camp", "Allocation": "5,000"},
                {"Budget Code": "PB-EXT-002", "Activity": "Fair", "Allocation": "2,500"},
            ],
        ),
        encoding="utf-8",
    )
    return path


def test_detect_file(tmp_path: Path):
    result = bm.detect_file(_monitoring_file(tmp_path))
    assert result.shape is bm.WorkflowStage.MONITORING
    assert not result.low_confidence


def test_import_file_into_database(tmp_path: Path, database_url: str):
    progress: list[tuple[int, int]] = []
    detected, outcome = bm.import_file(
        _monitoring_file(tmp_path),
        "user-1",
        SqlTransactionStore(database_url),
        on_progress=lambda done, total: progress.append((done, total)),
    )

    assert detected.shape is bm.WorkflowStage.MONITORING
    assert (outcome.success_count, outcome.failure_count) == (2, 0)
    assert progress[-1] == (2, 2)
    stored = SqlTransactionStore(database_url).list_records()
    assert {r.id for r in stored} == set(outcome.created_ids)
    assert {r.status for r in stored} == {bm.TransactionStatus.OBLIGATED}


def test_import_file_with_shape_override(tmp_path: Path, database_url: str):
    _, outcome = bm.import_file(
        _monitoring_file(tmp_path), "u", SqlTransactionStore(database_url), shape="bur2"
    )
    assert outcome.success_count == 2
    stages = {r.stage for r in SqlTransactionStore(database_url).list_records()}
    assert stages == {bm.WorkflowStage.BUR2}


def test_import_file_missing(tmp_path: Path, database_url: str):
    with pytest.raises(bm.ImportFileError):
        bm.import_file(tmp_path / "nope.csv", "u", SqlTransactionStore(database_url))
