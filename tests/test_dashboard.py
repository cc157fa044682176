from __future__ import annotations

from budget_monitoring.dashboard import (
    CampusTotals,
    build_summary,
    campus_summary,
    financial_summary,
    search,
    stage_counts,
)
from budget_monitoring.models import TransactionStatus, WorkflowStage
from tests.helpers.records import make_record

RECORDS = [
    make_record(budget_code="PB-EXT-001", amount_requested=1000.0),
    make_record(
        budget_code="LEM-CES-001",
        campus_id="lemery",
        stage=WorkflowStage.MONITORING,
        status=TransactionStatus.OBLIGATED,
        activity_name="Tree Planting",
        amount_requested=500.25,
        obligation_amount=400.0,
        dv_amount=150.5,
        supplier_payee="Green Nursery",
    ),
    make_record(
        budget_code="PB-EXT-002",
        stage=WorkflowStage.BUR2,
        status=TransactionStatus.DISBURSED,
        amount_requested=250.0,
        approved_amount=240.0,
        dv_amount=200.0,
    ),
]


def test_stage_counts_include_every_stage():
    counts = stage_counts(RECORDS)
    assert list(counts) == list(WorkflowStage)
    assert counts[WorkflowStage.PROPOSAL] == 1
    assert counts[WorkflowStage.MONITORING] == 1
    assert counts[WorkflowStage.BUR2] == 1
    assert counts[WorkflowStage.WFP] == 0


def test_financial_summary_treats_missing_amounts_as_zero():
    fs = financial_summary(RECORDS)
    assert fs.total_requested == 1750.25
    assert fs.total_obligated == 400.0
    assert fs.total_disbursed == 350.5
    assert fs.total_approved == 240.0


def test_financial_summary_of_nothing():
    assert financial_summary([]).total_requested == 0.0


def test_campus_summary_groups_by_campus():
    summary = campus_summary(RECORDS)
    assert [c.campus_id for c in summary] == ["lemery", "pb"]
    assert summary[1] == CampusTotals(
        campus_id="pb",
        name="Pablo Borbon",
        count=2,
        requested=1250.0,
        obligated=0.0,
        disbursed=200.0,
    )


def test_search_matches_identifying_fields_case_insensitively():
    assert [r.budget_code for r in search(RECORDS, "tree")] == ["LEM-CES-001"]
    assert [r.budget_code for r in search(RECORDS, "green nursery")] == ["LEM-CES-001"]
    assert [r.budget_code for r in search(RECORDS, "disbursed")] == ["PB-EXT-002"]
    assert len(search(RECORDS, "pb-ext")) == 2


def test_search_by_stage_and_text():
    assert search(RECORDS, "", stage="bur2") == [RECORDS[2]]
    assert search(RECORDS, "tree", stage=WorkflowStage.PROPOSAL) == []
    assert search(RECORDS) == RECORDS


def test_build_summary_is_json_friendly():
    summary = build_summary(RECORDS)
    assert summary["total_records"] == 3
    assert summary["stage_counts"]["monitoring"] == 1
    assert summary["financial"]["total_disbursed"] == 350.5
    assert summary["campuses"][0]["name"] == "Lemery"
