"""Aggregations and filtering behind the monitoring dashboard.

All functions are pure over an in-memory sequence of records, typically the
result of ``SqlTransactionStore.list_records`` or the cached reader.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from typing import Any

from .constants import campus_display_name
from .models import BudgetTransactionRecord, WorkflowStage


@dataclass(frozen=True, slots=True)
class FinancialSummary:
    total_requested: float = 0.0
    total_obligated: float = 0.0
    total_disbursed: float = 0.0
    total_approved: float = 0.0


@dataclass(frozen=True, slots=True)
class CampusTotals:
    campus_id: str
    name: str
    count: int
    requested: float
    obligated: float
    disbursed: float


def stage_counts(records: Iterable[BudgetTransactionRecord]) -> dict[WorkflowStage, int]:
    """Record count per stage; every stage is present, zero when unused."""

    counts = Counter(r.stage for r in records)
    return {stage: counts.get(stage, 0) for stage in WorkflowStage}


def financial_summary(records: Iterable[BudgetTransactionRecord]) -> FinancialSummary:
    requested = obligated = disbursed = approved = 0.0
    for r in records:
        requested += r.amount_requested or 0.0
        obligated += r.obligation_amount or 0.0
        disbursed += r.dv_amount or 0.0
        approved += r.approved_amount or 0.0
    return FinancialSummary(
        total_requested=round(requested, 2),
        total_obligated=round(obligated, 2),
        total_disbursed=round(disbursed, 2),
        total_approved=round(approved, 2),
    )


def campus_summary(records: Iterable[BudgetTransactionRecord]) -> list[CampusTotals]:
    """Per-campus totals ordered by campus id."""

    buckets: dict[str, list[BudgetTransactionRecord]] = {}
    for r in records:
        buckets.setdefault(r.campus_id, []).append(r)
    out: list[CampusTotals] = []
    for campus_id in sorted(buckets):
        group = buckets[campus_id]
        fs = financial_summary(group)
        out.append(
            CampusTotals(
                campus_id=campus_id,
                name=campus_display_name(campus_id),
                count=len(group),
                requested=fs.total_requested,
                obligated=fs.total_obligated,
                disbursed=fs.total_disbursed,
            )
        )
    return out


def _search_fields(r: BudgetTransactionRecord) -> tuple[str, ...]:
    return (
        r.budget_code,
        r.program_name,
        r.project_name,
        r.activity_name,
        r.campus_id,
        str(r.status),
        r.tracking_no or "",
        r.supplier_payee or "",
    )


def search(
    records: Sequence[BudgetTransactionRecord],
    text: str = "",
    stage: WorkflowStage | str | None = None,
) -> list[BudgetTransactionRecord]:
    """Filter by stage and a case-insensitive substring over identifying fields.

    An empty ``text`` matches everything; ``stage=None`` keeps all stages.
    """

    wanted = WorkflowStage(stage) if stage is not None else None
    needle = text.strip().lower()
    out: list[BudgetTransactionRecord] = []
    for r in records:
        if wanted is not None and r.stage != wanted:
            continue
        if needle and not any(needle in f.lower() for f in _search_fields(r)):
            continue
        out.append(r)
    return out


def build_summary(records: Sequence[BudgetTransactionRecord]) -> dict[str, Any]:
    """JSON-friendly dashboard payload (counts, money totals, campuses)."""

    return {
        "total_records": len(records),
        "stage_counts": {str(k): v for k, v in stage_counts(records).items()},
        "financial": asdict(financial_summary(records)),
        "campuses": [asdict(c) for c in campus_summary(records)],
    }


__all__ = [
    "CampusTotals",
    "FinancialSummary",
    "build_summary",
    "campus_summary",
    "financial_summary",
    "search",
    "stage_counts",
]
