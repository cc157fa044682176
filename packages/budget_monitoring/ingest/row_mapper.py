"""Map one classified spreadsheet row to a :class:`BudgetTransactionRecord`.

Column lookup
-------------
Exports from different offices spell the same column differently ("Budget
Code", "budget_code", "PROGRAMS"...). Each logical field therefore has an
ordered synonym list in :data:`FIELD_SYNONYMS`. :func:`find_value` tries the
synonyms in order and returns the first non-empty cell whose header contains
the synonym (case-insensitive). A synonym written as ``"=name"`` must equal
the header exactly; this keeps short, generic names such as "Amount" from
swallowing "Amount Requested".

Stage rules
-----------
- Beneficiaries are tracked only on work-plan and proposal sheets; every other
  shape writes zeros even when Male/Female columns are present.
- Obligation, disbursement and purchase-request details are read for wfp,
  monitoring, supplemental and bur2 sheets only. bur2 also carries the
  approved (ALOBS) amount and balance; bur1 carries the balance.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime

from ..constants import DEFAULT_FUND_CATEGORY, DEFAULT_FUNDING_SOURCE
from ..models import BudgetTransactionRecord, RawRow, TransactionStatus, WorkflowStage
from ..normalizers import (
    parse_count,
    parse_currency,
    parse_date,
    parse_optional_date,
    parse_yes,
    resolve_campus_id,
    resolve_college_id,
)

FIELD_SYNONYMS: Mapping[str, tuple[str, ...]] = {
    "budget_code": ("budget code", "budget_code", "=budget"),
    "status": ("status", "process", "process monitoring"),
    "date_received": ("date received", "date_received"),
    "program_name": ("program", "programs"),
    "project_name": ("project", "projects"),
    "activity_name": ("activity", "activities", "project_activity"),
    "campus": ("campus",),
    "college": ("college",),
    "beneficiaries_male": ("=male", "beneficiaries male", "beneficiaries_male"),
    "beneficiaries_female": ("female",),
    "beneficiaries_total": ("total ben", "total_ben", "beneficiaries total", "total"),
    "implementation_date": (
        "date of proposed implementation",
        "implementation",
        "implementation_date",
    ),
    "mother_proposal_id": ("mother proposal", "mother"),
    "is_consolidated_pr": ("consolidated pr", "consolidated"),
    "other_funding": ("other funding",),
    "amount_requested": ("amount requested", "amount_requested", "allocation"),
    "is_supplemental": ("supplemental",),
    "fund_category": ("gad/mds", "fund category", "gad"),
    "funding_source": ("fund source", "funding source", "budget source", "source"),
    "tracking_no": ("tracking",),
    "remarks": ("remarks",),
    "all_obs_no": ("allobs", "all obs no", "obs no"),
    "obligation_date": ("obligation date", "=date"),
    "obligation_amount": ("obligation amount", "obligated", "obligations", "=obligation"),
    "supplier_payee": ("supplier", "payee"),
    "particulars": ("particulars",),
    "dv_no": ("dv no", "disbursement voucher", "=dv"),
    "dv_amount": ("dv amount", "=disbursement"),
    "pr_no": ("pr no", "pr_no"),
    "pr_amount": ("pr amount", "=amount"),
    "approved_amount": ("approved amount", "alobs amount", "=approved"),
    "balance": ("balance",),
}

NO_BENEFICIARY_STAGES = frozenset(
    {
        WorkflowStage.MONITORING,
        WorkflowStage.SUPPLEMENTAL,
        WorkflowStage.BUR1,
        WorkflowStage.BUR2,
    }
)
FINANCIAL_DETAIL_STAGES = frozenset(
    {
        WorkflowStage.WFP,
        WorkflowStage.MONITORING,
        WorkflowStage.SUPPLEMENTAL,
        WorkflowStage.BUR2,
    }
)

_STAGE_DEFAULT_STATUS: Mapping[WorkflowStage, TransactionStatus] = {
    WorkflowStage.WFP: TransactionStatus.EVALUATION,
    WorkflowStage.PROPOSAL: TransactionStatus.EVALUATION,
    WorkflowStage.MONITORING: TransactionStatus.OBLIGATED,
    WorkflowStage.SUPPLEMENTAL: TransactionStatus.OBLIGATED,
    WorkflowStage.BUR1: TransactionStatus.PR,
    WorkflowStage.BUR2: TransactionStatus.DISBURSED,
}

# Checked in order; the first keyword contained in the cell wins.
_STATUS_KEYWORDS: tuple[tuple[str, TransactionStatus], ...] = (
    ("draft", TransactionStatus.DRAFT),
    ("evaluat", TransactionStatus.EVALUATION),
    ("reject", TransactionStatus.REJECTED),
    ("return", TransactionStatus.RETURNED),
    ("disburs", TransactionStatus.DISBURSED),
    ("obligat", TransactionStatus.OBLIGATED),
    ("approv", TransactionStatus.PROPOSAL),
)


def _header_matches(header: str, synonym: str) -> bool:
    h = header.strip().lower()
    if synonym.startswith("="):
        return h == synonym[1:]
    return synonym in h


def find_value(row: RawRow, headers: Sequence[str], field: str) -> str | None:
    """Return the first non-empty cell for ``field`` or ``None``.

    Raises ``KeyError`` when ``field`` has no synonym list.
    """

    for synonym in FIELD_SYNONYMS[field]:
        for header in headers:
            if not _header_matches(header, synonym):
                continue
            value = (row.get(header) or "").strip()
            if value:
                return value
    return None


def map_status(raw: str | None, stage: WorkflowStage) -> TransactionStatus:
    """Derive a lifecycle status from free text, else the stage default."""

    s = (raw or "").strip().lower()
    for keyword, status in _STATUS_KEYWORDS:
        if keyword in s:
            return status
    if "pr" in s and "pro" not in s:
        return TransactionStatus.PR
    if s == "proposal":
        return TransactionStatus.EVALUATION
    if s == "monitoring":
        return TransactionStatus.OBLIGATED
    return _STAGE_DEFAULT_STATUS[stage]


def _beneficiaries(row: RawRow, headers: Sequence[str], stage: WorkflowStage) -> tuple[int, int, int]:
    if stage in NO_BENEFICIARY_STAGES:
        return 0, 0, 0
    male = parse_count(find_value(row, headers, "beneficiaries_male"))
    female = parse_count(find_value(row, headers, "beneficiaries_female"))
    if male or female:
        return male, female, male + female
    return 0, 0, parse_count(find_value(row, headers, "beneficiaries_total"))


def map_row(
    row: RawRow,
    headers: Sequence[str],
    stage: WorkflowStage,
    user_id: str,
    *,
    now: datetime | None = None,
) -> BudgetTransactionRecord | None:
    """Build a normalized record from one row, or ``None`` if it is empty noise.

    A row is unmappable when it has no budget code, no activity name and no
    requested amount. Validation errors from the record model propagate to
    the caller (the import driver counts them as row failures).
    """

    stage = WorkflowStage(stage)

    def get(field: str) -> str | None:
        return find_value(row, headers, field)

    budget_code = get("budget_code") or ""
    activity_name = get("activity_name") or ""
    amount_requested = parse_currency(get("amount_requested"))
    if not budget_code and not activity_name and not amount_requested:
        return None

    campus_raw = get("campus")
    college_raw = get("college")
    male, female, total = _beneficiaries(row, headers, stage)

    fields: dict[str, object] = {
        "budget_code": budget_code,
        "status": map_status(get("status"), stage),
        "stage": stage,
        "date_received": parse_date(get("date_received"), now=now),
        "program_name": get("program_name") or "",
        "project_name": get("project_name") or "",
        "activity_name": activity_name,
        "campus_id": resolve_campus_id(campus_raw or college_raw),
        "college_id": resolve_college_id(college_raw or campus_raw),
        "beneficiaries_male": male,
        "beneficiaries_female": female,
        "beneficiaries_total": total,
        "implementation_date": get("implementation_date"),
        "mother_proposal_id": get("mother_proposal_id"),
        "is_consolidated_pr": parse_yes(get("is_consolidated_pr")),
        "other_funding": get("other_funding"),
        "amount_requested": amount_requested,
        "is_supplemental": stage is WorkflowStage.SUPPLEMENTAL
        or parse_yes(get("is_supplemental")),
        "fund_category": get("fund_category") or DEFAULT_FUND_CATEGORY,
        "funding_source": get("funding_source") or DEFAULT_FUNDING_SOURCE,
        "tracking_no": get("tracking_no"),
        "remarks": get("remarks"),
        "created_by": user_id,
    }

    if stage in FINANCIAL_DETAIL_STAGES:
        fields.update(
            all_obs_no=get("all_obs_no"),
            obligation_date=parse_optional_date(get("obligation_date")),
            obligation_amount=parse_currency(get("obligation_amount")),
            supplier_payee=get("supplier_payee"),
            particulars=get("particulars"),
            dv_no=get("dv_no"),
            dv_amount=parse_currency(get("dv_amount")),
            pr_no=get("pr_no"),
            pr_amount=parse_currency(get("pr_amount")),
        )
    if stage is WorkflowStage.BUR2:
        fields["approved_amount"] = parse_currency(get("approved_amount"))
    if stage in (WorkflowStage.BUR1, WorkflowStage.BUR2):
        fields["balance"] = parse_currency(get("balance"))

    return BudgetTransactionRecord.model_validate(fields)


__all__ = [
    "FIELD_SYNONYMS",
    "FINANCIAL_DETAIL_STAGES",
    "NO_BENEFICIARY_STAGES",
    "find_value",
    "map_row",
    "map_status",
]
