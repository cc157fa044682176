"""Single proposal submission.

A submitted proposal gets the next budget code for its campus/program pair
and enters the approval queue with status ``Evaluation``. Code generation and
the insert share one session, so the code is stored in the same transaction
that read the existing codes.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy.orm import Session

from .budget_codes import generate_budget_code
from .logging_setup import get_logger
from .models import (
    BudgetTransactionRecord,
    StoredTransaction,
    TransactionStatus,
    WorkflowStage,
)
from .normalizers import resolve_campus_id
from .persistence import fetch_row, insert_record, row_to_stored

_logger = get_logger("budget_monitoring.proposals")


def submit_proposal(
    session: Session,
    *,
    program_name: str,
    project_name: str,
    activity_name: str,
    campus: str,
    user_id: str,
    college_id: str | None = None,
    beneficiaries_male: int = 0,
    beneficiaries_female: int = 0,
    amount_requested: float = 0.0,
    implementation_date: str | None = None,
    other_funding: str | None = None,
    remarks: str | None = None,
    now: datetime | None = None,
) -> StoredTransaction:
    """Create one proposal under evaluation and return the stored record.

    ``campus`` may be an id or a display name. The beneficiary total is
    always male + female. Raises ``ValueError`` for a missing user or name
    and ``pydantic.ValidationError`` for negative counts or amounts.
    """

    if not user_id:
        raise ValueError("A submitting user id is required")
    missing = [
        label
        for label, value in (
            ("program", program_name),
            ("project", project_name),
            ("activity", activity_name),
        )
        if not (value or "").strip()
    ]
    if missing:
        raise ValueError(f"Proposal is missing a {', '.join(missing)} name")

    campus_id = resolve_campus_id(campus)
    record = BudgetTransactionRecord(
        budget_code=generate_budget_code(session, campus_id, program_name),
        status=TransactionStatus.EVALUATION,
        stage=WorkflowStage.PROPOSAL,
        date_received=now or datetime.now(UTC),
        program_name=program_name,
        project_name=project_name,
        activity_name=activity_name,
        campus_id=campus_id,
        college_id=college_id,
        beneficiaries_male=beneficiaries_male,
        beneficiaries_female=beneficiaries_female,
        beneficiaries_total=beneficiaries_male + beneficiaries_female,
        amount_requested=amount_requested,
        implementation_date=implementation_date,
        other_funding=other_funding,
        remarks=remarks,
        created_by=user_id,
    )
    record_id = insert_record(session, record)
    _logger.info("proposal:submitted id=%s code=%s by=%s", record_id, record.budget_code, user_id)
    return row_to_stored(fetch_row(session, record_id))


__all__ = ["submit_proposal"]
