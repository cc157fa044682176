"""Approval queue transitions.

A proposal under review (``Draft`` or ``Evaluation``) can be approved
(-> ``Proposal``), returned for revision (-> ``Returned``) or rejected
(-> ``Rejected``). Every decision stamps ``approved_by``/``approved_at`` with
the reviewer and time, whatever the outcome.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import StoredTransaction, TransactionStatus
from .persistence import apply_updates, fetch_row, query_records

_logger = get_logger("budget_monitoring.approvals")

REVIEWABLE_STATUSES = frozenset({TransactionStatus.DRAFT, TransactionStatus.EVALUATION})


def _decide(
    session: Session,
    record_id: str,
    user_id: str,
    target: TransactionStatus,
    now: datetime | None,
) -> StoredTransaction:
    if not user_id:
        raise ValueError("A reviewer user id is required")
    current = TransactionStatus(fetch_row(session, record_id).status)
    if current not in REVIEWABLE_STATUSES:
        raise ValueError(
            f"Cannot move {record_id} from {current.value} to {target.value}; "
            "only Draft or Evaluation records are reviewable"
        )
    updated = apply_updates(
        session,
        record_id,
        {
            "status": target,
            "approved_by": user_id,
            "approved_at": now or datetime.now(UTC),
        },
    )
    _logger.info(
        "approval:%s id=%s by=%s (was %s)", target.value, record_id, user_id, current.value
    )
    return updated


def approve(
    session: Session, record_id: str, user_id: str, *, now: datetime | None = None
) -> StoredTransaction:
    return _decide(session, record_id, user_id, TransactionStatus.PROPOSAL, now)


def return_for_revision(
    session: Session, record_id: str, user_id: str, *, now: datetime | None = None
) -> StoredTransaction:
    return _decide(session, record_id, user_id, TransactionStatus.RETURNED, now)


def reject(
    session: Session, record_id: str, user_id: str, *, now: datetime | None = None
) -> StoredTransaction:
    return _decide(session, record_id, user_id, TransactionStatus.REJECTED, now)


def pending(session: Session) -> list[StoredTransaction]:
    """Records waiting for a decision (status ``Evaluation``), newest first."""

    return query_records(session, status=TransactionStatus.EVALUATION)


__all__ = [
    "REVIEWABLE_STATUSES",
    "approve",
    "pending",
    "reject",
    "return_for_revision",
]
