from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


# Mirrored by budget_monitoring.models.TransactionStatus / WorkflowStage. The
# CHECK constraints below keep rows written outside the application honest.
STATUS_VALUES: tuple[str, ...] = (
    "Draft",
    "Evaluation",
    "Proposal",
    "PR",
    "Obligated",
    "Disbursed",
    "Rejected",
    "Returned",
)
STAGE_VALUES: tuple[str, ...] = ("wfp", "proposal", "monitoring", "supplemental", "bur1", "bur2")


def _in_list(column: str, values: tuple[str, ...]) -> str:
    quoted = ",".join(f"'{v}'" for v in values)
    return f"{column} in ({quoted})"


# ---------------------------
# Core: budget_transactions
# ---------------------------


class BudgetTransactionRow(Base):
    __tablename__ = "budget_transactions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    budget_code: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    status: Mapped[str] = mapped_column(String, nullable=False)
    stage: Mapped[str] = mapped_column(String, nullable=False)
    date_received: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    program_name: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    project_name: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    activity_name: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    campus_id: Mapped[str] = mapped_column(String, nullable=False)
    college_id: Mapped[str | None] = mapped_column(String, nullable=True)

    beneficiaries_male: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    beneficiaries_female: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    beneficiaries_total: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    # Free text; proposals carry ranges such as "March 1-31, 2025".
    implementation_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    mother_proposal_id: Mapped[str | None] = mapped_column(String, nullable=True)
    is_consolidated_pr: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    other_funding: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount_requested: Mapped[float] = mapped_column(
        Float, nullable=False, server_default=text("0")
    )
    is_supplemental: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    fund_category: Mapped[str] = mapped_column(String, nullable=False)
    funding_source: Mapped[str] = mapped_column(String, nullable=False)
    tracking_no: Mapped[str | None] = mapped_column(String, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Stage-specific financial milestones (obligation -> PR -> disbursement).
    all_obs_no: Mapped[str | None] = mapped_column(String, nullable=True)
    obligation_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    obligation_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    supplier_payee: Mapped[str | None] = mapped_column(Text, nullable=True)
    particulars: Mapped[str | None] = mapped_column(Text, nullable=True)
    dv_no: Mapped[str | None] = mapped_column(String, nullable=True)
    dv_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    pr_no: Mapped[str | None] = mapped_column(String, nullable=True)
    pr_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    approved_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    balance: Mapped[float | None] = mapped_column(Float, nullable=True)

    attachments: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    created_by: Mapped[str] = mapped_column(String, nullable=False)
    approved_by: Mapped[str | None] = mapped_column(String, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint(_in_list("status", STATUS_VALUES), name="ck_bt_status"),
        CheckConstraint(_in_list("stage", STAGE_VALUES), name="ck_bt_stage"),
        CheckConstraint(
            "beneficiaries_male >= 0 AND beneficiaries_female >= 0 AND beneficiaries_total >= 0",
            name="ck_bt_beneficiaries_non_negative",
        ),
        CheckConstraint("amount_requested >= 0", name="ck_bt_amount_non_negative"),
        Index("ix_bt_budget_code", "budget_code"),
        Index("ix_bt_status", "status"),
        Index("ix_bt_stage", "stage"),
        Index("ix_bt_date_received", "date_received"),
    )


__all__ = [
    "Base",
    "BudgetTransactionRow",
    "STAGE_VALUES",
    "STATUS_VALUES",
]
