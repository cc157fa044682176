# ruff: noqa: I001
"""Budget transactions core table.

Revision ID: 0001_budget_core
Revises: None
Create Date: 2025-10-02
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_budget_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


_STATUSES = ("Draft", "Evaluation", "Proposal", "PR", "Obligated", "Disbursed", "Rejected", "Returned")
_STAGES = ("wfp", "proposal", "monitoring", "supplemental", "bur1", "bur2")


def _in_list(column: str, values: Sequence[str]) -> str:
    return f"{column} in (" + ",".join(f"'{v}'" for v in values) + ")"


def upgrade() -> None:
    op.create_table(
        "budget_transactions",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("budget_code", sa.String(), nullable=False, server_default=sa.text("''")),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("stage", sa.String(), nullable=False),
        sa.Column("date_received", sa.DateTime(timezone=True), nullable=False),
        sa.Column("program_name", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("project_name", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("activity_name", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("campus_id", sa.String(), nullable=False),
        sa.Column("college_id", sa.String(), nullable=True),
        sa.Column("beneficiaries_male", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("beneficiaries_female", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("beneficiaries_total", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("implementation_date", sa.Text(), nullable=True),
        sa.Column("mother_proposal_id", sa.String(), nullable=True),
        sa.Column(
            "is_consolidated_pr", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("other_funding", sa.Text(), nullable=True),
        sa.Column("amount_requested", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_supplemental", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("fund_category", sa.String(), nullable=False),
        sa.Column("funding_source", sa.String(), nullable=False),
        sa.Column("tracking_no", sa.String(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("all_obs_no", sa.String(), nullable=True),
        sa.Column("obligation_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("obligation_amount", sa.Float(), nullable=True),
        sa.Column("supplier_payee", sa.Text(), nullable=True),
        sa.Column("particulars", sa.Text(), nullable=True),
        sa.Column("dv_no", sa.String(), nullable=True),
        sa.Column("dv_amount", sa.Float(), nullable=True),
        sa.Column("pr_no", sa.String(), nullable=True),
        sa.Column("pr_amount", sa.Float(), nullable=True),
        sa.Column("approved_amount", sa.Float(), nullable=True),
        sa.Column("balance", sa.Float(), nullable=True),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=False),
        sa.Column("approved_by", sa.String(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.CheckConstraint(_in_list("status", _STATUSES), name="ck_bt_status"),
        sa.CheckConstraint(_in_list("stage", _STAGES), name="ck_bt_stage"),
        sa.CheckConstraint(
            "beneficiaries_male >= 0 AND beneficiaries_female >= 0 AND beneficiaries_total >= 0",
            name="ck_bt_beneficiaries_non_negative",
        ),
        sa.CheckConstraint("amount_requested >= 0", name="ck_bt_amount_non_negative"),
    )

    op.create_index("ix_bt_budget_code", "budget_transactions", ["budget_code"], unique=False)
    op.create_index("ix_bt_status", "budget_transactions", ["status"], unique=False)
    op.create_index("ix_bt_stage", "budget_transactions", ["stage"], unique=False)
    op.create_index("ix_bt_date_received", "budget_transactions", ["date_received"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_bt_date_received", table_name="budget_transactions")
    op.drop_index("ix_bt_stage", table_name="budget_transactions")
    op.drop_index("ix_bt_status", table_name="budget_transactions")
    op.drop_index("ix_bt_budget_code", table_name="budget_transactions")
    op.drop_table("budget_transactions")
