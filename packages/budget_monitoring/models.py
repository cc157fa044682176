"""Data models and type aliases for ``budget_monitoring``.

The import pipeline works on three shapes of data:

- :data:`RawRow`: header -> cell text for one tokenized CSV line;
- :class:`BudgetTransactionRecord`: the validated, normalized record that is
  written to storage (one per imported row or submitted form);
- :class:`ImportOutcome`: the per-run tally surfaced to the operator.

Enumerations mirror the CHECK constraints on ``budget_transactions`` in the
shared ``db`` library.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import DEFAULT_FUND_CATEGORY, DEFAULT_FUNDING_SOURCE

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class TransactionStatus(StrEnum):
    DRAFT = "Draft"
    EVALUATION = "Evaluation"
    PROPOSAL = "Proposal"
    PR = "PR"
    OBLIGATED = "Obligated"
    DISBURSED = "Disbursed"
    REJECTED = "Rejected"
    RETURNED = "Returned"


class WorkflowStage(StrEnum):
    """Budget lifecycle phase; doubles as the spreadsheet shape name."""

    WFP = "wfp"
    PROPOSAL = "proposal"
    MONITORING = "monitoring"
    SUPPLEMENTAL = "supplemental"
    BUR1 = "bur1"
    BUR2 = "bur2"


class ImportState(StrEnum):
    IDLE = "idle"
    PARSING = "parsing"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    IMPORTING = "importing"
    COMPLETED = "completed"
    ABORTED = "aborted"


# ---------------------------------------------------------------------------
# Import pipeline shapes
# ---------------------------------------------------------------------------

type RawRow = Mapping[str, str]
"""One data line keyed by header text, values as raw (trimmed) cell text."""


@dataclass(frozen=True, slots=True)
class ShapeTemplate:
    """A known spreadsheet layout identified by its header vocabulary.

    ``keywords`` are lower-case phrases matched against the actual headers by
    substring containment in either direction.
    """

    name: WorkflowStage
    label: str
    description: str
    keywords: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    shape: WorkflowStage
    confidence: float
    scores: Mapping[WorkflowStage, float] = field(default_factory=dict)
    low_confidence: bool = False

    @property
    def confidence_percent(self) -> int:
        return round(self.confidence * 100)


@dataclass(frozen=True, slots=True)
class RowError:
    row_number: int
    message: str

    def __str__(self) -> str:
        return f"Row {self.row_number}: {self.message}"


@dataclass(slots=True)
class ImportOutcome:
    """Aggregate result of one import run.

    Only persisted rows and rows whose mapping/persistence raised are counted.
    Malformed and unmappable rows are skipped; their informational counters
    do not feed ``success_count`` or ``failure_count``.
    """

    success_count: int = 0
    failure_count: int = 0
    errors: list[RowError] = field(default_factory=list)
    created_ids: list[str] = field(default_factory=list)
    skipped_malformed: int = 0
    skipped_unmappable: int = 0

    def record_success(self, record_id: str) -> None:
        self.success_count += 1
        self.created_ids.append(record_id)

    def record_failure(self, row_number: int, message: str) -> None:
        self.failure_count += 1
        self.errors.append(RowError(row_number, message))

    @property
    def error_messages(self) -> list[str]:
        return [str(e) for e in self.errors]


# ---------------------------------------------------------------------------
# Normalized record
# ---------------------------------------------------------------------------


class BudgetTransactionRecord(BaseModel):
    """Canonical budget transaction as written to storage.

    Invariants enforced at construction:

    - beneficiary counts are non-negative, and when a gender breakdown is
      present (male or female > 0) the total equals male + female;
    - currency amounts are non-negative and carried with two-decimal
      precision.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    budget_code: str = ""
    status: TransactionStatus
    stage: WorkflowStage
    date_received: datetime
    program_name: str = ""
    project_name: str = ""
    activity_name: str = ""
    campus_id: str
    college_id: str | None = None

    beneficiaries_male: int = 0
    beneficiaries_female: int = 0
    beneficiaries_total: int = 0

    implementation_date: str | None = None
    mother_proposal_id: str | None = None
    is_consolidated_pr: bool = False
    other_funding: str | None = None
    amount_requested: float = 0.0
    is_supplemental: bool = False
    fund_category: str = DEFAULT_FUND_CATEGORY
    funding_source: str = DEFAULT_FUNDING_SOURCE
    tracking_no: str | None = None
    remarks: str | None = None

    all_obs_no: str | None = None
    obligation_date: datetime | None = None
    obligation_amount: float | None = None
    supplier_payee: str | None = None
    particulars: str | None = None
    dv_no: str | None = None
    dv_amount: float | None = None
    pr_no: str | None = None
    pr_amount: float | None = None
    approved_amount: float | None = None
    balance: float | None = None

    attachments: list[str] = Field(default_factory=list)
    created_by: str
    approved_by: str | None = None
    approved_at: datetime | None = None

    @field_validator(
        "amount_requested",
        "obligation_amount",
        "dv_amount",
        "pr_amount",
        "approved_amount",
        "balance",
    )
    @classmethod
    def _two_decimal_non_negative(cls, v: float | None) -> float | None:
        if v is None:
            return None
        fv = float(v)
        if fv < 0:
            raise ValueError("currency amounts must be non-negative")
        return round(fv, 2)

    @field_validator("created_by")
    @classmethod
    def _creator_required(cls, v: str) -> str:
        if not v:
            raise ValueError("created_by must be a non-empty user identifier")
        return v

    @model_validator(mode="after")
    def _beneficiaries_reconcile(self) -> BudgetTransactionRecord:
        male, female, total = (
            self.beneficiaries_male,
            self.beneficiaries_female,
            self.beneficiaries_total,
        )
        if male < 0 or female < 0 or total < 0:
            raise ValueError("beneficiary counts must be non-negative")
        if (male or female) and total != male + female:
            raise ValueError(
                f"beneficiaries_total ({total}) must equal male + female ({male + female})"
            )
        return self

    def is_identifiable(self) -> bool:
        """True when the record carries a budget code, activity or amount."""

        return bool(self.budget_code or self.activity_name or self.amount_requested)


class StoredTransaction(BudgetTransactionRecord):
    """A record as read back from storage, with its database-managed fields."""

    id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


__all__ = [
    "BudgetTransactionRecord",
    "StoredTransaction",
    "ClassificationResult",
    "ImportOutcome",
    "ImportState",
    "RawRow",
    "RowError",
    "ShapeTemplate",
    "TransactionStatus",
    "WorkflowStage",
]
