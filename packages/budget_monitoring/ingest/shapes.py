"""Spreadsheet shape templates and the header classifier.

Each upload is one of six known layouts, one per workflow stage. There is no
format marker in the file, so classification is a header-text heuristic:

    score(template) = matched keywords / total keywords

where a keyword matches when it contains, or is contained in, some non-blank
header (case-insensitive). The highest score wins and ties go to the template
registered first (``TEMPLATES`` order). A winning score below
``MIN_CONFIDENCE`` falls back to the proposal log and is flagged
``low_confidence`` so callers can warn the operator and offer an override.

A monitoring-shaped file that carries a "Supplemental" column is reported as
supplemental monitoring: the two layouts share their financial columns.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..logging_setup import get_logger
from ..models import ClassificationResult, ShapeTemplate, WorkflowStage

_logger = get_logger("budget_monitoring.ingest.shapes")

MIN_CONFIDENCE = 0.5
FALLBACK_SHAPE = WorkflowStage.PROPOSAL

_MONITORING_KEYWORDS: tuple[str, ...] = (
    "budget code",
    "program",
    "project",
    "activity",
    "campus",
    "allocation",
    "obligation",
    "disbursement",
    "balance",
    "all obs no.",
    "obligation date",
    "obligation amount",
    "supplier/payee",
    "particulars",
    "dv no.",
    "dv amount",
)

TEMPLATES: tuple[ShapeTemplate, ...] = (
    ShapeTemplate(
        name=WorkflowStage.WFP,
        label="WFP Activities",
        description="Work and Financial Plan activities with budget allocation",
        keywords=(
            "budget code",
            "program",
            "project",
            "activity",
            "campus/category",
            "date received",
            "amount requested",
            "status",
            "process",
            "stage",
            "male",
            "female",
            "total ben",
            "implementation date",
            "allobs",
            "obligation date",
            "obligated",
            "supplier/payee",
            "particulars",
            "dv no.",
            "dv amount",
            "pr no.",
            "pr amount",
        ),
    ),
    ShapeTemplate(
        name=WorkflowStage.PROPOSAL,
        label="Proposal Logs",
        description="Extension project proposals with beneficiary and budget tracking",
        keywords=(
            "process monitoring",
            "date received",
            "program",
            "project",
            "activity",
            "campus",
            "college",
            "male",
            "female",
            "total",
            "date of proposed implementation",
            "mother proposals",
            "consolidated pr",
            "other funding",
            "amount requested",
            "supplemental",
            "gad/mds",
            "fund source",
            "budget code",
            "tracking no.",
            "remarks",
            "attachments",
            "pr no.",
            "amount",
        ),
    ),
    ShapeTemplate(
        name=WorkflowStage.MONITORING,
        label="Monitoring (Detailed ORS)",
        description="Monitoring with obligation and disbursement details",
        keywords=_MONITORING_KEYWORDS,
    ),
    ShapeTemplate(
        name=WorkflowStage.SUPPLEMENTAL,
        label="Monitoring - Supplemental",
        description="Supplemental fund monitoring with financial tracking",
        keywords=(*_MONITORING_KEYWORDS, "supplemental"),
    ),
    ShapeTemplate(
        name=WorkflowStage.BUR1,
        label="BUR1 - Proposal Fund",
        description="Proposed funds awaiting approval",
        keywords=(
            "budget code",
            "program",
            "project",
            "activity",
            "campus",
            "allocation",
            "balance",
            "status",
            "remarks",
        ),
    ),
    ShapeTemplate(
        name=WorkflowStage.BUR2,
        label="BUR2 - ALOBS (Allocated Budgets)",
        description="Approved obligations ready for disbursement",
        keywords=(
            "budget code",
            "program",
            "project",
            "activity",
            "campus",
            "allocation",
            "obligated",
            "balance",
            "all obs no.",
            "obligation date",
            "obligation amount",
            "supplier/payee",
            "particulars",
            "dv no.",
            "dv amount",
            "status",
        ),
    ),
)

_BY_NAME: dict[WorkflowStage, ShapeTemplate] = {t.name: t for t in TEMPLATES}


def get_template(name: str | WorkflowStage) -> ShapeTemplate:
    """Return the template registered under ``name``.

    Raises ``ValueError`` for unknown shape names.
    """

    try:
        return _BY_NAME[WorkflowStage(str(name).strip().lower())]
    except (KeyError, ValueError):
        known = ", ".join(t.name.value for t in TEMPLATES)
        raise ValueError(f"Unknown spreadsheet shape {name!r}; expected one of: {known}") from None


def score_template(template: ShapeTemplate, headers: Sequence[str]) -> float:
    normalized = [h.strip().lower() for h in headers if h and h.strip()]
    if not template.keywords:
        return 0.0
    matches = sum(
        1 for kw in template.keywords if any(kw in h or h in kw for h in normalized)
    )
    return matches / len(template.keywords)


def classify_headers(headers: Sequence[str]) -> ClassificationResult:
    """Pick the best-matching shape for a tokenized header row."""

    scores = {t.name: score_template(t, headers) for t in TEMPLATES}

    best = TEMPLATES[0].name
    for template in TEMPLATES[1:]:
        # strictly greater: the earliest registered template keeps ties
        if scores[template.name] > scores[best]:
            best = template.name
    best_score = scores[best]

    has_supplemental_column = any("supplemental" in h.lower() for h in headers if h)
    if best is WorkflowStage.MONITORING and has_supplemental_column:
        return ClassificationResult(
            WorkflowStage.SUPPLEMENTAL,
            best_score,
            scores,
            low_confidence=best_score < MIN_CONFIDENCE,
        )

    if best_score >= MIN_CONFIDENCE:
        return ClassificationResult(best, best_score, scores)

    _logger.warning(
        "shape:low_confidence best=%s score=%.2f; defaulting to %s",
        best.value,
        best_score,
        FALLBACK_SHAPE.value,
    )
    return ClassificationResult(FALLBACK_SHAPE, best_score, scores, low_confidence=True)


__all__ = [
    "FALLBACK_SHAPE",
    "MIN_CONFIDENCE",
    "TEMPLATES",
    "classify_headers",
    "get_template",
    "score_template",
]
