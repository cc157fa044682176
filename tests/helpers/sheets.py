"""Spreadsheet header sets and CSV builders shared by tests."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

PROPOSAL_HEADERS: tuple[str, ...] = (
    "Process Monitoring",
    "Date Received",
    "Programs",
    "Projects",
    "Activities",
    "Campus",
    "College",
    "Male",
    "Female",
    "Total",
    "Date of Proposed Implementation",
    "Mother Proposals",
    "Consolidated PR",
    "Other Funding",
    "Amount Requested",
    "Supplemental",
    "GAD/MDS",
    "Fund Source",
    "Budget Code",
    "Tracking No.",
    "Remarks",
    "Attachments",
    "PR No.",
    "Amount",
)

MONITORING_HEADERS: tuple[str, ...] = (
    "Budget Code",
    "Program",
    "Project",
    "Activity",
    "Campus",
    "Allocation",
    "Obligation",
    "Disbursement",
    "Balance",
    "ALL OBS NO.",
    "Obligation Date",
    "Obligation Amount",
    "Supplier/Payee",
    "Particulars",
    "DV No.",
    "DV Amount",
)


def _cell(value: str) -> str:
    if any(ch in value for ch in ',"'):
        return '"' + value.replace('"', '""') + '"'
    return value


def csv_line(values: Iterable[str]) -> str:
    return ",".join(_cell(v) for v in values)


def csv_text(headers: Sequence[str], rows: Iterable[Mapping[str, str]]) -> str:
    """Render ``rows`` under ``headers``; missing cells are left empty."""

    lines = [csv_line(headers)]
    lines.extend(csv_line(row.get(h, "") for h in headers) for row in rows)
    return "\n".join(lines) + "\n"
