"""Public API for the ``budget_monitoring`` package.

This module is the stable import surface for callers that drive an import
without the interactive CLI. The implementations live in ``ingest.*`` and
are re-exported here with single-proposal submission, plus two one-call helpers that cover the common
"detect" and "detect, then import" flows.
"""

from __future__ import annotations

from os import PathLike

from .ingest.driver import ImportSession, ProgressCallback, import_rows
from .ingest.row_mapper import map_row
from .ingest.shapes import classify_headers
from .ingest.tokenizer import parse_csv_line
from .ingest.utils import ImportFileError, parse_import_text, read_import_file
from .models import ClassificationResult, ImportOutcome, WorkflowStage
from .persistence import TransactionStore
from .proposals import submit_proposal


def detect_file(path: str | PathLike[str]) -> ClassificationResult:
    """Classify the spreadsheet at ``path`` without importing anything."""

    return classify_headers(read_import_file(path).headers)


def import_file(
    path: str | PathLike[str],
    user_id: str,
    store: TransactionStore,
    *,
    shape: WorkflowStage | str | None = None,
    on_progress: ProgressCallback | None = None,
) -> tuple[ClassificationResult, ImportOutcome]:
    """Read, classify and import one file non-interactively.

    ``shape`` overrides the detected layout. File-level problems raise
    :class:`ImportFileError`; row problems are reported in the outcome.
    """

    session = ImportSession()
    detected = session.load_path(path)
    session.confirm(shape)
    return detected, session.run(store, user_id, on_progress=on_progress)


__all__ = [
    "ImportFileError",
    "ImportSession",
    "classify_headers",
    "detect_file",
    "import_file",
    "import_rows",
    "map_row",
    "parse_csv_line",
    "parse_import_text",
    "read_import_file",
    "submit_proposal",
]
