"""Import driver and the per-upload session state machine.

``import_rows`` is the fail-soft row loop: every data line is tokenized,
mapped and written through the storage collaborator one at a time. Problems
in one row never stop the run:

- a field-count mismatch is *malformed*: skipped, logged at INFO;
- a row with no budget code, activity or amount is *unmappable*: skipped;
- an exception from mapping or from ``store.create_record`` is a *failure*:
  counted with the row's 1-based line number in the file.

Only malformed/unmappable tallies are kept for diagnostics; they never feed
the success or failure counts. Already written rows are not rolled back.

``ImportSession`` wraps one upload:

    idle -> parsing -> awaiting_confirmation -> importing -> completed
                 \\                 \\
                  -> aborted          -> aborted (cancel)

A session is single-use; start a new one for the next upload.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from os import PathLike

from pydantic import ValidationError

from ..logging_setup import get_logger
from ..models import ClassificationResult, ImportOutcome, ImportState, RawRow, WorkflowStage
from ..persistence import TransactionStore
from .row_mapper import map_row
from .shapes import classify_headers, get_template
from .tokenizer import parse_csv_line
from .utils import ImportFileError, ParsedFile, parse_import_text, read_import_file

_logger = get_logger("budget_monitoring.ingest.driver")

type ProgressCallback = Callable[[int, int], None]


def _describe(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
            for err in exc.errors()
        )
    return str(exc) or exc.__class__.__name__


def import_rows(
    parsed: ParsedFile,
    stage: WorkflowStage | str,
    user_id: str,
    store: TransactionStore,
    *,
    on_progress: ProgressCallback | None = None,
    now: datetime | None = None,
) -> ImportOutcome:
    """Map and persist every data line of ``parsed`` under ``stage``."""

    stage = get_template(stage).name
    outcome = ImportOutcome()
    total = parsed.row_count
    _logger.info("import:start stage=%s rows=%d user=%s", stage.value, total, user_id)

    for index, (line_no, line) in enumerate(parsed.data_lines, start=1):
        row = parsed.row_for(parse_csv_line(line))
        if row is None:
            outcome.skipped_malformed += 1
            _logger.info(
                "import:malformed line=%d expected=%d fields; skipped",
                line_no,
                len(parsed.headers),
            )
        else:
            try:
                record = map_row(row, parsed.headers, stage, user_id, now=now)
                if record is None:
                    outcome.skipped_unmappable += 1
                else:
                    outcome.record_success(store.create_record(record))
            except Exception as exc:  # one bad row never aborts the run
                message = _describe(exc)
                _logger.warning("import:row_failed line=%d error=%s", line_no, message)
                outcome.record_failure(line_no, message)
        if on_progress is not None:
            on_progress(index, total)

    _logger.info(
        "import:done success=%d failed=%d malformed=%d unmappable=%d",
        outcome.success_count,
        outcome.failure_count,
        outcome.skipped_malformed,
        outcome.skipped_unmappable,
    )
    return outcome


class ImportSession:
    """One upload from file read through confirmation to the finished run."""

    def __init__(self) -> None:
        self.state = ImportState.IDLE
        self.parsed: ParsedFile | None = None
        self.classification: ClassificationResult | None = None
        self.shape: WorkflowStage | None = None
        self.outcome: ImportOutcome | None = None
        self.error: str | None = None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _require(self, *states: ImportState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise RuntimeError(
                f"Import session is {self.state.value}; expected one of: {allowed}"
            )

    def _parse(self, load: Callable[[], ParsedFile]) -> ClassificationResult:
        self._require(ImportState.IDLE)
        self.state = ImportState.PARSING
        try:
            parsed = load()
        except ImportFileError as exc:
            self.state = ImportState.ABORTED
            self.error = str(exc)
            _logger.error("import:file_error %s", exc)
            raise
        self.parsed = parsed
        self.classification = classify_headers(parsed.headers)
        self.shape = self.classification.shape
        self.state = ImportState.AWAITING_CONFIRMATION
        return self.classification

    def load_text(self, text: str) -> ClassificationResult:
        """Parse already-decoded file contents and detect the shape."""

        return self._parse(lambda: parse_import_text(text))

    def load_path(self, path: str | PathLike[str]) -> ClassificationResult:
        return self._parse(lambda: read_import_file(path))

    def preview(self, limit: int | None = None) -> list[RawRow]:
        self._require(ImportState.AWAITING_CONFIRMATION)
        assert self.parsed is not None
        return self.parsed.preview_rows() if limit is None else self.parsed.preview_rows(limit)

    def confirm(self, shape: WorkflowStage | str | None = None) -> WorkflowStage:
        """Accept the detected shape, or override it with ``shape``."""

        self._require(ImportState.AWAITING_CONFIRMATION)
        if shape is not None:
            override = get_template(shape).name
            if override is not self.shape:
                _logger.info(
                    "import:shape_override detected=%s chosen=%s",
                    self.shape.value if self.shape else None,
                    override.value,
                )
            self.shape = override
        assert self.shape is not None
        return self.shape

    def run(
        self,
        store: TransactionStore,
        user_id: str,
        *,
        on_progress: ProgressCallback | None = None,
        now: datetime | None = None,
    ) -> ImportOutcome:
        self._require(ImportState.AWAITING_CONFIRMATION)
        assert self.parsed is not None and self.shape is not None
        self.state = ImportState.IMPORTING
        self.outcome = import_rows(
            self.parsed, self.shape, user_id, store, on_progress=on_progress, now=now
        )
        self.state = ImportState.COMPLETED
        return self.outcome

    def cancel(self) -> None:
        """Abandon the upload; only possible before the import starts."""

        self._require(ImportState.IDLE, ImportState.AWAITING_CONFIRMATION)
        self.state = ImportState.ABORTED


__all__ = ["ImportSession", "ProgressCallback", "import_rows"]
