"""CLI for the ``budget_monitoring`` package.

This module exposes callable command handlers (``cmd_import``,
``cmd_detect``...) and a Typer-based console interface. Handlers return a
process exit code and print ``Error: ...`` lines to stderr instead of raising,
so they can be called directly from tests or other tools.

Environment is loaded from a local ``.env`` (without overriding variables
that are already set) by the root callback, which also configures logging.
``DATABASE_URL`` selects the database; ``--database-url`` overrides it.
``BUDGET_MONITORING_USER`` is the default identity for ``--user``.
"""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from typer.models import ArgumentInfo

from .cache import CachedTransactionReader, TTLCache, default_ttl_from_env
from .ingest.driver import ImportSession
from .ingest.shapes import MIN_CONFIDENCE, classify_headers, get_template
from .ingest.utils import ImportFileError, read_import_file
from .logging_setup import configure_logging
from .models import (
    ClassificationResult,
    ImportOutcome,
    RawRow,
    StoredTransaction,
    TransactionStatus,
    WorkflowStage,
)
from .persistence import RecordNotFoundError, SqlTransactionStore, TransactionStore

USER_ENV_VAR = "BUDGET_MONITORING_USER"

# Set by approval decisions, never by a plain edit.
_DECISION_FIELDS = frozenset({"status", "approved_by", "approved_at"})

console = Console()


# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_user(user_id: str | None) -> str | None:
    value = user_id or os.getenv(USER_ENV_VAR)
    return value.strip() if value and value.strip() else None


def _missing_user() -> int:
    print(f"Error: no user id; pass --user or set {USER_ENV_VAR}.", file=sys.stderr)
    return 1


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str, ensure_ascii=False))


def _print_classification(path: Path, headers: int, result: ClassificationResult) -> None:
    template = get_template(result.shape)
    print(f"File: {path}")
    print(f"Columns: {headers}")
    print(f"Detected: {template.name.value} ({template.label})")
    print(f"Confidence: {result.confidence_percent}%")
    if result.low_confidence:
        print(
            f"Warning: low confidence (< {round(MIN_CONFIDENCE * 100)}%); "
            "check the spreadsheet type before importing.",
            file=sys.stderr,
        )


def _print_preview(headers: Sequence[str], rows: Sequence[RawRow], total: int) -> None:
    table = Table(title=f"Preview ({len(rows)} of {total} rows)", show_lines=False)
    for header in headers:
        table.add_column(escape(header or "-"), overflow="fold")
    for row in rows:
        table.add_row(*(escape(row.get(h, "")) for h in headers))
    console.print(table)


def _print_outcome(outcome: ImportOutcome) -> None:
    lines = [
        f"Imported: {outcome.success_count}",
        f"Failed: {outcome.failure_count}",
    ]
    skipped = outcome.skipped_malformed + outcome.skipped_unmappable
    if skipped:
        lines.append(
            f"Skipped: {skipped} "
            f"(malformed {outcome.skipped_malformed}, empty {outcome.skipped_unmappable})"
        )
    lines.extend(f"  {escape(m)}" for m in outcome.error_messages)
    console.print(
        Panel(
            "\n".join(lines),
            title="Import summary",
            border_style="yellow" if outcome.failure_count else "green",
        )
    )


def _record_line(r: StoredTransaction) -> str:
    return "\t".join(
        [
            r.id,
            r.budget_code or "-",
            r.stage.value,
            r.status.value,
            r.campus_id,
            f"{r.amount_requested:.2f}",
            r.activity_name or r.project_name or r.program_name,
        ]
    )


def _progress(current: int, total: int) -> None:
    end = "\n" if current >= total else ""
    print(f"\rImporting row {current}/{total}", end=end, file=sys.stderr, flush=True)


# ---- Command handlers --------------------------------------------------------


def cmd_detect(csv_path: str) -> int:
    """Print the detected spreadsheet type and per-shape scores."""

    path = Path(csv_path)
    try:
        parsed = read_import_file(path)
    except ImportFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    result = classify_headers(parsed.headers)
    _print_classification(path, len(parsed.headers), result)
    for shape, score in result.scores.items():
        print(f"  {shape.value:<13} {score:.2f}")
    return 0


def cmd_import(
    csv_path: str,
    *,
    user_id: str | None = None,
    shape: str | None = None,
    assume_yes: bool = False,
    database_url: str | None = None,
    store: TransactionStore | None = None,
    prompt_session: PromptSession | None = None,
) -> int:
    """Import one spreadsheet export.

    Flow: read + classify, show a preview, confirm or override the shape
    (``--shape`` or the interactive selector, skipped by ``--yes``), then
    write every row and print the summary. Exit code is ``1`` when the file
    could not be read, the import was canceled or any row failed.
    """

    from .term_ui import confirm, select_shape

    user = _resolve_user(user_id)
    if user is None:
        return _missing_user()
    if shape is not None:
        try:
            get_template(shape)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    if store is None and not (database_url or os.getenv("DATABASE_URL")):
        print("Error: DATABASE_URL is not set; pass --database-url.", file=sys.stderr)
        return 1

    path = Path(csv_path)
    session = ImportSession()
    try:
        detected = session.load_path(path)
    except ImportFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    assert session.parsed is not None
    _print_classification(path, len(session.parsed.headers), detected)
    _print_preview(session.parsed.headers, session.preview(), session.parsed.row_count)

    chosen: WorkflowStage | None
    if shape is not None:
        chosen = get_template(shape).name
    elif assume_yes:
        chosen = detected.shape
    else:
        chosen = select_shape(detected.shape, session=prompt_session)
        if chosen is not None and not confirm(
            f"Import {session.parsed.row_count} rows as {chosen.value}?",
            default=True,
            session=prompt_session,
        ):
            chosen = None
    if chosen is None:
        session.cancel()
        print("Import canceled.", file=sys.stderr)
        return 1

    session.confirm(chosen)
    target = store if store is not None else SqlTransactionStore(database_url)
    outcome = session.run(target, user, on_progress=_progress)
    _print_outcome(outcome)
    return 0 if outcome.failure_count == 0 else 1


def cmd_list(
    *,
    database_url: str | None = None,
    stage: str | None = None,
    status: str | None = None,
    search_text: str = "",
    as_json: bool = False,
) -> int:
    from .dashboard import search

    try:
        wanted_stage = WorkflowStage(stage) if stage else None
        wanted_status = TransactionStatus(status) if status else None
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    try:
        records = SqlTransactionStore(database_url).list_records(
            stage=wanted_stage, status=wanted_status
        )
    except Exception as e:
        print(f"Error: failed to load records: {e}", file=sys.stderr)
        return 1
    records = search(records, search_text)
    if as_json:
        _print_json([r.model_dump(mode="json") for r in records])
    else:
        for r in records:
            print(_record_line(r))
    return 0


def cmd_summary(*, database_url: str | None = None) -> int:
    reader = CachedTransactionReader(
        SqlTransactionStore(database_url), TTLCache(default_ttl_from_env())
    )
    try:
        payload = reader.summary()
    except Exception as e:
        print(f"Error: failed to build summary: {e}", file=sys.stderr)
        return 1
    _print_json(payload)
    return 0


def cmd_decide(
    action: str,
    record_id: str,
    *,
    user_id: str | None = None,
    database_url: str | None = None,
) -> int:
    """Apply an approval decision: ``approve``, ``return`` or ``reject``."""

    from db.client import session_scope

    from . import approvals

    handlers = {
        "approve": approvals.approve,
        "return": approvals.return_for_revision,
        "reject": approvals.reject,
    }
    handler = handlers.get(action)
    if handler is None:
        print(f"Error: unknown action {action!r}", file=sys.stderr)
        return 1
    user = _resolve_user(user_id)
    if user is None:
        return _missing_user()
    try:
        with session_scope(database_url=database_url) as s:
            updated = handler(s, record_id, user)
    except (RecordNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {action} failed: {e}", file=sys.stderr)
        return 1
    print(f"{updated.id}\t{updated.status.value}")
    return 0


def cmd_submit(
    *,
    program: str,
    project: str,
    activity: str,
    campus: str,
    user_id: str | None = None,
    college: str | None = None,
    male: int = 0,
    female: int = 0,
    amount: str = "",
    implementation_date: str | None = None,
    remarks: str | None = None,
    database_url: str | None = None,
) -> int:
    """Submit one proposal for evaluation under the next free budget code."""

    from pydantic import ValidationError

    from db.client import session_scope

    from .normalizers import parse_currency, resolve_college_id
    from .proposals import submit_proposal

    user = _resolve_user(user_id)
    if user is None:
        return _missing_user()
    try:
        with session_scope(database_url=database_url) as s:
            stored = submit_proposal(
                s,
                program_name=program,
                project_name=project,
                activity_name=activity,
                campus=campus,
                user_id=user,
                college_id=resolve_college_id(college),
                beneficiaries_male=male,
                beneficiaries_female=female,
                amount_requested=parse_currency(amount),
                implementation_date=implementation_date,
                remarks=remarks,
            )
    except (ValueError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: submit failed: {e}", file=sys.stderr)
        return 1
    print(f"{stored.id}\t{stored.budget_code}\t{stored.status.value}")
    return 0


def cmd_show(record_id: str, *, database_url: str | None = None) -> int:
    try:
        record = SqlTransactionStore(database_url).get_record(record_id)
    except RecordNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: failed to load record: {e}", file=sys.stderr)
        return 1
    _print_json(record.model_dump(mode="json"))
    return 0


def _parse_assignments(assignments: Sequence[str]) -> dict[str, str | None]:
    fields: dict[str, str | None] = {}
    for item in assignments:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"expected FIELD=VALUE, got {item!r}")
        # An empty value clears an optional field
        fields[name.strip()] = value.strip() or None
    return fields


def cmd_edit(
    record_id: str,
    assignments: Sequence[str],
    *,
    database_url: str | None = None,
) -> int:
    """Edit record fields given as ``FIELD=VALUE`` pairs."""

    from pydantic import ValidationError

    try:
        fields = _parse_assignments(assignments)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if not fields:
        print("Error: nothing to edit; pass --set FIELD=VALUE.", file=sys.stderr)
        return 1
    decided = _DECISION_FIELDS.intersection(fields)
    if decided:
        print(
            f"Error: {', '.join(sorted(decided))} change only through approve, return or reject.",
            file=sys.stderr,
        )
        return 1
    try:
        updated = SqlTransactionStore(database_url).update_record(record_id, **fields)
    except (RecordNotFoundError, ValueError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: edit failed: {e}", file=sys.stderr)
        return 1
    print(_record_line(updated))
    return 0


def cmd_next_code(campus: str, program: str, *, database_url: str | None = None) -> int:
    from db.client import session_scope

    from .budget_codes import generate_budget_code
    from .normalizers import resolve_campus_id

    try:
        with session_scope(database_url=database_url) as s:
            code = generate_budget_code(s, resolve_campus_id(campus), program)
    except Exception as e:
        print(f"Error: failed to generate budget code: {e}", file=sys.stderr)
        return 1
    print(code)
    return 0


def cmd_export(
    output: str,
    *,
    user_id: str | None = None,
    fiscal_year: int | None = None,
    database_url: str | None = None,
) -> int:
    from db.client import session_scope

    from .maintenance import build_backup, dump_json

    user = _resolve_user(user_id)
    if user is None:
        return _missing_user()
    try:
        with session_scope(database_url=database_url) as s:
            backup = build_backup(s, exported_by=user, fiscal_year=fiscal_year)
        written = dump_json(output, backup)
    except OSError as e:
        print(f"Error: could not write backup: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: export failed: {e}", file=sys.stderr)
        return 1
    print(f"Exported {backup.metadata.total_records} records to {written}")
    return 0


def cmd_restore(backup_path: str, *, database_url: str | None = None) -> int:
    from pydantic import ValidationError

    from db.client import session_scope

    from .maintenance import load_backup, restore_records

    try:
        backup = load_backup(backup_path)
    except (OSError, ValidationError) as e:
        print(f"Error: could not read backup {backup_path}: {e}", file=sys.stderr)
        return 1
    try:
        with session_scope(database_url=database_url) as s:
            count = restore_records(s, backup)
    except ValidationError as e:
        print(f"Error: backup contains an invalid record: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: restore failed: {e}", file=sys.stderr)
        return 1
    print(f"Restored {count} records")
    return 0


def cmd_wipe(
    *,
    backup_path: str | None,
    confirmed: bool,
    user_id: str | None = None,
    fiscal_year: int | None = None,
    database_url: str | None = None,
) -> int:
    """Back up every record to ``backup_path``, then delete them all."""

    if not backup_path:
        print("Error: --backup is required before wiping records.", file=sys.stderr)
        return 1
    if not confirmed:
        print("Error: refusing to wipe without --yes.", file=sys.stderr)
        return 1
    rc = cmd_export(
        backup_path, user_id=user_id, fiscal_year=fiscal_year, database_url=database_url
    )
    if rc != 0:
        return rc

    from db.client import session_scope

    from .maintenance import wipe_records

    try:
        with session_scope(database_url=database_url) as s:
            deleted = wipe_records(s)
    except Exception as e:
        print(f"Error: wipe failed (backup kept at {backup_path}): {e}", file=sys.stderr)
        return 1
    print(f"Deleted {deleted} records")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import budget spreadsheets and manage budget transactions. "
        "Loads DATABASE_URL and BUDGET_MONITORING_USER from a local .env."
    ),
)

# Module-level argument object to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_ARGUMENT: ArgumentInfo = typer.Argument(
    ...,
    help="Path to a CSV export of the spreadsheet",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports unreadable files itself
)

DatabaseUrl = Annotated[
    str | None, typer.Option("--database-url", help="Override DATABASE_URL.")
]
User = Annotated[
    str | None, typer.Option("--user", help=f"User id (falls back to {USER_ENV_VAR}).")
]
FiscalYear = Annotated[
    int | None, typer.Option("--fiscal-year", help="Fiscal year recorded in the backup.")
]


@app.command("detect")
def detect_cmd(csv_path: Annotated[Path, CSV_PATH_ARGUMENT]) -> None:
    """Show which spreadsheet type a file looks like."""

    raise typer.Exit(cmd_detect(str(csv_path)))


@app.command("import")
def import_cmd(
    csv_path: Annotated[Path, CSV_PATH_ARGUMENT],
    *,
    user: User = None,
    shape: Annotated[
        str | None, typer.Option("--shape", help="Use this spreadsheet type.")
    ] = None,
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Accept the detected type without asking.")
    ] = False,
    database_url: DatabaseUrl = None,
) -> None:
    """Import a spreadsheet export row by row."""

    raise typer.Exit(
        cmd_import(
            str(csv_path),
            user_id=user,
            shape=shape,
            assume_yes=yes,
            database_url=database_url,
        )
    )


@app.command("list")
def list_cmd(
    *,
    stage: Annotated[str | None, typer.Option(help="Filter by workflow stage.")] = None,
    status: Annotated[str | None, typer.Option(help="Filter by status.")] = None,
    search: Annotated[str, typer.Option(help="Case-insensitive text filter.")] = "",
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON.")] = False,
    database_url: DatabaseUrl = None,
) -> None:
    """List stored transactions, newest first."""

    raise typer.Exit(
        cmd_list(
            database_url=database_url,
            stage=stage,
            status=status,
            search_text=search,
            as_json=as_json,
        )
    )


@app.command("summary")
def summary_cmd(database_url: DatabaseUrl = None) -> None:
    """Print dashboard totals as JSON."""

    raise typer.Exit(cmd_summary(database_url=database_url))


@app.command("approve")
def approve_cmd(record_id: str, user: User = None, database_url: DatabaseUrl = None) -> None:
    """Approve a proposal under review."""

    raise typer.Exit(cmd_decide("approve", record_id, user_id=user, database_url=database_url))


@app.command("return")
def return_cmd(record_id: str, user: User = None, database_url: DatabaseUrl = None) -> None:
    """Return a proposal for revision."""

    raise typer.Exit(cmd_decide("return", record_id, user_id=user, database_url=database_url))


@app.command("reject")
def reject_cmd(record_id: str, user: User = None, database_url: DatabaseUrl = None) -> None:
    """Reject a proposal under review."""

    raise typer.Exit(cmd_decide("reject", record_id, user_id=user, database_url=database_url))


@app.command("submit")
def submit_cmd(
    *,
    program: Annotated[str, typer.Option(help="Program name.")],
    project: Annotated[str, typer.Option(help="Project name.")],
    activity: Annotated[str, typer.Option(help="Activity name.")],
    campus: Annotated[str, typer.Option(help="Campus name or id.")],
    college: Annotated[str | None, typer.Option(help="College name or id.")] = None,
    male: Annotated[int, typer.Option(help="Male beneficiaries.")] = 0,
    female: Annotated[int, typer.Option(help="Female beneficiaries.")] = 0,
    amount: Annotated[str, typer.Option(help="Amount requested, e.g. 4,000.00.")] = "",
    implementation_date: Annotated[
        str | None, typer.Option("--implementation-date", help="Planned implementation date.")
    ] = None,
    remarks: Annotated[str | None, typer.Option(help="Free-text remarks.")] = None,
    user: User = None,
    database_url: DatabaseUrl = None,
) -> None:
    """Submit a proposal for evaluation with the next budget code."""

    raise typer.Exit(
        cmd_submit(
            program=program,
            project=project,
            activity=activity,
            campus=campus,
            user_id=user,
            college=college,
            male=male,
            female=female,
            amount=amount,
            implementation_date=implementation_date,
            remarks=remarks,
            database_url=database_url,
        )
    )


@app.command("show")
def show_cmd(record_id: str, database_url: DatabaseUrl = None) -> None:
    """Print one record as JSON."""

    raise typer.Exit(cmd_show(record_id, database_url=database_url))


@app.command("edit")
def edit_cmd(
    record_id: str,
    assignments: Annotated[
        list[str] | None,
        typer.Option("--set", help="FIELD=VALUE to change; repeatable. Empty VALUE clears."),
    ] = None,
    database_url: DatabaseUrl = None,
) -> None:
    """Edit fields of a stored record."""

    raise typer.Exit(cmd_edit(record_id, assignments or [], database_url=database_url))


@app.command("next-code")
def next_code_cmd(
    campus: Annotated[str, typer.Option(help="Campus name or id.")],
    program: Annotated[str, typer.Option(help="Program name.")] = "",
    database_url: DatabaseUrl = None,
) -> None:
    """Print the next free budget code for a campus/program pair."""

    raise typer.Exit(cmd_next_code(campus, program, database_url=database_url))


@app.command("export")
def export_cmd(
    output: Annotated[Path, typer.Argument(help="Backup JSON file to write.")],
    user: User = None,
    fiscal_year: FiscalYear = None,
    database_url: DatabaseUrl = None,
) -> None:
    """Write every record to a JSON backup."""

    raise typer.Exit(
        cmd_export(
            str(output), user_id=user, fiscal_year=fiscal_year, database_url=database_url
        )
    )


@app.command("restore")
def restore_cmd(
    backup: Annotated[Path, typer.Argument(help="Backup JSON file to restore.")],
    database_url: DatabaseUrl = None,
) -> None:
    """Insert every record from a JSON backup."""

    raise typer.Exit(cmd_restore(str(backup), database_url=database_url))


@app.command("wipe")
def wipe_cmd(
    backup: Annotated[
        Path | None, typer.Option("--backup", help="Backup written before deleting.")
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", help="Confirm the wipe.")] = False,
    user: User = None,
    fiscal_year: FiscalYear = None,
    database_url: DatabaseUrl = None,
) -> None:
    """Back up, then delete every budget transaction (fiscal-year close)."""

    raise typer.Exit(
        cmd_wipe(
            backup_path=str(backup) if backup else None,
            confirmed=yes,
            user_id=user,
            fiscal_year=fiscal_year,
            database_url=database_url,
        )
    )


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps variables that are already set
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    main()
