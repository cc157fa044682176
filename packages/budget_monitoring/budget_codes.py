"""Sequential budget-code generation.

Codes look like ``<CAMPUS>-<PROGRAM>-<NNN>`` (``PB-EXT-007``). The next code
for a campus/program pair is the highest existing numeric suffix plus one,
zero-padded to three digits.

Generation is read-then-write: the existing codes are scanned and the caller
stores the new record afterwards. The module lock only serializes callers in
this process. Two processes generating codes for the same campus/program at
the same time can both get the same code; nothing in the schema prevents it.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.budget import BudgetTransactionRow

from .constants import CAMPUS_CODES, DEFAULT_PROGRAM_CODE
from .logging_setup import get_logger

_logger = get_logger("budget_monitoring.budget_codes")

_LOCK = threading.Lock()
_NO_PROGRAM = "--None--"


def campus_code(campus_id: str) -> str:
    return CAMPUS_CODES.get(campus_id, CAMPUS_CODES["pb"])


def program_code(program_name: str | None) -> str:
    """Short program code: the part before " - ", else the first word.

    A single-word name is upper-cased; an empty name (or the ``--None--``
    placeholder) gives ``EXT``.
    """

    name = (program_name or "").strip()
    if not name or name == _NO_PROGRAM:
        return DEFAULT_PROGRAM_CODE
    if " - " in name:
        return name.split(" - ")[0].strip()
    if " " in name:
        return name.split()[0]
    return name.upper()


def next_budget_code(
    campus_id: str, program_name: str | None, existing_codes: Iterable[str]
) -> str:
    prefix = f"{campus_code(campus_id)}-{program_code(program_name)}-"
    highest = 0
    for code in existing_codes:
        if not code or not code.startswith(prefix):
            continue
        suffix = code[len(prefix) :]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:03d}"


def generate_budget_code(session: Session, campus_id: str, program_name: str | None) -> str:
    """Next free code for the pair, based on the codes stored in ``session``."""

    prefix = f"{campus_code(campus_id)}-{program_code(program_name)}-"
    with _LOCK:
        stmt = select(BudgetTransactionRow.budget_code).where(
            BudgetTransactionRow.budget_code.startswith(prefix, autoescape=True)
        )
        code = next_budget_code(campus_id, program_name, session.scalars(stmt))
    _logger.debug("budget_code:generated %s", code)
    return code


__all__ = [
    "campus_code",
    "generate_budget_code",
    "next_budget_code",
    "program_code",
]
