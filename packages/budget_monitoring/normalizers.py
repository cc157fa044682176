"""Value normalizers for spreadsheet cells.

Every helper here is lenient by contract: bad input never raises, it falls
back to a neutral value (``0``, "now", the default campus, ``None``). These
fallbacks keep an import moving but can hide bad source data, so each one is
logged at DEBUG under ``budget_monitoring.normalizers``.

All helpers are stable under repeated application: feeding a normalized value
back in returns the same value.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime

from .constants import (
    CAMPUS_ID_MAP,
    COLLEGE_ID_MAP,
    CURRENCY_SYMBOL,
    DEFAULT_CAMPUS_ID,
)
from .logging_setup import get_logger

_logger = get_logger("budget_monitoring.normalizers")

_CURRENCY_STRIP_RE = re.compile(rf"[{CURRENCY_SYMBOL},\s]")
_SLASH_DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d")
# Long-month forms such as "March 1, 2025" or "1 Mar 2025".
_TEXT_DATE_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%B %d %Y", "%b %d %Y", "%d %B %Y", "%d %b %Y")
# Leading number of a cell like "1500/pax" or "4000.00(est)".
_LEADING_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_YES = {"yes", "y", "true", "1"}


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def parse_currency(value: str | float | int | None) -> float:
    """Parse a peso amount such as ``"₱4,000.00"`` into ``4000.0``.

    Strips the currency symbol, thousands separators and whitespace, then
    reads the leading number, so ``"1,500/pax"`` gives ``1500.0``. Returns
    ``0.0`` for empty, unparseable, non-finite or negative input.
    """

    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        amount = float(value)
    else:
        cleaned = _CURRENCY_STRIP_RE.sub("", value)
        if not cleaned:
            return 0.0
        match = _LEADING_NUMBER_RE.match(cleaned)
        if match is None:
            _logger.debug("currency:unparseable value=%r -> 0", value)
            return 0.0
        if match.end() < len(cleaned):
            _logger.debug("currency:trailing text ignored value=%r", value)
        amount = float(match.group())
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return round(amount, 2)


def parse_count(value: str | int | None) -> int:
    """Parse a beneficiary head count; failures and negatives become ``0``."""

    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    s = value.replace(",", "").strip()
    if not s:
        return 0
    try:
        n = int(s)
    except ValueError:
        # Spreadsheets export counts like "12.0"
        try:
            f = float(s)
        except ValueError:
            return 0
        if not math.isfinite(f):
            return 0
        n = int(f)
    return max(n, 0)


def parse_yes(value: str | bool | None) -> bool:
    if isinstance(value, bool):
        return value
    return (value or "").strip().lower() in _YES


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _parse_date_text(s: str) -> datetime | None:
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        pass
    for fmt in _TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    # Some exports append a time to M/D/YYYY; only the date part is used.
    first = s.split()[0]
    for fmt in _SLASH_DATE_FORMATS:
        try:
            return datetime.strptime(first, fmt)
        except ValueError:
            continue
    return None


def parse_optional_date(value: str | date | datetime | None) -> datetime | None:
    """Like :func:`parse_date` but returns ``None`` instead of "now"."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    s = value.strip()
    if not s:
        return None
    return _parse_date_text(s)


def parse_date(value: str | date | datetime | None, *, now: datetime | None = None) -> datetime:
    """Parse a received-date cell.

    Order: ISO-8601, then ``M/D/YYYY`` (and ``M/D/YY``). Anything else falls
    back to ``now`` (default: the current local time) instead of rejecting the
    row.
    """

    parsed = parse_optional_date(value)
    if parsed is not None:
        return parsed
    if value not in (None, ""):
        _logger.debug("date:unparseable value=%r -> now", value)
    return now if now is not None else datetime.now()


# ---------------------------------------------------------------------------
# Campus / college
# ---------------------------------------------------------------------------


def _match_fragment(text: str, table: tuple[tuple[str, str], ...]) -> str | None:
    lower = text.lower()
    for fragment, ident in table:
        if fragment in lower:
            return ident
    return None


def resolve_campus_id(text: str | None) -> str:
    """Resolve free-text campus descriptions to a campus id (default ``pb``)."""

    ident = _match_fragment(text or "", CAMPUS_ID_MAP)
    if ident is None:
        if text:
            _logger.debug("campus:unmatched text=%r -> %s", text, DEFAULT_CAMPUS_ID)
        return DEFAULT_CAMPUS_ID
    return ident


def resolve_college_id(text: str | None) -> str | None:
    return _match_fragment(text or "", COLLEGE_ID_MAP)


__all__ = [
    "parse_count",
    "parse_currency",
    "parse_date",
    "parse_optional_date",
    "parse_yes",
    "resolve_campus_id",
    "resolve_college_id",
]
