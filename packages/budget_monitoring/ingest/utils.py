"""Ingest utilities shared by the import driver and CLI commands.

Loads an uploaded spreadsheet export into a :class:`ParsedFile`: the header
row plus the remaining non-blank lines with their original line numbers.
Some exports carry a title block above the real header, so the header is the
first line mentioning "Budget Code" when there is one, else the first line.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from ..constants import PREVIEW_ROWS
from ..models import RawRow
from .tokenizer import parse_csv_line, split_lines

HEADER_MARKER = "budget code"


class ImportFileError(RuntimeError):
    """The upload as a whole cannot be read or has no usable rows."""


@dataclass(frozen=True, slots=True)
class ParsedFile:
    header_line_number: int
    headers: tuple[str, ...]
    data_lines: tuple[tuple[int, str], ...]

    @property
    def row_count(self) -> int:
        return len(self.data_lines)

    def row_for(self, fields: Sequence[str]) -> RawRow | None:
        """Zip ``fields`` with the headers; ``None`` on a field-count mismatch."""

        if len(fields) != len(self.headers):
            return None
        return dict(zip(self.headers, fields, strict=True))

    def preview_rows(self, limit: int = PREVIEW_ROWS) -> list[RawRow]:
        """First ``limit`` well-formed rows, for operator confirmation."""

        rows: list[RawRow] = []
        for _, line in self.data_lines:
            if len(rows) >= limit:
                break
            row = self.row_for(parse_csv_line(line))
            if row is not None:
                rows.append(row)
        return rows


def parse_import_text(text: str) -> ParsedFile:
    """Split ``text`` into a header row and numbered data lines.

    Raises :class:`ImportFileError` when there is no header or no data line.
    """

    lines = split_lines(text.lstrip("\ufeff"))
    if not lines:
        raise ImportFileError("File is empty: no header row found")

    header_index = 0
    for i, (_, line) in enumerate(lines):
        if HEADER_MARKER in line.lower():
            header_index = i
            break

    header_no, header_line = lines[header_index]
    data = tuple(lines[header_index + 1 :])
    if not data:
        raise ImportFileError("File must contain a header row and at least one data row")
    return ParsedFile(
        header_line_number=header_no,
        headers=tuple(parse_csv_line(header_line)),
        data_lines=data,
    )


def read_import_file(path: str | PathLike[str]) -> ParsedFile:
    """Read a UTF-8 export from disk and parse it.

    Decode and I/O failures surface as :class:`ImportFileError`.
    """

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ImportFileError(f"Could not read {p}: {exc}") from exc
    return parse_import_text(text)


__all__ = [
    "HEADER_MARKER",
    "ImportFileError",
    "ParsedFile",
    "parse_import_text",
    "read_import_file",
]
