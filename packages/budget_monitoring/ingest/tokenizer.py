"""Line-level tokenizer for comma-separated spreadsheet exports.

Spreadsheet uploads are split on newlines first and each line is tokenized on
its own, so a quoted field cannot span lines here (unlike the stdlib
:mod:`csv` reader). Quoting rules per line:

- ``"`` toggles quoted mode; inside quotes a comma is literal;
- ``""`` is one literal quote character (inside or outside quotes);
- each field is trimmed of surrounding whitespace.

Unbalanced quotes never raise: an unterminated quote simply keeps the rest of
the line in one field.
"""

from __future__ import annotations

from collections.abc import Iterator


def parse_csv_line(line: str) -> list[str]:
    """Split one line into trimmed fields; blank lines yield ``[]``."""

    if not line or not line.strip():
        return []

    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current).strip())
    return fields


def iter_lines(text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, line)`` for non-blank lines, 1-based.

    A trailing ``\\r`` from CRLF files is dropped; carriage returns elsewhere
    are left alone.
    """

    for number, raw in enumerate(text.split("\n"), start=1):
        line = raw[:-1] if raw.endswith("\r") else raw
        if line.strip():
            yield number, line


def split_lines(text: str) -> list[tuple[int, str]]:
    return list(iter_lines(text))


__all__ = ["iter_lines", "parse_csv_line", "split_lines"]
