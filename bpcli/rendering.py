"""Rendering of tables and JSON for terminal output."""

from __future__ import annotations

import base64
import json
import os
import sys
import textwrap
from typing import IO, Any, Iterable, Optional, Sequence

FALLBACK_COLUMN_WIDTH = 200
TABBED_COLUMN_PADDING = 2
TABLE_WRAP_WIDTH = 30

_JSON_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _terminal_width() -> Optional[int]:
    try:
        return os.get_terminal_size(0).columns
    except (OSError, ValueError):
        return None


def _truncating_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient


def optimal_column_width(
    rows: Sequence[Sequence[str]], padding: int, terminal_width: Optional[int]
) -> int:
    """Share the terminal width left after the first column among the others.

    Without a known terminal width a fixed fallback is returned.
    """
    if terminal_width is None:
        return FALLBACK_COLUMN_WIDTH
    if not rows or len(rows[0]) < 2:
        raise ValueError("at least one row with two columns is needed")
    first_width = max(len(row[0]) for row in rows)
    # the trailing 3 makes room for the "..." marker
    return _truncating_div(terminal_width - first_width - padding, len(rows[0]) - 1) - 3


def truncate_columns(row: Sequence[str], max_width: int) -> list[str]:
    """Cut every column but the first at a newline or at the maximum width."""
    cut = max(max_width, 0)
    processed: list[str] = []
    for column, content in enumerate(row):
        if column > 0:
            newline = content.find("\n")
            if newline >= 0 and newline >= max_width:
                content = content[:cut] + "..."
            elif newline >= 0:
                content = content[:newline] + "..."
            elif len(content) >= max_width:
                content = content[:cut] + "..."
        processed.append(content)
    return processed


def _align_tab_separated(lines: Sequence[str], padding: int) -> list[str]:
    cells = [line.split("\t") for line in lines]
    widths: dict[int, int] = {}
    for row in cells:
        for index, cell in enumerate(row[:-1]):
            widths[index] = max(widths.get(index, 0), len(cell))
    aligned = []
    for row in cells:
        parts = [cell.ljust(widths[index] + padding) for index, cell in enumerate(row[:-1])]
        parts.append(row[-1])
        aligned.append("".join(parts))
    return aligned


def render_tabbed_table(
    headers: Sequence[str], rows: Sequence[Sequence[str]], out: Optional[IO[str]] = None
) -> None:
    """Write a space-aligned table that fits the terminal width.

    The first column is kept whole; the others are truncated.
    """
    out = out if out is not None else sys.stdout
    lines = ["\t".join(headers)]
    if rows:
        width = optimal_column_width(rows, TABBED_COLUMN_PADDING, _terminal_width())
        lines.extend("\t".join(truncate_columns(row, width)) for row in rows)
    for line in _align_tab_separated(lines, TABBED_COLUMN_PADDING):
        out.write(line + "\n")


def _is_num_or_space(ch: str) -> bool:
    return ch.isdigit() or ch.isspace()


def _title(name: str) -> str:
    chars = list(name)
    for index, ch in enumerate(chars):
        if ch == "_":
            chars[index] = " "
        elif ch == ".":
            after_word = index != 0 and not _is_num_or_space(chars[index - 1])
            before_word = index != len(chars) - 1 and not _is_num_or_space(chars[index + 1])
            if after_word or before_word:
                chars[index] = " "
    text = "".join(chars).strip()
    if not text and name:
        text = " "
    return text.upper()


def _wrap_cell(content: str) -> list[str]:
    lines: list[str] = []
    for part in content.split("\n"):
        if len(part) > TABLE_WRAP_WIDTH:
            wrapped = textwrap.wrap(
                part, TABLE_WRAP_WIDTH, break_long_words=False, break_on_hyphens=False
            )
            lines.extend(wrapped or [""])
        else:
            lines.append(part)
    return lines


def render_table(
    headers: Sequence[str], rows: Iterable[Sequence[str]], out: Optional[IO[str]] = None
) -> None:
    """Write a borderless, tab-separated table with upper-case headers."""
    out = out if out is not None else sys.stdout
    header_cells = [_title(header) for header in headers]
    body = [[_wrap_cell(cell) for cell in row] for row in rows]
    column_count = max([len(header_cells)] + [len(row) for row in body])
    widths = [0] * column_count
    for index, header in enumerate(header_cells):
        widths[index] = max(widths[index], len(header))
    for row in body:
        for index, cell_lines in enumerate(row):
            widths[index] = max([widths[index]] + [len(line) for line in cell_lines])

    def emit(cells: Sequence[str]) -> None:
        padded = [
            (cells[index] if index < len(cells) else "").ljust(widths[index])
            for index in range(column_count)
        ]
        out.write("\t".join(padded).rstrip() + "\n")

    emit(header_cells)
    for row in body:
        height = max((len(cell) for cell in row), default=0)
        for line_no in range(height):
            emit([cell[line_no] if line_no < len(cell) else "" for cell in row])


def _dump_json(value: Any) -> str:
    text = json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False)
    for char, escape in _JSON_HTML_ESCAPES.items():
        text = text.replace(char, escape)
    return text


def render_json(reader: Any, out: Optional[IO[str]] = None) -> None:
    """Read everything from the reader and write it as a JSON byte string.

    Raw bytes are written as a base64-encoded JSON string.
    """
    out = out if out is not None else sys.stdout
    data = reader.read()
    if isinstance(data, str):
        data = data.encode("utf-8")
    out.write(_dump_json(base64.b64encode(data).decode("ascii")) + "\n")


def render_json_value(value: Any, out: Optional[IO[str]] = None) -> None:
    """Write a value as indented JSON with sorted keys."""
    out = out if out is not None else sys.stdout
    out.write(_dump_json(value) + "\n")