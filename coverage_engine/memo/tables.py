"""
Coverage Desk — Pipe Table Extraction
───────────────────────────────────────
Finds markdown pipe tables (header row, separator row, ≥1 data row)
inside a section body and turns them into TableData.

Cell normalisation:
  estimate column   header ends in "E" (2025E) or contains "est"
  negative cell     "-12.3%" → "(12.3%)", "(4.1)" kept as is
  positive growth   "12.3%" → "+12.3%", only in margin / growth / yoy rows
Column 0 is always the row label and is never flagged.
"""

import re
from typing import List, Union

from coverage_engine.models.blocks import TableCell, TableData, TableRow, strip_emphasis

GROWTH_KEYWORDS = ("margin", "growth", "yoy")

_SEPARATOR_CELL = re.compile(r"^:?-{2,}:?$")
_NEGATIVE       = re.compile(r"^[-−–]\s*(?=[\d$€£.])")
_PARENTHESISED  = re.compile(r"^\(.+\)$")
_LEADING_NUMBER = re.compile(r"^\+?[$€£]?(\d[\d,]*\.?\d*|\.\d+)")


def is_growth_label(label: str) -> bool:
    lowered = strip_emphasis(label).lower()
    return any(k in lowered for k in GROWTH_KEYWORDS)


def is_estimate_header(header: str) -> bool:
    h = strip_emphasis(header).strip()
    return h.endswith("E") or "est" in h.lower()


def _split_row(line: str) -> List[str]:
    line = line.strip()
    if line.startswith("|"):
        line = line[1:]
    if line.endswith("|"):
        line = line[:-1]
    return [c.strip() for c in line.split("|")]


def _is_table_line(line: str) -> bool:
    return line.strip().startswith("|") or line.count("|") >= 2


def _is_separator(line: str) -> bool:
    cells = _split_row(line)
    return bool(cells) and all(_SEPARATOR_CELL.match(c.replace(" ", "")) for c in cells)


def classify_cell(raw: str, estimate: bool, growth_row: bool) -> TableCell:
    bare = strip_emphasis(raw).strip()

    if _PARENTHESISED.match(bare) and any(ch.isdigit() for ch in bare):
        return TableCell(text=bare, negative=True, estimate=estimate)

    if _NEGATIVE.match(bare):
        return TableCell(text=f"({bare[1:].strip()})", negative=True, estimate=estimate)

    if growth_row:
        m = _LEADING_NUMBER.match(bare)
        if m and float(m.group(1).replace(",", "") or 0) > 0:
            return TableCell(text="+" + bare.lstrip("+"), positive=True, estimate=estimate)

    return TableCell(text=raw.strip(), estimate=estimate)


def build_table(header_line: str, data_lines: List[str]) -> TableData:
    headers = _split_row(header_line)
    estimate_columns = [False] + [is_estimate_header(h) for h in headers[1:]]

    rows = []
    for line in data_lines:
        raw_cells = _split_row(line)
        if len(raw_cells) < len(headers):
            raw_cells += [""] * (len(headers) - len(raw_cells))
        growth = is_growth_label(raw_cells[0])
        cells = [TableCell(text=raw_cells[0])]
        for idx, raw in enumerate(raw_cells[1:], start=1):
            estimate = estimate_columns[idx] if idx < len(estimate_columns) else False
            cells.append(classify_cell(raw, estimate, growth))
        rows.append(TableRow(cells=cells, growth_row=growth))

    return TableData(headers=headers, estimate_columns=estimate_columns, rows=rows)


def split_tables(body: str) -> List[Union[str, TableData]]:
    """
    Split body into ordered segments of plain text and tables.
    Text segments are returned untouched (possibly empty strings are dropped).
    """
    lines = body.split("\n")
    segments: List[Union[str, TableData]] = []
    text_buf: List[str] = []
    i = 0

    while i < len(lines):
        table, consumed = _try_table(lines, i)
        if table is None:
            text_buf.append(lines[i])
            i += 1
            continue
        if "\n".join(text_buf).strip():
            segments.append("\n".join(text_buf))
        text_buf = []
        segments.append(table)
        i += consumed

    if "\n".join(text_buf).strip():
        segments.append("\n".join(text_buf))
    return segments


def _try_table(lines: List[str], start: int):
    if start + 2 >= len(lines):
        return None, 0
    header, separator = lines[start], lines[start + 1]
    if not (_is_table_line(header) and _is_separator(separator)):
        return None, 0

    data = []
    j = start + 2
    while j < len(lines) and lines[j].strip() and _is_table_line(lines[j]):
        data.append(lines[j])
        j += 1
    if not data:
        return None, 0
    return build_table(header, data), j - start


def has_table(body: str) -> bool:
    return any(isinstance(s, TableData) for s in split_tables(body))
